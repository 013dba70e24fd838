"""
Ingestion pipeline.

Extract -> assemble -> {detect communities, extract processes} -> persist.

1. Files are extracted in parallel; a file that fails to parse is skipped.
2. The graph builder assembles all results on one thread.
3. Community detection and process extraction run concurrently and each
   returns its own overlay, merged into the graph afterwards.
4. The persisted graph is replaced in one transaction.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .analysis import CommunityDetector, CommunityResult, ProcessExtractor, ProcessResult
from .errors import FatalIngestionError, GraphStoreError
from .graph.graph_builder import ExtractedFile, GraphBuilder, KnowledgeGraph
from .graph.neo4j_client import Neo4jClient
from .graph.weaviate_indexer import WeaviateIndexer
from .parsers import ParsingError, get_parser
from .repo_loader import RepoFile, RepositoryLoader
from .schemas import IngestStats
from src.config import IngestionConfig, SearchConfig
from src.logger import get_logger, log_timing


logger = get_logger(__name__)


@dataclass
class PipelineResult:
    """In-memory outcome of one build."""
    graph: KnowledgeGraph
    communities: CommunityResult
    processes: ProcessResult
    stats: IngestStats


class CodeGraphPipeline:
    """
    Builds the code knowledge graph and persists it.

    Usage:
        with Neo4jClient.from_config(Neo4jConfig.from_env()) as store:
            pipeline = CodeGraphPipeline(store=store)
            stats = pipeline.ingest_directory(Path("path/to/repo"))
    """

    def __init__(
        self,
        store: Optional[Neo4jClient] = None,
        semantic: Optional[WeaviateIndexer] = None,
        config: Optional[IngestionConfig] = None,
        search_config: Optional[SearchConfig] = None,
    ):
        """
        Initialize pipeline.

        Args:
            store: Graph store; required by ingest()
            semantic: Optional semantic indexer, used when config.index_embeddings is set
            config: Ingestion configuration
            search_config: Provides the keyword indexes to create
        """
        self.store = store
        self.semantic = semantic
        self.config = config or IngestionConfig()
        self.search_config = search_config or SearchConfig()

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract(self, repo_files: List[RepoFile]) -> Tuple[List[ExtractedFile], int]:
        """
        Extract all files in parallel.

        Returns:
            (extracted files in input order, number of skipped files)
        """
        workers = max(1, self.config.extraction.max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extract") as executor:
            futures = [executor.submit(self._extract_one, repo_file) for repo_file in repo_files]

            extracted: List[ExtractedFile] = []
            skipped = 0
            for repo_file, future in zip(repo_files, futures):
                try:
                    extracted.append(future.result())
                except ParsingError as e:
                    skipped += 1
                    logger.warning(f"Skipping {repo_file.path}: {e}")

        return extracted, skipped

    @staticmethod
    def _extract_one(repo_file: RepoFile) -> ExtractedFile:
        parser = get_parser(Path(repo_file.path), language=repo_file.language)
        if parser is None:
            raise ParsingError(f"Unsupported language for {repo_file.path}")

        result = parser.parse_code(repo_file.content, repo_file.path)
        for message in result.errors:
            logger.warning(message)
        return ExtractedFile(
            file_path=repo_file.path,
            language=parser.language,
            content=repo_file.content,
            result=result,
            size_bytes=repo_file.size_bytes,
        )

    # ------------------------------------------------------------------
    # Build / ingest
    # ------------------------------------------------------------------

    def build(self, repo_files: List[RepoFile], files_unread: int = 0) -> PipelineResult:
        """
        Build the full graph in memory without persisting it.

        Args:
            repo_files: Source files of one repository
            files_unread: Files discovered but skipped before extraction
                (too large, not UTF-8); counted as total and skipped

        Raises:
            FatalIngestionError: If no file could be extracted
        """
        with log_timing(logger, f"Extracting {len(repo_files)} files"):
            extracted, skipped = self.extract(repo_files)

        skipped += files_unread
        if not extracted:
            raise FatalIngestionError(
                f"No files extracted ({len(repo_files) + files_unread} found, {skipped} skipped)"
            )

        with log_timing(logger, "Assembling graph"):
            builder = GraphBuilder(max_symbol_content=self.config.extraction.max_symbol_content)
            graph = builder.build(extracted)

        with log_timing(logger, "Detecting communities and processes"):
            detector = CommunityDetector(self.config.community)
            tracer = ProcessExtractor(self.config.process)
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="analyze") as executor:
                community_future = executor.submit(detector.detect, graph)
                process_future = executor.submit(tracer.extract, graph)
                communities = community_future.result()
                processes = process_future.result()

        graph.extend(communities.nodes, communities.relationships)
        graph.extend(processes.nodes, processes.relationships)

        stats = IngestStats(
            node_count=graph.node_count,
            edge_count=graph.edge_count,
            community_count=len(communities.nodes),
            process_count=len(processes.nodes),
            files_total=len(repo_files) + files_unread,
            files_extracted=len(extracted),
            files_skipped=skipped,
            unresolved_references=dict(graph.unresolved),
            modularity=round(communities.modularity, 6),
        )
        logger.info(
            f"Built graph: {stats.node_count} nodes, {stats.edge_count} edges, "
            f"{stats.community_count} communities, {stats.process_count} processes, "
            f"{stats.files_skipped} files skipped, "
            f"{sum(stats.unresolved_references.values())} unresolved references"
        )
        return PipelineResult(graph=graph, communities=communities, processes=processes, stats=stats)

    def ingest(self, repo_files: List[RepoFile], files_unread: int = 0) -> IngestStats:
        """
        Run the full pipeline and replace the persisted graph.

        Args:
            repo_files: Source files of one repository
            files_unread: Files skipped before extraction, reported in the stats

        Returns:
            IngestStats summary

        Raises:
            FatalIngestionError: If nothing was extracted or the store write failed
        """
        if self.store is None:
            raise FatalIngestionError("No graph store configured")

        result = self.build(repo_files, files_unread=files_unread)
        graph = result.graph

        with log_timing(logger, "Persisting graph"):
            try:
                self.store.replace_graph(graph.nodes.values(), graph.relationships)
            except GraphStoreError as e:
                raise FatalIngestionError(f"Persisting graph failed: {e}") from e

        if self.config.create_keyword_indexes:
            self._create_keyword_indexes()

        if self.config.index_embeddings and self.semantic is not None:
            try:
                self.semantic.index_symbols(list(graph.nodes.values()))
            except Exception as e:
                logger.error(f"Semantic indexing failed, semantic search will be empty: {e}")

        return result.stats

    def ingest_directory(self, path: Path) -> IngestStats:
        """Discover supported files under a directory and ingest them."""
        loader = RepositoryLoader(
            extensions=self.config.extraction.extensions,
            max_file_size=self.config.extraction.max_file_size,
        )
        repo_files = loader.load(Path(path))
        return self.ingest(repo_files, files_unread=len(loader.skipped))

    def _create_keyword_indexes(self) -> None:
        for label, index_name in self.search_config.index_pairs():
            try:
                self.store.create_keyword_index(label, index_name, ('name', 'content'))
            except GraphStoreError as e:
                logger.warning(f"Keyword index {index_name} unavailable: {e}")
