"""
Hybrid retrieval over the persisted code graph.

Keyword path: one full-text query per entity-type index (files, functions,
classes, methods), issued in parallel. A failing or slow index contributes
nothing. Scores for the same file are summed across indexes.

Semantic path: vector similarity from the semantic searcher, bounded by the
same per-index timeout; a slow or failing searcher contributes nothing.

Both rankings are combined with a configurable fusion policy
(weighted reciprocal rank fusion or a min-max score blend).
"""

import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import List, Optional, Tuple

import pandas as pd

from ..graph.neo4j_client import Neo4jClient
from ..graph.weaviate_indexer import WeaviateIndexer
from ..schemas import SearchHit
from src.config import FusionMethod, SearchConfig
from src.logger import get_logger
from src.ranking import ReciprocalRankFusion, merge_by_sum, results_frame, weighted_score_fusion


logger = get_logger(__name__)


def _to_hits(df: pd.DataFrame) -> List[SearchHit]:
    return [
        SearchHit(file_path=row.file_path, score=float(row.score), rank=int(row.rank))
        for row in df.itertuples(index=False)
    ]


class HybridRetriever:
    """
    Ranks repository files for a free-text query.

    Usage:
        retriever = HybridRetriever(neo4j_client, weaviate_indexer, SearchConfig())
        hits = retriever.search("session token refresh", limit=10)
    """

    def __init__(
        self,
        store: Neo4jClient,
        semantic: Optional[WeaviateIndexer] = None,
        config: Optional[SearchConfig] = None,
    ):
        """
        Initialize retriever.

        Args:
            store: Graph store with full-text indexes
            semantic: Optional semantic searcher
            config: Search configuration
        """
        self.store = store
        self.semantic = semantic
        self.config = config or SearchConfig()
        self.rrf = ReciprocalRankFusion(k=self.config.rrf_k)

    def search(self, query: str, limit: Optional[int] = None) -> List[SearchHit]:
        """
        Hybrid search: keyword fan-out fused with semantic similarity.

        Args:
            query: Free-text query
            limit: Maximum number of files (default: config.top_k)

        Returns:
            Ranked hits, rank 1 is best
        """
        if not query or not query.strip():
            return []
        limit = limit or self.config.top_k

        keyword = self._keyword_frame(query, limit)
        if not self.config.enable_semantic or self.semantic is None:
            return _to_hits(keyword)

        semantic = self._semantic_frame(query, limit)
        weights = [self.config.keyword_weight, self.config.semantic_weight]
        if self.config.fusion_method == FusionMethod.WEIGHTED.value:
            fused = weighted_score_fusion([keyword, semantic], weights=weights, limit=limit)
        else:
            fused = self.rrf.fuse_multiple_results([keyword, semantic], weights=weights, limit=limit)

        logger.info(
            f"Search '{query[:50]}': {len(keyword)} keyword, {len(semantic)} semantic, "
            f"{len(fused)} fused ({self.config.fusion_method})"
        )
        return _to_hits(fused)

    def keyword_search(self, query: str, limit: Optional[int] = None) -> List[SearchHit]:
        """
        Keyword-only search across all configured full-text indexes.

        Args:
            query: Free-text query
            limit: Maximum number of files (default: config.top_k)

        Returns:
            Hits ranked by summed full-text score
        """
        if not query or not query.strip():
            return []
        return _to_hits(self._keyword_frame(query, limit or self.config.top_k))

    def _keyword_frame(self, query: str, limit: int) -> pd.DataFrame:
        pairs = self.config.index_pairs()
        timeout = self.config.index_timeout_seconds
        results: List[pd.DataFrame] = []

        executor = ThreadPoolExecutor(
            max_workers=max(1, min(self.config.max_workers, len(pairs))),
            thread_name_prefix="fts",
        )
        try:
            futures = [
                (index_name, executor.submit(
                    self.store.query_keyword_index, label, index_name, query, limit, timeout
                ))
                for label, index_name in pairs
            ]
            deadline = time.monotonic() + timeout
            # Collected in configuration order so ties keep a stable first-seen order
            for index_name, future in futures:
                try:
                    pairs_found: List[Tuple[str, float]] = future.result(
                        timeout=max(0.0, deadline - time.monotonic())
                    )
                except FutureTimeoutError:
                    logger.warning(f"Keyword index {index_name} timed out after {timeout}s")
                    continue
                except Exception as e:
                    logger.warning(f"Keyword index {index_name} failed: {e}")
                    continue
                results.append(results_frame(pairs_found[:limit]))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        return merge_by_sum(results, limit=limit)

    def _semantic_frame(self, query: str, limit: int) -> pd.DataFrame:
        timeout = self.config.index_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="semantic")
        try:
            future = executor.submit(self.semantic.query_similar, query, limit)
            try:
                pairs = future.result(timeout=timeout)
            except FutureTimeoutError:
                logger.warning(f"Semantic search timed out after {timeout}s")
                pairs = []
            except Exception as e:
                logger.warning(f"Semantic search failed: {e}")
                pairs = []
        finally:
            executor.shutdown(wait=False, cancel_futures=True)
        return results_frame(pairs[:limit])
