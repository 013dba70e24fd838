"""
Weaviate indexer - semantic search over code symbols.

Embeds symbol and file content with a sentence-transformers model and
stores the vectors in a Weaviate collection; `query_similar` ranks files
by vector similarity to a free-text query.
"""

from typing import List, Dict, Optional, Tuple
from urllib.parse import urlsplit

# sentence_transformers is imported lazily, model loading is slow
import weaviate
from weaviate.classes.config import Configure, Property, DataType
from weaviate.classes.init import Auth
from weaviate.classes.query import MetadataQuery

from .models import GraphNode, NodeType
from ..errors import IndexQueryError
from src.logger import get_logger


logger = get_logger(__name__)

INDEXED_TYPES = frozenset({
    NodeType.FILE,
    NodeType.FUNCTION,
    NodeType.CLASS,
    NodeType.INTERFACE,
    NodeType.METHOD,
})


def connection_params(url: str) -> Tuple[str, int, bool]:
    """(host, port, secure) of a Weaviate URL; the port defaults by scheme."""
    parts = urlsplit(url if '://' in url else f"http://{url}")
    secure = parts.scheme == 'https'
    return parts.hostname or 'localhost', parts.port or (443 if secure else 8080), secure


class WeaviateIndexer:
    """
    Indexes knowledge graph nodes in Weaviate for vector search.

    Strategy:
    1. Create one collection with externally supplied vectors
    2. Generate embeddings for node name + content
    3. Batch index nodes with embeddings
    4. Query by vector, aggregate hits per file
    """

    def __init__(
        self,
        weaviate_url: str = "http://localhost:8080",
        embedding_model: str = "BAAI/bge-m3",
        collection_name: str = "CodeSymbol",
        device: str = "cpu",
        api_key: Optional[str] = None,
        grpc_port: int = 50051,
        batch_size: int = 64,
    ):
        """
        Initialize Weaviate indexer.

        Args:
            weaviate_url: Weaviate connection URL
            embedding_model: Sentence transformer model name
            collection_name: Weaviate collection holding symbol vectors
            device: Torch device for the embedding model
            api_key: Optional API key
            grpc_port: Weaviate gRPC port
            batch_size: Nodes encoded per batch while indexing

        Raises:
            ConnectionError: If Weaviate is not reachable
        """
        self.weaviate_url = weaviate_url
        self.collection_name = collection_name
        self.device = device
        self.batch_size = batch_size
        self._embedding_model_name = embedding_model
        self._embedding_model = None  # Lazy loaded

        host, port, secure = connection_params(weaviate_url)
        try:
            auth = Auth.api_key(api_key) if api_key else None
            self.client = weaviate.connect_to_custom(
                http_host=host,
                http_port=port,
                http_secure=secure,
                grpc_host=host,
                grpc_port=grpc_port,
                grpc_secure=secure,
                auth_credentials=auth,
            )
            if not self.client.is_ready():
                raise ConnectionError(f"Weaviate at {weaviate_url} is not ready")
            logger.info(f"Connected to Weaviate at {weaviate_url}")
        except Exception as e:
            logger.error(f"Failed to connect to Weaviate: {e}")
            raise ConnectionError(f"Cannot connect to Weaviate at {weaviate_url}: {e}") from e

    @classmethod
    def from_config(cls, config) -> "WeaviateIndexer":
        """Create an indexer from a WeaviateConfig."""
        return cls(
            weaviate_url=config.url,
            embedding_model=config.embedding_model,
            collection_name=config.collection_name,
            device=config.embedding_device,
            api_key=config.api_key,
            grpc_port=config.grpc_port,
            batch_size=config.embedding_batch_size,
        )

    @property
    def embedding_model(self):
        """Sentence-transformers model, loaded on first use."""
        if self._embedding_model is None:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading embedding model: {self._embedding_model_name}")
            self._embedding_model = SentenceTransformer(self._embedding_model_name, device=self.device)
        return self._embedding_model

    def close(self):
        """Close Weaviate connection."""
        if self.client:
            self.client.close()
            logger.info("Weaviate connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def create_schema(self):
        """Create the symbol collection if it does not exist."""
        if self.client.collections.exists(self.collection_name):
            return
        self.client.collections.create(
            name=self.collection_name,
            vectorizer_config=Configure.Vectorizer.none(),  # We provide our own vectors
            properties=[
                Property(name="node_id", data_type=DataType.TEXT),
                Property(name="node_type", data_type=DataType.TEXT),
                Property(name="name", data_type=DataType.TEXT),
                Property(name="file_path", data_type=DataType.TEXT),
                Property(name="content", data_type=DataType.TEXT),
                Property(name="start_line", data_type=DataType.INT),
                Property(name="end_line", data_type=DataType.INT),
            ]
        )
        logger.info(f"Created {self.collection_name} collection in Weaviate")

    def reset(self):
        """Drop and recreate the collection so a run replaces the previous index."""
        if self.client.collections.exists(self.collection_name):
            self.client.collections.delete(self.collection_name)
        self.create_schema()

    @staticmethod
    def _searchable_content(node: GraphNode, max_chars: int = 2000) -> str:
        content = node.properties.get('content', '') or ''
        return f"{node.label} {node.name}\n{content[:max_chars]}"

    def index_symbols(self, nodes: List[GraphNode], batch_size: Optional[int] = None) -> int:
        """
        Index File and Symbol nodes with embeddings.

        Args:
            nodes: Graph nodes; Community and Process nodes are skipped
            batch_size: Embedding batch size (default: the indexer's)

        Returns:
            Number of nodes indexed
        """
        nodes = [n for n in nodes if n.type in INDEXED_TYPES]
        if not nodes:
            logger.warning("No nodes to index")
            return 0

        batch_size = batch_size or self.batch_size
        self.reset()
        collection = self.client.collections.get(self.collection_name)
        indexed_count = 0

        for i in range(0, len(nodes), batch_size):
            batch = nodes[i:i + batch_size]
            contents = [self._searchable_content(node) for node in batch]
            embeddings = self.embedding_model.encode(
                contents,
                show_progress_bar=False,
                convert_to_numpy=True
            )

            with collection.batch.dynamic() as batch_inserter:
                for node, vector in zip(batch, embeddings):
                    batch_inserter.add_object(
                        properties={
                            "node_id": node.id,
                            "node_type": node.label,
                            "name": node.name,
                            "file_path": node.properties.get('file_path', ''),
                            "content": node.properties.get('content', ''),
                            "start_line": node.properties.get('start_line', 0),
                            "end_line": node.properties.get('end_line', 0),
                        },
                        vector=vector.tolist()
                    )

            indexed_count += len(batch)
            logger.info(f"Indexed batch {i // batch_size + 1}: {indexed_count}/{len(nodes)} nodes")

        logger.info(f"Successfully indexed {indexed_count} nodes in Weaviate")
        return indexed_count

    def query_similar(self, query: str, limit: int = 20) -> List[Tuple[str, float]]:
        """
        Rank files by vector similarity to a query.

        Each file is scored by its best matching object (1 - cosine distance).

        Args:
            query: Free-text query
            limit: Maximum number of files

        Returns:
            (file_path, score) pairs, best first

        Raises:
            IndexQueryError: If embedding or the vector query fails
        """
        try:
            query_vector = self.embedding_model.encode(
                query,
                show_progress_bar=False,
                convert_to_numpy=True
            ).tolist()
            collection = self.client.collections.get(self.collection_name)
            # Several objects may share a file; over-fetch before aggregating
            response = collection.query.near_vector(
                near_vector=query_vector,
                limit=limit * 3,
                return_metadata=MetadataQuery(distance=True),
            )
        except Exception as e:
            raise IndexQueryError(self.collection_name, str(e)) from e

        best: Dict[str, float] = {}
        for obj in response.objects:
            file_path = obj.properties.get('file_path')
            if not file_path:
                continue
            distance = obj.metadata.distance if obj.metadata.distance is not None else 1.0
            score = 1.0 - distance
            if file_path not in best or score > best[file_path]:
                best[file_path] = score

        ranked = sorted(best.items(), key=lambda item: item[1], reverse=True)
        return ranked[:limit]
