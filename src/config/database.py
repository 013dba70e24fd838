"""
Connection settings for the graph store and the vector store.
"""

from dataclasses import dataclass
from typing import Optional

from .base import BaseConfig


@dataclass
class Neo4jConfig(BaseConfig):
    """
    Neo4j connection used to persist the graph and serve keyword search.

    Attributes:
        uri: Bolt URI (bolt://host:port)
        user: Username
        password: Password
        database: Database name (default: neo4j)
        max_connection_pool_size: Connection pool size
        connection_timeout: Timeout in seconds
        batch_size: Rows per UNWIND statement when loading the graph
    """
    uri: str = "bolt://localhost:7687"
    user: str = "neo4j"
    password: str = "password"
    database: str = "neo4j"
    max_connection_pool_size: int = 50
    connection_timeout: float = 30.0
    batch_size: int = 1000

    @classmethod
    def from_env(cls, prefix: str = "NEO4J_") -> 'Neo4jConfig':
        """NEO4J_URI, NEO4J_USER, NEO4J_PASSWORD, NEO4J_DATABASE, NEO4J_BATCH_SIZE, ..."""
        return cls(**cls.env_values(prefix))


@dataclass
class WeaviateConfig(BaseConfig):
    """
    Vector store holding one embedding per file and symbol.

    Attributes:
        url: Weaviate URL; https selects a secure connection
        grpc_port: Weaviate gRPC port
        api_key: Optional API key
        collection_name: Collection holding symbol vectors
        embedding_model: sentence-transformers model name
        embedding_device: Device for embedding (cpu/cuda)
        embedding_batch_size: Nodes encoded per batch while indexing
    """
    url: str = "http://localhost:8080"
    grpc_port: int = 50051
    api_key: Optional[str] = None
    collection_name: str = "CodeSymbol"
    embedding_model: str = "BAAI/bge-m3"
    embedding_device: str = "cpu"
    embedding_batch_size: int = 64

    @classmethod
    def from_env(cls, prefix: str = "WEAVIATE_") -> 'WeaviateConfig':
        """WEAVIATE_URL, WEAVIATE_API_KEY, WEAVIATE_COLLECTION_NAME, WEAVIATE_EMBEDDING_MODEL, ..."""
        return cls(**cls.env_values(prefix))
