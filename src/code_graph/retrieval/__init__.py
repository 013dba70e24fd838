"""
Retrieval over the persisted code graph.

- HybridRetriever: keyword fan-out + semantic search with rank fusion
- GraphExplorer: cluster and process details and listings
"""

from .explorer import GraphExplorer
from .hybrid_retriever import HybridRetriever

__all__ = [
    'GraphExplorer',
    'HybridRetriever',
]
