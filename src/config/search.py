"""
Search configuration for the code graph.
"""

from dataclasses import dataclass, field
from typing import List
from enum import Enum

from .base import BaseConfig


class FusionMethod(str, Enum):
    """How keyword and semantic rankings are combined."""
    RRF = "rrf"
    WEIGHTED = "weighted"


@dataclass
class SearchConfig(BaseConfig):
    """
    Configuration for hybrid search.

    Attributes:
        top_k: Default number of results to return
        keyword_indexes: Full-text indexes queried by keyword search,
            as "Label:index_name" pairs
        index_timeout_seconds: Upper bound for every single index query
        enable_semantic: Query the semantic searcher as well
        fusion_method: "rrf" (reciprocal rank) or "weighted" (score blend)
        rrf_k: RRF constant
        keyword_weight: Weight of the keyword ranking in fusion
        semantic_weight: Weight of the semantic ranking in fusion
        max_workers: Thread pool size for the keyword fan-out
    """
    top_k: int = 20
    keyword_indexes: List[str] = field(default_factory=lambda: [
        "File:file_fts",
        "Function:function_fts",
        "Class:class_fts",
        "Method:method_fts",
    ])
    index_timeout_seconds: float = 10.0

    # Fusion
    enable_semantic: bool = True
    fusion_method: str = FusionMethod.RRF.value
    rrf_k: int = 60
    keyword_weight: float = 1.0
    semantic_weight: float = 1.0

    max_workers: int = 4

    def __post_init__(self):
        self.fusion_method = FusionMethod(self.fusion_method).value
        if self.keyword_weight < 0 or self.semantic_weight < 0:
            raise ValueError("Fusion weights must be non-negative")

    def index_pairs(self) -> List[tuple]:
        """Split keyword_indexes into (label, index_name) tuples."""
        pairs = []
        for item in self.keyword_indexes:
            label, _, index_name = item.partition(':')
            pairs.append((label, index_name or f"{label.lower()}_fts"))
        return pairs
