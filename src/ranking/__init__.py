"""
Ranking module for the code graph.

Contains:
- ReciprocalRankFusion: RRF algorithm for combining multiple rankings
- weighted_score_fusion: min-max normalised score blend
- merge_by_sum: score summation for lists on one scale
"""

from .rrf import (
    ReciprocalRankFusion,
    merge_by_sum,
    results_frame,
    weighted_score_fusion,
)

__all__ = [
    'ReciprocalRankFusion',
    'merge_by_sum',
    'results_frame',
    'weighted_score_fusion',
]
