"""
Rank fusion for combining search results.

Two fusion policies over ranked (id, score) lists:
- Reciprocal Rank Fusion: Σ w / (k + rank(d)), independent of score scales
- Weighted score blend: Σ w * minmax(score(d))

Plus `merge_by_sum`, which adds raw scores of lists that share a scale
(e.g. several full-text indexes of the same engine).

All functions keep first-seen order between equal scores and return a
DataFrame with columns [id_col, 'score', 'rank'], rank numbered 1..K.
"""

from typing import List, Optional, Sequence, Tuple

import pandas as pd

from ..logger import get_logger

logger = get_logger(__name__)

ID_COL = 'file_path'


def results_frame(pairs: Sequence[Tuple[str, float]], id_col: str = ID_COL) -> pd.DataFrame:
    """Build a ranked results frame from (id, score) pairs, keeping their order."""
    return pd.DataFrame(list(pairs), columns=[id_col, 'score'])


def _ranked(scores: pd.Series, id_col: str, limit: Optional[int]) -> pd.DataFrame:
    ordered = scores.sort_values(ascending=False, kind='stable')
    if limit is not None:
        ordered = ordered.head(limit)
    df = ordered.rename('score').reset_index()
    df.columns = [id_col, 'score']
    df['rank'] = range(1, len(df) + 1)
    return df


def _empty(id_col: str) -> pd.DataFrame:
    return pd.DataFrame({id_col: pd.Series(dtype=object),
                         'score': pd.Series(dtype=float),
                         'rank': pd.Series(dtype=int)})


def merge_by_sum(
    results_list: List[pd.DataFrame],
    id_col: str = ID_COL,
    limit: Optional[int] = None,
) -> pd.DataFrame:
    """
    Merge result lists by summing scores per id.

    Args:
        results_list: DataFrames with [id_col, 'score']
        id_col: ID column
        limit: Optional truncation after ranking

    Returns:
        Merged frame sorted by summed score
    """
    non_empty = [df for df in results_list if not df.empty]
    if not non_empty:
        return _empty(id_col)

    combined = pd.concat(non_empty, ignore_index=True)
    # sort=False keeps groups in first-seen order
    summed = combined.groupby(id_col, sort=False)['score'].sum()
    return _ranked(summed, id_col, limit)


class ReciprocalRankFusion:
    """
    Reciprocal Rank Fusion for combining results from different retrievers.

    Use cases:
    1. Keyword + semantic (hybrid search)
    2. Several keyword indexes with unrelated score scales
    """

    def __init__(self, k: int = 60):
        """
        Initialize RRF.

        Args:
            k: RRF constant (default 60)
               Larger k → smaller difference between top results
               Smaller k → more weight to top results
        """
        self.k = k

    def compute_rrf_score(self, rank: int, weight: float = 1.0) -> float:
        """
        Compute RRF score for given rank.

        Args:
            rank: Position in list (starting from 1)
            weight: Weight of the list the rank comes from

        Returns:
            RRF score
        """
        return weight / (self.k + rank)

    def fuse_multiple_results(
        self,
        results_list: List[pd.DataFrame],
        weights: Optional[List[float]] = None,
        id_col: str = ID_COL,
        limit: Optional[int] = None,
    ) -> pd.DataFrame:
        """
        Combine multiple ranked lists using weighted RRF.

        Row order inside each DataFrame is its ranking.

        Args:
            results_list: DataFrames with results, best first
            weights: Per-list weights (default 1.0 each)
            id_col: ID column
            limit: Optional truncation after ranking

        Returns:
            Combined frame with RRF scores
        """
        if weights is None:
            weights = [1.0] * len(results_list)
        if len(weights) != len(results_list):
            raise ValueError("weights must match results_list")

        contributions = []
        for df, weight in zip(results_list, weights):
            if df.empty:
                continue
            ranks = pd.Series(range(1, len(df) + 1), index=df.index)
            contributions.append(pd.DataFrame({
                id_col: df[id_col],
                'score': ranks.map(lambda r: self.compute_rrf_score(r, weight)),
            }))

        return merge_by_sum(contributions, id_col=id_col, limit=limit)


def weighted_score_fusion(
    results_list: List[pd.DataFrame],
    weights: Optional[List[float]] = None,
    id_col: str = ID_COL,
    limit: Optional[int] = None,
) -> pd.DataFrame:
    """
    Combine lists by a weighted blend of min-max normalised scores.

    A list whose scores are all equal normalises to 1.0.
    """
    if weights is None:
        weights = [1.0] * len(results_list)
    if len(weights) != len(results_list):
        raise ValueError("weights must match results_list")

    contributions = []
    for df, weight in zip(results_list, weights):
        if df.empty:
            continue
        scores = df['score'].astype(float)
        spread = scores.max() - scores.min()
        if spread > 0:
            normalised = (scores - scores.min()) / spread
        else:
            normalised = pd.Series(1.0, index=scores.index)
        contributions.append(pd.DataFrame({id_col: df[id_col], 'score': normalised * weight}))

    return merge_by_sum(contributions, id_col=id_col, limit=limit)
