# core/ahp.py
import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from core.errors import EmptyCriteriaSet
from core.models import AhpResult, Criterion, PairwiseMatrix, order_criteria
from core.pairwise import normalize_pairwise_matrix

logger = logging.getLogger(__name__)

# Saaty random index by matrix size
RANDOM_INDEX = {
    1: 0.0,
    2: 0.0,
    3: 0.58,
    4: 0.90,
    5: 1.12,
    6: 1.24,
    7: 1.32,
    8: 1.41,
    9: 1.45,
    10: 1.49,
}

CONSISTENCY_THRESHOLD = 0.1
WEIGHT_EPSILON = 1e-12


@dataclass(frozen=True)
class AhpArtifacts:
    raw_matrix: np.ndarray         # A
    column_sums: np.ndarray        # S
    normalized_matrix: np.ndarray  # N
    weights: np.ndarray            # w
    weighted_sum: np.ndarray       # Aw
    lambda_max: float
    ci: float
    ri: float
    cr: float


def random_index(n: int) -> float:
    """RI for size n, clamped to the largest tabulated size."""
    if n in RANDOM_INDEX:
        return RANDOM_INDEX[n]
    return RANDOM_INDEX[max(RANDOM_INDEX)]


def compute_ahp(matrix: np.ndarray) -> AhpArtifacts:
    """
    matrix: shape (n, n), complete and reciprocal
    Weights are row averages of the column-normalized matrix.
    """
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError("matrix must be square")
    n = matrix.shape[0]
    if n == 0:
        raise EmptyCriteriaSet()

    col_sums = matrix.sum(axis=0)
    normalized = matrix / np.where(col_sums == 0, 1.0, col_sums)

    w = normalized.sum(axis=1) / n
    aw = matrix @ w

    lambda_max = float((aw / np.where(w == 0, WEIGHT_EPSILON, w)).sum() / n)
    ci = (lambda_max - n) / (n - 1) if n > 1 else 0.0
    ri = random_index(n)
    cr = 0.0 if ri == 0 else ci / ri

    return AhpArtifacts(
        raw_matrix=matrix,
        column_sums=col_sums,
        normalized_matrix=normalized,
        weights=w,
        weighted_sum=aw,
        lambda_max=lambda_max,
        ci=ci,
        ri=ri,
        cr=cr,
    )


def _round(value: float, digits: int) -> float:
    # + 0.0 folds -0.0 into 0.0
    return round(float(value), digits) + 0.0


def calculate_ahp_result(criteria: Sequence[Criterion], matrix: PairwiseMatrix) -> AhpResult:
    if not criteria:
        raise EmptyCriteriaSet()

    ids = [c.id for c in order_criteria(criteria)]
    complete = normalize_pairwise_matrix(ids, matrix)
    raw = np.array([[complete[r][c] for c in ids] for r in ids], dtype=float)

    art = compute_ahp(raw)
    logger.debug(
        "AHP n=%d lambda_max=%.6f CI=%.6f CR=%.6f", len(ids), art.lambda_max, art.ci, art.cr
    )

    return AhpResult(
        weights={cid: _round(art.weights[i], 6) for i, cid in enumerate(ids)},
        lambda_max=_round(art.lambda_max, 4),
        ci=_round(art.ci, 4),
        cr=_round(art.cr, 4),
        is_consistent=bool(art.cr <= CONSISTENCY_THRESHOLD),
    )
