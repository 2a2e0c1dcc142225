# core/pairwise.py
import logging
import math
from typing import Any, Optional, Sequence

from core.errors import InvalidPairwiseValue
from core.models import Criterion, PairwiseMatrix, order_criteria

logger = logging.getLogger(__name__)


def is_valid_pairwise_value(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        v = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(v) and v > 0


def validate_pairwise_value(value: Any, row_id: Optional[str] = None, col_id: Optional[str] = None) -> float:
    """Return value as float, or raise InvalidPairwiseValue for the UI/import layer to report."""
    if not is_valid_pairwise_value(value):
        raise InvalidPairwiseValue(value, row_id, col_id)
    return float(value)


def _known(matrix: PairwiseMatrix, row_id: str, col_id: str):
    value = (matrix.get(row_id) or {}).get(col_id)
    return float(value) if is_valid_pairwise_value(value) else None


def normalize_pairwise_matrix(criterion_ids: Sequence[str], existing: PairwiseMatrix) -> PairwiseMatrix:
    """
    Square, reciprocal matrix over exactly criterion_ids.

    Per off-diagonal cell (i, j): existing[i][j] if positive, else 1 / existing[j][i]
    if positive, else 1. Each cell writes its mirror too, so when both entries of a
    pair were given inconsistently the one visited last (row order) wins.
    """
    ids = list(criterion_ids)
    matrix: PairwiseMatrix = {rid: {} for rid in ids}

    for row_id in ids:
        for col_id in ids:
            if row_id == col_id:
                matrix[row_id][col_id] = 1.0
                continue

            direct = _known(existing, row_id, col_id)
            mirror = _known(existing, col_id, row_id)
            if direct is not None:
                value = direct
            elif mirror is not None:
                value = 1.0 / mirror
            else:
                value = 1.0

            matrix[row_id][col_id] = value
            matrix[col_id][row_id] = 1.0 / value

    return matrix


def update_pairwise_value(matrix: PairwiseMatrix, row_id: str, col_id: str, value: Any) -> PairwiseMatrix:
    """
    Set M[row][col] = value and M[col][row] = 1/value on a copy.
    Invalid values (and diagonal writes) leave the matrix unchanged.
    """
    if not is_valid_pairwise_value(value):
        logger.warning("Ignoring pairwise value %r for (%s, %s)", value, row_id, col_id)
        return matrix
    if row_id == col_id:
        logger.warning("Ignoring diagonal pairwise write for %s", row_id)
        return matrix

    v = float(value)
    clone: PairwiseMatrix = dict(matrix)
    clone[row_id] = dict(matrix.get(row_id) or {})
    clone[col_id] = dict(matrix.get(col_id) or {})
    clone[row_id][col_id] = v
    clone[col_id][row_id] = 1.0 / v
    return clone


def remove_criterion_from_matrix(matrix: PairwiseMatrix, criterion_id: str) -> PairwiseMatrix:
    return {
        row_id: {col_id: v for col_id, v in row.items() if col_id != criterion_id}
        for row_id, row in matrix.items()
        if row_id != criterion_id
    }


def sanitize_pairwise_matrix(criteria: Sequence[Criterion], matrix: PairwiseMatrix) -> PairwiseMatrix:
    return normalize_pairwise_matrix([c.id for c in order_criteria(criteria)], matrix)
