# core/topsis.py
import logging
import math
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

import numpy as np

from core.errors import EmptyAlternativeSet, EmptyCriteriaSet, IncompleteDecisionMatrix
from core.models import (
    Alternative,
    Criterion,
    CriterionType,
    ScoreMatrix,
    TopsisDetail,
    TopsisOutcome,
    TopsisResult,
    order_criteria,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopsisArtifacts:
    normalized_matrix: np.ndarray  # r_ij
    weighted_matrix: np.ndarray    # v_ij
    pis: np.ndarray                # A+
    nis: np.ndarray                # A-
    s_pos: np.ndarray              # D+
    s_neg: np.ndarray              # D-
    c_star: np.ndarray             # closeness, 0 where D+ + D- == 0


def compute_topsis(
    matrix: np.ndarray,
    weights: np.ndarray,
    directions: Sequence[CriterionType],
) -> TopsisArtifacts:
    """
    matrix: shape (m, n)
    weights: shape (n,), applied as given (renormalize beforehand)
    directions: BENEFIT or COST per column, length n
    """
    if matrix.ndim != 2:
        raise ValueError("matrix must be 2D")
    m, n = matrix.shape
    if weights.shape != (n,):
        raise ValueError("weights must have shape (n,)")
    if len(directions) != n:
        raise ValueError("directions length must match number of criteria")

    denom = np.sqrt((matrix ** 2).sum(axis=0))
    denom = np.where(denom == 0, 1.0, denom)
    r = matrix / denom

    v = r * weights

    pis = np.zeros(n, dtype=float)
    nis = np.zeros(n, dtype=float)
    for j, d in enumerate(directions):
        col = v[:, j]
        if d == CriterionType.BENEFIT:
            pis[j] = np.max(col)
            nis[j] = np.min(col)
        elif d == CriterionType.COST:
            pis[j] = np.min(col)
            nis[j] = np.max(col)
        else:
            raise ValueError("direction must be BENEFIT or COST")

    s_pos = np.sqrt(((v - pis) ** 2).sum(axis=1))
    s_neg = np.sqrt(((v - nis) ** 2).sum(axis=1))
    total = s_pos + s_neg
    c_star = np.divide(s_neg, total, out=np.zeros(m, dtype=float), where=total != 0)

    return TopsisArtifacts(
        normalized_matrix=r,
        weighted_matrix=v,
        pis=pis,
        nis=nis,
        s_pos=s_pos,
        s_neg=s_neg,
        c_star=c_star,
    )


def assign_competition_ranks(scores: Sequence[float]) -> List[int]:
    """
    Standard competition ranking ("1224"), descending by score.
    Returned ranks are aligned with the input order.
    """
    order = sorted(range(len(scores)), key=lambda i: -scores[i])
    ranks = [0] * len(scores)
    current = 0
    previous: Optional[float] = None
    for pos, i in enumerate(order):
        if previous is None or scores[i] < previous:
            current = pos + 1
        ranks[i] = current
        previous = scores[i]
    return ranks


def _cell_value(scores: ScoreMatrix, alt_id: str, crit_id: str) -> Optional[float]:
    value = (scores.get(alt_id) or {}).get(crit_id)
    if value is None or isinstance(value, bool):
        return None
    try:
        v = float(value)
    except (TypeError, ValueError):
        return None
    return v if math.isfinite(v) else None


def ensure_matrix_completeness(
    alternatives: Sequence[Alternative],
    criteria: Sequence[Criterion],
    scores: ScoreMatrix,
) -> None:
    for alt in alternatives:
        for crit in criteria:
            if _cell_value(scores, alt.id, crit.id) is None:
                raise IncompleteDecisionMatrix(alt, crit)


def resolve_weights(criteria: Sequence[Criterion], weights_map: Mapping[str, float]) -> np.ndarray:
    """Map lookup with the criterion's stored weight as fallback, renormalized to sum to 1."""
    raw = []
    for c in criteria:
        w = weights_map.get(c.id)
        if w is None:
            w = c.weight if c.weight is not None else 0.0
        raw.append(float(w))
    w = np.array(raw, dtype=float)
    total = float(w.sum())
    return w / total if total > 0 else w


def calculate_topsis(
    alternatives: Sequence[Alternative],
    criteria: Sequence[Criterion],
    scores: ScoreMatrix,
    weights_map: Mapping[str, float],
) -> TopsisOutcome:
    if not alternatives:
        raise EmptyAlternativeSet()
    if not criteria:
        raise EmptyCriteriaSet("No active criteria for calculation.")

    ensure_matrix_completeness(alternatives, criteria, scores)

    ordered = order_criteria(criteria)
    x = np.array(
        [[_cell_value(scores, a.id, c.id) for c in ordered] for a in alternatives],
        dtype=float,
    )
    w = resolve_weights(ordered, weights_map)

    art = compute_topsis(matrix=x, weights=w, directions=[c.type for c in ordered])
    logger.debug("TOPSIS m=%d n=%d weights=%s", x.shape[0], x.shape[1], w.round(6).tolist())

    rounded = [round(float(s), 6) for s in art.c_star]
    ranks = assign_competition_ranks(rounded)

    results = [
        TopsisResult(
            alternative_id=alt.id,
            alternative_code=alt.code,
            alternative_name=alt.name,
            score=rounded[i],
            d_plus=round(float(art.s_pos[i]), 4),
            d_minus=round(float(art.s_neg[i]), 4),
            rank=ranks[i],
        )
        for i, alt in enumerate(alternatives)
    ]
    results.sort(key=lambda r: r.rank)

    detail = TopsisDetail(
        alternatives=tuple(alternatives),
        criteria=tuple(ordered),
        decision_matrix=x.tolist(),
        normalized_matrix=art.normalized_matrix.tolist(),
        weighted_matrix=art.weighted_matrix.tolist(),
        ideal_positive=art.pis.tolist(),
        ideal_negative=art.nis.tolist(),
        distances_plus=art.s_pos.tolist(),
        distances_minus=art.s_neg.tolist(),
        weights=w.tolist(),
    )
    return TopsisOutcome(results=results, detail=detail)
