# core/models.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple


class CriterionType(str, Enum):
    BENEFIT = "BENEFIT"
    COST = "COST"


PairwiseMatrix = Dict[str, Dict[str, float]]
ScoreMatrix = Dict[str, Dict[str, Optional[float]]]


@dataclass(frozen=True)
class Criterion:
    id: str
    code: str
    name: str
    type: CriterionType = CriterionType.BENEFIT
    weight: Optional[float] = None
    position: Optional[int] = None
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "type", CriterionType(self.type))


@dataclass(frozen=True)
class Alternative:
    id: str
    code: str
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class AhpResult:
    weights: Dict[str, float]
    lambda_max: float
    ci: float
    cr: float
    is_consistent: bool


@dataclass(frozen=True)
class TopsisResult:
    alternative_id: str
    alternative_code: str
    alternative_name: str
    score: float
    d_plus: float
    d_minus: float
    rank: int


@dataclass(frozen=True)
class TopsisDetail:
    alternatives: Tuple[Alternative, ...]
    criteria: Tuple[Criterion, ...]     # ordered by position
    decision_matrix: List[List[float]]  # X
    normalized_matrix: List[List[float]]  # R
    weighted_matrix: List[List[float]]  # Y
    ideal_positive: List[float]         # A+
    ideal_negative: List[float]         # A-
    distances_plus: List[float]         # D+
    distances_minus: List[float]        # D-
    weights: List[float] = field(default_factory=list)  # renormalized, column order


@dataclass(frozen=True)
class TopsisOutcome:
    results: List[TopsisResult]  # sorted by rank
    detail: TopsisDetail


def order_criteria(criteria: Sequence[Criterion]) -> List[Criterion]:
    """Stable sort by position; a missing position counts as 0."""
    return sorted(criteria, key=lambda c: c.position if c.position is not None else 0)
