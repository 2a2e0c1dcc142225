import logging
import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from core.models import (
    AhpResult,
    Alternative,
    Criterion,
    PairwiseMatrix,
    ScoreMatrix,
    TopsisOutcome,
)
from core.pairwise import (
    is_valid_pairwise_value,
    remove_criterion_from_matrix,
    sanitize_pairwise_matrix,
    update_pairwise_value,
)
from core.settings import Settings, get_settings

logger = logging.getLogger(__name__)


class WeightingMode(str, Enum):
    AHP = "AHP"
    CUSTOM = "CUSTOM"


@dataclass(frozen=True)
class WorkspaceState:
    project_name: str
    alternatives: Tuple[Alternative, ...] = ()
    criteria: Tuple[Criterion, ...] = ()
    scores: ScoreMatrix = field(default_factory=dict)
    pairwise_matrix: PairwiseMatrix = field(default_factory=dict)
    weighting_mode: WeightingMode = WeightingMode.AHP
    custom_weights: Dict[str, Optional[float]] = field(default_factory=dict)
    ahp_result: Optional[AhpResult] = None      # None = stale or never computed
    ahp_override_approved: bool = False
    topsis: Optional[TopsisOutcome] = None      # None = stale or never computed
    version: int = 0


@dataclass(frozen=True)
class WorkflowStatus:
    alternatives_ready: bool
    criteria_ready: bool
    scores_ready: bool
    ahp_ready: bool
    weighting_ready: bool
    topsis_ready: bool


# -------------------------
# Score matrix helpers
# -------------------------
def sync_scores_structure(
    alternatives: Sequence[Alternative],
    criteria: Sequence[Criterion],
    previous: ScoreMatrix,
) -> ScoreMatrix:
    """Exactly one cell per (alternative, criterion); known values kept, the rest None."""
    return {
        alt.id: {crit.id: (previous.get(alt.id) or {}).get(crit.id) for crit in criteria}
        for alt in alternatives
    }


def remove_alternative_from_scores(scores: ScoreMatrix, alternative_id: str) -> ScoreMatrix:
    return {aid: dict(row) for aid, row in scores.items() if aid != alternative_id}


def remove_criterion_from_scores(scores: ScoreMatrix, criterion_id: str) -> ScoreMatrix:
    return {
        aid: {cid: v for cid, v in row.items() if cid != criterion_id}
        for aid, row in scores.items()
    }


def is_filled(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def is_score_matrix_complete(state: WorkspaceState) -> bool:
    if not state.alternatives or not state.criteria:
        return False
    return all(
        is_filled((state.scores.get(alt.id) or {}).get(crit.id))
        for alt in state.alternatives
        for crit in state.criteria
    )


def trim_to_max_criteria(criteria: Sequence[Criterion], max_criteria: int) -> List[Criterion]:
    return list(criteria)[:max_criteria]


def _reindex(criteria: Sequence[Criterion]) -> Tuple[Criterion, ...]:
    return tuple(replace(c, position=i) for i, c in enumerate(criteria))


class ScenarioService:
    """Edits on a workspace; every edit returns a new snapshot and drops stale results."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @staticmethod
    def _next(state: WorkspaceState, **changes) -> WorkspaceState:
        return replace(state, version=state.version + 1, **changes)

    @staticmethod
    def _stale_topsis() -> dict:
        return {"topsis": None}

    @staticmethod
    def _stale_all() -> dict:
        return {"ahp_result": None, "ahp_override_approved": False, "topsis": None}

    def create(self, project_name: Optional[str] = None) -> WorkspaceState:
        return WorkspaceState(project_name=project_name or self.settings.default_project_name)

    # -------------------------
    # Alternatives
    # -------------------------
    def upsert_alternative(self, state: WorkspaceState, alternative: Alternative) -> WorkspaceState:
        if any(a.id == alternative.id for a in state.alternatives):
            alternatives = tuple(alternative if a.id == alternative.id else a for a in state.alternatives)
        else:
            alternatives = state.alternatives + (alternative,)

        return self._next(
            state,
            alternatives=alternatives,
            scores=sync_scores_structure(alternatives, state.criteria, state.scores),
            **self._stale_topsis(),
        )

    def remove_alternative(self, state: WorkspaceState, alternative_id: str) -> WorkspaceState:
        return self._next(
            state,
            alternatives=tuple(a for a in state.alternatives if a.id != alternative_id),
            scores=remove_alternative_from_scores(state.scores, alternative_id),
            **self._stale_topsis(),
        )

    # -------------------------
    # Criteria
    # -------------------------
    def upsert_criterion(self, state: WorkspaceState, criterion: Criterion) -> WorkspaceState:
        existing = next((c for c in state.criteria if c.id == criterion.id), None)
        if existing is not None:
            criterion = replace(criterion, position=existing.position, weight=existing.weight)
            criteria = [criterion if c.id == criterion.id else c for c in state.criteria]
        else:
            if len(state.criteria) >= self.settings.max_criteria:
                logger.warning(
                    "Criteria limit %d reached, rejecting %s", self.settings.max_criteria, criterion.id
                )
                return state
            criterion = replace(criterion, position=len(state.criteria), weight=None)
            criteria = list(state.criteria) + [criterion]

        reindexed = _reindex(trim_to_max_criteria(criteria, self.settings.max_criteria))

        return self._next(
            state,
            criteria=reindexed,
            scores=sync_scores_structure(state.alternatives, reindexed, state.scores),
            pairwise_matrix=sanitize_pairwise_matrix(reindexed, state.pairwise_matrix),
            **self._stale_all(),
        )

    def remove_criterion(self, state: WorkspaceState, criterion_id: str) -> WorkspaceState:
        reindexed = _reindex([c for c in state.criteria if c.id != criterion_id])
        return self._next(
            state,
            criteria=reindexed,
            scores=remove_criterion_from_scores(state.scores, criterion_id),
            pairwise_matrix=remove_criterion_from_matrix(state.pairwise_matrix, criterion_id),
            custom_weights={k: v for k, v in state.custom_weights.items() if k != criterion_id},
            **self._stale_all(),
        )

    # -------------------------
    # Matrix input
    # -------------------------
    def set_score(
        self,
        state: WorkspaceState,
        alternative_id: str,
        criterion_id: str,
        value: Optional[float],
    ) -> WorkspaceState:
        scores = dict(state.scores)
        scores[alternative_id] = dict(scores.get(alternative_id) or {})
        if value is not None:
            value = float(value)
            if not math.isfinite(value):
                logger.warning("Non-finite score for (%s, %s) stored as unset", alternative_id, criterion_id)
                value = None
        scores[alternative_id][criterion_id] = value
        return self._next(state, scores=scores, **self._stale_topsis())

    def set_pairwise_value(self, state: WorkspaceState, row_id: str, col_id: str, value: float) -> WorkspaceState:
        if not is_valid_pairwise_value(value) or row_id == col_id:
            logger.warning("Rejected pairwise value %r for (%s, %s)", value, row_id, col_id)
            return state
        matrix = update_pairwise_value(state.pairwise_matrix, row_id, col_id, value)
        return self._next(state, pairwise_matrix=matrix, **self._stale_all())

    # -------------------------
    # Weighting
    # -------------------------
    def set_weighting_mode(self, state: WorkspaceState, mode: WeightingMode) -> WorkspaceState:
        return self._next(state, weighting_mode=WeightingMode(mode), **self._stale_topsis())

    def set_custom_weight(self, state: WorkspaceState, criterion_id: str, value: Optional[float]) -> WorkspaceState:
        custom = dict(state.custom_weights)
        custom[criterion_id] = None if value is None else float(value)
        return self._next(state, custom_weights=custom, **self._stale_topsis())

    # -------------------------
    # Bulk import
    # -------------------------
    def replace_dataset(
        self,
        state: WorkspaceState,
        alternatives: Sequence[Alternative],
        criteria: Sequence[Criterion],
        scores: Mapping[str, Mapping[str, Optional[float]]],
    ) -> WorkspaceState:
        alternatives = tuple(alternatives)
        reindexed = _reindex(trim_to_max_criteria(criteria, self.settings.max_criteria))
        logger.info(
            "Dataset replaced: %d alternative(s), %d criterion(s)", len(alternatives), len(reindexed)
        )
        return self._next(
            state,
            alternatives=alternatives,
            criteria=reindexed,
            scores=sync_scores_structure(alternatives, reindexed, dict(scores)),
            pairwise_matrix=sanitize_pairwise_matrix(reindexed, {}),
            custom_weights={},
            **self._stale_all(),
        )

    # -------------------------
    # Readiness
    # -------------------------
    def needs_confirmation(self, state: WorkspaceState) -> bool:
        """True while AHP weights above the CR threshold are still unconfirmed."""
        if state.ahp_result is None or state.ahp_override_approved:
            return False
        return state.ahp_result.cr > self.settings.consistency_threshold

    def custom_weight_issues(self, state: WorkspaceState) -> List[str]:
        issues: List[str] = []
        weights = [state.custom_weights.get(c.id) for c in state.criteria]
        if any(w is not None and (not math.isfinite(w) or w < 0) for w in weights):
            issues.append("Custom weights contain negative or non-finite values. Only non-negative weights allowed.")
        elif sum(w or 0.0 for w in weights) <= 0:
            issues.append("Custom weights sum to 0. Provide positive weights.")
        return issues

    def validate(self, state: WorkspaceState) -> Tuple[bool, List[str]]:
        issues: List[str] = []

        if not state.alternatives:
            issues.append("Add at least 1 alternative.")
        if not state.criteria:
            issues.append("Add at least 1 criterion.")

        missing = sum(
            1
            for alt in state.alternatives
            for crit in state.criteria
            if not is_filled((state.scores.get(alt.id) or {}).get(crit.id))
        )
        if missing:
            issues.append(f"Decision matrix has {missing} missing cell(s).")

        if state.weighting_mode == WeightingMode.AHP:
            if state.ahp_result is None:
                issues.append("AHP weights have not been calculated.")
            elif self.needs_confirmation(state):
                issues.append(
                    f"AHP consistency ratio {state.ahp_result.cr} exceeds "
                    f"{self.settings.consistency_threshold}; confirm the weights first."
                )
        else:
            issues.extend(self.custom_weight_issues(state))

        return (len(issues) == 0), issues

    def workflow_status(self, state: WorkspaceState) -> WorkflowStatus:
        ahp_ready = bool(
            state.ahp_result is not None and len(state.ahp_result.weights) == len(state.criteria)
        )
        if state.weighting_mode == WeightingMode.AHP:
            weighting_ready = ahp_ready and not self.needs_confirmation(state)
        else:
            weights = [state.custom_weights.get(c.id) for c in state.criteria]
            weighting_ready = (
                bool(weights)
                and all(w is not None for w in weights)
                and not self.custom_weight_issues(state)
            )

        return WorkflowStatus(
            alternatives_ready=len(state.alternatives) > 0,
            criteria_ready=len(state.criteria) > 0,
            scores_ready=is_score_matrix_complete(state),
            ahp_ready=ahp_ready,
            weighting_ready=weighting_ready,
            topsis_ready=bool(state.topsis is not None and state.topsis.results),
        )
