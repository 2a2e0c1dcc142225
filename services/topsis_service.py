import logging
from dataclasses import replace
from typing import Dict, Optional

from core.errors import WorkflowError
from core.settings import Settings, get_settings
from core.topsis import calculate_topsis
from services.scenario_service import ScenarioService, WeightingMode, WorkspaceState

logger = logging.getLogger(__name__)


class TopsisService:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.scenarios = ScenarioService(self.settings)

    def resolve_weights(self, state: WorkspaceState) -> Dict[str, float]:
        if state.weighting_mode == WeightingMode.CUSTOM:
            issues = self.scenarios.custom_weight_issues(state)
            if issues:
                raise WorkflowError(" ".join(issues))
            return {c.id: float(state.custom_weights.get(c.id) or 0.0) for c in state.criteria}

        if state.ahp_result is None:
            raise WorkflowError("Calculate AHP weights first.")
        if self.scenarios.needs_confirmation(state):
            raise WorkflowError(
                f"Confirm the AHP weights with CR {state.ahp_result.cr} > "
                f"{self.settings.consistency_threshold} first."
            )
        return dict(state.ahp_result.weights)

    def run(self, state: WorkspaceState) -> WorkspaceState:
        weights = self.resolve_weights(state)

        outcome = calculate_topsis(
            alternatives=state.alternatives,
            criteria=state.criteria,
            scores=state.scores,
            weights_map=weights,
        )

        best = outcome.results[0]
        logger.info(
            "TOPSIS ranked %d alternative(s); best %s (score=%.6f)",
            len(outcome.results),
            best.alternative_name,
            best.score,
        )
        return replace(state, topsis=outcome, version=state.version + 1)
