import logging
from dataclasses import replace
from typing import Optional

from core.ahp import calculate_ahp_result
from core.errors import EmptyCriteriaSet, WorkflowError
from core.settings import Settings, get_settings
from services.scenario_service import WorkspaceState

logger = logging.getLogger(__name__)


class AhpService:
    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def calculate(self, state: WorkspaceState) -> WorkspaceState:
        """
        Run AHP on the snapshot's criteria and pairwise matrix.
        Weights are copied back onto the criteria. A CR within the configured
        threshold is approved for TOPSIS right away; above it, the result waits
        for confirm_inconsistent().
        """
        if not state.criteria:
            raise EmptyCriteriaSet("Add criteria before calculating AHP weights.")

        result = calculate_ahp_result(state.criteria, state.pairwise_matrix)
        approved = result.cr <= self.settings.consistency_threshold

        if approved:
            logger.info("AHP weights calculated (CR=%.4f)", result.cr)
        else:
            logger.warning(
                "AHP weights calculated with CR=%.4f above %.2f; confirmation required",
                result.cr,
                self.settings.consistency_threshold,
            )

        criteria = tuple(
            replace(c, weight=result.weights.get(c.id, c.weight)) for c in state.criteria
        )
        return replace(
            state,
            criteria=criteria,
            ahp_result=result,
            ahp_override_approved=approved,
            version=state.version + 1,
        )

    def confirm_inconsistent(self, state: WorkspaceState) -> WorkspaceState:
        if state.ahp_result is None:
            raise WorkflowError("Calculate AHP weights first.")
        logger.info("Weights with CR=%.4f confirmed by user", state.ahp_result.cr)
        return replace(state, ahp_override_approved=True, version=state.version + 1)
