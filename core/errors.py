# core/errors.py
from typing import Any, Optional

from core.models import Alternative, Criterion


class McdaError(ValueError):
    """Rejected input. Never transient; the caller surfaces the message."""


class EmptyCriteriaSet(McdaError):
    def __init__(self, message: str = "No criteria available for calculation."):
        super().__init__(message)


class EmptyAlternativeSet(McdaError):
    def __init__(self, message: str = "No alternatives available for calculation."):
        super().__init__(message)


class IncompleteDecisionMatrix(McdaError):
    def __init__(self, alternative: Alternative, criterion: Criterion):
        self.alternative = alternative
        self.criterion = criterion
        super().__init__(
            f"Decision matrix value for {alternative.name} - {criterion.name} is missing."
        )


class InvalidPairwiseValue(McdaError):
    def __init__(self, value: Any, row_id: Optional[str] = None, col_id: Optional[str] = None):
        self.value = value
        self.row_id = row_id
        self.col_id = col_id
        where = f" at ({row_id}, {col_id})" if row_id is not None else ""
        super().__init__(f"Pairwise value must be a positive finite number{where}, got {value!r}.")


class WorkflowError(McdaError):
    """A calculation was requested before its prerequisites were met."""
