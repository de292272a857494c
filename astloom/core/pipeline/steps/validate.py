"""Validate step: re-check the current target tree before it is written."""

import logging

from ...uniast.validate import validate_repository_with_result
from ..state import PipelineState, StepError, StepResult, ValidationFailedError
from .base import Step

logger = logging.getLogger(__name__)


class ValidateStep(Step):
    name = "validate"

    def run(self, state: PipelineState) -> StepResult:
        snap = state.target_uniast
        if snap is None or snap.repository is None:
            raise StepError("target unified AST snapshot is missing", recoverable=False)

        result = validate_repository_with_result(snap.repository)
        if not result.ok:
            raise ValidationFailedError(result)
        logger.info(f"Target tree valid ({snap.repository.count_declarations()} declarations)")
        return StepResult.ok()
