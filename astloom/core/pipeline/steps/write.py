"""Write step: target unified AST -> source files on disk."""

import logging
from typing import Callable, List

from ...uniast.models import Repository
from ...writer import write_repository
from ..state import PipelineState, StepError, StepResult
from .base import Step

logger = logging.getLogger(__name__)


class WriteStep(Step):
    """Emit the target tree under ``state.output_path``.

    All failures are non-recoverable; a failed write is not retried.
    """

    name = "write"

    def __init__(self, write_fn: Callable[[Repository, str], List[str]] = write_repository):
        self.write_fn = write_fn

    def run(self, state: PipelineState) -> StepResult:
        snap = state.target_uniast
        if snap is None or snap.repository is None:
            raise StepError("target unified AST snapshot is missing", recoverable=False)
        if not state.output_path:
            raise StepError("output path is empty", recoverable=False)

        try:
            written = self.write_fn(snap.repository, state.output_path)
        except Exception as e:
            raise StepError(f"write target code failed: {e}", recoverable=False) from e

        state.artifacts["output"] = state.output_path
        logger.info(f"Wrote {len(written)} files to {state.output_path}")
        return StepResult.ok()
