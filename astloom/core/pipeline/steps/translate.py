"""Translate step: source unified AST -> validated target unified AST."""

import dataclasses
import logging
import os
from typing import Callable, Optional

from ...constants import TARGET_AST_ARTIFACT_PATTERN
from ...translate.facade import validate_options
from ...translate.options import (
    InvalidOptionsError,
    TranslateOptions,
    TranslationCancelledError,
    TranslationError,
)
from ...translate.transformer import BaseTransformer, Transformer
from ...uniast.models import Language, Repository
from ...uniast.validate import validate_repository_with_result
from ..snapshot import Snapshot, SnapshotKind
from ..state import PipelineState, StepError, StepResult, ValidationFailedError
from .base import Step

logger = logging.getLogger(__name__)


class TranslateStep(Step):
    """Run one full repository transform and validate its output.

    Source and target languages come from the run state. Translation
    errors are recoverable, cancellation is not; a validation failure
    carries the severity of its result. One call is one attempt: retry
    and rollback belong to the pipeline's agent.

    Args:
        options: Translation options (languages are overwritten per run)
        persist: Write ``target_ast_<n>.json`` next to the run state
        transformer_factory: Builds the Transformer from options
    """

    name = "translate"
    produces = SnapshotKind.TARGET_UNIAST

    def __init__(
        self,
        options: TranslateOptions,
        persist: bool = False,
        transformer_factory: Callable[[TranslateOptions], Transformer] = BaseTransformer,
    ):
        self.options = options
        self.persist = persist
        self.transformer_factory = transformer_factory

    def run(self, state: PipelineState) -> StepResult:
        snap = state.source_uniast
        if snap is None:
            raise StepError("source unified AST snapshot is missing", recoverable=False)
        src = snap.repository
        if src is None:
            raise StepError(
                f"source snapshot payload is {type(snap.payload).__name__}, expected Repository",
                recoverable=False,
            )

        opts = self._options_for(state)
        try:
            validate_options(opts)
        except InvalidOptionsError as e:
            raise StepError(str(e), recoverable=False) from e

        try:
            target = self.transformer_factory(opts).transform(src)
        except TranslationCancelledError as e:
            raise StepError(f"transform cancelled: {e}", recoverable=False) from e
        except TranslationError as e:
            raise StepError(f"transform failed: {e}", recoverable=True) from e

        result = validate_repository_with_result(target)
        if not result.ok:
            logger.warning(f"Target tree rejected: {result.summary()}")
            raise ValidationFailedError(result)

        if self.persist:
            self._persist(state, target)
        return StepResult.ok(Snapshot.of_repository(SnapshotKind.TARGET_UNIAST, target))

    def _options_for(self, state: PipelineState) -> TranslateOptions:
        source = state.source_lang
        if source == Language.UNKNOWN:
            source = self.options.source_language
        target = state.target_lang
        if target == Language.UNKNOWN:
            target = self.options.target_language
        return dataclasses.replace(self.options, source_language=source, target_language=target)

    @staticmethod
    def _persist(state: PipelineState, repo: Repository) -> Optional[str]:
        directory = state.work_dir or state.output_path
        if not directory:
            logger.debug("No work dir or output path, skipping target tree artifact")
            return None
        version = len(state.history) + 1
        file_name = TARGET_AST_ARTIFACT_PATTERN.format(version=version)
        os.makedirs(directory, exist_ok=True)
        path = os.path.join(directory, file_name)
        with open(path, "w", encoding="utf-8") as f:
            f.write(repo.to_json(indent=2))
        state.artifacts[f"target_ast_{version}"] = path
        logger.info(f"Persisted target tree to {path}")
        return path
