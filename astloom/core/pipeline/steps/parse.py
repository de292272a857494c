"""Parse step: source path -> source unified AST snapshot."""

import logging
from typing import Callable, Optional

from ...uniast.loader import RepositoryLoadError, infer_language, load_repository
from ...uniast.models import Language, Repository
from ..snapshot import Snapshot, SnapshotKind
from ..state import PipelineState, StepError, StepResult
from .base import Step

logger = logging.getLogger(__name__)

Loader = Callable[[str, Optional[Language]], Repository]


class ParseStep(Step):
    """Load ``state.source_code_path`` (directory or tree JSON).

    Every failure is non-recoverable: re-reading the same path gives the
    same answer.
    """

    name = "parse"
    produces = SnapshotKind.SOURCE_UNIAST

    def __init__(self, loader: Loader = load_repository):
        self.loader = loader

    def run(self, state: PipelineState) -> StepResult:
        if not state.source_code_path:
            raise StepError("source code path is empty", recoverable=False)

        language = state.source_lang if state.source_lang != Language.UNKNOWN else None
        try:
            repo = self.loader(state.source_code_path, language)
        except RepositoryLoadError as e:
            raise StepError(f"load repository failed: {e}", recoverable=False) from e

        if state.source_lang == Language.UNKNOWN:
            state.source_lang = infer_language(repo)
            logger.info(f"Inferred source language {state.source_lang.value or 'unknown'}")

        logger.info(
            f"Parsed {repo.name}: {len(repo.internal_modules())} modules, "
            f"{repo.count_declarations()} declarations"
        )
        return StepResult.ok(Snapshot.of_repository(SnapshotKind.SOURCE_UNIAST, repo))
