"""Pipeline run state, step records and step errors."""

import json
import logging
import os
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from ..constants import STATE_CHECKPOINT_FILE
from ..uniast.models import Language
from ..uniast.validate import ValidationResult
from .snapshot import Snapshot, SnapshotKind

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"


# ── Errors ───────────────────────────────────────────────────────────────


class StepError(Exception):
    """A step failure with explicit recoverability.

    ``recoverable=False`` means retrying the step with the same state cannot
    succeed (missing input, wrong payload, fatal validation).
    """

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.recoverable = recoverable


class ValidationFailedError(StepError):
    """Raised when a produced tree fails validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(
            f"validation failed: {result.summary()}",
            recoverable=result.is_recoverable,
        )


class PipelineAbortedError(Exception):
    """Raised by the pipeline when the agent aborts a step."""

    def __init__(self, step_name: str, attempt: int, cause: Optional[BaseException] = None):
        self.step_name = step_name
        self.attempt = attempt
        self.cause = cause
        if cause is not None:
            message = f"step {step_name}: {cause}"
        else:
            message = f"step {step_name} failed (abort)"
        super().__init__(message)


# ── Results & records ────────────────────────────────────────────────────


@dataclass
class StepResult:
    """Outcome of one step attempt."""

    status: StepStatus = StepStatus.OK
    snapshot: Optional[Snapshot] = None
    recoverable: bool = True
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, snapshot: Optional[Snapshot] = None) -> "StepResult":
        return cls(status=StepStatus.OK, snapshot=snapshot)

    @classmethod
    def failed(cls, error: Optional[BaseException] = None, recoverable: bool = True) -> "StepResult":
        return cls(status=StepStatus.FAILED, recoverable=recoverable, error=error)


@dataclass
class StepRecord:
    step_name: str
    attempt: int
    status: StepStatus
    error: str = ""
    time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


# ── State ────────────────────────────────────────────────────────────────


_SLOT_ATTRS = {
    SnapshotKind.AST: "source_ast",
    SnapshotKind.SOURCE_UNIAST: "source_uniast",
    SnapshotKind.TARGET_UNIAST: "target_uniast",
}


@dataclass
class PipelineState:
    """Mutable state of one pipeline run.

    Snapshot slots change only through :meth:`apply_snapshot` and
    :meth:`restore`; ``history`` is append-only.
    """

    source_lang: Language = Language.UNKNOWN
    target_lang: Language = Language.UNKNOWN
    source_code_path: str = ""
    output_path: str = ""
    work_dir: str = ""
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    source_ast: Optional[Snapshot] = None
    source_uniast: Optional[Snapshot] = None
    target_uniast: Optional[Snapshot] = None
    history: List[StepRecord] = field(default_factory=list)
    artifacts: Dict[str, str] = field(default_factory=dict)

    def slot(self, kind: SnapshotKind) -> Optional[Snapshot]:
        return getattr(self, _SLOT_ATTRS[SnapshotKind(kind)])

    def apply_snapshot(self, snapshot: Optional[Snapshot]) -> None:
        """Store ``snapshot`` in the slot matching its kind."""
        if snapshot is None:
            return
        setattr(self, _SLOT_ATTRS[snapshot.kind], snapshot)

    def restore(self, kind: SnapshotKind, snapshot: Optional[Snapshot]) -> None:
        """Put a previously held snapshot (possibly None) back into its slot."""
        setattr(self, _SLOT_ATTRS[SnapshotKind(kind)], snapshot)

    def record(self, step_name: str, attempt: int, status: StepStatus, error: str = "") -> StepRecord:
        rec = StepRecord(step_name=step_name, attempt=attempt, status=status, error=error)
        self.history.append(rec)
        return rec

    def attempts(self, step_name: str) -> int:
        return sum(1 for r in self.history if r.step_name == step_name)

    def to_dict(self) -> Dict[str, Any]:
        def _snap(s: Optional[Snapshot]) -> Optional[dict]:
            return s.summary() if s is not None else None

        return {
            "run_id": self.run_id,
            "source_lang": self.source_lang.value,
            "target_lang": self.target_lang.value,
            "source_code_path": self.source_code_path,
            "output_path": self.output_path,
            "source_ast": _snap(self.source_ast),
            "source_uniast": _snap(self.source_uniast),
            "target_uniast": _snap(self.target_uniast),
            "history": [asdict(r) for r in self.history],
            "artifacts": dict(self.artifacts),
        }

    def save(self, path: str = "") -> str:
        """Checkpoint the run state (snapshot hashes, history) as JSON."""
        if not path:
            path = os.path.join(self.work_dir or ".", STATE_CHECKPOINT_FILE)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)
        logger.debug(f"Pipeline state checkpoint written to {path}")
        return path
