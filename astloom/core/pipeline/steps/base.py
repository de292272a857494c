"""Abstract pipeline step."""

from abc import ABC, abstractmethod
from typing import Optional

from ..snapshot import SnapshotKind
from ..state import PipelineState, StepResult


class Step(ABC):
    """One unit of pipeline work.

    A step reads what it needs from the state and returns a StepResult,
    optionally carrying the snapshot it produced. Failure is reported by
    raising StepError (explicit recoverability) or by returning a failed
    result. Steps never write snapshot slots themselves; the pipeline does.
    """

    #: Unique step name used in history records and errors
    name: str = ""

    #: Slot this step writes; the pipeline rolls it back on ROLLBACK
    produces: Optional[SnapshotKind] = None

    @abstractmethod
    def run(self, state: PipelineState) -> StepResult:
        """Execute the step against ``state``."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
