"""Step/agent pipeline with snapshot-based rollback.

Public API:
    Pipeline(steps, agent).run(state) → PipelineState
    DefaultAgent / BackoffAgent - failure policies
    ParseStep / TranslateStep / ValidateStep / WriteStep
"""

from .agent import Agent, AgentDecision, BackoffAgent, DefaultAgent
from .pipeline import Pipeline
from .snapshot import Snapshot, SnapshotKind, content_hash, new_snapshot
from .state import (
    PipelineAbortedError,
    PipelineState,
    StepError,
    StepRecord,
    StepResult,
    StepStatus,
    ValidationFailedError,
)
from .steps import ParseStep, Step, TranslateStep, ValidateStep, WriteStep

__all__ = [
    "Agent",
    "AgentDecision",
    "BackoffAgent",
    "DefaultAgent",
    "Pipeline",
    "Snapshot",
    "SnapshotKind",
    "content_hash",
    "new_snapshot",
    "PipelineAbortedError",
    "PipelineState",
    "StepError",
    "StepRecord",
    "StepResult",
    "StepStatus",
    "ValidationFailedError",
    "ParseStep",
    "Step",
    "TranslateStep",
    "ValidateStep",
    "WriteStep",
]
