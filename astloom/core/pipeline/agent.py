"""Failure policies for the pipeline.

The pipeline loop itself never gives up: every failed attempt is handed
to an Agent, which answers retry, rollback or abort. Bounding the number
of attempts is therefore the agent's responsibility.
"""

import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

import backoff

from ..constants import DEFAULT_AGENT_MAX_RETRY
from .state import PipelineState, StepResult

if TYPE_CHECKING:
    from .steps.base import Step

logger = logging.getLogger(__name__)


class AgentDecision(str, Enum):
    RETRY = "retry"
    ROLLBACK = "rollback"
    ABORT = "abort"


class Agent(ABC):
    """Decides what the pipeline does after a failed step attempt."""

    @abstractmethod
    def on_step_failure(
        self,
        step: "Step",
        state: PipelineState,
        result: StepResult,
        attempt: int,
    ) -> AgentDecision:
        """Return the decision for ``attempt`` (1-based) of ``step``."""


class DefaultAgent(Agent):
    """Abort on fatal failures, retry a few times, then roll back.

    Args:
        max_retry: Attempt number from which failures roll the step's
            slot back instead of retrying in place.
        max_attempts: Optional hard cap; a recoverable failure at or past
            this attempt aborts. ``None`` leaves the step unbounded.
    """

    def __init__(self, max_retry: int = DEFAULT_AGENT_MAX_RETRY, max_attempts: Optional[int] = None):
        self.max_retry = max_retry
        self.max_attempts = max_attempts

    def on_step_failure(self, step, state, result, attempt):
        if not result.recoverable:
            return AgentDecision.ABORT
        if self.max_attempts is not None and attempt >= self.max_attempts:
            logger.error(
                "Step %s exhausted %d attempts, aborting", getattr(step, "name", "?"), attempt
            )
            return AgentDecision.ABORT
        if attempt >= self.max_retry:
            return AgentDecision.ROLLBACK
        return AgentDecision.RETRY


class BackoffAgent(Agent):
    """Delegating agent that waits with exponential backoff before retrying.

    The delay before attempt ``n + 1`` is ``factor * base ** (n - 1)``,
    capped at ``max_delay`` and passed through ``jitter``.
    """

    def __init__(
        self,
        delegate: Optional[Agent] = None,
        base: float = 2.0,
        factor: float = 1.0,
        max_delay: float = 60.0,
        jitter: Optional[Callable[[float], float]] = backoff.full_jitter,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.delegate = delegate or DefaultAgent()
        self.base = base
        self.factor = factor
        self.max_delay = max_delay
        self.jitter = jitter
        self._sleep = sleep

    def delay_for(self, attempt: int) -> float:
        delay = min(self.factor * self.base ** max(attempt - 1, 0), self.max_delay)
        if self.jitter is not None:
            delay = self.jitter(delay)
        return delay

    def on_step_failure(self, step, state, result, attempt):
        decision = self.delegate.on_step_failure(step, state, result, attempt)
        if decision != AgentDecision.ABORT:
            delay = self.delay_for(attempt)
            logger.warning(
                f"Step {getattr(step, 'name', '?')} attempt {attempt} failed, "
                f"{decision.value} after {delay:.1f}s"
            )
            self._sleep(delay)
        return decision
