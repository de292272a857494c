"""Step/agent pipeline with snapshot rollback.

For each step the pipeline remembers the snapshot in the slot the step
writes, then loops:

- run the step
- on success, apply the produced snapshot and record ``ok``; next step
- on failure, record ``failed`` and ask the agent:
  ``abort`` stops the run, ``rollback`` restores the remembered snapshot
  and re-runs the step, ``retry`` re-runs it without touching state.

The loop has no attempt cap of its own; the agent bounds it.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ..constants import DEFAULT_AGENT_MAX_RETRY
from .agent import Agent, AgentDecision, DefaultAgent
from .snapshot import SnapshotKind
from .state import (
    PipelineAbortedError,
    PipelineState,
    StepError,
    StepResult,
    StepStatus,
)
from .steps.base import Step

logger = logging.getLogger(__name__)


class Pipeline:
    """Ordered steps executed against one PipelineState.

    Args:
        steps: Steps in execution order
        agent: Failure policy; ``DefaultAgent(max_retry=1)`` when omitted
        checkpoint: Save the state (``PipelineState.save``) after each step
    """

    def __init__(
        self,
        steps: Sequence[Step],
        agent: Optional[Agent] = None,
        checkpoint: bool = False,
    ):
        self.steps: List[Step] = list(steps)
        self.agent = agent
        self.checkpoint = checkpoint

    def run(self, state: PipelineState) -> PipelineState:
        """Run every step in order.

        Raises:
            PipelineAbortedError: The agent aborted a step. The original
                error is chained as ``__cause__``.
        """
        agent = self.agent or DefaultAgent(max_retry=DEFAULT_AGENT_MAX_RETRY)
        logger.info(
            "Pipeline %s starting: %s",
            state.run_id,
            " -> ".join(s.name for s in self.steps),
        )
        for step in self.steps:
            self._run_step(step, state, agent)
            if self.checkpoint:
                state.save()
        logger.info(f"Pipeline {state.run_id} finished ({len(state.history)} step attempts)")
        return state

    def _run_step(self, step: Step, state: PipelineState, agent: Agent) -> None:
        kind = step.produces or SnapshotKind.TARGET_UNIAST
        previous = state.slot(kind)

        attempt = 0
        while True:
            attempt += 1
            logger.info(f"Step {step.name}: attempt {attempt}")
            result, error = self._attempt(step, state)

            if result.status == StepStatus.OK:
                state.apply_snapshot(result.snapshot)
                state.record(step.name, attempt, StepStatus.OK)
                logger.info(f"Step {step.name}: ok")
                return

            state.record(step.name, attempt, StepStatus.FAILED, str(error) if error else "")
            decision = agent.on_step_failure(step, state, result, attempt)
            logger.warning(
                "Step %s attempt %d failed (recoverable=%s): %s -> %s",
                step.name,
                attempt,
                result.recoverable,
                error,
                decision.value,
            )

            if decision == AgentDecision.ABORT:
                logger.error(f"Pipeline aborted at step {step.name} (attempt {attempt})")
                raise PipelineAbortedError(step.name, attempt, error) from error
            if decision == AgentDecision.ROLLBACK:
                state.restore(kind, previous)

    def _attempt(self, step: Step, state: PipelineState) -> Tuple[StepResult, Optional[BaseException]]:
        try:
            result = step.run(state)
        except StepError as e:
            return StepResult.failed(e, recoverable=e.recoverable), e
        except Exception as e:
            logger.debug("Step %s raised", step.name, exc_info=True)
            return StepResult.failed(e, recoverable=True), e

        if result is None:
            return StepResult.failed(None, recoverable=True), None
        if result.status != StepStatus.OK:
            if result.status != StepStatus.FAILED:
                result.status = StepStatus.FAILED
            return result, result.error
        return result, None
