"""Unit tests for snapshots, run state, agents and the pipeline loop.

Tests cover:
- Content hashing and identity semantics of snapshots
- PipelineState slots, history and checkpointing
- DefaultAgent retry -> rollback -> abort policy, BackoffAgent delays
- Pipeline: rollback restores the exact prior snapshot, retry leaves state alone,
  abort short-circuits later steps, one history record per attempt
"""

import dataclasses
import hashlib
import json

import pytest

from astloom.core.pipeline import (
    AgentDecision,
    BackoffAgent,
    DefaultAgent,
    Pipeline,
    PipelineAbortedError,
    PipelineState,
    Snapshot,
    SnapshotKind,
    Step,
    StepError,
    StepResult,
    StepStatus,
    content_hash,
    new_snapshot,
)
from astloom.core.uniast import Language, Module, Repository


# ── Fixtures ──────────────────────────────────────────────────────────────


def _snap(label: str, kind: SnapshotKind = SnapshotKind.TARGET_UNIAST) -> Snapshot:
    return new_snapshot(kind, label, label)


class _ScriptedStep(Step):
    """Plays back ``outcomes``: a StepResult, None, an exception or a callable(state)."""

    produces = SnapshotKind.TARGET_UNIAST

    def __init__(self, outcomes, name: str = "scripted"):
        self.name = name
        self.outcomes = list(outcomes)
        self.seen = []

    def run(self, state):
        self.seen.append(state.target_uniast)
        outcome = self.outcomes.pop(0)
        if callable(outcome):
            outcome = outcome(state)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _corrupt_then_fail(bad: Snapshot, recoverable: bool = True):
    """Simulate a step that wrote its slot before failing."""

    def run(state):
        state.target_uniast = bad
        return StepError("translation produced garbage", recoverable=recoverable)

    return run


class _RecordingSleep:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


# ── Tests: snapshots ──────────────────────────────────────────────────────


class TestSnapshot:
    def test_content_hash(self):
        assert content_hash("abc") == hashlib.sha256(b"abc").hexdigest()
        assert content_hash(b"abc") == content_hash("abc")
        assert content_hash(None) == hashlib.sha256(b"").hexdigest()

    def test_equal_hash_is_not_equal_snapshot(self):
        a, b = _snap("same"), _snap("same")
        assert a.hash == b.hash
        assert a != b
        assert a == a

    def test_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            _snap("x").hash = "other"

    def test_of_repository(self):
        repo = Repository(name="r", modules={"m": Module(name="m", dir=".")})
        snap = Snapshot.of_repository(SnapshotKind.SOURCE_UNIAST, repo)
        assert snap.repository is repo
        assert snap.hash == content_hash(repo.to_json())
        assert _snap("text").repository is None

    def test_kind_from_string(self):
        assert new_snapshot("source-uniast", None, b"").kind == SnapshotKind.SOURCE_UNIAST


# ── Tests: state ──────────────────────────────────────────────────────────


class TestPipelineState:
    def test_slots(self):
        state = PipelineState()
        src = _snap("src", SnapshotKind.SOURCE_UNIAST)
        state.apply_snapshot(src)
        state.apply_snapshot(None)
        assert state.source_uniast is src
        assert state.slot(SnapshotKind.SOURCE_UNIAST) is src
        assert state.slot(SnapshotKind.TARGET_UNIAST) is None

        state.restore(SnapshotKind.SOURCE_UNIAST, None)
        assert state.source_uniast is None

    def test_history(self):
        state = PipelineState()
        state.record("parse", 1, StepStatus.OK)
        state.record("translate", 1, StepStatus.FAILED, "boom")
        state.record("translate", 2, StepStatus.OK)
        assert state.attempts("translate") == 2
        assert state.history[1].error == "boom"

    def test_record_statuses(self):
        # A retry is a second record of the same step, not a status of its own
        assert [s.value for s in StepStatus] == ["ok", "failed"]

    def test_save_checkpoint(self, tmp_path):
        state = PipelineState(source_lang=Language.JAVA, target_lang=Language.GO, work_dir=str(tmp_path))
        state.apply_snapshot(_snap("t"))
        state.record("translate", 1, StepStatus.OK)

        path = state.save()
        data = json.loads(open(path, encoding="utf-8").read())
        assert path == str(tmp_path / "pipeline_state.json")
        assert data["source_lang"] == "java"
        assert data["target_uniast"]["hash"] == content_hash("t")
        assert data["history"][0]["status"] == "ok"


# ── Tests: agents ─────────────────────────────────────────────────────────


class TestDefaultAgent:
    def test_policy(self):
        agent = DefaultAgent(max_retry=2)
        state = PipelineState()
        step = _ScriptedStep([])
        failed = StepResult.failed(recoverable=True)

        assert agent.on_step_failure(step, state, failed, 1) == AgentDecision.RETRY
        assert agent.on_step_failure(step, state, failed, 2) == AgentDecision.ROLLBACK
        assert agent.on_step_failure(step, state, failed, 7) == AgentDecision.ROLLBACK
        fatal = StepResult.failed(recoverable=False)
        assert agent.on_step_failure(step, state, fatal, 1) == AgentDecision.ABORT

    def test_max_attempts(self):
        agent = DefaultAgent(max_retry=1, max_attempts=3)
        failed = StepResult.failed(recoverable=True)
        assert agent.on_step_failure(None, PipelineState(), failed, 2) == AgentDecision.ROLLBACK
        assert agent.on_step_failure(None, PipelineState(), failed, 3) == AgentDecision.ABORT


class TestBackoffAgent:
    def test_delays_without_jitter(self):
        agent = BackoffAgent(jitter=None, max_delay=5, sleep=_RecordingSleep())
        assert [agent.delay_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5]

    def test_sleeps_before_retry_not_abort(self):
        sleep = _RecordingSleep()
        agent = BackoffAgent(DefaultAgent(max_retry=3), jitter=lambda d: d / 2, sleep=sleep)
        step = _ScriptedStep([])

        decision = agent.on_step_failure(step, PipelineState(), StepResult.failed(), 2)
        assert decision == AgentDecision.RETRY
        assert sleep.calls == [1.0]

        decision = agent.on_step_failure(step, PipelineState(), StepResult.failed(recoverable=False), 1)
        assert decision == AgentDecision.ABORT
        assert sleep.calls == [1.0]


# ── Tests: pipeline ───────────────────────────────────────────────────────


class TestPipelineRollback:
    def test_rollback_restores_same_snapshot(self):
        original, bad, good = _snap("original"), _snap("bad"), _snap("good")
        state = PipelineState(target_uniast=original)
        step = _ScriptedStep([_corrupt_then_fail(bad), StepResult.ok(good)])

        Pipeline([step], agent=DefaultAgent(max_retry=1)).run(state)

        assert step.seen[1] is original
        assert state.target_uniast is good

    def test_rollback_to_empty_slot(self):
        state = PipelineState()
        step = _ScriptedStep([_corrupt_then_fail(_snap("bad")), StepResult.ok()])
        Pipeline([step], agent=DefaultAgent(max_retry=1)).run(state)
        assert step.seen == [None, None]
        assert state.target_uniast is None

    def test_retry_leaves_state_alone(self):
        bad = _snap("bad")
        state = PipelineState(target_uniast=_snap("original"))
        step = _ScriptedStep([_corrupt_then_fail(bad), StepResult.ok()])

        Pipeline([step], agent=DefaultAgent(max_retry=2)).run(state)
        assert step.seen[1] is bad

    def test_none_result_is_recoverable(self):
        state = PipelineState()
        step = _ScriptedStep([None, StepResult.ok(_snap("t"))])
        Pipeline([step]).run(state)
        assert [r.status for r in state.history] == [StepStatus.FAILED, StepStatus.OK]

    def test_unexpected_exception_is_recoverable(self):
        state = PipelineState()
        step = _ScriptedStep([RuntimeError("flaky"), StepResult.ok()])
        Pipeline([step]).run(state)
        assert state.history[0].error == "flaky"
        assert state.history[1].attempt == 2


class TestPipelineAbort:
    def test_fatal_error_aborts_and_skips_later_steps(self):
        error = StepError("no input", recoverable=False)
        first = _ScriptedStep([error], name="translate")
        second = _ScriptedStep([StepResult.ok()], name="write")
        state = PipelineState()

        with pytest.raises(PipelineAbortedError) as exc:
            Pipeline([first, second]).run(state)

        assert exc.value.step_name == "translate"
        assert exc.value.attempt == 1
        assert exc.value.__cause__ is error
        assert str(exc.value) == "step translate: no input"
        assert second.seen == []
        assert [(r.step_name, r.status) for r in state.history] == [("translate", StepStatus.FAILED)]

    def test_failed_result_without_error(self):
        step = _ScriptedStep([StepResult.failed(recoverable=False)], name="validate")
        with pytest.raises(PipelineAbortedError, match="step validate failed"):
            Pipeline([step]).run(PipelineState())

    def test_attempt_cap(self):
        step = _ScriptedStep([StepError("again")] * 5)
        state = PipelineState()
        with pytest.raises(PipelineAbortedError) as exc:
            Pipeline([step], agent=DefaultAgent(max_retry=1, max_attempts=3)).run(state)
        assert exc.value.attempt == 3
        assert len(state.history) == 3


class TestPipelineRun:
    def test_steps_in_order_with_history(self):
        src = _snap("src", SnapshotKind.SOURCE_UNIAST)
        tgt = _snap("tgt")
        parse = _ScriptedStep([StepResult.ok(src)], name="parse")
        parse.produces = SnapshotKind.SOURCE_UNIAST
        translate = _ScriptedStep([StepError("retry me"), StepResult.ok(tgt)], name="translate")
        state = PipelineState()

        result = Pipeline([parse, translate]).run(state)

        assert result is state
        assert state.source_uniast is src
        assert state.target_uniast is tgt
        assert [(r.step_name, r.attempt, r.status) for r in state.history] == [
            ("parse", 1, StepStatus.OK),
            ("translate", 1, StepStatus.FAILED),
            ("translate", 2, StepStatus.OK),
        ]

    def test_checkpoint_after_each_step(self, tmp_path):
        state = PipelineState(work_dir=str(tmp_path))
        Pipeline([_ScriptedStep([StepResult.ok(_snap("t"))])], checkpoint=True).run(state)

        data = json.loads((tmp_path / "pipeline_state.json").read_text())
        assert data["run_id"] == state.run_id
        assert len(data["history"]) == 1
