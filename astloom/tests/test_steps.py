"""Unit tests for the concrete pipeline steps.

Tests cover:
- ParseStep: tree JSON loading, language inference, non-recoverable errors
- TranslateStep: transform + validation, recoverability mapping, cancellation, artifacts
- ValidateStep / WriteStep: missing inputs, failures, output recording
- A full parse -> translate -> validate -> write run with a fake callback
"""

import threading

import pytest

from astloom.core.pipeline import (
    DefaultAgent,
    ParseStep,
    Pipeline,
    PipelineAbortedError,
    PipelineState,
    Snapshot,
    SnapshotKind,
    StepError,
    StepStatus,
    TranslateStep,
    ValidateStep,
    ValidationFailedError,
    WriteStep,
    new_snapshot,
)
from astloom.core.translate import LLMTranslateResponse, TranslateOptions, TranslationError
from astloom.core.uniast import (
    FileLine,
    Function,
    Identity,
    Language,
    Module,
    Package,
    Repository,
)


# ── Fixtures ──────────────────────────────────────────────────────────────


def _make_repo(language=Language.JAVA, content="public void run() { go(); }") -> Repository:
    pkg = Package(pkg_path="com.acme")
    pkg.add(Function(
        identity=Identity(mod_path="app", pkg_path="com.acme", name="run"),
        file_line=FileLine(file="App.java", line=2),
        content=content,
        exported=True,
    ))
    mod = Module(name="app", dir=".", language=language, packages={"com.acme": pkg})
    return Repository(name="app", modules={"app": mod})


def _fake_translator(req):
    return LLMTranslateResponse(
        target_content=f"func {req.identity.name}() {{\n\tgo_()\n}}",
        target_signature=f"func {req.identity.name}()",
    )


def _options(**overrides) -> TranslateOptions:
    values = dict(llm_translator=_fake_translator, generate_config=False)
    values.update(overrides)
    return TranslateOptions(**values)


def _state_with_source(**kwargs) -> PipelineState:
    state = PipelineState(source_lang=Language.JAVA, target_lang=Language.GO, **kwargs)
    state.apply_snapshot(Snapshot.of_repository(SnapshotKind.SOURCE_UNIAST, _make_repo()))
    return state


class _FailingTransformer:
    def __init__(self, options):
        self.options = options

    def transform(self, src):
        raise TranslationError("LLM unavailable")


# ── Tests: ParseStep ──────────────────────────────────────────────────────


class TestParseStep:
    def test_loads_tree_json_and_infers_language(self, tmp_path):
        path = tmp_path / "tree.json"
        path.write_text(_make_repo().to_json())
        state = PipelineState(source_code_path=str(path))

        result = ParseStep().run(state)

        assert result.status == StepStatus.OK
        assert result.snapshot.kind == SnapshotKind.SOURCE_UNIAST
        assert result.snapshot.repository.name == "app"
        assert state.source_lang == Language.JAVA
        # Steps never write slots themselves
        assert state.source_uniast is None

    def test_custom_loader_gets_state_language(self):
        calls = []

        def loader(path, language):
            calls.append((path, language))
            return _make_repo()

        state = PipelineState(source_code_path="/src", source_lang=Language.JAVA)
        ParseStep(loader=loader).run(state)
        assert calls == [("/src", Language.JAVA)]

    def test_empty_path(self):
        with pytest.raises(StepError) as exc:
            ParseStep().run(PipelineState())
        assert not exc.value.recoverable

    def test_missing_path(self, tmp_path):
        state = PipelineState(source_code_path=str(tmp_path / "missing"))
        with pytest.raises(StepError, match="load repository failed") as exc:
            ParseStep().run(state)
        assert not exc.value.recoverable


# ── Tests: TranslateStep ──────────────────────────────────────────────────


class TestTranslateStep:
    def test_produces_target_snapshot(self):
        state = _state_with_source()
        result = TranslateStep(_options()).run(state)

        assert result.snapshot.kind == SnapshotKind.TARGET_UNIAST
        target = result.snapshot.repository
        assert target.get_module("github.com/example/app").language == Language.GO

    def test_missing_source(self):
        with pytest.raises(StepError, match="missing") as exc:
            TranslateStep(_options()).run(PipelineState(target_lang=Language.GO))
        assert not exc.value.recoverable

    def test_wrong_payload(self):
        state = PipelineState(target_lang=Language.GO)
        state.apply_snapshot(new_snapshot(SnapshotKind.SOURCE_UNIAST, "not a tree", b""))
        with pytest.raises(StepError, match="expected Repository") as exc:
            TranslateStep(_options()).run(state)
        assert not exc.value.recoverable

    def test_invalid_options_not_recoverable(self):
        state = _state_with_source()
        with pytest.raises(StepError) as exc:
            TranslateStep(_options(llm_translator=None)).run(state)
        assert not exc.value.recoverable

    def test_translation_error_recoverable(self):
        step = TranslateStep(_options(), transformer_factory=_FailingTransformer)
        with pytest.raises(StepError, match="transform failed: LLM unavailable") as exc:
            step.run(_state_with_source())
        assert exc.value.recoverable

    def test_cancellation_not_recoverable(self):
        event = threading.Event()
        event.set()
        with pytest.raises(StepError, match="transform cancelled") as exc:
            TranslateStep(_options(cancel_event=event)).run(_state_with_source())
        assert not exc.value.recoverable

    def test_short_output_is_recoverable_validation_failure(self):
        step = TranslateStep(
            _options(
                llm_translator=lambda req: LLMTranslateResponse(target_content="x"),
                generate_entry_point=False,
            )
        )
        with pytest.raises(ValidationFailedError) as exc:
            step.run(_state_with_source())
        assert exc.value.recoverable
        assert exc.value.result.is_recoverable

    def test_persist_artifact(self, tmp_path):
        state = _state_with_source(work_dir=str(tmp_path))
        state.record("parse", 1, StepStatus.OK)
        TranslateStep(_options(), persist=True).run(state)

        path = tmp_path / "target_ast_2.json"
        assert path.exists()
        assert state.artifacts["target_ast_2"] == str(path)
        assert Repository.from_json(path.read_text()).get_module("github.com/example/app")


# ── Tests: ValidateStep & WriteStep ───────────────────────────────────────


def _target_state(content: str, **kwargs) -> PipelineState:
    state = PipelineState(**kwargs)
    state.apply_snapshot(
        Snapshot.of_repository(SnapshotKind.TARGET_UNIAST, _make_repo(Language.GO, content))
    )
    return state


class TestValidateStep:
    def test_valid(self):
        assert ValidateStep().run(_target_state("func run() {}")).status == StepStatus.OK

    def test_fatal(self):
        with pytest.raises(ValidationFailedError) as exc:
            ValidateStep().run(_target_state(""))
        assert not exc.value.recoverable

    def test_missing_target(self):
        with pytest.raises(StepError):
            ValidateStep().run(PipelineState())


class TestWriteStep:
    def test_records_output(self, tmp_path):
        calls = []

        def write_fn(repo, out):
            calls.append(out)
            return ["a.go"]

        state = _target_state("func run() {}", output_path=str(tmp_path))
        WriteStep(write_fn=write_fn).run(state)
        assert calls == [str(tmp_path)]
        assert state.artifacts["output"] == str(tmp_path)

    def test_empty_output_path(self):
        with pytest.raises(StepError, match="output path is empty") as exc:
            WriteStep().run(_target_state("func run() {}"))
        assert not exc.value.recoverable

    def test_write_failure_not_recoverable(self, tmp_path):
        def write_fn(repo, out):
            raise OSError("disk full")

        state = _target_state("func run() {}", output_path=str(tmp_path))
        with pytest.raises(StepError, match="disk full") as exc:
            WriteStep(write_fn=write_fn).run(state)
        assert not exc.value.recoverable


# ── Tests: full run ───────────────────────────────────────────────────────


class TestFullPipeline:
    def _steps(self, options):
        return [ParseStep(), TranslateStep(options), ValidateStep(), WriteStep()]

    def test_parse_translate_validate_write(self, tmp_path):
        src = tmp_path / "tree.json"
        src.write_text(_make_repo().to_json())
        out = tmp_path / "out"
        state = PipelineState(
            target_lang=Language.GO, source_code_path=str(src), output_path=str(out)
        )

        Pipeline(self._steps(_options())).run(state)

        assert [r.step_name for r in state.history] == ["parse", "translate", "validate", "write"]
        assert (out / "acme" / "app.go").read_text().startswith("package acme\n")
        assert (out / "main.go").read_text().startswith('package main\n\nimport "fmt"\n\nfunc main()')

    def test_cancelled_run_aborts_at_once(self):
        event = threading.Event()
        event.set()
        state = _state_with_source()
        agent = DefaultAgent(max_retry=1, max_attempts=4)

        with pytest.raises(PipelineAbortedError, match="transform cancelled"):
            Pipeline([TranslateStep(_options(cancel_event=event))], agent=agent).run(state)

        assert [(r.attempt, r.status) for r in state.history] == [(1, StepStatus.FAILED)]

    def test_translation_retried_then_aborted(self, tmp_path):
        src = tmp_path / "tree.json"
        src.write_text(_make_repo().to_json())
        calls = []

        def flaky(req):
            calls.append(req)
            return LLMTranslateResponse(error="overloaded")

        state = PipelineState(
            target_lang=Language.GO, source_code_path=str(src), output_path=str(tmp_path / "out")
        )
        agent = DefaultAgent(max_retry=1, max_attempts=2)
        with pytest.raises(PipelineAbortedError) as exc:
            Pipeline(self._steps(_options(llm_translator=flaky)), agent=agent).run(state)

        assert exc.value.step_name == "translate"
        assert state.attempts("translate") == 2
        assert state.target_uniast is None
        assert not (tmp_path / "out").exists()
