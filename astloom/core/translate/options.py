"""Translation options, LLM request/response types and shared context."""

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set

from ..constants import DEFAULT_MAX_RETRY_PER_NODE, DEFAULT_TRANSLATE_CONCURRENCY
from ..uniast.models import Identity, Language, Module, NodeKind, Package, Repository


# ── Errors ────────────────────────────────────────────────────────────────


class TranslationError(Exception):
    """Base class for translation failures."""


class InvalidOptionsError(TranslationError):
    pass


class TranslationCancelledError(TranslationError):
    pass


class NodeTranslationError(TranslationError):
    """A single declaration could not be translated."""

    def __init__(self, kind: NodeKind, identity: Identity, cause: BaseException, file: str = ""):
        self.kind = kind
        self.identity = identity
        self.cause = cause
        self.file = file
        where = f" ({file})" if file else ""
        super().__init__(f"translate {_KIND_WORD[kind]} {identity.full()}{where} failed: {cause}")


_KIND_WORD = {NodeKind.TYPE: "type", NodeKind.FUNC: "function", NodeKind.VAR: "var"}


# ── LLM callback contract ────────────────────────────────────────────────


@dataclass
class DependencyHint:
    """An already-translated dependency offered to the LLM as context."""

    source_identity: Identity
    target_identity: Identity
    target_signature: str = ""


@dataclass
class LLMTranslateRequest:
    source_language: Language
    target_language: Language
    node_type: NodeKind
    source_content: str
    identity: Identity
    type_hints: Dict[str, str] = field(default_factory=dict)
    dependency_hints: List[DependencyHint] = field(default_factory=list)
    prompt: str = ""
    source_truncated: bool = False


@dataclass
class LLMTranslateResponse:
    target_content: str = ""
    target_signature: str = ""
    additional_imports: List[str] = field(default_factory=list)
    error: str = ""


# Blocking translation callback. May be invoked from several threads.
TranslateFunc = Callable[[LLMTranslateRequest], LLMTranslateResponse]

# (done, total, kind, node_id)
ProgressCallback = Callable[[int, int, NodeKind, str], None]


# ── Results ───────────────────────────────────────────────────────────────


@dataclass
class FailedNodeInfo:
    identity: Identity
    kind: NodeKind
    error: str


@dataclass
class TranslateResult:
    """Bookkeeping filled in by a translation run."""

    total_nodes: int = 0
    processed_nodes: int = 0
    translated_ids: Set[str] = field(default_factory=set)
    failed_nodes: List[FailedNodeInfo] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_nodes)


# ── Options ───────────────────────────────────────────────────────────────


@dataclass
class TranslateOptions:
    """Knobs of one repository translation.

    ``llm_translator`` is required. ``already_translated_ids`` lets a
    resumed run skip nodes whose full identity is listed there.
    """

    source_language: Language = Language.UNKNOWN
    target_language: Language = Language.UNKNOWN
    llm_translator: Optional[TranslateFunc] = None
    target_module_name: str = ""
    parallel: bool = False
    concurrency: int = DEFAULT_TRANSLATE_CONCURRENCY
    max_retry_per_node: int = DEFAULT_MAX_RETRY_PER_NODE
    continue_on_error: bool = False
    progress_callback: Optional[ProgressCallback] = None
    result: Optional[TranslateResult] = None
    already_translated_ids: Set[str] = field(default_factory=set)
    type_mappings: Dict[str, str] = field(default_factory=dict)
    max_source_tokens: int = 0
    generate_entry_point: bool = True
    generate_config: bool = True
    cancel_event: Optional[threading.Event] = None


# ── Shared context ───────────────────────────────────────────────────────


@dataclass
class TranslateContext:
    """State shared by all workers of one transform call.

    ``translated_nodes`` and the target package maps are the only shared
    mutable data; both are touched only while holding ``lock``.
    """

    source_repo: Repository
    target_repo: Repository
    options: TranslateOptions
    target_module: Optional[Module] = None
    target_package: Optional[Package] = None
    translated_nodes: Dict[Identity, Identity] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def lookup_translated(self, source: Identity) -> Optional[Identity]:
        with self.lock:
            return self.translated_nodes.get(source)

    def is_cancelled(self) -> bool:
        event = self.options.cancel_event
        return event is not None and event.is_set()
