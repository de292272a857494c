"""Structural validation of a unified-AST repository.

Every finding is classified as ``FATAL`` (the tree is malformed, retrying
the same input cannot help) or ``RECOVERABLE`` (the tree is plausibly the
product of a truncated or sloppy LLM answer, so another attempt may fix
it). The pipeline agent keys its retry/rollback/abort decision off the
aggregated severity.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .models import Declaration, NodeKind, Repository

logger = logging.getLogger(__name__)

# Bodies shorter than this (after trimming) look like cut-off LLM output.
MIN_CONTENT_LENGTH = 3


class ValidationSeverity(str, Enum):
    OK = "ok"
    RECOVERABLE = "recoverable"
    FATAL = "fatal"


@dataclass
class ValidationErrorItem:
    """One validation finding."""

    message: str
    severity: ValidationSeverity
    node_id: str = ""

    def __str__(self) -> str:
        if self.node_id:
            return f"{self.node_id}: {self.message}"
        return self.message


@dataclass
class ValidationResult:
    """Aggregated validation outcome.

    ``ok`` is True only when there are no findings at all. ``severity`` is
    ``FATAL`` as soon as one finding is fatal, otherwise ``RECOVERABLE``.
    """

    ok: bool = True
    severity: ValidationSeverity = ValidationSeverity.OK
    errors: List[ValidationErrorItem] = field(default_factory=list)

    @property
    def is_fatal(self) -> bool:
        return self.severity == ValidationSeverity.FATAL

    @property
    def is_recoverable(self) -> bool:
        return self.severity == ValidationSeverity.RECOVERABLE

    def summary(self) -> str:
        return f"severity={self.severity.value}, {len(self.errors)} errors"

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "severity": self.severity.value,
            "errors": [
                {"message": e.message, "severity": e.severity.value, "node_id": e.node_id}
                for e in self.errors
            ],
        }


class ValidationError(Exception):
    """Raised by :func:`validate_repository` when the tree has findings."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [e.message for e in result.errors]
        if len(messages) == 1:
            text = messages[0]
        else:
            text = f"validation failed ({len(messages)} errors): " + "; ".join(messages)
        super().__init__(text)

    @property
    def messages(self) -> List[str]:
        return [e.message for e in self.result.errors]


class _Collector:
    def __init__(self):
        self.items: List[ValidationErrorItem] = []

    def fatal(self, message: str, node_id: str = "") -> None:
        self.items.append(ValidationErrorItem(message, ValidationSeverity.FATAL, node_id))

    def recoverable(self, message: str, node_id: str = "") -> None:
        self.items.append(ValidationErrorItem(message, ValidationSeverity.RECOVERABLE, node_id))

    def result(self) -> ValidationResult:
        if not self.items:
            return ValidationResult()
        fatal = any(i.severity == ValidationSeverity.FATAL for i in self.items)
        return ValidationResult(
            ok=False,
            severity=ValidationSeverity.FATAL if fatal else ValidationSeverity.RECOVERABLE,
            errors=self.items,
        )


_KIND_LABEL = {NodeKind.TYPE: "type", NodeKind.FUNC: "function", NodeKind.VAR: "var"}


def validate_repository_with_result(repo: Optional[Repository]) -> ValidationResult:
    """Validate ``repo`` and return every finding with its severity."""
    c = _Collector()
    if repo is None:
        c.fatal("repository is nil")
        return c.result()

    if not repo.name:
        c.fatal("repository name is empty")
    if repo.modules is None:
        c.fatal("repository Modules is nil")
        return c.result()

    has_internal = False
    for mod_key, mod in repo.modules.items():
        if mod is None:
            c.fatal(f"module {mod_key!r} is nil")
            continue
        if not mod.is_external:
            has_internal = True
        if not mod.name:
            c.fatal(f"module {mod_key!r} has empty Name")
        if mod.packages is None:
            c.fatal(f"module {mod_key!r} has nil Packages")
            continue
        for pkg_key, pkg in mod.packages.items():
            if pkg is None:
                c.fatal(f"module {mod_key!r} package {pkg_key!r} is nil")
                continue
            seen: Dict[str, str] = {}
            for kind, items in (
                (NodeKind.FUNC, pkg.functions),
                (NodeKind.TYPE, pkg.types),
                (NodeKind.VAR, pkg.vars),
            ):
                for key, decl in items.items():
                    _validate_declaration(c, kind, key, decl, f"{mod_key}#{pkg_key}", seen)

    if repo.modules and not has_internal:
        c.fatal("repository has no internal modules (all are external)")

    result = c.result()
    if not result.ok:
        logger.debug(
            "Validation of %s: %s", getattr(repo, "name", "?"), result.summary()
        )
    return result


def _validate_declaration(
    c: _Collector,
    kind: NodeKind,
    key: str,
    decl: Optional[Declaration],
    where: str,
    seen: Dict[str, str],
) -> None:
    label = _KIND_LABEL[kind]
    if decl is None:
        c.fatal(f"package {where} {label} {key!r} is nil")
        return

    node_id = decl.identity.full()
    ident = decl.identity
    if not ident.mod_path:
        c.fatal(f"package {where} {label} {key!r} has empty ModPath", node_id)
    if not ident.pkg_path:
        c.fatal(f"package {where} {label} {key!r} has empty PkgPath", node_id)
    if not ident.name:
        c.fatal(f"package {where} {label} {key!r} has empty Name", node_id)

    body = (decl.content or "").strip()
    if not body:
        c.fatal(f"package {where} {label} {key!r} has empty Content", node_id)
    elif len(body) < MIN_CONTENT_LENGTH:
        c.recoverable(
            f"package {where} {label} {key!r} has very short Content (possible incomplete LLM output)",
            node_id,
        )

    if decl.file_line.line < 0:
        c.fatal(f"package {where} {label} {key!r} has negative line number {decl.file_line.line}", node_id)

    if ident.name:
        previous = seen.get(ident.name)
        if previous is not None:
            c.fatal(f"package {where} duplicate name {ident.name!r} (already used as {previous})", node_id)
        else:
            seen[ident.name] = label


def validate_repository(repo: Optional[Repository]) -> None:
    """Raise :class:`ValidationError` if ``repo`` has any finding."""
    result = validate_repository_with_result(repo)
    if not result.ok:
        raise ValidationError(result)
