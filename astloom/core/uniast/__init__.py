"""Unified AST: language-independent repository model.

Public API:
    Repository / Module / Package / Type / Function / Var / Identity
    validate_repository(repo) → raises ValidationError
    validate_repository_with_result(repo) → ValidationResult
    load_repository(path, language) → Repository
"""

from .loader import (
    ParserRegistry,
    RepositoryLoadError,
    RepositoryParser,
    infer_language,
    load_repository,
    load_repository_file,
)
from .models import (
    Declaration,
    Dependency,
    File,
    FileLine,
    Function,
    Identity,
    Import,
    Language,
    Module,
    Node,
    NodeKind,
    Package,
    Relation,
    RelationKind,
    Repository,
    Type,
    Var,
)
from .validate import (
    MIN_CONTENT_LENGTH,
    ValidationError,
    ValidationErrorItem,
    ValidationResult,
    ValidationSeverity,
    validate_repository,
    validate_repository_with_result,
)

__all__ = [
    "Declaration",
    "Dependency",
    "File",
    "FileLine",
    "Function",
    "Identity",
    "Import",
    "Language",
    "Module",
    "Node",
    "NodeKind",
    "Package",
    "Relation",
    "RelationKind",
    "Repository",
    "Type",
    "Var",
    "MIN_CONTENT_LENGTH",
    "ValidationError",
    "ValidationErrorItem",
    "ValidationResult",
    "ValidationSeverity",
    "validate_repository",
    "validate_repository_with_result",
    "ParserRegistry",
    "RepositoryLoadError",
    "RepositoryParser",
    "infer_language",
    "load_repository",
    "load_repository_file",
]
