"""Repository loading.

A path is either a serialized unified-AST JSON file, loaded directly, or
a source directory handed to the parser registered for its language.
Parsers are external collaborators: they register themselves with
``ParserRegistry.register(language, parser)`` at import time.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import Language, Repository

logger = logging.getLogger(__name__)


class RepositoryLoadError(Exception):
    """Raised when a repository cannot be loaded from disk."""


class RepositoryParser(ABC):
    """Turns a source directory into a unified-AST repository."""

    @abstractmethod
    def parse(self, path: str) -> Repository:
        """Parse the source tree rooted at ``path``."""


class ParserRegistry:
    """Class-level store of per-language repository parsers."""

    _parsers: Dict[Language, RepositoryParser] = {}

    @classmethod
    def register(cls, language: Language, parser: RepositoryParser) -> None:
        cls._parsers[Language.parse(language)] = parser
        logger.info("Registered repository parser: %s (%s)", language, type(parser).__name__)

    @classmethod
    def unregister(cls, language: Language) -> None:
        cls._parsers.pop(Language.parse(language), None)

    @classmethod
    def get_parser(cls, language: Language) -> Optional[RepositoryParser]:
        return cls._parsers.get(Language.parse(language))

    @classmethod
    def list_languages(cls) -> List[str]:
        return sorted(lang.value for lang in cls._parsers)


def load_repository_file(path: str) -> Repository:
    """Load a serialized repository (plain JSON of ``Repository.to_dict``)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise RepositoryLoadError(f"failed to read repository file {path}: {e}") from e
    if not isinstance(data, dict):
        raise RepositoryLoadError(f"repository file {path} does not contain a JSON object")
    try:
        return Repository.from_dict(data)
    except (KeyError, TypeError, ValueError) as e:
        raise RepositoryLoadError(f"malformed repository file {path}: {e}") from e


def load_repository(path: str, language: Optional[Language] = None) -> Repository:
    """Load a repository from a JSON tree file or a source directory.

    Args:
        path: Serialized tree file or source directory
        language: Source language; required for directories

    Raises:
        RepositoryLoadError: The path is missing, unreadable, or no parser
            is registered for the language.
    """
    if not path:
        raise RepositoryLoadError("repository path is empty")
    if not os.path.exists(path):
        raise RepositoryLoadError(f"repository path does not exist: {path}")

    if os.path.isfile(path):
        logger.info(f"Loading unified AST from {path}")
        return load_repository_file(path)

    lang = Language.parse(language)
    parser = ParserRegistry.get_parser(lang)
    if parser is None:
        available = ", ".join(ParserRegistry.list_languages()) or "none"
        raise RepositoryLoadError(
            f"no parser registered for language {lang.value or 'unknown'!r} "
            f"(available: {available})"
        )
    logger.info(f"Parsing {lang.value} repository at {path} with {type(parser).__name__}")
    try:
        repo = parser.parse(path)
    except RepositoryLoadError:
        raise
    except Exception as e:
        raise RepositoryLoadError(f"failed to parse {path}: {e}") from e
    if not repo.graph:
        repo.build_graph()
    return repo


def infer_language(repo: Repository) -> Language:
    """Language of the first internal module (by module name)."""
    for mod in sorted(repo.internal_modules(), key=lambda m: m.name):
        if mod.language != Language.UNKNOWN:
            return mod.language
    return Language.UNKNOWN
