"""Writer registry and the repository-level write entry point."""

import logging
import os
from typing import Dict, List, Type

from ..uniast.models import Language, Repository
from .base import Writer
from .cxx import CxxWriter
from .golang import GoWriter
from .java import JavaWriter
from .python import PythonWriter
from .rust import RustWriter

logger = logging.getLogger(__name__)


class UnsupportedLanguageError(Exception):
    """No writer is registered for a module's language."""


class WriterRegistry:
    """Class-level map of target language -> Writer class."""

    _writers: Dict[Language, Type[Writer]] = {}

    @classmethod
    def register(cls, writer_cls: Type[Writer]) -> None:
        cls._writers[writer_cls.language] = writer_cls
        logger.debug("Registered writer: %s (%s)", writer_cls.__name__, writer_cls.language.value)

    @classmethod
    def unregister(cls, language: Language) -> None:
        cls._writers.pop(Language.parse(language), None)

    @classmethod
    def get_writer(cls, language: Language) -> Writer:
        """Fresh writer instance for ``language``."""
        lang = Language.parse(language)
        writer_cls = cls._writers.get(lang)
        if writer_cls is None:
            raise UnsupportedLanguageError(f"unsupported language: {lang.value or language}")
        return writer_cls()

    @classmethod
    def supports(cls, language: Language) -> bool:
        return Language.parse(language) in cls._writers

    @classmethod
    def list_languages(cls) -> List[Language]:
        return sorted(cls._writers, key=lambda lang: lang.value)


for _writer in (GoWriter, PythonWriter, JavaWriter, RustWriter, CxxWriter):
    WriterRegistry.register(_writer)


def write_repository(repo: Repository, output_dir: str) -> List[str]:
    """Write every internal module plus ``repo.generated_files`` under ``output_dir``.

    Returns the paths written, modules first.
    """
    if not output_dir:
        raise ValueError("output directory is empty")
    os.makedirs(output_dir, exist_ok=True)

    written: List[str] = []
    for module in sorted(repo.internal_modules(), key=lambda m: m.name):
        writer = WriterRegistry.get_writer(module.language)
        written.extend(writer.write_module(repo, module.name, output_dir))

    for rel_path, content in sorted(repo.generated_files.items()):
        path = os.path.join(output_dir, rel_path)
        os.makedirs(os.path.dirname(path) or output_dir, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        written.append(path)

    logger.info(f"Wrote {len(written)} files to {output_dir}")
    return written
