"""Target-language source writers.

Public API:
    write_repository(repo, output_dir) → list of written paths
    WriterRegistry.get_writer(language) → Writer
"""

from .base import SourceWriter, Writer
from .cxx import CxxWriter
from .golang import GoWriter
from .java import JavaWriter
from .python import PythonWriter
from .registry import UnsupportedLanguageError, WriterRegistry, write_repository
from .rust import RustWriter

__all__ = [
    "CxxWriter",
    "GoWriter",
    "JavaWriter",
    "PythonWriter",
    "RustWriter",
    "SourceWriter",
    "UnsupportedLanguageError",
    "Writer",
    "WriterRegistry",
    "write_repository",
]
