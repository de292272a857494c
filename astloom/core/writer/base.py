"""Writer base classes.

A writer turns one internal module of a Repository back into source
files. ``SourceWriter`` implements the shared part: declarations are
grouped by package and file, ordered by line, and each file gets one
merged import block built from the module's File entries plus the import
statements split out of every declaration body.
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Pattern, Sequence, Tuple

from ..uniast.models import Declaration, Function, Import, Language, Module, Package, Repository

logger = logging.getLogger(__name__)


class Writer(ABC):
    """Emits the source files of one module."""

    language: Language = Language.UNKNOWN

    @abstractmethod
    def write_module(self, repo: Repository, mod_name: str, out_dir: str) -> List[str]:
        """Write module ``mod_name`` under ``out_dir``; return the written paths."""


@dataclass
class _Chunk:
    line: int
    code: str


@dataclass
class _FileBuffer:
    package: Package
    chunks: List[_Chunk] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)

    def add_import(self, stmt: str) -> None:
        if stmt and stmt not in self.imports:
            self.imports.append(stmt)


class SourceWriter(Writer):
    """Chunk-grouping writer; subclasses supply the language specifics.

    All accumulators live in locals of ``write_module`` so one instance
    can be reused, or shared, across modules.
    """

    extension: str = ""
    # Patterns matching whole import statements inside a declaration body.
    import_patterns: Sequence[Pattern] = ()

    # ── Language hooks ───────────────────────────────────────────────────

    def package_dir(self, module: Module, package: Package) -> str:
        return package.pkg_path.replace(".", "/").replace("::", "/")

    def default_file_name(self, package: Package) -> str:
        return ("main" if package.is_main else "lib") + self.extension

    def file_header(self, module: Module, package: Package, file_name: str) -> str:
        return ""

    def render_import(self, imp: Import) -> str:
        return imp.path

    def render_import_block(self, imports: List[str]) -> str:
        return "\n".join(imports)

    def after_package(self, root: str, pkg_dir: str, written: List[str]) -> List[str]:
        """Hook run once per package directory; returns extra written paths."""
        return []

    # ── Shared implementation ────────────────────────────────────────────

    def split_imports(self, src: str) -> Tuple[str, List[str]]:
        imports: List[str] = []
        for pattern in self.import_patterns:
            imports.extend(m.group(0).strip() for m in pattern.finditer(src))
            src = pattern.sub("", src)
        return src.strip(), imports

    def write_module(self, repo: Repository, mod_name: str, out_dir: str) -> List[str]:
        module = repo.get_module(mod_name)
        if module is None:
            raise KeyError(f"module {mod_name} not found")

        buffers: Dict[Tuple[str, str], _FileBuffer] = {}
        for pkg_path in sorted(module.packages or {}):
            package = module.packages[pkg_path]
            if package is not None:
                self._collect_package(module, package, buffers)

        root = os.path.normpath(os.path.join(out_dir, module.dir or ""))
        written: List[str] = []
        by_dir: Dict[str, List[str]] = {}
        for (pkg_dir, file_name), buf in sorted(buffers.items()):
            target_dir = os.path.join(root, pkg_dir) if pkg_dir else root
            os.makedirs(target_dir, exist_ok=True)
            path = os.path.join(target_dir, file_name)
            with open(path, "w", encoding="utf-8") as f:
                f.write(self._render(module, buf, file_name))
            written.append(path)
            by_dir.setdefault(target_dir, []).append(path)

        for target_dir, paths in by_dir.items():
            written.extend(self.after_package(root, target_dir, paths))

        logger.info(f"Wrote module {mod_name}: {len(written)} files under {root}")
        return written

    def _collect_package(
        self,
        module: Module,
        package: Package,
        buffers: Dict[Tuple[str, str], _FileBuffer],
    ) -> None:
        pkg_dir = self.package_dir(module, package)
        for decl in package.declarations():
            if isinstance(decl, Function) and decl.is_interface_method:
                continue
            file_name = self._file_name(decl, package)
            buf = buffers.get((pkg_dir, file_name))
            if buf is None:
                buf = _FileBuffer(package=package)
                file_entry = module.get_file(package.pkg_path, file_name)
                if file_entry is not None:
                    for imp in file_entry.imports:
                        buf.add_import(self.render_import(imp))
                buffers[(pkg_dir, file_name)] = buf
            code, imports = self.split_imports(decl.content)
            for stmt in imports:
                buf.add_import(stmt)
            buf.chunks.append(_Chunk(line=decl.file_line.line, code=code))

    def _file_name(self, decl: Declaration, package: Package) -> str:
        if not decl.file_line.file:
            return self.default_file_name(package)
        name = os.path.basename(decl.file_line.file)
        if self.extension and not name.endswith(self.extension):
            name = os.path.splitext(name)[0] + self.extension
        return name

    def _render(self, module: Module, buf: _FileBuffer, file_name: str) -> str:
        parts: List[str] = []
        header = self.file_header(module, buf.package, file_name)
        if header:
            parts.append(header)
        if buf.imports:
            parts.append(self.render_import_block(buf.imports))
        # Stable sort keeps insertion order for equal line numbers.
        parts.extend(c.code for c in sorted(buf.chunks, key=lambda c: c.line))
        return "\n\n".join(parts) + "\n"


def compile_patterns(*patterns: str) -> Tuple[Pattern, ...]:
    return tuple(re.compile(p, re.MULTILINE) for p in patterns)
