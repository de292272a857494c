"""C++ source writer.

Types become one header each under ``include/<namespace>/<Type>.h`` with
an include guard; functions and variables go to ``src/<namespace>/*.cpp``.
A declaration that opens its own ``namespace`` is written as is, the
others are wrapped in the namespace derived from their package path.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..uniast.models import Function, Import, Language, Module, Package, Repository, Type
from .base import SourceWriter, compile_patterns

logger = logging.getLogger(__name__)

_NAMESPACE_RE = re.compile(r"^\s*namespace\s+(\w+(?:::\w+)*)\s*\{", re.MULTILINE)
_GUARD_RE = re.compile(r"[^0-9A-Za-z]+")


def package_namespace(pkg_path: str) -> str:
    """``com.acme.shop`` / ``acme/shop`` -> ``acme::shop``-style namespace."""
    parts = [p for p in re.split(r"::|[./\\]", pkg_path) if p and p not in ("src", "main")]
    return "::".join(p.replace("-", "_") for p in parts)


def wrap_namespace(namespace: str, code: str) -> str:
    parts = namespace.split("::")
    opening = "\n".join(f"namespace {p} {{" for p in parts)
    closing = "\n".join(f"}}  // namespace {p}" for p in reversed(parts))
    return f"{opening}\n\n{code}\n\n{closing}"


@dataclass
class _Part:
    line: int
    code: str
    own_namespace: bool


@dataclass
class _Unit:
    includes: List[str] = field(default_factory=list)
    parts: List[_Part] = field(default_factory=list)

    def include(self, stmt: str) -> None:
        if stmt and stmt not in self.includes:
            self.includes.append(stmt)


class CxxWriter(SourceWriter):
    """Header/source split writer for C++ targets."""

    language = Language.CXX
    extension = ".cpp"
    import_patterns = compile_patterns(r'^[ \t]*#include\s*[<"][^>"\n]+[>"][ \t]*$')

    def default_file_name(self, package: Package) -> str:
        return "main.cpp" if package.is_main else "functions.cpp"

    def render_import(self, imp: Import) -> str:
        path = imp.path.strip()
        if path.startswith("#include"):
            return path
        if path[:1] in ('"', "<"):
            return f"#include {path}"
        if not os.path.splitext(path)[1]:
            path += ".h"
        return f'#include "{path}"'

    def write_module(self, repo: Repository, mod_name: str, out_dir: str) -> List[str]:
        module = repo.get_module(mod_name)
        if module is None:
            raise KeyError(f"module {mod_name} not found")

        headers: Dict[Tuple[str, str], _Unit] = {}
        sources: Dict[Tuple[str, str], _Unit] = {}
        for pkg_path in sorted(module.packages or {}):
            package = module.packages[pkg_path]
            if package is not None:
                self._collect(module, package, headers, sources)

        # Every source file sees the headers of its own namespace.
        for (namespace, _), unit in sources.items():
            for ns, type_name in sorted(headers):
                if ns == namespace:
                    unit.include(f'#include "{self._header_path(ns, type_name)}"')

        root = os.path.normpath(os.path.join(out_dir, module.dir or ""))
        written: List[str] = []
        for (namespace, type_name), unit in sorted(headers.items()):
            path = os.path.join(root, "include", self._header_path(namespace, type_name))
            written.append(self._write(path, self._render_header(namespace, type_name, unit)))
        for (namespace, file_name), unit in sorted(sources.items()):
            path = os.path.join(root, "src", *namespace.split("::"), file_name)
            written.append(self._write(path, self._render_source(namespace, unit)))

        logger.info(f"Wrote module {mod_name}: {len(headers)} headers, {len(sources)} sources under {root}")
        return written

    def _collect(
        self,
        module: Module,
        package: Package,
        headers: Dict[Tuple[str, str], _Unit],
        sources: Dict[Tuple[str, str], _Unit],
    ) -> None:
        for decl in package.declarations():
            if isinstance(decl, Function) and decl.is_interface_method:
                continue
            code, includes = self.split_imports(decl.content)
            declared = _NAMESPACE_RE.search(code)
            namespace = declared.group(1) if declared else package_namespace(package.pkg_path)

            if isinstance(decl, Type):
                key = (namespace, decl.identity.name.rpartition(".")[2])
                bucket = headers
            else:
                key = (namespace, self._file_name(decl, package))
                bucket = sources
            unit = bucket.get(key)
            if unit is None:
                unit = bucket[key] = _Unit()
                file_entry = module.get_file(package.pkg_path, self._file_name(decl, package))
                if file_entry is not None:
                    for imp in file_entry.imports:
                        unit.include(self.render_import(imp))
            for stmt in includes:
                unit.include(stmt)
            unit.parts.append(_Part(line=decl.file_line.line, code=code, own_namespace=bool(declared)))

    @staticmethod
    def _header_path(namespace: str, type_name: str) -> str:
        return "/".join([*namespace.split("::"), f"{type_name}.h"]) if namespace else f"{type_name}.h"

    @staticmethod
    def _body(namespace: str, unit: _Unit) -> str:
        parts = sorted(unit.parts, key=lambda p: p.line)
        if not namespace:
            return "\n\n".join(p.code for p in parts)
        if not any(p.own_namespace for p in parts):
            return wrap_namespace(namespace, "\n\n".join(p.code for p in parts))
        return "\n\n".join(p.code if p.own_namespace else wrap_namespace(namespace, p.code) for p in parts)

    def _render_header(self, namespace: str, type_name: str, unit: _Unit) -> str:
        guard = _GUARD_RE.sub("_", f"{namespace}_{type_name}" if namespace else type_name)
        guard = guard.strip("_").upper() + "_H"
        sections = [f"#ifndef {guard}\n#define {guard}"]
        if unit.includes:
            sections.append("\n".join(unit.includes))
        sections.append(self._body(namespace, unit))
        sections.append(f"#endif  // {guard}")
        return "\n\n".join(sections) + "\n"

    def _render_source(self, namespace: str, unit: _Unit) -> str:
        sections = []
        if unit.includes:
            sections.append("\n".join(unit.includes))
        sections.append(self._body(namespace, unit))
        return "\n\n".join(sections) + "\n"

    @staticmethod
    def _write(path: str, text: str) -> str:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text)
        return path
