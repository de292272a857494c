"""Go source writer."""

import os
import re
from typing import List, Tuple

from ..uniast.models import Import, Language, Module, Package
from .base import SourceWriter

_IMPORT_BLOCK_RE = re.compile(r"^import\s*\(\s*\n(.*?)^\)\s*$", re.MULTILINE | re.DOTALL)
_IMPORT_LINE_RE = re.compile(r'^import\s+((?:[\w.]+\s+)?"[^"]+")\s*$', re.MULTILINE)
_PACKAGE_RE = re.compile(r"^package\s+\w+\s*$", re.MULTILINE)
# (test) suffix added by go list for external test packages.
_TEST_PKG_RE = re.compile(r"^(.*?)\s*\[(.*)\]$")


def sanitize_pkg_path(pkg_path: str) -> str:
    """``a/b [a/b.test]`` -> ``a/b``."""
    match = _TEST_PKG_RE.match(pkg_path)
    if match and match.group(2) == match.group(1) + ".test":
        return match.group(1)
    return pkg_path


class GoWriter(SourceWriter):
    """One directory per package, ``package`` clause plus a single import block."""

    language = Language.GO
    extension = ".go"

    def package_dir(self, module: Module, package: Package) -> str:
        path = sanitize_pkg_path(package.pkg_path)
        if package.is_main and path in ("", "main"):
            return ""
        rel = path[len(module.name):] if path.startswith(module.name) else path
        return rel.strip("/")

    def file_header(self, module: Module, package: Package, file_name: str) -> str:
        if package.is_main:
            return "package main"
        name = os.path.basename(sanitize_pkg_path(package.pkg_path).rstrip("/")) or "main"
        return f"package {name.replace('-', '_')}"

    def render_import(self, imp: Import) -> str:
        path = imp.path if imp.path.startswith('"') else f'"{imp.path}"'
        return f"{imp.alias} {path}" if imp.alias else path

    def render_import_block(self, imports: List[str]) -> str:
        if len(imports) == 1:
            return f"import {imports[0]}"
        body = "\n".join(f"\t{spec}" for spec in imports)
        return f"import (\n{body}\n)"

    def split_imports(self, src: str) -> Tuple[str, List[str]]:
        specs: List[str] = []
        for match in _IMPORT_BLOCK_RE.finditer(src):
            for line in match.group(1).splitlines():
                spec = line.strip()
                if spec and not spec.startswith("//"):
                    specs.append(spec)
        src = _IMPORT_BLOCK_RE.sub("", src)
        specs.extend(m.group(1).strip() for m in _IMPORT_LINE_RE.finditer(src))
        src = _IMPORT_LINE_RE.sub("", src)
        # The file header carries the package clause.
        src = _PACKAGE_RE.sub("", src)
        return src.strip(), specs
