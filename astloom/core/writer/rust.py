"""Rust source writer."""

from ..uniast.models import Import, Language, Module, Package
from .base import SourceWriter, compile_patterns

_ROOT_PACKAGES = ("", "src", "crate", "main")


class RustWriter(SourceWriter):
    """Sources go under ``src/``; ``a::b`` package paths become ``src/a/b``."""

    language = Language.RUST
    extension = ".rs"
    import_patterns = compile_patterns(r"^use\s+[^;]+;[ \t]*$")

    def package_dir(self, module: Module, package: Package) -> str:
        path = package.pkg_path.removeprefix("crate::")
        if path in _ROOT_PACKAGES:
            return "src"
        return "src/" + path.replace("::", "/")

    def default_file_name(self, package: Package) -> str:
        return "main.rs" if package.is_main else "lib.rs"

    def render_import(self, imp: Import) -> str:
        if imp.path.startswith("use "):
            return imp.path
        return f"use {imp.path};"
