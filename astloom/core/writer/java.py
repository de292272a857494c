"""Java source writer."""

from ..uniast.models import Import, Language, Module, Package
from .base import SourceWriter, compile_patterns


class JavaWriter(SourceWriter):
    """Maven layout: ``src/main/java/<package as path>/<Class>.java``."""

    language = Language.JAVA
    extension = ".java"
    import_patterns = compile_patterns(
        r"^package\s+[\w.]+\s*;[ \t]*$",
        r"^import\s+(?:static\s+)?[\w.*]+\s*;[ \t]*$",
    )

    def package_dir(self, module: Module, package: Package) -> str:
        return "/".join(["src", "main", "java"] + [p for p in package.pkg_path.split(".") if p])

    def default_file_name(self, package: Package) -> str:
        return "Main.java" if package.is_main else "Lib.java"

    def file_header(self, module: Module, package: Package, file_name: str) -> str:
        return f"package {package.pkg_path};" if package.pkg_path else ""

    def split_imports(self, src):
        code, stmts = super().split_imports(src)
        return code, [s for s in stmts if s.startswith("import")]

    def render_import(self, imp: Import) -> str:
        if imp.path.startswith("import "):
            return imp.path
        return f"import {imp.path};"
