"""Python source writer."""

import os
from typing import List

from ..uniast.models import Import, Language, Module, Package
from .base import SourceWriter, compile_patterns

_ROOT_PACKAGES = ("", "__main__", "main")


class PythonWriter(SourceWriter):
    """Dotted package paths become directories with an ``__init__.py``.

    The entry package (``__main__``) is written at the module root.
    """

    language = Language.PYTHON
    extension = ".py"
    import_patterns = compile_patterns(
        r"^from\s+\S+\s+import\s+\([^)]*\)[ \t]*$",
        r"^from\s+\S+\s+import\s+[^()\n]+$",
        r"^import\s+[^\n]+$",
    )

    def package_dir(self, module: Module, package: Package) -> str:
        if package.pkg_path in _ROOT_PACKAGES:
            return ""
        return package.pkg_path.replace(".", "/")

    def render_import(self, imp: Import) -> str:
        if imp.path.startswith(("import ", "from ")):
            return imp.path
        stmt = f"import {imp.path}"
        return f"{stmt} as {imp.alias}" if imp.alias else stmt

    def after_package(self, root: str, pkg_dir: str, written: List[str]) -> List[str]:
        created: List[str] = []
        current = os.path.normpath(pkg_dir)
        top = os.path.normpath(root)
        while current != top and current.startswith(top):
            init_path = os.path.join(current, "__init__.py")
            if not os.path.exists(init_path):
                with open(init_path, "w", encoding="utf-8"):
                    pass
                created.append(init_path)
            current = os.path.dirname(current)
        return created
