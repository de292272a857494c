"""Unit tests for the source writers.

Tests cover:
- Go: package directories, package clause, merged import block, line ordering
- Python: dotted packages as directories with __init__.py
- Java and Rust layouts
- write_repository: generated project files, external modules, unknown languages
"""

import pytest

from astloom.core.uniast import (
    FileLine,
    Function,
    Identity,
    Language,
    Module,
    Repository,
    Type,
    Var,
)
from astloom.core.writer import (
    GoWriter,
    UnsupportedLanguageError,
    WriterRegistry,
    write_repository,
)
from astloom.core.writer.golang import sanitize_pkg_path


# ── Fixtures ──────────────────────────────────────────────────────────────


def _make_repo(language: Language, mod_name: str, packages) -> Repository:
    """``packages`` maps pkg_path -> list of (kind_cls, name, file, line, content)."""
    module = Module(name=mod_name, dir=".", language=language)
    for pkg_path, decls in packages.items():
        pkg = module.get_or_create_package(pkg_path)
        for cls, name, file, line, content in decls:
            pkg.add(cls(
                identity=Identity(mod_path=mod_name, pkg_path=pkg_path, name=name),
                file_line=FileLine(file=file, line=line),
                content=content,
            ))
    return Repository(name=mod_name, modules={mod_name: module})


# ── Tests: Go ─────────────────────────────────────────────────────────────


class TestGoWriter:
    def test_package_file_layout(self, tmp_path):
        repo = _make_repo(Language.GO, "example.com/shop", {
            "example.com/shop/model": [
                (Function, "NewUser", "user.go", 9,
                 'import "strings"\n\nfunc NewUser(n string) *User {\n\treturn &User{Name: strings.TrimSpace(n)}\n}'),
                (Type, "User", "user.go", 3,
                 'import (\n\t"fmt"\n\t"strings"\n)\n\ntype User struct {\n\tName string\n}'),
            ],
        })
        write_repository(repo, str(tmp_path))

        text = (tmp_path / "model" / "user.go").read_text()
        assert text.startswith("package model\n\nimport (\n\t\"fmt\"\n\t\"strings\"\n)\n\n")
        # Declarations ordered by source line.
        assert text.index("type User struct") < text.index("func NewUser")
        assert text.count('"strings"') == 1
        assert text.endswith("}\n")

    def test_main_package_at_root(self, tmp_path):
        repo = _make_repo(Language.GO, "example.com/shop", {
            "main": [(Function, "main", "main.go", 1, 'func main() {\n\tprintln("hi")\n}')],
        })
        repo.get_module("example.com/shop").packages["main"].is_main = True
        write_repository(repo, str(tmp_path))

        text = (tmp_path / "main.go").read_text()
        assert text.startswith("package main\n\nfunc main()")

    def test_recorded_file_imports(self, tmp_path):
        repo = _make_repo(Language.GO, "shop", {
            "util": [(Function, "Hello", "util.go", 1, 'func Hello() {\n\tfmt.Println("x")\n}')],
        })
        f = repo.get_module("shop").get_or_create_file("util", "util.go")
        f.add_import("fmt")
        write_repository(repo, str(tmp_path))

        assert (tmp_path / "util" / "util.go").read_text().startswith('package util\n\nimport "fmt"\n\n')

    def test_missing_file_name_uses_default(self, tmp_path):
        repo = _make_repo(Language.GO, "shop", {
            "util": [(Var, "Max", "", 1, "var Max = 10")],
        })
        written = GoWriter().write_module(repo, "shop", str(tmp_path))
        assert written == [str(tmp_path / "util" / "lib.go")]

    def test_unknown_module(self, tmp_path):
        repo = _make_repo(Language.GO, "shop", {})
        with pytest.raises(KeyError):
            GoWriter().write_module(repo, "other", str(tmp_path))

    def test_sanitize_test_package(self):
        assert sanitize_pkg_path("a/b [a/b.test]") == "a/b"
        assert sanitize_pkg_path("a/b") == "a/b"


# ── Tests: Python ─────────────────────────────────────────────────────────


class TestPythonWriter:
    def test_packages_get_init_files(self, tmp_path):
        repo = _make_repo(Language.PYTHON, "shop", {
            "shop.model": [
                (Type, "User", "user.py", 1,
                 "from dataclasses import dataclass\n\n@dataclass\nclass User:\n    name: str"),
            ],
            "__main__": [(Function, "main", "__main__.py", 1, "def main():\n    print('hi')")],
        })
        written = write_repository(repo, str(tmp_path))

        text = (tmp_path / "shop" / "model" / "user.py").read_text()
        assert text.startswith("from dataclasses import dataclass\n\n@dataclass\nclass User:")
        assert (tmp_path / "shop" / "__init__.py").exists()
        assert (tmp_path / "shop" / "model" / "__init__.py").exists()
        assert not (tmp_path / "__init__.py").exists()
        assert (tmp_path / "__main__.py").exists()
        assert str(tmp_path / "shop" / "model" / "__init__.py") in written


# ── Tests: Java & Rust ────────────────────────────────────────────────────


class TestJavaWriter:
    def test_maven_layout(self, tmp_path):
        repo = _make_repo(Language.JAVA, "shop", {
            "com.acme.shop": [
                (Type, "User", "User.java", 1,
                 "package com.acme.shop;\nimport java.util.List;\n\npublic class User {\n}"),
            ],
        })
        write_repository(repo, str(tmp_path))

        text = (tmp_path / "src/main/java/com/acme/shop/User.java").read_text()
        assert text == "package com.acme.shop;\n\nimport java.util.List;\n\npublic class User {\n}\n"


class TestRustWriter:
    def test_src_layout(self, tmp_path):
        repo = _make_repo(Language.RUST, "shop", {
            "crate::model": [
                (Type, "User", "user.rs", 1, "use std::fmt;\n\npub struct User {\n    name: String,\n}"),
            ],
        })
        write_repository(repo, str(tmp_path))

        text = (tmp_path / "src" / "model" / "user.rs").read_text()
        assert text.startswith("use std::fmt;\n\npub struct User")


class TestCxxWriter:
    def _repo(self):
        return _make_repo(Language.CXX, "shop", {
            "acme/shop": [
                (Type, "User", "user.cpp", 1,
                 "#include <string>\n\nclass User {\npublic:\n    std::string name;\n};"),
                (Function, "greet", "user.cpp", 10,
                 "#include <iostream>\n\nvoid greet(const User& u) {\n    std::cout << u.name;\n}"),
                (Var, "kMax", "user.cpp", 5, "const int kMax = 10;"),
            ],
        })

    def test_header_per_type(self, tmp_path):
        write_repository(self._repo(), str(tmp_path))

        text = (tmp_path / "include" / "acme" / "shop" / "User.h").read_text()
        assert text == (
            "#ifndef ACME_SHOP_USER_H\n#define ACME_SHOP_USER_H\n\n"
            "#include <string>\n\n"
            "namespace acme {\nnamespace shop {\n\n"
            "class User {\npublic:\n    std::string name;\n};\n\n"
            "}  // namespace shop\n}  // namespace acme\n\n"
            "#endif  // ACME_SHOP_USER_H\n"
        )

    def test_source_file_includes_namespace_headers(self, tmp_path):
        write_repository(self._repo(), str(tmp_path))

        text = (tmp_path / "src" / "acme" / "shop" / "user.cpp").read_text()
        assert text == (
            '#include <iostream>\n#include "acme/shop/User.h"\n\n'
            "namespace acme {\nnamespace shop {\n\n"
            "const int kMax = 10;\n\n"
            "void greet(const User& u) {\n    std::cout << u.name;\n}\n\n"
            "}  // namespace shop\n}  // namespace acme\n"
        )

    def test_declared_namespace_not_wrapped_again(self, tmp_path):
        repo = _make_repo(Language.CXX, "shop", {
            "src": [(Function, "main", "main.cpp", 1,
                     "namespace app {\nint run() { return 0; }\n}")],
        })
        write_repository(repo, str(tmp_path))

        text = (tmp_path / "src" / "app" / "main.cpp").read_text()
        assert text == "namespace app {\nint run() { return 0; }\n}\n"

    def test_default_file_and_root_namespace(self, tmp_path):
        repo = _make_repo(Language.CXX, "shop", {
            "src": [(Var, "counter", "", 1, "int counter = 0;")],
        })
        written = write_repository(repo, str(tmp_path))

        assert written == [str(tmp_path / "src" / "functions.cpp")]
        assert (tmp_path / "src" / "functions.cpp").read_text() == "int counter = 0;\n"


# ── Tests: write_repository ───────────────────────────────────────────────


class TestWriteRepository:
    def test_generated_files_written_last(self, tmp_path):
        repo = _make_repo(Language.GO, "shop", {
            "util": [(Var, "Max", "util.go", 1, "var Max = 10")],
        })
        repo.generated_files["go.mod"] = "module shop\n\ngo 1.21\n"
        written = write_repository(repo, str(tmp_path))

        assert written[-1] == str(tmp_path / "go.mod")
        assert (tmp_path / "go.mod").read_text() == "module shop\n\ngo 1.21\n"

    def test_external_modules_skipped(self, tmp_path):
        repo = _make_repo(Language.GO, "shop", {
            "util": [(Var, "Max", "util.go", 1, "var Max = 10")],
        })
        repo.modules["github.com/lib/pq"] = Module(name="github.com/lib/pq", language=Language.GO)
        written = write_repository(repo, str(tmp_path))
        assert written == [str(tmp_path / "util" / "util.go")]

    def test_unsupported_language(self, tmp_path):
        repo = _make_repo(Language.TYPESCRIPT, "shop", {
            "src": [(Var, "max", "a.ts", 1, "export const max = 10;")],
        })
        with pytest.raises(UnsupportedLanguageError, match="unsupported language"):
            write_repository(repo, str(tmp_path))

    def test_empty_output_dir(self):
        with pytest.raises(ValueError):
            write_repository(_make_repo(Language.GO, "shop", {}), "")

    def test_registry_languages(self):
        assert {Language.GO, Language.PYTHON, Language.JAVA, Language.RUST, Language.CXX} <= set(
            WriterRegistry.list_languages()
        )
        assert WriterRegistry.supports("cpp")
        assert not WriterRegistry.supports(Language.TYPESCRIPT)
