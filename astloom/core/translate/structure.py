"""Module/package/file layout conversion between language pairs."""

import os
from typing import Callable, Dict, Tuple

from ..uniast.models import Language
from .naming import file_extension, to_pascal_case, to_snake_case

_GO_DEFAULT_PREFIX = "github.com/example/"


def _last(sep: str) -> Callable[[str], str]:
    return lambda s: s.split(sep)[-1]


def _java_group_to_go_module(group_id: str) -> str:
    # com.example.project -> example.com/project
    parts = group_id.split(".")
    if len(parts) >= 2 and parts[0] == "com":
        if len(parts) == 2:
            return parts[1] + ".com"
        return parts[1] + ".com/" + "/".join(parts[2:])
    return "/".join(parts)


def _drop_first(sep: str, join: str, fallback: Callable[[str], str]) -> Callable[[str], str]:
    def convert(name: str) -> str:
        parts = name.split(sep)
        if len(parts) > 1:
            return join.join(parts[1:])
        return fallback(name)

    return convert


_MODULE_RULES: Dict[Tuple[Language, Language], Callable[[str], str]] = {
    (Language.JAVA, Language.GO): _java_group_to_go_module,
    (Language.JAVA, Language.RUST): _drop_first(".", "_", to_snake_case),
    (Language.JAVA, Language.PYTHON): _drop_first(".", ".", lambda s: s),
    (Language.GO, Language.JAVA): lambda s: "com." + ".".join(s.removeprefix("github.com/").split("/")),
    (Language.GO, Language.RUST): lambda s: to_snake_case(s.split("/")[-1]),
    (Language.GO, Language.PYTHON): lambda s: s.removeprefix("github.com/").replace("/", "."),
    (Language.PYTHON, Language.GO): lambda s: "github.com/" + s.replace(".", "/"),
    (Language.PYTHON, Language.JAVA): lambda s: "com." + s,
    (Language.PYTHON, Language.RUST): lambda s: to_snake_case(s.replace(".", "_")),
    (Language.RUST, Language.GO): lambda s: "github.com/" + s.replace("_", "/"),
    (Language.RUST, Language.JAVA): lambda s: "com." + s.replace("_", "."),
    (Language.RUST, Language.PYTHON): lambda s: s.replace("_", "."),
}

_PACKAGE_RULES: Dict[Tuple[Language, Language], Callable[[str], str]] = {
    (Language.JAVA, Language.GO): _last("."),
    (Language.JAVA, Language.RUST): lambda s: to_snake_case(s.split(".")[-1]),
    (Language.JAVA, Language.PYTHON): _last("."),
    (Language.GO, Language.JAVA): lambda s: "com." + s.removeprefix("github.com/").replace("/", "."),
    (Language.GO, Language.RUST): lambda s: s.replace("/", "::"),
    (Language.GO, Language.PYTHON): lambda s: s.replace("/", "."),
    (Language.PYTHON, Language.GO): _last("."),
    (Language.PYTHON, Language.JAVA): lambda s: "com." + s,
    (Language.PYTHON, Language.RUST): lambda s: "::".join(to_snake_case(p) for p in s.split(".")),
    (Language.RUST, Language.GO): lambda s: s.replace("::", "/"),
    (Language.RUST, Language.JAVA): lambda s: "com." + s.replace("::", "."),
    (Language.RUST, Language.PYTHON): lambda s: s.replace("::", "."),
    (Language.TYPESCRIPT, Language.GO): lambda s: _last("/")(s.strip("./")) or s,
}


class StructureAdapter:
    """Maps source module names, package paths and file paths to the target layout.

    Unknown language pairs pass names through unchanged.
    """

    def __init__(self, source: Language, target: Language):
        self.source = Language.parse(source)
        self.target = Language.parse(target)

    def convert_module_name(self, name: str) -> str:
        rule = _MODULE_RULES.get((self.source, self.target))
        return rule(name) if rule and name else name

    def convert_package_path(self, path: str) -> str:
        rule = _PACKAGE_RULES.get((self.source, self.target))
        return rule(path) if rule and path else path

    def convert_file_path(self, path: str) -> str:
        """Convert a file path, keeping its directory part."""
        if not path:
            return path
        directory, base = os.path.split(path)
        stem = os.path.splitext(base)[0]
        if self.target == Language.GO:
            stem = stem.lower()
        elif self.target in (Language.RUST, Language.PYTHON):
            stem = to_snake_case(stem)
        elif self.target == Language.JAVA:
            stem = to_pascal_case(stem)
        new_base = stem + file_extension(self.target)
        if directory in ("", "."):
            return new_base
        return os.path.join(directory, new_base)


def _project_name(name: str) -> str:
    # Filesystem paths collapse to their last meaningful component.
    if name.startswith("/") or "/Users/" in name or "/home/" in name:
        for part in reversed(name.split("/")):
            part = part.strip()
            if part and part not in (".", ".."):
                return part
    return name


def _strip_maven_version(name: str) -> str:
    idx = name.rfind(":")
    if idx > 0 and name[idx + 1 : idx + 2].isdigit():
        return name[:idx]
    return name


def sanitize_module_name(name: str, target: Language = Language.GO) -> str:
    """Turn an arbitrary source module name into a valid target module name.

    Go: ``/home/u/My_Proj`` -> ``github.com/example/my-proj``;
    Maven ``com.acme:shop:1.0`` -> ``com.acme/shop``.
    Rust/Python: lowercase with underscores.
    """
    name = _project_name(name.strip())
    name = _strip_maven_version(name)
    name = name.replace(":", "/").replace(" ", "-").strip("/")
    target = Language.parse(target)

    if target == Language.GO:
        name = name.lower().replace("_", "-")
        if "." not in name and "/" not in name:
            name = _GO_DEFAULT_PREFIX + name
        return name
    if target in (Language.RUST, Language.PYTHON):
        return name.lower().replace("-", "_").replace("/", "_").replace(".", "_")
    return name
