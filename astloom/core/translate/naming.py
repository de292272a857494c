"""Identifier and file naming conventions per target language."""

import os
import re
from typing import List

from ..uniast.models import Language

# Any run of characters that is not a letter or digit separates words.
_SEPARATOR_RE = re.compile(r"[\W_]+")

_EXTENSIONS = {
    Language.GO: ".go",
    Language.RUST: ".rs",
    Language.PYTHON: ".py",
    Language.JAVA: ".java",
    Language.TYPESCRIPT: ".ts",
    Language.CXX: ".cpp",
}


def _is_lower(ch: str) -> bool:
    # Caseless scripts (CJK, ...) behave like lowercase letters.
    return ch.isalpha() and not ch.isupper()


def _split_case(chunk: str) -> List[str]:
    words: List[str] = []
    start = 0
    for i in range(1, len(chunk)):
        prev, cur = chunk[i - 1], chunk[i]
        nxt = chunk[i + 1] if i + 1 < len(chunk) else ""
        if cur.isupper():
            boundary = not prev.isupper() or _is_lower(nxt)
        else:
            boundary = _is_lower(cur) and prev.isdigit()
        if boundary:
            words.append(chunk[start:i])
            start = i
    if chunk:
        words.append(chunk[start:])
    return words


def split_words(name: str) -> List[str]:
    """Split on separators and case changes (``HTTPServer`` -> HTTP, Server).

    Letters of any script are kept; digits stay with the word before them.
    """
    words: List[str] = []
    for chunk in _SEPARATOR_RE.split(name):
        words.extend(_split_case(chunk))
    return words


def to_pascal_case(name: str) -> str:
    return "".join(w[:1].upper() + w[1:].lower() for w in split_words(name))


def to_camel_case(name: str) -> str:
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_snake_case(name: str) -> str:
    return "_".join(w.lower() for w in split_words(name))


def file_extension(target: Language) -> str:
    return _EXTENSIONS.get(target, "")


def convert_type_name(name: str, exported: bool, target: Language) -> str:
    """Names without any letter or digit (``_``) are kept as they are."""
    if not name:
        return name
    if target == Language.GO:
        converted = to_pascal_case(name) if exported else to_camel_case(name)
    elif target in (Language.RUST, Language.PYTHON, Language.JAVA, Language.TYPESCRIPT):
        converted = to_pascal_case(name)
    else:
        converted = name
    return converted or name


def _convert_member(name: str, exported: bool, target: Language) -> str:
    if target == Language.GO:
        converted = to_pascal_case(name) if exported else to_camel_case(name)
    elif target in (Language.RUST, Language.PYTHON):
        converted = to_snake_case(name)
    elif target in (Language.JAVA, Language.TYPESCRIPT):
        converted = to_camel_case(name)
    else:
        converted = name
    return converted or name


def convert_function_name(name: str, exported: bool, target: Language) -> str:
    """Convert a function name; ``Receiver.method`` keeps its receiver prefix."""
    if not name:
        return name
    receiver, dot, method = name.rpartition(".")
    if dot:
        return f"{convert_type_name(receiver, True, target)}.{_convert_member(method, exported, target)}"
    return _convert_member(name, exported, target)


def convert_var_name(name: str, exported: bool, target: Language) -> str:
    if not name:
        return name
    return _convert_member(name, exported, target)


def convert_file_name(path: str, target: Language) -> str:
    """Base file name in target convention (``UserService.java`` -> ``userservice.go``)."""
    if not path:
        return path
    base = os.path.splitext(os.path.basename(path))[0]
    if target == Language.GO:
        new_base = base.lower()
    elif target in (Language.RUST, Language.PYTHON):
        new_base = to_snake_case(base)
    elif target == Language.JAVA:
        new_base = to_pascal_case(base)
    else:
        new_base = base
    return (new_base or base) + file_extension(target)
