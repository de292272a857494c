"""Per-declaration translation prompts.

Each prompt has the same layout: a one-line task statement, the type
mapping table, the already-translated dependencies, the fenced source,
target-specific requirements and the output contract.
"""

from typing import Dict, List

from ..uniast.models import Language, NodeKind
from .options import DependencyHint, LLMTranslateRequest
from .type_hints import TypeHints

SYSTEM_PROMPT = (
    "You are an expert software engineer translating code between programming "
    "languages. You translate one declaration at a time, preserve behaviour "
    "exactly and answer with code only."
)

TRUNCATION_NOTE = (
    "Note: Source was truncated for context limit; translate the visible part only."
)

OUTPUT_INSTRUCTION = (
    "Return ONLY the translated code, no explanations or markdown formatting."
)

_SUBJECT = {
    NodeKind.TYPE: "type/class",
    NodeKind.FUNC: "function/method",
    NodeKind.VAR: "variable/constant",
}

# ── Requirements ─────────────────────────────────────────────────────────

_COMMON: Dict[NodeKind, str] = {
    NodeKind.TYPE: (
        "- Preserve the semantics and functionality of the original type\n"
        "- Use idiomatic patterns for the target language\n"
        "- IMPORTANT: Do NOT redeclare types that already exist in the dependencies\n"
        "- IMPORTANT: Include ALL necessary import statements at the TOP of the code\n"
        "- IMPORTANT: For cross-package types, use the full package prefix (e.g. model.User)\n"
        "- Output ONLY the type definition, no duplicate struct/method definitions\n"
    ),
    NodeKind.FUNC: (
        "- Preserve the semantics and functionality of the original function\n"
        "- Use idiomatic patterns for the target language\n"
        "- IMPORTANT: Do NOT redeclare functions/methods that already exist\n"
        "- IMPORTANT: Include ALL necessary import statements at the TOP of the code\n"
        "- IMPORTANT: Use types from dependencies with their package prefix (e.g. model.User)\n"
        "- Output ONLY the single function/method, no duplicate definitions\n"
    ),
    NodeKind.VAR: (
        "- Preserve the value and meaning of the variable\n"
        "- Use an appropriate type for the target language\n"
        "- IMPORTANT: Do NOT redeclare variables/constants that already exist\n"
        "- Output ONLY the single variable/constant definition\n"
    ),
}

_TYPESCRIPT_SOURCE: Dict[NodeKind, str] = {
    NodeKind.TYPE: (
        "- Source is TypeScript: interfaces become structs or interfaces, classes become "
        "structs with methods; public members are exported, private ones are not\n"
    ),
    NodeKind.FUNC: (
        "- Source is TypeScript: Promise<T> becomes a plain or (T, error) return; "
        "async/await becomes synchronous code or goroutines where appropriate\n"
    ),
}

_TARGET: Dict[NodeKind, Dict[Language, str]] = {
    NodeKind.TYPE: {
        Language.GO: (
            "- Use Go naming conventions (PascalCase for exported types)\n"
            "- Convert classes to structs with methods\n"
            "- Replace inheritance with composition or embedding\n"
            "- Use pointer receivers for methods that modify state\n"
            "- Add json tags if the original had serialization annotations\n"
            "- Define helper types only once"
        ),
        Language.RUST: (
            "- Use Rust naming conventions (PascalCase for types)\n"
            "- Convert classes to a struct plus impl block\n"
            "- Derive common traits (Debug, Clone, ...)\n"
            "- Use Option<T> for nullable fields\n"
            "- Respect ownership semantics"
        ),
        Language.PYTHON: (
            "- Use Python naming conventions (PascalCase for classes)\n"
            "- Add type hints for all fields and methods\n"
            "- Use @dataclass where appropriate\n"
            "- Use Optional[] for nullable types"
        ),
        Language.JAVA: (
            "- Use Java naming conventions (PascalCase for classes, camelCase for fields)\n"
            "- Add access modifiers\n"
            "- Generate getters and setters for private fields\n"
            "- Use Optional<T> for nullable fields"
        ),
    },
    NodeKind.FUNC: {
        Language.GO: (
            "- Use Go naming conventions (PascalCase for exported, camelCase for unexported)\n"
            "- Return error as the last return value\n"
            "- Use multiple return values instead of out parameters\n"
            "- Add doc comments for exported functions\n"
            "- For methods, output only the method, not the struct definition"
        ),
        Language.RUST: (
            "- Use Rust naming conventions (snake_case for functions)\n"
            "- Use Result<T, E> for functions that can fail\n"
            "- Use proper ownership and borrowing\n"
            "- Add lifetime annotations where necessary"
        ),
        Language.PYTHON: (
            "- Use Python naming conventions (snake_case for functions)\n"
            "- Add type hints for parameters and return type\n"
            "- Raise exceptions for error handling\n"
            "- Add a docstring"
        ),
        Language.JAVA: (
            "- Use Java naming conventions (camelCase for methods)\n"
            "- Use access modifiers\n"
            "- Handle checked exceptions\n"
            "- Use Optional<T> for methods that may not return a value"
        ),
    },
    NodeKind.VAR: {
        Language.GO: (
            "- Use Go naming conventions (PascalCase for exported, camelCase for unexported)\n"
            "- Use const for constants and var for variables\n"
            "- Use iota for enum-like constants\n"
            "- Do NOT duplicate const blocks"
        ),
        Language.RUST: (
            "- Use SCREAMING_SNAKE_CASE for constants and snake_case for variables\n"
            "- Use const for compile-time constants and static for runtime ones"
        ),
        Language.PYTHON: (
            "- Use SCREAMING_SNAKE_CASE for constants and snake_case for variables\n"
            "- Add type hints; use Final[] for constants where appropriate"
        ),
        Language.JAVA: (
            "- Use SCREAMING_SNAKE_CASE for constants and camelCase for fields\n"
            "- Use static final for class constants"
        ),
    },
}


class PromptBuilder:
    """Builds translation prompts for one language pair."""

    def __init__(self, source: Language, target: Language, type_hints: TypeHints):
        self.source = source
        self.target = target
        self.type_hints = type_hints

    def build(self, req: LLMTranslateRequest) -> str:
        kind = req.node_type
        parts: List[str] = [
            f"Translate the following {self.source.value} {_SUBJECT[kind]} to {self.target.value}.\n",
            "## Type Mapping Reference",
            self.type_hints.format_for_prompt(),
        ]

        if req.dependency_hints:
            parts.append("## Already Translated Dependencies")
            parts.append(self.format_dependencies(req.dependency_hints))

        parts.append("## Source Code")
        if req.source_truncated:
            parts.append(TRUNCATION_NOTE + "\n")
        parts.append(f"```{self.source.value}\n{req.source_content}\n```\n")

        parts.append("## Requirements")
        parts.append(self.requirements(kind) + "\n")

        parts.append("## Output")
        parts.append(OUTPUT_INSTRUCTION)
        return "\n".join(parts) + "\n"

    def build_type_prompt(self, req: LLMTranslateRequest) -> str:
        return self.build(req)

    def build_function_prompt(self, req: LLMTranslateRequest) -> str:
        return self.build(req)

    def build_var_prompt(self, req: LLMTranslateRequest) -> str:
        return self.build(req)

    @staticmethod
    def format_dependencies(hints: List[DependencyHint]) -> str:
        lines = []
        for hint in hints:
            lines.append(f"- `{hint.source_identity.name}` -> `{hint.target_identity.name}`")
            if hint.target_signature:
                lines.append(f"  Signature: `{hint.target_signature}`")
        return "\n".join(lines) + "\n"

    def requirements(self, kind: NodeKind) -> str:
        common = _COMMON[kind]
        if self.source == Language.TYPESCRIPT and kind in _TYPESCRIPT_SOURCE:
            common = _TYPESCRIPT_SOURCE[kind] + common
        return common + _TARGET[kind].get(self.target, "")
