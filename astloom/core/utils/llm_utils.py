"""LLM output helpers."""

import re

_FENCE_RE = re.compile(r"^```[\w+#.-]*[ \t]*\n(.*?)\n?```[ \t]*$", re.DOTALL)


def strip_code_fences(text: str) -> str:
    """Remove a single surrounding markdown code fence, if present.

    Models are told not to fence their answer but frequently do anyway.
    """
    text = (text or "").strip()
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip("\n")
    return text
