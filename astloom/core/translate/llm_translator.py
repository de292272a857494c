"""Translation callback backed by a llama_index LLM.

The callable sends the system prompt plus the prompt assembled by
PromptBuilder, strips any markdown fence from the answer and derives the
target signature from the first declaration line.
"""

import logging
import re
from typing import Any, List

from llama_index.core.base.llms.types import ChatMessage, MessageRole

from ..gateway import LLMGateway
from ..utils.llm_utils import strip_code_fences
from .options import LLMTranslateRequest, LLMTranslateResponse
from .prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

# Lines that open a file rather than a declaration.
_PREAMBLE_RE = re.compile(
    r"^(import\b|from\s+\S+\s+import\b|package\b|use\s|#include\b|using\s|//|#(?!\[)|/\*|\*)"
)
_IMPORT_RES = (
    re.compile(r'^import\s+"([^"]+)"'),
    re.compile(r"^import\s+([\w.*]+);?$"),
    re.compile(r"^from\s+([\w.]+)\s+import\b"),
    re.compile(r"^use\s+([\w:]+)"),
)


def extract_signature(code: str) -> str:
    """First declaration line of ``code`` without a trailing ``{`` or ``:``."""
    for line in code.splitlines():
        stripped = line.strip()
        if not stripped or _PREAMBLE_RE.match(stripped) or stripped in (")", "("):
            continue
        if stripped.startswith(("@", "#[")):
            continue
        return stripped.rstrip("{").rstrip(":").rstrip()
    return ""


def extract_imports(code: str) -> List[str]:
    """Single-line import paths found at the top of ``code``."""
    found: List[str] = []
    for line in code.splitlines():
        stripped = line.strip()
        for regex in _IMPORT_RES:
            match = regex.match(stripped)
            if match and match.group(1) not in found:
                found.append(match.group(1))
                break
    return found


class LLMTranslator:
    """Callable implementing the translation callback on top of ``llm.chat``.

    Args:
        llm: Any llama_index LLM (usually an ``LLMGateway``)
        system_prompt: Overrides the default system message
    """

    def __init__(self, llm: Any, system_prompt: str = SYSTEM_PROMPT):
        self.llm = llm
        self.system_prompt = system_prompt

    def __call__(self, req: LLMTranslateRequest) -> LLMTranslateResponse:
        messages = [
            ChatMessage(role=MessageRole.SYSTEM, content=self.system_prompt),
            ChatMessage(role=MessageRole.USER, content=req.prompt),
        ]
        kwargs = {"gateway_purpose": "translate"} if isinstance(self.llm, LLMGateway) else {}
        try:
            response = self.llm.chat(messages, **kwargs)
        except Exception as e:
            logger.error(f"LLM translation of {req.identity.full()} failed: {e}")
            return LLMTranslateResponse(error=str(e))

        text = ""
        if response is not None and response.message is not None:
            text = response.message.content or ""
        code = strip_code_fences(text)
        if not code:
            return LLMTranslateResponse(error="empty completion")

        return LLMTranslateResponse(
            target_content=code,
            target_signature=extract_signature(code),
            additional_imports=extract_imports(code),
        )
