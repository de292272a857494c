"""Token counting via tiktoken.

Uses cl100k_base encoding (matches the OpenAI chat tokenizer).
"""

from typing import Tuple

import tiktoken


class TokenCounter:
    """Count and truncate text by tiktoken tokens."""

    def __init__(self, encoding_name: str = "cl100k_base"):
        self._encoder = tiktoken.get_encoding(encoding_name)

    def count(self, text: str) -> int:
        """Return the number of tokens in text."""
        return len(self._encoder.encode(text))

    def truncate(self, text: str, max_tokens: int) -> Tuple[str, bool]:
        """Cut text to at most ``max_tokens`` tokens.

        Returns the (possibly shortened) text and whether it was cut.
        """
        tokens = self._encoder.encode(text)
        if max_tokens <= 0 or len(tokens) <= max_tokens:
            return text, False
        return self._encoder.decode(tokens[:max_tokens]), True
