"""Shared helpers."""

from .llm_utils import strip_code_fences

__all__ = ["strip_code_fences"]
