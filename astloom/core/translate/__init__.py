"""LLM-driven translation of a unified AST into another language.

Public API:
    translate(source, options, output_dir) → Repository
    translate_ast(repo, options) → Repository
    BaseTransformer(options).transform(repo) → Repository
    LLMTranslator(llm) - translation callback over a llama_index LLM
"""

from .facade import translate, translate_ast, validate_options
from .llm_translator import LLMTranslator, extract_imports, extract_signature
from .node_translator import NodeTranslator
from .options import (
    DependencyHint,
    FailedNodeInfo,
    InvalidOptionsError,
    LLMTranslateRequest,
    LLMTranslateResponse,
    NodeTranslationError,
    ProgressCallback,
    TranslateContext,
    TranslateFunc,
    TranslateOptions,
    TranslateResult,
    TranslationCancelledError,
    TranslationError,
)
from .post_processor import ConfigGenerator, EntryPointHandler, PostProcessor
from .prompts import PromptBuilder
from .structure import StructureAdapter, sanitize_module_name
from .transformer import BaseTransformer, Transformer
from .type_hints import TypeHints

__all__ = [
    "translate",
    "translate_ast",
    "validate_options",
    "LLMTranslator",
    "extract_imports",
    "extract_signature",
    "NodeTranslator",
    "DependencyHint",
    "FailedNodeInfo",
    "InvalidOptionsError",
    "LLMTranslateRequest",
    "LLMTranslateResponse",
    "NodeTranslationError",
    "ProgressCallback",
    "TranslateContext",
    "TranslateFunc",
    "TranslateOptions",
    "TranslateResult",
    "TranslationCancelledError",
    "TranslationError",
    "ConfigGenerator",
    "EntryPointHandler",
    "PostProcessor",
    "PromptBuilder",
    "StructureAdapter",
    "sanitize_module_name",
    "BaseTransformer",
    "Transformer",
    "TypeHints",
]
