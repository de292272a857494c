# Lazy imports so that `from astloom.core.uniast import ...` does not pull in
# llama_index, tiktoken and the provider SDKs.

__all__ = [
    # Unified AST
    "Repository",
    "load_repository",
    "validate_repository",
    "validate_repository_with_result",
    # Translation
    "TranslateOptions",
    "translate_ast",
    "LLMTranslator",
    # Pipeline
    "Pipeline",
    "PipelineState",
    "DefaultAgent",
    "BackoffAgent",
    # LLM
    "LLMGateway",
    "build_llm",
    # Output
    "write_repository",
]

_IMPORT_MAP = {
    "Repository": ".uniast",
    "load_repository": ".uniast",
    "validate_repository": ".uniast",
    "validate_repository_with_result": ".uniast",
    "TranslateOptions": ".translate",
    "translate_ast": ".translate",
    "LLMTranslator": ".translate",
    "Pipeline": ".pipeline",
    "PipelineState": ".pipeline",
    "DefaultAgent": ".pipeline",
    "BackoffAgent": ".pipeline",
    "LLMGateway": ".gateway",
    "build_llm": ".model",
    "write_repository": ".writer",
}


def __getattr__(name):
    if name in _IMPORT_MAP:
        import importlib
        module = importlib.import_module(_IMPORT_MAP[name], __package__)
        return getattr(module, name)
    raise AttributeError(f"module 'astloom.core' has no attribute {name}")
