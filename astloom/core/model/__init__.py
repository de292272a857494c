from .model import SUPPORTED_PROVIDERS, build_llm, create_provider_llm, normalize_provider

__all__ = ["SUPPORTED_PROVIDERS", "build_llm", "create_provider_llm", "normalize_provider"]
