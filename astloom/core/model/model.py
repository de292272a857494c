import logging
from typing import Optional

from llama_index.llms.ollama import Ollama
from llama_index.llms.openai import OpenAI

from ...setting import AstloomSettings, LLMSettings, get_settings
from ..gateway import LLMGateway

logger = logging.getLogger(__name__)

SUPPORTED_PROVIDERS = ("openai", "ollama", "anthropic")

_PROVIDER_ALIASES = {
    "claude": "anthropic",
    "local": "ollama",
}


def normalize_provider(api_type: str) -> str:
    """Canonical provider name; raises ValueError for unknown providers."""
    provider = (api_type or "").strip().lower()
    provider = _PROVIDER_ALIASES.get(provider, provider)
    if provider not in SUPPORTED_PROVIDERS:
        raise ValueError(
            f"Unsupported api_type '{api_type}', expected one of {', '.join(SUPPORTED_PROVIDERS)}"
        )
    return provider


def create_provider_llm(llm_settings: LLMSettings):
    """Instantiate the raw LlamaIndex LLM for ``llm_settings.api_type``."""
    provider = normalize_provider(llm_settings.api_type)
    model_name = llm_settings.model_name

    if provider == "openai":
        kwargs = {}
        if llm_settings.api_key:
            kwargs["api_key"] = llm_settings.api_key
        if llm_settings.base_url:
            kwargs["api_base"] = llm_settings.base_url
        model = OpenAI(
            model=model_name,
            temperature=llm_settings.temperature,
            max_tokens=llm_settings.max_tokens,
            timeout=llm_settings.request_timeout,
            **kwargs,
        )
    elif provider == "anthropic":
        from llama_index.llms.anthropic import Anthropic
        kwargs = {"api_key": llm_settings.api_key} if llm_settings.api_key else {}
        model = Anthropic(
            model=model_name,
            temperature=llm_settings.temperature,
            max_tokens=llm_settings.max_tokens,
            **kwargs,
        )
    else:
        model = Ollama(
            model=model_name,
            base_url=llm_settings.base_url or "http://localhost:11434",
            temperature=llm_settings.temperature,
            context_window=llm_settings.context_window,
            request_timeout=llm_settings.request_timeout,
        )

    logger.debug(f"Created {provider.upper()} model: {model_name}")
    return model


def build_llm(settings: Optional[AstloomSettings] = None) -> LLMGateway:
    """Provider LLM from settings, wrapped in the gateway."""
    settings = settings or get_settings()
    raw = create_provider_llm(settings.llm)
    return LLMGateway(raw, max_tries=settings.llm.max_tries)
