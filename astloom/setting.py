"""Application settings.

Sources, lowest precedence first: model defaults, ``config/astloom.yaml``
(or the file named by ``ASTLOOM_CONFIG``), then environment variables
(``.env`` is loaded through python-dotenv).
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from .core.constants import (
    CONFIG_PATH_ENV,
    DEFAULT_AGENT_MAX_RETRY,
    DEFAULT_CONFIG_PATH,
    DEFAULT_MAX_RETRY_PER_NODE,
    DEFAULT_TRANSLATE_CONCURRENCY,
    MAX_TRANSLATE_CONCURRENCY,
)

logger = logging.getLogger(__name__)


class LLMSettings(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    api_type: str = "openai"
    model_name: str = "gpt-4o"
    api_key: str = ""
    base_url: str = ""
    temperature: float = 0.1
    max_tokens: int = 4096
    request_timeout: float = 120.0
    max_tries: int = 3
    context_window: int = 32768


class TranslateSettings(BaseModel):
    parallel: bool = True
    concurrency: int = Field(default=DEFAULT_TRANSLATE_CONCURRENCY, ge=1, le=MAX_TRANSLATE_CONCURRENCY)
    max_retry_per_node: int = Field(default=DEFAULT_MAX_RETRY_PER_NODE, ge=1)
    continue_on_error: bool = False
    max_source_tokens: int = 0
    generate_entry_point: bool = True
    generate_config: bool = True
    type_mappings: Dict[str, str] = Field(default_factory=dict)


class PipelineSettings(BaseModel):
    max_retry: int = DEFAULT_AGENT_MAX_RETRY
    max_attempts: Optional[int] = 3
    backoff: bool = False
    checkpoint: bool = False
    persist_artifacts: bool = False


class LoggingSettings(BaseModel):
    level: str = "INFO"


class AstloomSettings(BaseModel):
    llm: LLMSettings = Field(default_factory=LLMSettings)
    translate: TranslateSettings = Field(default_factory=TranslateSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Environment variable -> (section, field)
_ENV_OVERRIDES = {
    "API_TYPE": ("llm", "api_type"),
    "API_KEY": ("llm", "api_key"),
    "MODEL_NAME": ("llm", "model_name"),
    "BASE_URL": ("llm", "base_url"),
    "LOG_LEVEL": ("logging", "level"),
}


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        logger.warning(f"Config file {path} not found, using defaults")
        return {}
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def _apply_env(data: dict) -> dict:
    for var, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value:
            data.setdefault(section, {})[key] = value

    raw = os.getenv("TRANSLATE_CONCURRENCY")
    if raw:
        try:
            value = int(raw)
        except ValueError:
            value = 0
        if 1 <= value <= MAX_TRANSLATE_CONCURRENCY:
            data.setdefault("translate", {})["concurrency"] = value
        else:
            logger.warning(f"Ignoring TRANSLATE_CONCURRENCY={raw!r} (expected 1-{MAX_TRANSLATE_CONCURRENCY})")
    return data


def load_settings(config_path: Optional[str] = None) -> AstloomSettings:
    """Build settings from YAML and the environment (uncached)."""
    load_dotenv()
    path = Path(config_path or os.getenv(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    data = _apply_env(_load_yaml(path))
    return AstloomSettings(**data)


@lru_cache(maxsize=1)
def get_settings() -> AstloomSettings:
    """Process-wide settings, loaded once."""
    return load_settings()
