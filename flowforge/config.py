"""
Configuration for FlowForge
===========================

Settings come from the process environment, optionally seeded from a
``.env`` file via python-dotenv.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .errors import ConfigError

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-20250514"
DEFAULT_OPENAI_MODEL = "gpt-4o"


def _optional_int(environ: Mapping[str, str], key: str) -> Optional[int]:
    raw = environ.get(key, "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ConfigError(f"{key} must be positive, got {value}")
    return value


@dataclass
class Settings:
    """Runtime settings for the AI-invocation layer and context policy"""
    llm_provider: str = "anthropic"
    llm_model: str = DEFAULT_ANTHROPIC_MODEL
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    max_tokens: int = 4096
    temperature: float = 0.2
    context_max_depth: Optional[int] = None
    context_max_items: Optional[int] = None

    @property
    def api_key(self) -> str:
        """Key for the selected provider"""
        if self.llm_provider == "openai":
            return self.openai_api_key
        return self.anthropic_api_key

    @classmethod
    def from_env(cls, env_file: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """Load settings; reads ``.env`` only when no explicit mapping is given"""
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ

        provider = environ.get("LLM_PROVIDER", "anthropic").strip().lower() or "anthropic"
        if provider not in ("anthropic", "openai"):
            raise ConfigError(f"LLM_PROVIDER must be 'anthropic' or 'openai', got {provider!r}")
        default_model = DEFAULT_OPENAI_MODEL if provider == "openai" else DEFAULT_ANTHROPIC_MODEL

        try:
            max_tokens = int(environ.get("LLM_MAX_TOKENS", "4096"))
            temperature = float(environ.get("LLM_TEMPERATURE", "0.2"))
        except ValueError as e:
            raise ConfigError(f"Invalid LLM setting: {e}") from e

        return cls(
            llm_provider=provider,
            llm_model=environ.get("LLM_MODEL", "").strip() or default_model,
            anthropic_api_key=environ.get("ANTHROPIC_API_KEY", ""),
            openai_api_key=environ.get("OPENAI_API_KEY", ""),
            max_tokens=max_tokens,
            temperature=temperature,
            context_max_depth=_optional_int(environ, "FLOWFORGE_CONTEXT_MAX_DEPTH"),
            context_max_items=_optional_int(environ, "FLOWFORGE_CONTEXT_MAX_ITEMS"),
        )
