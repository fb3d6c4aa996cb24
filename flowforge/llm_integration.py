"""
LLM Integration for FlowForge
=============================

Thin provider wrapper used by the generation runner. Supports the Anthropic
and OpenAI SDKs; which one is used comes from Settings.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import anthropic
import openai

from .config import Settings
from .errors import ConfigError


@dataclass
class LLMConfig:
    """LLM configuration"""
    provider: str = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key: str = ""
    max_tokens: int = 4096
    temperature: float = 0.2

    @classmethod
    def from_settings(cls, settings: Settings) -> 'LLMConfig':
        return cls(
            provider=settings.llm_provider,
            model=settings.llm_model,
            api_key=settings.api_key,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
        )


class LLMInterface:
    """Interface for LLM interactions"""

    def __init__(self, config: Optional[LLMConfig] = None, client: Any = None):
        self.config = config or LLMConfig.from_settings(Settings.from_env())
        self.client = client

    def _init_client(self):
        """Initialize LLM client based on provider"""
        if self.client is not None:
            return self.client
        if not self.config.api_key:
            raise ConfigError(f"No API key configured for provider {self.config.provider!r}")

        if self.config.provider == "anthropic":
            self.client = anthropic.Anthropic(api_key=self.config.api_key)
        elif self.config.provider == "openai":
            self.client = openai.OpenAI(api_key=self.config.api_key)
        else:
            raise ConfigError(f"Unsupported LLM provider: {self.config.provider}")
        return self.client

    async def generate_response(self, prompt: str, system_prompt: Optional[str] = None,
                                history: Optional[Sequence[Mapping[str, str]]] = None) -> str:
        """Generate a completion for ``prompt``; provider errors propagate

        ``history`` holds earlier conversation turns as ``{"role", "content"}``
        mappings, oldest first.
        """
        self._init_client()
        messages = [{"role": m["role"], "content": m["content"]} for m in history or ()]
        messages.append({"role": "user", "content": prompt})
        if self.config.provider == "openai":
            return await self._openai_call(messages, system_prompt)
        return await self._anthropic_call(messages, system_prompt)

    async def _anthropic_call(self, messages: List[Dict[str, str]], system_prompt: Optional[str]) -> str:
        """Call Anthropic Claude API"""
        kwargs = {}
        if system_prompt:
            kwargs["system"] = system_prompt
        response = self.client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            messages=messages,
            **kwargs
        )
        return "\n".join(block.text for block in response.content if block.type == "text")

    async def _openai_call(self, messages: List[Dict[str, str]], system_prompt: Optional[str]) -> str:
        """Call OpenAI chat completions API"""
        if system_prompt:
            messages = [{"role": "system", "content": system_prompt}] + messages

        response = self.client.chat.completions.create(
            model=self.config.model,
            messages=messages,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature
        )
        return response.choices[0].message.content or ""


def create_llm_interface(settings: Optional[Settings] = None) -> LLMInterface:
    """Factory function to create LLM interface from settings"""
    settings = settings or Settings.from_env()
    return LLMInterface(LLMConfig.from_settings(settings))
