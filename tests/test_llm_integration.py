"""
Tests for the LLM provider wrapper
"""
from types import SimpleNamespace

import pytest
from flowforge.config import Settings
from flowforge.errors import ConfigError
from flowforge.llm_integration import LLMConfig, LLMInterface, create_llm_interface


class FakeAnthropic:
    def __init__(self, blocks):
        self.calls = []
        self.messages = SimpleNamespace(create=self._create)
        self._blocks = blocks

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(content=self._blocks)


class FakeOpenAI:
    def __init__(self, text):
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self._text = text

    def _create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self._text)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.mark.asyncio
async def test_anthropic_call():
    client = FakeAnthropic([
        SimpleNamespace(type="text", text="Hello"),
        SimpleNamespace(type="tool_use", text="ignored"),
        SimpleNamespace(type="text", text="world"),
    ])
    llm = LLMInterface(LLMConfig(provider="anthropic", model="m", api_key="k"), client=client)

    assert await llm.generate_response("prompt", "system") == "Hello\nworld"
    call = client.calls[0]
    assert call["model"] == "m"
    assert call["system"] == "system"
    assert call["messages"] == [{"role": "user", "content": "prompt"}]


@pytest.mark.asyncio
async def test_anthropic_call_without_system_prompt():
    client = FakeAnthropic([SimpleNamespace(type="text", text="ok")])
    llm = LLMInterface(LLMConfig(provider="anthropic", api_key="k"), client=client)

    await llm.generate_response("prompt")
    assert "system" not in client.calls[0]


@pytest.mark.asyncio
async def test_openai_call():
    client = FakeOpenAI("done")
    llm = LLMInterface(LLMConfig(provider="openai", model="gpt-4o", api_key="k", max_tokens=10), client=client)

    assert await llm.generate_response("prompt", "system") == "done"
    call = client.calls[0]
    assert call["messages"][0] == {"role": "system", "content": "system"}
    assert call["messages"][1] == {"role": "user", "content": "prompt"}
    assert call["max_tokens"] == 10


@pytest.mark.asyncio
async def test_openai_empty_content():
    llm = LLMInterface(LLMConfig(provider="openai", api_key="k"), client=FakeOpenAI(None))
    assert await llm.generate_response("prompt") == ""


@pytest.mark.asyncio
async def test_missing_api_key():
    llm = LLMInterface(LLMConfig(provider="anthropic", api_key=""))
    with pytest.raises(ConfigError):
        await llm.generate_response("prompt")


def test_unknown_provider():
    llm = LLMInterface(LLMConfig(provider="cohere", api_key="k"))
    with pytest.raises(ConfigError):
        llm._init_client()


def test_create_llm_interface_from_settings():
    settings = Settings(llm_provider="openai", llm_model="gpt-4o", openai_api_key="sk", max_tokens=99)
    llm = create_llm_interface(settings)
    assert llm.config.provider == "openai"
    assert llm.config.api_key == "sk"
    assert llm.config.max_tokens == 99


@pytest.mark.asyncio
async def test_history_precedes_prompt():
    history = [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello"}]

    anthropic_client = FakeAnthropic([SimpleNamespace(type="text", text="ok")])
    llm = LLMInterface(LLMConfig(provider="anthropic", api_key="k"), client=anthropic_client)
    await llm.generate_response("Next", "system", history=history)
    assert anthropic_client.calls[0]["messages"] == history + [{"role": "user", "content": "Next"}]

    openai_client = FakeOpenAI("ok")
    llm = LLMInterface(LLMConfig(provider="openai", api_key="k"), client=openai_client)
    await llm.generate_response("Next", "system", history=history)
    assert openai_client.calls[0]["messages"] == (
        [{"role": "system", "content": "system"}] + history + [{"role": "user", "content": "Next"}]
    )
