"""
Tests for the OpenAI-compatible providers.

Tests:
- Response format follows the provider's JSON capability
- Fenced JSON replies are parsed and validated
- Invalid replies surface as provider or schema errors
"""

from types import SimpleNamespace

import orjson
import pytest

from ..core.context import ContextBuilder, OracleConfig
from ..core.schemas import SchemaValidationError, YesNo
from ..providers.openrouter import OpenRouterClient
from ..providers.providers import JsonCapability, ProviderError
from ..providers.xai import XAIProvider


class FakeCompletions:
    """Stands in for ``client.chat.completions`` and records each call."""

    def __init__(self, content):
        self.content = content
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        data = {
            "choices": [{"message": {"role": "assistant", "content": self.content}}],
            "usage": {"total_tokens": 42},
        }
        return SimpleNamespace(model_dump=lambda: data)


class PromptOnlyProvider(XAIProvider):
    @property
    def json_capability(self) -> JsonCapability:
        return JsonCapability.NONE


def _install(provider, content):
    completions = FakeCompletions(content)
    provider._client = SimpleNamespace(chat=SimpleNamespace(completions=completions), close=lambda: None)
    return completions


@pytest.fixture
def answer_request(catalog):
    return ContextBuilder(OracleConfig()).answer_question("Glasses?", catalog.get("char_2").attributes)


class TestResponseFormat:
    """What each capability asks the API for."""

    def test_xai_uses_json_object_mode(self, answer_request):
        provider = XAIProvider(api_key="test-key")
        completions = _install(provider, '{"answer": "yes"}')

        provider.call_operation(answer_request)

        assert completions.calls[0]["response_format"] == {"type": "json_object"}

    def test_openrouter_sends_the_schema(self, answer_request):
        provider = OpenRouterClient(api_key="test-key", app_name="Guess Who")
        completions = _install(provider, '{"answer": "no"}')

        provider.call_operation(answer_request)

        response_format = completions.calls[0]["response_format"]
        assert response_format["type"] == "json_schema"
        assert response_format["json_schema"]["name"] == answer_request.schema_name
        assert response_format["json_schema"]["schema"] == answer_request.schema
        assert provider._default_headers["X-Title"] == "Guess Who"

    def test_prompt_only_provider_omits_response_format(self, answer_request):
        provider = PromptOnlyProvider(api_key="test-key")
        completions = _install(provider, '{"answer": "no"}')

        provider.call_operation(answer_request)

        assert "response_format" not in completions.calls[0]


class TestReplies:
    def test_fenced_reply_is_parsed(self, answer_request):
        provider = XAIProvider(api_key="test-key")
        _install(provider, "```json\n" + orjson.dumps({"answer": "Yes", "reasoning": "Gray hair"}).decode() + "\n```")

        response = provider.call_operation(answer_request)

        assert response.payload.answer is YesNo.YES
        assert response.payload.reasoning == "Gray hair"
        assert response.usage == {"total_tokens": 42}
        assert response.json_capability_used is JsonCapability.JSON_OBJECT

    def test_non_json_reply_is_a_provider_error(self, answer_request):
        provider = XAIProvider(api_key="test-key")
        _install(provider, "Sure! The answer is yes.")

        with pytest.raises(ProviderError):
            provider.call_operation(answer_request)

    def test_wrong_shape_is_a_schema_error(self, answer_request):
        provider = XAIProvider(api_key="test-key")
        _install(provider, "[1, 2, 3]")

        with pytest.raises(SchemaValidationError):
            provider.call_operation(answer_request)

    def test_missing_key_is_a_provider_error(self, monkeypatch):
        monkeypatch.delenv("XAI_API_KEY", raising=False)
        monkeypatch.delenv("GROK_API_KEY", raising=False)

        with pytest.raises(ProviderError):
            XAIProvider()
