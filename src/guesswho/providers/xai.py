"""xAI (Grok) provider using the OpenAI-compatible chat completions API."""

from __future__ import annotations

import os
import re
from typing import Any, Dict, Optional, TypeVar

import orjson
import structlog
from dotenv import load_dotenv
from openai import OpenAI
from pydantic import BaseModel

from ..core.schemas import SchemaValidationError, validate_payload
from .providers import (
    JsonCapability,
    ModelProvider,
    ProviderError,
    ProviderFactory,
    ProviderRequest,
    ProviderResponse,
)

load_dotenv()

LOGGER = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.x.ai/v1"
DEFAULT_MODEL = "grok-2-1212"
DEFAULT_TIMEOUT = 60.0

T = TypeVar("T", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class XAIProvider(ModelProvider):
    """Thin wrapper around Grok chat completions that validates JSON object replies."""

    name = "xai"
    api_key_env: tuple[str, ...] = ("XAI_API_KEY", "GROK_API_KEY")
    default_base_url = DEFAULT_BASE_URL

    @property
    def json_capability(self) -> JsonCapability:
        """Grok supports JSON object mode but not strict JSON schema."""
        return JsonCapability.JSON_OBJECT

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> None:
        self.api_key = api_key or self._api_key_from_env()
        if not self.api_key:
            raise ProviderError(f"{' or '.join(self.api_key_env)} is not set")

        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self.timeout = timeout
        self._default_headers = self._build_default_headers(headers or {})
        self._client = OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            default_headers=self._default_headers or None,
            **kwargs,
        )

    def close(self) -> None:
        """Close the underlying OpenAI client."""
        self._client.close()

    def call_operation(self, request: ProviderRequest[T]) -> ProviderResponse[T]:
        """Call the chat completions API and validate the JSON reply."""

        logger = LOGGER.bind(operation=request.operation, model=request.model, provider=self.name)

        create_kwargs: Dict[str, Any] = {
            "model": request.model,
            "messages": request.messages,
        }
        response_format = self._response_format(request)
        if response_format is not None:
            create_kwargs["response_format"] = response_format
        if request.temperature is not None:
            create_kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            create_kwargs["max_tokens"] = request.max_tokens
        if request.seed is not None:
            create_kwargs["seed"] = request.seed
        create_kwargs.update(request.metadata.get("options", {}))

        try:
            response = self._client.chat.completions.create(**create_kwargs)
        except Exception as exc:
            logger.error(f"{self.name}.api_error", error=str(exc))
            raise ProviderError(f"{self.name} API error: {exc}") from exc

        raw_response = response.model_dump()

        try:
            payload_model = self._parse_payload(request, raw_response)
        except SchemaValidationError as exc:
            logger.warning(
                f"{self.name}.schema_validation_failed",
                errors=getattr(exc, "errors", exc.args),
            )
            raise
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning(f"{self.name}.payload_parse_failed", error=str(exc))
            raise ProviderError(f"Failed to parse {self.name} payload: {exc}") from exc

        logger.info(
            f"{self.name}.call_success",
            usage=raw_response.get("usage"),
            temperature=request.temperature,
        )

        return ProviderResponse(
            payload=payload_model,
            raw_response=raw_response,
            usage=raw_response.get("usage"),
            retries=0,
            json_capability_used=self.json_capability,
        )

    # Internal helpers ------------------------------------------------------------------

    def _api_key_from_env(self) -> Optional[str]:
        for name in self.api_key_env:
            value = os.getenv(name)
            if value:
                return value
        return None

    def _build_default_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        return {str(k): str(v) for k, v in headers.items()}

    def _response_format(self, request: ProviderRequest[T]) -> Optional[Dict[str, Any]]:
        capability = self.json_capability
        if capability is JsonCapability.JSON_SCHEMA:
            return {
                "type": "json_schema",
                "json_schema": {"name": request.schema_name, "schema": request.schema},
            }
        if capability is JsonCapability.JSON_OBJECT:
            return {"type": "json_object"}
        # Schema is described in the prompt only.
        return None

    def _parse_payload(self, request: ProviderRequest[T], data: Dict[str, Any]) -> T:
        choices = data.get("choices")
        if not choices or not choices[0]:
            raise ValueError(f"{self.name} response missing 'choices'")
        message = choices[0].get("message")
        if not message:
            raise ValueError(f"{self.name} response missing 'message'")
        content = message.get("content")
        if content is None:
            raise ValueError(f"{self.name} response missing 'content'")

        content_text = self._extract_content_text(content)
        try:
            parsed_payload = orjson.loads(content_text)
        except orjson.JSONDecodeError as exc:
            raise ValueError(f"{self.name} content was not valid JSON: {exc}") from exc

        return validate_payload(operation=request.operation, payload=parsed_payload)  # type: ignore[return-value]

    @staticmethod
    def _extract_content_text(content: Any) -> str:
        if isinstance(content, list):
            fragments = []
            for item in content:
                if isinstance(item, dict):
                    text = item.get("text") or item.get("content")
                    if isinstance(text, str):
                        fragments.append(text)
                elif isinstance(item, str):
                    fragments.append(item)
            content = "".join(fragments)
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Unsupported or empty content format")
        text = content.strip()
        match = _FENCE_PATTERN.match(text)
        if match:
            text = match.group(1)
        return text


# Register xAI provider with the factory
ProviderFactory.register("xai", XAIProvider)
