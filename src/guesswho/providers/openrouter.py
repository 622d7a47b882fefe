"""OpenRouter provider: same OpenAI-compatible transport, strict JSON schema replies."""

from __future__ import annotations

import os
from typing import Any, Dict, Optional

from .providers import JsonCapability, ProviderFactory
from .xai import XAIProvider

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterClient(XAIProvider):
    """Routes oracle calls through OpenRouter and asks for schema-conforming JSON."""

    name = "openrouter"
    api_key_env = ("OPENROUTER_API_KEY",)
    default_base_url = DEFAULT_BASE_URL

    @property
    def json_capability(self) -> JsonCapability:
        return JsonCapability.JSON_SCHEMA

    def __init__(
        self,
        *,
        app_name: Optional[str] = None,
        site_url: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        self.app_name = app_name or os.getenv("OPENROUTER_APP_NAME")
        self.site_url = site_url or os.getenv("OPENROUTER_SITE_URL")
        super().__init__(**kwargs)

    def _build_default_headers(self, headers: Dict[str, str]) -> Dict[str, str]:
        merged: Dict[str, str] = {}
        if self.app_name:
            merged["X-Title"] = self.app_name
        if self.site_url:
            merged["HTTP-Referer"] = self.site_url
        merged.update(super()._build_default_headers(headers))
        return merged


# Register OpenRouter provider with the factory
ProviderFactory.register("openrouter", OpenRouterClient)
