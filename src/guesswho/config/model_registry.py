"""
Centralized registry of oracle providers and the models they offer.

This file is the single source of truth for the provider/model picker in the
front end. Add new providers or models here to make them selectable.
"""

from typing import Dict, List, TypedDict


class ProviderInfo(TypedDict):
    """Information about an AI provider."""
    name: str
    display_name: str
    models: List[str]


MODEL_REGISTRY: Dict[str, ProviderInfo] = {
    "xai": {
        "name": "xai",
        "display_name": "xAI (Grok)",
        "models": [
            "grok-2-1212",
            "grok-3-mini",
        ],
    },
    "openrouter": {
        "name": "openrouter",
        "display_name": "OpenRouter",
        "models": [
            "x-ai/grok-4",
            "openai/gpt-4o-mini",
            "google/gemini-2.5-flash",
            "anthropic/claude-sonnet-4.5",
        ],
    },
    "offline": {
        "name": "offline",
        "display_name": "Offline (fallback play)",
        "models": [],
    },
}


def get_all_providers() -> List[ProviderInfo]:
    """Get list of all available providers with their models."""
    return list(MODEL_REGISTRY.values())


def get_provider_models(provider_name: str) -> List[str]:
    provider = MODEL_REGISTRY.get(provider_name)
    return provider["models"] if provider else []
