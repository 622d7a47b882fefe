"""LLM provider implementations."""

from . import offline, openrouter, providers, xai

# Ensure all providers are imported so they can self-register
_ = (offline, openrouter, providers, xai)

__all__ = ["offline", "openrouter", "providers", "xai"]
