"""Provider used when no model service is configured."""

from __future__ import annotations

from typing import Any, TypeVar

import structlog
from pydantic import BaseModel

from .providers import (
    JsonCapability,
    ModelProvider,
    ProviderError,
    ProviderFactory,
    ProviderRequest,
    ProviderResponse,
)

LOGGER = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


class OfflineProvider(ModelProvider):
    """Always unavailable, so every oracle operation resolves through its fallback."""

    def __init__(self, **_kwargs: Any) -> None:
        self.calls = 0

    @property
    def json_capability(self) -> JsonCapability:
        return JsonCapability.NONE

    def call_operation(self, request: ProviderRequest[T]) -> ProviderResponse[T]:
        self.calls += 1
        LOGGER.debug("offline.call_skipped", operation=request.operation)
        raise ProviderError("No model provider configured")

    def close(self) -> None:
        return None


ProviderFactory.register("offline", OfflineProvider)
