"""
Pytest fixtures for Guess Who tests.
"""

import time
from collections import defaultdict
from typing import Any, Dict, List

import pytest

from ..core.catalog import CharacterCatalog, default_catalog
from ..core.context import OracleConfig
from ..core.fsm import GameEngine
from ..core.schemas import HistoryKind, Operation, validate_payload
from ..core.store import InMemorySessionStore
from ..oracle import Oracle
from ..providers.offline import OfflineProvider
from ..providers.providers import (
    JsonCapability,
    ModelProvider,
    ProviderError,
    ProviderRequest,
    ProviderResponse,
)


class ScriptedProvider(ModelProvider):
    """Fake model service replaying canned JSON replies per operation.

    Replies are consumed in order; the last one repeats. A reply that is an
    exception instance is raised instead. Operations with no script fail with
    :class:`ProviderError`.
    """

    def __init__(self) -> None:
        self.replies: Dict[str, List[Any]] = defaultdict(list)
        self.calls: List[ProviderRequest] = []
        self.closed = False

    @property
    def json_capability(self) -> JsonCapability:
        return JsonCapability.JSON_OBJECT

    def script(self, operation: Operation, *replies: Any) -> "ScriptedProvider":
        self.replies[operation.value].extend(replies)
        return self

    def calls_for(self, operation: Operation) -> List[ProviderRequest]:
        return [request for request in self.calls if request.operation == operation.value]

    def call_operation(self, request: ProviderRequest) -> ProviderResponse:
        self.calls.append(request)
        queue = self.replies.get(request.operation)
        if not queue:
            raise ProviderError(f"No scripted reply for {request.operation}")
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, BaseException):
            raise reply
        payload = validate_payload(operation=request.operation, payload=reply)
        return ProviderResponse(
            payload=payload,
            raw_response={"scripted": reply},
            usage=None,
            json_capability_used=self.json_capability,
        )

    def close(self) -> None:
        self.closed = True


class SlowProvider(OfflineProvider):
    """Unavailable, but only after blocking for ``delay`` seconds."""

    def __init__(self, delay: float) -> None:
        super().__init__()
        self.delay = delay

    def call_operation(self, request: ProviderRequest) -> ProviderResponse:
        time.sleep(self.delay)
        return super().call_operation(request)


@pytest.fixture
def catalog() -> CharacterCatalog:
    """The standard 20-character roster."""
    return default_catalog()


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def config() -> OracleConfig:
    """Seeded config with a short timeout."""
    return OracleConfig(seed=7, timeout=2.0)


@pytest.fixture
def oracle(provider: ScriptedProvider, config: OracleConfig) -> Oracle:
    return Oracle(provider, config=config)


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def engine(store: InMemorySessionStore, catalog: CharacterCatalog, oracle: Oracle) -> GameEngine:
    """Engine wired to the scripted provider."""
    return GameEngine(store=store, catalog=catalog, oracle=oracle)


def seed_history(store: InMemorySessionStore, session_id: str, *, human_questions: int = 0, ai_questions: int = 0) -> None:
    """Append question entries directly, bypassing the engine."""
    for index in range(human_questions):
        store.append_history(session_id, kind=HistoryKind.HUMAN_QUESTION, content=f"Human question {index + 1}?", response="no")
    for index in range(ai_questions):
        store.append_history(session_id, kind=HistoryKind.AI_QUESTION, content=f"AI question {index + 1}?")
