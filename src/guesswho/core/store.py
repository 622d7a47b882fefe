"""Session storage: game sessions and their append-only history logs."""

from __future__ import annotations

import dataclasses
import itertools
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Set

from .errors import SessionNotFoundError
from .schemas import GameStatus, HistoryKind, Turn


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class GameSession:
    """One play-through between the human and the AI."""

    id: str
    human_character_id: Optional[str] = None
    ai_character_id: Optional[str] = None
    current_turn: Turn = Turn.AI
    status: GameStatus = GameStatus.ACTIVE
    eliminated_characters: Set[str] = field(default_factory=set)
    turn_count: int = 1
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        return self.status is GameStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    """Immutable audit record. ``sequence`` orders entries; timestamps are informational."""

    id: str
    session_id: str
    sequence: int
    kind: HistoryKind
    content: str
    response: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)


class SessionStore(ABC):
    """Keyed storage for sessions and their history."""

    @abstractmethod
    def create(
        self,
        *,
        human_character_id: Optional[str] = None,
        ai_character_id: Optional[str] = None,
    ) -> GameSession:
        """Create an active session (AI moves first, turn count 1) with an empty history."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[GameSession]:
        """Return the session or ``None``."""

    @abstractmethod
    def update(self, session_id: str, **fields: Any) -> GameSession:
        """Merge ``fields`` into the session. Raises :class:`SessionNotFoundError`."""

    @abstractmethod
    def append_history(
        self,
        session_id: str,
        *,
        kind: HistoryKind,
        content: str,
        response: Optional[str] = None,
    ) -> HistoryEntry:
        """Append an entry to the end of the session's log."""

    @abstractmethod
    def get_history(self, session_id: str) -> List[HistoryEntry]:
        """Entries oldest first; empty when none."""

    def require(self, session_id: str) -> GameSession:
        session = self.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session


class InMemorySessionStore(SessionStore):
    """Volatile store backed by dictionaries.

    Sessions are copied on the way in and out so callers cannot mutate stored
    state except through :meth:`update`.
    """

    def __init__(self) -> None:
        self._sessions: Dict[str, GameSession] = {}
        self._history: Dict[str, List[HistoryEntry]] = {}
        self._sequence = itertools.count(1)

    def create(
        self,
        *,
        human_character_id: Optional[str] = None,
        ai_character_id: Optional[str] = None,
    ) -> GameSession:
        session = GameSession(
            id=uuid.uuid4().hex,
            human_character_id=human_character_id,
            ai_character_id=ai_character_id,
        )
        self._sessions[session.id] = session
        self._history[session.id] = []
        return _copy(session)

    def get(self, session_id: str) -> Optional[GameSession]:
        session = self._sessions.get(session_id)
        return _copy(session) if session is not None else None

    def update(self, session_id: str, **fields: Any) -> GameSession:
        existing = self._sessions.get(session_id)
        if existing is None:
            raise SessionNotFoundError(session_id)
        updated = dataclasses.replace(existing, **fields)
        self._sessions[session_id] = _copy(updated)
        return updated

    def append_history(
        self,
        session_id: str,
        *,
        kind: HistoryKind,
        content: str,
        response: Optional[str] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=uuid.uuid4().hex,
            session_id=session_id,
            sequence=next(self._sequence),
            kind=HistoryKind(kind),
            content=content,
            response=response,
        )
        # An unknown session gets a log of its own rather than an error.
        self._history.setdefault(session_id, []).append(entry)
        return entry

    def get_history(self, session_id: str) -> List[HistoryEntry]:
        return list(self._history.get(session_id, ()))

    def __len__(self) -> int:
        return len(self._sessions)


def _copy(session: GameSession) -> GameSession:
    return dataclasses.replace(session, eliminated_characters=set(session.eliminated_characters))
