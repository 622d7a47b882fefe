"""Errors raised by game operations.

``NotFoundError`` and ``InvalidInputError`` surface to callers. Oracle failures
never do: they are absorbed by :mod:`guesswho.oracle` fallbacks.
"""

from __future__ import annotations


class GameError(RuntimeError):
    """Base class for failures of a game operation."""


class NotFoundError(GameError, LookupError):
    """An identifier did not resolve."""

    kind = "Resource"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"{self.kind} {identifier} not found")


class SessionNotFoundError(NotFoundError):
    kind = "Game"


class CharacterNotFoundError(NotFoundError):
    kind = "Character"


class InvalidInputError(GameError, ValueError):
    """A request field was missing or malformed."""


class GameFinishedError(InvalidInputError):
    """The session has reached a terminal status and accepts no further moves."""

    def __init__(self, session_id: str, status: str) -> None:
        self.session_id = session_id
        self.status = status
        super().__init__(f"Game {session_id} is already over ({status})")
