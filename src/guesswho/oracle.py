"""Oracle client: the game's only window onto the external reasoning service.

Each operation is a single request/response round trip. Any failure (transport
error, malformed or invalid payload, timeout) is logged and replaced by the
operation's deterministic fallback, so callers always receive a result.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence, TypeVar

import structlog

from .core.catalog import Character, CharacterAttributes
from .core.context import ContextBuilder, OracleConfig
from .core.rules import GuessWhoRuleset
from .core.schemas import (
    FALLBACK_QUESTIONS,
    AnswerPayload,
    EliminationPayload,
    GuessPayload,
    QuestionPayload,
    SchemaValidationError,
    ShouldGuessPayload,
    create_default_answer_payload,
    create_default_elimination_payload,
)
from .core.store import HistoryEntry
from .providers.providers import ModelProvider, ProviderError, ProviderRequest
from .utils.rng import build_rng, pick

LOGGER = structlog.get_logger(__name__)

P = TypeVar("P")


@dataclass(frozen=True, slots=True)
class ResolvedGuess:
    """A guess that always names a real catalog character."""

    character_id: str
    character_name: str
    reasoning: str
    fallback: bool = False


class Oracle:
    """Async facade over a :class:`ModelProvider` with per-operation fallbacks."""

    def __init__(
        self,
        client: ModelProvider,
        *,
        config: Optional[OracleConfig] = None,
        builder: Optional[ContextBuilder] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._client = client
        self.config = config or (builder.config if builder else OracleConfig())
        self._builder = builder or ContextBuilder(self.config)
        self._rng = rng or build_rng(seed=self.config.seed)

    @property
    def rules(self) -> GuessWhoRuleset:
        return self.config.rules

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _call(self, request: ProviderRequest[Any], fallback: Callable[[], P]) -> P:
        log = LOGGER.bind(operation=request.operation, model=request.model)
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._client.call_operation, request),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            log.warning("oracle.fallback", code="timeout", timeout=self.config.timeout)
            return fallback()
        except SchemaValidationError as exc:
            log.warning("oracle.fallback", code="schema_error", error=str(exc))
            return fallback()
        except ProviderError as exc:
            log.warning("oracle.fallback", code="transport_error", error=str(exc))
            return fallback()
        except Exception as exc:
            log.error("oracle.fallback", code="unexpected_error", error=repr(exc))
            return fallback()
        capability = response.json_capability_used
        log.debug(
            "oracle.response",
            json_capability=capability.value if capability else None,
            retries=response.retries,
            usage=response.usage,
        )
        return response.payload

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def answer_question(self, question: str, attributes: CharacterAttributes) -> AnswerPayload:
        """Answer yes/no about the character described by ``attributes``."""
        request = self._builder.answer_question(question, attributes)
        return await self._call(request, create_default_answer_payload)

    async def generate_question(
        self,
        remaining: Sequence[Character],
        history: Sequence[HistoryEntry],
    ) -> QuestionPayload:
        """Propose the AI's next question; falls back to a canned question."""
        request = self._builder.generate_question(remaining, history)
        return await self._call(
            request,
            lambda: QuestionPayload(question=pick(self._rng, FALLBACK_QUESTIONS), reasoning="Fallback strategic question"),
        )

    async def make_guess(
        self,
        characters: Sequence[Character],
        history: Sequence[HistoryEntry],
    ) -> ResolvedGuess:
        """Guess the human's character. The result always references one of ``characters``."""
        if not characters:
            raise ValueError("make_guess requires at least one character")
        request = self._builder.make_guess(characters, history)
        payload: Optional[GuessPayload] = await self._call(request, lambda: None)
        if payload is None:
            return self._random_guess(characters, "Random guess due to service error")

        matched = _match_character(characters, payload)
        if matched is None:
            LOGGER.warning(
                "oracle.guess_unmatched",
                guessed_character_id=payload.guessed_character_id,
                character_name=payload.character_name,
            )
            return self._random_guess(characters, "Made a random guess due to analysis error")
        return ResolvedGuess(
            character_id=matched.id,
            character_name=matched.name,
            reasoning=payload.reasoning,
        )

    async def should_make_guess(
        self,
        characters: Sequence[Character],
        history: Sequence[HistoryEntry],
        turn_count: int,
    ) -> ShouldGuessPayload:
        """Decide whether the AI should guess now.

        Turn-count policy is applied first; the service is consulted only in
        between the early and forced thresholds.
        """
        decided = self.rules.pre_decision(turn_count)
        if decided is not None:
            return decided
        request = self._builder.should_guess(characters, history, turn_count)
        return await self._call(request, lambda: self.rules.fallback_decision(turn_count))

    async def process_response(
        self,
        characters: Sequence[Character],
        question: str,
        response: str,
        history: Sequence[HistoryEntry],
    ) -> EliminationPayload:
        """Infer which characters the human's answer rules out (names or ids)."""
        request = self._builder.process_response(characters, question, response, history)
        return await self._call(request, create_default_elimination_payload)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _random_guess(self, characters: Sequence[Character], reasoning: str) -> ResolvedGuess:
        choice = pick(self._rng, characters)
        return ResolvedGuess(
            character_id=choice.id,
            character_name=choice.name,
            reasoning=reasoning,
            fallback=True,
        )

    def close(self) -> None:
        self._client.close()


def _match_character(characters: Sequence[Character], payload: GuessPayload) -> Optional[Character]:
    guessed_id = (payload.guessed_character_id or "").strip()
    guessed_name = (payload.character_name or "").strip().lower()
    if guessed_id:
        for character in characters:
            if character.id == guessed_id:
                return character
    if guessed_name:
        for character in characters:
            if character.name.lower() == guessed_name:
                return character
    return None
