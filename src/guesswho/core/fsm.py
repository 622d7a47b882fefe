"""Game state machine: turn alternation, elimination bookkeeping, endgame resolution.

States are ``active`` plus four terminal statuses. Each public coroutine on
:class:`GameEngine` is one transition and runs under a per-session lock, so two
overlapping requests on the same game cannot interleave, while different games
proceed in parallel.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .catalog import Character, CharacterCatalog
from .errors import GameFinishedError, InvalidInputError
from .rules import GuessWhoRuleset
from .schemas import QUESTION_KINDS, GameStatus, HistoryKind, Turn, YesNo
from .store import GameSession, HistoryEntry, SessionStore

if TYPE_CHECKING:  # pragma: no cover - import cycle guard for type checkers
    from ..oracle import Oracle

LOGGER = structlog.get_logger(__name__)

DRAW_MESSAGE = "Game ended in a draw due to turn limit"


@dataclass(slots=True)
class AnswerOutcome:
    """Result of the human asking a question."""

    answer: str
    reasoning: str


@dataclass(slots=True)
class QuestionOutcome:
    """The AI's next question."""

    question: str
    reasoning: str


@dataclass(slots=True)
class ResponseOutcome:
    """Result of the human answering the AI's question."""

    ai_guessed: bool
    eliminated: List[str] = field(default_factory=list)
    reasoning: str = ""
    guessed_character_id: Optional[str] = None
    guessed_character: Optional[str] = None
    correct: bool = False
    game_ended: bool = False
    status: GameStatus = GameStatus.ACTIVE
    message: Optional[str] = None


@dataclass(slots=True)
class HumanGuessOutcome:
    """Result of the human's final guess."""

    correct: bool
    ai_character_id: Optional[str]
    status: GameStatus
    continue_game: bool = False
    message: Optional[str] = None


@dataclass(slots=True)
class AIGuessOutcome:
    """Result of the AI's on-demand guess."""

    correct: bool
    guessed_character_id: str
    character_name: str
    reasoning: str
    status: GameStatus


class SessionUpdate(BaseModel):
    """Validated partial update for a session (generic merge)."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    human_character_id: Optional[str] = Field(None, alias="humanCharacterId")
    ai_character_id: Optional[str] = Field(None, alias="aiCharacterId")
    current_turn: Optional[Turn] = Field(None, alias="currentTurn")
    status: Optional[GameStatus] = None
    eliminated_characters: Optional[List[str]] = Field(None, alias="eliminatedCharacters")
    turn_count: Optional[int] = Field(None, alias="turnCount", ge=1)


def count_questions(history: Iterable[HistoryEntry]) -> int:
    """Combined number of human and AI questions."""
    return sum(1 for entry in history if entry.kind in QUESTION_KINDS)


def latest_of_kind(history: List[HistoryEntry], kind: HistoryKind) -> Optional[HistoryEntry]:
    """Last entry of ``kind`` in append order."""
    matches = [entry for entry in history if entry.kind is kind]
    if not matches:
        return None
    return max(matches, key=lambda entry: entry.sequence)


class GameEngine:
    """Owns session lifecycle and the rules governing every transition."""

    def __init__(
        self,
        *,
        store: SessionStore,
        catalog: CharacterCatalog,
        oracle: "Oracle",
        rules: Optional[GuessWhoRuleset] = None,
    ) -> None:
        self.store = store
        self.catalog = catalog
        self.oracle = oracle
        self.rules = rules or oracle.rules
        self._locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, session_id: str) -> asyncio.Lock:
        # Unknown ids raise before a lock is allocated for them.
        self.store.require(session_id)
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        return lock

    def _require_active(self, session: GameSession) -> None:
        if session.status.is_terminal:
            raise GameFinishedError(session.id, session.status.value)

    def _require_character(self, character_id: str) -> Character:
        return self.catalog.get(character_id)

    def _set_status(self, session: GameSession, status: GameStatus, **extra: Any) -> GameSession:
        # Terminal statuses are final.
        if session.status.is_terminal and status is not session.status:
            raise GameFinishedError(session.id, session.status.value)
        return self.store.update(session.id, status=status, **extra)

    # ------------------------------------------------------------------
    # Catalog and session management
    # ------------------------------------------------------------------

    def list_characters(self) -> List[Character]:
        return self.catalog.list_all()

    async def create_session(
        self,
        *,
        human_character_id: Optional[str] = None,
        ai_character_id: Optional[str] = None,
    ) -> GameSession:
        """Create an active session; supplied character ids must exist."""
        for character_id in (human_character_id, ai_character_id):
            if character_id is not None:
                self._require_character(character_id)
        session = self.store.create(
            human_character_id=human_character_id,
            ai_character_id=ai_character_id,
        )
        LOGGER.info(
            "engine.session_created",
            session_id=session.id,
            human_character_id=human_character_id,
            ai_character_id=ai_character_id,
        )
        return session

    async def get_session(self, session_id: str) -> GameSession:
        return self.store.require(session_id)

    async def get_history(self, session_id: str) -> List[HistoryEntry]:
        self.store.require(session_id)
        return self.store.get_history(session_id)

    async def update_session(self, session_id: str, updates: Mapping[str, Any]) -> GameSession:
        """Merge validated fields into a session.

        The eliminated set only grows, the turn count never decreases, and a
        terminal status cannot be changed.
        """
        try:
            parsed = SessionUpdate.model_validate(dict(updates))
        except ValidationError as exc:
            raise InvalidInputError(f"Invalid session update: {exc.errors()}") from exc
        changes = parsed.model_dump(exclude_unset=True)

        async with self._lock(session_id):
            session = self.store.require(session_id)
            fields: Dict[str, Any] = {}
            for key in ("human_character_id", "ai_character_id"):
                if key in changes:
                    if changes[key] is not None:
                        self._require_character(changes[key])
                    fields[key] = changes[key]
            if changes.get("current_turn") is not None:
                fields["current_turn"] = Turn(changes["current_turn"])
            if changes.get("status") is not None:
                status = GameStatus(changes["status"])
                if session.status.is_terminal and status is not session.status:
                    raise GameFinishedError(session.id, session.status.value)
                fields["status"] = status
            if changes.get("eliminated_characters") is not None:
                for character_id in changes["eliminated_characters"]:
                    self._require_character(character_id)
                fields["eliminated_characters"] = session.eliminated_characters | set(changes["eliminated_characters"])
            if changes.get("turn_count") is not None:
                if changes["turn_count"] < session.turn_count:
                    raise InvalidInputError("turnCount cannot decrease")
                fields["turn_count"] = changes["turn_count"]
            if not fields:
                return session
            LOGGER.info("engine.session_updated", session_id=session_id, fields=sorted(fields))
            return self.store.update(session_id, **fields)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def ask_question(self, session_id: str, question: Any) -> AnswerOutcome:
        """The human asks about the AI's character; the turn passes to the AI."""
        if not isinstance(question, str) or not question.strip():
            raise InvalidInputError("Question is required")
        question = question.strip()

        async with self._lock(session_id):
            session = self.store.require(session_id)
            self._require_active(session)
            if not session.ai_character_id:
                raise InvalidInputError("AI character not set")
            ai_character = self._require_character(session.ai_character_id)

            answer = await self.oracle.answer_question(question, ai_character.attributes)
            self.store.append_history(
                session_id,
                kind=HistoryKind.HUMAN_QUESTION,
                content=question,
                response=answer.answer.value,
            )
            self.store.update(
                session_id,
                current_turn=Turn.AI,
                turn_count=session.turn_count + 1,
            )
            LOGGER.info("engine.human_question", session_id=session_id, answer=answer.answer.value)
            return AnswerOutcome(answer=answer.answer.value, reasoning=answer.reasoning)

    async def request_ai_question(self, session_id: str) -> QuestionOutcome:
        """The AI asks its next question about the human's character."""
        async with self._lock(session_id):
            session = self.store.require(session_id)
            self._require_active(session)
            remaining = self.catalog.remaining(session.eliminated_characters)
            history = self.store.get_history(session_id)

            generated = await self.oracle.generate_question(remaining, history)
            self.store.append_history(
                session_id,
                kind=HistoryKind.AI_QUESTION,
                content=generated.question,
            )
            LOGGER.info("engine.ai_question", session_id=session_id, remaining=len(remaining))
            return QuestionOutcome(question=generated.question, reasoning=generated.reasoning)

    async def respond(self, session_id: str, response: Any) -> ResponseOutcome:
        """The human answers the AI's latest question.

        The AI eliminates what it can, then either guesses or hands the turn
        back to the human.
        """
        try:
            answer = YesNo.parse(response)
        except ValueError:
            raise InvalidInputError("Response must be 'yes' or 'no'") from None

        async with self._lock(session_id):
            session = self.store.require(session_id)
            self._require_active(session)
            history = self.store.get_history(session_id)
            latest_question = latest_of_kind(history, HistoryKind.AI_QUESTION)
            if latest_question is None:
                raise InvalidInputError("No AI question to respond to")

            self.store.append_history(session_id, kind=HistoryKind.HUMAN_RESPONSE, content=answer.value)
            characters = self.catalog.list_all()
            history = self.store.get_history(session_id)

            inference = await self.oracle.process_response(
                characters,
                latest_question.content,
                answer.value,
                history,
            )
            eliminated = self._resolve_eliminations(session_id, inference.eliminated_characters)
            if eliminated:
                names = ", ".join(self.catalog.get(character_id).name for character_id in eliminated)
                self.store.append_history(
                    session_id,
                    kind=HistoryKind.AI_ELIMINATION,
                    content=f'AI eliminated: {names} based on your "{answer.value}" response',
                )
                session = self.store.update(
                    session_id,
                    eliminated_characters=session.eliminated_characters | set(eliminated),
                )

            history = self.store.get_history(session_id)
            ai_turns = sum(1 for entry in history if entry.kind is HistoryKind.AI_QUESTION)
            decision = await self.oracle.should_make_guess(characters, history, ai_turns)
            log = LOGGER.bind(session_id=session_id, ai_turns=ai_turns, confidence=decision.confidence)

            if not decision.should_guess:
                self.store.update(session_id, current_turn=Turn.HUMAN)
                log.info("engine.ai_waits", eliminated=len(eliminated))
                return ResponseOutcome(
                    ai_guessed=False,
                    eliminated=eliminated,
                    reasoning=inference.reasoning,
                )

            guess = await self.oracle.make_guess(characters, history)
            self.store.append_history(
                session_id,
                kind=HistoryKind.AI_GUESS,
                content=f"AI guessed: {guess.character_name}",
            )
            outcome = ResponseOutcome(
                ai_guessed=True,
                eliminated=eliminated,
                reasoning=guess.reasoning,
                guessed_character_id=guess.character_id,
                guessed_character=guess.character_name,
            )
            if guess.character_id == session.human_character_id:
                self._set_status(session, GameStatus.AI_WON)
                outcome.correct = True
                outcome.game_ended = True
                outcome.status = GameStatus.AI_WON
                log.info("engine.ai_guess", correct=True, status=outcome.status.value)
                return outcome

            questions = count_questions(self.store.get_history(session_id))
            terminal = self.rules.wrong_guess_status(questions, human=False)
            if terminal is not None:
                self._set_status(session, terminal)
                outcome.game_ended = True
                outcome.status = terminal
                outcome.message = DRAW_MESSAGE
            else:
                self.store.update(session_id, current_turn=Turn.HUMAN)
            log.info("engine.ai_guess", correct=False, status=outcome.status.value, questions=questions)
            return outcome

    async def eliminate(self, session_id: str, character_ids: Any) -> List[str]:
        """Manual board bookkeeping: union ``character_ids`` into the eliminated set."""
        if not isinstance(character_ids, (list, tuple)) or not all(isinstance(item, str) for item in character_ids):
            raise InvalidInputError("characterIds must be an array of strings")

        async with self._lock(session_id):
            session = self.store.require(session_id)
            for character_id in character_ids:
                self._require_character(character_id)
            merged = session.eliminated_characters | set(character_ids)
            if merged != session.eliminated_characters:
                session = self.store.update(session_id, eliminated_characters=merged)
            return self.catalog.ordered_ids(session.eliminated_characters)

    async def human_guess(self, session_id: str, character_id: Any) -> HumanGuessOutcome:
        """The human names the AI's character.

        A wrong guess draws past the draw limit, loses past the loss limit,
        and otherwise hands the turn to the AI.
        """
        if not isinstance(character_id, str) or not character_id.strip():
            raise InvalidInputError("characterId is required")

        async with self._lock(session_id):
            session = self.store.require(session_id)
            self._require_active(session)
            guessed = self._require_character(character_id)
            correct = session.ai_character_id == guessed.id

            self.store.append_history(
                session_id,
                kind=HistoryKind.HUMAN_GUESS,
                content=f"Human guessed: {guessed.name}",
            )
            questions = count_questions(self.store.get_history(session_id))
            log = LOGGER.bind(session_id=session_id, questions=questions, correct=correct)

            if correct:
                self._set_status(session, GameStatus.HUMAN_WON)
                log.info("engine.human_guess", status=GameStatus.HUMAN_WON.value)
                return HumanGuessOutcome(
                    correct=True,
                    ai_character_id=session.ai_character_id,
                    status=GameStatus.HUMAN_WON,
                )

            terminal = self.rules.wrong_guess_status(questions, human=True)
            if terminal is not None:
                self._set_status(session, terminal)
                log.info("engine.human_guess", status=terminal.value)
                return HumanGuessOutcome(
                    correct=False,
                    ai_character_id=session.ai_character_id,
                    status=terminal,
                    message=DRAW_MESSAGE if terminal is GameStatus.DRAW else None,
                )

            self.store.update(session_id, current_turn=Turn.AI)
            log.info("engine.human_guess", status=GameStatus.ACTIVE.value)
            return HumanGuessOutcome(
                correct=False,
                ai_character_id=session.ai_character_id,
                status=GameStatus.ACTIVE,
                continue_game=True,
            )

    async def ai_guess(self, session_id: str) -> AIGuessOutcome:
        """The AI names the human's character on demand.

        Only a correct guess changes the status; a wrong one is free.
        """
        async with self._lock(session_id):
            session = self.store.require(session_id)
            self._require_active(session)
            if not session.human_character_id:
                raise InvalidInputError("No human character to guess")

            history = self.store.get_history(session_id)
            guess = await self.oracle.make_guess(self.catalog.list_all(), history)
            correct = guess.character_id == session.human_character_id
            status = session.status
            if correct:
                session = self._set_status(session, GameStatus.AI_WON)
                status = session.status

            self.store.append_history(
                session_id,
                kind=HistoryKind.AI_RESPONSE,
                content=f"I guess your character is: {guess.character_name}",
                response="correct" if correct else "incorrect",
            )
            LOGGER.info("engine.ai_final_guess", session_id=session_id, correct=correct, status=status.value)
            return AIGuessOutcome(
                correct=correct,
                guessed_character_id=guess.character_id,
                character_name=guess.character_name,
                reasoning=guess.reasoning,
                status=status,
            )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _resolve_eliminations(self, session_id: str, references: Iterable[str]) -> List[str]:
        resolved: List[str] = []
        unknown: List[str] = []
        for reference in references:
            character = self.catalog.resolve(reference)
            if character is None:
                unknown.append(str(reference))
            elif character.id not in resolved:
                resolved.append(character.id)
        if unknown:
            LOGGER.warning("engine.elimination_unresolved", session_id=session_id, references=unknown)
        return self.catalog.ordered_ids(resolved)
