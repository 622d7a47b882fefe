"""Pydantic contracts for oracle payloads and the game's enumerations."""

from enum import Enum
from typing import Any, List, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class Turn(str, Enum):
    """Side expected to act next."""
    HUMAN = "human"
    AI = "ai"


class GameStatus(str, Enum):
    """Session status. Every value but ACTIVE is terminal."""
    ACTIVE = "active"
    HUMAN_WON = "human_won"
    HUMAN_LOST = "human_lost"
    AI_WON = "ai_won"
    DRAW = "draw"

    @property
    def is_terminal(self) -> bool:
        return self is not GameStatus.ACTIVE


class HistoryKind(str, Enum):
    """Kinds of history entries."""
    HUMAN_QUESTION = "human_question"
    AI_QUESTION = "ai_question"
    HUMAN_RESPONSE = "human_response"
    AI_RESPONSE = "ai_response"
    HUMAN_GUESS = "human_guess"
    AI_GUESS = "ai_guess"
    AI_ELIMINATION = "ai_elimination"


QUESTION_KINDS = frozenset({HistoryKind.HUMAN_QUESTION, HistoryKind.AI_QUESTION})


class YesNo(str, Enum):
    """Answer values."""
    YES = "yes"
    NO = "no"

    @classmethod
    def parse(cls, value: Any) -> "YesNo":
        """Strictly parse a human-supplied yes/no value."""
        normalized = str(value or "").strip().lower()
        return cls(normalized)


class Operation(str, Enum):
    """Oracle operations."""
    ANSWER_QUESTION = "ANSWER_QUESTION"
    GENERATE_QUESTION = "GENERATE_QUESTION"
    MAKE_GUESS = "MAKE_GUESS"
    SHOULD_GUESS = "SHOULD_GUESS"
    PROCESS_RESPONSE = "PROCESS_RESPONSE"


DEFAULT_QUESTION = "Does your character have brown hair?"

FALLBACK_QUESTIONS = (
    "Does your character wear glasses?",
    "Does your character have facial hair?",
    "Is your character male?",
    "Does your character have brown hair?",
    "Is your character young?",
)


class AnswerPayload(BaseModel):
    """Payload for ANSWER_QUESTION."""

    answer: YesNo = YesNo.NO
    reasoning: str = "Based on character attributes"

    @field_validator("answer", mode="before")
    @classmethod
    def _normalize_answer(cls, value: Any) -> YesNo:
        # Anything that is not an explicit yes counts as no.
        return YesNo.YES if str(value or "").strip().lower() == "yes" else YesNo.NO

    @field_validator("reasoning", mode="before")
    @classmethod
    def _default_reasoning(cls, value: Any) -> Any:
        return value or "Based on character attributes"


class QuestionPayload(BaseModel):
    """Payload for GENERATE_QUESTION."""

    question: str = DEFAULT_QUESTION
    reasoning: str = "Strategic question to eliminate characters"

    @field_validator("question", mode="before")
    @classmethod
    def _default_question(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_QUESTION
        return value

    @field_validator("reasoning", mode="before")
    @classmethod
    def _default_reasoning(cls, value: Any) -> Any:
        return value or "Strategic question to eliminate characters"


class GuessPayload(BaseModel):
    """Payload for MAKE_GUESS. Either field may identify the character."""

    model_config = ConfigDict(populate_by_name=True)

    guessed_character_id: Optional[str] = Field(None, alias="guessedCharacterId")
    character_name: Optional[str] = Field(None, alias="characterName")
    reasoning: str = "Based on conversation analysis"

    @field_validator("reasoning", mode="before")
    @classmethod
    def _default_reasoning(cls, value: Any) -> Any:
        return value or "Based on conversation analysis"


class ShouldGuessPayload(BaseModel):
    """Payload for SHOULD_GUESS."""

    model_config = ConfigDict(populate_by_name=True)

    should_guess: bool = Field(False, alias="shouldGuess")
    reasoning: str = "Strategic timing analysis"
    confidence: int = Field(50, ge=0, le=100)

    @field_validator("should_guess", mode="before")
    @classmethod
    def _strict_true(cls, value: Any) -> bool:
        return value is True

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> int:
        if value is None:
            return 50
        try:
            number = int(float(value))
        except (TypeError, ValueError):
            return 50
        return max(0, min(100, number))

    @field_validator("reasoning", mode="before")
    @classmethod
    def _default_reasoning(cls, value: Any) -> Any:
        return value or "Strategic timing analysis"


class EliminationPayload(BaseModel):
    """Payload for PROCESS_RESPONSE: characters (names or ids) to drop."""

    model_config = ConfigDict(populate_by_name=True)

    eliminated_characters: List[str] = Field(default_factory=list, alias="eliminatedCharacters")
    reasoning: str = "AI processed your response"

    @field_validator("eliminated_characters", mode="before")
    @classmethod
    def _coerce_list(cls, value: Any) -> List[str]:
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value if item is not None]

    @field_validator("reasoning", mode="before")
    @classmethod
    def _default_reasoning(cls, value: Any) -> Any:
        return value or "AI processed your response"


OraclePayload = Union[
    AnswerPayload,
    QuestionPayload,
    GuessPayload,
    ShouldGuessPayload,
    EliminationPayload,
]

PAYLOAD_MODELS = {
    Operation.ANSWER_QUESTION: AnswerPayload,
    Operation.GENERATE_QUESTION: QuestionPayload,
    Operation.MAKE_GUESS: GuessPayload,
    Operation.SHOULD_GUESS: ShouldGuessPayload,
    Operation.PROCESS_RESPONSE: EliminationPayload,
}


class SchemaValidationError(Exception):
    """Raised when a payload fails schema validation."""
    def __init__(self, operation: str, errors: list):
        self.operation = operation
        self.errors = errors
        super().__init__(f"Validation failed for {operation} operation: {errors}")


def validate_payload(*, operation: str, payload: Any) -> OraclePayload:
    """Validate an oracle payload and return the structured model or raise SchemaValidationError."""
    try:
        model = PAYLOAD_MODELS[Operation(operation)]
    except (KeyError, ValueError) as exc:
        raise SchemaValidationError(str(operation), [f"Unknown operation: {operation}"]) from exc
    if not isinstance(payload, dict):
        raise SchemaValidationError(str(operation), [f"Expected a JSON object, got {type(payload).__name__}"])
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise SchemaValidationError(str(operation), e.errors())


def create_default_answer_payload() -> AnswerPayload:
    """Create the fallback answer."""
    return AnswerPayload(answer=YesNo.NO, reasoning="Unable to process question at this time")


def create_default_elimination_payload(reasoning: str = "Error processing response") -> EliminationPayload:
    """Create the fallback elimination (nothing eliminated)."""
    return EliminationPayload(eliminated_characters=[], reasoning=reasoning)


def serialize_for_logging(obj: BaseModel) -> str:
    """Serialize Pydantic models to JSON string for logging."""
    return orjson.dumps(obj.model_dump(mode="json", by_alias=True)).decode("utf-8")
