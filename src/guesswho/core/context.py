"""Prompt builders for oracle requests and the JSON config loader."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import orjson
from pydantic import BaseModel

from ..providers.providers import ProviderRequest
from .catalog import Character, CharacterAttributes
from .rules import DEFAULT_RULESET, GuessWhoRuleset, ruleset_from_mapping
from .schemas import PAYLOAD_MODELS, HistoryKind, Operation, QUESTION_KINDS
from .store import HistoryEntry

DEFAULT_CONFIG_PATH = Path("config/config.local.json")
DEFAULT_PROVIDER = "xai"
DEFAULT_MODEL = "grok-2-1212"
DEFAULT_ORACLE_TIMEOUT = 30.0


class ConfigError(ValueError):
    """The configuration file holds values that cannot be used."""


DEFAULT_TEMPERATURES: Dict[str, float] = {
    Operation.ANSWER_QUESTION.value: 0.1,
    Operation.GENERATE_QUESTION.value: 0.3,
    Operation.MAKE_GUESS.value: 0.2,
    Operation.SHOULD_GUESS.value: 0.3,
    Operation.PROCESS_RESPONSE.value: 0.3,
}

DEFAULT_MAX_TOKENS: Dict[str, int] = {
    Operation.PROCESS_RESPONSE.value: 500,
}

SYSTEM_PROMPTS: Dict[str, str] = {
    Operation.ANSWER_QUESTION.value: (
        "You are an expert Guess Who player. Always respond with valid JSON containing "
        "'answer' (yes/no) and 'reasoning' fields."
    ),
    Operation.GENERATE_QUESTION.value: (
        "You are a strategic Guess Who AI player. Generate questions that optimally "
        "eliminate characters. Always respond with valid JSON."
    ),
    Operation.MAKE_GUESS.value: (
        "You are a strategic Guess Who AI player making a final guess. Analyze the "
        "conversation history carefully and make the most logical choice. Always respond with valid JSON."
    ),
    Operation.SHOULD_GUESS.value: (
        "You are a strategic AI deciding when to make a final guess in Guess Who. "
        "Be strategic about timing. Always respond with valid JSON."
    ),
}


@dataclass(slots=True)
class OracleConfig:
    """Runtime configuration for the oracle and its provider."""

    provider: str = DEFAULT_PROVIDER
    model: str = DEFAULT_MODEL
    timeout: float = DEFAULT_ORACLE_TIMEOUT
    seed: Optional[int] = None
    temperatures: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TEMPERATURES))
    max_tokens: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_MAX_TOKENS))
    headers: Dict[str, str] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    rules: GuessWhoRuleset = DEFAULT_RULESET

    def temperature_for(self, operation: Operation) -> Optional[float]:
        return self.temperatures.get(operation.value)

    def max_tokens_for(self, operation: Operation) -> Optional[int]:
        return self.max_tokens.get(operation.value)


def load_oracle_config(path: Path = DEFAULT_CONFIG_PATH) -> OracleConfig:
    """Load oracle configuration from disk, falling back to defaults."""

    if not path.exists():
        return OracleConfig()

    data = orjson.loads(path.read_bytes())

    temperatures = dict(DEFAULT_TEMPERATURES)
    for key, value in (data.get("temperatures") or {}).items():
        try:
            temperatures[Operation(str(key).upper()).value] = float(value)
        except (ValueError, TypeError):
            continue

    max_tokens = dict(DEFAULT_MAX_TOKENS)
    for key, value in (data.get("max_tokens") or {}).items():
        try:
            max_tokens[Operation(str(key).upper()).value] = int(value)
        except (ValueError, TypeError):
            continue

    headers = {
        str(k): str(v)
        for k, v in (data.get("headers") or {}).items()
        if isinstance(k, str)
    }

    seed = data.get("seed")

    try:
        rules = ruleset_from_mapping(data.get("rules"))
    except (ValueError, TypeError) as exc:
        raise ConfigError(f"Invalid rules in {path}: {exc}") from exc

    return OracleConfig(
        provider=str(data.get("provider", DEFAULT_PROVIDER)),
        model=str(data.get("model", DEFAULT_MODEL)),
        timeout=float(data.get("timeout", DEFAULT_ORACLE_TIMEOUT)),
        seed=int(seed) if seed is not None else None,
        temperatures=temperatures,
        max_tokens=max_tokens,
        headers=headers,
        options=dict(data.get("options") or {}),
        rules=rules,
    )


def _attributes_json(attributes: CharacterAttributes) -> str:
    return orjson.dumps(attributes.to_dict()).decode("utf-8")


def _character_lines(characters: Iterable[Character], *, with_ids: bool = False) -> str:
    lines = []
    for character in characters:
        label = f"{character.name} (ID: {character.id})" if with_ids else character.name
        lines.append(f"{label}: {_attributes_json(character.attributes)}")
    return "\n".join(lines)


def previous_questions(history: Sequence[HistoryEntry]) -> List[str]:
    """Every question asked so far by either side, in order."""
    return [entry.content for entry in history if entry.kind in QUESTION_KINDS]


def conversation_lines(history: Sequence[HistoryEntry]) -> List[str]:
    """Pair each AI question with the human response at the same position."""
    questions = [entry for entry in history if entry.kind is HistoryKind.AI_QUESTION]
    responses = [entry for entry in history if entry.kind is HistoryKind.HUMAN_RESPONSE]
    lines = []
    for index, question in enumerate(questions):
        answer = responses[index].content if index < len(responses) else "no response"
        lines.append(f'AI asked: "{question.content}" - Player answered: "{answer}"')
    return lines


class ContextBuilder:
    """Builds one :class:`ProviderRequest` per oracle operation."""

    def __init__(self, config: Optional[OracleConfig] = None) -> None:
        self.config = config or OracleConfig()

    def _request(self, operation: Operation, prompt: str) -> ProviderRequest[Any]:
        model: type[BaseModel] = PAYLOAD_MODELS[operation]
        messages: List[Dict[str, Any]] = []
        system = SYSTEM_PROMPTS.get(operation.value)
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return ProviderRequest(
            operation=operation.value,
            model=self.config.model,
            messages=messages,
            schema_name=model.__name__,
            schema=model.model_json_schema(by_alias=True),
            temperature=self.config.temperature_for(operation),
            max_tokens=self.config.max_tokens_for(operation),
            seed=self.config.seed,
            metadata={"options": dict(self.config.options)},
        )

    def answer_question(self, question: str, attributes: CharacterAttributes) -> ProviderRequest[Any]:
        prompt = "\n".join(
            [
                "You are playing Guess Who. The player is asking about a character with these attributes:",
                "",
                "Character Attributes:",
                orjson.dumps(attributes.to_dict(), option=orjson.OPT_INDENT_2).decode("utf-8"),
                "",
                f'Player\'s Question: "{question}"',
                "",
                'Answer ONLY "yes" or "no" according to whether the question is true for this character, '
                "and give brief reasoning.",
                "",
                "Respond with JSON in this exact format:",
                '{"answer": "yes" or "no", "reasoning": "Brief explanation of why this answer is correct"}',
            ]
        )
        return self._request(Operation.ANSWER_QUESTION, prompt)

    def generate_question(
        self,
        remaining: Sequence[Character],
        history: Sequence[HistoryEntry],
    ) -> ProviderRequest[Any]:
        asked = previous_questions(history)
        prompt = "\n".join(
            [
                "You are an AI playing Guess Who. Ask a strategic question that narrows down the remaining characters.",
                "",
                f"Remaining Characters ({len(remaining)}):",
                _character_lines(remaining),
                "",
                "Previous Questions Asked:",
                "\n".join(asked) if asked else "None",
                "",
                "Generate a yes/no question that splits the remaining characters roughly in half. "
                "Never repeat a question that has already been asked.",
                "",
                "Respond with JSON in this exact format:",
                '{"question": "Your strategic question here", "reasoning": "Why this question is strategically optimal"}',
            ]
        )
        return self._request(Operation.GENERATE_QUESTION, prompt)

    def make_guess(
        self,
        characters: Sequence[Character],
        history: Sequence[HistoryEntry],
    ) -> ProviderRequest[Any]:
        conversation = conversation_lines(history)
        prompt = "\n".join(
            [
                "You are an AI playing Guess Who. Based on the conversation history, make a final guess "
                "about the player's character.",
                "",
                "Available Characters:",
                _character_lines(characters, with_ids=True),
                "",
                "Conversation History:",
                "\n".join(conversation) if conversation else "No conversation yet",
                "",
                "Pick the character that best matches the player's answers.",
                "",
                "Respond with JSON in this exact format:",
                '{"guessedCharacterId": "the character ID you are guessing", "characterName": "the character name", '
                '"reasoning": "Why this character matches the conversation"}',
            ]
        )
        return self._request(Operation.MAKE_GUESS, prompt)

    def should_guess(
        self,
        characters: Sequence[Character],
        history: Sequence[HistoryEntry],
        turn_count: int,
    ) -> ProviderRequest[Any]:
        conversation = conversation_lines(history)
        prompt = "\n".join(
            [
                "You are an AI playing Guess Who. Decide whether you have enough information to make a "
                "confident guess about the player's character.",
                "",
                f"Available Characters ({len(characters)} total):",
                _character_lines(characters),
                "",
                f"Conversation History ({turn_count} turns):",
                "\n".join(conversation) if conversation else "No conversation yet",
                "",
                "Consider how many characters the answers rule out, whether there is a clear frontrunner, "
                "and timing (not too early, not too late).",
                "",
                "Respond with JSON in this exact format:",
                '{"shouldGuess": true or false, "reasoning": "Explanation of your decision", '
                '"confidence": number from 0-100}',
            ]
        )
        return self._request(Operation.SHOULD_GUESS, prompt)

    def process_response(
        self,
        characters: Sequence[Character],
        question: str,
        response: str,
        history: Sequence[HistoryEntry],
    ) -> ProviderRequest[Any]:
        prompt = "\n".join(
            [
                f'You are playing Guess Who and just asked: "{question}"',
                "",
                f'The player responded: "{response}"',
                "",
                "Which characters should you eliminate from your board?",
                "",
                "Available characters:",
                "\n".join(f"- {c.name}: {_attributes_json(c.attributes)}" for c in characters),
                "",
                "Game history:",
                "\n".join(f"{entry.kind.value}: {entry.content}" for entry in history),
                "",
                "Think step by step:",
                f'1. What does the "{response}" answer tell you about the player\'s character?',
                "2. Which characters does it rule out?",
                "3. What is your reasoning?",
                "",
                "Respond with JSON:",
                '{"eliminatedCharacters": ["character names to eliminate"], '
                '"reasoning": "why you eliminated these characters"}',
            ]
        )
        return self._request(Operation.PROCESS_RESPONSE, prompt)


def config_summary(config: OracleConfig) -> Mapping[str, Any]:
    """Loggable view of the config (no secrets)."""
    return {
        "provider": config.provider,
        "model": config.model,
        "timeout": config.timeout,
        "seed": config.seed,
    }
