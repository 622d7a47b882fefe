"""Turn-count policy for ending a game.

Without these thresholds two strategy-less players (for instance an oracle that
keeps falling back to random guesses) could loop forever; the limits guarantee
termination.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from .schemas import GameStatus, ShouldGuessPayload


@dataclass(frozen=True)
class GuessWhoRuleset:
    """Policy constants shared by the state machine and the oracle pre-filter."""

    min_guess_turns: int = 3  # below this the AI never guesses
    forced_guess_turns: int = 8  # at or above this the AI always guesses
    fallback_guess_turns: int = 6  # oracle unavailable: guess from here on
    loss_question_limit: int = 10  # wrong human guess at or above this loses
    draw_question_limit: int = 15  # wrong guess at or above this draws
    forced_guess_confidence: int = 75
    fallback_guess_confidence: int = 60
    fallback_wait_confidence: int = 30

    def __post_init__(self) -> None:
        if not (0 <= self.min_guess_turns <= self.forced_guess_turns):
            raise ValueError("min_guess_turns must be between 0 and forced_guess_turns")
        if not (self.min_guess_turns <= self.fallback_guess_turns <= self.forced_guess_turns):
            raise ValueError("fallback_guess_turns must lie between min_guess_turns and forced_guess_turns")
        if self.loss_question_limit > self.draw_question_limit:
            raise ValueError("loss_question_limit cannot exceed draw_question_limit")
        for name in ("forced_guess_confidence", "fallback_guess_confidence", "fallback_wait_confidence"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be within 0..100")

    def pre_decision(self, turn_count: int) -> Optional[ShouldGuessPayload]:
        """Decide without consulting the oracle, or return ``None`` when the oracle should be asked."""
        if turn_count < self.min_guess_turns:
            return ShouldGuessPayload(
                should_guess=False,
                reasoning="Too early in the game, need more information",
                confidence=0,
            )
        if turn_count >= self.forced_guess_turns:
            return ShouldGuessPayload(
                should_guess=True,
                reasoning="Many turns have passed, time to make a strategic guess",
                confidence=self.forced_guess_confidence,
            )
        return None

    def fallback_decision(self, turn_count: int) -> ShouldGuessPayload:
        """Decision used when the oracle is unavailable."""
        if turn_count >= self.fallback_guess_turns:
            return ShouldGuessPayload(
                should_guess=True,
                reasoning="Fallback: enough turns have passed",
                confidence=self.fallback_guess_confidence,
            )
        return ShouldGuessPayload(
            should_guess=False,
            reasoning="Fallback: need more information",
            confidence=self.fallback_wait_confidence,
        )

    def wrong_guess_status(self, question_count: int, *, human: bool) -> Optional[GameStatus]:
        """Terminal status after a wrong guess, or ``None`` if play continues.

        Human wrong guesses draw at the draw limit and lose at the loss limit.
        AI wrong guesses (while answering a response) only draw.
        """
        if question_count >= self.draw_question_limit:
            return GameStatus.DRAW
        if human and question_count >= self.loss_question_limit:
            return GameStatus.HUMAN_LOST
        return None


DEFAULT_RULESET = GuessWhoRuleset()


def ruleset_from_mapping(data: Optional[Mapping[str, Any]]) -> GuessWhoRuleset:
    """Build a ruleset from config overrides, ignoring unknown keys.

    Overrides sit on top of the defaults and the combined ruleset must still
    validate; ``ValueError`` otherwise.
    """
    if not data:
        return DEFAULT_RULESET
    known = {item.name for item in fields(GuessWhoRuleset)}
    overrides: Dict[str, int] = {}
    for key, value in data.items():
        if key in known:
            overrides[key] = int(value)
    return GuessWhoRuleset(**overrides)
