"""
Tests for the turn-count policy.
"""

import pytest

from ..core.rules import DEFAULT_RULESET, GuessWhoRuleset, ruleset_from_mapping
from ..core.schemas import GameStatus


class TestGuessDecision:
    """Pre-filter and fallback bounds for the AI's guess decision."""

    @pytest.mark.parametrize("turns", [0, 1, 2])
    def test_too_early_never_guesses(self, turns):
        decision = DEFAULT_RULESET.pre_decision(turns)

        assert decision.should_guess is False
        assert decision.confidence == 0
        assert decision.reasoning == "Too early in the game, need more information"

    @pytest.mark.parametrize("turns", [3, 5, 7])
    def test_middle_game_defers_to_oracle(self, turns):
        assert DEFAULT_RULESET.pre_decision(turns) is None

    @pytest.mark.parametrize("turns", [8, 9, 20])
    def test_late_game_forces_guess(self, turns):
        decision = DEFAULT_RULESET.pre_decision(turns)

        assert decision.should_guess is True
        assert decision.confidence == 75

    def test_fallback_bounds(self):
        waiting = DEFAULT_RULESET.fallback_decision(5)
        guessing = DEFAULT_RULESET.fallback_decision(6)

        assert (waiting.should_guess, waiting.confidence) == (False, 30)
        assert (guessing.should_guess, guessing.confidence) == (True, 60)


class TestWrongGuessStatus:
    """Endgame after a wrong guess."""

    @pytest.mark.parametrize(
        "questions, expected",
        [
            (0, None),
            (9, None),
            (10, GameStatus.HUMAN_LOST),
            (14, GameStatus.HUMAN_LOST),
            (15, GameStatus.DRAW),
            (30, GameStatus.DRAW),
        ],
    )
    def test_human(self, questions, expected):
        assert DEFAULT_RULESET.wrong_guess_status(questions, human=True) is expected

    @pytest.mark.parametrize("questions, expected", [(9, None), (12, None), (15, GameStatus.DRAW)])
    def test_ai_only_draws(self, questions, expected):
        assert DEFAULT_RULESET.wrong_guess_status(questions, human=False) is expected


class TestRulesetConfig:
    def test_inconsistent_thresholds_rejected(self):
        with pytest.raises(ValueError):
            GuessWhoRuleset(min_guess_turns=9, forced_guess_turns=8)
        with pytest.raises(ValueError):
            GuessWhoRuleset(loss_question_limit=20, draw_question_limit=15)
        with pytest.raises(ValueError):
            GuessWhoRuleset(forced_guess_confidence=120)

    def test_mapping_overrides_known_keys(self):
        rules = ruleset_from_mapping({"forced_guess_turns": "10", "unknown": 1})

        assert rules.forced_guess_turns == 10
        assert rules.min_guess_turns == 3

    def test_empty_mapping_gives_defaults(self):
        assert ruleset_from_mapping(None) is DEFAULT_RULESET
        assert ruleset_from_mapping({}) is DEFAULT_RULESET
