"""
Tests for engine assembly, configuration and the terminal front end.
"""

import asyncio

import orjson
import pytest
import typer
from typer.testing import CliRunner

from ..core.context import ConfigError, OracleConfig, load_oracle_config
from ..core.schemas import GameStatus, Operation
from ..human_player import GameNarrator, HumanPlayerService, run_terminal_game
from ..providers.offline import OfflineProvider
from ..providers.providers import ProviderFactory
from ..services.cli import _load_config, app
from ..services.web_session import build_engine
from ..utils.rng import build_rng, pick_pair


class TestConfig:
    """JSON configuration loading."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_oracle_config(tmp_path / "absent.json")

        assert config == OracleConfig()
        assert config.timeout == 30.0
        assert config.provider == "xai"

    def test_file_overrides(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_bytes(
            orjson.dumps(
                {
                    "provider": "openrouter",
                    "model": "x-ai/grok-4",
                    "timeout": 12,
                    "seed": 4,
                    "temperatures": {"answer_question": 0.0, "bogus": 1.0},
                    "rules": {"draw_question_limit": 20},
                }
            )
        )

        config = load_oracle_config(path)

        assert config.provider == "openrouter"
        assert config.timeout == 12.0
        assert config.seed == 4
        assert config.temperature_for(Operation.ANSWER_QUESTION) == 0.0
        assert config.temperature_for(Operation.MAKE_GUESS) == 0.2
        assert config.rules.draw_question_limit == 20

    @pytest.mark.parametrize(
        "rules",
        [{"forced_guess_turns": 5}, {"loss_question_limit": 20}, {"min_guess_turns": "soon"}],
    )
    def test_unusable_rules_raise_config_error(self, tmp_path, rules):
        path = tmp_path / "config.json"
        path.write_bytes(orjson.dumps({"rules": rules}))

        with pytest.raises(ConfigError, match="Invalid rules"):
            load_oracle_config(path)


class TestBuildEngine:
    def test_falls_back_to_offline_without_api_key(self, monkeypatch):
        monkeypatch.delenv("XAI_API_KEY", raising=False)
        monkeypatch.delenv("GROK_API_KEY", raising=False)

        engine = build_engine(OracleConfig(provider="xai"))

        assert isinstance(engine.oracle._client, OfflineProvider)
        assert len(engine.catalog) == 20

    def test_unknown_provider_falls_back(self):
        engine = build_engine(OracleConfig(provider="does-not-exist"))

        assert isinstance(engine.oracle._client, OfflineProvider)

    def test_registered_providers(self):
        assert {"xai", "openrouter", "offline"} <= set(ProviderFactory.list_providers())

    def test_offline_game_is_playable(self):
        engine = build_engine(OracleConfig(provider="offline", seed=1))

        async def play():
            session = await engine.create_session(human_character_id="char_1", ai_character_id="char_2")
            answer = await engine.ask_question(session.id, "Hat?")
            question = await engine.request_ai_question(session.id)
            outcome = await engine.respond(session.id, "no")
            return answer, question, outcome

        answer, question, outcome = asyncio.run(play())

        assert answer.answer == "no"
        assert question.question
        assert outcome.ai_guessed is False
        assert outcome.eliminated == []


class ScriptedHuman(HumanPlayerService):
    """Answers every question with "no", plays ``actions`` in order and then names ``target``."""

    def __init__(self, narrator, target, actions=("g",), strike=()):
        super().__init__(narrator)
        self.target = target
        self.actions = list(actions)
        self.strike = list(strike)
        self.prompts = []

    def yes_no(self, question):
        self.prompts.append(question)
        return "no"

    def action(self):
        return self.actions.pop(0) if len(self.actions) > 1 else self.actions[0]

    def question(self):
        return "Does your character wear a hat?"

    def guess(self, characters):
        return next(character for character in characters if character.id == self.target)

    def eliminate(self, characters):
        return [character for character in characters if character.id in self.strike]


class TestTerminalGame:
    def test_human_can_win(self, engine, catalog):
        _, ai_character = pick_pair(build_rng(seed=5), catalog.list_all())
        narrator = GameNarrator()
        human = ScriptedHuman(narrator, ai_character.id)

        status = asyncio.run(run_terminal_game(engine, rng=build_rng(seed=5), narrator=narrator, service=human))

        assert status is GameStatus.HUMAN_WON
        assert human.prompts == ["Your answer"]

    def test_human_strikes_characters_from_the_board(self, engine, store, catalog):
        _, ai_character = pick_pair(build_rng(seed=5), catalog.list_all())
        strike = [c.id for c in catalog.list_all() if c.id != ai_character.id][:3]
        human = ScriptedHuman(GameNarrator(), ai_character.id, actions=("e", "b", "g"), strike=strike)

        status = asyncio.run(run_terminal_game(engine, rng=build_rng(seed=5), narrator=human.narrator, service=human))

        (session,) = store._sessions.values()
        assert status is GameStatus.HUMAN_WON
        assert set(strike) <= session.eliminated_characters
        assert human.prompts == ["Your answer"]


class TestCli:
    def test_characters_command(self):
        result = CliRunner().invoke(app, ["characters"])

        assert result.exit_code == 0
        assert "Sarah" in result.output
        assert "Daniel" in result.output

    def test_inconsistent_rules_exit_cleanly(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_bytes(orjson.dumps({"rules": {"forced_guess_turns": 5}}))

        with pytest.raises(typer.Exit) as excinfo:
            _load_config(path)

        assert excinfo.value.exit_code == 1
