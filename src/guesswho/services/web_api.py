"""FastAPI application exposing the Guess Who game to the front end."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from ..config.model_registry import get_all_providers
from ..core.catalog import Character
from ..core.errors import GameFinishedError, InvalidInputError, NotFoundError
from ..core.fsm import (
    AIGuessOutcome,
    GameEngine,
    HumanGuessOutcome,
    ResponseOutcome,
)
from ..core.store import GameSession, HistoryEntry

LOGGER = structlog.get_logger(__name__)


class SessionCreate(BaseModel):
    """Payload for creating a new game."""

    model_config = ConfigDict(populate_by_name=True)

    human_character_id: Optional[str] = Field(None, alias="humanCharacterId")
    ai_character_id: Optional[str] = Field(None, alias="aiCharacterId")


class QuestionSubmit(BaseModel):
    question: Any = None


class ResponseSubmit(BaseModel):
    response: Any = None


class EliminateSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    character_ids: Any = Field(None, alias="characterIds")


class GuessSubmit(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    character_id: Any = Field(None, alias="characterId")


def _serialize_character(character: Character) -> Dict[str, Any]:
    return character.to_dict()


def _serialize_session(engine: GameEngine, session: GameSession) -> Dict[str, Any]:
    return {
        "id": session.id,
        "humanCharacterId": session.human_character_id,
        "aiCharacterId": session.ai_character_id,
        "currentTurn": session.current_turn.value,
        "status": session.status.value,
        "eliminatedCharacters": engine.catalog.ordered_ids(session.eliminated_characters),
        "turnCount": session.turn_count,
        "createdAt": session.created_at.isoformat(),
    }


def _serialize_history(entry: HistoryEntry) -> Dict[str, Any]:
    return {
        "id": entry.id,
        "gameId": entry.session_id,
        "sequence": entry.sequence,
        "type": entry.kind.value,
        "content": entry.content,
        "response": entry.response,
        "timestamp": entry.created_at.isoformat(),
    }


def _serialize_response(outcome: ResponseOutcome) -> Dict[str, Any]:
    if not outcome.ai_guessed:
        return {
            "success": True,
            "nextAction": "human_turn",
            "aiEliminated": outcome.eliminated,
            "aiReasoning": outcome.reasoning,
        }
    data: Dict[str, Any] = {
        "success": True,
        "aiGuessed": True,
        "guessedCharacter": outcome.guessed_character,
        "correct": outcome.correct,
        "gameEnded": outcome.game_ended,
        "reasoning": outcome.reasoning,
    }
    if outcome.message:
        data["status"] = outcome.status.value
        data["message"] = outcome.message
    return data


def _serialize_human_guess(outcome: HumanGuessOutcome) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "correct": outcome.correct,
        "aiCharacterId": outcome.ai_character_id,
        "status": outcome.status.value,
    }
    if outcome.message:
        data["message"] = outcome.message
    if outcome.continue_game:
        data["continueGame"] = True
    return data


def _serialize_ai_guess(outcome: AIGuessOutcome) -> Dict[str, Any]:
    return {
        "correct": outcome.correct,
        "guessedCharacterId": outcome.guessed_character_id,
        "characterName": outcome.character_name,
        "reasoning": outcome.reasoning,
        "status": outcome.status.value,
    }


def get_engine(request: Request) -> GameEngine:
    return request.app.state.engine


def create_app(engine: Optional[GameEngine] = None) -> FastAPI:
    """Build the API around ``engine`` (a default engine when omitted)."""

    if engine is None:
        from .web_session import build_engine

        engine = build_engine()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        engine.oracle.close()

    app = FastAPI(title="Guess Who Web API", version="0.1.0", lifespan=lifespan)
    app.state.engine = engine

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotFoundError)
    async def _not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(GameFinishedError)
    async def _finished(_request: Request, exc: GameFinishedError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"message": str(exc), "status": exc.status})

    @app.exception_handler(InvalidInputError)
    async def _invalid(_request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"message": str(exc)})

    @app.get("/api/config/models")
    async def get_available_models() -> Dict[str, Any]:
        """Return the oracle providers and their models."""
        return {"providers": get_all_providers()}

    @app.get("/api/characters")
    async def list_characters(engine: GameEngine = Depends(get_engine)) -> List[Dict[str, Any]]:
        return [_serialize_character(character) for character in engine.list_characters()]

    @app.post("/api/games")
    async def create_game(payload: SessionCreate, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        """Start a new game with the given character assignments."""
        session = await engine.create_session(
            human_character_id=payload.human_character_id,
            ai_character_id=payload.ai_character_id,
        )
        return _serialize_session(engine, session)

    @app.get("/api/games/{game_id}")
    async def get_game(game_id: str, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        return _serialize_session(engine, await engine.get_session(game_id))

    @app.patch("/api/games/{game_id}")
    async def update_game(
        game_id: str,
        updates: Dict[str, Any],
        engine: GameEngine = Depends(get_engine),
    ) -> Dict[str, Any]:
        """Merge validated fields into the game."""
        session = await engine.update_session(game_id, updates)
        return _serialize_session(engine, session)

    @app.post("/api/games/{game_id}/ask-ai")
    async def ask_ai(game_id: str, payload: QuestionSubmit, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        """The human asks a yes/no question about the AI's character."""
        outcome = await engine.ask_question(game_id, payload.question)
        return {"answer": outcome.answer, "reasoning": outcome.reasoning}

    @app.post("/api/games/{game_id}/ai-question")
    async def ai_question(game_id: str, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        outcome = await engine.request_ai_question(game_id)
        return {"question": outcome.question, "reasoning": outcome.reasoning}

    @app.post("/api/games/{game_id}/respond")
    async def respond(game_id: str, payload: ResponseSubmit, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        """The human answers the AI's latest question."""
        return _serialize_response(await engine.respond(game_id, payload.response))

    @app.post("/api/games/{game_id}/eliminate")
    async def eliminate(game_id: str, payload: EliminateSubmit, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        eliminated = await engine.eliminate(game_id, payload.character_ids)
        return {"eliminatedCharacters": eliminated}

    @app.post("/api/games/{game_id}/guess")
    async def human_guess(game_id: str, payload: GuessSubmit, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        """The human names the AI's character."""
        return _serialize_human_guess(await engine.human_guess(game_id, payload.character_id))

    @app.post("/api/games/{game_id}/ai-guess")
    async def ai_guess(game_id: str, engine: GameEngine = Depends(get_engine)) -> Dict[str, Any]:
        return _serialize_ai_guess(await engine.ai_guess(game_id))

    @app.get("/api/games/{game_id}/history")
    async def get_history(game_id: str, engine: GameEngine = Depends(get_engine)) -> List[Dict[str, Any]]:
        return [_serialize_history(entry) for entry in await engine.get_history(game_id)]

    LOGGER.info("web_api.ready", characters=len(engine.catalog))
    return app
