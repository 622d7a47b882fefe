"""Typer CLI entry point for the Guess Who server and terminal game."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import structlog
import typer
import uvicorn
from dotenv import load_dotenv

from ..core.catalog import default_catalog
from ..core.context import DEFAULT_CONFIG_PATH, ConfigError, OracleConfig, load_oracle_config
from ..human_player import character_table, console, run_terminal_game
from ..utils.rng import build_rng
from .web_api import create_app
from .web_session import build_engine

LOGGER = structlog.get_logger(__name__)

app = typer.Typer(help="Play Guess Who against an AI.", invoke_without_command=False)
_configured_logging = False


def configure_logging(level: int = logging.INFO) -> None:
    global _configured_logging
    if _configured_logging:
        return
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    _configured_logging = True


def configure_human_logging() -> None:
    """Hide info-level chatter while a human is playing in the terminal."""
    logging.getLogger().setLevel(logging.WARNING)
    configure_logging(logging.WARNING)


def _load_config(path: Path) -> OracleConfig:
    try:
        return load_oracle_config(path)
    except ConfigError as exc:
        LOGGER.error("config.invalid", path=str(path), error=str(exc))
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", help="Interface to bind"),
    port: int = typer.Option(8000, help="Port to listen on"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to oracle configuration JSON"),
) -> None:
    """Run the HTTP API."""

    load_dotenv()
    configure_logging()
    engine = build_engine(_load_config(config))
    LOGGER.info("server.start", host=host, port=port, config=str(config))
    uvicorn.run(create_app(engine), host=host, port=port)


@app.command("characters")
def characters() -> None:
    """Print the character roster."""

    console.print(character_table(default_catalog().list_all(), title="Guess Who characters"))


@app.command("play")
def play(
    seed: Optional[int] = typer.Option(None, help="Seed for character assignment and fallbacks"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to oracle configuration JSON"),
) -> None:
    """Play one game in the terminal."""

    load_dotenv()
    configure_human_logging()
    oracle_config = _load_config(config)
    if seed is not None:
        oracle_config.seed = seed
    engine = build_engine(oracle_config)
    try:
        status = asyncio.run(run_terminal_game(engine, rng=build_rng(seed=seed)))
    finally:
        engine.oracle.close()
    typer.echo(f"Final status: {status.value}")


if __name__ == "__main__":  # pragma: no cover
    app()
