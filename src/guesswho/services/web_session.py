"""Engine assembly shared by the web API and the terminal game."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import structlog

from ..core.catalog import CharacterCatalog, default_catalog
from ..core.context import DEFAULT_CONFIG_PATH, ContextBuilder, OracleConfig, config_summary, load_oracle_config
from ..core.fsm import GameEngine
from ..core.store import InMemorySessionStore, SessionStore
from ..oracle import Oracle
from ..providers.providers import ModelProvider, ProviderError, ProviderFactory

LOGGER = structlog.get_logger(__name__)


def create_provider(config: OracleConfig) -> ModelProvider:
    """Instantiate the configured provider, or the offline one when it cannot be created."""

    try:
        return ProviderFactory.create(config.provider, headers=config.headers, timeout=config.timeout)
    except ProviderError as exc:
        LOGGER.warning("engine.provider_unavailable", provider=config.provider, error=str(exc))
        return ProviderFactory.create("offline")


def build_engine(
    config: Optional[OracleConfig] = None,
    *,
    config_path: Path = DEFAULT_CONFIG_PATH,
    provider: Optional[ModelProvider] = None,
    store: Optional[SessionStore] = None,
    catalog: Optional[CharacterCatalog] = None,
) -> GameEngine:
    """Wire store, catalog and oracle into a :class:`GameEngine`."""

    config = config or load_oracle_config(config_path)
    client = provider or create_provider(config)
    oracle = Oracle(client, config=config, builder=ContextBuilder(config))
    LOGGER.info("engine.ready", client=type(client).__name__, **config_summary(config))
    return GameEngine(
        store=store or InMemorySessionStore(),
        catalog=catalog or default_catalog(),
        oracle=oracle,
        rules=config.rules,
    )
