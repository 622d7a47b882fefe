"""Guess Who: a human plays against an AI opponent backed by a language model."""

from . import human_player, oracle
from .core import catalog, context, errors, fsm, rules, schemas, store
from .providers import offline, openrouter, providers, xai
from .utils import rng

__all__ = [
    "catalog",
    "context",
    "errors",
    "fsm",
    "human_player",
    "offline",
    "openrouter",
    "oracle",
    "providers",
    "rng",
    "rules",
    "schemas",
    "store",
    "xai",
]
