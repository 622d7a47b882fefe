"""Core game logic and data structures."""

from . import catalog, context, errors, fsm, rules, schemas, store

__all__ = ["catalog", "context", "errors", "fsm", "rules", "schemas", "store"]
