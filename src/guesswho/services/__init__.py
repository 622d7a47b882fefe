"""Service modules for the CLI and web API."""

from . import cli, web_api, web_session

__all__ = ["cli", "web_api", "web_session"]
