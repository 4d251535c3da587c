"""CLI commands module."""

from . import config, download

__all__ = ["download", "config"]
