"""Logging setup for the CLI and scripts."""

from __future__ import annotations

import logging

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = "INFO", fmt: str = DEFAULT_FORMAT) -> None:
    """Configure the ``starknet_stealth`` logger hierarchy."""
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    root = logging.getLogger("starknet_stealth")
    root.handlers[:] = [handler]
    root.setLevel(level)
    root.propagate = False
