"""Logging setup for the `liqwatch` logger namespace.

Modules log through `logging.getLogger(__name__)`; only the CLI calls
`configure_logging`, so library users keep control of their own handlers.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "liqwatch"
PLAIN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_configured = False


def configure_logging(level: str = "INFO", *, rich: bool = True, console: Console | None = None) -> logging.Logger:
    """Attach one console handler to the `liqwatch` logger (idempotent)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER)
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level}")
    root.setLevel(numeric)

    if _configured:
        return root

    handler: logging.Handler
    if rich:
        handler = RichHandler(console=console, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))

    root.handlers.clear()
    root.addHandler(handler)
    _configured = True
    return root
