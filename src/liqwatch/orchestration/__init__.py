"""Process wiring: builds the RPC client, sink, dispatcher and scheduler from config."""

from liqwatch.orchestration.watcher import Watcher, build_sink

__all__ = [
    "Watcher",
    "build_sink",
]
