from liqwatch.core.use_cases.dispatch import DispatchStats, EventDispatcher
from liqwatch.core.use_cases.scheduler import TickResult, WindowScheduler, compute_window

__all__ = [
    "DispatchStats",
    "EventDispatcher",
    "TickResult",
    "WindowScheduler",
    "compute_window",
]
