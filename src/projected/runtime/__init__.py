"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Module: runtime/__init__.py.
"""

from .dispatcher import Dispatcher, DispatcherStats
from .scheduling import LoopScheduler, ManualScheduler, Scheduler, TimerHandle
from .state import (
    EMPTY,
    CacheState,
    Empty,
    Pending,
    Refreshing,
    Resolved,
    StateCell,
)

__all__ = [
    "Dispatcher",
    "DispatcherStats",
    "Scheduler",
    "TimerHandle",
    "LoopScheduler",
    "ManualScheduler",
    "CacheState",
    "Empty",
    "Pending",
    "Resolved",
    "Refreshing",
    "EMPTY",
    "StateCell",
]
