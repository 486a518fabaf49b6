"""
Scheduling primitives: clock and non-reentrant periodic tasks
"""

from .clock import Clock, SystemClock
from .periodic import PeriodicTask

__all__ = [
    'Clock',
    'SystemClock',
    'PeriodicTask',
]
