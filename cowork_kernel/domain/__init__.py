"""
Pure domain layer.

Value objects and time abstractions with NO dependencies on the ORM,
the database or I/O.
"""

from cowork_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from cowork_kernel.domain.workflow import Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Transition",
    "Workflow",
]
