"""
Newsdesk Core Utilities

Exceptions and the repeating-task scheduler shared by every component.
"""
from newsdesk.core.scheduler import RepeatingTask
from newsdesk.core.types import (
    FetchError,
    NewsdeskError,
    ValidationError,
)

__all__ = [
    "FetchError",
    "NewsdeskError",
    "RepeatingTask",
    "ValidationError",
]
