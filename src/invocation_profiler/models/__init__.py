"""
Data models for recorded invocations and their attributed side effects.
"""

from .snapshot import BeforeSnapshot
from .events import AttributedEvent, QueryEvent, EnqueuedDependency
from .invocation import SourceLocation, SourceInfo, InvocationData

__all__ = [
    "BeforeSnapshot",
    # Events
    "AttributedEvent",
    "QueryEvent",
    "EnqueuedDependency",
    # Export
    "SourceLocation",
    "SourceInfo",
    "InvocationData",
]
