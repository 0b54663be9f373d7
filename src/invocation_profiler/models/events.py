"""
Models for side effects attributed to an invocation.
"""

from typing import List, Optional
from pydantic import BaseModel, Field


class AttributedEvent(BaseModel):
    """Base model for an entry of a global log or queue attributed to one invocation."""
    index: int = Field(..., ge=0, description="Position of the entry in the global log or queue")
    backtrace: List[str] = Field(
        default_factory=list,
        description="Call stack that produced the entry, with profiler frames removed"
    )

    class Config:
        """Pydantic configuration."""
        frozen = True


class QueryEvent(AttributedEvent):
    """A database query issued while an invocation was running."""
    sql: str = Field(..., description="SQL text of the query")
    duration: float = Field(..., description="Time the query took, in seconds")
    timestamp: Optional[float] = Field(None, description="Wall-clock time at which the query started")


class EnqueuedDependency(AttributedEvent):
    """A resource handle (script, style, ...) enqueued while an invocation was running."""
    handle: str = Field(..., description="Handle of the enqueued resource")
