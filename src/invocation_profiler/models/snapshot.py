"""
Snapshot model for the state of tracked logs and queues when an invocation starts.
"""

from typing import Dict, Optional, Tuple
from pydantic import BaseModel, Field


class BeforeSnapshot(BaseModel):
    """Lengths and queue contents captured before an instrumented callable runs."""
    counts: Dict[str, int] = Field(
        default_factory=dict,
        description="Number of entries in each tracked log or queue, keyed by resource kind"
    )
    queues: Dict[str, Tuple[str, ...]] = Field(
        default_factory=dict,
        description="Handles present in each enqueue queue, keyed by resource kind"
    )

    class Config:
        """Pydantic configuration."""
        frozen = True

    def count(self, kind: str) -> Optional[int]:
        """Return the captured count for a kind, or None if the kind was not tracked."""
        return self.counts.get(kind)

    def queue(self, kind: str) -> Tuple[str, ...]:
        """Return the captured queue for a kind (empty if not tracked)."""
        return self.queues.get(kind, ())
