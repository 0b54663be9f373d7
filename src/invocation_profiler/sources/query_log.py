"""
In-memory query log that attributes logged queries to the invocation that issued them.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union, TYPE_CHECKING
import logging
import time

from .interfaces import QUERIES, ResourceTracker
from ..backtrace import DEFAULT_IGNORED_PREFIXES, capture_backtrace, clean_backtrace
from ..models import QueryEvent

if TYPE_CHECKING:
    from ..invocation import Invocation

logger = logging.getLogger(__name__)


@dataclass
class QueryRecord:
    """A raw entry of the query log."""
    sql: str
    duration: float
    backtrace: Union[str, List[str]] = ""
    timestamp: Optional[float] = None


@dataclass
class QueryLog(ResourceTracker):
    """
    Append-only log of database queries.

    ``num_queries`` always counts every query. Individual records are only
    kept when ``enabled`` is set; the indices used for attribution are
    positions in ``queries``.
    """
    enabled: bool = True
    ignored_frame_prefixes: Sequence[str] = DEFAULT_IGNORED_PREFIXES
    num_queries: int = 0
    queries: List[QueryRecord] = field(default_factory=list)

    def __post_init__(self):
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def kinds(self) -> Sequence[str]:
        return (QUERIES,)

    def record(
        self,
        sql: str,
        duration: float,
        backtrace: Union[str, List[str], None] = None,
        timestamp: Optional[float] = None,
    ) -> Optional[int]:
        """
        Record a query.

        Args:
            sql: SQL text
            duration: Time the query took, in seconds
            backtrace: Call stack summary; captured from the caller if omitted
            timestamp: Wall-clock start time; defaults to now

        Returns:
            Index of the query in the log, or None if queries are not being saved
        """
        self.num_queries += 1
        if not self.enabled:
            return None

        if backtrace is None:
            backtrace = capture_backtrace(skip=2)
        if timestamp is None:
            timestamp = time.time()
        self.queries.append(QueryRecord(sql=sql, duration=duration, backtrace=backtrace, timestamp=timestamp))
        return len(self.queries) - 1

    def get_before_counts(self) -> Dict[str, int]:
        return {QUERIES: len(self.queries)}

    def identify_events(self, invocation: "Invocation", kind: str) -> List[QueryEvent]:
        """
        Identify the queries issued by an invocation itself.

        The window is every query logged since the invocation started. Queries
        already attributed to a nested invocation are excluded, so each query
        belongs to the innermost invocation open when it ran.

        Args:
            invocation: The invocation being finalized
            kind: Must be ``"queries"``

        Returns:
            Query events in log order
        """
        if kind != QUERIES or not self.enabled:
            return []

        before = invocation.get_before_count(QUERIES)
        if before is None:
            self.logger.warning(f"Invocation {invocation.id} has no query count snapshot")
            return []

        claimed = invocation.descendant_indices(QUERIES)
        return [
            self._to_event(index)
            for index in range(before, len(self.queries))
            if index not in claimed
        ]

    def _to_event(self, index: int) -> QueryEvent:
        record = self.queries[index]
        return QueryEvent(
            index=index,
            sql=record.sql,
            duration=float(record.duration),
            backtrace=clean_backtrace(record.backtrace, self.ignored_frame_prefixes),
            timestamp=record.timestamp,
        )

