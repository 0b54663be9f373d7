"""
Recorded invocation of an instrumented callable: timing, tree links and attributed side effects.
"""

from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, TYPE_CHECKING
import logging

from .exceptions import AlreadyFinalizedError
from .models import (
    AttributedEvent,
    BeforeSnapshot,
    EnqueuedDependency,
    InvocationData,
    QueryEvent,
    SourceInfo,
    SourceLocation,
)
from .sources.interfaces import QUERIES, ExposurePolicy, ResourceTracker

if TYPE_CHECKING:
    from .session import ProfilingSession

logger = logging.getLogger(__name__)

class Invocation:
    """
    One invocation of an instrumented callable.

    Invocations are created through ``ProfilingSession.open()``, which assigns
    the id, captures the before-snapshot and links the invocation to its
    parent. Tree links are stored as ids and resolved through the session.
    """

    def __init__(
        self,
        session: "ProfilingSession",
        invocation_id: int,
        parent_id: Optional[int],
        function_name: str,
        source_file: Optional[str],
        before_snapshot: BeforeSnapshot,
    ):
        """
        Initialize the invocation and start its clock.

        Args:
            session: Session owning the invocation arena and the collaborators
            invocation_id: Identifier drawn from the session counter
            parent_id: Identifier of the enclosing invocation, or None for a root
            function_name: Nice name of the invoked callable
            source_file: File in which the callable was defined
            before_snapshot: State of the tracked logs and queues right before the call
        """
        self.session = session
        self.id = invocation_id
        self.parent_id = parent_id
        self.child_ids: List[int] = []
        self.function_name = function_name
        self.source_file = source_file
        self.start_time: float = session.clock()
        self.end_time: Optional[float] = None
        self._before_snapshot: Optional[BeforeSnapshot] = before_snapshot
        self._attributed_events: Dict[str, Tuple[AttributedEvent, ...]] = {}

    def __repr__(self) -> str:
        return f"<Invocation id={self.id} function={self.function_name!r} finalized={self.is_finalized}>"

    @property
    def is_finalized(self) -> bool:
        return self.end_time is not None

    @property
    def parent(self) -> Optional["Invocation"]:
        """The enclosing invocation, or None for a root."""
        if self.parent_id is None:
            return None
        return self.session.get(self.parent_id)

    @property
    def children(self) -> List["Invocation"]:
        """Nested invocations in the order they were opened."""
        return [self.session.get(child_id) for child_id in self.child_ids]

    def iter_descendants(self) -> Iterator["Invocation"]:
        """Iterate over all nested invocations, depth-first."""
        for child in self.children:
            yield child
            yield from child.iter_descendants()

    def can_output(self) -> bool:
        """Whether this invocation is expected to produce output."""
        return True

    # Before-snapshot accessors, used by identifiers while finalizing.

    @property
    def before_snapshot(self) -> Optional[BeforeSnapshot]:
        """Snapshot captured at start; None once the invocation is finalized."""
        return self._before_snapshot

    def get_before_count(self, kind: str) -> Optional[int]:
        """Length of a tracked log or queue before the call, or None once discarded."""
        if self._before_snapshot is None:
            return None
        return self._before_snapshot.count(kind)

    def get_before_queue(self, kind: str) -> Tuple[str, ...]:
        """Contents of an enqueue queue before the call (empty once discarded)."""
        if self._before_snapshot is None:
            return ()
        return self._before_snapshot.queue(kind)

    # Attribution

    @property
    def attributed_events(self) -> Dict[str, Tuple[AttributedEvent, ...]]:
        """Attributed events per resource kind; empty until finalized."""
        return dict(self._attributed_events)

    def events(self, kind: str) -> Tuple[AttributedEvent, ...]:
        return self._attributed_events.get(kind, ())

    def descendant_indices(self, kind: str) -> Set[int]:
        """Indices of a log already attributed to any nested invocation."""
        indices: Set[int] = set()
        for descendant in self.iter_descendants():
            indices.update(event.index for event in descendant.events(kind))
        return indices

    def finalize(self) -> None:
        """
        Stop the clock and attribute side effects logged during the call.

        Must be called exactly once, after the callable returns or raises.

        Raises:
            AlreadyFinalizedError: If the invocation was already finalized
        """
        if self.is_finalized:
            raise AlreadyFinalizedError(self.id)

        end_time = self.session.clock()
        if end_time < self.start_time:
            logger.debug(
                f"Clock anomaly on invocation {self.id}: end {end_time} precedes start {self.start_time}"
            )
            end_time = self.start_time
        self.end_time = end_time

        for tracker in self.session.trackers:
            for kind in tracker.kinds:
                self._attributed_events[kind] = self._identify(tracker, kind)

        # Only needed by the identifiers above; holding on to it just takes up memory.
        self._before_snapshot = None

    def _identify(self, tracker: ResourceTracker, kind: str) -> Tuple[AttributedEvent, ...]:
        before_count = self.get_before_count(kind)
        if before_count is None:
            logger.warning(f"No '{kind}' snapshot for invocation {self.id}; nothing attributed")
            return ()

        try:
            events = list(tracker.identify_events(self, kind))
            current_count = tracker.get_before_counts().get(kind, 0)
        except Exception as e:
            logger.warning(f"Failed to identify '{kind}' events for invocation {self.id}: {e}")
            return ()

        for event in events:
            if not isinstance(event, AttributedEvent):
                logger.warning(
                    f"Discarding '{kind}' attribution for invocation {self.id}: "
                    f"unexpected event type {type(event).__name__}"
                )
                return ()
            if not before_count <= event.index < current_count:
                logger.warning(
                    f"Discarding '{kind}' attribution for invocation {self.id}: index {event.index} "
                    f"outside [{before_count}, {current_count})"
                )
                return ()
        return tuple(events)

    def queries(self) -> Optional[List[QueryEvent]]:
        """
        Get the queries made during the invocation.

        Returns:
            Query events, or None if no query log is tracked or the invocation is not finalized
        """
        if not self.is_finalized or QUERIES not in self._attributed_events:
            return None
        return [event for event in self._attributed_events[QUERIES] if isinstance(event, QueryEvent)]

    def enqueued(self, kind: str) -> List[str]:
        """Handles of the given kind enqueued by this invocation itself."""
        return [event.handle for event in self.events(kind) if isinstance(event, EnqueuedDependency)]

    # Timing

    def duration(self, own_time: bool = False) -> float:
        """
        Get the duration of the invocation in seconds.

        Before ``finalize()`` the duration so far is returned; nothing is mutated.

        Args:
            own_time: Whether to exclude the time spent in nested invocations

        Returns:
            Duration, never negative
        """
        end_time = self.end_time if self.end_time is not None else self.session.clock()
        duration = end_time - self.start_time

        if own_time:
            for child in self.children:
                duration -= child.duration(False)

        if duration < 0:
            logger.debug(f"Clamping negative duration {duration} of invocation {self.id} to zero")
            return 0.0
        return duration

    # Export

    def file_location(self) -> Optional[SourceLocation]:
        """
        Get the origin of the file in which the callable was defined.

        Returns:
            SourceLocation, or None if no resolver is configured or resolution failed
        """
        resolver = self.session.location_resolver
        if resolver is None:
            return None
        try:
            return resolver.identify(self.source_file)
        except Exception as e:
            logger.warning(f"Failed to resolve source location of '{self.source_file}': {e}")
            return None

    def to_model(self, policy: Optional[ExposurePolicy] = None) -> InvocationData:
        """
        Get a detached model of the invocation for exporting.

        Args:
            policy: Capability check for exposing event kinds; defaults to the session policy

        Returns:
            InvocationData model
        """
        if policy is None:
            policy = self.session.policy

        source = SourceInfo(file=self.source_file)
        location = self.file_location()
        if location:
            source.type = location.type
            source.name = location.name

        events = {}
        for kind, attributed in self._attributed_events.items():
            if not attributed:
                continue
            if policy is not None and not policy.can_expose_resource_kind(kind):
                continue
            events[kind] = [event.model_dump() for event in attributed]

        return InvocationData(
            id=self.id,
            function=self.function_name,
            duration=self.duration(),
            source=source,
            parent=self.parent_id,
            children=list(self.child_ids),
            events=events or None,
        )

    def export(self, policy: Optional[ExposurePolicy] = None) -> Dict[str, Any]:
        """Get data for exporting as plain, JSON-compatible values."""
        model = self.to_model(policy)
        data = model.model_dump(exclude_none=True)
        # Roots still report an explicit null parent.
        data["parent"] = model.parent
        return data
