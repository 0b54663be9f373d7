"""
Profiling session: the arena owning every recorded invocation and the id counter.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Union, TYPE_CHECKING
import itertools
import logging
import threading
import time

from .exceptions import ProfilerError
from .invocation import Invocation
from .models import BeforeSnapshot
from .sources.interfaces import ExposurePolicy, LocationResolver, ResourceTracker

if TYPE_CHECKING:
    from .config import ProfilerConfig

logger = logging.getLogger(__name__)


class ProfilingSession:
    """
    Owns the invocations recorded during one profiling session.

    Invocations are stored by id; parent and child links are ids resolved
    through ``get()``. Ids start at 1 and strictly increase in the order
    invocations are opened.
    """

    def __init__(
        self,
        trackers: Iterable[ResourceTracker] = (),
        location_resolver: Optional[LocationResolver] = None,
        policy: Optional[ExposurePolicy] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        """
        Initialize the session.

        Args:
            trackers: Owners of the global logs and queues to attribute
            location_resolver: Resolver for source files, used when exporting
            policy: Default capability check for exposing event kinds
            clock: High-resolution clock returning seconds
        """
        self.trackers: List[ResourceTracker] = list(trackers)
        self.location_resolver = location_resolver
        self.policy = policy
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

        self._invocations: Dict[int, Invocation] = {}
        self._root_ids: List[int] = []
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        config: "ProfilerConfig",
        trackers: Optional[Iterable[ResourceTracker]] = None,
        **kwargs: Any,
    ) -> "ProfilingSession":
        """
        Create a session from a configuration.

        Args:
            config: Profiler configuration
            trackers: Owners of the global logs and queues to attribute; defaults to
                a new QueryLog and DependencyQueues
            **kwargs: Passed through to the constructor

        Returns:
            ProfilingSession
        """
        from .sources import DependencyQueues, FileLocator, QueryLog

        if trackers is None:
            trackers = [
                QueryLog(ignored_frame_prefixes=config.ignored_frame_prefixes),
                DependencyQueues(ignored_frame_prefixes=config.ignored_frame_prefixes),
            ]
        if "location_resolver" not in kwargs and config.location_roots:
            kwargs["location_resolver"] = FileLocator(config.location_roots)
        return cls(trackers=trackers, **kwargs)

    def __len__(self) -> int:
        return len(self._invocations)

    def __iter__(self):
        return iter(self.invocations())

    def get(self, invocation_id: int) -> Invocation:
        """
        Get an invocation by id.

        Raises:
            ProfilerError: If no invocation has this id
        """
        try:
            return self._invocations[invocation_id]
        except KeyError:
            raise ProfilerError(f"Unknown invocation id {invocation_id}") from None

    def invocations(self) -> List[Invocation]:
        """All invocations in the order they were opened."""
        with self._lock:
            return [self._invocations[key] for key in sorted(self._invocations)]

    def roots(self) -> List[Invocation]:
        """Invocations opened while no other invocation was open."""
        with self._lock:
            return [self._invocations[root_id] for root_id in self._root_ids]

    def capture_snapshot(self) -> BeforeSnapshot:
        """
        Capture the current state of every tracked log and queue.

        A tracker that fails is left out of the snapshot. Its kinds have no
        baseline, so nothing is attributed for them when the invocation is
        finalized.
        """
        counts: Dict[str, int] = {}
        queues: Dict[str, tuple] = {}
        for tracker in self.trackers:
            try:
                tracker_counts = tracker.get_before_counts()
                tracker_queues = {
                    kind: tuple(tracker.get_queue_snapshot(kind)) for kind in tracker.queue_kinds
                }
            except Exception as e:
                self.logger.warning(f"Failed to snapshot {tracker.__class__.__name__}: {e}")
                continue
            counts.update(tracker_counts)
            queues.update(tracker_queues)
        return BeforeSnapshot(counts=counts, queues=queues)

    def open(
        self,
        function_name: str,
        source_file: Optional[str] = None,
        parent: Union[Invocation, int, None] = None,
    ) -> Invocation:
        """
        Open a new invocation, right before the instrumented callable is called.

        Args:
            function_name: Nice name of the callable
            source_file: File in which the callable was defined
            parent: Enclosing invocation (or its id), None for a root

        Returns:
            The new, unfinalized invocation

        Raises:
            ProfilerError: If the parent does not belong to this session
        """
        parent_id = parent.id if isinstance(parent, Invocation) else parent
        if parent_id is not None and parent_id not in self._invocations:
            raise ProfilerError(f"Parent invocation {parent_id} does not belong to this session")

        with self._lock:
            invocation_id = next(self._counter)

        snapshot = self.capture_snapshot()
        invocation = Invocation(
            session=self,
            invocation_id=invocation_id,
            parent_id=parent_id,
            function_name=function_name,
            source_file=source_file,
            before_snapshot=snapshot,
        )

        with self._lock:
            self._invocations[invocation_id] = invocation
            if parent_id is None:
                self._root_ids.append(invocation_id)
            else:
                self._invocations[parent_id].child_ids.append(invocation_id)

        self.logger.debug(f"Opened invocation {invocation_id} for '{function_name}' (parent {parent_id})")
        return invocation

    def export(self, policy: Optional[ExposurePolicy] = None) -> List[Dict[str, Any]]:
        """
        Export every invocation in the order they were opened.

        Args:
            policy: Capability check for exposing event kinds; defaults to the session policy

        Returns:
            List of detached invocation records
        """
        return [invocation.export(policy) for invocation in self.invocations()]
