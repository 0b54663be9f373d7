"""
In-memory dependency queues (scripts, styles, ...) and attribution of enqueued handles.
"""

from typing import Dict, List, Optional, Sequence, Union, TYPE_CHECKING
import logging

from .interfaces import SCRIPTS, STYLES, ResourceTracker
from ..backtrace import DEFAULT_IGNORED_PREFIXES, capture_backtrace, clean_backtrace
from ..models import EnqueuedDependency

if TYPE_CHECKING:
    from ..invocation import Invocation


class DependencyQueues(ResourceTracker):
    """
    One append-only queue of resource handles per kind.

    A handle enqueued twice keeps its first position. The handles attributed to
    an invocation are the ones absent from its before-snapshot of the queue,
    minus those already attributed to a nested invocation.
    """

    def __init__(
        self,
        kinds: Sequence[str] = (SCRIPTS, STYLES),
        ignored_frame_prefixes: Sequence[str] = DEFAULT_IGNORED_PREFIXES,
    ):
        """
        Initialize the queues.

        Args:
            kinds: Names of the queues to track
            ignored_frame_prefixes: Frames stripped from recorded backtraces
        """
        self._kinds = tuple(kinds)
        self.ignored_frame_prefixes = tuple(ignored_frame_prefixes)
        self._queues: Dict[str, List[str]] = {kind: [] for kind in self._kinds}
        self._backtraces: Dict[str, Dict[str, Union[str, List[str]]]] = {kind: {} for kind in self._kinds}
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def kinds(self) -> Sequence[str]:
        return self._kinds

    @property
    def queue_kinds(self) -> Sequence[str]:
        return self._kinds

    def get_dependency_queue(self, kind: str) -> List[str]:
        """Get a copy of the queue for one kind."""
        return list(self._get_queue(kind))

    def _get_queue(self, kind: str) -> List[str]:
        try:
            return self._queues[kind]
        except KeyError:
            raise KeyError(f"Unknown dependency kind '{kind}'") from None

    def enqueue(self, kind: str, handle: str, backtrace: Union[str, List[str], None] = None) -> Optional[int]:
        """
        Enqueue a resource handle.

        Args:
            kind: Queue to add to, e.g. ``"scripts"``
            handle: Resource handle
            backtrace: Call stack summary; captured from the caller if omitted

        Returns:
            Position of the handle in the queue, or None if it was already enqueued
        """
        queue = self._get_queue(kind)
        if handle in self._backtraces[kind]:
            return None
        if backtrace is None:
            backtrace = capture_backtrace(skip=2)
        queue.append(handle)
        self._backtraces[kind][handle] = backtrace
        return len(queue) - 1

    def get_before_counts(self) -> Dict[str, int]:
        return {kind: len(queue) for kind, queue in self._queues.items()}

    def get_queue_snapshot(self, kind: str) -> Sequence[str]:
        return tuple(self._get_queue(kind))

    def identify_events(self, invocation: "Invocation", kind: str) -> List[EnqueuedDependency]:
        """
        Identify the handles an invocation enqueued itself.

        Args:
            invocation: The invocation being finalized
            kind: Queue to diff

        Returns:
            Enqueued dependencies in queue order
        """
        queue = self._get_queue(kind)
        before_queue = set(invocation.get_before_queue(kind))
        claimed = invocation.descendant_indices(kind)

        events = []
        for index, handle in enumerate(queue):
            if handle in before_queue or index in claimed:
                continue
            events.append(EnqueuedDependency(
                index=index,
                handle=handle,
                backtrace=clean_backtrace(self._backtraces[kind].get(handle), self.ignored_frame_prefixes),
            ))
        return events
