"""
Interfaces for the collaborators an invocation reads from and reports to.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from ..invocation import Invocation
    from ..models import AttributedEvent, SourceLocation

QUERIES = "queries"
SCRIPTS = "scripts"
STYLES = "styles"


class SnapshotSource(ABC):
    """Abstract interface for owners of global, append-only logs and queues."""

    @property
    @abstractmethod
    def kinds(self) -> Sequence[str]:
        """Resource kinds this source tracks."""
        pass

    @property
    def queue_kinds(self) -> Sequence[str]:
        """Resource kinds whose contents (not only length) are captured at start."""
        return ()

    @abstractmethod
    def get_before_counts(self) -> Dict[str, int]:
        """
        Get the current number of entries for every tracked kind.

        Called once when an invocation starts and once more when it is
        finalized, to bound the indices an identifier may return.

        Returns:
            Mapping of resource kind to log or queue length
        """
        pass

    def get_queue_snapshot(self, kind: str) -> Sequence[str]:
        """
        Get the current contents of an enqueue queue.

        Args:
            kind: One of ``queue_kinds``

        Returns:
            Ordered handles currently in the queue
        """
        return ()


class EventIdentifier(ABC):
    """Abstract interface for resolving which log entries belong to an invocation."""

    @abstractmethod
    def identify_events(self, invocation: "Invocation", kind: str) -> List["AttributedEvent"]:
        """
        Identify the entries of a log that the given invocation produced itself.

        Called exactly once per invocation and kind, while the invocation is
        being finalized and its before-snapshot is still available. Entries
        produced by a descendant invocation must not be returned.

        Args:
            invocation: The invocation being finalized
            kind: Resource kind to identify entries for

        Returns:
            Ordered event descriptors attributed to this invocation
        """
        pass


class ResourceTracker(SnapshotSource, EventIdentifier):
    """A log owner that can both be snapshotted and attribute its entries."""


class LocationResolver(ABC):
    """Abstract interface for resolving a source file to its origin."""

    @abstractmethod
    def identify(self, source_file: Optional[str]) -> Optional["SourceLocation"]:
        """
        Identify where a source file comes from.

        Args:
            source_file: Path of the file in which a callable was defined

        Returns:
            SourceLocation or None if the origin could not be identified
        """
        pass


class ExposurePolicy(ABC):
    """Abstract capability check consulted before raw event data is exported."""

    @abstractmethod
    def can_expose_resource_kind(self, kind: str) -> bool:
        """
        Whether attributed events of the given kind may be included in exports.

        Args:
            kind: Resource kind

        Returns:
            True if the events may be exposed
        """
        pass
