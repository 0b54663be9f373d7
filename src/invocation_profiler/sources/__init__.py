# Sources module
from .interfaces import (
    QUERIES,
    SCRIPTS,
    STYLES,
    SnapshotSource,
    EventIdentifier,
    ResourceTracker,
    LocationResolver,
    ExposurePolicy,
)
from .query_log import QueryLog, QueryRecord
from .dependencies import DependencyQueues
from .file_locator import FileLocator

__all__ = [
    "QUERIES",
    "SCRIPTS",
    "STYLES",
    "SnapshotSource",
    "EventIdentifier",
    "ResourceTracker",
    "LocationResolver",
    "ExposurePolicy",
    "QueryLog",
    "QueryRecord",
    "DependencyQueues",
    "FileLocator",
]
