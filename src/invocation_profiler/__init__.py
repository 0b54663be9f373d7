"""
Invocation Profiler - records a tree of nested callable invocations with timing and side effects.

This package provides tools and utilities for:
- Recording each invocation of an instrumented callable with its parent and children
- Computing inclusive and own (exclusive) durations over the invocation tree
- Attributing logged queries and enqueued resources to the invocation that produced them
- Resolving source files to the core, plugin or theme that ships them
- Exporting the tree as detached, serializable records
"""

__version__ = "0.1.0"

from .config import ProfilerConfig
from .exceptions import ProfilerError, AlreadyFinalizedError
from .invocation import Invocation
from .session import ProfilingSession
from .watcher import InvocationWatcher
from .models import (
    BeforeSnapshot,
    AttributedEvent,
    QueryEvent,
    EnqueuedDependency,
    SourceLocation,
    SourceInfo,
    InvocationData,
)
from .sources import (
    QUERIES,
    SCRIPTS,
    STYLES,
    ResourceTracker,
    LocationResolver,
    ExposurePolicy,
    QueryLog,
    DependencyQueues,
    FileLocator,
)

__all__ = [
    "Invocation",
    "ProfilingSession",
    "InvocationWatcher",
    "ProfilerConfig",
    "ProfilerError",
    "AlreadyFinalizedError",
    # Models
    "BeforeSnapshot",
    "AttributedEvent",
    "QueryEvent",
    "EnqueuedDependency",
    "SourceLocation",
    "SourceInfo",
    "InvocationData",
    # Sources
    "QUERIES",
    "SCRIPTS",
    "STYLES",
    "ResourceTracker",
    "LocationResolver",
    "ExposurePolicy",
    "QueryLog",
    "DependencyQueues",
    "FileLocator",
]
