"""
Configuration for the profiler.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple
import os

from .backtrace import DEFAULT_IGNORED_PREFIXES

ENV_PREFIX = "INVOCATION_PROFILER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass
class ProfilerConfig:
    """Configuration for a profiling session and its watcher."""
    show_queries: bool = True
    exposed_kinds: Optional[Tuple[str, ...]] = None
    ignored_frame_prefixes: Tuple[str, ...] = DEFAULT_IGNORED_PREFIXES
    location_roots: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProfilerConfig":
        """
        Build a configuration from environment variables.

        Recognized variables:
        - INVOCATION_PROFILER_SHOW_QUERIES: "1"/"true"/"yes"/"on" to expose queries
        - INVOCATION_PROFILER_EXPOSED_KINDS: comma-separated resource kinds to expose
        - INVOCATION_PROFILER_IGNORED_FRAMES: comma-separated frame prefixes to strip

        Args:
            environ: Mapping to read from; defaults to os.environ

        Returns:
            ProfilerConfig
        """
        if environ is None:
            environ = os.environ

        config = cls()
        show_queries = environ.get(f"{ENV_PREFIX}SHOW_QUERIES")
        if show_queries is not None:
            config.show_queries = show_queries.strip().lower() in _TRUE_VALUES

        exposed_kinds = environ.get(f"{ENV_PREFIX}EXPOSED_KINDS")
        if exposed_kinds is not None:
            config.exposed_kinds = _split_list(exposed_kinds)

        ignored_frames = environ.get(f"{ENV_PREFIX}IGNORED_FRAMES")
        if ignored_frames is not None:
            config.ignored_frame_prefixes = _split_list(ignored_frames)

        return config
