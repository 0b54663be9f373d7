"""
Utility functions for capturing and cleaning backtraces attached to logged events.
"""

from typing import Iterable, List, Optional, Sequence, Union
import logging
import sys

logger = logging.getLogger(__name__)

FRAME_SEPARATOR = ", "

# Frames from these modules belong to the profiler itself.
DEFAULT_IGNORED_PREFIXES = (
    "invocation_profiler.",
    "contextlib.",
)


def capture_backtrace(skip: int = 1, limit: Optional[int] = None) -> str:
    """
    Summarize the current call stack as a comma-separated string, outermost frame first.

    Args:
        skip: Number of innermost frames to leave out (1 skips this function)
        limit: Maximum number of frames to include

    Returns:
        Backtrace summary such as ``"main, handle_request, Repo.load"``
    """
    frames = []
    frame = sys._getframe(skip)
    while frame is not None:
        code = frame.f_code
        module = frame.f_globals.get("__name__", "")
        name = getattr(code, "co_qualname", code.co_name)
        frames.append(f"{module}.{name}" if module else name)
        frame = frame.f_back

    frames.reverse()
    if limit is not None:
        frames = frames[-limit:]
    return FRAME_SEPARATOR.join(frames)


def split_backtrace(raw: Union[str, Sequence[str], None]) -> List[str]:
    """Split a backtrace summary into frames; lists are copied as-is."""
    if not raw:
        return []
    if isinstance(raw, str):
        return [frame.strip() for frame in raw.split(FRAME_SEPARATOR.strip()) if frame.strip()]
    return [str(frame) for frame in raw]


def clean_backtrace(
    raw: Union[str, Sequence[str], None],
    ignored_prefixes: Iterable[str] = DEFAULT_IGNORED_PREFIXES,
) -> List[str]:
    """
    Strip profiler frames from a backtrace.

    The transform is purely structural: it never looks at which invocation the
    backtrace belongs to.

    Args:
        raw: Comma-separated backtrace summary or list of frames
        ignored_prefixes: Frames starting with any of these are dropped

    Returns:
        Remaining frames in their original order
    """
    prefixes = tuple(ignored_prefixes)
    frames = split_backtrace(raw)
    if not prefixes:
        return frames
    return [frame for frame in frames if not frame.startswith(prefixes)]
