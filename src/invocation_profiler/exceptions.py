"""
Exceptions raised by the profiler.
"""


class ProfilerError(Exception):
    """Base class for profiler misuse errors."""


class AlreadyFinalizedError(ProfilerError):
    """Raised when an invocation is finalized a second time."""

    def __init__(self, invocation_id: int):
        super().__init__(f"Invocation {invocation_id} has already been finalized")
        self.invocation_id = invocation_id
