"""
Stack-discipline watcher that opens and finalizes invocations around instrumented callables.
"""

from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional, Sequence
import functools
import inspect
import logging
import threading

from .config import ProfilerConfig
from .exceptions import ProfilerError
from .invocation import Invocation
from .session import ProfilingSession
from .sources.interfaces import QUERIES, ExposurePolicy

logger = logging.getLogger(__name__)


def describe_callable(function: Callable) -> str:
    """Get a nice name for a callable, e.g. ``module.Class.method``."""
    if isinstance(function, functools.partial):
        return f"functools.partial({describe_callable(function.func)})"
    name = getattr(function, "__qualname__", None) or getattr(function, "__name__", None)
    if name is None:
        name = type(function).__qualname__
    module = getattr(function, "__module__", None)
    return f"{module}.{name}" if module else name


def source_file_of(function: Callable) -> Optional[str]:
    """Get the file in which a callable was defined, if it can be determined."""
    try:
        return inspect.getsourcefile(inspect.unwrap(function))
    except TypeError:
        return None


class InvocationWatcher(ExposurePolicy):
    """
    Maintains the stack of open invocations and builds the invocation tree.

    Each thread has its own stack, so concurrent call streams never share an
    open invocation. The watcher is also the exposure policy consulted when
    invocations are exported.
    """

    def __init__(
        self,
        session: ProfilingSession,
        show_queries: bool = True,
        exposed_kinds: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the watcher.

        Args:
            session: Session in which invocations are recorded
            show_queries: Whether attributed queries may be exported
            exposed_kinds: Resource kinds that may be exported; None exposes every kind
        """
        self.session = session
        self.show_queries = show_queries
        self.exposed_kinds = None if exposed_kinds is None else frozenset(exposed_kinds)
        self.logger = logging.getLogger(self.__class__.__name__)
        self._local = threading.local()
        if session.policy is None:
            session.policy = self

    @classmethod
    def from_config(cls, config: ProfilerConfig, session: Optional[ProfilingSession] = None) -> "InvocationWatcher":
        """Create a watcher, and a session if none is given, from a configuration."""
        if session is None:
            session = ProfilingSession.from_config(config)
        return cls(session, show_queries=config.show_queries, exposed_kinds=config.exposed_kinds)

    @property
    def _stack(self) -> List[Invocation]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = self._local.stack = []
        return stack

    def can_show_queries(self) -> bool:
        return self.show_queries

    def can_expose_resource_kind(self, kind: str) -> bool:
        if kind == QUERIES and not self.can_show_queries():
            return False
        return self.exposed_kinds is None or kind in self.exposed_kinds

    def current(self) -> Optional[Invocation]:
        """The innermost open invocation of the calling thread."""
        stack = self._stack
        return stack[-1] if stack else None

    def depth(self) -> int:
        return len(self._stack)

    def start(self, function_name: str, source_file: Optional[str] = None) -> Invocation:
        """
        Open an invocation as a child of the current one.

        Args:
            function_name: Nice name of the callable about to run
            source_file: File in which the callable was defined

        Returns:
            The opened invocation
        """
        invocation = self.session.open(function_name, source_file=source_file, parent=self.current())
        self._stack.append(invocation)
        return invocation

    def finish(self, invocation: Optional[Invocation] = None) -> Invocation:
        """
        Close and finalize the innermost open invocation.

        Args:
            invocation: Expected innermost invocation, checked when given

        Returns:
            The finalized invocation

        Raises:
            ProfilerError: If no invocation is open, or the innermost one is not the expected one
        """
        stack = self._stack
        if not stack:
            self.logger.error("finish() called with no open invocation")
            raise ProfilerError("No open invocation to finish")
        if invocation is not None and stack[-1] is not invocation:
            self.logger.error(
                f"finish() called for invocation {invocation.id} while {stack[-1].id} is innermost"
            )
            raise ProfilerError(f"Invocation {invocation.id} is not the innermost open invocation")

        current = stack.pop()
        current.finalize()
        self.logger.debug(
            f"Finalized invocation {current.id} '{current.function_name}' in {current.duration():.6f}s"
        )
        return current

    @contextmanager
    def watch(self, function_name: str, source_file: Optional[str] = None) -> Iterator[Invocation]:
        """
        Record the invocation of the enclosed block.

        The invocation is finalized even when the block raises; the exception
        propagates unchanged. Invocations started inside the block and left
        open are finalized first, innermost first.
        """
        invocation = self.start(function_name, source_file)
        try:
            yield invocation
        finally:
            self._unwind(invocation)

    def _unwind(self, invocation: Invocation) -> None:
        stack = self._stack
        if not any(open_invocation is invocation for open_invocation in stack):
            self.logger.error(f"Invocation {invocation.id} was closed before its block exited")
            return

        while stack[-1] is not invocation:
            abandoned = stack.pop()
            self.logger.error(
                f"Invocation {abandoned.id} '{abandoned.function_name}' was left open inside "
                f"invocation {invocation.id}; finalizing it"
            )
            abandoned.finalize()
        self.finish(invocation)

    def wrap(self, function: Callable) -> Callable:
        """
        Wrap a callable so that every call is recorded as an invocation.

        Args:
            function: Callable to instrument

        Returns:
            Wrapped callable
        """
        function_name = describe_callable(function)
        source_file = source_file_of(function)

        @functools.wraps(function)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with self.watch(function_name, source_file):
                return function(*args, **kwargs)

        return wrapper

    def export(self) -> List[dict]:
        """Export every invocation recorded in the session using this watcher's policy."""
        return self.session.export(self)
