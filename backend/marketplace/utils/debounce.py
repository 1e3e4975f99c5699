"""Debouncing for values and callbacks on the asyncio event loop.

Used to throttle work triggered by fast-changing input such as search
keystrokes: only the last update of a burst is acted upon once the input has
been quiet for ``delay`` seconds. Timers live on the running loop's timer
queue, so instances must be triggered from inside a running event loop.
"""

import asyncio
from collections.abc import Callable
from typing import Any, Generic, TypeVar

T = TypeVar("T")

DEFAULT_DELAY_S = 0.3


class Debouncer:
    """Wraps a callable so a burst of calls runs it once with the last arguments.

    With ``immediate=True`` the call fires on the leading edge instead, and
    further calls inside the window are dropped until it has been quiet for
    ``delay`` seconds.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        delay: float = DEFAULT_DELAY_S,
        immediate: bool = False,
    ) -> None:
        self._func = func
        self._delay = delay
        self._immediate = immediate
        self._handle: asyncio.TimerHandle | None = None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        loop = asyncio.get_running_loop()
        call_now = self._immediate and self._handle is None

        if self._handle is not None:
            self._handle.cancel()

        self._handle = loop.call_later(self._delay, self._later, args, kwargs)

        if call_now:
            self._func(*args, **kwargs)

    def _later(self, args: tuple, kwargs: dict) -> None:
        self._handle = None
        if not self._immediate:
            self._func(*args, **kwargs)

    @property
    def pending(self) -> bool:
        """Whether a call is currently scheduled."""
        return self._handle is not None

    def cancel(self) -> None:
        """Drop the pending call, if any, without running it."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


def debounce(
    func: Callable[..., Any],
    delay: float = DEFAULT_DELAY_S,
    immediate: bool = False,
) -> Debouncer:
    """Return a debounced trigger for ``func``."""
    return Debouncer(func, delay, immediate)


class DebouncedValue(Generic[T]):
    """A value that only settles after its input has stopped changing."""

    def __init__(
        self,
        initial: T,
        delay: float = DEFAULT_DELAY_S,
        on_change: Callable[[T], Any] | None = None,
    ) -> None:
        self._value = initial
        self._latest = initial
        self._on_change = on_change
        self._debouncer = Debouncer(self._settle, delay)

    @property
    def value(self) -> T:
        """The last settled value."""
        return self._value

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def set(self, value: T) -> None:
        """Feed a new input value, restarting the delay."""
        if value == self._latest:
            return
        self._latest = value
        self._debouncer(value)

    def _settle(self, value: T) -> None:
        self._value = value
        if self._on_change is not None:
            self._on_change(value)

    def close(self) -> None:
        """Tear down, discarding any update that has not settled yet."""
        self._debouncer.cancel()
        self._latest = self._value
