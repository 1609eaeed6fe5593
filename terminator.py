"""
terminator.py - Cooperative Termination
=======================================
Deadline and cancellation signals polled by the long-running search loops.
A new timeout always replaces the previous deadline; it is never extended.
"""

from abc import ABC, abstractmethod
from typing import Optional
import logging
import signal
import threading
import time

logger = logging.getLogger(__name__)


class Terminator(ABC):
    """Capability polled at the top of every local search iteration."""

    @abstractmethod
    def is_kill(self) -> bool:
        """True once the armed deadline has passed or cancellation was signalled."""
        pass

    @abstractmethod
    def new_timeout(self, duration: float):
        """Arm a fresh deadline `duration` seconds from now."""
        pass

    @abstractmethod
    def timeout_at(self) -> Optional[float]:
        """Armed deadline on the `time.monotonic()` clock, if any."""
        pass

    def remaining(self) -> Optional[float]:
        deadline = self.timeout_at()
        if deadline is None:
            return None
        return max(0.0, deadline - time.monotonic())

    def kill_reason(self) -> Optional[str]:
        """'timeout' once the deadline has passed, else None."""
        deadline = self.timeout_at()
        if deadline is not None and time.monotonic() >= deadline:
            return 'timeout'
        return None


class BasicTerminator(Terminator):
    """Deadline only; never cancelled externally."""

    def __init__(self):
        self._deadline: Optional[float] = None

    def is_kill(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def new_timeout(self, duration: float):
        self._deadline = time.monotonic() + duration

    def timeout_at(self) -> Optional[float]:
        return self._deadline


class SignalTerminator(Terminator):
    """
    Deadline plus an external cancel flag.

    The flag may be shared by several concurrently running optimizations;
    each keeps its own deadline. Arming a new timeout clears the flag.
    """

    def __init__(self, cancel_event: Optional[threading.Event] = None):
        self.cancel_event = cancel_event if cancel_event is not None else threading.Event()
        self._deadline: Optional[float] = None

    @classmethod
    def with_interrupt_handler(cls, cancel_event: Optional[threading.Event] = None) -> 'SignalTerminator':
        """Install a Ctrl-C handler that sets the cancel flag (main thread only, call once)."""
        terminator = cls(cancel_event)
        event = terminator.cancel_event

        def _handle_interrupt(signum, frame):
            logger.warning("Interrupt received, terminating...")
            event.set()

        signal.signal(signal.SIGINT, _handle_interrupt)
        return terminator

    def cancel(self):
        self.cancel_event.set()

    def is_kill(self) -> bool:
        return (
            (self._deadline is not None and time.monotonic() >= self._deadline)
            or self.cancel_event.is_set()
        )

    def new_timeout(self, duration: float):
        self.cancel_event.clear()
        self._deadline = time.monotonic() + duration

    def timeout_at(self) -> Optional[float]:
        return self._deadline

    def kill_reason(self) -> Optional[str]:
        if self.cancel_event.is_set():
            return 'cancelled'
        return super().kill_reason()


class AttemptTerminator(Terminator):
    """
    Deadline for a single attempt inside a phase.

    Kills when its own deadline passes or when the enclosing phase's
    terminator does, whichever comes first.
    """

    def __init__(self, parent: Terminator, duration: Optional[float] = None):
        self.parent = parent
        self._deadline: Optional[float] = None
        if duration is not None:
            self.new_timeout(duration)

    def is_kill(self) -> bool:
        return (
            (self._deadline is not None and time.monotonic() >= self._deadline)
            or self.parent.is_kill()
        )

    def new_timeout(self, duration: float):
        self._deadline = time.monotonic() + duration

    def timeout_at(self) -> Optional[float]:
        parent_deadline = self.parent.timeout_at()
        if parent_deadline is None:
            return self._deadline
        if self._deadline is None:
            return parent_deadline
        return min(self._deadline, parent_deadline)

    def kill_reason(self) -> Optional[str]:
        return self.parent.kill_reason() or super().kill_reason()
