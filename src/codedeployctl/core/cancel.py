"""Cooperative cancellation for long-running runs."""

import signal
import threading
from typing import Any

from codedeployctl.core.exceptions import InterruptedRunError
from codedeployctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


class CancellationToken:
    """Signals a running pipeline to stop at its next checkpoint or sleep."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation. Safe to call from a signal handler."""
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise InterruptedRunError if cancellation was requested."""
        if self._event.is_set():
            raise InterruptedRunError(f"Run interrupted: {self._reason}")

    def sleep(self, seconds: float) -> None:
        """Sleep for the given duration, waking early on cancellation.

        Raises:
            InterruptedRunError: If cancelled before or during the sleep
        """
        self.raise_if_cancelled()
        if self._event.wait(timeout=seconds):
            raise InterruptedRunError(f"Run interrupted: {self._reason}")


def install_signal_handlers(token: CancellationToken) -> dict[int, Any]:
    """Route SIGTERM (and SIGHUP where available) to the token.

    SIGINT keeps its default KeyboardInterrupt behaviour so blocking network
    calls are interrupted as well.

    Returns:
        The previous handlers, keyed by signal number
    """
    previous: dict[int, Any] = {}

    def handler(signum: int, frame: Any) -> None:
        name = signal.Signals(signum).name
        logger.warning("Received signal, cancelling run", signal=name)
        token.cancel(name)

    for sig_name in ("SIGTERM", "SIGHUP"):
        sig = getattr(signal, sig_name, None)
        if sig is None:
            continue
        previous[sig] = signal.signal(sig, handler)

    return previous


def restore_signal_handlers(previous: dict[int, Any]) -> None:
    """Restore handlers returned by install_signal_handlers."""
    for sig, handler in previous.items():
        signal.signal(sig, handler)
