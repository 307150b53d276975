"""Bounded execution of long-running work with polling and cancellation.

The work runs in a daemon thread while the caller polls it once per
``poll_interval``. Giving up (timeout or cancellation) never kills the
thread; instead the optional :class:`CancellationToken` is set so work that
checks it stops at its next check.
"""

from __future__ import annotations

import logging
import math
import threading
from typing import Any, Callable

from glycopaint.core.exceptions import CancelledError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


class CancellationToken:
    """Thread-safe flag shared between a supervisor and cooperative work.

    A token is also a valid cancel probe: calling it returns whether it has
    been cancelled.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, what: str | None = None) -> None:
        """Raise CancelledError if the token has been cancelled."""
        if self._event.is_set():
            raise CancelledError(what)

    def wait(self, timeout: float) -> bool:
        """Block up to ``timeout`` seconds; return True if cancelled meanwhile."""
        return self._event.wait(timeout)


def run_bounded(
    task: Callable[[], Any],
    timeout_seconds: float,
    cancel_probe: Callable[[], bool] | None = None,
    *,
    token: CancellationToken | None = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    on_tick: Callable[[int], None] | None = None,
    name: str = "task",
) -> bool:
    """Run ``task`` in the background and wait at most ``timeout_seconds``.

    Args:
        task: Zero-argument callable. Its return value is ignored; callers
            that need it capture it themselves.
        timeout_seconds: Budget, polled in steps of ``poll_interval``.
        cancel_probe: Returns True when the caller wants to stop waiting.
        token: Cancelled when the runner gives up, so cooperative work can
            stop.
        poll_interval: Seconds per poll tick.
        on_tick: Called with the tick number for every tick that ends with
            the task still running. Without it each such tick is logged.
        name: Used in log messages and as the thread name.

    Returns:
        True if the task finished within the budget without raising and no
        cancellation was observed. False on timeout, cancellation or an
        exception in the task; use ``cancel_probe`` to tell them apart.
    """
    if poll_interval <= 0:
        raise ValueError(f"poll_interval must be > 0, got {poll_interval}")

    errors: list[BaseException] = []

    def _target() -> None:
        try:
            task()
        except BaseException as exc:  # reported by the supervisor
            errors.append(exc)

    thread = threading.Thread(target=_target, name=f"glycopaint-{name}", daemon=True)
    thread.start()

    ticks = max(0, math.ceil(timeout_seconds / poll_interval))
    for tick in range(ticks):
        thread.join(poll_interval)
        if not thread.is_alive():
            if errors:
                exc = errors[0]
                if isinstance(exc, CancelledError):
                    logger.warning("%s stopped after cancellation", name)
                else:
                    logger.error(
                        "%s failed: %s", name, exc,
                        exc_info=(type(exc), exc, exc.__traceback__),
                    )
                return False
            return True
        if cancel_probe is not None and cancel_probe():
            logger.warning("%s cancelled after %d ticks", name, tick + 1)
            if token is not None:
                token.cancel()
            return False
        if on_tick is not None:
            on_tick(tick + 1)
        else:
            logger.info("%s still running (%.0fs)", name, (tick + 1) * poll_interval)

    logger.error("%s exceeded time limit of %s seconds", name, timeout_seconds)
    if token is not None:
        token.cancel()
    return False


class BoundedTaskRunner:
    """Holds the polling settings used by :func:`run_bounded`.

    Args:
        poll_interval: Seconds per poll tick.
        on_tick: Progress callback, called once per tick the task is still
            running. None logs a marker per tick instead.
    """

    def __init__(
        self,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        self.poll_interval = poll_interval
        self.on_tick = on_tick

    def run(
        self,
        task: Callable[[], Any],
        timeout_seconds: float,
        cancel_probe: Callable[[], bool] | None = None,
        token: CancellationToken | None = None,
        name: str = "task",
    ) -> bool:
        return run_bounded(
            task,
            timeout_seconds,
            cancel_probe,
            token=token,
            poll_interval=self.poll_interval,
            on_tick=self.on_tick,
            name=name,
        )
