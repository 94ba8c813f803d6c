"""Cooperative cancellation shared by the agent, model gateway and tools.

A run carries one ``threading.Event``. Long-running steps call
:func:`check_cancelled` at their suspension points; once the event is set the
step raises :class:`~tickertape.exceptions.RunCancelledError`.
"""

from __future__ import annotations

import threading

from tickertape.exceptions import RunCancelledError


def check_cancelled(signal: threading.Event | None) -> None:
    """Raise RunCancelledError if *signal* has been set."""
    if signal is not None and signal.is_set():
        raise RunCancelledError()
