from __future__ import annotations

import threading


class OperationCancelled(RuntimeError):
    """Raised when the caller's cancellation event is set mid-operation."""


def raise_if_cancelled(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("operation cancelled by caller")
