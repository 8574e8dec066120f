from __future__ import annotations

from typing import Any, Callable


class FocusLedgerError(Exception):
    """Base class for errors raised by the timer engine."""


class ValidationError(FocusLedgerError, ValueError):
    """Bad input to a logging or settings call; the user can correct it."""


class StateError(FocusLedgerError):
    """Operation not allowed in the engine's current state."""


class HandlerError(FocusLedgerError):
    """A registered event handler raised. Never propagated out of the engine."""

    def __init__(self, event: str, handler: Callable[..., Any], original: BaseException) -> None:
        name = getattr(handler, "__qualname__", None) or repr(handler)
        super().__init__(f"{event} handler {name} failed: {original!r}")
        self.event = event
        self.handler = handler
        self.original = original
