"""Error taxonomy of the form engine."""

from typing import Dict, Optional


class EngineError(Exception):
    """Base class for engine errors."""


class ValidationError(EngineError):
    """
    Local validation failure; never sent to the server.

    ``field_errors`` maps a field (or consent flag) to its message when the
    failure is per-input.
    """

    def __init__(self, message: str, field_errors: Optional[Dict] = None):
        super().__init__(message)
        self.message = message
        self.field_errors = dict(field_errors or {})


class PersistenceError(EngineError):
    """A remote call failed or answered ``success: false``."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ReorderConflict(PersistenceError):
    """Persistence of a reorder failed; the local move must be rolled back."""


class AutosaveFailure(PersistenceError):
    """A background draft save failed; logged only."""


class InvalidOrExpiredLink(EngineError):
    """The public token is unknown or past its expiry."""
