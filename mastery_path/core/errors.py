"""Exceptions raised by the scheduler and its collaborators."""


class MasteryPathError(Exception):
    """Base class for all mastery-path errors."""
    pass


class ValidationError(MasteryPathError, ValueError):
    """Raised when an attempt or session request is malformed."""
    pass


class LedgerDocumentError(MasteryPathError):
    """Raised when a stored ledger document cannot be read."""
    pass
