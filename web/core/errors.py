from __future__ import annotations


class StudyError(Exception):
    """Base class for errors raised by the study engine."""


class StudyValidationError(StudyError, ValueError):
    """Malformed identifiers or values outside a closed vocabulary."""


class NotFoundError(StudyError, LookupError):
    """A required card, deck, session or user could not be found."""


class StorageError(StudyError):
    """The backing store rejected a read or write."""
