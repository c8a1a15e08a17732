"""
Error taxonomy for the signup form engine.

Validation failures are not exceptions; see validation.Invalid.
"""

from __future__ import annotations


class FormEngineError(Exception):
    """Base class for every error raised by the form engine."""


class SchemaError(FormEngineError, ValueError):
    """A form document is missing required metadata or has a malformed field."""


class ProtectedFieldError(FormEngineError, ValueError):
    """A default field was targeted for removal (default fields may only be disabled)."""


class NotificationError(FormEngineError):
    """The best-effort notification could not be delivered."""


class SubmissionError(FormEngineError):
    """The answer record could not be delivered to the submission endpoint."""


class RestoreError(FormEngineError):
    """A saved draft could not be decoded."""
