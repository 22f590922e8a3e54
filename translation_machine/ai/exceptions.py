"""
Translation Exceptions

This module contains the exception hierarchy shared by the AI client,
the retry controller and the pipeline orchestrator.
Separated to avoid circular imports between service.py and providers.py.
"""

from typing import Optional


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class ConfigurationError(TranslationError):
    """Missing credentials or invalid job configuration. Fatal at job start."""


class EmptyDocumentError(TranslationError):
    """The document produced no chunks, so there is nothing to translate."""


class JobStateError(TranslationError):
    """An operation was requested in a run state that does not allow it."""


class SlotAlreadySetError(TranslationError):
    """A chunk result slot was written twice without an explicit overwrite."""


class RemoteError(TranslationError):
    """Non-success response from the remote translation API."""

    def __init__(self, message: str, status: Optional[int] = None, code: str = None, details: dict = None):
        super().__init__(message, code=code or "remote_error", details=details)
        self.status = status

    def __str__(self):
        if self.status is not None:
            return f"{self.message} (status {self.status})"
        return self.message


class QuotaError(RemoteError):
    """The remote signalled rate limiting or an exhausted quota."""

    def __init__(self, message: str, status: Optional[int] = 429, details: dict = None):
        super().__init__(message, status=status, code="rate_limited", details=details)


class ChunkTooLargeError(RemoteError):
    """The chunk cannot be processed at its current size. Never retried."""

    def __init__(self, message: str, status: Optional[int] = None, details: dict = None):
        super().__init__(message, status=status, code="chunk_too_large", details=details)


class TransientRemoteError(RemoteError):
    """Timeout or transport failure before a response was received."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, status=None, code="transient", details=details)
