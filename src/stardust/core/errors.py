# src/stardust/core/errors.py

"""
Error taxonomy shared by the storage, task and HTTP layers.

Each error carries the HTTP status the web layer maps it to, so handlers
never need a lookup table of their own.
"""

from __future__ import annotations


class StardustError(Exception):
    """Base class for all errors raised by the backend."""

    status_code = 500
    retryable = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message or self.__class__.__name__


class InvalidArgument(StardustError):
    """Missing or malformed input (e.g. upsert without id, create without content)."""

    status_code = 400


class Unauthorized(StardustError):
    """Credential header missing or not equal to the configured secret."""

    status_code = 401


class NotFound(StardustError):
    """Lookup of an unknown task id where absence is an error (update)."""

    status_code = 404


class CommitConflict(StardustError):
    """An atomic commit lost a race with a concurrent writer; nothing was applied."""

    status_code = 409
    retryable = True


class StorageUnavailable(StardustError):
    """The storage substrate could not be opened, read or written."""

    status_code = 500
