"""Exceptions raised by Inbox Declutter."""

from __future__ import annotations

from googleapiclient.errors import HttpError

_AUTH_REASONS = ("authError", "insufficientPermissions", "unauthorized")


class MailboxError(Exception):
    """A mailbox API call failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class AuthorizationError(MailboxError):
    """The mailbox rejected our credentials. Fatal for the whole operation."""


class ScanCancelled(Exception):
    """The caller cancelled a scan in progress."""


class ActionError(Exception):
    """A user-initiated mutation (archive, label, filter) failed."""

    def __init__(self, message: str, applied: int = 0) -> None:
        super().__init__(message)
        self.applied = applied


def translate_http_error(exc: HttpError) -> MailboxError:
    """Map a googleapiclient HttpError onto our taxonomy."""
    status = getattr(exc.resp, "status", None)
    try:
        status = int(status) if status is not None else None
    except (TypeError, ValueError):
        status = None

    if status == 401:
        return AuthorizationError(str(exc), status=status)
    if status == 403 and any(reason in str(exc) for reason in _AUTH_REASONS):
        return AuthorizationError(str(exc), status=status)
    return MailboxError(str(exc), status=status)
