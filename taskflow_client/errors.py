"""
Error taxonomy for the taskflow client.

Every failure the engine can produce is one of four kinds:

* :class:`ValidationError`: client-side field problems found before any
  network call is made.  Carries a per-field message mapping so forms can
  render errors inline.
* :class:`AuthExpired`: the remote API answered 401 (or there was no token
  to send).  The session has already been cleared when this is raised.
* :class:`RemoteError`: any other non-2xx answer from the remote API.
* :class:`NetworkError`: no response was received at all.

The last three propagate unchanged from the gateway through the store and
are only turned into user-facing text by the operation lifecycle.
"""

from __future__ import annotations


class TaskflowError(Exception):
    """Base class for all taskflow client errors."""


class ValidationError(TaskflowError):
    """
    One or more form fields failed client-side validation.

    Attributes:
        errors: Mapping of field name to human-readable message, in the
            order the fields were checked.
    """

    def __init__(self, errors: dict[str, str]):
        if not errors:
            raise ValueError("ValidationError requires at least one field error")
        self.errors = dict(errors)
        super().__init__(next(iter(self.errors.values())))


class AuthExpired(TaskflowError):
    """The session token is missing, expired or was rejected with a 401."""


class RemoteError(TaskflowError):
    """
    The remote API answered with a non-2xx status other than a session 401.

    Attributes:
        status_code: The HTTP status code received.
        message: The server-provided message when one was present.
    """

    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        self.message = message
        super().__init__(message or f"Remote API returned HTTP {status_code}")


class NetworkError(TaskflowError):
    """The request failed before any response was received."""
