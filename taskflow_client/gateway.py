"""
Remote gateway for the taskflow REST API.

Every call the client makes to the remote API goes through
:meth:`RemoteGateway.request`, which centralises four concerns:

1. **URL building**: paths are joined onto the configured base URL.
2. **Authentication**: the bearer token from the session is attached to
   every authenticated call; with no token the call short-circuits without
   touching the network.
3. **Response classification**: 2xx responses resolve to parsed JSON (only
   when the response declares a JSON content type), a 401 forces session
   invalidation, anything else becomes a :class:`RemoteError`.
4. **Transport failures**: connection errors and timeouts become
   :class:`NetworkError`.  Nothing is retried.

The HTTP call itself is a blocking ``requests`` call executed in a worker
thread, so the asyncio event loop that owns all client state only suspends
at this boundary.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import requests

from .errors import AuthExpired, NetworkError, RemoteError
from .session import SessionProvider

logger = logging.getLogger(__name__)


def _is_json_response(response: requests.Response) -> bool:
    """Return True when the response declares a JSON content type."""
    content_type = response.headers.get("Content-Type", "")
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def _response_error_message(response: requests.Response) -> str | None:
    """
    Extract an error message from a JSON error body if possible.

    The remote API reports failures as ``{"message": ...}``; ``error`` is
    accepted as well.  Returns ``None`` when the body is not JSON or carries
    no usable message.
    """
    if not _is_json_response(response):
        return None
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    for key in ("message", "error"):
        message = payload.get(key)
        if isinstance(message, str) and message.strip():
            return message
    return None


class RemoteGateway:
    """
    Asynchronous wrapper around the remote task API.

    Args:
        base_url: Root URL of the remote API (e.g. ``"https://host"``).
        session: Session context supplying the bearer token and receiving
            forced invalidations.
        timeout: Per-request timeout in seconds; ``None`` or ``0`` waits
            indefinitely.
    """

    def __init__(
        self,
        base_url: str,
        session: SessionProvider,
        *,
        timeout: float | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout or None

    def url_for(self, path: str) -> str:
        """Build an absolute URL for *path*, avoiding double slashes."""
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, authenticated: bool) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if authenticated:
            token = self.session.get_token()
            if token is None:
                raise AuthExpired("Not signed in")
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any,
    ) -> requests.Response:
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["json"] = body
        return requests.request(
            method=method,
            url=url,
            headers=headers,
            timeout=self.timeout,
            **kwargs,
        )

    async def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        *,
        authenticated: bool = True,
    ) -> Any:
        """
        Call the remote API and classify the outcome.

        Args:
            method: HTTP method (``"GET"``, ``"POST"``, ``"PUT"``, ...).
            path: Path relative to the base URL (e.g. ``"/api/tasks"``).
            body: Optional JSON-serialisable request body.
            authenticated: Attach the session token.  Login and signup pass
                ``False``; for those a 401 is an ordinary
                :class:`RemoteError` rather than a session expiry.

        Returns:
            The decoded JSON body, or ``None`` when the response did not
            declare a JSON content type or its body was empty.

        Raises:
            AuthExpired: No token was available, or an authenticated call
                was rejected with 401 (the session is cleared first).
            RemoteError: Any other non-2xx status.
            NetworkError: No response was received.
        """
        method = method.upper()
        headers = self._headers(authenticated)
        url = self.url_for(path)
        logger.debug("%s %s", method, url)

        try:
            response = await asyncio.to_thread(self._send, method, url, headers, body)
        except requests.Timeout as exc:
            logger.warning("%s %s timed out", method, path)
            raise NetworkError(f"Request to {path} timed out") from exc
        except requests.RequestException as exc:
            logger.warning("%s %s failed before a response: %s", method, path, exc)
            raise NetworkError(f"Request to {path} failed: {exc}") from exc

        status_code = response.status_code
        if authenticated and status_code == 401:
            self.session.invalidate("expired")
            raise AuthExpired("Session expired")

        if not 200 <= status_code < 300:
            message = _response_error_message(response)
            logger.warning("%s %s returned HTTP %s", method, path, status_code)
            raise RemoteError(status_code, message)

        if not _is_json_response(response) or not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RemoteError(status_code, "Response declared JSON but could not be decoded") from exc
