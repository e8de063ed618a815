"""
Authentication flows against the remote API.

Login and signup are unauthenticated calls that return ``{token, user}``;
on success the pair is stored in the session context (and persisted by its
storage back-end).  Changing the password is an ordinary authenticated call.
Logging out only forgets the local session; the remote API has no logout
endpoint.
"""

from __future__ import annotations

import logging
from typing import Any

from .errors import RemoteError
from .gateway import RemoteGateway
from .session import SessionProvider

logger = logging.getLogger(__name__)

LOGIN_PATH = "/auth/login"
SIGNUP_PATH = "/auth/signup"
CHANGE_PASSWORD_PATH = "/auth/changepassword"


class AuthService:
    """
    Sign-in, sign-up, sign-out and password changes.

    Args:
        gateway: Remote gateway used for every call.
        session: Session context that receives the issued token.
    """

    def __init__(self, gateway: RemoteGateway, session: SessionProvider):
        self._gateway = gateway
        self._session = session

    def _start_session(self, payload: Any) -> dict[str, Any]:
        token = payload.get("token") if isinstance(payload, dict) else None
        user = payload.get("user") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token:
            raise RemoteError(502, "Invalid login response received.")
        if not isinstance(user, dict):
            user = {}
        self._session.set(token, user)
        return user

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """
        Exchange credentials for a session.

        Returns:
            The signed-in user's profile.

        Raises:
            RemoteError: Rejected credentials (the server's message is kept)
                or a response without a token.
            NetworkError: The API could not be reached.
        """
        payload = await self._gateway.request(
            "POST",
            LOGIN_PATH,
            {"email": email, "password": password},
            authenticated=False,
        )
        user = self._start_session(payload)
        logger.info("Logged in as %s", email)
        return user

    async def signup(self, name: str, email: str, password: str) -> dict[str, Any]:
        """Create an account and start a session for it."""
        payload = await self._gateway.request(
            "POST",
            SIGNUP_PATH,
            {"name": name, "email": email, "password": password},
            authenticated=False,
        )
        user = self._start_session(payload)
        logger.info("Signed up as %s", email)
        return user

    async def change_password(self, old_password: str, new_password: str) -> None:
        """Change the signed-in user's password."""
        await self._gateway.request(
            "POST",
            CHANGE_PASSWORD_PATH,
            {"oldPassword": old_password, "newPassword": new_password},
        )
        logger.info("Password changed")

    def logout(self) -> None:
        """Forget the local session."""
        self._session.clear()
        logger.info("Logged out. Session cleared.")
