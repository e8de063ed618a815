"""
Composition root tying the client's components together.

A :class:`TaskflowClient` owns exactly one of each long-lived component (the
session, gateway, store and auth service) and hands out view controllers
that share them.
"""

from __future__ import annotations

from datetime import date

from .auth import AuthService
from .board import AuthForms, TaskBoard
from .config import Config
from .gateway import RemoteGateway
from .session import JsonFileStorage, MemoryStorage, SessionProvider
from .store import EntityStore


class TaskflowClient:
    """
    One signed-in (or signing-in) client instance.

    Args:
        config_class: Configuration class selected by :func:`get_config`.
    """

    def __init__(self, config_class: type[Config]):
        self.config = config_class
        storage = (
            JsonFileStorage(config_class.SESSION_FILE)
            if config_class.SESSION_FILE
            else MemoryStorage()
        )
        self.session = SessionProvider(
            storage,
            token_key=config_class.SESSION_TOKEN_KEY,
            user_key=config_class.SESSION_USER_KEY,
        )
        self.gateway = RemoteGateway(
            config_class.REMOTE_API_URL,
            self.session,
            timeout=config_class.REMOTE_API_TIMEOUT,
        )
        self.store = EntityStore(self.gateway)
        self.auth = AuthService(self.gateway, self.session)

    def board(self, *, today: date | None = None) -> TaskBoard:
        return TaskBoard(
            self.store,
            self.auth,
            success_display=self.config.SUCCESS_DISPLAY_SECONDS,
            reset_delay=self.config.CLOSE_RESET_SECONDS,
            today=today,
        )

    def auth_forms(self) -> AuthForms:
        return AuthForms(self.auth, reset_delay=self.config.CLOSE_RESET_SECONDS)
