"""
Taskflow client factory.

Provides the ``create_client`` factory function that assembles the client
engine: the session context, the remote gateway, the entity store and the
auth service.  View controllers (:class:`TaskBoard`, :class:`AuthForms`) are
created from the returned client on demand.

The client never persists tasks locally. Every collection is reconciled
against the remote API, and only the session token and user profile survive
a restart.

Key Concepts Demonstrated:
- Factory pattern (``create_client``) mirroring an application factory
- Environment-selected configuration classes
- Explicit dependency injection instead of module-level globals
"""

from __future__ import annotations

import logging

from .client import TaskflowClient
from .config import get_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

__all__ = ["TaskflowClient", "create_client"]


def create_client(config_name: str | None = None, *, restore_session: bool = True) -> TaskflowClient:
    """
    Create and configure a taskflow client.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``).  When
            *None*, the value is read from the ``TASKFLOW_ENV`` environment
            variable, defaulting to ``"development"``.
        restore_session: Load a persisted session from storage so
            :meth:`SessionProvider.initial_route` reflects a previous login.

    Returns:
        A fully wired :class:`TaskflowClient`.
    """
    config_class = get_config(config_name)
    logging.getLogger("taskflow_client").setLevel(config_class.LOG_LEVEL)
    logger.info("Creating taskflow client with config: %s", config_class.__name__)

    client = TaskflowClient(config_class)
    if restore_session and client.session.restore():
        logger.info("Restored persisted session")
    return client
