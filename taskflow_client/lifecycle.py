"""
Operation lifecycle controller.

One generic state machine drives every form that mutates remote state
(add/edit/delete task, add/delete category, change password, login and
signup).  Each use site gets its own :class:`OperationLifecycle` instance
parameterised by the async action it wraps; instances share nothing.

Phases::

    Idle --submit (valid)--> InFlight --ok--> Succeeded --timer--> closed
      ^                         |
      |                         +--error--> Failed --submit--> InFlight
      +---------- close() + reset delay ---------------------------+

* **Idle**: inputs editable.
* **InFlight**: entered only after pre-submission validation passed;
  inputs disabled.
* **Succeeded**: the action resolved; the view auto-closes after the
  success display duration.  Inputs stay disabled.
* **Failed**: the action raised; a user-facing message is set, inputs are
  re-enabled and the user may resubmit.

Closing the view (by the user or the auto-close timer) resets the machine
to Idle and clears every transient value after a short delay, so fields do
not visibly blank out while the view is still animating closed.

This controller is the only place where failures are turned into
user-facing messages.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from .errors import AuthExpired, NetworkError, RemoteError, ValidationError

logger = logging.getLogger(__name__)

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again."

DEFAULT_SUCCESS_DISPLAY_SECONDS = 2.0
DEFAULT_CLOSE_RESET_SECONDS = 0.3

Action = Callable[[Any, Any], Awaitable[Any]]
Validator = Callable[[dict[str, Any], Any], Any]
LifecycleListener = Callable[["OperationLifecycle"], None]


def _loop_running() -> bool:
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


class Phase(str, Enum):
    """Lifecycle phases of a single operation."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class OperationLifecycle:
    """
    State machine wrapping one asynchronous mutating action.

    Args:
        name: Label used in logs (e.g. ``"add_task"``).
        action: Coroutine function called as ``action(payload, target)``
            where *payload* is the validator's return value.
        validator: Optional callable ``validator(fields, target)`` that
            returns the cleaned payload or raises :class:`ValidationError`.
            Without one the payload is a copy of the field values.
        success_display: Seconds the Succeeded phase is shown before the
            view auto-closes.
        reset_delay: Seconds between closing the view and clearing it.
        show_server_messages: Surface a :class:`RemoteError`'s server
            message instead of the generic notice.
    """

    def __init__(
        self,
        name: str,
        action: Action,
        *,
        validator: Validator | None = None,
        success_display: float = DEFAULT_SUCCESS_DISPLAY_SECONDS,
        reset_delay: float = DEFAULT_CLOSE_RESET_SECONDS,
        show_server_messages: bool = False,
    ):
        self.name = name
        self._action = action
        self._validator = validator
        self._success_display = success_display
        self._reset_delay = reset_delay
        self._show_server_messages = show_server_messages

        self.phase = Phase.IDLE
        self.is_open = False
        self.error: str | None = None
        self.field_errors: dict[str, str] = {}
        self.fields: dict[str, Any] = {}
        self.target: Any = None
        self.result: Any = None

        # Bumped on every open/close so late results from an abandoned
        # submission cannot overwrite the state of a newer one.
        self._generation = 0
        self._auto_close: asyncio.Task | None = None
        self._reset: asyncio.Task | None = None
        self._listeners: list[LifecycleListener] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def inputs_enabled(self) -> bool:
        return self.phase in (Phase.IDLE, Phase.FAILED)

    def add_listener(self, listener: LifecycleListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: LifecycleListener) -> None:
        self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _transition(self, phase: Phase) -> None:
        logger.debug("%s: %s -> %s", self.name, self.phase.value, phase.value)
        self.phase = phase
        self._notify()

    # ------------------------------------------------------------------
    # View lifecycle
    # ------------------------------------------------------------------

    def open(self, target: Any = None, **fields: Any) -> None:
        """
        Show the initiating view with fresh state.

        Args:
            target: The entity the operation acts on (task, category, ...).
            **fields: Initial transient field values.
        """
        self._cancel_timers()
        self._generation += 1
        self._clear_state()
        self.is_open = True
        self.target = target
        self.fields = dict(fields)
        self._notify()

    def close(self) -> None:
        """
        Hide the initiating view and schedule the reset to Idle.

        A request still in flight is not cancelled; its outcome is applied
        by whatever it calls but no longer changes this lifecycle's phase.
        Outside a running event loop the reset happens immediately.
        """
        if self._auto_close is not None and self._auto_close is not asyncio.current_task():
            self._auto_close.cancel()
        self._auto_close = None
        self._cancel_reset()
        self._generation += 1
        self.is_open = False
        self._notify()
        if self._reset_delay > 0 and _loop_running():
            self._reset = asyncio.create_task(self._reset_after(self._reset_delay))
        else:
            self._reset_now()

    def set_field(self, name: str, value: Any) -> None:
        """
        Update one transient field value.

        Raises:
            RuntimeError: While the inputs are disabled (InFlight or
                Succeeded).
        """
        if not self.inputs_enabled:
            raise RuntimeError(f"{self.name}: inputs are disabled while {self.phase.value}")
        self.fields[name] = value
        self.field_errors.pop(name, None)
        self._notify()

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self) -> bool:
        """
        Validate the fields and run the wrapped action.

        Returns:
            True when the action succeeded, False when validation or the
            action failed.  Failures are reflected in :attr:`field_errors`
            or :attr:`error` respectively.

        Raises:
            RuntimeError: When called while InFlight or Succeeded.
        """
        if not self.inputs_enabled:
            raise RuntimeError(f"{self.name}: cannot submit while {self.phase.value}")

        try:
            if self._validator is not None:
                payload = self._validator(dict(self.fields), self.target)
            else:
                payload = dict(self.fields)
        except ValidationError as exc:
            # A new validation failure replaces the previous submission's outcome.
            self.field_errors = exc.errors
            self.error = None
            if self.phase is Phase.FAILED:
                self.phase = Phase.IDLE
            self._notify()
            return False

        self.field_errors = {}
        self.error = None
        generation = self._generation
        self._transition(Phase.IN_FLIGHT)

        try:
            result = await self._action(payload, self.target)
        except (AuthExpired, RemoteError, NetworkError) as exc:
            logger.warning("%s failed: %s", self.name, exc)
            if generation == self._generation:
                self.error = self._message_for(exc)
                self._transition(Phase.FAILED)
            return False
        except Exception:
            logger.exception("%s raised unexpectedly", self.name)
            if generation == self._generation:
                self.error = GENERIC_FAILURE_MESSAGE
                self._transition(Phase.FAILED)
            raise

        if generation != self._generation:
            logger.debug("%s finished after its view was closed", self.name)
            return True

        self.result = result
        self._transition(Phase.SUCCEEDED)
        if self._success_display > 0:
            self._auto_close = asyncio.create_task(self._close_after(self._success_display))
        else:
            self.close()
        return True

    def _message_for(self, exc: Exception) -> str:
        if isinstance(exc, AuthExpired):
            return SESSION_EXPIRED_MESSAGE
        if self._show_server_messages and isinstance(exc, RemoteError) and exc.message:
            return exc.message
        return GENERIC_FAILURE_MESSAGE

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    async def _close_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self.close()

    async def _reset_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        self._reset = None
        self._reset_now()

    def _cancel_reset(self) -> None:
        if self._reset is not None:
            self._reset.cancel()
            self._reset = None

    def _cancel_timers(self) -> None:
        if self._auto_close is not None:
            self._auto_close.cancel()
            self._auto_close = None
        self._cancel_reset()

    def _clear_state(self) -> None:
        self.phase = Phase.IDLE
        self.error = None
        self.field_errors = {}
        self.fields = {}
        self.target = None
        self.result = None

    def _reset_now(self) -> None:
        self._clear_state()
        self._notify()

    async def settle(self) -> None:
        """Wait until no auto-close or reset timer is pending."""
        while True:
            pending = [
                task
                for task in (self._auto_close, self._reset)
                if task is not None and not task.done() and task is not asyncio.current_task()
            ]
            if not pending:
                return
            await asyncio.wait(pending)
