"""
Unit tests for the generic operation lifecycle.

Actions are plain coroutine functions, so no HTTP double is needed here.
Timed transitions use very short delays and are driven inside one
``asyncio.run`` call per test.
"""

import asyncio

import pytest

from taskflow_client.errors import AuthExpired, NetworkError, RemoteError, ValidationError
from taskflow_client.lifecycle import (
    GENERIC_FAILURE_MESSAGE,
    SESSION_EXPIRED_MESSAGE,
    OperationLifecycle,
    Phase,
)

pytestmark = pytest.mark.unit


class RecordingAction:
    """Async action that records payloads and can be told to fail or block."""

    def __init__(self, result="done", error=None):
        self.result = result
        self.error = error
        self.calls = []
        self.gate = None

    async def __call__(self, payload, target):
        self.calls.append((payload, target))
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


def _require_name(fields, _target):
    if not fields.get("name"):
        raise ValidationError({"name": "Name is required"})
    return fields["name"].strip()


def _lifecycle(action, **kwargs):
    kwargs.setdefault("success_display", 0)
    kwargs.setdefault("reset_delay", 0)
    return OperationLifecycle("test_op", action, validator=_require_name, **kwargs)


def test_validation_failure_stays_idle_without_calling_action():
    # Arrange
    action = RecordingAction()
    lifecycle = _lifecycle(action)
    lifecycle.open(name="")

    # Act
    ok = asyncio.run(lifecycle.submit())

    # Assert
    assert ok is False
    assert lifecycle.phase is Phase.IDLE
    assert lifecycle.field_errors == {"name": "Name is required"}
    assert lifecycle.error is None
    assert action.calls == []


def test_set_field_clears_that_fields_error():
    lifecycle = _lifecycle(RecordingAction())
    lifecycle.open(name="")
    asyncio.run(lifecycle.submit())

    lifecycle.set_field("name", "Groceries")

    assert lifecycle.field_errors == {}


def test_success_with_immediate_close_resets_to_idle():
    action = RecordingAction()
    lifecycle = _lifecycle(action)
    lifecycle.open("target", name=" Groceries ")

    ok = asyncio.run(lifecycle.submit())

    assert ok is True
    assert action.calls == [("Groceries", "target")]
    assert lifecycle.is_open is False
    assert lifecycle.phase is Phase.IDLE
    assert lifecycle.fields == {}


def test_phases_in_order_with_timed_auto_close():
    async def scenario():
        action = RecordingAction()
        lifecycle = _lifecycle(action, success_display=0.01, reset_delay=0.01)
        phases = []
        lifecycle.add_listener(lambda lc: phases.append((lc.phase, lc.is_open)))
        lifecycle.open(name="x")

        await lifecycle.submit()
        assert lifecycle.phase is Phase.SUCCEEDED
        assert lifecycle.inputs_enabled is False
        assert lifecycle.result == "done"

        await lifecycle.settle()
        return lifecycle, phases

    lifecycle, phases = asyncio.run(scenario())

    assert [phase for phase, _ in phases] == [
        Phase.IDLE,        # open
        Phase.IN_FLIGHT,
        Phase.SUCCEEDED,
        Phase.SUCCEEDED,   # auto-close hides the view
        Phase.IDLE,        # reset after the delay
    ]
    assert phases[3][1] is False
    assert lifecycle.result is None


def test_inputs_disabled_while_in_flight():
    async def scenario():
        action = RecordingAction()
        action.gate = asyncio.Event()
        lifecycle = _lifecycle(action)
        lifecycle.open(name="x")

        pending = asyncio.create_task(lifecycle.submit())
        await asyncio.sleep(0)
        assert lifecycle.phase is Phase.IN_FLIGHT
        with pytest.raises(RuntimeError):
            lifecycle.set_field("name", "y")
        with pytest.raises(RuntimeError):
            await lifecycle.submit()

        action.gate.set()
        return await pending

    assert asyncio.run(scenario()) is True


@pytest.mark.parametrize(
    "error, message",
    [
        (AuthExpired("Session expired"), SESSION_EXPIRED_MESSAGE),
        (RemoteError(500, "Internal details"), GENERIC_FAILURE_MESSAGE),
        (NetworkError("down"), GENERIC_FAILURE_MESSAGE),
    ],
)
def test_failures_map_to_user_messages(error, message):
    lifecycle = _lifecycle(RecordingAction(error=error))
    lifecycle.open(name="x")

    ok = asyncio.run(lifecycle.submit())

    assert ok is False
    assert lifecycle.phase is Phase.FAILED
    assert lifecycle.error == message
    assert lifecycle.inputs_enabled is True
    assert lifecycle.is_open is True


def test_server_message_shown_when_enabled():
    lifecycle = _lifecycle(
        RecordingAction(error=RemoteError(401, "Invalid credentials")), show_server_messages=True
    )
    lifecycle.open(name="x")

    asyncio.run(lifecycle.submit())

    assert lifecycle.error == "Invalid credentials"


def test_failed_operation_can_be_resubmitted():
    action = RecordingAction(error=NetworkError("down"))
    lifecycle = _lifecycle(action)
    lifecycle.open(name="x")
    asyncio.run(lifecycle.submit())

    action.error = None
    ok = asyncio.run(lifecycle.submit())

    assert ok is True
    assert len(action.calls) == 2
    assert lifecycle.error is None


def test_unexpected_exception_fails_and_propagates():
    lifecycle = _lifecycle(RecordingAction(error=KeyError("task-9")))
    lifecycle.open(name="x")

    with pytest.raises(KeyError):
        asyncio.run(lifecycle.submit())

    assert lifecycle.phase is Phase.FAILED
    assert lifecycle.error == GENERIC_FAILURE_MESSAGE


def test_closing_during_flight_ignores_late_result():
    async def scenario():
        action = RecordingAction()
        action.gate = asyncio.Event()
        lifecycle = _lifecycle(action)
        lifecycle.open(name="x")

        pending = asyncio.create_task(lifecycle.submit())
        await asyncio.sleep(0)
        lifecycle.close()
        lifecycle.open(name="fresh")
        action.gate.set()
        outcome = await pending
        return lifecycle, outcome

    lifecycle, outcome = asyncio.run(scenario())

    assert outcome is True
    assert lifecycle.phase is Phase.IDLE
    assert lifecycle.is_open is True
    assert lifecycle.fields == {"name": "fresh"}
    assert lifecycle.result is None


def test_reopen_during_reset_delay_cancels_reset():
    async def scenario():
        lifecycle = _lifecycle(RecordingAction(), reset_delay=0.01)
        lifecycle.open(name="x")
        lifecycle.close()
        lifecycle.open(name="kept")
        await asyncio.sleep(0.03)
        await lifecycle.settle()
        return lifecycle

    lifecycle = asyncio.run(scenario())

    assert lifecycle.fields == {"name": "kept"}
    assert lifecycle.is_open is True


def test_without_validator_payload_is_field_copy():
    action = RecordingAction()
    lifecycle = OperationLifecycle("plain", action, success_display=0, reset_delay=0)
    lifecycle.open("t", a=1)

    asyncio.run(lifecycle.submit())

    assert action.calls == [({"a": 1}, "t")]


def test_validation_failure_after_failed_submit_clears_stale_error():
    # Arrange
    action = RecordingAction(error=NetworkError("down"))
    lifecycle = _lifecycle(action)
    lifecycle.open(name="x")
    asyncio.run(lifecycle.submit())
    lifecycle.set_field("name", "")

    # Act
    ok = asyncio.run(lifecycle.submit())

    # Assert
    assert ok is False
    assert lifecycle.error is None
    assert lifecycle.field_errors == {"name": "Name is required"}
    assert lifecycle.phase is Phase.IDLE
    assert lifecycle.inputs_enabled is True
    assert len(action.calls) == 1


def test_close_outside_event_loop_resets_immediately():
    lifecycle = _lifecycle(RecordingAction(), reset_delay=0.3)
    lifecycle.open("target", name="a")

    lifecycle.close()

    assert lifecycle.is_open is False
    assert lifecycle.phase is Phase.IDLE
    assert lifecycle.fields == {}
    assert lifecycle.target is None
