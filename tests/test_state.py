import asyncio

import pytest

from passkey_auth.ceremony import CeremonyStateMachine, CeremonyStep, ErrorKind, StepBroadcaster
from passkey_auth.exceptions import InvalidTransitionError
from passkey_auth.sessions import CeremonyKind


def make_machine(broadcaster=None, listener=None):
    return CeremonyStateMachine(
        kind=CeremonyKind.REGISTRATION,
        subject="a@x.com",
        broadcaster=broadcaster,
        listener=listener,
    )


def test_happy_path_publishes_every_step():
    broadcaster = StepBroadcaster()
    events = []
    broadcaster.subscribe(events.append)
    machine = make_machine(broadcaster)

    machine.start()
    machine.prompt("Face ID")
    machine.verify()
    machine.complete()

    assert [e.step for e in events] == [
        CeremonyStep.STARTED,
        CeremonyStep.PROMPTING,
        CeremonyStep.VERIFYING,
        CeremonyStep.COMPLETED,
    ]
    assert events[1].label == "Face ID"
    assert machine.is_terminal


def test_skipping_a_step_is_rejected():
    machine = make_machine()
    machine.start()

    with pytest.raises(InvalidTransitionError):
        machine.verify()
    assert machine.step == CeremonyStep.STARTED


def test_terminal_steps_cannot_move():
    machine = make_machine()
    machine.start()
    machine.fail(ErrorKind.NOT_SUPPORTED)

    assert machine.error_kind == ErrorKind.NOT_SUPPORTED
    with pytest.raises(InvalidTransitionError):
        machine.prompt()
    with pytest.raises(InvalidTransitionError):
        machine.cancel()


def test_cancel_returns_to_idle():
    machine = make_machine()
    machine.start()
    machine.prompt()
    machine.cancel()

    assert machine.step == CeremonyStep.IDLE
    machine.start()
    assert machine.step == CeremonyStep.STARTED


def test_failed_event_carries_error_kind():
    events = []
    machine = make_machine(listener=events.append)
    machine.start()
    machine.fail(ErrorKind.DEVICE_LIMIT_REACHED)

    assert events[-1].error_kind == ErrorKind.DEVICE_LIMIT_REACHED
    assert events[-1].to_dict()["error_kind"] == "device_limit_reached"


def test_failing_listener_does_not_break_the_machine():
    def broken(event):
        raise RuntimeError("listener down")

    broadcaster = StepBroadcaster()
    broadcaster.subscribe(broken)
    machine = make_machine(broadcaster, listener=broken)

    machine.start()
    assert machine.step == CeremonyStep.STARTED


def test_unsubscribe():
    broadcaster = StepBroadcaster()
    events = []
    unsubscribe = broadcaster.subscribe(events.append)
    unsubscribe()
    unsubscribe()

    make_machine(broadcaster).start()
    assert events == []
    assert len(broadcaster) == 0


@pytest.mark.asyncio
async def test_stream_yields_published_steps():
    broadcaster = StepBroadcaster()
    received = []

    async def consume():
        async for event in broadcaster.stream():
            received.append(event.step)
            if event.step == CeremonyStep.PROMPTING:
                return

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    machine = make_machine(broadcaster)
    machine.start()
    machine.prompt()
    await asyncio.wait_for(task, timeout=1)

    assert received == [CeremonyStep.STARTED, CeremonyStep.PROMPTING]
