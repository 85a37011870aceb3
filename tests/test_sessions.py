import asyncio
import os

import pytest

from passkey_auth.sessions import CeremonyKind


def test_create_and_consume(store):
    challenge = os.urandom(32)
    session_id = store.create("a@x.com", CeremonyKind.REGISTRATION, challenge)

    session = store.consume(session_id)
    assert session is not None
    assert session.challenge == challenge
    assert session.subject == "a@x.com"
    assert session.expires_at - session.created_at == store.ttl


def test_consume_is_destructive(store):
    session_id = store.create("a@x.com", CeremonyKind.AUTHENTICATION, os.urandom(32))

    assert store.consume(session_id) is not None
    assert store.consume(session_id) is None
    assert len(store) == 0


def test_new_session_supersedes_previous(store):
    first = store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))
    second = store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))

    assert store.consume(first) is None
    assert store.consume(second) is not None


def test_sessions_of_other_kind_or_subject_are_independent(store):
    registration = store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))
    authentication = store.create("a@x.com", CeremonyKind.AUTHENTICATION, os.urandom(32))
    other = store.create("b@x.com", CeremonyKind.REGISTRATION, os.urandom(32))

    assert store.consume(registration) is not None
    assert store.consume(authentication) is not None
    assert store.consume(other) is not None


def test_expired_session_is_not_found(store, clock):
    session_id = store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))
    clock.advance(minutes=5)

    assert store.consume(session_id) is None


def test_session_alive_just_before_expiry(store, clock):
    session_id = store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))
    clock.advance(minutes=4, seconds=59)

    assert store.peek(session_id) is not None
    assert store.consume(session_id) is not None


def test_short_challenge_rejected(store):
    with pytest.raises(ValueError):
        store.create("a@x.com", CeremonyKind.REGISTRATION, b"too-short")


def test_invalidate(store):
    session_id = store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))

    assert store.invalidate("a@x.com", CeremonyKind.REGISTRATION) is True
    assert store.invalidate("a@x.com", CeremonyKind.REGISTRATION) is False
    assert store.consume(session_id) is None


def test_live_session(store):
    session_id = store.create("a@x.com", CeremonyKind.AUTHENTICATION, os.urandom(32))

    live = store.live_session("a@x.com", CeremonyKind.AUTHENTICATION)
    assert live is not None
    assert live.session_id == session_id
    assert store.live_session("a@x.com", CeremonyKind.REGISTRATION) is None


def test_sweep_expired(store, clock):
    store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))
    clock.advance(minutes=3)
    fresh = store.create("b@x.com", CeremonyKind.REGISTRATION, os.urandom(32))
    clock.advance(minutes=3)

    assert store.sweep_expired() == 1
    assert len(store) == 1
    assert store.consume(fresh) is not None


@pytest.mark.asyncio
async def test_sweeper_task_can_be_cancelled(store, clock):
    store.create("a@x.com", CeremonyKind.REGISTRATION, os.urandom(32))
    clock.advance(minutes=10)

    task = asyncio.create_task(store.run_sweeper(0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert len(store) == 0
