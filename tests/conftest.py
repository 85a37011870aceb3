"""Test configuration and fixtures."""

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest

from passkey_auth.audit import MemoryAuditTrail
from passkey_auth.capability import CapabilityDetector, DeviceSignals, StaticProbe
from passkey_auth.ceremony import PasskeyCeremonyService, StepBroadcaster
from passkey_auth.credentials import (
    Credential,
    CredentialLifecycleManager,
    InMemoryCredentialRepository,
)
from passkey_auth.exceptions import AuthenticatorError
from passkey_auth.sessions import CeremonySessionStore
from passkey_auth.tokens import SessionTokenIssuer
from passkey_auth.verifier import (
    AuthenticationChallenge,
    AuthenticationVerification,
    RegistrationChallenge,
    RegistrationVerification,
)

TEST_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"

ANDROID_UA = (
    "Mozilla/5.0 (Linux; Android 13; Nokia G50) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.2 Mobile/15E148 Safari/604.1"
)
WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class FakeClock:
    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2025, 10, 18, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeVerifier:
    """Relying party that trusts whatever the fake authenticator returns."""

    def __init__(self, repository):
        self.repository = repository
        self.accept = True
        self.unavailable = False
        self.calls: list[str] = []

    async def begin_registration(self, subject, display_name, exclude_credential_ids):
        self.calls.append("begin_registration")
        challenge = os.urandom(32)
        return RegistrationChallenge(
            challenge=challenge,
            rp={"id": "localhost", "name": "PSSLAI Loan App"},
            subject_handle=subject.encode(),
            algorithms=[-7, -257],
            options={
                "challenge": challenge.hex(),
                "excludeCredentials": [{"id": cid} for cid in exclude_credential_ids],
            },
        )

    async def verify_registration(self, attestation, profile, session):
        self.calls.append("verify_registration")
        if self.unavailable:
            raise ConnectionError("verifier down")
        if not self.accept:
            return RegistrationVerification(accepted=False)
        return RegistrationVerification(
            accepted=True,
            credential_id=attestation["id"],
            public_key="cHVibGljLWtleQ",
            initial_counter=attestation.get("counter", 0),
            transports=["internal"],
        )

    async def begin_authentication(self, subject):
        self.calls.append("begin_authentication")
        allowed = [c.credential_id for c in self.repository.list_by_owner(subject) if c.is_active]
        if not allowed:
            return None
        challenge = os.urandom(32)
        return AuthenticationChallenge(
            challenge=challenge,
            allowed_credential_ids=allowed,
            options={"challenge": challenge.hex(), "allowCredentials": [{"id": a} for a in allowed]},
        )

    async def verify_authentication(self, assertion, credential, session):
        self.calls.append("verify_authentication")
        return AuthenticationVerification(accepted=self.accept, new_counter=assertion["counter"])


class FakeAuthenticator:
    """Platform authenticator double; records every prompt."""

    def __init__(self, credential_id="cred-1", counter=0, error=None, delay=None):
        self.credential_id = credential_id
        self.counter = counter
        self.error = error
        self.delay = delay
        self.prompts: list[tuple[str, dict]] = []

    async def create_credential(self, options):
        return await self._respond("create", options)

    async def get_assertion(self, options):
        return await self._respond("get", options)

    async def _respond(self, operation, options):
        self.prompts.append((operation, options))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return {"id": self.credential_id, "rawId": self.credential_id, "counter": self.counter}


def cancelled_by_user() -> AuthenticatorError:
    return AuthenticatorError("NotAllowedError", "The operation either timed out or was not allowed.")


def make_credential(owner="a@x.com", credential_id="cred-1", counter=0, created_at=None, **kwargs):
    return Credential(
        credential_id=credential_id,
        owner=owner,
        public_key="cHVibGljLWtleQ",
        signature_counter=counter,
        created_at=created_at or datetime(2025, 10, 1, tzinfo=timezone.utc),
        **kwargs,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def android_signals():
    """Fingerprint-only Android phone with a platform authenticator."""
    return DeviceSignals(
        user_agent=ANDROID_UA,
        platform="Linux armv8l",
        max_touch_points=5,
        platform_authenticator_available=True,
    )


@pytest.fixture
def repository():
    return InMemoryCredentialRepository()


@pytest.fixture
def audit():
    return MemoryAuditTrail()


@pytest.fixture
def manager(repository, audit, clock):
    return CredentialLifecycleManager(repository, audit=audit, clock=clock)


@pytest.fixture
def store(clock):
    return CeremonySessionStore(ttl=timedelta(minutes=5), clock=clock)


@pytest.fixture
def verifier(repository):
    return FakeVerifier(repository)


@pytest.fixture
def broadcaster():
    return StepBroadcaster()


@pytest.fixture
def tokens():
    return SessionTokenIssuer(TEST_SECRET_KEY)


@pytest.fixture
def service(store, verifier, manager, tokens, broadcaster, audit, clock):
    return PasskeyCeremonyService(
        detector=CapabilityDetector(probe=StaticProbe(True), clock=clock),
        sessions=store,
        verifier=verifier,
        credentials=manager,
        tokens=tokens,
        broadcaster=broadcaster,
        audit=audit,
        authenticator_timeout=1.0,
        verifier_timeout=1.0,
        clock=clock,
    )
