import json
import os
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from webauthn.helpers import bytes_to_base64url

from passkey_auth.exceptions import VerifierUnavailableError
from passkey_auth.sessions import CeremonyKind, CeremonySession
from passkey_auth.verifier import HttpRelyingPartyVerifier, LocalRelyingPartyVerifier

from .conftest import make_credential

CHALLENGE = os.urandom(32)
CREDENTIAL_ID = bytes_to_base64url(b"credential-one")


def make_session(kind=CeremonyKind.REGISTRATION):
    now = datetime.now(timezone.utc)
    return CeremonySession(
        session_id="session-1",
        subject="a@x.com",
        kind=kind,
        challenge=CHALLENGE,
        created_at=now,
        expires_at=now + timedelta(minutes=5),
    )


def http_verifier(handler):
    return HttpRelyingPartyVerifier("https://rp.example/api/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_http_begin_registration():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={
            "challenge": bytes_to_base64url(CHALLENGE),
            "rp": {"id": "rp.example", "name": "PSSLAI Loan App"},
            "subject_handle": bytes_to_base64url(b"a@x.com"),
            "algorithms": [-7, -257],
            "options": {"timeout": 60000},
        })

    challenge = await http_verifier(handler).begin_registration("a@x.com", "Ana Cruz", ["old"])

    assert seen["path"] == "/api/registration/options"
    assert seen["body"]["exclude_credentials"] == ["old"]
    assert challenge.challenge == CHALLENGE
    assert challenge.subject_handle == b"a@x.com"
    assert challenge.algorithms == [-7, -257]


@pytest.mark.asyncio
async def test_http_begin_authentication_not_found():
    verifier = http_verifier(lambda request: httpx.Response(404, json={"detail": "not found"}))

    assert await verifier.begin_authentication("a@x.com") is None


@pytest.mark.asyncio
async def test_http_verify_authentication():
    def handler(request):
        body = json.loads(request.content)
        assert body["challenge"] == bytes_to_base64url(CHALLENGE)
        assert body["credential"]["signature_counter"] == 3
        return httpx.Response(200, json={"accepted": True, "new_counter": 4})

    result = await http_verifier(handler).verify_authentication(
        {"id": "cred-1"}, make_credential(counter=3), make_session(CeremonyKind.AUTHENTICATION)
    )

    assert result.accepted is True
    assert result.new_counter == 4


@pytest.mark.asyncio
async def test_http_rejection_status_means_not_accepted():
    verifier = http_verifier(lambda request: httpx.Response(400, json={"detail": "bad signature"}))

    result = await verifier.verify_registration({"id": "cred-1"}, None, make_session())

    assert result.accepted is False


@pytest.mark.asyncio
async def test_http_server_error_is_unavailable():
    verifier = http_verifier(lambda request: httpx.Response(503))

    with pytest.raises(VerifierUnavailableError):
        await verifier.begin_authentication("a@x.com")


@pytest.mark.asyncio
async def test_http_transport_error_is_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(VerifierUnavailableError):
        await http_verifier(handler).begin_registration("a@x.com", "Ana Cruz", [])


@pytest.mark.asyncio
async def test_local_registration_options(repository):
    verifier = LocalRelyingPartyVerifier(repository, rp_id="localhost", origin="https://localhost")

    challenge = await verifier.begin_registration("a@x.com", "Ana Cruz", [CREDENTIAL_ID])

    assert len(challenge.challenge) >= 16
    assert challenge.rp == {"id": "localhost", "name": "PSSLAI Loan App"}
    assert challenge.options["challenge"] == bytes_to_base64url(challenge.challenge)
    assert challenge.options["authenticatorSelection"]["userVerification"] == "required"
    assert challenge.options["authenticatorSelection"]["authenticatorAttachment"] == "platform"
    assert [c["id"] for c in challenge.options["excludeCredentials"]] == [CREDENTIAL_ID]


@pytest.mark.asyncio
async def test_local_authentication_options(repository):
    verifier = LocalRelyingPartyVerifier(repository)
    assert await verifier.begin_authentication("a@x.com") is None

    repository.insert(make_credential(credential_id=CREDENTIAL_ID, transports=["internal"]))
    challenge = await verifier.begin_authentication("a@x.com")

    assert challenge.allowed_credential_ids == [CREDENTIAL_ID]
    assert challenge.options["userVerification"] == "required"
    assert challenge.options["allowCredentials"][0]["id"] == CREDENTIAL_ID


@pytest.mark.asyncio
async def test_local_malformed_attestation_is_rejected(repository):
    verifier = LocalRelyingPartyVerifier(repository)

    result = await verifier.verify_registration({"id": CREDENTIAL_ID}, None, make_session())

    assert result.accepted is False
