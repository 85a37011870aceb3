import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from passkey_auth.capability import StaticProbe
from passkey_auth.ceremony import CeremonyStep
from passkey_auth.config import Settings
from passkey_auth.main import create_app

from .conftest import ANDROID_UA, TEST_SECRET_KEY, FakeVerifier, make_credential

ANDROID_SIGNALS = {
    "user_agent": ANDROID_UA,
    "platform": "Linux armv8l",
    "max_touch_points": 5,
    "platform_authenticator_available": True,
}


@pytest.fixture
def app_verifier():
    # Repository is attached once the app has built its services
    return FakeVerifier(None)


@pytest.fixture
def client(app_verifier):
    settings = Settings(secret_key=TEST_SECRET_KEY, db_url="sqlite://")
    app = create_app(settings, probe=StaticProbe(True), verifier=app_verifier)
    with TestClient(app) as client:
        app_verifier.repository = app.state.services.repository
        yield client


@pytest.fixture
def services(client):
    return client.app.state.services


def auth_headers(services, subject="a@x.com", credential_id="cred-1"):
    token = services.tokens.issue(subject, credential_id)
    return {"Authorization": f"Bearer {token}"}


def receive_until(websocket, message_type):
    messages = []
    while True:
        message = websocket.receive_json()
        messages.append(message)
        if message["type"] == message_type:
            return messages


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_detect_capabilities(client):
    response = client.post("/passkeys/capabilities", json=ANDROID_SIGNALS)

    assert response.status_code == 200
    profile = response.json()
    assert profile["platform"] == "android"
    assert profile["primary_method"] == "fingerprint"
    assert profile["platform_authenticator"] is True
    assert profile["biometrics_available"] is True


def test_list_requires_token(client):
    response = client.get("/passkeys/")

    assert response.status_code == 401


def test_list_rejects_bad_token(client):
    response = client.get("/passkeys/", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid token"


def test_list_marks_current_device(client, services):
    services.credentials.add(make_credential(credential_id="cred-1"))
    services.credentials.add(make_credential(credential_id="cred-2"))
    services.credentials.add(make_credential(owner="b@x.com", credential_id="cred-3"))

    response = client.get("/passkeys/", headers=auth_headers(services))

    assert response.status_code == 200
    data = response.json()
    assert data["active_count"] == 2
    assert data["max_active"] == 5
    current = {c["credential_id"]: c["is_current"] for c in data["credentials"]}
    assert current == {"cred-1": True, "cred-2": False}


def test_rename(client, services):
    services.credentials.add(make_credential(credential_id="cred-2"))

    response = client.patch(
        "/passkeys/cred-2",
        json={"device_name": "Work phone"},
        headers=auth_headers(services),
    )

    assert response.status_code == 200
    assert response.json()["device_name"] == "Work phone"


def test_rename_blank_label(client, services):
    services.credentials.add(make_credential(credential_id="cred-2"))

    response = client.patch(
        "/passkeys/cred-2",
        json={"device_name": "   "},
        headers=auth_headers(services),
    )

    assert response.status_code == 400


def test_rename_foreign_credential(client, services):
    services.credentials.add(make_credential(owner="b@x.com", credential_id="cred-2"))

    response = client.patch(
        "/passkeys/cred-2",
        json={"device_name": "Mine now"},
        headers=auth_headers(services),
    )

    assert response.status_code == 404


def test_revoke(client, services):
    services.credentials.add(make_credential(credential_id="cred-1"))
    services.credentials.add(make_credential(credential_id="cred-2"))

    response = client.delete("/passkeys/cred-2", headers=auth_headers(services))

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert services.credentials.get("cred-2").is_active is False


def test_revoke_current_device_conflicts(client, services):
    services.credentials.add(make_credential(credential_id="cred-1"))

    response = client.delete("/passkeys/cred-1", headers=auth_headers(services))

    assert response.status_code == 409
    assert services.credentials.get("cred-1").is_active is True


def test_revoke_unknown(client, services):
    response = client.delete("/passkeys/missing", headers=auth_headers(services))

    assert response.status_code == 404


def test_describe_error(client):
    response = client.get("/passkeys/errors/timeout")

    assert response.status_code == 200
    assert response.json()["retryable"] is True
    assert response.json()["recovery"] == "retry"


def test_describe_unknown_error(client):
    response = client.get("/passkeys/errors/not-a-kind")

    assert response.status_code == 404


def test_register_socket_requires_session(client):
    with pytest.raises(WebSocketDisconnect) as e:
        with client.websocket_connect("/passkeys/ws/register") as websocket:
            websocket.receive_json()

    assert e.value.code == 1008


def test_register_over_websocket(client, services):
    with client.websocket_connect("/passkeys/ws/register", headers=auth_headers(services)) as websocket:
        websocket.send_json({"type": "start", "display_name": "Ana Cruz", "signals": ANDROID_SIGNALS})

        before = receive_until(websocket, "prompt")
        assert [m.get("step") for m in before[:-1]] == [
            CeremonyStep.STARTED.value,
            CeremonyStep.PROMPTING.value,
        ]
        assert before[-1]["operation"] == "create"

        websocket.send_json({"type": "credential", "credential": {"id": "cred-9", "counter": 0}})
        after = receive_until(websocket, "outcome")

    assert [m.get("step") for m in after[:-1]] == [
        CeremonyStep.VERIFYING.value,
        CeremonyStep.COMPLETED.value,
    ]
    outcome = after[-1]
    assert outcome["status"] == "success"
    assert outcome["credential"]["credential_id"] == "cred-9"
    assert services.credentials.get("cred-9").owner == "a@x.com"


def test_register_socket_refuses_unsupported_biometric(client, services):
    with client.websocket_connect("/passkeys/ws/register", headers=auth_headers(services)) as websocket:
        websocket.send_json({"type": "start", "biometric_type": "face", "signals": ANDROID_SIGNALS})
        messages = receive_until(websocket, "outcome")

    assert "prompt" not in [m["type"] for m in messages]
    assert messages[-1]["kind"] == "not_supported"
    assert services.credentials.list_credentials("a@x.com") == []


def test_authenticate_over_websocket(client, services):
    services.credentials.add(make_credential(credential_id="cred-1", counter=3))

    with client.websocket_connect("/passkeys/ws/authenticate") as websocket:
        websocket.send_json({"type": "start", "subject": "a@x.com", "signals": ANDROID_SIGNALS})
        prompt = receive_until(websocket, "prompt")[-1]
        assert prompt["operation"] == "get"

        websocket.send_json({"type": "credential", "credential": {"id": "cred-1", "counter": 4}})
        outcome = receive_until(websocket, "outcome")[-1]

    assert outcome["status"] == "success"
    claims = services.tokens.decode(outcome["session_token"])
    assert claims.subject == "a@x.com"
    assert claims.credential_id == "cred-1"
    assert services.credentials.get("cred-1").signature_counter == 4


def test_authenticate_socket_reports_cancellation(client, services):
    services.credentials.add(make_credential(credential_id="cred-1"))

    with client.websocket_connect("/passkeys/ws/authenticate") as websocket:
        websocket.send_json({"type": "start", "subject": "a@x.com", "signals": ANDROID_SIGNALS})
        receive_until(websocket, "prompt")

        websocket.send_json({"type": "error", "name": "NotAllowedError", "message": "dismissed"})
        messages = receive_until(websocket, "outcome")

    assert messages[-2]["step"] == CeremonyStep.IDLE.value
    assert messages[-1] == {"type": "outcome", "status": "cancelled"}


def test_authenticate_socket_without_passkeys(client):
    with client.websocket_connect("/passkeys/ws/authenticate") as websocket:
        websocket.send_json({"type": "start", "subject": "nobody@x.com", "signals": ANDROID_SIGNALS})
        outcome = receive_until(websocket, "outcome")[-1]

    assert outcome["status"] == "failed"
    assert outcome["kind"] == "no_credentials"


def test_authenticate_socket_rejects_malformed_start(client):
    with client.websocket_connect("/passkeys/ws/authenticate") as websocket:
        websocket.send_json({"type": "hello"})

        with pytest.raises(WebSocketDisconnect) as e:
            websocket.receive_json()

    assert e.value.code == 1003
