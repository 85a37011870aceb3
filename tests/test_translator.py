import asyncio

import httpx
import pytest

from passkey_auth.ceremony import ErrorKind, RecoveryAction, describe, translate
from passkey_auth.ceremony.translator import ERROR_CATALOG
from passkey_auth.exceptions import (
    AuthenticatorError,
    CounterRegressionError,
    DeviceLimitReachedError,
    NoCredentialsError,
    PlatformNotSupportedError,
    SessionNotFoundError,
    VerificationRejectedError,
    VerifierUnavailableError,
)


@pytest.mark.parametrize("raw, kind", [
    ("NotAllowedError", ErrorKind.USER_CANCELLED),
    ("AbortError", ErrorKind.USER_CANCELLED),
    ("InvalidStateError", ErrorKind.DEVICE_ALREADY_REGISTERED),
    ("NotSupportedError", ErrorKind.NOT_SUPPORTED),
    ({"name": "NotAllowedError", "message": "The operation timed out."}, ErrorKind.TIMEOUT),
    (AuthenticatorError("NetworkError"), ErrorKind.NETWORK_ERROR),
    (asyncio.TimeoutError(), ErrorKind.TIMEOUT),
    (httpx.ConnectError("refused"), ErrorKind.NETWORK_ERROR),
    (VerifierUnavailableError("down"), ErrorKind.NETWORK_ERROR),
    (VerificationRejectedError("bad signature"), ErrorKind.SIGNATURE_REJECTED),
    (CounterRegressionError("cred-1", 4, 4), ErrorKind.SIGNATURE_REJECTED),
    (DeviceLimitReachedError("a@x.com", 5), ErrorKind.DEVICE_LIMIT_REACHED),
    (NoCredentialsError("a@x.com"), ErrorKind.NO_CREDENTIALS),
    (PlatformNotSupportedError(), ErrorKind.NOT_SUPPORTED),
    (SessionNotFoundError(), ErrorKind.CHALLENGE_EXPIRED_OR_CONSUMED),
])
def test_translate_kinds(raw, kind):
    assert translate(raw).kind == kind


def test_unknown_errors_are_retryable():
    translation = translate(RuntimeError("boom"))

    assert translation.kind == ErrorKind.UNKNOWN
    assert translation.retryable is True
    assert translate("SomethingNewError").kind == ErrorKind.UNKNOWN


@pytest.mark.parametrize("kind", [
    ErrorKind.TIMEOUT,
    ErrorKind.NETWORK_ERROR,
    ErrorKind.USER_CANCELLED,
])
def test_transient_kinds_are_retryable(kind):
    assert describe(kind).retryable is True


@pytest.mark.parametrize("kind", [
    ErrorKind.DEVICE_LIMIT_REACHED,
    ErrorKind.SIGNATURE_REJECTED,
    ErrorKind.NOT_SUPPORTED,
])
def test_terminal_kinds_are_not_retryable(kind):
    assert describe(kind).retryable is False


def test_every_kind_has_one_message_and_recovery():
    assert set(ERROR_CATALOG) == set(ErrorKind)
    for kind, translation in ERROR_CATALOG.items():
        assert translation.kind == kind
        assert translation.user_message
        assert isinstance(translation.recovery, RecoveryAction)


def test_messages_hide_protocol_names():
    for translation in ERROR_CATALOG.values():
        assert "Error" not in translation.user_message
        assert "WebAuthn" not in translation.user_message


def test_signature_rejected_points_to_support():
    assert describe(ErrorKind.SIGNATURE_REJECTED).recovery == RecoveryAction.CONTACT_SUPPORT
    assert describe(ErrorKind.NOT_SUPPORTED).recovery == RecoveryAction.USE_FALLBACK


def test_recovery_actions_are_retry_fallback_or_support():
    assert {a.value for a in RecoveryAction} == {"retry", "use_fallback", "contact_support"}
    assert describe(ErrorKind.DEVICE_LIMIT_REACHED).recovery == RecoveryAction.USE_FALLBACK
    assert describe(ErrorKind.DEVICE_ALREADY_REGISTERED).recovery == RecoveryAction.USE_FALLBACK
