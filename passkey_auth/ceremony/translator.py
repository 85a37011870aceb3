# (c) Copyright Datacraft, 2026
"""Translate authenticator and protocol failures into user-facing outcomes."""
import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

import httpx

from passkey_auth.exceptions import (
	AuthenticatorError,
	CounterRegressionError,
	CredentialNotFoundError,
	DeviceLimitReachedError,
	DuplicateCredentialError,
	NoCredentialsError,
	PlatformNotSupportedError,
	SessionNotFoundError,
	VerificationRejectedError,
	VerifierUnavailableError,
)

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
	NOT_SUPPORTED = "not_supported"
	USER_CANCELLED = "user_cancelled"
	TIMEOUT = "timeout"
	DEVICE_ALREADY_REGISTERED = "device_already_registered"
	NO_CREDENTIALS = "no_credentials"
	DEVICE_LIMIT_REACHED = "device_limit_reached"
	SIGNATURE_REJECTED = "signature_rejected"
	NETWORK_ERROR = "network_error"
	CHALLENGE_EXPIRED_OR_CONSUMED = "challenge_expired_or_consumed"
	UNKNOWN = "unknown"


class RecoveryAction(str, Enum):
	RETRY = "retry"
	USE_FALLBACK = "use_fallback"
	CONTACT_SUPPORT = "contact_support"


@dataclass(frozen=True)
class Translation:
	"""User-actionable view of a failure."""
	kind: ErrorKind
	retryable: bool
	user_message: str
	recovery: RecoveryAction


ERROR_CATALOG: dict[ErrorKind, Translation] = {
	ErrorKind.NOT_SUPPORTED: Translation(
		ErrorKind.NOT_SUPPORTED, False,
		"Your device does not support passkey authentication.",
		RecoveryAction.USE_FALLBACK,
	),
	ErrorKind.USER_CANCELLED: Translation(
		ErrorKind.USER_CANCELLED, True,
		"The passkey request was cancelled. Please try again.",
		RecoveryAction.RETRY,
	),
	ErrorKind.TIMEOUT: Translation(
		ErrorKind.TIMEOUT, True,
		"The passkey request timed out. Please try again.",
		RecoveryAction.RETRY,
	),
	ErrorKind.DEVICE_ALREADY_REGISTERED: Translation(
		ErrorKind.DEVICE_ALREADY_REGISTERED, False,
		"This device may already be registered. Try signing in instead.",
		RecoveryAction.USE_FALLBACK,
	),
	ErrorKind.NO_CREDENTIALS: Translation(
		ErrorKind.NO_CREDENTIALS, False,
		"No passkeys found for this account. Please register a passkey first.",
		RecoveryAction.USE_FALLBACK,
	),
	ErrorKind.DEVICE_LIMIT_REACHED: Translation(
		ErrorKind.DEVICE_LIMIT_REACHED, False,
		"You've reached the maximum number of devices. Remove an old device to add a new one.",
		RecoveryAction.USE_FALLBACK,
	),
	ErrorKind.SIGNATURE_REJECTED: Translation(
		ErrorKind.SIGNATURE_REJECTED, False,
		"We could not verify this passkey. Please contact support.",
		RecoveryAction.CONTACT_SUPPORT,
	),
	ErrorKind.NETWORK_ERROR: Translation(
		ErrorKind.NETWORK_ERROR, True,
		"We couldn't reach the server. Check your connection and try again.",
		RecoveryAction.RETRY,
	),
	ErrorKind.CHALLENGE_EXPIRED_OR_CONSUMED: Translation(
		ErrorKind.CHALLENGE_EXPIRED_OR_CONSUMED, True,
		"This request has expired. Please start again.",
		RecoveryAction.RETRY,
	),
	ErrorKind.UNKNOWN: Translation(
		ErrorKind.UNKNOWN, True,
		"Something went wrong. Please try again.",
		RecoveryAction.RETRY,
	),
}

# WebAuthn DOMException names
AUTHENTICATOR_ERRORS: dict[str, ErrorKind] = {
	"NotAllowedError": ErrorKind.USER_CANCELLED,
	"AbortError": ErrorKind.USER_CANCELLED,
	"TimeoutError": ErrorKind.TIMEOUT,
	"InvalidStateError": ErrorKind.DEVICE_ALREADY_REGISTERED,
	"NotSupportedError": ErrorKind.NOT_SUPPORTED,
	"NetworkError": ErrorKind.NETWORK_ERROR,
}

EXCEPTION_KINDS: tuple[tuple[type[BaseException], ErrorKind], ...] = (
	(PlatformNotSupportedError, ErrorKind.NOT_SUPPORTED),
	(NoCredentialsError, ErrorKind.NO_CREDENTIALS),
	(CredentialNotFoundError, ErrorKind.NO_CREDENTIALS),
	(DeviceLimitReachedError, ErrorKind.DEVICE_LIMIT_REACHED),
	(DuplicateCredentialError, ErrorKind.DEVICE_ALREADY_REGISTERED),
	(CounterRegressionError, ErrorKind.SIGNATURE_REJECTED),
	(VerificationRejectedError, ErrorKind.SIGNATURE_REJECTED),
	(SessionNotFoundError, ErrorKind.CHALLENGE_EXPIRED_OR_CONSUMED),
	(VerifierUnavailableError, ErrorKind.NETWORK_ERROR),
	(httpx.TransportError, ErrorKind.NETWORK_ERROR),
	(httpx.HTTPStatusError, ErrorKind.NETWORK_ERROR),
	(asyncio.TimeoutError, ErrorKind.TIMEOUT),
	(TimeoutError, ErrorKind.TIMEOUT),
	(ConnectionError, ErrorKind.NETWORK_ERROR),
)


def describe(kind: ErrorKind) -> Translation:
	return ERROR_CATALOG[ErrorKind(kind)]


def _from_authenticator_name(name: str, message: str | None = None) -> ErrorKind:
	kind = AUTHENTICATOR_ERRORS.get(name, ErrorKind.UNKNOWN)
	# NotAllowedError covers both dismissal and the platform's own timeout
	if kind == ErrorKind.USER_CANCELLED and message and "timed out" in message.lower():
		return ErrorKind.TIMEOUT
	return kind


def classify(raw_error: object) -> ErrorKind:
	if isinstance(raw_error, ErrorKind):
		return raw_error
	if isinstance(raw_error, AuthenticatorError):
		return _from_authenticator_name(raw_error.name, raw_error.message)
	if isinstance(raw_error, BaseException):
		for exc_type, kind in EXCEPTION_KINDS:
			if isinstance(raw_error, exc_type):
				return kind
		return ErrorKind.UNKNOWN
	if isinstance(raw_error, str):
		return _from_authenticator_name(raw_error)
	if isinstance(raw_error, Mapping):
		return _from_authenticator_name(str(raw_error.get("name", "")), raw_error.get("message"))
	return ErrorKind.UNKNOWN


def translate(raw_error: object) -> Translation:
	"""Map a raw failure to its ErrorKind, retry policy and message.

	Accepts exceptions, platform error names (``"NotAllowedError"``) and
	error payloads sent by the browser (``{"name": ..., "message": ...}``).
	"""
	kind = classify(raw_error)
	if kind == ErrorKind.UNKNOWN:
		logger.warning(f"Unrecognised ceremony failure: {raw_error!r}")
	return ERROR_CATALOG[kind]
