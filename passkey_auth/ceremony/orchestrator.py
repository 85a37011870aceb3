# (c) Copyright Datacraft, 2026
"""Passkey registration and authentication ceremonies."""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from passkey_auth.audit import AuditEntry, AuditEventType, AuditTrail
from passkey_auth.capability import (
	BiometricMethod,
	BiometricType,
	CapabilityDetector,
	DeviceProfile,
	DeviceSignals,
	biometric_display_name,
)
from passkey_auth.credentials import Credential, CredentialLifecycleManager
from passkey_auth.exceptions import (
	CounterRegressionError,
	NoCredentialsError,
	PlatformNotSupportedError,
	SessionNotFoundError,
	VerificationRejectedError,
	VerifierUnavailableError,
)
from passkey_auth.sessions import CeremonyKind, CeremonySession, CeremonySessionStore
from passkey_auth.tokens import SessionTokenIssuer
from passkey_auth.verifier import RelyingPartyVerifier

from .authenticator import PlatformAuthenticator
from .outcome import Cancelled, CeremonyOutcome, Failed, Success
from .state import CeremonyStateMachine, CeremonyStep, StepBroadcaster, StepListener
from .translator import ErrorKind, translate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def credential_id_of(payload: dict[str, Any]) -> str | None:
	"""Credential id of a WebAuthn JSON response (``id`` or ``rawId``)."""
	return payload.get("id") or payload.get("rawId")


class PasskeyCeremonyService:
	"""Drives passkey ceremonies from capability check to outcome.

	Every failure ends as a ``CeremonyOutcome``; only task cancellation
	escapes, after the ceremony has been returned to idle.
	"""

	def __init__(
		self,
		detector: CapabilityDetector,
		sessions: CeremonySessionStore,
		verifier: RelyingPartyVerifier,
		credentials: CredentialLifecycleManager,
		tokens: SessionTokenIssuer | None = None,
		broadcaster: StepBroadcaster | None = None,
		audit: AuditTrail | None = None,
		authenticator_timeout: float = 60.0,
		verifier_timeout: float = 10.0,
		clock: Callable[[], datetime] | None = None,
	):
		self.detector = detector
		self.sessions = sessions
		self.verifier = verifier
		self.credentials = credentials
		self.tokens = tokens
		self.broadcaster = broadcaster or StepBroadcaster()
		self.audit = audit or credentials.audit
		self.authenticator_timeout = authenticator_timeout
		self.verifier_timeout = verifier_timeout
		self.clock = clock or (lambda: datetime.now(timezone.utc))

	async def detect_capabilities(self, signals: DeviceSignals | None = None) -> DeviceProfile:
		return await self.detector.detect(signals)

	def list_credentials(self, owner: str) -> list[Credential]:
		return self.credentials.list_credentials(owner)

	def rename_credential(self, credential_id: str, label: str, owner: str | None = None) -> Credential:
		return self.credentials.rename(credential_id, label, owner=owner)

	def revoke_credential(
		self,
		credential_id: str,
		current_credential_id: str | None = None,
		owner: str | None = None,
	) -> Credential:
		return self.credentials.revoke(credential_id, current_credential_id, owner=owner)

	def abandon(self, subject: str, kind: CeremonyKind) -> bool:
		"""Invalidate the subject's in-flight challenge of ``kind``."""
		return self.sessions.invalidate(subject, kind)

	async def start_registration(
		self,
		subject: str,
		display_name: str,
		authenticator: PlatformAuthenticator,
		signals: DeviceSignals | None = None,
		device_name: str | None = None,
		on_step: StepListener | None = None,
		biometric_type: BiometricType | None = None,
	) -> CeremonyOutcome:
		"""Register a new passkey for ``subject`` on the calling device.

		``biometric_type`` picks the method to enrol; it must be supported
		by the device. Without it the profile's primary method is used.
		"""
		machine = self._machine(CeremonyKind.REGISTRATION, subject, on_step)
		return await self._run(
			machine,
			self._register(
				machine, subject, display_name, authenticator, signals, device_name, biometric_type
			),
		)

	async def start_authentication(
		self,
		subject: str,
		authenticator: PlatformAuthenticator,
		signals: DeviceSignals | None = None,
		on_step: StepListener | None = None,
	) -> CeremonyOutcome:
		"""Sign ``subject`` in with one of their passkeys."""
		machine = self._machine(CeremonyKind.AUTHENTICATION, subject, on_step)
		return await self._run(machine, self._authenticate(machine, subject, authenticator, signals))

	async def _register(
		self,
		machine: CeremonyStateMachine,
		subject: str,
		display_name: str,
		authenticator: PlatformAuthenticator,
		signals: DeviceSignals | None,
		device_name: str | None,
		biometric_type: BiometricType | None,
	) -> CeremonyOutcome:
		machine.start()
		profile = await self._require_platform_authenticator(signals)
		method = self._enrolment_method(profile, biometric_type)
		self.credentials.ensure_capacity(subject)

		existing = [c.credential_id for c in self.credentials.active_credentials(subject)]
		challenge = await self._call_verifier(
			self.verifier.begin_registration(subject, display_name, existing)
		)
		session_id = self.sessions.create(
			subject,
			CeremonyKind.REGISTRATION,
			challenge.challenge,
			context={"ceremony_id": machine.ceremony_id},
		)

		machine.prompt(method.name if method else biometric_display_name(None))
		attestation = await asyncio.wait_for(
			authenticator.create_credential(challenge.options),
			timeout=self.authenticator_timeout,
		)

		machine.verify()
		session = self._consume(session_id)
		result = await self._call_verifier(
			self.verifier.verify_registration(attestation, profile, session)
		)
		if not result.accepted or not result.credential_id or not result.public_key:
			raise VerificationRejectedError("Attestation was not accepted")

		credential = self.credentials.add(Credential(
			credential_id=result.credential_id,
			owner=subject,
			public_key=result.public_key,
			signature_counter=result.initial_counter,
			device_name=device_name or profile.device_name,
			device_profile=profile.snapshot(),
			biometric_type=method.type if method else None,
			security_class=method.security_class if method else None,
			transports=result.transports,
			aaguid=result.aaguid,
			created_at=self.clock(),
		))

		machine.complete()
		return Success(credential=credential)

	async def _authenticate(
		self,
		machine: CeremonyStateMachine,
		subject: str,
		authenticator: PlatformAuthenticator,
		signals: DeviceSignals | None,
	) -> CeremonyOutcome:
		machine.start()
		challenge = await self._call_verifier(self.verifier.begin_authentication(subject))
		if challenge is None or not challenge.allowed_credential_ids:
			raise NoCredentialsError(subject)
		profile = await self._require_platform_authenticator(signals)

		session_id = self.sessions.create(
			subject,
			CeremonyKind.AUTHENTICATION,
			challenge.challenge,
			context={
				"ceremony_id": machine.ceremony_id,
				"allowed_credential_ids": list(challenge.allowed_credential_ids),
			},
		)

		machine.prompt(biometric_display_name(profile.primary_method, profile))
		assertion = await asyncio.wait_for(
			authenticator.get_assertion(challenge.options),
			timeout=self.authenticator_timeout,
		)

		machine.verify()
		session = self._consume(session_id)
		credential = self._asserted_credential(assertion, session)
		result = await self._call_verifier(
			self.verifier.verify_authentication(assertion, credential, session)
		)
		if not result.accepted:
			self.credentials.record_biometric_failure(credential.credential_id)
			raise VerificationRejectedError(f"Assertion rejected for {credential.credential_id}")

		credential = self.credentials.touch(credential.credential_id, result.new_counter)
		token = self.tokens.issue(subject, credential.credential_id) if self.tokens else None

		machine.complete()
		return Success(credential=credential, session_token=token)

	async def _run(
		self,
		machine: CeremonyStateMachine,
		steps: Awaitable[CeremonyOutcome],
	) -> CeremonyOutcome:
		try:
			return await steps
		except asyncio.CancelledError:
			if machine.step != CeremonyStep.IDLE and not machine.is_terminal:
				machine.cancel()
			raise
		except Exception as e:
			return self._finish_with_error(machine, e)

	def _finish_with_error(self, machine: CeremonyStateMachine, error: Exception) -> CeremonyOutcome:
		translation = translate(error)

		if translation.kind == ErrorKind.USER_CANCELLED and machine.step == CeremonyStep.PROMPTING:
			# The challenge stays live until it expires or is superseded
			machine.cancel()
			logger.info(f"{machine.kind.value} ceremony {machine.ceremony_id} cancelled by user")
			return Cancelled()

		if translation.kind == ErrorKind.UNKNOWN:
			logger.error(f"{machine.kind.value} ceremony {machine.ceremony_id} failed: {error}", exc_info=error)
		else:
			logger.info(
				f"{machine.kind.value} ceremony {machine.ceremony_id} failed: {translation.kind.value}"
			)

		if translation.kind == ErrorKind.SIGNATURE_REJECTED and not isinstance(error, CounterRegressionError):
			self.audit.record(AuditEntry(
				event=AuditEventType.SIGNATURE_REJECTED,
				subject=machine.subject,
				detail={"ceremony": machine.kind.value, "reason": str(error)},
			))

		if machine.can_move(CeremonyStep.FAILED):
			machine.fail(translation.kind)
		return Failed.from_translation(translation)

	async def _require_platform_authenticator(self, signals: DeviceSignals | None) -> DeviceProfile:
		profile = await self.detector.detect(signals)
		if not profile.platform_authenticator:
			raise PlatformNotSupportedError("No user-verifying platform authenticator")
		return profile

	@staticmethod
	def _enrolment_method(
		profile: DeviceProfile,
		biometric_type: BiometricType | None,
	) -> BiometricMethod | None:
		if biometric_type is None:
			return profile.primary
		method = profile.method(BiometricType(biometric_type))
		if method is None or not method.supported:
			raise PlatformNotSupportedError(
				f"{biometric_display_name(biometric_type)} is not supported on this device"
			)
		return method

	async def _call_verifier(self, call: Awaitable[T]) -> T:
		try:
			return await asyncio.wait_for(call, timeout=self.verifier_timeout)
		except asyncio.TimeoutError:
			raise VerifierUnavailableError("Verifier did not answer in time")

	def _consume(self, session_id: str) -> CeremonySession:
		session = self.sessions.consume(session_id)
		if session is None:
			raise SessionNotFoundError(f"Ceremony session {session_id} is no longer live")
		return session

	def _asserted_credential(self, assertion: dict[str, Any], session: CeremonySession) -> Credential:
		credential_id = credential_id_of(assertion)
		allowed = session.context.get("allowed_credential_ids") or []
		if not credential_id or credential_id not in allowed:
			raise VerificationRejectedError("Assertion names a credential that was not offered")
		credential = self.credentials.repository.get(credential_id)
		if credential is None or not credential.is_active or credential.owner != session.subject:
			raise VerificationRejectedError(f"Credential {credential_id} is not usable")
		return credential

	def _machine(
		self,
		kind: CeremonyKind,
		subject: str,
		on_step: StepListener | None = None,
	) -> CeremonyStateMachine:
		return CeremonyStateMachine(
			kind=kind,
			subject=subject,
			broadcaster=self.broadcaster,
			listener=on_step,
			clock=self.clock,
		)
