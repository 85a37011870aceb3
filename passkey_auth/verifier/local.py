# (c) Copyright Datacraft, 2026
"""In-process relying-party verifier built on py_webauthn."""
import json
import logging
from typing import Any

from webauthn import (
	generate_authentication_options,
	generate_registration_options,
	options_to_json,
	verify_authentication_response,
	verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import (
	AuthenticatorAttachment,
	AuthenticatorSelectionCriteria,
	AuthenticatorTransport,
	COSEAlgorithmIdentifier,
	PublicKeyCredentialDescriptor,
	PublicKeyCredentialType,
	ResidentKeyRequirement,
	UserVerificationRequirement,
)

from passkey_auth.capability.models import DeviceProfile
from passkey_auth.credentials.models import Credential
from passkey_auth.credentials.repository import CredentialRepository
from passkey_auth.sessions import CeremonySession

from .base import (
	AuthenticationChallenge,
	AuthenticationVerification,
	RegistrationChallenge,
	RegistrationVerification,
)

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = [
	COSEAlgorithmIdentifier.ECDSA_SHA_256,
	COSEAlgorithmIdentifier.RSASSA_PKCS1_v1_5_SHA_256,
]


def _descriptor(credential_id: str, transports: list[str] | None = None) -> PublicKeyCredentialDescriptor:
	known = []
	for t in transports or []:
		try:
			known.append(AuthenticatorTransport(t))
		except ValueError:
			continue
	return PublicKeyCredentialDescriptor(
		id=base64url_to_bytes(credential_id),
		type=PublicKeyCredentialType.PUBLIC_KEY,
		transports=known or None,
	)


class LocalRelyingPartyVerifier:
	"""Verifier that runs WebAuthn checks in this process.

	Public keys and counters come from the credential repository; the
	challenge comes from the consumed ceremony session.
	"""

	def __init__(
		self,
		repository: CredentialRepository,
		rp_id: str = "localhost",
		rp_name: str = "PSSLAI Loan App",
		origin: str = "https://localhost",
		timeout: int = 60000,
	):
		self.repository = repository
		self.rp_id = rp_id
		self.rp_name = rp_name
		self.origin = origin
		self.timeout = timeout

	async def begin_registration(
		self,
		subject: str,
		display_name: str,
		exclude_credential_ids: list[str],
	) -> RegistrationChallenge:
		subject_handle = subject.encode()
		options = generate_registration_options(
			rp_id=self.rp_id,
			rp_name=self.rp_name,
			user_id=subject_handle,
			user_name=subject,
			user_display_name=display_name or subject,
			timeout=self.timeout,
			authenticator_selection=AuthenticatorSelectionCriteria(
				authenticator_attachment=AuthenticatorAttachment.PLATFORM,
				resident_key=ResidentKeyRequirement.PREFERRED,
				user_verification=UserVerificationRequirement.REQUIRED,
			),
			supported_pub_key_algs=SUPPORTED_ALGORITHMS,
			exclude_credentials=[_descriptor(cid) for cid in exclude_credential_ids] or None,
		)
		return RegistrationChallenge(
			challenge=options.challenge,
			rp={"id": self.rp_id, "name": self.rp_name},
			subject_handle=subject_handle,
			algorithms=[alg.value for alg in SUPPORTED_ALGORITHMS],
			options=json.loads(options_to_json(options)),
		)

	async def verify_registration(
		self,
		attestation: dict[str, Any],
		profile: DeviceProfile | None,
		session: CeremonySession,
	) -> RegistrationVerification:
		try:
			verification = verify_registration_response(
				credential=attestation,
				expected_challenge=session.challenge,
				expected_rp_id=self.rp_id,
				expected_origin=self.origin,
				require_user_verification=True,
			)
		except (WebAuthnException, KeyError, ValueError) as e:
			logger.warning(f"Registration verification failed for {session.subject}: {e}")
			return RegistrationVerification(accepted=False)

		transports = (attestation.get("response") or {}).get("transports") or []
		return RegistrationVerification(
			accepted=True,
			credential_id=bytes_to_base64url(verification.credential_id),
			public_key=bytes_to_base64url(verification.credential_public_key),
			initial_counter=verification.sign_count,
			aaguid=verification.aaguid or None,
			transports=list(transports),
		)

	async def begin_authentication(self, subject: str) -> AuthenticationChallenge | None:
		credentials = [c for c in self.repository.list_by_owner(subject) if c.is_active]
		if not credentials:
			return None

		options = generate_authentication_options(
			rp_id=self.rp_id,
			timeout=self.timeout,
			allow_credentials=[_descriptor(c.credential_id, c.transports) for c in credentials],
			user_verification=UserVerificationRequirement.REQUIRED,
		)
		return AuthenticationChallenge(
			challenge=options.challenge,
			allowed_credential_ids=[c.credential_id for c in credentials],
			options=json.loads(options_to_json(options)),
		)

	async def verify_authentication(
		self,
		assertion: dict[str, Any],
		credential: Credential,
		session: CeremonySession,
	) -> AuthenticationVerification:
		try:
			verification = verify_authentication_response(
				credential=assertion,
				expected_challenge=session.challenge,
				expected_rp_id=self.rp_id,
				expected_origin=self.origin,
				credential_public_key=base64url_to_bytes(credential.public_key),
				# Counter monotonicity is checked by the lifecycle manager
				credential_current_sign_count=0,
				require_user_verification=True,
			)
		except (WebAuthnException, KeyError, ValueError) as e:
			logger.warning(f"Assertion verification failed for {credential.credential_id}: {e}")
			return AuthenticationVerification(accepted=False)

		return AuthenticationVerification(accepted=True, new_counter=verification.new_sign_count)
