# (c) Copyright Datacraft, 2026
"""Relying-party verifier reached over HTTPS."""
import logging
from typing import Any

import httpx
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url

from passkey_auth.capability.models import DeviceProfile
from passkey_auth.credentials.models import Credential
from passkey_auth.exceptions import VerifierUnavailableError
from passkey_auth.sessions import CeremonySession

from .base import (
	AuthenticationChallenge,
	AuthenticationVerification,
	RegistrationChallenge,
	RegistrationVerification,
)

logger = logging.getLogger(__name__)

# Statuses that mean "the verifier looked and said no"
REJECTION_STATUSES = frozenset({400, 401, 403, 422})


class HttpRelyingPartyVerifier:
	"""JSON client for a remote relying-party server.

	Endpoints, relative to ``base_url``:

	- ``POST /registration/options``
	- ``POST /registration/verify``
	- ``POST /authentication/options`` (404 when the subject has no passkeys)
	- ``POST /authentication/verify``

	Binary values travel Base64URL encoded.
	"""

	def __init__(
		self,
		base_url: str,
		timeout: float = 10.0,
		transport: httpx.AsyncBaseTransport | None = None,
	):
		self.base_url = base_url.rstrip("/")
		self.timeout = timeout
		self.transport = transport

	async def begin_registration(
		self,
		subject: str,
		display_name: str,
		exclude_credential_ids: list[str],
	) -> RegistrationChallenge:
		response = await self._post("/registration/options", {
			"subject": subject,
			"display_name": display_name,
			"exclude_credentials": exclude_credential_ids,
		})
		self._raise_for_status(response)
		data = response.json()
		return RegistrationChallenge(
			challenge=base64url_to_bytes(data["challenge"]),
			rp=data["rp"],
			subject_handle=base64url_to_bytes(data["subject_handle"]),
			algorithms=list(data.get("algorithms", [])),
			options=data.get("options", {}),
		)

	async def verify_registration(
		self,
		attestation: dict[str, Any],
		profile: DeviceProfile | None,
		session: CeremonySession,
	) -> RegistrationVerification:
		response = await self._post("/registration/verify", {
			"subject": session.subject,
			"challenge": bytes_to_base64url(session.challenge),
			"attestation": attestation,
			"device_profile": profile.snapshot() if profile else None,
		})
		if response.status_code in REJECTION_STATUSES:
			logger.warning(f"Verifier rejected registration for {session.subject}")
			return RegistrationVerification(accepted=False)
		self._raise_for_status(response)
		data = response.json()
		return RegistrationVerification(
			accepted=bool(data.get("accepted")),
			credential_id=data.get("credential_id"),
			public_key=data.get("public_key"),
			initial_counter=int(data.get("initial_counter", 0)),
			aaguid=data.get("aaguid"),
			transports=list(data.get("transports") or []),
		)

	async def begin_authentication(self, subject: str) -> AuthenticationChallenge | None:
		response = await self._post("/authentication/options", {"subject": subject})
		if response.status_code == 404:
			return None
		self._raise_for_status(response)
		data = response.json()
		return AuthenticationChallenge(
			challenge=base64url_to_bytes(data["challenge"]),
			allowed_credential_ids=list(data.get("allowed_credential_ids") or []),
			options=data.get("options", {}),
		)

	async def verify_authentication(
		self,
		assertion: dict[str, Any],
		credential: Credential,
		session: CeremonySession,
	) -> AuthenticationVerification:
		response = await self._post("/authentication/verify", {
			"subject": session.subject,
			"challenge": bytes_to_base64url(session.challenge),
			"assertion": assertion,
			"credential": {
				"credential_id": credential.credential_id,
				"public_key": credential.public_key,
				"signature_counter": credential.signature_counter,
			},
		})
		if response.status_code in REJECTION_STATUSES:
			logger.warning(f"Verifier rejected assertion for {credential.credential_id}")
			return AuthenticationVerification(accepted=False)
		self._raise_for_status(response)
		data = response.json()
		return AuthenticationVerification(
			accepted=bool(data.get("accepted")),
			new_counter=int(data.get("new_counter", 0)),
		)

	async def _post(self, path: str, payload: dict[str, Any]) -> httpx.Response:
		try:
			async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
				return await client.post(f"{self.base_url}{path}", json=payload)
		except httpx.HTTPError as e:
			logger.error(f"Verifier request {path} failed: {e}")
			raise VerifierUnavailableError(f"Verifier request failed: {e}")

	@staticmethod
	def _raise_for_status(response: httpx.Response) -> None:
		if response.status_code >= 400:
			logger.error(f"Verifier answered {response.status_code} for {response.request.url.path}")
			raise VerifierUnavailableError(f"Verifier returned status {response.status_code}")
