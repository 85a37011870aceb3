# (c) Copyright Datacraft, 2026
"""Relying-party verifier interface.

The verifier issues challenges and checks attestation and assertion
signatures. The ceremony only relies on this protocol; the network
verifier and the in-process one are interchangeable.
"""
from dataclasses import dataclass, field
from typing import Any, Protocol

from passkey_auth.capability.models import DeviceProfile
from passkey_auth.credentials.models import Credential
from passkey_auth.sessions import CeremonySession


@dataclass
class RegistrationChallenge:
	challenge: bytes
	rp: dict[str, str]
	subject_handle: bytes
	algorithms: list[int]
	# JSON-ready PublicKeyCredentialCreationOptions for the client
	options: dict[str, Any] = field(default_factory=dict)


@dataclass
class RegistrationVerification:
	accepted: bool
	credential_id: str | None = None  # Base64URL encoded
	public_key: str | None = None  # Base64URL encoded
	initial_counter: int = 0
	aaguid: str | None = None
	transports: list[str] = field(default_factory=list)


@dataclass
class AuthenticationChallenge:
	challenge: bytes
	allowed_credential_ids: list[str]
	options: dict[str, Any] = field(default_factory=dict)


@dataclass
class AuthenticationVerification:
	accepted: bool
	new_counter: int = 0


class RelyingPartyVerifier(Protocol):
	async def begin_registration(
		self,
		subject: str,
		display_name: str,
		exclude_credential_ids: list[str],
	) -> RegistrationChallenge:
		...

	async def verify_registration(
		self,
		attestation: dict[str, Any],
		profile: DeviceProfile | None,
		session: CeremonySession,
	) -> RegistrationVerification:
		...

	async def begin_authentication(self, subject: str) -> AuthenticationChallenge | None:
		"""Challenge for ``subject``; None when nothing is registered."""
		...

	async def verify_authentication(
		self,
		assertion: dict[str, Any],
		credential: Credential,
		session: CeremonySession,
	) -> AuthenticationVerification:
		...
