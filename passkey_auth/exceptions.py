# (c) Copyright Datacraft, 2026
"""Exceptions raised by the passkey subsystem.

Components raise these; the ceremony boundary turns them into
``CeremonyOutcome`` values through the error translator.
"""


class PasskeyError(Exception):
	"""Base passkey error."""
	pass


class InvalidTransitionError(PasskeyError):
	"""A ceremony step was requested out of order."""

	def __init__(self, current: str, requested: str):
		self.current = current
		self.requested = requested
		super().__init__(f"Cannot move ceremony from {current} to {requested}")


class SessionNotFoundError(PasskeyError):
	"""Ceremony session was superseded, expired or already consumed."""
	pass


class CredentialNotFoundError(PasskeyError):
	"""No credential with the given id."""

	def __init__(self, credential_id: str):
		self.credential_id = credential_id
		super().__init__(f"Credential not found: {credential_id}")


class DeviceLimitReachedError(PasskeyError):
	"""Owner already holds the maximum number of active credentials."""

	def __init__(self, owner: str, limit: int):
		self.owner = owner
		self.limit = limit
		super().__init__(f"{owner} already has {limit} active passkeys")


class DuplicateCredentialError(PasskeyError):
	"""Credential id is already registered."""

	def __init__(self, credential_id: str):
		self.credential_id = credential_id
		super().__init__(f"Credential already registered: {credential_id}")


class CurrentDeviceRevocationError(PasskeyError):
	"""Attempt to revoke the credential backing the caller's own session."""
	pass


class CounterRegressionError(PasskeyError):
	"""Signature counter did not increase; the credential may be cloned."""

	def __init__(self, credential_id: str, stored: int, presented: int):
		self.credential_id = credential_id
		self.stored = stored
		self.presented = presented
		super().__init__(
			f"Signature counter for {credential_id} did not increase "
			f"(stored={stored}, presented={presented})"
		)


class VerifierError(PasskeyError):
	"""Relying-party verifier failure."""
	pass


class VerifierUnavailableError(VerifierError):
	"""Verifier could not be reached or did not answer in time."""
	pass


class VerificationRejectedError(VerifierError):
	"""Verifier refused the attestation or assertion."""
	pass


class AuthenticatorError(PasskeyError):
	"""Failure reported by the platform authenticator.

	``name`` carries the platform error name, e.g. ``NotAllowedError``,
	``InvalidStateError``, ``NotSupportedError``, ``AbortError``.
	"""

	def __init__(self, name: str, message: str | None = None):
		self.name = name
		self.message = message or name
		super().__init__(f"{name}: {self.message}")


class PlatformNotSupportedError(PasskeyError):
	"""Device has no user-verifying platform authenticator."""
	pass


class NoCredentialsError(PasskeyError):
	"""Subject has no credential eligible for authentication."""

	def __init__(self, subject: str):
		self.subject = subject
		super().__init__(f"No passkeys registered for {subject}")
