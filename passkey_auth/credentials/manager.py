# (c) Copyright Datacraft, 2026
"""Credential lifecycle: enumerate, add, rename, revoke and touch."""
import logging
from datetime import datetime, timezone
from typing import Callable

from passkey_auth.audit import AuditEntry, AuditEventType, AuditTrail, MemoryAuditTrail
from passkey_auth.exceptions import (
	CounterRegressionError,
	CredentialNotFoundError,
	CurrentDeviceRevocationError,
	DeviceLimitReachedError,
)

from .models import Credential
from .repository import CredentialRepository

logger = logging.getLogger(__name__)

MAX_DEVICE_NAME_LENGTH = 200


class CredentialLifecycleManager:
	"""Owns the set of passkeys registered to each account."""

	def __init__(
		self,
		repository: CredentialRepository,
		max_active: int = 5,
		protect_current_device: bool = True,
		allow_zero_counter: bool = True,
		audit: AuditTrail | None = None,
		clock: Callable[[], datetime] | None = None,
	):
		self.repository = repository
		self.max_active = max_active
		self.protect_current_device = protect_current_device
		self.allow_zero_counter = allow_zero_counter
		self.audit = audit or MemoryAuditTrail()
		self.clock = clock or (lambda: datetime.now(timezone.utc))

	def list_credentials(self, owner: str) -> list[Credential]:
		"""All credentials of ``owner`` ordered by creation time."""
		return self.repository.list_by_owner(owner)

	def active_credentials(self, owner: str) -> list[Credential]:
		return [c for c in self.repository.list_by_owner(owner) if c.is_active]

	def active_count(self, owner: str) -> int:
		return self.repository.count_active(owner)

	def has_capacity(self, owner: str) -> bool:
		return self.active_count(owner) < self.max_active

	def ensure_capacity(self, owner: str) -> None:
		"""Raise DeviceLimitReachedError when no slot is left."""
		if not self.has_capacity(owner):
			raise DeviceLimitReachedError(owner, self.max_active)

	def get(self, credential_id: str) -> Credential:
		credential = self.repository.get(credential_id)
		if credential is None:
			raise CredentialNotFoundError(credential_id)
		return credential

	def add(self, credential: Credential) -> Credential:
		"""Persist a credential produced by a successful registration."""
		stored = self.repository.insert(credential, max_active=self.max_active)
		self.audit.record(AuditEntry(
			event=AuditEventType.CREDENTIAL_REGISTERED,
			subject=stored.owner,
			credential_id=stored.credential_id,
			detail={"device_name": stored.device_name},
		))
		logger.info(f"Passkey registered for {stored.owner} on {stored.device_name}")
		return stored

	def rename(self, credential_id: str, label: str, owner: str | None = None) -> Credential:
		label = (label or "").strip()
		if not label:
			raise ValueError("Device name must not be empty")
		if len(label) > MAX_DEVICE_NAME_LENGTH:
			raise ValueError(f"Device name must be at most {MAX_DEVICE_NAME_LENGTH} characters")
		self._owned(credential_id, owner)
		return self.repository.update(credential_id, device_name=label)

	def revoke(
		self,
		credential_id: str,
		current_credential_id: str | None = None,
		owner: str | None = None,
	) -> Credential:
		"""Soft-delete a credential.

		With ``protect_current_device`` the credential that signed the
		caller's own session cannot be revoked.
		"""
		credential = self._owned(credential_id, owner)
		if self.protect_current_device and credential_id == current_credential_id:
			raise CurrentDeviceRevocationError("Cannot remove the device you are signed in with")
		if not credential.is_active:
			return credential

		revoked = self.repository.update(
			credential_id,
			is_active=False,
			revoked_at=self.clock(),
		)
		self.audit.record(AuditEntry(
			event=AuditEventType.CREDENTIAL_REVOKED,
			subject=revoked.owner,
			credential_id=credential_id,
		))
		logger.info(f"Passkey {credential_id} revoked for {revoked.owner}")
		return revoked

	def touch(self, credential_id: str, new_counter: int) -> Credential:
		"""Record a verified authentication.

		The stored counter must strictly increase; the update is a single
		compare-and-swap so two concurrent uses of one assertion cannot
		both succeed.
		"""
		credential = self.get(credential_id)
		if not credential.is_active:
			raise CredentialNotFoundError(credential_id)

		stored = credential.signature_counter
		if stored == 0 and new_counter == 0:
			if not self.allow_zero_counter:
				self._reject(credential, new_counter)
			logger.warning(f"Accepting non-incrementing counter for {credential_id}")
			self.audit.record(AuditEntry(
				event=AuditEventType.ZERO_COUNTER_ACCEPTED,
				subject=credential.owner,
				credential_id=credential_id,
			))
		elif new_counter <= stored:
			self._reject(credential, new_counter)

		if not self.repository.compare_and_update_counter(
			credential_id, stored, new_counter, self.clock()
		):
			# Another authentication moved the counter first
			self._reject(credential, new_counter)
		return self.get(credential_id)

	def record_biometric_failure(self, credential_id: str) -> Credential:
		credential = self.get(credential_id)
		return self.repository.update(
			credential_id,
			biometric_failure_count=credential.biometric_failure_count + 1,
		)

	def _owned(self, credential_id: str, owner: str | None) -> Credential:
		credential = self.get(credential_id)
		if owner is not None and credential.owner != owner:
			raise CredentialNotFoundError(credential_id)
		return credential

	def _reject(self, credential: Credential, presented: int) -> None:
		self.audit.record(AuditEntry(
			event=AuditEventType.COUNTER_REGRESSION,
			subject=credential.owner,
			credential_id=credential.credential_id,
			detail={"stored": credential.signature_counter, "presented": presented},
		))
		raise CounterRegressionError(credential.credential_id, credential.signature_counter, presented)
