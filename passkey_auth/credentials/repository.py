# (c) Copyright Datacraft, 2026
"""Credential repository interface and in-memory implementation."""
import threading
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from passkey_auth.exceptions import (
	CredentialNotFoundError,
	DeviceLimitReachedError,
	DuplicateCredentialError,
)

from .models import Credential


@runtime_checkable
class CredentialRepository(Protocol):
	"""Durable credential storage keyed by credential id."""

	def get(self, credential_id: str) -> Credential | None:
		...

	def list_by_owner(self, owner: str) -> list[Credential]:
		"""All credentials of an owner, oldest first."""
		...

	def count_active(self, owner: str) -> int:
		...

	def insert(self, credential: Credential, max_active: int | None = None) -> Credential:
		"""Insert a credential; with ``max_active`` the cap check is atomic."""
		...

	def update(self, credential_id: str, **fields: Any) -> Credential:
		...

	def compare_and_update_counter(
		self,
		credential_id: str,
		expected: int,
		new: int,
		last_used_at: datetime,
	) -> bool:
		"""Set the counter to ``new`` only if it still equals ``expected``."""
		...


class InMemoryCredentialRepository:
	"""Thread-safe repository for tests and single-process deployments."""

	def __init__(self, credentials: list[Credential] | None = None):
		self._credentials: dict[str, Credential] = {}
		self._lock = threading.Lock()
		for credential in credentials or []:
			self._credentials[credential.credential_id] = credential.model_copy()

	def get(self, credential_id: str) -> Credential | None:
		with self._lock:
			credential = self._credentials.get(credential_id)
			return credential.model_copy() if credential else None

	def list_by_owner(self, owner: str) -> list[Credential]:
		with self._lock:
			owned = [c.model_copy() for c in self._credentials.values() if c.owner == owner]
		return sorted(owned, key=lambda c: (c.created_at, c.id))

	def count_active(self, owner: str) -> int:
		with self._lock:
			return self._count_active(owner)

	def _count_active(self, owner: str) -> int:
		return sum(1 for c in self._credentials.values() if c.owner == owner and c.is_active)

	def insert(self, credential: Credential, max_active: int | None = None) -> Credential:
		with self._lock:
			if credential.credential_id in self._credentials:
				raise DuplicateCredentialError(credential.credential_id)
			if max_active is not None and credential.is_active and self._count_active(credential.owner) >= max_active:
				raise DeviceLimitReachedError(credential.owner, max_active)
			self._credentials[credential.credential_id] = credential.model_copy()
		return credential.model_copy()

	def update(self, credential_id: str, **fields: Any) -> Credential:
		with self._lock:
			current = self._credentials.get(credential_id)
			if current is None:
				raise CredentialNotFoundError(credential_id)
			updated = current.model_copy(update=fields)
			self._credentials[credential_id] = updated
			return updated.model_copy()

	def compare_and_update_counter(
		self,
		credential_id: str,
		expected: int,
		new: int,
		last_used_at: datetime,
	) -> bool:
		with self._lock:
			current = self._credentials.get(credential_id)
			if current is None or not current.is_active or current.signature_counter != expected:
				return False
			self._credentials[credential_id] = current.model_copy(update={
				"signature_counter": new,
				"last_used_at": last_used_at,
				"biometric_failure_count": 0,
			})
			return True
