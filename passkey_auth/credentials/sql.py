# (c) Copyright Datacraft, 2026
"""SQLAlchemy-backed credential repository."""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from passkey_auth.db.orm import PasskeyCredential, PasskeyOwnerLock
from passkey_auth.exceptions import (
	CredentialNotFoundError,
	DeviceLimitReachedError,
	DuplicateCredentialError,
)

from .models import Credential

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
	# SQLite drops tzinfo on the way back
	if value is not None and value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


class SqlCredentialRepository:
	"""Credential repository over the ``passkey_credentials`` table."""

	def __init__(self, session_factory: sessionmaker[Session]):
		self.session_factory = session_factory

	def get(self, credential_id: str) -> Credential | None:
		with self.session_factory() as db:
			row = db.scalar(
				select(PasskeyCredential).where(PasskeyCredential.credential_id == credential_id)
			)
			return self._to_model(row) if row else None

	def list_by_owner(self, owner: str) -> list[Credential]:
		with self.session_factory() as db:
			stmt = (
				select(PasskeyCredential)
				.where(PasskeyCredential.owner == owner)
				.order_by(PasskeyCredential.created_at.asc(), PasskeyCredential.id.asc())
			)
			return [self._to_model(row) for row in db.scalars(stmt)]

	def count_active(self, owner: str) -> int:
		with self.session_factory() as db:
			return self._count_active(db, owner)

	def insert(self, credential: Credential, max_active: int | None = None) -> Credential:
		capped = max_active is not None and credential.is_active
		if capped:
			self._ensure_owner_lock(credential.owner)
		with self.session_factory() as db:
			with db.begin():
				if capped:
					# Locks the owner row until commit; a concurrent insert counts after it
					db.execute(
						update(PasskeyOwnerLock)
						.where(PasskeyOwnerLock.owner == credential.owner)
						.values(generation=PasskeyOwnerLock.generation + 1)
					)
					if self._count_active(db, credential.owner) >= max_active:
						raise DeviceLimitReachedError(credential.owner, max_active)
				db.add(self._to_row(credential))
				try:
					db.flush()
				except IntegrityError:
					logger.warning(f"Duplicate credential id registered for {credential.owner}")
					raise DuplicateCredentialError(credential.credential_id)
		return credential

	def update(self, credential_id: str, **fields: Any) -> Credential:
		values = {
			key: (value.value if isinstance(value, Enum) else value)
			for key, value in fields.items()
		}
		with self.session_factory() as db:
			with db.begin():
				row = db.scalar(
					select(PasskeyCredential).where(PasskeyCredential.credential_id == credential_id)
				)
				if row is None:
					raise CredentialNotFoundError(credential_id)
				for key, value in values.items():
					setattr(row, key, value)
			return self._to_model(row)

	def compare_and_update_counter(
		self,
		credential_id: str,
		expected: int,
		new: int,
		last_used_at: datetime,
	) -> bool:
		with self.session_factory() as db:
			with db.begin():
				result = db.execute(
					update(PasskeyCredential)
					.where(
						PasskeyCredential.credential_id == credential_id,
						PasskeyCredential.signature_counter == expected,
						PasskeyCredential.is_active.is_(True),
					)
					.values(
						signature_counter=new,
						last_used_at=last_used_at,
						biometric_failure_count=0,
					)
				)
			return result.rowcount == 1

	def _ensure_owner_lock(self, owner: str) -> None:
		try:
			with self.session_factory() as db:
				with db.begin():
					if db.get(PasskeyOwnerLock, owner) is None:
						db.add(PasskeyOwnerLock(owner=owner))
		except IntegrityError:
			logger.debug(f"Lock row for {owner} created by a concurrent insert")

	@staticmethod
	def _count_active(db: Session, owner: str) -> int:
		return db.scalar(
			select(func.count())
			.select_from(PasskeyCredential)
			.where(PasskeyCredential.owner == owner, PasskeyCredential.is_active.is_(True))
		) or 0

	@staticmethod
	def _to_row(credential: Credential) -> PasskeyCredential:
		data = credential.model_dump(mode="python")
		data["biometric_type"] = credential.biometric_type.value if credential.biometric_type else None
		data["security_class"] = credential.security_class.value if credential.security_class else None
		return PasskeyCredential(**data)

	@staticmethod
	def _to_model(row: PasskeyCredential) -> Credential:
		return Credential(
			id=row.id,
			credential_id=row.credential_id,
			owner=row.owner,
			public_key=row.public_key,
			signature_counter=row.signature_counter,
			device_name=row.device_name,
			device_profile=row.device_profile,
			biometric_type=row.biometric_type,
			security_class=row.security_class,
			transports=list(row.transports or []),
			aaguid=row.aaguid,
			created_at=_aware(row.created_at),
			last_used_at=_aware(row.last_used_at),
			is_active=row.is_active,
			revoked_at=_aware(row.revoked_at),
			biometric_failure_count=row.biometric_failure_count or 0,
		)
