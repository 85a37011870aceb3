# (c) Copyright Datacraft, 2026
"""ORM models for passkey credentials and the audit trail."""
from datetime import datetime, timezone

from sqlalchemy import (
	String, Index, CheckConstraint, Boolean, Integer, Text, JSON, DateTime
)
from sqlalchemy.orm import Mapped, mapped_column
from uuid_extensions import uuid7str

from .base import Base


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


class PasskeyCredential(Base):
	"""Registered passkey. Revocation is a soft delete."""

	__tablename__ = "passkey_credentials"

	id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid7str)
	credential_id: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
	owner: Mapped[str] = mapped_column(String(320), nullable=False)
	public_key: Mapped[str] = mapped_column(Text, nullable=False)
	signature_counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
	device_name: Mapped[str] = mapped_column(String(200), nullable=False, default="Passkey")
	device_profile: Mapped[dict | None] = mapped_column(JSON, nullable=True)
	biometric_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
	security_class: Mapped[str | None] = mapped_column(String(20), nullable=True)
	transports: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
	aaguid: Mapped[str | None] = mapped_column(String(64), nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)
	last_used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
	is_active: Mapped[bool] = mapped_column(Boolean, default=True)
	revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
	biometric_failure_count: Mapped[int] = mapped_column(Integer, default=0)

	__table_args__ = (
		Index("idx_passkey_credential_owner", "owner", "is_active"),
		CheckConstraint("signature_counter >= 0", name="ck_passkey_counter_positive"),
	)

	def __repr__(self):
		return f"PasskeyCredential({self.owner}: {self.device_name})"


class PasskeyAuditEvent(Base):
	"""Security-relevant ceremony event."""

	__tablename__ = "passkey_audit_events"

	id: Mapped[str] = mapped_column(String(36), primary_key=True, default=uuid7str)
	event: Mapped[str] = mapped_column(String(50), nullable=False)
	subject: Mapped[str] = mapped_column(String(320), nullable=False)
	credential_id: Mapped[str | None] = mapped_column(String(512), nullable=True)
	detail: Mapped[dict | None] = mapped_column(JSON, nullable=True)
	created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now)

	__table_args__ = (
		Index("idx_passkey_audit_subject", "subject"),
		Index("idx_passkey_audit_credential", "credential_id"),
	)


class PasskeyOwnerLock(Base):
	"""One row per credential owner; capped inserts update it first."""

	__tablename__ = "passkey_owner_locks"

	owner: Mapped[str] = mapped_column(String(320), primary_key=True)
	generation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
