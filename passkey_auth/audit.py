# (c) Copyright Datacraft, 2026
"""Audit trail for security-relevant ceremony events."""
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

from sqlalchemy.orm import Session, sessionmaker

from passkey_auth.db.orm import PasskeyAuditEvent

logger = logging.getLogger("passkey_auth.audit")


class AuditEventType(str, Enum):
	CREDENTIAL_REGISTERED = "credential_registered"
	CREDENTIAL_REVOKED = "credential_revoked"
	SIGNATURE_REJECTED = "signature_rejected"
	COUNTER_REGRESSION = "counter_regression"
	ZERO_COUNTER_ACCEPTED = "zero_counter_accepted"


@dataclass
class AuditEntry:
	event: AuditEventType
	subject: str
	credential_id: str | None = None
	detail: dict[str, Any] = field(default_factory=dict)
	created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditTrail(Protocol):
	def record(self, entry: AuditEntry) -> None:
		...


class MemoryAuditTrail:
	"""Keeps entries in memory and mirrors them to the audit logger."""

	def __init__(self):
		self.entries: list[AuditEntry] = []
		self._lock = threading.Lock()

	def record(self, entry: AuditEntry) -> None:
		_log(entry)
		with self._lock:
			self.entries.append(entry)

	def of_type(self, event: AuditEventType) -> list[AuditEntry]:
		with self._lock:
			return [e for e in self.entries if e.event == event]


class SqlAuditTrail:
	"""Persists entries to ``passkey_audit_events``."""

	def __init__(self, session_factory: sessionmaker[Session]):
		self.session_factory = session_factory

	def record(self, entry: AuditEntry) -> None:
		_log(entry)
		with self.session_factory() as db:
			with db.begin():
				db.add(PasskeyAuditEvent(
					event=entry.event.value,
					subject=entry.subject,
					credential_id=entry.credential_id,
					detail=entry.detail,
					created_at=entry.created_at,
				))


def _log(entry: AuditEntry) -> None:
	level = logging.WARNING if entry.event in (
		AuditEventType.SIGNATURE_REJECTED,
		AuditEventType.COUNTER_REGRESSION,
	) else logging.INFO
	logger.log(
		level,
		f"{entry.event.value} subject={entry.subject} "
		f"credential={entry.credential_id} detail={entry.detail}",
	)
