# (c) Copyright Datacraft, 2026
"""Time-bounded store of in-flight ceremony challenges."""
import asyncio
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone, timedelta
from enum import Enum
from typing import Any, Callable

from uuid_extensions import uuid7str

logger = logging.getLogger(__name__)

MIN_CHALLENGE_BYTES = 16


class CeremonyKind(str, Enum):
	REGISTRATION = "registration"
	AUTHENTICATION = "authentication"


@dataclass
class CeremonySession:
	"""A challenge issued for one ceremony."""
	session_id: str
	subject: str
	kind: CeremonyKind
	challenge: bytes
	created_at: datetime
	expires_at: datetime
	context: dict[str, Any] = field(default_factory=dict)

	def is_expired(self, now: datetime) -> bool:
		return now >= self.expires_at


class CeremonySessionStore:
	"""Process-wide session store.

	Holds at most one live session per ``(subject, kind)``: ``create``
	replaces whatever was there, so an older ceremony for the same subject
	can no longer be verified. ``consume`` removes the session, which makes
	a replayed challenge fail.
	"""

	def __init__(
		self,
		ttl: timedelta = timedelta(minutes=5),
		clock: Callable[[], datetime] | None = None,
	):
		self.ttl = ttl
		self.clock = clock or (lambda: datetime.now(timezone.utc))
		self._sessions: dict[str, CeremonySession] = {}
		self._live: dict[tuple[str, CeremonyKind], str] = {}
		self._lock = threading.Lock()

	def create(
		self,
		subject: str,
		kind: CeremonyKind,
		challenge: bytes,
		context: dict[str, Any] | None = None,
	) -> str:
		"""Store a challenge and return its session id."""
		if len(challenge) < MIN_CHALLENGE_BYTES:
			raise ValueError(f"Challenge must carry at least {MIN_CHALLENGE_BYTES} bytes")

		now = self.clock()
		session = CeremonySession(
			session_id=uuid7str(),
			subject=subject,
			kind=CeremonyKind(kind),
			challenge=challenge,
			created_at=now,
			expires_at=now + self.ttl,
			context=dict(context or {}),
		)
		key = (subject, session.kind)
		with self._lock:
			previous = self._live.pop(key, None)
			if previous is not None and self._sessions.pop(previous, None) is not None:
				logger.info(f"Superseded {session.kind.value} session {previous} for {subject}")
			self._sessions[session.session_id] = session
			self._live[key] = session.session_id
		return session.session_id

	def consume(self, session_id: str) -> CeremonySession | None:
		"""Remove and return a live session; None when unknown or expired."""
		with self._lock:
			session = self._sessions.pop(session_id, None)
			if session is None:
				return None
			key = (session.subject, session.kind)
			if self._live.get(key) == session_id:
				del self._live[key]
		if session.is_expired(self.clock()):
			logger.info(f"Rejected expired {session.kind.value} session {session_id}")
			return None
		return session

	def peek(self, session_id: str) -> CeremonySession | None:
		with self._lock:
			session = self._sessions.get(session_id)
		if session is None or session.is_expired(self.clock()):
			return None
		return session

	def live_session(self, subject: str, kind: CeremonyKind) -> CeremonySession | None:
		with self._lock:
			session_id = self._live.get((subject, CeremonyKind(kind)))
		return self.peek(session_id) if session_id else None

	def invalidate(self, subject: str, kind: CeremonyKind) -> bool:
		"""Drop the live session for ``(subject, kind)`` if there is one."""
		with self._lock:
			session_id = self._live.pop((subject, CeremonyKind(kind)), None)
			if session_id is None:
				return False
			return self._sessions.pop(session_id, None) is not None

	def sweep_expired(self) -> int:
		"""Delete expired sessions and return how many were removed."""
		now = self.clock()
		with self._lock:
			expired = [s for s in self._sessions.values() if s.is_expired(now)]
			for session in expired:
				del self._sessions[session.session_id]
				key = (session.subject, session.kind)
				if self._live.get(key) == session.session_id:
					del self._live[key]
		if expired:
			logger.debug(f"Swept {len(expired)} expired ceremony sessions")
		return len(expired)

	async def run_sweeper(self, interval: float) -> None:
		"""Sweep forever; run as a background task and cancel to stop."""
		while True:
			await asyncio.sleep(interval)
			self.sweep_expired()

	def __len__(self) -> int:
		with self._lock:
			return len(self._sessions)
