# (c) Copyright Datacraft, 2026
"""Ceremony steps, transitions and the step event stream."""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import AsyncIterator, Callable

from uuid_extensions import uuid7str

from passkey_auth.exceptions import InvalidTransitionError
from passkey_auth.sessions import CeremonyKind

from .translator import ErrorKind

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
	return datetime.now(timezone.utc)


class CeremonyStep(str, Enum):
	IDLE = "idle"
	STARTED = "started"
	PROMPTING = "prompting"
	VERIFYING = "verifying"
	COMPLETED = "completed"
	FAILED = "failed"


TRANSITIONS: dict[CeremonyStep, frozenset[CeremonyStep]] = {
	CeremonyStep.IDLE: frozenset({CeremonyStep.STARTED}),
	CeremonyStep.STARTED: frozenset({CeremonyStep.PROMPTING, CeremonyStep.FAILED, CeremonyStep.IDLE}),
	CeremonyStep.PROMPTING: frozenset({CeremonyStep.VERIFYING, CeremonyStep.FAILED, CeremonyStep.IDLE}),
	CeremonyStep.VERIFYING: frozenset({CeremonyStep.COMPLETED, CeremonyStep.FAILED, CeremonyStep.IDLE}),
	CeremonyStep.COMPLETED: frozenset(),
	CeremonyStep.FAILED: frozenset(),
}

TERMINAL_STEPS = frozenset({CeremonyStep.COMPLETED, CeremonyStep.FAILED})


@dataclass(frozen=True)
class StepEvent:
	"""A single step transition, published for progress UIs."""
	ceremony_id: str
	kind: CeremonyKind
	subject: str
	step: CeremonyStep
	at: datetime
	error_kind: ErrorKind | None = None
	label: str | None = None

	def to_dict(self) -> dict:
		return {
			"ceremony_id": self.ceremony_id,
			"kind": self.kind.value,
			"subject": self.subject,
			"step": self.step.value,
			"at": self.at.isoformat(),
			"error_kind": self.error_kind.value if self.error_kind else None,
			"label": self.label,
		}


StepListener = Callable[[StepEvent], None]


class StepBroadcaster:
	"""Fan-out of step events to subscribers.

	Listeners are plain callables; ``stream`` wraps a listener in an
	asyncio queue for consumers that prefer ``async for``.
	"""

	def __init__(self):
		self._listeners: list[StepListener] = []

	def subscribe(self, listener: StepListener) -> Callable[[], None]:
		"""Register a listener and return a function that removes it."""
		self._listeners.append(listener)

		def unsubscribe() -> None:
			try:
				self._listeners.remove(listener)
			except ValueError:
				pass

		return unsubscribe

	def publish(self, event: StepEvent) -> None:
		for listener in list(self._listeners):
			try:
				listener(event)
			except Exception as e:
				logger.error(f"Step listener failed for {event.ceremony_id}: {e}")

	async def stream(
		self,
		predicate: Callable[[StepEvent], bool] | None = None,
	) -> AsyncIterator[StepEvent]:
		queue: asyncio.Queue[StepEvent] = asyncio.Queue()

		def enqueue(event: StepEvent) -> None:
			if predicate is None or predicate(event):
				queue.put_nowait(event)

		unsubscribe = self.subscribe(enqueue)
		try:
			while True:
				yield await queue.get()
		finally:
			unsubscribe()

	def __len__(self) -> int:
		return len(self._listeners)


@dataclass
class CeremonyStateMachine:
	"""Tracks the step of one ceremony attempt and publishes every move."""

	kind: CeremonyKind
	subject: str
	broadcaster: StepBroadcaster | None = None
	# Per-ceremony listener, called before the broadcaster
	listener: StepListener | None = None
	clock: Callable[[], datetime] = _utcnow
	ceremony_id: str = field(default_factory=uuid7str)
	step: CeremonyStep = CeremonyStep.IDLE
	error_kind: ErrorKind | None = None
	history: list[CeremonyStep] = field(default_factory=list)

	@property
	def is_terminal(self) -> bool:
		return self.step in TERMINAL_STEPS

	def can_move(self, target: CeremonyStep) -> bool:
		return target in TRANSITIONS[self.step]

	def move(self, target: CeremonyStep, label: str | None = None) -> StepEvent:
		if not self.can_move(target):
			raise InvalidTransitionError(self.step.value, target.value)
		self.step = target
		self.history.append(target)
		return self._publish(label=label)

	def start(self) -> StepEvent:
		return self.move(CeremonyStep.STARTED)

	def prompt(self, label: str | None = None) -> StepEvent:
		return self.move(CeremonyStep.PROMPTING, label=label)

	def verify(self) -> StepEvent:
		return self.move(CeremonyStep.VERIFYING)

	def complete(self) -> StepEvent:
		return self.move(CeremonyStep.COMPLETED)

	def fail(self, kind: ErrorKind) -> StepEvent:
		if not self.can_move(CeremonyStep.FAILED):
			raise InvalidTransitionError(self.step.value, CeremonyStep.FAILED.value)
		self.error_kind = kind
		return self.move(CeremonyStep.FAILED)

	def cancel(self) -> StepEvent:
		"""Return to idle without keeping partial state."""
		self.error_kind = None
		return self.move(CeremonyStep.IDLE)

	def _publish(self, label: str | None = None) -> StepEvent:
		event = StepEvent(
			ceremony_id=self.ceremony_id,
			kind=self.kind,
			subject=self.subject,
			step=self.step,
			at=self.clock(),
			error_kind=self.error_kind if self.step == CeremonyStep.FAILED else None,
			label=label,
		)
		logger.debug(f"{self.kind.value} ceremony {self.ceremony_id} -> {self.step.value}")
		if self.listener is not None:
			try:
				self.listener(event)
			except Exception as e:
				logger.error(f"Step listener failed for {self.ceremony_id}: {e}")
		if self.broadcaster is not None:
			self.broadcaster.publish(event)
		return event
