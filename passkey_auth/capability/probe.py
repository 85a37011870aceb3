# (c) Copyright Datacraft, 2026
"""Platform authenticator availability probes."""
from typing import Protocol, runtime_checkable

from .models import DeviceSignals


@runtime_checkable
class PlatformAuthenticatorProbe(Protocol):
	"""Answers isUserVerifyingPlatformAuthenticatorAvailable for a device."""

	async def is_available(self, signals: DeviceSignals) -> bool:
		...


class ReportedProbe:
	"""Trusts the probe result the client reported with its signals.

	Browsers run the query locally; the answer travels in
	``DeviceSignals.platform_authenticator_available``. A missing answer
	counts as unavailable.
	"""

	async def is_available(self, signals: DeviceSignals) -> bool:
		return bool(signals.platform_authenticator_available)


class StaticProbe:
	"""Fixed answer, for tests and for deployments that pin capability."""

	def __init__(self, available: bool):
		self.available = available
		self.calls = 0

	async def is_available(self, signals: DeviceSignals) -> bool:
		self.calls += 1
		return self.available
