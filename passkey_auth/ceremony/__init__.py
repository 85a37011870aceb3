# (c) Copyright Datacraft, 2026
"""Passkey ceremonies: state machine, outcomes and error translation."""

from .authenticator import PlatformAuthenticator
from .outcome import Cancelled, CeremonyOutcome, Failed, Success
from .state import CeremonyStateMachine, CeremonyStep, StepBroadcaster, StepEvent
from .translator import ErrorKind, RecoveryAction, Translation, describe, translate
from .orchestrator import PasskeyCeremonyService

__all__ = [
	"PlatformAuthenticator",
	"Cancelled",
	"CeremonyOutcome",
	"Failed",
	"Success",
	"CeremonyStateMachine",
	"CeremonyStep",
	"StepBroadcaster",
	"StepEvent",
	"ErrorKind",
	"RecoveryAction",
	"Translation",
	"describe",
	"translate",
	"PasskeyCeremonyService",
]
