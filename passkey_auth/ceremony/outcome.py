# (c) Copyright Datacraft, 2026
"""Ceremony outcomes returned to the UI."""
from dataclasses import dataclass
from typing import Any, Literal

from passkey_auth.credentials.models import Credential

from .translator import ErrorKind, RecoveryAction, Translation


@dataclass
class Success:
	"""Ceremony completed; the UI may log the user in."""
	credential: Credential | None = None
	session_token: str | None = None
	status: Literal["success"] = "success"

	def to_dict(self) -> dict[str, Any]:
		return {
			"status": self.status,
			"credential": self.credential.public_view() if self.credential else None,
			"session_token": self.session_token,
		}


@dataclass
class Cancelled:
	"""User dismissed the prompt; the ceremony is back at idle."""
	status: Literal["cancelled"] = "cancelled"

	def to_dict(self) -> dict[str, Any]:
		return {"status": self.status}


@dataclass
class Failed:
	"""Ceremony ended in an error the user can act on."""
	kind: ErrorKind
	retryable: bool
	message: str
	recovery: RecoveryAction
	status: Literal["failed"] = "failed"

	@classmethod
	def from_translation(cls, translation: Translation) -> "Failed":
		return cls(
			kind=translation.kind,
			retryable=translation.retryable,
			message=translation.user_message,
			recovery=translation.recovery,
		)

	def to_dict(self) -> dict[str, Any]:
		return {
			"status": self.status,
			"kind": self.kind.value,
			"retryable": self.retryable,
			"message": self.message,
			"recovery": self.recovery.value,
		}


CeremonyOutcome = Success | Cancelled | Failed
