# (c) Copyright Datacraft, 2026
"""Credential records."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from uuid_extensions import uuid7str

from passkey_auth.capability.models import BiometricType, SecurityClass


class Credential(BaseModel):
	"""Stored passkey credential."""
	id: str = Field(default_factory=uuid7str)
	credential_id: str  # Base64URL encoded
	owner: str
	public_key: str  # Base64URL encoded
	signature_counter: int = Field(default=0, ge=0)
	device_name: str = "Passkey"
	device_profile: dict[str, Any] | None = None
	biometric_type: BiometricType | None = None
	security_class: SecurityClass | None = None
	transports: list[str] = []
	aaguid: str | None = None
	created_at: datetime
	last_used_at: datetime | None = None
	is_active: bool = True
	revoked_at: datetime | None = None
	biometric_failure_count: int = 0

	model_config = ConfigDict(from_attributes=True)

	def public_view(self) -> dict[str, Any]:
		"""Representation safe to hand to the UI."""
		return {
			"id": self.id,
			"credential_id": self.credential_id,
			"device_name": self.device_name,
			"device_type": (self.device_profile or {}).get("form_factor"),
			"biometric_type": self.biometric_type.value if self.biometric_type else None,
			"security_class": self.security_class.value if self.security_class else None,
			"created_at": self.created_at.isoformat(),
			"last_used_at": self.last_used_at.isoformat() if self.last_used_at else None,
			"is_active": self.is_active,
		}
