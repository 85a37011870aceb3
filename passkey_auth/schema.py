# (c) Copyright Datacraft, 2026
# Passkey API Schemas
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from passkey_auth.capability import BiometricType, DeviceSignals
from passkey_auth.credentials.manager import MAX_DEVICE_NAME_LENGTH


class PasskeyCredentialInfo(BaseModel):
    """Information about a passkey credential."""
    id: str
    credential_id: str
    device_name: str | None = None
    device_type: str | None = None
    biometric_type: str | None = None
    security_class: str | None = None
    created_at: str | None = None
    last_used_at: str | None = None
    is_active: bool
    is_current: bool = False

    model_config = ConfigDict(from_attributes=True)


class PasskeyListResponse(BaseModel):
    """Response with list of passkeys."""
    credentials: list[PasskeyCredentialInfo]
    active_count: int
    max_active: int

    model_config = ConfigDict(from_attributes=True)


class PasskeyRenameRequest(BaseModel):
    """Request to rename a passkey."""
    device_name: str = Field(min_length=1, max_length=MAX_DEVICE_NAME_LENGTH)


class PasskeyResponse(BaseModel):
    """Generic passkey operation response."""
    success: bool
    credential_id: str | None = None
    message: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ErrorDescription(BaseModel):
    """User-facing copy for a ceremony error kind."""
    kind: str
    retryable: bool
    message: str
    recovery: str


class CeremonyStartMessage(BaseModel):
    """First message a client sends on a ceremony WebSocket."""
    type: Literal["start"]
    # Authentication only; registration takes the subject from the session token
    subject: str | None = None
    display_name: str | None = None
    device_name: str | None = Field(default=None, max_length=MAX_DEVICE_NAME_LENGTH)
    # Registration only; defaults to the device's primary method
    biometric_type: BiometricType | None = None
    signals: DeviceSignals | None = None


class CeremonyClientMessage(BaseModel):
    """Answer to a prompt: the authenticator response or its error."""
    type: Literal["credential", "error"]
    credential: dict[str, Any] | None = None
    name: str | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    capability_table_version: str
