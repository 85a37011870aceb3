# (c) Copyright Datacraft, 2026
"""Device capability models."""
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class Platform(str, Enum):
	IOS = "ios"
	ANDROID = "android"
	MACOS = "macos"
	WINDOWS = "windows"
	LINUX = "linux"
	UNKNOWN = "unknown"


class FormFactor(str, Enum):
	MOBILE = "mobile"
	TABLET = "tablet"
	DESKTOP = "desktop"


class BiometricType(str, Enum):
	FACE = "face"
	FINGERPRINT = "fingerprint"
	IRIS = "iris"


class SecurityClass(str, Enum):
	"""Android biometric classes 1-3, applied to every platform."""
	CONVENIENCE = "convenience"
	WEAK = "weak"
	STRONG = "strong"


class FallbackMethod(str, Enum):
	PIN = "pin"
	PATTERN = "pattern"
	PASSWORD = "password"
	DEVICE_PASSCODE = "device-passcode"


class NativeCapabilities(BaseModel):
	"""Capabilities reported by a native bridge (Android WebView)."""
	fingerprint: bool = False
	face_unlock: bool = Field(default=False, alias="faceUnlock")
	iris: bool = False
	enrolled: bool | None = None
	hardware_backed: bool | None = Field(default=None, alias="hardwareBacked")

	model_config = ConfigDict(populate_by_name=True)


class DeviceSignals(BaseModel):
	"""Raw environment facts sent by the client.

	Every field is optional; a request with no signals at all still
	produces a profile.
	"""
	user_agent: str | None = None
	platform: str | None = None  # navigator.platform
	client_hint_platform: str | None = None  # navigator.userAgentData.platform
	client_hint_mobile: bool | None = None
	max_touch_points: int | None = None
	platform_authenticator_available: bool | None = None
	autofill_supported: bool | None = None
	native_capabilities: NativeCapabilities | None = None


class BiometricMethod(BaseModel):
	"""A biometric modality offered by the device."""
	type: BiometricType
	name: str
	security_class: SecurityClass
	hardware_backed: bool
	supported: bool
	enrolled: bool | None = None

	model_config = ConfigDict(from_attributes=True)


class DeviceProfile(BaseModel):
	"""Normalized capability profile for one request."""
	platform: Platform = Platform.UNKNOWN
	form_factor: FormFactor = FormFactor.DESKTOP
	browser: str = "Unknown"
	device_name: str = "Unknown device"
	device_model: str | None = None
	device_family: str | None = None
	os_version: str | None = None
	biometrics: list[BiometricMethod] = []
	primary_method: BiometricType | None = None
	fallback_methods: list[FallbackMethod] = []
	platform_authenticator: bool = False
	autofill_supported: bool = False
	capability_table_version: str | None = None

	model_config = ConfigDict(from_attributes=True)

	@model_validator(mode="after")
	def _check_primary(self) -> "DeviceProfile":
		if self.primary_method is None:
			return self
		candidates = [m for m in self.biometrics if m.type == self.primary_method]
		if len(candidates) != 1:
			raise ValueError(f"primary method {self.primary_method.value} must appear exactly once")
		if not candidates[0].supported:
			raise ValueError(f"primary method {self.primary_method.value} is not supported")
		return self

	@computed_field
	@property
	def biometrics_available(self) -> bool:
		return any(m.supported for m in self.biometrics)

	def method(self, biometric_type: BiometricType) -> BiometricMethod | None:
		for candidate in self.biometrics:
			if candidate.type == biometric_type:
				return candidate
		return None

	@property
	def primary(self) -> BiometricMethod | None:
		if self.primary_method is None:
			return None
		return self.method(self.primary_method)

	def snapshot(self) -> dict[str, Any]:
		"""JSON-safe copy stored alongside a credential."""
		return self.model_dump(mode="json")
