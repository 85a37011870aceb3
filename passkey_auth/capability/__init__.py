# (c) Copyright Datacraft, 2026
"""Device and biometric capability detection."""

from .models import (
	BiometricMethod,
	BiometricType,
	DeviceProfile,
	DeviceSignals,
	FallbackMethod,
	FormFactor,
	NativeCapabilities,
	Platform,
	SecurityClass,
)
from .probe import PlatformAuthenticatorProbe, ReportedProbe, StaticProbe
from .table import CAPABILITY_TABLE_VERSION, DEFAULT_TABLE, CapabilityRule, CapabilityTable
from .detector import CapabilityDetector, biometric_display_name

__all__ = [
	"BiometricMethod",
	"BiometricType",
	"DeviceProfile",
	"DeviceSignals",
	"FallbackMethod",
	"FormFactor",
	"NativeCapabilities",
	"Platform",
	"SecurityClass",
	"PlatformAuthenticatorProbe",
	"ReportedProbe",
	"StaticProbe",
	"CAPABILITY_TABLE_VERSION",
	"DEFAULT_TABLE",
	"CapabilityRule",
	"CapabilityTable",
	"CapabilityDetector",
	"biometric_display_name",
]
