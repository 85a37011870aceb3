# (c) Copyright Datacraft, 2026
"""Device capability table.

Maps device-signal patterns to the biometric methods a device ships with.
New devices are added here as rows; the detector has no per-device logic.
Rules are tried in order within a platform and the first match wins, so
specific rows must precede the catch-all row of their platform.
"""
import re
from dataclasses import dataclass, field

from .models import BiometricType, FallbackMethod, Platform, SecurityClass

CAPABILITY_TABLE_VERSION = "2025.2"


@dataclass(frozen=True)
class MethodSpec:
	"""Static description of one biometric method."""
	type: BiometricType
	name: str
	security_class: SecurityClass = SecurityClass.STRONG
	hardware_backed: bool = True


@dataclass(frozen=True)
class CapabilityRule:
	"""One row of the table."""
	platform: Platform
	pattern: re.Pattern
	methods: tuple[MethodSpec, ...]
	family: str | None = None
	note: str = ""

	def matches(self, device_key: str) -> bool:
		return self.pattern.search(device_key) is not None


@dataclass(frozen=True)
class CapabilityTable:
	version: str
	rules: tuple[CapabilityRule, ...] = field(default_factory=tuple)

	def lookup(self, platform: Platform, device_key: str) -> CapabilityRule | None:
		for rule in self.rules:
			if rule.platform == platform and rule.matches(device_key):
				return rule
		return None


FACE_ID = MethodSpec(BiometricType.FACE, "Face ID")
TOUCH_ID = MethodSpec(BiometricType.FINGERPRINT, "Touch ID")
FINGERPRINT = MethodSpec(BiometricType.FINGERPRINT, "Fingerprint Scanner")
FACE_UNLOCK_STRONG = MethodSpec(BiometricType.FACE, "Face Unlock")
FACE_UNLOCK_WEAK = MethodSpec(
	BiometricType.FACE, "Face Unlock", SecurityClass.WEAK, hardware_backed=False
)
FACE_RECOGNITION_WEAK = MethodSpec(
	BiometricType.FACE, "Face Recognition", SecurityClass.WEAK, hardware_backed=False
)
IRIS = MethodSpec(BiometricType.IRIS, "Iris Scanner")
HELLO_FACE = MethodSpec(BiometricType.FACE, "Windows Hello Face")
HELLO_FINGERPRINT = MethodSpec(BiometricType.FINGERPRINT, "Windows Hello Fingerprint")


def _rule(platform, pattern, methods, family=None, note=""):
	return CapabilityRule(
		platform=platform,
		pattern=re.compile(pattern, re.IGNORECASE),
		methods=tuple(methods),
		family=family,
		note=note,
	)


DEFAULT_TABLE = CapabilityTable(
	version=CAPABILITY_TABLE_VERSION,
	rules=(
		# iPhone SE (2nd/3rd gen) keep the home button
		_rule(Platform.IOS, r"iPhone(?:12,8|14,6)\b", [TOUCH_ID], "iPhone", "iPhone SE"),
		_rule(Platform.IOS, r"iPhone10,[36]\b", [FACE_ID], "iPhone", "iPhone X"),
		_rule(Platform.IOS, r"iPhone10,[1245]\b", [TOUCH_ID], "iPhone", "iPhone 8"),
		_rule(Platform.IOS, r"iPhone(?:1[1-9]|[2-9]\d),\d+", [FACE_ID], "iPhone", "iPhone XS and later"),
		_rule(Platform.IOS, r"iPhone[6-9],\d+", [TOUCH_ID], "iPhone", "iPhone 5s to 7"),
		_rule(Platform.IOS, r"iPad8,\d+|iPad13,(?:[4-9]|1[01])\b|iPad14,[3-6]\b|iPad16,[3-6]\b",
			[FACE_ID], "iPad", "iPad Pro with TrueDepth"),
		_rule(Platform.IOS, r"iPad", [TOUCH_ID], "iPad"),
		_rule(Platform.IOS, r"iPod", [], "iPod"),
		_rule(Platform.IOS, r"iPhone", [FACE_ID], "iPhone", "unidentified iPhone"),
		_rule(Platform.IOS, r".*", []),

		_rule(Platform.ANDROID, r"Pixel 4(?!a)(?: XL)?", [FACE_UNLOCK_STRONG], "Pixel"),
		_rule(Platform.ANDROID, r"Pixel (?:[89]|1\d)", [FACE_UNLOCK_STRONG, FINGERPRINT], "Pixel"),
		_rule(Platform.ANDROID, r"Pixel 7", [FACE_UNLOCK_WEAK, FINGERPRINT], "Pixel"),
		_rule(Platform.ANDROID, r"Pixel", [FINGERPRINT], "Pixel"),
		_rule(Platform.ANDROID, r"SM-[GN]9[56]\d|Galaxy (?:S[89]|Note ?[89])\b",
			[FACE_RECOGNITION_WEAK, FINGERPRINT, IRIS], "Galaxy", "Galaxy S8/S9/Note 8/Note 9"),
		_rule(Platform.ANDROID, r"SM-[GSN]9\d\d|Galaxy (?:S|Note)",
			[FACE_RECOGNITION_WEAK, FINGERPRINT], "Galaxy"),
		_rule(Platform.ANDROID, r"SM-|Galaxy", [FINGERPRINT], "Galaxy"),
		_rule(Platform.ANDROID, r"OnePlus", [FACE_UNLOCK_WEAK, FINGERPRINT], "OnePlus"),
		_rule(Platform.ANDROID, r"\bMi \d|Xiaomi|Redmi", [FACE_UNLOCK_WEAK, FINGERPRINT], "Xiaomi"),
		_rule(Platform.ANDROID, r"LG-", [FINGERPRINT], "LG"),
		_rule(Platform.ANDROID, r".*", [FINGERPRINT]),

		_rule(Platform.MACOS, r".*", [TOUCH_ID], "Mac"),
		_rule(Platform.WINDOWS, r".*", [HELLO_FACE, HELLO_FINGERPRINT]),
		_rule(Platform.LINUX, r".*", []),
	),
)


# Manufacturer convention: face before fingerprint before iris
PRIMARY_PREFERENCE = (BiometricType.FACE, BiometricType.FINGERPRINT, BiometricType.IRIS)

FALLBACK_METHODS: dict[Platform, tuple[FallbackMethod, ...]] = {
	Platform.IOS: (FallbackMethod.DEVICE_PASSCODE,),
	Platform.ANDROID: (FallbackMethod.PIN, FallbackMethod.PATTERN, FallbackMethod.PASSWORD),
	Platform.MACOS: (FallbackMethod.PASSWORD,),
	Platform.WINDOWS: (FallbackMethod.PIN, FallbackMethod.PASSWORD),
	Platform.LINUX: (FallbackMethod.PASSWORD,),
	Platform.UNKNOWN: (),
}
