# (c) Copyright Datacraft, 2026
"""Device and biometric capability detection."""
import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Callable

from .models import (
	BiometricMethod,
	BiometricType,
	DeviceProfile,
	DeviceSignals,
	FormFactor,
	NativeCapabilities,
	Platform,
)
from .probe import PlatformAuthenticatorProbe, ReportedProbe
from .table import (
	DEFAULT_TABLE,
	FACE_UNLOCK_WEAK,
	FALLBACK_METHODS,
	FINGERPRINT,
	IRIS,
	PRIMARY_PREFERENCE,
	CapabilityTable,
	MethodSpec,
)

logger = logging.getLogger(__name__)

PLATFORM_LABELS = {
	Platform.IOS: "iOS",
	Platform.ANDROID: "Android",
	Platform.MACOS: "macOS",
	Platform.WINDOWS: "Windows",
	Platform.LINUX: "Linux",
	Platform.UNKNOWN: "Unknown",
}

# navigator.userAgentData.platform values
CLIENT_HINT_PLATFORMS = {
	"ios": Platform.IOS,
	"android": Platform.ANDROID,
	"macos": Platform.MACOS,
	"windows": Platform.WINDOWS,
	"linux": Platform.LINUX,
	"chrome os": Platform.LINUX,
	"chromeos": Platform.LINUX,
}

GENERIC_BIOMETRIC_NAMES = {
	BiometricType.FACE: "Face Recognition",
	BiometricType.FINGERPRINT: "Fingerprint",
	BiometricType.IRIS: "Iris Scanner",
}

ANDROID_MODEL_PATTERNS = (
	re.compile(r"Android[^;)]*;\s*(?:[a-z]{2}[-_][a-z]{2};\s*)?([^;)]+?)(?:\s+Build/[^;)]*)?(?:;\s*wv)?\)", re.I),
	re.compile(r"(SM-[A-Z0-9]+)", re.I),
	re.compile(r"(Pixel [0-9]+[a-zA-Z]*)", re.I),
	re.compile(r"(Mi [A-Z0-9 ]+)", re.I),
	re.compile(r"(OnePlus [A-Z0-9]+)", re.I),
	re.compile(r"(LG-[A-Z0-9]+)", re.I),
)

# Chrome's reduced user agent replaces the model with "K"
REDACTED_MODELS = {"k", "mobile", "tablet"}


def detect_platform(signals: DeviceSignals) -> Platform:
	ua = signals.user_agent or ""
	nav = (signals.platform or "").lower()
	hint = CLIENT_HINT_PLATFORMS.get((signals.client_hint_platform or "").strip().lower())

	if re.search(r"iPhone|iPad|iPod", ua, re.I):
		return Platform.IOS
	# iPadOS requests the desktop site by default
	if "Macintosh" in ua and (signals.max_touch_points or 0) > 1:
		return Platform.IOS
	if re.search(r"Android", ua, re.I) or hint == Platform.ANDROID or nav.startswith("linux armv"):
		return Platform.ANDROID
	if re.search(r"Mac OS X|Macintosh", ua) or nav.startswith("mac"):
		return Platform.MACOS
	if re.search(r"Windows", ua) or nav.startswith("win"):
		return Platform.WINDOWS
	if hint is not None:
		return hint
	if re.search(r"Linux|CrOS", ua) or nav.startswith("linux"):
		return Platform.LINUX
	return Platform.UNKNOWN


def detect_form_factor(signals: DeviceSignals, platform: Platform) -> FormFactor:
	ua = signals.user_agent or ""
	if platform == Platform.IOS and (re.search(r"iPad", ua) or "Macintosh" in ua):
		return FormFactor.TABLET
	if re.search(r"Tablet", ua, re.I):
		return FormFactor.TABLET
	if platform == Platform.ANDROID and ua and not re.search(r"Mobile", ua) and signals.client_hint_mobile is not True:
		# Android tablets drop the "Mobile" token
		return FormFactor.TABLET
	if signals.client_hint_mobile:
		return FormFactor.MOBILE
	if re.search(r"Mobile|iPhone|iPod|Android", ua, re.I):
		return FormFactor.MOBILE
	return FormFactor.DESKTOP


def detect_browser(user_agent: str | None) -> str:
	ua = user_agent or ""
	if re.search(r"Edg", ua):
		return "Edge"
	if re.search(r"SamsungBrowser", ua):
		return "Samsung Internet"
	if re.search(r"Chrome|CriOS", ua):
		return "Chrome"
	if re.search(r"Firefox|FxiOS", ua):
		return "Firefox"
	if re.search(r"Safari", ua):
		return "Safari"
	return "Unknown"


def extract_device_model(user_agent: str | None, platform: Platform) -> str | None:
	ua = user_agent or ""
	if platform == Platform.IOS:
		match = re.search(r"((?:iPhone|iPad|iPod)\d+,\d+)", ua)
		if match:
			return match.group(1)
		for family in ("iPhone", "iPad", "iPod"):
			if family in ua:
				return family
		return None

	if platform == Platform.ANDROID:
		for pattern in ANDROID_MODEL_PATTERNS:
			match = pattern.search(ua)
			if match and match.group(1).strip().lower() not in REDACTED_MODELS:
				return match.group(1).strip()
		return None

	return None


def extract_os_version(user_agent: str | None, platform: Platform) -> str | None:
	ua = user_agent or ""
	patterns = {
		Platform.IOS: r"OS (\d+[_.]\d+(?:[_.]\d+)?)",
		Platform.ANDROID: r"Android\s+(\d+(?:\.\d+)*)",
		Platform.MACOS: r"Mac OS X (\d+[_.]\d+(?:[_.]\d+)?)",
		Platform.WINDOWS: r"Windows NT (\d+\.\d+)",
	}
	pattern = patterns.get(platform)
	if not pattern:
		return None
	match = re.search(pattern, ua)
	return match.group(1).replace("_", ".") if match else None


def generate_device_name(
	browser: str,
	platform: Platform,
	device_model: str | None,
	now: datetime,
) -> str:
	date = f"{now:%b} {now.day}"
	if device_model:
		return f"{device_model} ({browser}) - {date}"
	return f"{browser} on {PLATFORM_LABELS[platform]} ({date})"


def select_primary(methods: list[BiometricMethod]) -> BiometricType | None:
	supported = {m.type for m in methods if m.supported}
	for candidate in PRIMARY_PREFERENCE:
		if candidate in supported:
			return candidate
	return None


def biometric_display_name(
	biometric_type: BiometricType | str | None,
	profile: DeviceProfile | None = None,
) -> str:
	"""User-facing label for a biometric method, e.g. "Face ID"."""
	if biometric_type is None:
		return "Biometric Authentication"
	try:
		biometric_type = BiometricType(biometric_type)
	except ValueError:
		return "Biometric Authentication"
	if profile is not None:
		method = profile.method(biometric_type)
		if method is not None:
			return method.name
	return GENERIC_BIOMETRIC_NAMES[biometric_type]


class CapabilityDetector:
	"""Builds a DeviceProfile from client signals.

	``detect`` never raises: probe failures and timeouts count as
	"platform authenticator unavailable", and any other failure yields
	the fully-unknown profile.
	"""

	def __init__(
		self,
		probe: PlatformAuthenticatorProbe | None = None,
		table: CapabilityTable = DEFAULT_TABLE,
		probe_timeout: float = 60.0,
		clock: Callable[[], datetime] | None = None,
	):
		self.probe = probe or ReportedProbe()
		self.table = table
		self.probe_timeout = probe_timeout
		self.clock = clock or (lambda: datetime.now(timezone.utc))

	async def detect(self, signals: DeviceSignals | None = None) -> DeviceProfile:
		signals = signals or DeviceSignals()
		try:
			return await self._detect(signals)
		except asyncio.CancelledError:
			raise
		except Exception as e:
			logger.error(f"Capability detection failed, using unknown profile: {e}")
			return DeviceProfile(capability_table_version=self.table.version)

	async def _detect(self, signals: DeviceSignals) -> DeviceProfile:
		platform = detect_platform(signals)
		form_factor = detect_form_factor(signals, platform)
		browser = detect_browser(signals.user_agent)
		device_model = extract_device_model(signals.user_agent, platform)
		device_key = f"{device_model or ''} {signals.user_agent or ''}"

		rule = self.table.lookup(platform, device_key)
		specs = list(rule.methods) if rule else []
		enrolled = None
		if platform == Platform.ANDROID and signals.native_capabilities is not None:
			specs = self._native_specs(signals.native_capabilities, specs)
			enrolled = signals.native_capabilities.enrolled

		available = await self._probe(signals)
		methods = []
		for spec in specs:
			hardware_backed = spec.hardware_backed
			if signals.native_capabilities is not None and signals.native_capabilities.hardware_backed is False:
				hardware_backed = False
			methods.append(BiometricMethod(
				type=spec.type,
				name=spec.name,
				security_class=spec.security_class,
				hardware_backed=hardware_backed,
				supported=available and enrolled is not False,
				enrolled=enrolled,
			))

		profile = DeviceProfile(
			platform=platform,
			form_factor=form_factor,
			browser=browser,
			device_name=generate_device_name(browser, platform, device_model, self.clock()),
			device_model=device_model,
			device_family=rule.family if rule else None,
			os_version=extract_os_version(signals.user_agent, platform),
			biometrics=methods,
			primary_method=select_primary(methods),
			fallback_methods=list(FALLBACK_METHODS[platform]),
			platform_authenticator=available,
			autofill_supported=bool(available and signals.autofill_supported),
			capability_table_version=self.table.version,
		)
		logger.debug(
			f"Detected {platform.value}/{form_factor.value} profile "
			f"with primary={profile.primary_method}"
		)
		return profile

	async def _probe(self, signals: DeviceSignals) -> bool:
		try:
			return bool(await asyncio.wait_for(
				self.probe.is_available(signals),
				timeout=self.probe_timeout,
			))
		except asyncio.TimeoutError:
			logger.warning(f"Platform authenticator probe timed out after {self.probe_timeout}s")
			return False
		except asyncio.CancelledError:
			raise
		except Exception as e:
			logger.warning(f"Platform authenticator probe failed: {e}")
			return False

	def _native_specs(self, caps: NativeCapabilities, table_specs: list[MethodSpec]) -> list[MethodSpec]:
		face = next((s for s in table_specs if s.type == BiometricType.FACE), FACE_UNLOCK_WEAK)
		specs = []
		if caps.face_unlock:
			specs.append(face)
		if caps.fingerprint:
			specs.append(FINGERPRINT)
		if caps.iris:
			specs.append(IRIS)
		return specs
