# (c) Copyright Datacraft, 2026
"""Platform authenticator interface.

The authenticator runs on the user's device; the server reaches it through
an adapter such as the WebSocket relay in ``passkey_auth.routers``. Adapters
raise ``AuthenticatorError`` carrying the platform error name when the
user dismisses the prompt or the device refuses the request.
"""
from typing import Any, Protocol


class PlatformAuthenticator(Protocol):
	async def create_credential(self, options: dict[str, Any]) -> dict[str, Any]:
		"""Run ``navigator.credentials.create`` and return the attestation JSON."""
		...

	async def get_assertion(self, options: dict[str, Any]) -> dict[str, Any]:
		"""Run ``navigator.credentials.get`` and return the assertion JSON."""
		...
