# (c) Copyright Datacraft, 2026
"""Passkey API endpoints."""
import asyncio
import logging
from typing import Any, Awaitable

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from passkey_auth import schema
from passkey_auth.capability import DeviceProfile, DeviceSignals
from passkey_auth.ceremony import CeremonyOutcome, ErrorKind, StepEvent, describe
from passkey_auth.credentials import Credential
from passkey_auth.exceptions import (
	AuthenticatorError,
	CredentialNotFoundError,
	CurrentDeviceRevocationError,
)
from passkey_auth.services import PasskeyServices
from passkey_auth.tokens import SessionClaims
from passkey_auth.utils import decode_session, get_current_session, get_services

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/passkeys", tags=["Passkeys"])


def _info(credential: Credential, claims: SessionClaims) -> schema.PasskeyCredentialInfo:
	return schema.PasskeyCredentialInfo(
		**credential.public_view(),
		is_current=credential.credential_id == claims.credential_id,
	)


@router.post("/capabilities", response_model=DeviceProfile)
async def detect_capabilities(
	signals: DeviceSignals,
	services: PasskeyServices = Depends(get_services),
) -> DeviceProfile:
	"""Describe the biometric capabilities of the calling device."""
	return await services.ceremony.detect_capabilities(signals)


@router.get("/", response_model=schema.PasskeyListResponse)
async def list_passkeys(
	services: PasskeyServices = Depends(get_services),
	claims: SessionClaims = Depends(get_current_session),
) -> schema.PasskeyListResponse:
	"""List passkeys of the signed-in user, oldest first."""
	credentials = services.ceremony.list_credentials(claims.subject)
	return schema.PasskeyListResponse(
		credentials=[_info(c, claims) for c in credentials],
		active_count=sum(1 for c in credentials if c.is_active),
		max_active=services.credentials.max_active,
	)


@router.patch("/{credential_id}", response_model=schema.PasskeyCredentialInfo)
async def rename_passkey(
	credential_id: str,
	request: schema.PasskeyRenameRequest,
	services: PasskeyServices = Depends(get_services),
	claims: SessionClaims = Depends(get_current_session),
) -> schema.PasskeyCredentialInfo:
	"""Rename a passkey."""
	try:
		credential = services.ceremony.rename_credential(
			credential_id, request.device_name, owner=claims.subject
		)
	except CredentialNotFoundError:
		raise HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail="Passkey not found",
		)
	except ValueError as e:
		raise HTTPException(
			status_code=status.HTTP_400_BAD_REQUEST,
			detail=str(e),
		)
	return _info(credential, claims)


@router.delete("/{credential_id}", response_model=schema.PasskeyResponse)
async def revoke_passkey(
	credential_id: str,
	services: PasskeyServices = Depends(get_services),
	claims: SessionClaims = Depends(get_current_session),
) -> schema.PasskeyResponse:
	"""Revoke a passkey."""
	try:
		services.ceremony.revoke_credential(
			credential_id,
			current_credential_id=claims.credential_id,
			owner=claims.subject,
		)
	except CredentialNotFoundError:
		raise HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail="Passkey not found",
		)
	except CurrentDeviceRevocationError as e:
		raise HTTPException(
			status_code=status.HTTP_409_CONFLICT,
			detail=str(e),
		)

	return schema.PasskeyResponse(
		success=True,
		credential_id=credential_id,
		message="Passkey removed",
	)


@router.get("/errors/{kind}", response_model=schema.ErrorDescription)
async def describe_error(kind: str) -> schema.ErrorDescription:
	"""User-facing message and recovery action for an error kind."""
	try:
		translation = describe(ErrorKind(kind))
	except ValueError:
		raise HTTPException(
			status_code=status.HTTP_404_NOT_FOUND,
			detail=f"Unknown error kind: {kind}",
		)
	return schema.ErrorDescription(
		kind=translation.kind.value,
		retryable=translation.retryable,
		message=translation.user_message,
		recovery=translation.recovery.value,
	)


class WebSocketAuthenticator:
	"""Platform authenticator living in the browser at the end of a socket.

	Outgoing messages (steps, prompts, the outcome) go through one queue so
	the client sees them in the order they happened.
	"""

	def __init__(self, websocket: WebSocket):
		self.websocket = websocket
		self.outbox: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

	def on_step(self, event: StepEvent) -> None:
		self.outbox.put_nowait({"type": "step", **event.to_dict()})

	async def create_credential(self, options: dict[str, Any]) -> dict[str, Any]:
		return await self._prompt("create", options)

	async def get_assertion(self, options: dict[str, Any]) -> dict[str, Any]:
		return await self._prompt("get", options)

	async def relay(self, ceremony: Awaitable[CeremonyOutcome]) -> CeremonyOutcome:
		sender = asyncio.create_task(self._send_all())
		try:
			outcome = await ceremony
			self.outbox.put_nowait({"type": "outcome", **outcome.to_dict()})
		finally:
			self.outbox.put_nowait(None)
			await sender
		return outcome

	async def _prompt(self, operation: str, options: dict[str, Any]) -> dict[str, Any]:
		self.outbox.put_nowait({"type": "prompt", "operation": operation, "options": options})
		try:
			data = await self.websocket.receive_json()
		except WebSocketDisconnect:
			raise AuthenticatorError("AbortError", "Client disconnected")

		try:
			message = schema.CeremonyClientMessage.model_validate(data)
		except ValidationError:
			raise AuthenticatorError("UnknownError", "Malformed authenticator response")

		if message.type == "error":
			raise AuthenticatorError(message.name or "UnknownError", message.message)
		if not message.credential:
			raise AuthenticatorError("UnknownError", "Authenticator returned no credential")
		return message.credential

	async def _send_all(self) -> None:
		while True:
			message = await self.outbox.get()
			if message is None:
				return
			try:
				await self.websocket.send_json(message)
			except (WebSocketDisconnect, RuntimeError) as e:
				logger.info(f"Ceremony socket closed while sending: {e}")
				return


async def _receive_start(websocket: WebSocket) -> schema.CeremonyStartMessage | None:
	try:
		return schema.CeremonyStartMessage.model_validate(await websocket.receive_json())
	except ValueError as e:
		logger.info(f"Rejected ceremony start message: {e}")
		await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA, reason="Expected a start message")
		return None


async def _close(websocket: WebSocket) -> None:
	if websocket.client_state == WebSocketState.CONNECTED:
		await websocket.close()


@router.websocket("/ws/register")
async def register_socket(
	websocket: WebSocket,
	services: PasskeyServices = Depends(get_services),
):
	"""Run a registration ceremony for the signed-in user."""
	try:
		claims = decode_session(websocket, services)
	except HTTPException as e:
		await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.detail)
		return

	await websocket.accept()
	try:
		start = await _receive_start(websocket)
		if start is None:
			return
		authenticator = WebSocketAuthenticator(websocket)
		await authenticator.relay(services.ceremony.start_registration(
			claims.subject,
			start.display_name or claims.subject,
			authenticator,
			signals=start.signals,
			device_name=start.device_name,
			on_step=authenticator.on_step,
			biometric_type=start.biometric_type,
		))
		await _close(websocket)
	except WebSocketDisconnect:
		logger.info(f"Registration socket for {claims.subject} disconnected")


@router.websocket("/ws/authenticate")
async def authenticate_socket(
	websocket: WebSocket,
	services: PasskeyServices = Depends(get_services),
):
	"""Run an authentication ceremony; the outcome carries the session token."""
	await websocket.accept()
	try:
		start = await _receive_start(websocket)
		if start is None:
			return
		if not start.subject:
			await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Subject required")
			return
		authenticator = WebSocketAuthenticator(websocket)
		await authenticator.relay(services.ceremony.start_authentication(
			start.subject,
			authenticator,
			signals=start.signals,
			on_step=authenticator.on_step,
		))
		await _close(websocket)
	except WebSocketDisconnect:
		logger.info("Authentication socket disconnected")
