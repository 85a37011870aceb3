# (c) Copyright Datacraft, 2026
"""Session tokens issued after a successful passkey sign-in."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt

from .config import Algs


@dataclass(frozen=True)
class SessionClaims:
	subject: str
	credential_id: str | None
	expires_at: datetime


class SessionTokenIssuer:
	"""Signs and reads JWT session tokens.

	Claims: ``sub`` (subject), ``cid`` (credential that signed in) and
	``exp``. ``cid`` lets device management recognise the current device.
	"""

	def __init__(
		self,
		secret_key: str,
		algorithm: Algs | str = Algs.HS256,
		expire_minutes: int = 1360,
		clock: Callable[[], datetime] | None = None,
	):
		self.secret_key = secret_key
		self.algorithm = Algs(algorithm).value
		self.expire_minutes = expire_minutes
		self.clock = clock or (lambda: datetime.now(timezone.utc))

	def issue(self, subject: str, credential_id: str | None = None) -> str:
		expires_at = self.clock() + timedelta(minutes=self.expire_minutes)
		payload = {"sub": subject, "exp": expires_at}
		if credential_id:
			payload["cid"] = credential_id
		return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

	def decode(self, token: str) -> SessionClaims:
		"""Raises ``jwt.ExpiredSignatureError`` or ``jwt.InvalidTokenError``."""
		payload = jwt.decode(
			token,
			self.secret_key,
			algorithms=[self.algorithm],
			options={"require": ["exp", "sub"]},
		)
		return SessionClaims(
			subject=payload["sub"],
			credential_id=payload.get("cid"),
			expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
		)
