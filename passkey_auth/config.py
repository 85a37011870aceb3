# (c) Copyright Datacraft, 2026
import logging

from functools import lru_cache
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class Algs(str, Enum):
    HS256 = "HS256"
    HS384 = "HS384"
    HS512 = "HS512"
    RS256 = "RS256"
    RS384 = "RS384"
    RS512 = "RS512"
    ES256 = "ES256"
    ES384 = "ES384"
    ES512 = "ES512"


class Settings(BaseSettings):
    secret_key: str
    db_url: str = "sqlite:///./passkeys.db"

    token_algorithm: Algs = Algs.HS256
    token_expire_minutes: int = Field(gt=0, default=1360)
    cookie_name: str = "access_token"

    # WebAuthn/Passkey settings
    webauthn_rp_id: str = Field(default="localhost", description="Relying Party ID (domain)")
    webauthn_rp_name: str = Field(default="PSSLAI Loan App", description="Relying Party display name")
    webauthn_origin: str = Field(default="https://localhost", description="Expected origin for WebAuthn")
    webauthn_timeout: int = Field(default=60000, gt=0, description="Authenticator timeout in ms")

    # Relying-party verifier; empty url selects the in-process verifier
    verifier_url: str = Field(default="", description="Base URL of the relying-party verifier")
    verifier_timeout: float = Field(default=10.0, gt=0, description="Verifier round-trip timeout in seconds")

    # Ceremony settings
    challenge_ttl_minutes: int = Field(default=5, gt=0)
    max_active_credentials: int = Field(default=5, gt=0)
    session_sweep_interval: float = Field(default=60.0, gt=0, description="Seconds between expired session sweeps")
    protect_current_device: bool = Field(
        default=True,
        description="Refuse to revoke the credential that signed the current session",
    )
    allow_zero_counter: bool = Field(
        default=True,
        description="Accept authenticators that never increment their signature counter",
    )

    model_config = SettingsConfigDict(env_prefix='passkey_')

    @property
    def authenticator_timeout(self) -> float:
        """Authenticator timeout in seconds."""
        return self.webauthn_timeout / 1000


@lru_cache()
def get_settings():
    return Settings()
