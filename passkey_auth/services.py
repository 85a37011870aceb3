# (c) Copyright Datacraft, 2026
"""Wiring of the passkey components from settings."""
import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from .audit import SqlAuditTrail
from .capability import CapabilityDetector, PlatformAuthenticatorProbe
from .ceremony import PasskeyCeremonyService, StepBroadcaster
from .config import Settings
from .credentials import CredentialLifecycleManager, CredentialRepository, SqlCredentialRepository
from .db import Base, make_engine, make_session_factory
from .sessions import CeremonySessionStore
from .tokens import SessionTokenIssuer
from .verifier import HttpRelyingPartyVerifier, LocalRelyingPartyVerifier, RelyingPartyVerifier

logger = logging.getLogger(__name__)


@dataclass
class PasskeyServices:
	"""Components shared by every request of one application."""
	settings: Settings
	engine: Engine
	session_factory: sessionmaker[Session]
	sessions: CeremonySessionStore
	detector: CapabilityDetector
	repository: CredentialRepository
	audit: SqlAuditTrail
	credentials: CredentialLifecycleManager
	verifier: RelyingPartyVerifier
	tokens: SessionTokenIssuer
	broadcaster: StepBroadcaster
	ceremony: PasskeyCeremonyService


def build_verifier(settings: Settings, repository: CredentialRepository) -> RelyingPartyVerifier:
	if settings.verifier_url:
		logger.info(f"Using relying-party verifier at {settings.verifier_url}")
		return HttpRelyingPartyVerifier(settings.verifier_url, timeout=settings.verifier_timeout)
	return LocalRelyingPartyVerifier(
		repository,
		rp_id=settings.webauthn_rp_id,
		rp_name=settings.webauthn_rp_name,
		origin=settings.webauthn_origin,
		timeout=settings.webauthn_timeout,
	)


def build_services(
	settings: Settings,
	probe: PlatformAuthenticatorProbe | None = None,
	verifier: RelyingPartyVerifier | None = None,
) -> PasskeyServices:
	"""Create tables and construct every component once."""
	engine = make_engine(settings.db_url)
	Base.metadata.create_all(engine)
	session_factory = make_session_factory(engine)

	repository = SqlCredentialRepository(session_factory)
	audit = SqlAuditTrail(session_factory)
	credentials = CredentialLifecycleManager(
		repository,
		max_active=settings.max_active_credentials,
		protect_current_device=settings.protect_current_device,
		allow_zero_counter=settings.allow_zero_counter,
		audit=audit,
	)
	sessions = CeremonySessionStore(ttl=timedelta(minutes=settings.challenge_ttl_minutes))
	detector = CapabilityDetector(probe=probe, probe_timeout=settings.authenticator_timeout)
	verifier = verifier or build_verifier(settings, repository)
	tokens = SessionTokenIssuer(
		settings.secret_key,
		algorithm=settings.token_algorithm,
		expire_minutes=settings.token_expire_minutes,
	)
	broadcaster = StepBroadcaster()
	ceremony = PasskeyCeremonyService(
		detector,
		sessions,
		verifier,
		credentials,
		tokens=tokens,
		broadcaster=broadcaster,
		audit=audit,
		authenticator_timeout=settings.authenticator_timeout,
		verifier_timeout=settings.verifier_timeout,
	)
	return PasskeyServices(
		settings=settings,
		engine=engine,
		session_factory=session_factory,
		sessions=sessions,
		detector=detector,
		repository=repository,
		audit=audit,
		credentials=credentials,
		verifier=verifier,
		tokens=tokens,
		broadcaster=broadcaster,
		ceremony=ceremony,
	)
