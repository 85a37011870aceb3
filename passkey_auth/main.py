# (c) Copyright Datacraft, 2026
"""FastAPI application for passkey ceremonies."""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.orm import Session as SQLAlchemySession

from .capability import CAPABILITY_TABLE_VERSION, PlatformAuthenticatorProbe
from .config import Settings, get_settings
from .routers import passkey_router
from .schema import HealthResponse
from .services import build_services
from .utils import get_db
from .verifier import RelyingPartyVerifier

logger = logging.getLogger(__name__)


def create_app(
	settings: Settings | None = None,
	probe: PlatformAuthenticatorProbe | None = None,
	verifier: RelyingPartyVerifier | None = None,
) -> FastAPI:
	@asynccontextmanager
	async def lifespan(app: FastAPI):
		services = build_services(settings or get_settings(), probe=probe, verifier=verifier)
		app.state.services = services
		sweeper = asyncio.create_task(
			services.sessions.run_sweeper(services.settings.session_sweep_interval)
		)
		logger.info(f"Passkey service started (capability table {CAPABILITY_TABLE_VERSION})")
		try:
			yield
		finally:
			sweeper.cancel()
			try:
				await sweeper
			except asyncio.CancelledError:
				pass
			services.engine.dispose()
			logger.info("Passkey service stopped")

	app = FastAPI(title="Passkey Ceremony Service", lifespan=lifespan)
	app.include_router(passkey_router)

	@app.get("/health", response_model=HealthResponse)
	def health(db: SQLAlchemySession = Depends(get_db)) -> HealthResponse:
		db.execute(text("SELECT 1"))
		return HealthResponse(capability_table_version=CAPABILITY_TABLE_VERSION)

	return app
