# (c) Copyright Datacraft, 2026
"""Application assembly: routers, error rendering, origin guard, cleanup task."""
import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from passkey_auth.config import Settings, get_settings
from passkey_auth.db.engine import create_db_engine, create_session_factory, init_db
from passkey_auth.errors import InvalidOrigin, PasskeyError
from passkey_auth.routers import passkey_router
from passkey_auth.services import CleanupScheduler
from passkey_auth.services.rate_limit import rules_from_settings
from passkey_auth.store import store_session
from passkey_auth.utils import configure_logging

logger = logging.getLogger(__name__)

PASSKEY_PATH_PREFIX = "/expo-passkey"


async def passkey_error_handler(request: Request, exc: PasskeyError) -> JSONResponse:
	logger.warning(f"{request.method} {request.url.path} failed: {exc.code} ({exc.message})")
	return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
	logger.error(f"{request.method} {request.url.path} storage failure", exc_info=exc)
	return JSONResponse(
		status_code=500,
		content={"code": "internal_error", "message": "Internal server error"},
	)


def build_cleanup_scheduler(
	settings: Settings,
	session_factory: sessionmaker[Session],
) -> CleanupScheduler:
	return CleanupScheduler(
		store_factory=partial(store_session, session_factory),
		inactive_days=settings.cleanup_inactive_days,
		interval_hours=settings.cleanup_interval_hours,
		disable_interval=settings.cleanup_disable_interval,
		rate_limit_rules=rules_from_settings(settings),
	)


def create_app(
	settings: Settings | None = None,
	engine: Engine | None = None,
) -> FastAPI:
	"""Build the passkey service.

	Args:
		settings: Defaults to the environment-derived settings
		engine: Defaults to an engine on ``settings.db_url``
	"""
	settings = settings or get_settings()
	configure_logging(settings.log_level.value)

	engine = engine or create_db_engine(settings.db_url)
	init_db(engine)
	session_factory = create_session_factory(engine)
	cleanup = build_cleanup_scheduler(settings, session_factory)

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		cleanup.start()
		try:
			yield
		finally:
			cleanup.shutdown()

	app = FastAPI(title=settings.rp_name, lifespan=lifespan)
	app.state.settings = settings
	app.state.session_factory = session_factory
	app.state.cleanup = cleanup
	app.dependency_overrides[get_settings] = lambda: settings

	app.add_exception_handler(PasskeyError, passkey_error_handler)
	app.add_exception_handler(SQLAlchemyError, storage_error_handler)

	@app.middleware("http")
	async def guard_origin(request: Request, call_next):
		origin = request.headers.get("origin")
		if (
			request.url.path.startswith(PASSKEY_PATH_PREFIX)
			and origin
			and origin not in settings.origins
		):
			logger.warning(f"Rejected request from untrusted origin {origin}")
			exc = InvalidOrigin()
			return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
		return await call_next(request)

	app.include_router(passkey_router)
	return app
