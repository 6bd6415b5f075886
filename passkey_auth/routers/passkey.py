# (c) Copyright Datacraft, 2026
"""Passkey API endpoints."""
import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from passkey_auth import schema
from passkey_auth.config import Settings, get_settings
from passkey_auth.db.engine import get_db
from passkey_auth.errors import UnauthorizedAccess, UserNotFound
from passkey_auth.models import DISCOVERY_USER_ID, ChallengeType
from passkey_auth.services import (
	AuthenticationHandler, ChallengeManager, CredentialService, Operation,
	RateLimiter, RegistrationHandler,
)
from passkey_auth.services.credentials import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from passkey_auth.services.rate_limit import rules_from_settings
from passkey_auth.session import JWTSessionIssuer, SessionIssuer
from passkey_auth.store import PasskeyStore, SqlAlchemyPasskeyStore
from passkey_auth.utils import client_identity, get_current_user_id
from passkey_auth.webauthn import WebAuthnVerifier

logger = logging.getLogger(__name__)


def get_store(db: Session = Depends(get_db)) -> PasskeyStore:
	return SqlAlchemyPasskeyStore(db)


def get_verifier(settings: Settings = Depends(get_settings)) -> WebAuthnVerifier:
	return WebAuthnVerifier(rp_id=settings.rp_id, origins=settings.origins)


def get_session_issuer(settings: Settings = Depends(get_settings)) -> SessionIssuer:
	return JWTSessionIssuer(settings)


def get_rate_limiter(
	store: PasskeyStore = Depends(get_store),
	settings: Settings = Depends(get_settings),
) -> RateLimiter:
	return RateLimiter(
		store, rules_from_settings(settings), enabled=settings.rate_limit_enabled
	)


def get_challenge_manager(
	store: PasskeyStore = Depends(get_store),
	settings: Settings = Depends(get_settings),
) -> ChallengeManager:
	return ChallengeManager(store, ttl_seconds=settings.challenge_ttl_seconds)


def get_registration_handler(
	store: PasskeyStore = Depends(get_store),
	challenges: ChallengeManager = Depends(get_challenge_manager),
	verifier: WebAuthnVerifier = Depends(get_verifier),
	settings: Settings = Depends(get_settings),
) -> RegistrationHandler:
	return RegistrationHandler(
		store=store,
		challenges=challenges,
		verifier=verifier,
		rp_id=settings.rp_id,
		rp_name=settings.rp_name,
		origins=settings.origins,
	)


def get_authentication_handler(
	store: PasskeyStore = Depends(get_store),
	challenges: ChallengeManager = Depends(get_challenge_manager),
	verifier: WebAuthnVerifier = Depends(get_verifier),
	sessions: SessionIssuer = Depends(get_session_issuer),
	settings: Settings = Depends(get_settings),
) -> AuthenticationHandler:
	return AuthenticationHandler(
		store=store,
		challenges=challenges,
		verifier=verifier,
		sessions=sessions,
		origins=settings.origins,
		allow_zero_counter=settings.allow_zero_counter,
	)


def get_credential_service(store: PasskeyStore = Depends(get_store)) -> CredentialService:
	return CredentialService(store)


def limit_requester(
	request: Request,
	limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
	"""Global per-requester limit shared by every passkey endpoint."""
	limiter.hit(Operation.ANY, client_identity(request))


router = APIRouter(
	prefix="/expo-passkey",
	tags=["Passkeys"],
	dependencies=[Depends(limit_requester)],
	responses={
		400: {"model": schema.ErrorResponse},
		401: {"model": schema.ErrorResponse},
		429: {"model": schema.ErrorResponse},
	},
)


@router.post("/challenge", response_model=schema.ChallengeResponse)
async def create_challenge(
	request: schema.ChallengeRequest,
	challenges: ChallengeManager = Depends(get_challenge_manager),
	store: PasskeyStore = Depends(get_store),
) -> schema.ChallengeResponse:
	"""Issue a challenge for a registration or authentication ceremony."""
	user_id = request.user_id or DISCOVERY_USER_ID

	if request.type == ChallengeType.REGISTRATION and store.get_user(user_id) is None:
		logger.warning(f"Challenge generation failed: user {user_id} not found")
		raise UserNotFound()

	registration_options = (
		request.registration_options.model_dump(by_alias=True, exclude_none=True)
		if request.registration_options else None
	)
	record = await challenges.issue(user_id, request.type, registration_options)
	return schema.ChallengeResponse(challenge=record.challenge)


@router.post("/register", response_model=schema.RegisterResponse)
async def register_passkey(
	request: schema.RegisterRequest,
	limiter: RateLimiter = Depends(get_rate_limiter),
	handler: RegistrationHandler = Depends(get_registration_handler),
) -> schema.RegisterResponse:
	"""Register a new passkey from an attestation response."""
	limiter.hit(Operation.REGISTER, request.user_id)

	result = await handler.register(
		user_id=request.user_id,
		credential=request.credential.model_dump(by_alias=True, exclude_none=True),
		platform=request.platform,
		metadata=request.metadata.model_dump(by_alias=True, exclude_none=True)
		if request.metadata else None,
	)
	return schema.RegisterResponse(success=True, rp_name=result.rp_name, rp_id=result.rp_id)


@router.post("/authenticate", response_model=schema.AuthenticateResponse)
async def authenticate_passkey(
	request: schema.AuthenticateRequest,
	http_request: Request,
	limiter: RateLimiter = Depends(get_rate_limiter),
	handler: AuthenticationHandler = Depends(get_authentication_handler),
) -> schema.AuthenticateResponse:
	"""Authenticate with a registered passkey and issue a session."""
	limiter.hit(Operation.AUTHENTICATE, request.user_id or client_identity(http_request))

	result = await handler.authenticate(
		credential=request.credential.model_dump(by_alias=True, exclude_none=True),
		metadata=request.metadata.model_dump(by_alias=True, exclude_none=True)
		if request.metadata else None,
		user_id=request.user_id,
	)
	return schema.AuthenticateResponse(
		token=result.token,
		user=schema.SessionUser.from_record(result.user),
	)


@router.get(
	"/list/{user_id}",
	response_model=schema.PasskeyListResponse,
	response_model_exclude_none=True,
)
async def list_passkeys(
	user_id: str,
	limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
	offset: int = Query(default=0, ge=0),
	session_user_id: str = Depends(get_current_user_id),
	service: CredentialService = Depends(get_credential_service),
) -> schema.PasskeyListResponse:
	"""List the caller's active passkeys."""
	if session_user_id != user_id:
		logger.warning(
			f"User {session_user_id} attempted to list passkeys of user {user_id}"
		)
		raise UnauthorizedAccess()

	page = await service.list_credentials(user_id, limit=limit, offset=offset)
	return schema.PasskeyListResponse(
		passkeys=[schema.PasskeyInfo.from_record(p) for p in page.passkeys],
		next_offset=page.next_offset,
	)


@router.post("/revoke", response_model=schema.RevokeResponse)
async def revoke_passkey(
	request: schema.RevokeRequest,
	service: CredentialService = Depends(get_credential_service),
) -> schema.RevokeResponse:
	"""Revoke a passkey."""
	await service.revoke(request.user_id, request.credential_id, request.reason)
	return schema.RevokeResponse(success=True)
