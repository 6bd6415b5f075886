# (c) Copyright Datacraft, 2026
"""Passkey registration ceremony."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError
from webauthn.helpers.structs import ClientDataType

from passkey_auth.db.orm import utc_now
from passkey_auth.errors import (
	AttestationInvalid, CredentialIdConflict, OriginMismatch, UserNotFound,
)
from passkey_auth.models import ChallengeRecord, ChallengeType, CredentialRecord, Platform
from passkey_auth.schema import RegistrationPreferences
from passkey_auth.services.challenge import ChallengeManager
from passkey_auth.store import PasskeyStore
from passkey_auth.webauthn import VerifiedAttestation, WebAuthnVerifier, read_client_data

logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
	"""Relying party identity echoed back for client-side confirmation."""
	rp_name: str
	rp_id: str
	credential: CredentialRecord


def load_preferences(challenge: ChallengeRecord) -> RegistrationPreferences:
	"""Parse the registration options snapshot stored with the challenge."""
	if not challenge.registration_options:
		return RegistrationPreferences()
	try:
		return RegistrationPreferences.model_validate(challenge.registration_options)
	except ValidationError as e:
		logger.warning(f"Stored registration options unreadable, using defaults: {e}")
		return RegistrationPreferences()


class RegistrationHandler:
	"""Verifies attestation responses and stores new credentials."""

	def __init__(
		self,
		store: PasskeyStore,
		challenges: ChallengeManager,
		verifier: WebAuthnVerifier,
		rp_id: str,
		rp_name: str,
		origins: list[str],
		clock: Callable[[], datetime] = utc_now,
	):
		self.store = store
		self.challenges = challenges
		self.verifier = verifier
		self.rp_id = rp_id
		self.rp_name = rp_name
		self.origins = list(origins)
		self.clock = clock

	async def register(
		self,
		user_id: str,
		credential: dict[str, Any],
		platform: Platform,
		metadata: dict[str, Any] | None = None,
	) -> RegistrationResult:
		"""Complete WebAuthn registration.

		Args:
			user_id: Owner of the new credential
			credential: Response from navigator.credentials.create()
			platform: Client runtime the credential was created on
			metadata: Client-reported device details

		Returns:
			RegistrationResult with the relying party name/id

		Raises:
			UserNotFound, ChallengeNotFound, ChallengeExpired, OriginMismatch,
			AttestationInvalid, CredentialIdConflict
		"""
		logger.debug(f"Registration attempt for user {user_id} on {platform.value}")

		if self.store.get_user(user_id) is None:
			logger.warning(f"Registration failed: user {user_id} not found")
			raise UserNotFound()

		client_data = read_client_data(
			credential, AttestationInvalid, expected_type=ClientDataType.WEBAUTHN_CREATE
		)
		challenge = await self.challenges.consume(
			user_id, ChallengeType.REGISTRATION, client_data.challenge
		)

		if client_data.origin not in self.origins:
			logger.warning(
				f"Registration failed: origin {client_data.origin} not allowed for user {user_id}"
			)
			raise OriginMismatch()

		preferences = load_preferences(challenge)
		verified = self.verifier.verify_attestation(
			credential,
			expected_challenge=challenge.challenge,
			require_user_verification=preferences.require_user_verification,
		)

		if self.store.get_credential(verified.credential_id) is not None:
			logger.warning(f"Registration failed: credential {verified.credential_id} already exists")
			raise CredentialIdConflict()

		now = self.clock()
		record = self.store.create_credential(
			user_id=user_id,
			credential_id=verified.credential_id,
			public_key=verified.public_key,
			counter=verified.sign_count,
			platform=platform,
			aaguid=verified.aaguid,
			metadata=self._build_metadata(metadata, platform, preferences, verified, now),
			now=now,
		)

		logger.info(
			f"Passkey registered for user {user_id}: credential {record.credential_id} "
			f"on {platform.value}"
		)
		return RegistrationResult(rp_name=self.rp_name, rp_id=self.rp_id, credential=record)

	def _build_metadata(
		self,
		metadata: dict[str, Any] | None,
		platform: Platform,
		preferences: RegistrationPreferences,
		verified: VerifiedAttestation,
		now: datetime,
	) -> dict[str, Any]:
		selection = preferences.authenticator_selection
		return {
			**(metadata or {}),
			"platform": platform.value,
			"deviceType": verified.device_type,
			"backedUp": verified.backed_up,
			"registeredAt": now.isoformat(),
			"registrationPreferences": {
				"attestation": preferences.attestation or "none",
				"userVerification": preferences.user_verification,
				"authenticatorAttachment": selection.authenticator_attachment if selection else None,
				"residentKey": selection.resident_key if selection else None,
				"requireResidentKey": selection.require_resident_key if selection else None,
			},
			"verificationSettings": {
				"requireUserVerification": preferences.require_user_verification,
				"expectedOrigins": self.origins,
				"rpId": self.rp_id,
			},
		}
