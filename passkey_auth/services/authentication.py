# (c) Copyright Datacraft, 2026
"""Passkey authentication ceremony with signature counter clone detection."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from webauthn.helpers.structs import ClientDataType

from passkey_auth.db.orm import utc_now
from passkey_auth.errors import (
	AssertionInvalid, CredentialNotFound, CredentialRevoked, OriginMismatch,
	PossibleCloneDetected, UserNotFound,
)
from passkey_auth.models import (
	DISCOVERY_USER_ID, ChallengeType, CredentialRecord, UserRecord,
)
from passkey_auth.services.challenge import ChallengeManager
from passkey_auth.session import SessionIssuer
from passkey_auth.store import PasskeyStore
from passkey_auth.webauthn import WebAuthnVerifier, read_client_data

logger = logging.getLogger(__name__)


@dataclass
class AuthenticationResult:
	token: str
	user: UserRecord
	credential_id: str
	counter: int


def counter_advanced(stored: int, reported: int, allow_zero_counter: bool = True) -> bool:
	"""Whether a reported signature counter is acceptable.

	Authenticators that do not implement a counter report zero on every
	assertion. When allow_zero_counter is set, a zero stored counter paired
	with a zero reported counter is accepted as "counter not supported".
	Any other non-increasing counter is a regression.
	"""
	if allow_zero_counter and stored == 0 and reported == 0:
		return True
	return reported > stored


class AuthenticationHandler:
	"""Verifies assertions, advances counters and issues sessions."""

	def __init__(
		self,
		store: PasskeyStore,
		challenges: ChallengeManager,
		verifier: WebAuthnVerifier,
		sessions: SessionIssuer,
		origins: list[str],
		allow_zero_counter: bool = True,
		clock: Callable[[], datetime] = utc_now,
	):
		self.store = store
		self.challenges = challenges
		self.verifier = verifier
		self.sessions = sessions
		self.origins = list(origins)
		self.allow_zero_counter = allow_zero_counter
		self.clock = clock

	async def authenticate(
		self,
		credential: dict[str, Any],
		metadata: dict[str, Any] | None = None,
		user_id: str | None = None,
	) -> AuthenticationResult:
		"""Complete WebAuthn authentication.

		Args:
			credential: Response from navigator.credentials.get()
			metadata: Client-reported device details merged into the record
			user_id: Expected owner. When absent, the owner recorded on the
				challenge applies unless it is the discovery sentinel

		Raises:
			ChallengeNotFound, ChallengeExpired, CredentialNotFound,
			CredentialRevoked, OriginMismatch, AssertionInvalid,
			PossibleCloneDetected, UserNotFound
		"""
		credential_id = credential.get("id", "")
		logger.debug(f"Authentication attempt with credential {credential_id}")

		client_data = read_client_data(
			credential, AssertionInvalid, expected_type=ClientDataType.WEBAUTHN_GET
		)
		challenge = await self.challenges.consume(
			user_id, ChallengeType.AUTHENTICATION, client_data.challenge
		)

		# A challenge issued for a known user binds the credential to that user
		owner = user_id
		if owner is None and challenge.user_id != DISCOVERY_USER_ID:
			owner = challenge.user_id
		record = self._lookup(credential_id, owner)

		if client_data.origin not in self.origins:
			logger.warning(
				f"Authentication failed: origin {client_data.origin} not allowed "
				f"for credential {credential_id}"
			)
			raise OriginMismatch()

		verified = self.verifier.verify_assertion(
			credential,
			expected_challenge=challenge.challenge,
			public_key=record.public_key,
		)

		if not counter_advanced(record.counter, verified.new_sign_count, self.allow_zero_counter):
			logger.warning(
				f"Possible cloned authenticator: credential {record.credential_id} of user "
				f"{record.user_id} reported counter {verified.new_sign_count}, "
				f"stored {record.counter}"
			)
			raise PossibleCloneDetected()

		user = self.store.get_user(record.user_id)
		if user is None:
			logger.error(f"Authentication failed: owner {record.user_id} of credential {credential_id} not found")
			raise UserNotFound()

		now = self.clock()
		merged = {
			**record.metadata,
			**(metadata or {}),
			"deviceType": verified.device_type or record.metadata.get("deviceType"),
			"lastAuthenticationAt": now.isoformat(),
			"backedUp": verified.backed_up,
			"userVerified": verified.user_verified,
		}
		if not self.store.advance_counter(
			record.id, record.counter, verified.new_sign_count, now, merged
		):
			self._raise_lost_update(record)

		session = self.sessions.issue(user)
		logger.info(f"Passkey authentication successful for user {user.id}")
		return AuthenticationResult(
			token=session.token,
			user=user,
			credential_id=record.credential_id,
			counter=verified.new_sign_count,
		)

	def _lookup(self, credential_id: str, user_id: str | None) -> CredentialRecord:
		record = self.store.get_credential(credential_id)
		if record is None or (user_id and record.user_id != user_id):
			logger.warning(f"Authentication failed: credential {credential_id} not found")
			raise CredentialNotFound()
		if not record.is_active:
			logger.warning(f"Authentication failed: credential {credential_id} is revoked")
			raise CredentialRevoked()
		return record

	def _raise_lost_update(self, record: CredentialRecord) -> None:
		"""Explain why the compare-and-swap on the counter matched nothing."""
		current = self.store.get_credential(record.credential_id)
		if current is None or not current.is_active:
			logger.warning(f"Credential {record.credential_id} revoked during authentication")
			raise CredentialRevoked()
		logger.warning(
			f"Counter of credential {record.credential_id} moved from {record.counter} "
			f"to {current.counter} during authentication"
		)
		raise PossibleCloneDetected()
