# (c) Copyright Datacraft, 2026
"""Single-use WebAuthn challenge issuance and consumption."""
import logging
import secrets
from datetime import datetime, timedelta
from typing import Any, Callable

from webauthn.helpers import bytes_to_base64url

from passkey_auth.db.orm import utc_now
from passkey_auth.errors import ChallengeExpired, ChallengeNotFound
from passkey_auth.models import ChallengeRecord, ChallengeType
from passkey_auth.store import PasskeyStore

logger = logging.getLogger(__name__)

CHALLENGE_BYTES = 32


class ChallengeManager:
	"""Issues and atomically consumes ceremony challenges."""

	def __init__(
		self,
		store: PasskeyStore,
		ttl_seconds: int = 300,
		clock: Callable[[], datetime] = utc_now,
	):
		self.store = store
		self.ttl = timedelta(seconds=ttl_seconds)
		self.clock = clock

	async def issue(
		self,
		user_id: str,
		challenge_type: ChallengeType,
		registration_options: dict[str, Any] | None = None,
	) -> ChallengeRecord:
		"""Generate, persist and return a fresh challenge."""
		now = self.clock()

		# Keep recently expired rows so late submissions still report expiry
		purged = self.store.purge_expired_challenges(now - self.ttl)
		if purged:
			logger.debug(f"Purged {purged} expired challenges")

		challenge = bytes_to_base64url(secrets.token_bytes(CHALLENGE_BYTES))
		record = self.store.create_challenge(
			user_id=user_id,
			challenge_type=challenge_type,
			challenge=challenge,
			created_at=now,
			expires_at=now + self.ttl,
			registration_options=registration_options
			if challenge_type == ChallengeType.REGISTRATION else None,
		)
		logger.debug(f"Issued {challenge_type.value} challenge for user {user_id}")
		return record

	async def consume(
		self,
		user_id: str | None,
		challenge_type: ChallengeType,
		challenge: str,
	) -> ChallengeRecord:
		"""Claim a challenge. Succeeds at most once per challenge.

		Without a user_id the challenge is matched by value alone and the
		caller must check its owner.

		Raises:
			ChallengeNotFound: no such open challenge, or another request
				claimed it first
			ChallengeExpired: the challenge existed but is past expiry
		"""
		if user_id is None:
			record = self.store.find_challenge(challenge_type, challenge)
		else:
			record = self.store.find_open_challenge(user_id, challenge_type, challenge)
		if record is None:
			logger.warning(f"No {challenge_type.value} challenge found for user {user_id}")
			raise ChallengeNotFound()

		if not self.store.delete_challenge(record.id):
			logger.warning(f"Challenge {record.id} was consumed concurrently")
			raise ChallengeNotFound()

		if record.is_expired(self.clock()):
			logger.warning(f"Challenge {record.id} for user {user_id} has expired")
			raise ChallengeExpired()

		return record
