# (c) Copyright Datacraft, 2026
"""Listing and revocation of a user's passkeys."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from passkey_auth.db.orm import utc_now
from passkey_auth.errors import CredentialNotFound
from passkey_auth.models import CredentialRecord, RevocationReason
from passkey_auth.store import PasskeyStore

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class CredentialPage:
	passkeys: list[CredentialRecord]
	next_offset: int | None = None


class CredentialService:
	"""Reads and revokes credential records for their owner."""

	def __init__(self, store: PasskeyStore, clock: Callable[[], datetime] = utc_now):
		self.store = store
		self.clock = clock

	async def list_credentials(
		self,
		user_id: str,
		limit: int = DEFAULT_PAGE_SIZE,
		offset: int = 0,
	) -> CredentialPage:
		"""List active passkeys, most recently used first."""
		# One extra row tells whether another page exists
		rows = self.store.list_active_credentials(user_id, limit + 1, offset)
		has_more = len(rows) > limit
		logger.debug(f"Listing {min(len(rows), limit)} passkeys for user {user_id}")
		return CredentialPage(
			passkeys=rows[:limit],
			next_offset=offset + limit if has_more else None,
		)

	async def revoke(
		self,
		user_id: str,
		credential_id: str,
		reason: str | None = None,
	) -> CredentialRecord:
		"""Revoke an active passkey.

		Raises:
			CredentialNotFound: no active credential matches, including one
				that is already revoked
		"""
		reason = reason or RevocationReason.USER_INITIATED
		record = self.store.find_active_credential(user_id, credential_id)
		if record is None:
			logger.warning(f"Revoke failed: no active credential {credential_id} for user {user_id}")
			raise CredentialNotFound()

		if not self.store.revoke_credential(record.id, reason, self.clock()):
			logger.warning(f"Revoke failed: credential {credential_id} revoked concurrently")
			raise CredentialNotFound()

		logger.info(f"Passkey {credential_id} revoked for user {user_id} ({reason})")
		return record
