# (c) Copyright Datacraft, 2026
"""Passkey storage contract and its SQLAlchemy implementation.

Handlers never assemble queries themselves. Every operation that needs
more than read-then-write atomicity is a single conditional statement
here: challenge consumption deletes by id and reports whether *this*
caller removed the row, counter updates compare-and-swap on the stored
counter, and revocation only matches active rows.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from passkey_auth.db.orm import (
	PasskeyChallenge, PasskeyCredential, RateLimitCounter, User,
)
from passkey_auth.errors import CredentialIdConflict
from passkey_auth.models import (
	ChallengeRecord, ChallengeType, CredentialRecord, CredentialStatus,
	Platform, UserRecord,
)

logger = logging.getLogger(__name__)


class PasskeyStore(ABC):
	"""Repository for users, credentials, challenges and rate counters."""

	@abstractmethod
	def get_user(self, user_id: str) -> UserRecord | None:
		...

	# Challenges

	@abstractmethod
	def create_challenge(
		self,
		user_id: str,
		challenge_type: ChallengeType,
		challenge: str,
		created_at: datetime,
		expires_at: datetime,
		registration_options: dict[str, Any] | None = None,
	) -> ChallengeRecord:
		...

	@abstractmethod
	def find_open_challenge(
		self,
		user_id: str,
		challenge_type: ChallengeType,
		challenge: str,
	) -> ChallengeRecord | None:
		"""Find a not-yet-consumed challenge, expired or not."""

	@abstractmethod
	def find_challenge(
		self, challenge_type: ChallengeType, challenge: str
	) -> ChallengeRecord | None:
		"""Find a not-yet-consumed challenge by its value, whoever owns it."""

	@abstractmethod
	def delete_challenge(self, challenge_id: str) -> bool:
		"""Delete a challenge. True only for the caller that removed it."""

	@abstractmethod
	def purge_expired_challenges(self, before: datetime) -> int:
		...

	# Credentials

	@abstractmethod
	def get_credential(self, credential_id: str) -> CredentialRecord | None:
		"""Look up by authenticator credential id, any status."""

	@abstractmethod
	def find_active_credential(
		self, user_id: str, credential_id: str
	) -> CredentialRecord | None:
		...

	@abstractmethod
	def create_credential(
		self,
		*,
		user_id: str,
		credential_id: str,
		public_key: str,
		counter: int,
		platform: Platform,
		aaguid: str | None,
		metadata: dict[str, Any],
		now: datetime,
	) -> CredentialRecord:
		"""Insert an active credential. Raises CredentialIdConflict."""

	@abstractmethod
	def advance_counter(
		self,
		record_id: str,
		expected_counter: int,
		new_counter: int,
		last_used: datetime,
		metadata: dict[str, Any],
	) -> bool:
		"""Compare-and-swap the counter of an active credential."""

	@abstractmethod
	def revoke_credential(
		self,
		record_id: str,
		reason: str,
		now: datetime,
		last_used_before: datetime | None = None,
	) -> bool:
		"""Transition an active credential to revoked."""

	@abstractmethod
	def list_active_credentials(
		self, user_id: str, limit: int, offset: int
	) -> list[CredentialRecord]:
		...

	@abstractmethod
	def find_stale_credential_ids(self, cutoff: datetime) -> list[str]:
		...

	# Rate limiting

	@abstractmethod
	def increment_rate_counter(self, key: str, window_start: datetime) -> int:
		"""Atomically add one attempt and return the new window count."""

	@abstractmethod
	def purge_rate_counters(self, before: datetime) -> int:
		...


class SqlAlchemyPasskeyStore(PasskeyStore):
	"""PasskeyStore backed by a SQLAlchemy session."""

	def __init__(self, db: Session):
		self.db = db

	@contextmanager
	def _transaction(self) -> Iterator[None]:
		try:
			yield
			self.db.commit()
			# Bulk statements bypass the identity map, so reads must reload
			self.db.expire_all()
		except Exception:
			self.db.rollback()
			raise

	def get_user(self, user_id: str) -> UserRecord | None:
		user = self.db.get(User, user_id)
		return UserRecord.model_validate(user) if user else None

	def create_challenge(
		self,
		user_id: str,
		challenge_type: ChallengeType,
		challenge: str,
		created_at: datetime,
		expires_at: datetime,
		registration_options: dict[str, Any] | None = None,
	) -> ChallengeRecord:
		db_challenge = PasskeyChallenge(
			user_id=user_id,
			challenge=challenge,
			type=challenge_type.value,
			created_at=created_at,
			expires_at=expires_at,
			registration_options=registration_options,
		)
		with self._transaction():
			self.db.add(db_challenge)
		return ChallengeRecord.model_validate(db_challenge)

	def find_open_challenge(
		self,
		user_id: str,
		challenge_type: ChallengeType,
		challenge: str,
	) -> ChallengeRecord | None:
		db_challenge = self.db.scalar(
			select(PasskeyChallenge).where(
				PasskeyChallenge.user_id == user_id,
				PasskeyChallenge.type == challenge_type.value,
				PasskeyChallenge.challenge == challenge,
			)
		)
		return ChallengeRecord.model_validate(db_challenge) if db_challenge else None

	def find_challenge(
		self, challenge_type: ChallengeType, challenge: str
	) -> ChallengeRecord | None:
		db_challenge = self.db.scalar(
			select(PasskeyChallenge).where(
				PasskeyChallenge.type == challenge_type.value,
				PasskeyChallenge.challenge == challenge,
			)
		)
		return ChallengeRecord.model_validate(db_challenge) if db_challenge else None

	def delete_challenge(self, challenge_id: str) -> bool:
		with self._transaction():
			result = self.db.execute(
				delete(PasskeyChallenge)
				.where(PasskeyChallenge.id == challenge_id)
				.execution_options(synchronize_session=False)
			)
		return result.rowcount == 1

	def purge_expired_challenges(self, before: datetime) -> int:
		with self._transaction():
			result = self.db.execute(
				delete(PasskeyChallenge)
				.where(PasskeyChallenge.expires_at < before)
				.execution_options(synchronize_session=False)
			)
		return result.rowcount

	def get_credential(self, credential_id: str) -> CredentialRecord | None:
		credential = self.db.scalar(
			select(PasskeyCredential).where(
				PasskeyCredential.credential_id == credential_id
			)
		)
		return CredentialRecord.model_validate(credential) if credential else None

	def find_active_credential(
		self, user_id: str, credential_id: str
	) -> CredentialRecord | None:
		credential = self.db.scalar(
			select(PasskeyCredential).where(
				PasskeyCredential.user_id == user_id,
				PasskeyCredential.credential_id == credential_id,
				PasskeyCredential.status == CredentialStatus.ACTIVE.value,
			)
		)
		return CredentialRecord.model_validate(credential) if credential else None

	def create_credential(
		self,
		*,
		user_id: str,
		credential_id: str,
		public_key: str,
		counter: int,
		platform: Platform,
		aaguid: str | None,
		metadata: dict[str, Any],
		now: datetime,
	) -> CredentialRecord:
		credential = PasskeyCredential(
			user_id=user_id,
			credential_id=credential_id,
			public_key=public_key,
			counter=counter,
			platform=platform.value,
			aaguid=aaguid,
			status=CredentialStatus.ACTIVE.value,
			last_used=now,
			created_at=now,
			updated_at=now,
			metadata_=metadata,
		)
		try:
			with self._transaction():
				self.db.add(credential)
		except IntegrityError:
			logger.warning(f"Credential id already stored: {credential_id}")
			raise CredentialIdConflict()
		return CredentialRecord.model_validate(credential)

	def advance_counter(
		self,
		record_id: str,
		expected_counter: int,
		new_counter: int,
		last_used: datetime,
		metadata: dict[str, Any],
	) -> bool:
		with self._transaction():
			result = self.db.execute(
				update(PasskeyCredential)
				.where(
					PasskeyCredential.id == record_id,
					PasskeyCredential.counter == expected_counter,
					PasskeyCredential.status == CredentialStatus.ACTIVE.value,
				)
				.values({
					PasskeyCredential.counter: new_counter,
					PasskeyCredential.last_used: last_used,
					PasskeyCredential.updated_at: last_used,
					PasskeyCredential.metadata_: metadata,
				})
				.execution_options(synchronize_session=False)
			)
		return result.rowcount == 1

	def revoke_credential(
		self,
		record_id: str,
		reason: str,
		now: datetime,
		last_used_before: datetime | None = None,
	) -> bool:
		stmt = update(PasskeyCredential).where(
			PasskeyCredential.id == record_id,
			PasskeyCredential.status == CredentialStatus.ACTIVE.value,
		)
		if last_used_before is not None:
			stmt = stmt.where(PasskeyCredential.last_used < last_used_before)
		with self._transaction():
			result = self.db.execute(
				stmt.values({
					PasskeyCredential.status: CredentialStatus.REVOKED.value,
					PasskeyCredential.revoked_at: now,
					PasskeyCredential.revoked_reason: reason,
					PasskeyCredential.updated_at: now,
				}).execution_options(synchronize_session=False)
			)
		return result.rowcount == 1

	def list_active_credentials(
		self, user_id: str, limit: int, offset: int
	) -> list[CredentialRecord]:
		stmt = (
			select(PasskeyCredential)
			.where(
				PasskeyCredential.user_id == user_id,
				PasskeyCredential.status == CredentialStatus.ACTIVE.value,
			)
			.order_by(PasskeyCredential.last_used.desc(), PasskeyCredential.id)
			.limit(limit)
			.offset(offset)
		)
		return [CredentialRecord.model_validate(c) for c in self.db.scalars(stmt)]

	def find_stale_credential_ids(self, cutoff: datetime) -> list[str]:
		stmt = select(PasskeyCredential.id).where(
			PasskeyCredential.status == CredentialStatus.ACTIVE.value,
			PasskeyCredential.last_used < cutoff,
		)
		return list(self.db.scalars(stmt))

	def increment_rate_counter(self, key: str, window_start: datetime) -> int:
		try:
			return self._increment(key, window_start)
		except IntegrityError:
			self.db.rollback()
			# Another request opened the window row first
			return self._increment(key, window_start)

	def _increment(self, key: str, window_start: datetime) -> int:
		with self._transaction():
			count = self.db.execute(
				update(RateLimitCounter)
				.where(
					RateLimitCounter.key == key,
					RateLimitCounter.window_start == window_start,
				)
				.values({RateLimitCounter.count: RateLimitCounter.count + 1})
				.returning(RateLimitCounter.count)
				.execution_options(synchronize_session=False)
			).scalar_one_or_none()
			if count is None:
				self.db.add(RateLimitCounter(key=key, window_start=window_start, count=1))
				self.db.flush()
				count = 1
		return count

	def purge_rate_counters(self, before: datetime) -> int:
		with self._transaction():
			result = self.db.execute(
				delete(RateLimitCounter)
				.where(RateLimitCounter.window_start < before)
				.execution_options(synchronize_session=False)
			)
		return result.rowcount


@contextmanager
def store_session(session_factory: Callable[[], Session]) -> Iterator[SqlAlchemyPasskeyStore]:
	"""Open a store on a fresh session, closing it afterwards."""
	db = session_factory()
	try:
		yield SqlAlchemyPasskeyStore(db)
	finally:
		db.close()
