# (c) Copyright Datacraft, 2026
"""ORM tables for users, passkey credentials, challenges and rate counters."""
from datetime import datetime, timezone

from sqlalchemy import (
	String, Text, Integer, Boolean, JSON, DateTime, Index, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator
from uuid_extensions import uuid7str

from .base import Base


def utc_now() -> datetime:
	return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
	"""Timezone-aware datetime stored as UTC.

	SQLite drops tzinfo on the way in, so values read back are re-tagged.
	"""
	impl = DateTime(timezone=True)
	cache_ok = True

	def process_bind_param(self, value, dialect):
		if value is None:
			return None
		if value.tzinfo is None:
			value = value.replace(tzinfo=timezone.utc)
		return value.astimezone(timezone.utc)

	def process_result_value(self, value, dialect):
		if value is None:
			return None
		if value.tzinfo is None:
			return value.replace(tzinfo=timezone.utc)
		return value.astimezone(timezone.utc)


class User(Base):
	"""Principal that owns passkeys. Managed by the host application."""

	__tablename__ = "users"

	id: Mapped[str] = mapped_column(String(64), primary_key=True, default=uuid7str)
	email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
	name: Mapped[str | None] = mapped_column(String(255), nullable=True)
	email_verified: Mapped[bool] = mapped_column(Boolean, default=False)
	created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utc_now)


class PasskeyCredential(Base):
	"""One registered authenticator per user per platform."""

	__tablename__ = "passkey_credentials"

	id: Mapped[str] = mapped_column(String(64), primary_key=True, default=uuid7str)
	user_id: Mapped[str] = mapped_column(String(64), nullable=False)
	# Base64URL encoded, issued by the authenticator
	credential_id: Mapped[str] = mapped_column(String(1024), nullable=False)
	# Base64URL encoded COSE public key
	public_key: Mapped[str] = mapped_column(Text, nullable=False)
	counter: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
	platform: Mapped[str] = mapped_column(String(20), nullable=False)
	aaguid: Mapped[str | None] = mapped_column(String(64), nullable=True)
	status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
	last_used: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
	created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
	updated_at: Mapped[datetime] = mapped_column(
		UTCDateTime, nullable=False, default=utc_now, onupdate=utc_now
	)
	revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
	revoked_reason: Mapped[str | None] = mapped_column(String(100), nullable=True)
	metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

	__table_args__ = (
		UniqueConstraint("credential_id", name="uq_passkey_credential_id"),
		Index("idx_passkey_user_status", "user_id", "status"),
		Index("idx_passkey_last_used", "last_used"),
	)

	def __repr__(self):
		return (
			f"<PasskeyCredential(id={self.id}, user_id={self.user_id}, "
			f"status={self.status}, counter={self.counter})>"
		)


class PasskeyChallenge(Base):
	"""One in-flight ceremony."""

	__tablename__ = "passkey_challenges"

	id: Mapped[str] = mapped_column(String(64), primary_key=True, default=uuid7str)
	user_id: Mapped[str] = mapped_column(String(64), nullable=False)
	challenge: Mapped[str] = mapped_column(String(128), nullable=False)
	type: Mapped[str] = mapped_column(String(20), nullable=False)
	created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utc_now)
	expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
	registration_options: Mapped[dict | None] = mapped_column(JSON, nullable=True)

	__table_args__ = (
		UniqueConstraint("challenge", name="uq_passkey_challenge_value"),
		Index("idx_passkey_challenge_user_type", "user_id", "type"),
		Index("idx_passkey_challenge_expires", "expires_at"),
	)


class RateLimitCounter(Base):
	"""Attempt counter for one key in one fixed window."""

	__tablename__ = "passkey_rate_limits"

	id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
	key: Mapped[str] = mapped_column(String(255), nullable=False)
	window_start: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
	count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

	__table_args__ = (
		UniqueConstraint("key", "window_start", name="uq_rate_limit_window"),
	)
