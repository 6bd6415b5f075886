# (c) Copyright Datacraft, 2026
"""Session issuance for verified identities."""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

import jwt

from passkey_auth.config import Settings
from passkey_auth.models import UserRecord


@dataclass
class IssuedSession:
	token: str
	user: UserRecord
	expires_at: datetime


class SessionIssuer(Protocol):
	"""Exchanges a verified identity for an application session token."""

	def issue(self, user: UserRecord) -> IssuedSession:
		...


class JWTSessionIssuer:
	"""Issues signed JWT access tokens."""

	def __init__(self, settings: Settings):
		self.secret_key = settings.secret_key
		self.algorithm = settings.token_algorithm.value
		self.expire_minutes = settings.token_expire_minutes

	def issue(self, user: UserRecord) -> IssuedSession:
		expires_at = datetime.now(timezone.utc) + timedelta(minutes=self.expire_minutes)
		payload = {
			"sub": user.id,
			"preferred_username": user.name or user.email,
			"email": user.email,
			"scopes": [],
			"exp": expires_at,
		}
		token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
		return IssuedSession(token=token, user=user, expires_at=expires_at)
