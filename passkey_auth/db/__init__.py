# (c) Copyright Datacraft, 2026
"""Database module for the passkey service."""
from .orm import (
	User, PasskeyCredential, PasskeyChallenge, RateLimitCounter, utc_now,
)
from .base import Base

__all__ = [
	'Base',
	'User',
	'PasskeyCredential',
	'PasskeyChallenge',
	'RateLimitCounter',
	'utc_now',
]
