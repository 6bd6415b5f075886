# (c) Copyright Datacraft, 2026
"""Passkey ceremony and credential lifecycle services."""
from .challenge import ChallengeManager
from .rate_limit import RateLimiter, RateLimitRule, Operation
from .registration import RegistrationHandler
from .authentication import AuthenticationHandler
from .credentials import CredentialService
from .cleanup import CleanupScheduler

__all__ = [
	"ChallengeManager",
	"RateLimiter",
	"RateLimitRule",
	"Operation",
	"RegistrationHandler",
	"AuthenticationHandler",
	"CredentialService",
	"CleanupScheduler",
]
