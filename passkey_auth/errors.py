# (c) Copyright Datacraft, 2026
"""Passkey error taxonomy.

Every error carries a stable machine-readable ``code`` and the HTTP status
the API layer answers with.
"""


class PasskeyError(Exception):
	"""Base passkey error."""
	code = "passkey_error"
	status_code = 400
	message = "Passkey operation failed"

	def __init__(self, message: str | None = None):
		super().__init__(message or self.message)
		self.message = message or self.message

	def to_dict(self) -> dict[str, str]:
		return {"code": self.code, "message": self.message}


class ChallengeNotFound(PasskeyError):
	"""No open challenge matches the submitted ceremony."""
	code = "challenge_not_found"
	message = "No matching challenge found"


class ChallengeExpired(PasskeyError):
	"""The matching challenge is past its expiry."""
	code = "challenge_expired"
	message = "Challenge has expired. Please request a new one."


class OriginMismatch(PasskeyError):
	"""Client data origin is not an allowed origin."""
	code = "origin_mismatch"
	message = "Client data origin is not allowed"


class AttestationInvalid(PasskeyError):
	"""Registration response failed verification."""
	code = "attestation_invalid"
	message = "Attestation verification failed"


class AssertionInvalid(PasskeyError):
	"""Authentication response failed verification."""
	code = "assertion_invalid"
	status_code = 401
	message = "Assertion verification failed"


class CredentialIdConflict(PasskeyError):
	"""Credential id is already registered."""
	code = "credential_id_conflict"
	status_code = 409
	message = "Credential already registered"


class CredentialNotFound(PasskeyError):
	code = "credential_not_found"
	status_code = 404
	message = "Credential not found"


class CredentialRevoked(PasskeyError):
	code = "credential_revoked"
	status_code = 401
	message = "Credential has been revoked"


class PossibleCloneDetected(PasskeyError):
	"""Signature counter did not advance."""
	code = "possible_clone_detected"
	status_code = 401
	message = "Signature counter regression, possible cloned authenticator"


class RateLimited(PasskeyError):
	code = "rate_limited"
	status_code = 429
	message = "Too many attempts, try again later"


class UserNotFound(PasskeyError):
	code = "user_not_found"
	message = "User not found"


class UnauthorizedAccess(PasskeyError):
	code = "unauthorized_access"
	status_code = 403
	message = "You can only view your own passkeys"


class NotAuthenticated(PasskeyError):
	code = "not_authenticated"
	status_code = 401
	message = "Not authenticated"


class InvalidOrigin(PasskeyError):
	"""Request Origin header is not trusted."""
	code = "invalid_origin"
	status_code = 401
	message = "Invalid origin"
