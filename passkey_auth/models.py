# (c) Copyright Datacraft, 2026
"""Domain records exchanged between the ceremony handlers and the store."""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# User id recorded on authentication challenges issued without a known user
DISCOVERY_USER_ID = "auto-discovery"


class Platform(str, Enum):
	WEB = "web"
	IOS = "ios"
	ANDROID = "android"
	OTHER = "other"


class CredentialStatus(str, Enum):
	ACTIVE = "active"
	REVOKED = "revoked"


class ChallengeType(str, Enum):
	REGISTRATION = "registration"
	AUTHENTICATION = "authentication"


class RevocationReason:
	USER_INITIATED = "user_initiated"
	INACTIVE = "inactive"


class UserRecord(BaseModel):
	id: str
	email: str
	name: str | None = None
	email_verified: bool = False

	model_config = ConfigDict(from_attributes=True)


class CredentialRecord(BaseModel):
	"""Stored passkey credential."""
	id: str
	user_id: str
	credential_id: str  # Base64URL encoded
	public_key: str  # Base64URL encoded
	counter: int = 0
	platform: Platform
	aaguid: str | None = None
	status: CredentialStatus = CredentialStatus.ACTIVE
	last_used: datetime
	created_at: datetime
	updated_at: datetime
	revoked_at: datetime | None = None
	revoked_reason: str | None = None
	metadata: dict[str, Any] = Field(
		default_factory=dict,
		validation_alias=AliasChoices("metadata_", "metadata"),
	)

	model_config = ConfigDict(from_attributes=True)

	@property
	def is_active(self) -> bool:
		return self.status == CredentialStatus.ACTIVE


class ChallengeRecord(BaseModel):
	"""Stored challenge for one in-flight ceremony."""
	id: str
	user_id: str
	challenge: str  # Base64URL encoded
	type: ChallengeType
	created_at: datetime
	expires_at: datetime
	registration_options: dict[str, Any] | None = None

	model_config = ConfigDict(from_attributes=True)

	def is_expired(self, now: datetime) -> bool:
		return self.expires_at <= now
