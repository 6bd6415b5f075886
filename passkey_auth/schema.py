# (c) Copyright Datacraft, 2026
# Passkey HTTP contracts
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from passkey_auth.models import (
    ChallengeType, CredentialRecord, CredentialStatus, Platform, UserRecord,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RequestModel(CamelModel):
    """Top-level request body. Unknown fields are rejected."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )


class AuthenticatorSelection(CamelModel):
    authenticator_attachment: Literal["platform", "cross-platform"] | None = None
    resident_key: Literal["required", "preferred", "discouraged"] | None = None
    require_resident_key: bool | None = None
    user_verification: Literal["required", "preferred", "discouraged"] | None = None


class RegistrationPreferences(CamelModel):
    """Attestation and authenticator-selection parameters the client requested."""
    attestation: Literal["none", "indirect", "direct", "enterprise"] | None = None
    authenticator_selection: AuthenticatorSelection | None = None
    timeout: int | None = None

    @property
    def user_verification(self) -> str:
        selection = self.authenticator_selection
        return (selection.user_verification if selection else None) or "preferred"

    @property
    def require_user_verification(self) -> bool:
        return self.user_verification == "required"


class ChallengeRequest(RequestModel):
    """Request a challenge for a registration or authentication ceremony."""
    user_id: str | None = Field(default=None, min_length=1)
    type: ChallengeType
    registration_options: RegistrationPreferences | None = None

    @model_validator(mode="after")
    def require_user_for_registration(self) -> "ChallengeRequest":
        if self.type == ChallengeType.REGISTRATION and not self.user_id:
            raise ValueError("userId is required for registration challenges")
        return self


class ChallengeResponse(CamelModel):
    challenge: str


class AttestationResponse(CamelModel):
    client_data_json: str = Field(alias="clientDataJSON")
    attestation_object: str
    transports: list[str] | None = None


class RegistrationCredential(CamelModel):
    """Serialized result of navigator.credentials.create()."""
    id: str = Field(min_length=1)
    raw_id: str
    type: Literal["public-key"] = "public-key"
    response: AttestationResponse
    authenticator_attachment: str | None = None
    client_extension_results: dict[str, Any] = Field(default_factory=dict)


class AssertionResponse(CamelModel):
    client_data_json: str = Field(alias="clientDataJSON")
    authenticator_data: str
    signature: str
    user_handle: str | None = None


class AuthenticationCredential(CamelModel):
    """Serialized result of navigator.credentials.get()."""
    id: str = Field(min_length=1)
    raw_id: str
    type: Literal["public-key"] = "public-key"
    response: AssertionResponse
    authenticator_attachment: str | None = None
    client_extension_results: dict[str, Any] = Field(default_factory=dict)


class PasskeyMetadata(CamelModel):
    """Client-reported device details."""
    device_name: str | None = None
    device_model: str | None = None
    app_version: str | None = None
    os_version: str | None = None
    manufacturer: str | None = None
    brand: str | None = None
    biometric_type: str | None = None
    last_location: str | None = None


class RegisterRequest(RequestModel):
    user_id: str = Field(min_length=1)
    credential: RegistrationCredential
    platform: Platform
    metadata: PasskeyMetadata | None = None


class RegisterResponse(CamelModel):
    success: bool = True
    rp_name: str
    rp_id: str


class AuthenticateRequest(RequestModel):
    credential: AuthenticationCredential
    metadata: PasskeyMetadata | None = None
    # Absent for discoverable-credential sign in
    user_id: str | None = Field(default=None, min_length=1)


class SessionUser(CamelModel):
    id: str
    email: str
    name: str | None = None
    email_verified: bool = False

    @classmethod
    def from_record(cls, user: UserRecord) -> "SessionUser":
        return cls.model_validate(user.model_dump())


class AuthenticateResponse(CamelModel):
    token: str
    user: SessionUser


class PasskeyInfo(CamelModel):
    """Credential record as listed to its owner. The public key is never exposed."""
    id: str
    user_id: str
    credential_id: str
    platform: Platform
    counter: int
    aaguid: str | None = None
    status: CredentialStatus
    last_used: datetime
    created_at: datetime
    updated_at: datetime
    revoked_at: datetime | None = None
    revoked_reason: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: CredentialRecord) -> "PasskeyInfo":
        return cls.model_validate(record.model_dump(exclude={"public_key"}))


class PasskeyListResponse(CamelModel):
    passkeys: list[PasskeyInfo]
    next_offset: int | None = None


class RevokeRequest(RequestModel):
    user_id: str = Field(min_length=1)
    credential_id: str = Field(min_length=1)
    reason: str | None = Field(default=None, max_length=100)


class RevokeResponse(CamelModel):
    success: bool


class ErrorResponse(CamelModel):
    code: str
    message: str
