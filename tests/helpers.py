"""Builders for WebAuthn client payloads and test doubles."""
import json
from datetime import datetime, timedelta, timezone

from webauthn.helpers import bytes_to_base64url

from passkey_auth.webauthn import (
    VerifiedAssertion,
    VerifiedAttestation,
    WebAuthnVerifier,
)

RP_ID = "example.com"
RP_NAME = "Example"
ORIGIN = "https://example.com"
PUBLIC_KEY = bytes_to_base64url(b"cose-public-key")


class FakeClock:
    """Controllable clock for expiry, window and inactivity scenarios."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeVerifier(WebAuthnVerifier):
    """Stands in for real authenticators.

    Reports ``sign_count`` for every ceremony and raises ``error`` when set.
    """

    def __init__(self):
        super().__init__(rp_id=RP_ID, origins=[ORIGIN])
        self.sign_count = 0
        self.error: Exception | None = None
        self.calls: list[dict] = []

    def verify_attestation(self, credential, expected_challenge, require_user_verification=False):
        self.calls.append({
            "kind": "attestation",
            "challenge": expected_challenge,
            "require_user_verification": require_user_verification,
        })
        if self.error:
            raise self.error
        return VerifiedAttestation(
            credential_id=credential["id"],
            public_key=PUBLIC_KEY,
            sign_count=self.sign_count,
            aaguid="adce0002-35bc-c60a-648b-0b25f1f05503",
            device_type="multi_device",
            backed_up=True,
        )

    def verify_assertion(self, credential, expected_challenge, public_key, require_user_verification=False):
        self.calls.append({
            "kind": "assertion",
            "challenge": expected_challenge,
            "public_key": public_key,
        })
        if self.error:
            raise self.error
        return VerifiedAssertion(
            credential_id=credential["id"],
            new_sign_count=self.sign_count,
            device_type="multi_device",
            backed_up=True,
            user_verified=True,
        )


def client_data_json(challenge: str, origin: str = ORIGIN, type_: str = "webauthn.create") -> str:
    data = {"type": type_, "challenge": challenge, "origin": origin, "crossOrigin": False}
    return bytes_to_base64url(json.dumps(data).encode())


def attestation_credential(credential_id: str, challenge: str, origin: str = ORIGIN) -> dict:
    return {
        "id": credential_id,
        "rawId": credential_id,
        "type": "public-key",
        "response": {
            "clientDataJSON": client_data_json(challenge, origin, "webauthn.create"),
            "attestationObject": bytes_to_base64url(b"attestation-object"),
        },
    }


def assertion_credential(credential_id: str, challenge: str, origin: str = ORIGIN) -> dict:
    return {
        "id": credential_id,
        "rawId": credential_id,
        "type": "public-key",
        "response": {
            "clientDataJSON": client_data_json(challenge, origin, "webauthn.get"),
            "authenticatorData": bytes_to_base64url(b"authenticator-data"),
            "signature": bytes_to_base64url(b"signature"),
        },
    }


async def register_passkey(challenges, registration, user_id="u1", credential_id="cred-1",
                           platform=None, metadata=None):
    """Run a full registration ceremony through the service layer."""
    from passkey_auth.models import ChallengeType, Platform

    record = await challenges.issue(user_id, ChallengeType.REGISTRATION)
    return await registration.register(
        user_id,
        attestation_credential(credential_id, record.challenge),
        platform or Platform.IOS,
        metadata,
    )
