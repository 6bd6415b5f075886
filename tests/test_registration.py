"""Tests for the passkey registration ceremony."""
import pytest

from passkey_auth.errors import (
    AttestationInvalid, ChallengeNotFound, CredentialIdConflict,
    OriginMismatch, UserNotFound,
)
from passkey_auth.models import ChallengeType, CredentialStatus, Platform

from tests.helpers import (
    ORIGIN, PUBLIC_KEY, RP_ID, RP_NAME, attestation_credential, client_data_json,
    register_passkey,
)

pytestmark = pytest.mark.usefixtures("users")


class TestRegistration:
    """Test successful registrations."""

    @pytest.mark.asyncio
    async def test_register_stores_active_credential(self, challenges, registration, store, verifier, clock):
        verifier.sign_count = 5

        result = await register_passkey(
            challenges, registration,
            metadata={"deviceName": "Pixel", "osVersion": "14"},
            platform=Platform.ANDROID,
        )

        assert result.rp_name == RP_NAME
        assert result.rp_id == RP_ID

        record = store.get_credential("cred-1")
        assert record.user_id == "u1"
        assert record.status == CredentialStatus.ACTIVE
        assert record.counter == 5
        assert record.public_key == PUBLIC_KEY
        assert record.platform == Platform.ANDROID
        assert record.last_used == clock.now
        assert record.created_at == clock.now
        assert record.revoked_at is None

    @pytest.mark.asyncio
    async def test_register_enriches_metadata(self, challenges, registration, store, clock):
        await register_passkey(challenges, registration, metadata={"deviceName": "iPhone"})

        metadata = store.get_credential("cred-1").metadata
        assert metadata["deviceName"] == "iPhone"
        assert metadata["platform"] == "ios"
        assert metadata["deviceType"] == "multi_device"
        assert metadata["backedUp"] is True
        assert metadata["registeredAt"] == clock.now.isoformat()
        assert metadata["registrationPreferences"]["userVerification"] == "preferred"
        assert metadata["verificationSettings"]["expectedOrigins"] == [ORIGIN]

    @pytest.mark.asyncio
    async def test_stored_options_require_user_verification(self, challenges, registration, store, verifier):
        options = {
            "attestation": "direct",
            "authenticatorSelection": {"userVerification": "required", "residentKey": "required"},
        }
        record = await challenges.issue("u1", ChallengeType.REGISTRATION, options)

        await registration.register(
            "u1", attestation_credential("cred-1", record.challenge), Platform.WEB
        )

        assert verifier.calls[-1]["require_user_verification"] is True
        preferences = store.get_credential("cred-1").metadata["registrationPreferences"]
        assert preferences["attestation"] == "direct"
        assert preferences["residentKey"] == "required"

    @pytest.mark.asyncio
    async def test_unreadable_stored_options_fall_back_to_defaults(self, challenges, registration, verifier):
        record = await challenges.issue("u1", ChallengeType.REGISTRATION, {"attestation": "bogus"})

        await registration.register(
            "u1", attestation_credential("cred-1", record.challenge), Platform.WEB
        )

        assert verifier.calls[-1]["require_user_verification"] is False


class TestRegistrationFailures:
    """Test rejected registrations."""

    @pytest.mark.asyncio
    async def test_unknown_user(self, challenges, registration):
        record = await challenges.issue("ghost", ChallengeType.REGISTRATION)

        with pytest.raises(UserNotFound):
            await registration.register(
                "ghost", attestation_credential("cred-1", record.challenge), Platform.WEB
            )

    @pytest.mark.asyncio
    async def test_without_challenge(self, registration, store):
        with pytest.raises(ChallengeNotFound):
            await registration.register(
                "u1", attestation_credential("cred-1", "bm8tY2hhbGxlbmdl"), Platform.WEB
            )
        assert store.get_credential("cred-1") is None

    @pytest.mark.asyncio
    async def test_challenge_of_other_user(self, challenges, registration):
        record = await challenges.issue("u2", ChallengeType.REGISTRATION)

        with pytest.raises(ChallengeNotFound):
            await registration.register(
                "u1", attestation_credential("cred-1", record.challenge), Platform.WEB
            )

    @pytest.mark.asyncio
    async def test_origin_mismatch_consumes_challenge(self, challenges, registration, store):
        record = await challenges.issue("u1", ChallengeType.REGISTRATION)

        with pytest.raises(OriginMismatch):
            await registration.register(
                "u1",
                attestation_credential("cred-1", record.challenge, origin="https://evil.example"),
                Platform.WEB,
            )

        with pytest.raises(ChallengeNotFound):
            await registration.register(
                "u1", attestation_credential("cred-1", record.challenge), Platform.WEB
            )
        assert store.get_credential("cred-1") is None

    @pytest.mark.asyncio
    async def test_invalid_attestation(self, challenges, registration, store, verifier):
        verifier.error = AttestationInvalid("bad signature")

        with pytest.raises(AttestationInvalid):
            await register_passkey(challenges, registration)
        assert store.get_credential("cred-1") is None

    @pytest.mark.asyncio
    async def test_malformed_client_data(self, challenges, registration):
        await challenges.issue("u1", ChallengeType.REGISTRATION)
        credential = attestation_credential("cred-1", "x")
        credential["response"]["clientDataJSON"] = "not json at all"

        with pytest.raises(AttestationInvalid):
            await registration.register("u1", credential, Platform.WEB)

    @pytest.mark.asyncio
    async def test_authentication_client_data_rejected(self, challenges, registration, store):
        record = await challenges.issue("u1", ChallengeType.REGISTRATION)
        credential = attestation_credential("cred-1", record.challenge)
        credential["response"]["clientDataJSON"] = client_data_json(
            record.challenge, type_="webauthn.get"
        )

        with pytest.raises(AttestationInvalid):
            await registration.register("u1", credential, Platform.WEB)

        # The challenge is still open for a well-formed attempt
        await registration.register(
            "u1", attestation_credential("cred-1", record.challenge), Platform.WEB
        )
        assert store.get_credential("cred-1").is_active

    @pytest.mark.asyncio
    async def test_duplicate_credential_id(self, challenges, registration, store, verifier):
        verifier.sign_count = 2
        await register_passkey(challenges, registration, user_id="u1")
        verifier.sign_count = 9

        with pytest.raises(CredentialIdConflict):
            await register_passkey(challenges, registration, user_id="u2")

        record = store.get_credential("cred-1")
        assert record.user_id == "u1"
        assert record.counter == 2
