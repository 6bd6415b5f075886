"""Tests for listing and revoking passkeys."""
import pytest

from passkey_auth.errors import CredentialNotFound
from passkey_auth.models import CredentialStatus, RevocationReason

from tests.helpers import register_passkey

pytestmark = pytest.mark.usefixtures("users")


@pytest.fixture
def three_passkeys(challenges, registration, clock):
    async def _register():
        for credential_id in ("cred-1", "cred-2", "cred-3"):
            await register_passkey(challenges, registration, credential_id=credential_id)
            clock.advance(hours=1)
    return _register


class TestListCredentials:
    """Test passkey listing."""

    @pytest.mark.asyncio
    async def test_most_recently_used_first(self, three_passkeys, credentials):
        await three_passkeys()

        page = await credentials.list_credentials("u1")

        assert [p.credential_id for p in page.passkeys] == ["cred-3", "cred-2", "cred-1"]
        assert page.next_offset is None

    @pytest.mark.asyncio
    async def test_pagination(self, three_passkeys, credentials):
        await three_passkeys()

        first = await credentials.list_credentials("u1", limit=2)
        second = await credentials.list_credentials("u1", limit=2, offset=first.next_offset)

        assert [p.credential_id for p in first.passkeys] == ["cred-3", "cred-2"]
        assert first.next_offset == 2
        assert [p.credential_id for p in second.passkeys] == ["cred-1"]
        assert second.next_offset is None

    @pytest.mark.asyncio
    async def test_revoked_and_foreign_passkeys_hidden(self, three_passkeys, challenges, registration, credentials):
        await three_passkeys()
        await register_passkey(challenges, registration, user_id="u2", credential_id="cred-4")
        await credentials.revoke("u1", "cred-2")

        page = await credentials.list_credentials("u1")

        assert [p.credential_id for p in page.passkeys] == ["cred-3", "cred-1"]

    @pytest.mark.asyncio
    async def test_empty(self, credentials):
        page = await credentials.list_credentials("u2")

        assert page.passkeys == []
        assert page.next_offset is None


class TestRevokeCredential:
    """Test passkey revocation."""

    @pytest.mark.asyncio
    async def test_revoke_records_reason(self, challenges, registration, credentials, store, clock):
        await register_passkey(challenges, registration)
        clock.advance(minutes=5)

        await credentials.revoke("u1", "cred-1", reason="lost device")

        record = store.get_credential("cred-1")
        assert record.status == CredentialStatus.REVOKED
        assert record.revoked_reason == "lost device"
        assert record.revoked_at == clock.now

    @pytest.mark.asyncio
    async def test_default_reason(self, challenges, registration, credentials, store):
        await register_passkey(challenges, registration)

        await credentials.revoke("u1", "cred-1")

        assert store.get_credential("cred-1").revoked_reason == RevocationReason.USER_INITIATED

    @pytest.mark.asyncio
    async def test_revoke_twice(self, challenges, registration, credentials, store, clock):
        await register_passkey(challenges, registration)
        await credentials.revoke("u1", "cred-1")
        revoked_at = store.get_credential("cred-1").revoked_at
        clock.advance(minutes=1)

        with pytest.raises(CredentialNotFound):
            await credentials.revoke("u1", "cred-1")
        assert store.get_credential("cred-1").revoked_at == revoked_at

    @pytest.mark.asyncio
    async def test_revoke_other_users_passkey(self, challenges, registration, credentials, store):
        await register_passkey(challenges, registration)

        with pytest.raises(CredentialNotFound):
            await credentials.revoke("u2", "cred-1")
        assert store.get_credential("cred-1").is_active

    @pytest.mark.asyncio
    async def test_revoke_unknown(self, credentials):
        with pytest.raises(CredentialNotFound):
            await credentials.revoke("u1", "missing")
