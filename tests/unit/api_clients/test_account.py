"""
Tests for FirebaseAccount construction, login and database lifecycle.

Runs against the in-process fake Firebase service so every request and
response is a real httpx exchange.
"""

import httpx
import pytest
from unittest.mock import AsyncMock

from firebase_account.api_clients.account import (
    DEFAULT_AUTH_CONFIG,
    FirebaseAccount,
    default_auth_config,
)
from firebase_account.api_clients.exceptions import (
    AlreadyDeletedError,
    AuthenticationError,
    CredentialOrServerError,
    DeletedInstanceError,
    HttpStatusError,
    NetworkConnectionError,
    RemoteError,
)
from firebase_account.api_clients.instance import FirebaseInstance
from tests.infrastructure.fake_firebase_server import (
    TEST_ADMIN_TOKEN,
    TEST_EMAIL,
    TEST_PASSWORD,
)


class TestDefaultAuthConfig:
    """Tests for the default auth provider configuration."""

    def test_has_every_provider_section(self):
        assert set(DEFAULT_AUTH_CONFIG) >= {
            "domains",
            "sessionLengthSeconds",
            "anonymous",
            "facebook",
            "twitter",
            "github",
            "google",
            "password",
        }

    def test_exposed_on_account_class(self):
        assert FirebaseAccount.DEFAULT_AUTH_CONFIG is DEFAULT_AUTH_CONFIG

    def test_default_auth_config_returns_independent_copy(self):
        config = default_auth_config()
        config["facebook"]["enabled"] = True

        assert DEFAULT_AUTH_CONFIG["facebook"]["enabled"] is False


class TestAccountConstruction:
    """Tests for from_token and from_credentials."""

    def test_from_token_makes_no_request(self, fake_server):
        account = FirebaseAccount.from_token("anything", session=fake_server.session())

        assert account.admin_token == "anything"
        assert fake_server.requests == []

    @pytest.mark.asyncio
    async def test_from_credentials_logs_in(self, fake_server):
        account = await FirebaseAccount.from_credentials(
            TEST_EMAIL, TEST_PASSWORD, session=fake_server.session()
        )

        assert account.admin_token == TEST_ADMIN_TOKEN
        login = fake_server.requests_to("GET", "/account/login")
        assert len(login) == 1
        assert login[0].url.params["email"] == TEST_EMAIL

    @pytest.mark.asyncio
    async def test_from_credentials_bad_password_raises_authentication_error(
        self, fake_server
    ):
        with pytest.raises(AuthenticationError) as exc_info:
            await FirebaseAccount.from_credentials(
                TEST_EMAIL, "wrong", session=fake_server.session()
            )

        assert isinstance(exc_info.value.__cause__, CredentialOrServerError)
        assert "bad credentials" in str(exc_info.value).lower()

    @pytest.mark.asyncio
    async def test_from_credentials_server_error_carries_status(self):
        session = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await FirebaseAccount.from_credentials("a@b.c", "pw", session=session)

        assert exc_info.value.status_code == 503
        assert isinstance(exc_info.value.__cause__, HttpStatusError)

    @pytest.mark.asyncio
    async def test_from_credentials_error_body_carries_server_message(self):
        session = httpx.AsyncClient(
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, json={"error": "Account locked"})
            )
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await FirebaseAccount.from_credentials("a@b.c", "pw", session=session)

        assert "Account locked" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_from_credentials_transport_failure_raises_authentication_error(
        self,
    ):
        def refuse(request):
            raise httpx.ConnectError("Connection refused", request=request)

        session = httpx.AsyncClient(transport=httpx.MockTransport(refuse))

        with pytest.raises(AuthenticationError) as exc_info:
            await FirebaseAccount.from_credentials("a@b.c", "pw", session=session)

        assert isinstance(exc_info.value.__cause__, NetworkConnectionError)


class TestCreateDatabase:
    """Tests for FirebaseAccount.create_database()."""

    @pytest.mark.asyncio
    async def test_create_registers_and_returns_instance(self, account, fake_server):
        db = await account.create_database("test123")

        assert isinstance(db, FirebaseInstance)
        assert str(db) == "https://test123.firebaseio.com/"
        assert account.registered_instance("test123") is db
        assert "test123" in fake_server.databases

        create = fake_server.requests_to("POST", "/firebase/test123")[0]
        form = create.content.decode()
        assert f"token={TEST_ADMIN_TOKEN}" in form
        assert "appName=test123" in form

    @pytest.mark.asyncio
    async def test_created_instance_becomes_ready(self, account):
        db = await account.create_database("test123")
        await db.ready()

        assert db.personal_token == "personal-test123"
        assert db.instance_token == "firebase-test123"

    @pytest.mark.asyncio
    async def test_get_after_create_is_a_registry_hit(self, account, fake_server):
        db = await account.create_database("test123")
        await db.ready()
        request_count = len(fake_server.requests)

        again = await account.get_database("test123")

        assert again is db
        assert len(fake_server.requests) == request_count

    @pytest.mark.asyncio
    async def test_create_rejects_taken_name(self, account, fake_server):
        fake_server.add_database("taken")

        with pytest.raises(RemoteError) as exc_info:
            await account.create_database("taken")

        assert "already taken" in str(exc_info.value)
        assert not account.is_registered("taken")

    @pytest.mark.asyncio
    async def test_create_with_bad_token_raises_credential_error(self, fake_server):
        account = FirebaseAccount.from_token("bogus", session=fake_server.session())

        with pytest.raises(CredentialOrServerError):
            await account.create_database("newdb")

    @pytest.mark.asyncio
    async def test_status_is_checked_before_error_body(self, account):
        account._request = AsyncMock(
            return_value=httpx.Response(500, json={"error": "boom", "success": False})
        )

        with pytest.raises(HttpStatusError) as exc_info:
            await account.create_database("newdb")

        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_create_overwrites_registry_entry(self, account, fake_server):
        first = await account.create_database("dup")
        del fake_server.databases["dup"]

        second = await account.create_database("dup")

        assert second is not first
        assert account.registered_instance("dup") is second


class TestGetDatabase:
    """Tests for FirebaseAccount.get_database()."""

    @pytest.mark.asyncio
    async def test_get_existing_database_waits_for_tokens(
        self, account, existing_database
    ):
        db = await account.get_database("existing-db")

        assert db.is_ready
        assert db.personal_token == existing_database.personal_token
        assert account.registered_instance("existing-db") is db

    @pytest.mark.asyncio
    async def test_get_nonexistent_database_rejects(self, account):
        with pytest.raises(RemoteError):
            await account.get_database("nonexistent")

        assert not account.is_registered("nonexistent")


class TestDeleteDatabase:
    """Tests for FirebaseAccount.delete_database()."""

    @pytest.mark.asyncio
    async def test_delete_marks_instance_and_unregisters(self, account, fake_server):
        db = await account.create_database("test123")

        await account.delete_database(db)

        assert db.deleted is True
        assert not account.is_registered("test123")
        assert "test123" not in fake_server.databases

        delete = fake_server.requests_to("POST", "/firebase/test123")[-1]
        form = delete.content.decode()
        assert "_method=DELETE" in form
        assert "namespace=test123" in form

    @pytest.mark.asyncio
    async def test_delete_twice_fails_locally(self, account, fake_server):
        db = await account.create_database("test123")
        await account.delete_database(db)
        request_count = len(fake_server.requests)

        with pytest.raises(AlreadyDeletedError):
            await account.delete_database(db)

        assert len(fake_server.requests) == request_count

    @pytest.mark.asyncio
    async def test_already_deleted_regardless_of_remote_state(self, account):
        db = FirebaseInstance("ghost", TEST_ADMIN_TOKEN)
        db.deleted = True
        account._request = AsyncMock()

        with pytest.raises(AlreadyDeletedError):
            await account.delete_database(db)

        account._request.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_delete_leaves_instance_live(self, account, fake_server):
        db = await account.create_database("test123")
        del fake_server.databases["test123"]

        with pytest.raises(RemoteError):
            await account.delete_database(db)

        assert db.deleted is False
        assert account.is_registered("test123")

    @pytest.mark.asyncio
    async def test_create_delete_then_instance_methods_fail(self, account):
        db = await account.create_database("test123")
        await account.delete_database(db)

        with pytest.raises(DeletedInstanceError):
            await db.get_rules()
        with pytest.raises(DeletedInstanceError):
            await db.get_auth_tokens()
        with pytest.raises(DeletedInstanceError):
            await db.list_users()


class TestRegistryView:
    """Tests for the account's read-only registry accessors."""

    @pytest.mark.asyncio
    async def test_databases_view_is_read_only(self, account):
        db = await account.create_database("viewdb")

        assert dict(account.databases) == {"viewdb": db}
        with pytest.raises(TypeError):
            account.databases["other"] = db  # type: ignore[index]
