import asyncio
import json
import time

import httpx
import pytest

from conftest import auth_payload, logger, make_config, mint_token, user_payload
from services.auth.AuthService import AuthService
from services.auth.TokenStore import REFRESH_TOKEN_KEY, TOKEN_KEY, USER_KEY, TokenStore
from services.guards.Navigator import Navigator
from shared.clients.auth.AuthClient import AuthClient
from shared.exceptions.errors import AuthError
from shared.models.auth import SignupProfile
from shared.storage.memory.StorageMemory import StorageMemory


async def make_auth(api, **env):
    config = make_config(**env)
    storage = StorageMemory(helper_config=config)
    store = TokenStore(helper_config=config, storage=storage)
    navigator = Navigator(logger=logger)
    client = AuthClient(helper_config=config)
    await client.boot(api.transport())
    service = AuthService(helper_config=config, auth_client=client, token_store=store, navigator=navigator)
    return service, store, navigator


class TestLogin:
    @pytest.mark.asyncio
    async def test_success_persists_and_schedules_refresh(self, api):
        api.on("POST", "/auth/login", (200, auth_payload(3600)))
        service, store, _ = await make_auth(api)

        user = await service.do_login("user@example.com", "secret")

        assert user.email == "user@example.com"
        assert store.is_authenticated()
        assert store.get_refresh_token() == "refresh-1"
        assert api.body(api.calls("POST", "/auth/login")[0]) == {"email": "user@example.com", "password": "secret"}
        assert service.is_refresh_scheduled()
        assert 3200 < service.get_refresh_delay() <= 3300
        assert service.get_auth_header() == {"Authorization": f"Bearer {store.get_token()}"}
        await service.close()

    @pytest.mark.asyncio
    async def test_server_message_is_surfaced(self, api):
        api.on("POST", "/auth/login", (401, {"message": "Invalid credentials"}))
        service, store, _ = await make_auth(api)

        with pytest.raises(AuthError) as exc:
            await service.do_login("user@example.com", "wrong")

        assert exc.value.message == "Invalid credentials"
        assert store.get_token() is None
        assert store.get_current_user() is None

    @pytest.mark.asyncio
    async def test_generic_message_without_body(self, api):
        api.on("POST", "/auth/login", (500, b""))
        service, _, _ = await make_auth(api)

        with pytest.raises(AuthError) as exc:
            await service.do_login("user@example.com", "secret")
        assert exc.value.message == "An error occurred"

    @pytest.mark.asyncio
    async def test_network_failure(self, api):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        api.on("POST", "/auth/login", fail)
        service, _, _ = await make_auth(api)

        with pytest.raises(AuthError):
            await service.do_login("user@example.com", "secret")

    @pytest.mark.asyncio
    async def test_signup_forwards_extra_fields(self, api):
        api.on("POST", "/auth/signup", (201, auth_payload()))
        service, store, _ = await make_auth(api)

        await service.do_signup(SignupProfile(email="new@example.com", password="pw", name="New", company="ACME"))

        assert api.body(api.calls("POST", "/auth/signup")[0])["company"] == "ACME"
        assert store.is_authenticated()
        await service.close()

    @pytest.mark.asyncio
    async def test_roles_and_permissions(self, api):
        api.on("POST", "/auth/login", (200, auth_payload(role="admin", permissions=["qa_access"])))
        service, _, _ = await make_auth(api)
        await service.do_login("admin@example.com", "secret")

        assert service.has_role("admin")
        assert not service.has_role("user")
        assert service.has_permission("qa_access")
        assert not service.has_permission("document_read")
        await service.close()


class TestRefreshScheduling:
    @pytest.mark.asyncio
    async def test_short_lifetime_refreshes_at_half(self, api):
        api.on("POST", "/auth/login", (200, auth_payload(120)))
        service, _, _ = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        assert 55 <= service.get_refresh_delay() <= 60
        await service.close()

    @pytest.mark.asyncio
    async def test_expires_in_used_when_token_has_no_exp(self, api):
        payload = auth_payload()
        payload["token"] = mint_token(None)
        payload["expiresIn"] = 1000
        api.on("POST", "/auth/login", (200, payload))
        service, _, _ = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        assert 695 <= service.get_refresh_delay() <= 700
        await service.close()

    @pytest.mark.asyncio
    async def test_custom_lead(self, api):
        api.on("POST", "/auth/login", (200, auth_payload(3600)))
        service, _, _ = await make_auth(api, AUTH_REFRESH_LEAD_SECONDS=600)
        await service.do_login("user@example.com", "secret")

        assert 2900 < service.get_refresh_delay() <= 3000
        await service.close()

    @pytest.mark.asyncio
    async def test_timer_fires_refresh_and_reschedules(self, api):
        payload = auth_payload()
        payload["token"] = mint_token(None, exp=time.time() + 0.2)
        api.on("POST", "/auth/login", (200, payload))
        api.on("POST", "/auth/refresh", (200, auth_payload(3600, refresh_token="refresh-2")))
        service, store, _ = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        await asyncio.sleep(0.3)
        await service._refresh_timer.wait_running()

        assert len(api.calls("POST", "/auth/refresh")) == 1
        assert store.get_refresh_token() == "refresh-2"
        assert service.get_refresh_delay() > 3000
        await service.close()

    @pytest.mark.asyncio
    async def test_logout_cancels_timer_and_navigates(self, api):
        api.on("POST", "/auth/login", (200, auth_payload()))
        service, store, navigator = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        service.logout()

        assert not service.is_refresh_scheduled()
        assert store.get_token() is None
        assert store.get_current_user() is None
        assert navigator.current_path == "/auth/login"


class TestRefresh:
    @pytest.mark.asyncio
    async def test_rotates_credentials(self, api):
        api.on("POST", "/auth/login", (200, auth_payload()))
        api.on("POST", "/auth/refresh", (200, auth_payload(refresh_token="refresh-2")))
        service, store, _ = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        await service.do_refresh()

        assert api.body(api.calls("POST", "/auth/refresh")[0]) == {"refreshToken": "refresh-1"}
        assert store.get_refresh_token() == "refresh-2"
        await service.close()

    @pytest.mark.asyncio
    async def test_without_refresh_token_logs_out(self, api):
        service, store, navigator = await make_auth(api)

        with pytest.raises(AuthError) as exc:
            await service.do_refresh()

        assert exc.value.message == "no refresh token"
        assert navigator.current_path == "/auth/login"
        assert api.calls("POST", "/auth/refresh") == []

    @pytest.mark.asyncio
    async def test_rejected_refresh_fails_closed(self, api):
        api.on("POST", "/auth/login", (200, auth_payload()))
        api.on("POST", "/auth/refresh", (401, {"message": "Refresh token revoked"}))
        service, store, navigator = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        with pytest.raises(AuthError) as exc:
            await service.do_refresh()

        assert exc.value.message == "refresh failed"
        assert store.get_token() is None
        assert store.get_refresh_token() is None
        assert store.get_current_user() is None
        assert not service.is_refresh_scheduled()
        assert navigator.current_path == "/auth/login"

    @pytest.mark.asyncio
    async def test_refresh_without_user_fails_closed(self, api):
        api.on("POST", "/auth/login", (200, auth_payload()))
        api.on("POST", "/auth/refresh", (200, {"token": "t", "refreshToken": "r", "user": None}))
        service, store, navigator = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        with pytest.raises(AuthError) as exc:
            await service.do_refresh()

        assert exc.value.message == "refresh failed"
        assert store.get_token() is None
        assert store.get_current_user() is None
        assert not service.is_refresh_scheduled()
        assert navigator.current_path == "/auth/login"

    @pytest.mark.asyncio
    async def test_login_with_malformed_user(self, api):
        api.on("POST", "/auth/login", (200, {"token": "t", "refreshToken": "r", "user": "u-1"}))
        service, store, _ = await make_auth(api)

        with pytest.raises(AuthError) as exc:
            await service.do_login("user@example.com", "secret")

        assert exc.value.message == "An error occurred"
        assert store.get_token() is None

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_exchange(self, api):
        async def slow_refresh(request):
            await asyncio.sleep(0.01)
            return httpx.Response(200, json=auth_payload(refresh_token="refresh-2"))

        api.on("POST", "/auth/login", (200, auth_payload()))
        api.on("POST", "/auth/refresh", slow_refresh)
        service, _, _ = await make_auth(api)
        await service.do_login("user@example.com", "secret")

        first, second = await asyncio.gather(service.do_refresh(), service.do_refresh())

        assert first == second
        assert len(api.calls("POST", "/auth/refresh")) == 1
        await service.close()


class TestRestore:
    @pytest.mark.asyncio
    async def test_valid_session_is_restored(self, api):
        service, store, _ = await make_auth(api)
        storage = store._storage
        storage.set_many({
            TOKEN_KEY: mint_token(1800),
            REFRESH_TOKEN_KEY: "refresh-1",
            USER_KEY: json.dumps(user_payload()),
        })

        user = await service.do_restore()

        assert user.id == "u-1"
        assert store.get_current_user() == user
        assert 1400 < service.get_refresh_delay() <= 1500
        await service.close()

    @pytest.mark.asyncio
    async def test_expired_session_is_cleared(self, api):
        service, store, _ = await make_auth(api)
        storage = store._storage
        storage.set_many({
            TOKEN_KEY: mint_token(-10),
            REFRESH_TOKEN_KEY: "refresh-1",
            USER_KEY: json.dumps(user_payload()),
        })

        assert await service.do_restore() is None
        assert storage.get_item(TOKEN_KEY) is None
        assert storage.get_item(REFRESH_TOKEN_KEY) is None
        assert storage.get_item(USER_KEY) is None
        assert not service.is_refresh_scheduled()

    @pytest.mark.asyncio
    async def test_token_without_user_is_cleared(self, api):
        service, store, _ = await make_auth(api)
        store._storage.set_item(TOKEN_KEY, mint_token(1800))

        assert await service.do_restore() is None
        assert store.get_token() is None
