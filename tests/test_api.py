"""
Tests for the aiohttp API client against the fake whawty server.
"""

import base64
import socket
import warnings

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from whawty_admin.api import WhawtyApiClient
from whawty_admin.errors import ApiError, AuthenticationError, TransportError


async def login_token(api: WhawtyApiClient, username="admin", password="admin-secret") -> str:
    data = await api.authenticate(username, password)
    return data["session"]


class TestAuthenticate:

    async def test_success(self, api):
        data = await api.authenticate("admin", "admin-secret")
        assert data["username"] == "admin"
        assert data["admin"] is True
        assert data["session"]

    async def test_wrong_password(self, api):
        with pytest.raises(AuthenticationError) as exc:
            await api.authenticate("admin", "nope")
        assert exc.value.status == 401
        assert exc.value.message == "authentication failed"


class TestListing:

    async def test_list_full(self, api):
        token = await login_token(api)
        records = await api.list_full(token)
        assert set(records) == {"admin", "alice"}
        assert records["admin"].is_admin is True
        assert str(records["alice"].credential_format) == "scrypt (1)"

    async def test_list_brief(self, api):
        token = await login_token(api)
        records = await api.list_users(token)
        assert records["alice"].is_admin is False
        assert records["alice"].is_valid is False

    async def test_expired_session(self, api, fake):
        token = await login_token(api)
        fake.expire_all()
        with pytest.raises(AuthenticationError, match="session timed out"):
            await api.list_full(token)

    async def test_forbidden_for_non_admin(self, api):
        token = await login_token(api, "alice", "alice-secret")
        with pytest.raises(ApiError) as exc:
            await api.list_full(token)
        assert exc.value.status == 403
        assert not isinstance(exc.value, AuthenticationError)


class TestMutations:

    async def test_add_sends_all_fields(self, api, fake):
        token = await login_token(api)
        data = await api.add(token, "bob", "bob-secret", True)
        assert data["username"] == "bob"
        path, body = fake.requests[-1]
        assert path == "/api/add"
        assert body == {"session": token, "username": "bob", "password": "bob-secret", "admin": True}

    async def test_add_duplicate_reports_server_error(self, api):
        token = await login_token(api)
        with pytest.raises(ApiError) as exc:
            await api.add(token, "alice", "x", False)
        assert exc.value.status == 400
        assert exc.value.message == "user 'alice' already exists"

    async def test_set_admin_and_remove(self, api, fake):
        token = await login_token(api)
        await api.set_admin(token, "alice", True)
        assert fake.users["alice"]["admin"] is True
        await api.remove(token, "alice")
        assert "alice" not in fake.users

    async def test_update_with_session(self, api, fake):
        token = await login_token(api)
        await api.update(token, "alice", "new-secret")
        assert fake.users["alice"]["password"] == "new-secret"
        assert fake.requests[-1][1]["newpassword"] == "new-secret"

    async def test_update_with_old_password(self, api, fake):
        await api.update_with_old_password("alice", "alice-secret", "fresh")
        assert fake.users["alice"]["password"] == "fresh"
        assert "session" not in fake.requests[-1][1]

    async def test_update_with_wrong_old_password(self, api):
        with pytest.raises(AuthenticationError):
            await api.update_with_old_password("alice", "wrong", "fresh")


class TestBasicAuth:

    async def test_accepted(self, api):
        assert await api.check_basic_auth("alice", "alice-secret") is True

    async def test_sends_basic_header(self, api, fake):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            assert await api.check_basic_auth("alice", "alice-secret") is True

        expected = "Basic " + base64.b64encode(b"alice:alice-secret").decode()
        assert fake.requests[-1] == ("/basic-auth", {"authorization": expected})
        assert not [w for w in caught if "auth" in str(w.message).lower()]

    async def test_rejected(self, api):
        assert await api.check_basic_auth("alice", "wrong") is False


class TestErrorMapping:

    async def test_empty_error_falls_back_to_reason(self):
        async def broken(request):
            return web.json_response({"error": ""}, status=500)

        app = web.Application()
        app.router.add_post("/api/list-full", broken)
        server = TestServer(app)
        await server.start_server()
        try:
            async with WhawtyApiClient(str(server.make_url(""))) as client:
                with pytest.raises(ApiError) as exc:
                    await client.list_full("tok")
            assert exc.value.status == 500
            assert exc.value.message == "Internal Server Error"
        finally:
            await server.close()

    async def test_invalid_json_on_success(self):
        async def garbage(request):
            return web.Response(text="<html>not json</html>")

        app = web.Application()
        app.router.add_post("/api/list-full", garbage)
        server = TestServer(app)
        await server.start_server()
        try:
            async with WhawtyApiClient(str(server.make_url(""))) as client:
                with pytest.raises(TransportError, match="invalid JSON"):
                    await client.list_full("tok")
        finally:
            await server.close()

    async def test_connection_refused(self):
        sock = socket.socket()
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
        sock.close()

        async with WhawtyApiClient(f"http://127.0.0.1:{port}", timeout=2.0) as client:
            with pytest.raises(TransportError):
                await client.authenticate("admin", "x")
