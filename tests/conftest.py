"""
Shared fixtures: an in-process fake of the whawty web API and a view that
records what the controller asked it to show.
"""

import base64
import secrets
from typing import Any, Dict, List, Tuple

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from whawty_admin.api import WhawtyApiClient
from whawty_admin.config import ConsoleConfig
from whawty_admin.console import AdminConsole
from whawty_admin.session_store import SessionStore
from whawty_admin.view import ConsoleView

LASTCHANGED = "2023-01-01T00:00:00Z"


class FakeWhawty:
    """Minimal stand-in for the whawty web API."""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {
            "admin": {"password": "admin-secret", "admin": True},
            "alice": {"password": "alice-secret", "admin": False},
        }
        self.sessions: Dict[str, str] = {}
        self.requests: List[Tuple[str, Dict[str, Any]]] = []

    def issue_session(self, username: str) -> str:
        token = secrets.token_urlsafe(16)
        self.sessions[token] = username
        return token

    def expire_all(self) -> None:
        self.sessions.clear()

    def listing(self) -> Dict[str, Any]:
        return {
            name: {
                "admin": user["admin"],
                "lastchanged": LASTCHANGED,
                "valid": True,
                "supported": True,
                "formatid": "scrypt",
                "formatparams": "1",
            }
            for name, user in self.users.items()
        }

    def _check(self, body: Dict[str, Any], need_admin: bool = True):
        username = self.sessions.get(body.get("session") or "")
        if username is None or username not in self.users:
            return None, web.json_response({"error": "session timed out."}, status=401)
        if need_admin and not self.users[username]["admin"]:
            return None, web.json_response({"error": "only admins are allowed"}, status=403)
        return username, None

    async def _body(self, request: web.Request) -> Dict[str, Any]:
        body = await request.json()
        self.requests.append((request.path, body))
        return body

    async def authenticate(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        user = self.users.get(body.get("username"))
        if user is None or user["password"] != body.get("password"):
            return web.json_response({"error": "authentication failed"}, status=401)
        return web.json_response({
            "session": self.issue_session(body["username"]),
            "username": body["username"],
            "admin": user["admin"],
            "lastchanged": LASTCHANGED,
        })

    async def list_full(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        _, error = self._check(body)
        if error is not None:
            return error
        return web.json_response({"list": self.listing()})

    async def list_brief(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        _, error = self._check(body)
        if error is not None:
            return error
        brief = {name: {"admin": user["admin"], "lastchanged": LASTCHANGED} for name, user in self.users.items()}
        return web.json_response({"list": brief})

    async def add(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        _, error = self._check(body)
        if error is not None:
            return error
        name = body["username"]
        if name in self.users:
            return web.json_response({"username": "", "error": f"user '{name}' already exists"}, status=400)
        self.users[name] = {"password": body["password"], "admin": bool(body.get("admin"))}
        return web.json_response({"username": name, "admin": bool(body.get("admin"))})

    async def remove(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        _, error = self._check(body)
        if error is not None:
            return error
        name = body["username"]
        if self.users.pop(name, None) is None:
            return web.json_response({"username": "", "error": f"user '{name}' does not exist"}, status=400)
        return web.json_response({"username": name})

    async def update(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        name = body.get("username")
        if body.get("oldpassword"):
            user = self.users.get(name)
            if user is None or user["password"] != body["oldpassword"]:
                return web.json_response({"username": "", "error": "authentication failed"}, status=401)
        else:
            caller, error = self._check(body, need_admin=False)
            if error is not None:
                return error
            if caller != name and not self.users[caller]["admin"]:
                return web.json_response({"username": "", "error": "only admins may do this"}, status=403)
        self.users[name]["password"] = body["newpassword"]
        return web.json_response({"username": name})

    async def set_admin(self, request: web.Request) -> web.Response:
        body = await self._body(request)
        _, error = self._check(body)
        if error is not None:
            return error
        name = body["username"]
        self.users[name]["admin"] = bool(body["admin"])
        return web.json_response({"username": name, "admin": bool(body["admin"])})

    async def basic_auth(self, request: web.Request) -> web.Response:
        header = request.headers.get("Authorization", "")
        self.requests.append((request.path, {"authorization": header}))
        if header.startswith("Basic "):
            username, _, password = base64.b64decode(header[6:]).decode().partition(":")
            user = self.users.get(username)
            if user is not None and user["password"] == password:
                return web.Response(text="success\n")
        return web.Response(text="Authentication Failed\n", status=401)

    def make_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/api/authenticate", self.authenticate)
        app.router.add_post("/api/list-full", self.list_full)
        app.router.add_post("/api/list", self.list_brief)
        app.router.add_post("/api/add", self.add)
        app.router.add_post("/api/remove", self.remove)
        app.router.add_post("/api/update", self.update)
        app.router.add_post("/api/set-admin", self.set_admin)
        app.router.add_get("/basic-auth", self.basic_auth)
        return app


class RecordingView(ConsoleView):
    """ConsoleView that remembers every hook call."""

    def __init__(self):
        self.calls: List[Tuple[str, Any]] = []
        self.rows = None
        self.login_username = None

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def show_login(self, username: str = "") -> None:
        self.login_username = username
        self.calls.append(("show_login", username))

    def clear_password(self) -> None:
        self.calls.append(("clear_password", None))

    def show_main(self, session) -> None:
        self.calls.append(("show_main", session.username))

    def show_admin_view(self) -> None:
        self.calls.append(("show_admin_view", None))

    def show_user_view(self, session) -> None:
        self.calls.append(("show_user_view", session.username))

    def render_directory(self, rows) -> None:
        self.rows = list(rows)
        self.calls.append(("render_directory", len(self.rows)))

    def credentials_changed(self, username: str) -> None:
        self.calls.append(("credentials_changed", username))

    def reload(self) -> None:
        self.calls.append(("reload", None))


@pytest.fixture
def fake():
    return FakeWhawty()


@pytest.fixture
async def server(fake):
    srv = TestServer(fake.make_app())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def base_url(server) -> str:
    return str(server.make_url("")).rstrip("/")


@pytest.fixture
async def api(base_url):
    client = WhawtyApiClient(base_url, timeout=5.0)
    yield client
    await client.close()


@pytest.fixture
def view():
    return RecordingView()


@pytest.fixture
def session_file(tmp_path):
    return tmp_path / "session.json"


@pytest.fixture
def config(base_url, session_file):
    return ConsoleConfig(base_url=base_url, session_file=session_file)


@pytest.fixture
async def admin_console(config, view, api):
    console = AdminConsole(config, view, api=api, store=SessionStore(config.session_file))
    yield console
    await console.close()
