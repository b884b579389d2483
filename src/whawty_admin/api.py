"""
HTTP client for the whawty web API.

Thin async wrapper around aiohttp. Each endpoint is one POST with a JSON
body; non-success statuses become ApiError (AuthenticationError for 401)
and connection problems become TransportError.
"""

import asyncio
import json
from typing import Any, Dict, Optional

import aiohttp
from loguru import logger

from .errors import ApiError, AuthenticationError, TransportError
from .models import UserRecord

AUTHENTICATE = "/api/authenticate"
LIST = "/api/list"
LIST_FULL = "/api/list-full"
ADD = "/api/add"
REMOVE = "/api/remove"
UPDATE = "/api/update"
SET_ADMIN = "/api/set-admin"
BASIC_AUTH = "/basic-auth"

# Fields never written to the debug log
_SECRET_FIELDS = {"password", "newpassword", "oldpassword", "session"}


def _redact(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {k: ("***" if k in _SECRET_FIELDS else v) for k, v in payload.items()}


class WhawtyApiClient:
    """
    Client for the whawty JSON API.

    The underlying aiohttp.ClientSession is created lazily on first use
    and must be released with close() (or by using the client as an async
    context manager).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        verify_tls: bool = True,
        http: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Server root URL (e.g. "https://auth.example.com")
            timeout: Total per-request timeout in seconds
            verify_tls: Verify server certificates for https URLs
            http: Existing aiohttp session to use instead of a private one
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.verify_tls = verify_tls
        self._http = http
        self._owns_http = http is None

    async def __aenter__(self) -> "WhawtyApiClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_http(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            connector = None if self.verify_tls else aiohttp.TCPConnector(ssl=False)
            self._http = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_http = True
        return self._http

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._http is not None and self._owns_http and not self._http.closed:
            await self._http.close()
        self._http = None

    async def post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON body and return the decoded JSON answer.

        Args:
            endpoint: Path below the base URL (e.g. "/api/list-full")
            payload: Request body

        Returns:
            Decoded response object

        Raises:
            AuthenticationError: Server answered 401
            ApiError: Server answered any other non-200 status
            TransportError: Network failure, timeout or undecodable body
        """
        url = self.base_url + endpoint
        logger.debug(f"POST {endpoint} {_redact(payload)}")

        try:
            async with self._get_http().post(
                url,
                data=json.dumps(payload),
                headers={"Content-Type": "application/json"},
            ) as resp:
                status = resp.status
                reason = resp.reason or ""
                body = await resp.text()
        except asyncio.TimeoutError:
            raise TransportError(f"request to {endpoint} timed out")
        except aiohttp.ClientError as e:
            raise TransportError(f"request to {endpoint} failed: {e}")

        data: Dict[str, Any] = {}
        if body.strip():
            try:
                decoded = json.loads(body)
            except ValueError:
                decoded = None
            if isinstance(decoded, dict):
                data = decoded
            elif status == 200:
                raise TransportError(f"invalid JSON response from {endpoint}")

        logger.debug(f"{endpoint} -> {status}")

        if status != 200:
            message = data.get("error") or reason or f"HTTP {status}"
            if status == 401:
                raise AuthenticationError(message)
            raise ApiError(status, message)

        return data

    async def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """Exchange credentials for a session token."""
        return await self.post(AUTHENTICATE, {"username": username, "password": password})

    async def list_full(self, token: str) -> Dict[str, UserRecord]:
        """
        List all users with hash metadata.

        Returns:
            Mapping username -> UserRecord
        """
        data = await self.post(LIST_FULL, {"session": token})
        return {
            name: UserRecord.from_api(name, entry or {})
            for name, entry in (data.get("list") or {}).items()
        }

    async def list_users(self, token: str) -> Dict[str, UserRecord]:
        """
        List users with supported hashes only.

        Entries carry fewer fields than list_full(); missing ones default
        to false/empty.
        """
        data = await self.post(LIST, {"session": token})
        return {
            name: UserRecord.from_api(name, entry or {})
            for name, entry in (data.get("list") or {}).items()
        }

    async def add(self, token: str, username: str, password: str, is_admin: bool) -> Dict[str, Any]:
        return await self.post(ADD, {
            "session": token,
            "username": username,
            "password": password,
            "admin": is_admin,
        })

    async def remove(self, token: str, username: str) -> Dict[str, Any]:
        return await self.post(REMOVE, {"session": token, "username": username})

    async def update(self, token: str, username: str, new_password: str) -> Dict[str, Any]:
        return await self.post(UPDATE, {
            "session": token,
            "username": username,
            "newpassword": new_password,
        })

    async def update_with_old_password(
        self,
        username: str,
        old_password: str,
        new_password: str,
    ) -> Dict[str, Any]:
        """Change a password by proving the current one, without a session."""
        return await self.post(UPDATE, {
            "username": username,
            "oldpassword": old_password,
            "newpassword": new_password,
        })

    async def set_admin(self, token: str, username: str, is_admin: bool) -> Dict[str, Any]:
        return await self.post(SET_ADMIN, {
            "session": token,
            "username": username,
            "admin": is_admin,
        })

    async def check_basic_auth(self, username: str, password: str) -> bool:
        """
        Check credentials against the HTTP Basic endpoint.

        Returns:
            True if the server accepted the credentials, False on 401

        Raises:
            ApiError: Any other non-success status
            TransportError: Network failure or timeout
        """
        url = self.base_url + BASIC_AUTH
        try:
            async with self._get_http().get(
                url,
                headers={"Authorization": aiohttp.BasicAuth(username, password).encode()},
            ) as resp:
                status = resp.status
                reason = resp.reason or ""
                body = await resp.text()
        except asyncio.TimeoutError:
            raise TransportError(f"request to {BASIC_AUTH} timed out")
        except aiohttp.ClientError as e:
            raise TransportError(f"request to {BASIC_AUTH} failed: {e}")

        if status == 200:
            return True
        if status == 401:
            logger.debug(f"basic-auth rejected for '{username}': {body.strip()}")
            return False
        raise ApiError(status, body.strip() or reason)
