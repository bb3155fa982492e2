"""Async HTTP client for the CampusHub API.

The bearer token lives in an AuthSession object that the caller owns and
passes in. Nothing is kept in module globals, so two clients (two users,
two tests) never see each other's token.

    session = AuthSession()
    async with CampusHubClient("http://localhost:3001", session) as api:
        await api.login("alice@x.com", "pw123456")
        me = await api.me()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

import httpx


class ApiError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, detail: Any):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")


@dataclass
class AuthSession:
    """Client-side sign-in state: the bearer token and the user it belongs to."""

    token: Optional[str] = None
    user: dict = field(default_factory=dict)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def auth_headers(self) -> dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def clear(self) -> None:
        self.token = None
        self.user = {}


class CampusHubClient:
    """Thin wrapper over the /api/auth routes."""

    def __init__(
        self,
        base_url: str,
        session: Optional[AuthSession] = None,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session if session is not None else AuthSession()
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> CampusHubClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─── Plumbing ───────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        r = await self._http.request(
            method,
            f"/api{path}",
            headers=self.session.auth_headers(),
            **kwargs,
        )
        if r.status_code == 401:
            # Token is dead server-side; drop it so the app re-authenticates.
            self.session.clear()
        if r.is_error:
            try:
                detail = r.json().get("detail", r.text)
            except ValueError:
                detail = r.text
            raise ApiError(r.status_code, detail)
        return r.json()

    def _remember(self, data: dict) -> dict:
        self.session.token = data["token"]
        self.session.user = data["user"]
        return data

    # ─── Auth ───────────────────────────────────────────

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        id_number: Optional[str] = None,
        department: Optional[str] = None,
    ) -> dict:
        body: dict[str, Any] = {"name": name, "email": email, "password": password}
        if id_number:
            body["idNumber"] = id_number
        if department:
            body["department"] = department
        return self._remember(await self._request("POST", "/auth/register", json=body))

    async def login(self, email: str, password: str) -> dict:
        data = await self._request(
            "POST", "/auth/login", json={"email": email, "password": password}
        )
        return self._remember(data)

    async def me(self) -> dict:
        data = await self._request("GET", "/auth/me")
        self.session.user = data["user"]
        return data["user"]

    async def update_profile(self, **fields: Any) -> dict:
        """PUT /auth/profile with camelCase keys (rollNumber, profileImage...)."""
        data = await self._request("PUT", "/auth/profile", json=fields)
        return data["user"]

    async def logout(self) -> dict:
        try:
            return await self._request("POST", "/auth/logout")
        finally:
            self.session.clear()

    async def logout_all(self) -> dict:
        try:
            return await self._request("POST", "/auth/logout-all")
        finally:
            self.session.clear()

    async def forgot_password(self, email: str) -> dict:
        return await self._request(
            "POST", "/auth/forgot-password", json={"email": email}
        )

    async def reset_password(self, token: str, new_password: str) -> dict:
        return await self._request(
            "POST",
            "/auth/reset-password",
            json={"token": token, "newPassword": new_password},
        )

    async def health(self) -> dict:
        return await self._request("GET", "/health")
