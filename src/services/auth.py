"""
Client for the hosted auth service (Supabase GoTrue REST API).

Only the public request/response contract is used:
- GET  /auth/v1/user                          resolve an access token to a user
- POST /auth/v1/token?grant_type=password     sign in with email + password
- POST /auth/v1/signup                        register a new user
- POST /auth/v1/logout                        revoke the session behind a token
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

import httpx

from src.core.config import settings
from src.core.logging import get_logger

logger = get_logger(__name__)


class AuthError(Exception):
    """Raised when a token cannot be resolved or credentials are rejected."""

    def __init__(self, message: str = "Unauthorized", status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class AuthUser:
    """The subset of the auth service's user object this app relies on."""

    id: UUID
    email: str | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AuthUser":
        try:
            user_id = UUID(str(payload["id"]))
        except (KeyError, ValueError) as e:
            raise AuthError("Auth service returned a user without a valid id") from e
        return cls(id=user_id, email=payload.get("email"))


@dataclass
class AuthSession:
    """Tokens returned by a successful sign-in."""

    access_token: str
    refresh_token: str | None
    expires_in: int | None
    user: AuthUser


def bearer_token(authorization: str | None) -> str | None:
    """Return the token from an `Authorization: Bearer <token>` header, if any."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class SupabaseAuthClient:
    """
    Async client for the auth REST API.

    Usage:
        async with SupabaseAuthClient() as auth:
            user = await auth.get_user(token)
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.auth_url).rstrip("/")
        self.api_key = api_key or settings.supabase_anon_key or settings.supabase_service_role_key
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "SupabaseAuthClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"apikey": self.api_key},
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Auth client must be used as async context manager: "
                "async with SupabaseAuthClient() as auth: ..."
            )
        return self._client

    async def get_user(self, token: str | None) -> AuthUser:
        """Resolve an access token to its user, or raise AuthError."""
        if not token:
            raise AuthError("Missing access token")

        response = await self.client.get(
            "/user",
            headers={"Authorization": f"Bearer {token}"},
        )
        if response.status_code != 200:
            logger.warning("Auth error", status_code=response.status_code, body=response.text[:500])
            raise AuthError("Unauthorized", status_code=response.status_code)

        return AuthUser.from_payload(response.json())

    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        """Exchange email + password for an access token."""
        response = await self.client.post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if response.status_code != 200:
            raise AuthError(self._error_message(response, "Invalid login credentials"), response.status_code)

        data = response.json()
        logger.info("User signed in", email=email)
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            user=AuthUser.from_payload(data.get("user") or {}),
        )

    async def sign_up(self, email: str, password: str) -> AuthSession | None:
        """
        Register a new user.

        Returns a session when the project auto-confirms sign-ups, or None
        when the user must confirm their email first.
        """
        response = await self.client.post("/signup", json={"email": email, "password": password})
        if response.status_code not in (200, 201):
            raise AuthError(self._error_message(response, "Sign up failed"), response.status_code)

        data = response.json()
        logger.info("User signed up", email=email)
        if not data.get("access_token"):
            return None
        return AuthSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_in=data.get("expires_in"),
            user=AuthUser.from_payload(data.get("user") or {}),
        )

    async def sign_out(self, token: str) -> None:
        """Revoke the session behind a token; failures are logged, not raised."""
        response = await self.client.post("/logout", headers={"Authorization": f"Bearer {token}"})
        if response.status_code not in (200, 204):
            logger.warning("Sign out failed", status_code=response.status_code)

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        try:
            data = response.json()
        except ValueError:
            return default
        return data.get("error_description") or data.get("msg") or data.get("message") or default
