"""Shared FastAPI dependencies: external clients and the two auth gates."""

from collections.abc import AsyncGenerator, Callable

from fastapi import Depends, Header, HTTPException, Request, status

from src.core.config import settings
from src.core.logging import bind_context
from src.services.auth import AuthError, AuthUser, SupabaseAuthClient, bearer_token
from src.services.llm_client import BaseLLMClient, get_llm_client
from src.services.storage import StorageClient

LLMClientFactory = Callable[[], BaseLLMClient]


class LoginRequiredError(Exception):
    """Raised by page routes when there is no valid session; handled as a redirect to /auth."""


async def get_auth_client() -> AsyncGenerator[SupabaseAuthClient, None]:
    async with SupabaseAuthClient() as auth:
        yield auth


async def get_storage_client() -> AsyncGenerator[StorageClient, None]:
    async with StorageClient() as storage:
        yield storage


def get_llm_factory() -> LLMClientFactory:
    """
    Return a factory rather than a client so that a misconfigured gateway
    surfaces inside the route's own error handling.
    """
    return get_llm_client


async def get_current_user(
    authorization: str | None = Header(default=None),
    auth: SupabaseAuthClient = Depends(get_auth_client),
) -> AuthUser:
    """Bearer-token gate for the JSON API."""
    try:
        user = await auth.get_user(bearer_token(authorization))
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    bind_context(user_id=str(user.id))
    return user


def session_token(request: Request) -> str | None:
    return request.cookies.get(settings.session_cookie_name)


async def get_optional_session_user(
    request: Request,
    auth: SupabaseAuthClient = Depends(get_auth_client),
) -> AuthUser | None:
    """Resolve the session cookie to a user, or None when signed out."""
    token = session_token(request)
    if not token:
        return None
    try:
        user = await auth.get_user(token)
    except AuthError:
        return None
    bind_context(user_id=str(user.id))
    return user


async def get_session_user(
    user: AuthUser | None = Depends(get_optional_session_user),
) -> AuthUser:
    """Cookie-session gate for HTML pages."""
    if user is None:
        raise LoginRequiredError()
    return user
