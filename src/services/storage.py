"""
Client for the hosted object storage (Supabase Storage REST API).

Objects live in one bucket ("documents" by default) under
`<user_id>/<random_id>.<ext>`.
"""

from uuid import UUID, uuid4

import httpx

from src.core.config import settings
from src.core.logging import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Raised when the storage API rejects a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def build_object_path(user_id: UUID, extension: str) -> str:
    """
    Build a storage key namespaced by user with a fresh random object id.

    Example:
        build_object_path(uid, "pdf") -> "<uid>/<uuid4>.pdf"
    """
    return f"{user_id}/{uuid4()}.{extension}"


class StorageClient:
    """
    Async client for the storage REST API, authenticated with the service key.

    Usage:
        async with StorageClient() as storage:
            await storage.upload(path, data, content_type="text/plain")
    """

    def __init__(
        self,
        base_url: str | None = None,
        service_key: str | None = None,
        bucket: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.storage_url).rstrip("/")
        self.service_key = service_key or settings.supabase_service_role_key
        self.bucket = bucket or settings.storage_bucket
        self.timeout = timeout or settings.http_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "StorageClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self.service_key}",
                "apikey": self.service_key,
            },
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
                "Storage client must be used as async context manager: "
                "async with StorageClient() as storage: ..."
            )
        return self._client

    async def upload(self, path: str, data: bytes, content_type: str | None = None) -> str:
        """Upload bytes to `<bucket>/<path>`; returns the object key."""
        response = await self.client.post(
            f"/object/{self.bucket}/{path}",
            content=data,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "x-upsert": "false",
            },
        )
        if not response.is_success:
            message = self._error_message(response)
            logger.error("Storage upload failed", path=path, status_code=response.status_code, error=message)
            raise StorageError(message, status_code=response.status_code)

        logger.info("Stored object", bucket=self.bucket, path=path, size=len(data))
        return path

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError:
            return f"Storage API returned status {response.status_code}"
        return data.get("message") or data.get("error") or f"Storage API returned status {response.status_code}"
