"""Unit tests for the object storage client."""

from uuid import UUID

import httpx
import pytest

from src.services.storage import StorageClient, StorageError, build_object_path

USER_ID = UUID("0190f5a4-1111-7000-8000-000000000001")


class TestObjectPath:
    def test_namespaced_by_user(self) -> None:
        path = build_object_path(USER_ID, "pdf")

        prefix, name = path.split("/")
        assert prefix == str(USER_ID)
        assert name.endswith(".pdf")
        UUID(name.removesuffix(".pdf"))

    def test_fresh_object_id_per_call(self) -> None:
        assert build_object_path(USER_ID, "txt") != build_object_path(USER_ID, "txt")


class TestUpload:
    async def test_posts_bytes_to_bucket(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"Key": "documents/a/b.txt"})

        async with StorageClient(
            base_url="http://storage.test/storage/v1",
            service_key="service-key",
            bucket="documents",
            transport=httpx.MockTransport(handler),
        ) as storage:
            key = await storage.upload("a/b.txt", b"hello", content_type="text/plain")

        assert key == "a/b.txt"
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/storage/v1/object/documents/a/b.txt"
        assert request.content == b"hello"
        assert request.headers["content-type"] == "text/plain"
        assert request.headers["authorization"] == "Bearer service-key"
        assert request.headers["x-upsert"] == "false"

    async def test_rejection_raises(self) -> None:
        transport = httpx.MockTransport(
            lambda request: httpx.Response(400, json={"message": "The resource already exists"})
        )
        async with StorageClient(
            base_url="http://storage.test/storage/v1",
            service_key="k",
            transport=transport,
        ) as storage:
            with pytest.raises(StorageError) as exc_info:
                await storage.upload("a/b.txt", b"x")

        assert str(exc_info.value) == "The resource already exists"
        assert exc_info.value.status_code == 400
