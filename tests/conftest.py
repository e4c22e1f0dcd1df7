"""Pytest configuration and shared fixtures.

The app runs against an in-memory SQLite database, and the hosted auth and
storage APIs are replaced with httpx.MockTransport handlers. The LLM is a
MockLLMClient whose answers each test can queue.
"""

import json
from collections.abc import AsyncGenerator, Generator
from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import UUID

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.api.deps import get_auth_client, get_llm_factory, get_storage_client
from src.core.config import settings
from src.db import Base, Document, DocumentStatus, ExtractedKnowledge, get_db
from src.main import app
from src.services.auth import SupabaseAuthClient
from src.services.llm_client import MockLLMClient
from src.services.storage import StorageClient

TEST_USER_ID = UUID("0190f5a4-1111-7000-8000-000000000001")
OTHER_USER_ID = UUID("0190f5a4-2222-7000-8000-000000000002")

VALID_TOKEN = "valid-token"
OTHER_TOKEN = "other-token"

AUTH_BASE_URL = "http://auth.test/auth/v1"
STORAGE_BASE_URL = "http://storage.test/storage/v1"

USERS_BY_TOKEN = {
    VALID_TOKEN: {"id": str(TEST_USER_ID), "email": "ada@example.com"},
    OTHER_TOKEN: {"id": str(OTHER_USER_ID), "email": "bob@example.com"},
}


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Create a synchronous test client for FastAPI."""
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """A session on a fresh in-memory database with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with async_session() as session:
        yield session

    await engine.dispose()


# =============================================================================
# External services
# =============================================================================


def auth_handler(request: httpx.Request) -> httpx.Response:
    """Fake GoTrue: resolves the two known tokens and accepts one password."""
    path = request.url.path

    if path.endswith("/user"):
        token = request.headers.get("authorization", "").removeprefix("Bearer ").strip()
        user = USERS_BY_TOKEN.get(token)
        if user is None:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=user)

    if path.endswith("/token"):
        body = json.loads(request.content)
        if body.get("password") != "correct-horse":
            return httpx.Response(400, json={"error_description": "Invalid login credentials"})
        return httpx.Response(
            200,
            json={
                "access_token": VALID_TOKEN,
                "refresh_token": "refresh",
                "expires_in": 3600,
                "user": USERS_BY_TOKEN[VALID_TOKEN],
            },
        )

    if path.endswith("/signup"):
        body = json.loads(request.content)
        if body["email"].startswith("taken"):
            return httpx.Response(422, json={"msg": "User already registered"})
        if body["email"].startswith("confirm"):
            return httpx.Response(200, json={"id": str(OTHER_USER_ID), "email": body["email"]})
        return httpx.Response(
            200,
            json={
                "access_token": VALID_TOKEN,
                "expires_in": 3600,
                "user": USERS_BY_TOKEN[VALID_TOKEN],
            },
        )

    if path.endswith("/logout"):
        return httpx.Response(204)

    return httpx.Response(404)


class StorageRecorder:
    """Records objects written through the fake storage API."""

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.fail_with: int | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"message": "Bucket not found"})
        key = request.url.path.split("/object/", 1)[1]
        self.objects[key] = request.content
        return httpx.Response(200, json={"Key": key})


@pytest.fixture
def auth_transport() -> httpx.MockTransport:
    return httpx.MockTransport(auth_handler)


@pytest.fixture
def storage_recorder() -> StorageRecorder:
    return StorageRecorder()


@pytest.fixture
def mock_llm() -> MockLLMClient:
    return MockLLMClient()


# =============================================================================
# App clients
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession,
    auth_transport: httpx.MockTransport,
    storage_recorder: StorageRecorder,
    mock_llm: MockLLMClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an asynchronous test client for FastAPI with all externals overridden."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def override_get_auth_client() -> AsyncGenerator[SupabaseAuthClient, None]:
        async with SupabaseAuthClient(
            base_url=AUTH_BASE_URL,
            api_key="anon-key",
            transport=auth_transport,
        ) as auth:
            yield auth

    async def override_get_storage_client() -> AsyncGenerator[StorageClient, None]:
        async with StorageClient(
            base_url=STORAGE_BASE_URL,
            service_key="service-key",
            bucket="documents",
            transport=httpx.MockTransport(storage_recorder.handler),
        ) as storage:
            yield storage

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = override_get_auth_client
    app.dependency_overrides[get_storage_client] = override_get_storage_client
    app.dependency_overrides[get_llm_factory] = lambda: (lambda: mock_llm)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {VALID_TOKEN}"}


# =============================================================================
# Sample data
# =============================================================================


@pytest.fixture
def sample_extraction_result() -> dict[str, Any]:
    """A complete model answer."""
    return {
        "keywords": [
            {"term": "photosynthesis", "frequency": 4, "relevance": "high"},
            {"term": "chlorophyll", "frequency": 2, "relevance": "medium"},
            {"term": "sunlight", "frequency": 1, "relevance": "low"},
        ],
        "entities": [
            {"name": "Marie Curie", "type": "person", "context": "Marie Curie reviewed the findings."},
            {"name": "Sorbonne", "type": "organization", "context": "Research was done at the Sorbonne."},
            {"name": "Paris", "type": "location", "context": "The lab is in Paris."},
        ],
        "key_insights": [
            "Plants convert light into chemical energy.",
            "Chlorophyll absorbs mostly blue and red light.",
        ],
        "summary": "An overview of photosynthesis and the role of chlorophyll.",
        "relationships": [
            {
                "from": "Marie Curie",
                "to": "Sorbonne",
                "type": "affiliated_with",
                "description": "Marie Curie worked at the Sorbonne.",
            }
        ],
    }


def build_pdf(text: str) -> bytes:
    """A one-page PDF whose text layer contains `text` in Helvetica."""
    stream = f"BT /F1 12 Tf 20 100 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 300 144] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    out += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(out)


@pytest.fixture
def text_pdf() -> bytes:
    return build_pdf("Acme Corp opened an office in Berlin.")


def make_document(
    user_id: UUID = TEST_USER_ID,
    title: str = "notes.txt",
    status: DocumentStatus = DocumentStatus.PROCESSING,
    uploaded_at: datetime | None = None,
) -> Document:
    extension = title.rsplit(".", 1)[-1]
    return Document(
        user_id=user_id,
        title=title,
        file_type=extension,
        file_path=f"{user_id}/seed.{extension}",
        file_size=128,
        status=status,
        uploaded_at=uploaded_at or datetime.now(timezone.utc),
    )


@pytest_asyncio.fixture
async def processing_document(db_session: AsyncSession) -> Document:
    """A document of the test user that is waiting for extraction."""
    document = make_document()
    db_session.add(document)
    await db_session.commit()
    return document


@pytest_asyncio.fixture
async def other_users_document(db_session: AsyncSession) -> Document:
    document = make_document(user_id=OTHER_USER_ID, title="private.txt")
    db_session.add(document)
    await db_session.commit()
    return document


@pytest_asyncio.fixture
async def completed_document(
    db_session: AsyncSession,
    sample_extraction_result: dict[str, Any],
) -> Document:
    """A completed document of the test user with one knowledge row."""
    document = make_document(
        title="photosynthesis.pdf",
        status=DocumentStatus.COMPLETED,
        uploaded_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    db_session.add(document)
    await db_session.flush()
    db_session.add(
        ExtractedKnowledge(
            user_id=TEST_USER_ID,
            document_id=document.id,
            **sample_extraction_result,
        )
    )
    await db_session.commit()
    return document


@pytest.fixture
def user_id() -> UUID:
    """Id of the user behind VALID_TOKEN."""
    return TEST_USER_ID


@pytest.fixture
def other_user_id() -> UUID:
    return OTHER_USER_ID


@pytest.fixture
def document_factory(db_session: AsyncSession):
    """Insert and commit a document; keyword arguments as for make_document."""

    async def create(**kwargs: Any) -> Document:
        document = make_document(**kwargs)
        db_session.add(document)
        await db_session.commit()
        return document

    return create


@pytest.fixture
def signed_in_client(async_client: AsyncClient) -> AsyncClient:
    """The async client carrying a valid session cookie."""
    async_client.cookies.set(settings.session_cookie_name, VALID_TOKEN)
    return async_client
