"""Integration tests for the server-rendered pages."""

from urllib.parse import parse_qs, urlparse

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.db import Document, DocumentStatus, ExtractedKnowledge
from src.services.llm_client import LLMRateLimitError, MockLLMClient

pytestmark = pytest.mark.asyncio


def redirect_target(response) -> tuple[str, dict[str, list[str]]]:
    location = urlparse(response.headers["location"])
    return location.path, parse_qs(location.query)


class TestLanding:
    async def test_renders(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/")

        assert response.status_code == 200
        assert "Smart Knowledge Extraction" in response.text
        assert 'href="http://test/auth"' in response.text


class TestAuthPages:
    async def test_sign_in_form(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/auth")

        assert response.status_code == 200
        assert 'name="password"' in response.text

    async def test_signed_in_user_goes_to_dashboard(self, signed_in_client: AsyncClient) -> None:
        response = await signed_in_client.get("/auth")

        assert response.status_code == 303
        assert redirect_target(response)[0] == "/dashboard"

    async def test_sign_in_sets_session_cookie(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/auth", data={"email": "ada@example.com", "password": "correct-horse"}
        )

        assert response.status_code == 303
        assert redirect_target(response)[0] == "/dashboard"
        assert response.cookies[settings.session_cookie_name] == "valid-token"

    async def test_sign_in_failure(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/auth", data={"email": "ada@example.com", "password": "wrong"}
        )

        assert response.status_code == 401
        assert "Invalid login credentials" in response.text

    async def test_sign_up_needing_confirmation(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/auth/sign-up", data={"email": "confirm@example.com", "password": "pw"}
        )

        path, query = redirect_target(response)
        assert path == "/auth"
        assert query["notice"] == ["Check your email to confirm your account."]

    async def test_sign_up_rejected(self, async_client: AsyncClient) -> None:
        response = await async_client.post(
            "/auth/sign-up", data={"email": "taken@example.com", "password": "pw"}
        )

        assert response.status_code == 400
        assert "User already registered" in response.text

    async def test_sign_out_clears_cookie(self, signed_in_client: AsyncClient) -> None:
        response = await signed_in_client.post("/auth/sign-out")

        assert response.status_code == 303
        assert redirect_target(response)[0] == "/auth"
        assert f'{settings.session_cookie_name}=""' in response.headers["set-cookie"]


class TestDashboard:
    async def test_requires_session(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/dashboard")

        assert response.status_code == 303
        assert redirect_target(response)[0] == "/auth"

    async def test_invalid_session(self, async_client: AsyncClient) -> None:
        async_client.cookies.set(settings.session_cookie_name, "expired")

        response = await async_client.get("/dashboard")

        assert response.status_code == 303

    async def test_empty_states(self, signed_in_client: AsyncClient) -> None:
        response = await signed_in_client.get("/dashboard")

        assert response.status_code == 200
        assert "No documents yet. Upload one to get started!" in response.text
        assert "Select a document" in response.text

    async def test_lists_documents_with_status(
        self,
        signed_in_client: AsyncClient,
        processing_document: Document,
        completed_document: Document,
        other_users_document: Document,
    ) -> None:
        response = await signed_in_client.get("/dashboard")

        text = response.text
        assert text.index("notes.txt") < text.index("photosynthesis.pdf")
        assert "private.txt" not in text
        assert "icon-spinner" in text
        assert "icon-check" in text
        assert "badge badge-secondary" in text

    async def test_document_still_processing(
        self,
        signed_in_client: AsyncClient,
        processing_document: Document,
    ) -> None:
        response = await signed_in_client.get(f"/dashboard?document={processing_document.id}")

        assert "No insights yet" in response.text
        assert "This document is still being processed" in response.text
        assert "document selected" in response.text

    async def test_knowledge_view(
        self,
        signed_in_client: AsyncClient,
        completed_document: Document,
    ) -> None:
        response = await signed_in_client.get(f"/dashboard?document={completed_document.id}")

        text = response.text
        assert "An overview of photosynthesis and the role of chlorophyll." in text
        assert "photosynthesis (4)" in text
        assert 'class="badge badge-high"' in text
        assert 'class="badge badge-medium"' in text
        assert 'class="badge badge-low"' in text
        assert 'class="entity entity-person"' in text
        assert 'class="entity entity-organization"' in text
        assert "Plants convert light into chemical energy." in text
        assert 'id="relationships"' in text
        assert "affiliated_with" in text

    async def test_relationships_hidden_when_empty(
        self,
        signed_in_client: AsyncClient,
        db_session: AsyncSession,
        document_factory,
        user_id,
    ) -> None:
        document = await document_factory(title="plain.txt", status=DocumentStatus.COMPLETED)
        db_session.add(
            ExtractedKnowledge(
                user_id=user_id,
                document_id=document.id,
                keywords=[{"term": "plain", "frequency": 1, "relevance": "unknown"}],
                entities=[{"name": "Thing", "type": "gadget", "context": "A thing."}],
                summary="Plain.",
            )
        )
        await db_session.commit()

        response = await signed_in_client.get(f"/dashboard?document={document.id}")

        text = response.text
        assert "Plain." in text
        assert 'id="relationships"' not in text
        assert 'class="badge badge-low"' in text
        assert 'class="entity entity-other"' in text

    async def test_other_users_document_shows_no_knowledge(
        self,
        signed_in_client: AsyncClient,
        other_users_document: Document,
    ) -> None:
        response = await signed_in_client.get(f"/dashboard?document={other_users_document.id}")

        assert "No insights yet" in response.text


class TestUpload:
    @pytest.mark.parametrize(
        ("filename", "content_type"),
        [
            ("report.txt", "text/plain"),
            ("report.csv", "text/csv"),
            ("report.pdf", "application/pdf"),
        ],
    )
    async def test_upload_processes_document(
        self,
        signed_in_client: AsyncClient,
        db_session: AsyncSession,
        storage_recorder,
        mock_llm: MockLLMClient,
        user_id,
        text_pdf: bytes,
        filename: str,
        content_type: str,
    ) -> None:
        extension = filename.rsplit(".", 1)[-1]
        data = text_pdf if extension == "pdf" else b"Acme Corp opened an office in Berlin."

        response = await signed_in_client.post(
            "/dashboard/upload",
            files={"files": (filename, data, content_type)},
        )

        path, query = redirect_target(response)
        assert response.status_code == 303
        assert path == "/dashboard"
        assert query["notice"] == ["Document processed and insights extracted."]

        document = (await db_session.execute(select(Document))).scalar_one()
        assert document.title == filename
        assert document.file_type == extension
        assert document.user_id == user_id
        assert document.status == DocumentStatus.COMPLETED
        assert list(storage_recorder.objects) == [f"documents/{document.file_path}"]
        assert len(mock_llm.calls) == 1
        assert "Berlin" in mock_llm.calls[0][1].content

        knowledge = (await db_session.execute(select(ExtractedKnowledge))).scalars().all()
        assert [row.document_id for row in knowledge] == [document.id]

    async def test_only_first_file_is_processed(
        self,
        signed_in_client: AsyncClient,
        db_session: AsyncSession,
    ) -> None:
        await signed_in_client.post(
            "/dashboard/upload",
            files=[
                ("files", ("first.txt", b"one", "text/plain")),
                ("files", ("second.txt", b"two", "text/plain")),
            ],
        )

        titles = (await db_session.execute(select(Document.title))).scalars().all()
        assert titles == ["first.txt"]

    async def test_unsupported_file(
        self,
        signed_in_client: AsyncClient,
        db_session: AsyncSession,
        storage_recorder,
    ) -> None:
        response = await signed_in_client.post(
            "/dashboard/upload",
            files={"files": ("image.png", b"\x89PNG", "image/png")},
        )

        _, query = redirect_target(response)
        assert query["error"] == ["Unsupported file type: image.png"]
        assert storage_recorder.objects == {}
        assert (await db_session.execute(select(Document))).first() is None

    async def test_not_signed_in(self, async_client: AsyncClient, storage_recorder) -> None:
        response = await async_client.post(
            "/dashboard/upload",
            files={"files": ("report.txt", b"text", "text/plain")},
        )

        _, query = redirect_target(response)
        assert query["error"] == ["Not authenticated"]
        assert storage_recorder.objects == {}

    async def test_model_failure_keeps_stored_document(
        self,
        signed_in_client: AsyncClient,
        db_session: AsyncSession,
        storage_recorder,
        mock_llm: MockLLMClient,
    ) -> None:
        mock_llm.set_responses([LLMRateLimitError("Rate limit exceeded. Please try again later.")])

        response = await signed_in_client.post(
            "/dashboard/upload",
            files={"files": ("report.txt", b"text", "text/plain")},
        )

        _, query = redirect_target(response)
        assert query["error"] == ["Rate limit exceeded. Please try again later."]
        assert len(storage_recorder.objects) == 1
        status = (await db_session.execute(select(Document.status))).scalar_one()
        assert status == DocumentStatus.PROCESSING
