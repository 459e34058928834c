"""Unit tests for the process document service.

Run with: pytest tests/unit/processes/test_documents.py -v
"""

from contextlib import asynccontextmanager

import pytest
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

from laudos.processes.documents import DocumentNotFoundError, DocumentService
from laudos.processes.models import DocumentRecord
from laudos.storage import UploadRejected


@pytest.fixture
def session():
    session = MagicMock()
    session.execute = AsyncMock(return_value=MagicMock())
    return session


@pytest.fixture
def manager(minimal_process, session):
    manager = MagicMock()
    manager.get_process = AsyncMock(return_value=minimal_process)

    @asynccontextmanager
    async def get_session():
        yield session

    manager._get_session = get_session
    return manager


@pytest.fixture
def storage():
    return MagicMock()


def document_row(document: DocumentRecord) -> MagicMock:
    row = MagicMock()
    row._mapping = document.model_dump()
    return row


class TestUpload:
    """Tests for storing uploaded files."""

    @pytest.mark.asyncio
    async def test_upload_under_owner_prefix(self, manager, storage, session, minimal_process):
        """Test that delegated uploads land under the owner's prefix."""
        service = DocumentService(manager=manager, storage=storage)

        document = await service.upload(
            minimal_process.id,
            "Petição Inicial.pdf",
            b"%PDF-1.4",
            "application/pdf",
            user_id="assistant-9",
            cpf="52998224725",
        )

        assert document.file_path.startswith(f"user-1/{minimal_process.id}/documents/")
        assert document.file_path.endswith("-Peticao_Inicial.pdf")
        assert document.uploaded_by == "assistant-9"
        assert document.file_size == 8
        storage.upload_file.assert_called_once_with(
            b"%PDF-1.4", document.file_path, content_type="application/pdf"
        )
        params = session.execute.await_args.args[1]
        assert params["process_id"] == str(minimal_process.id)
        manager.get_process.assert_awaited_once_with(minimal_process.id, "assistant-9", "52998224725")

    @pytest.mark.asyncio
    async def test_rejected_type_is_not_stored(self, manager, storage, session, minimal_process):
        """Test that a disallowed MIME type stops before storage."""
        service = DocumentService(manager=manager, storage=storage)

        with pytest.raises(UploadRejected):
            await service.upload(minimal_process.id, "virus.exe", b"MZ", "application/x-msdownload", "user-1")

        storage.upload_file.assert_not_called()
        session.execute.assert_not_awaited()


class TestDownloadAndDelete:
    """Tests for fetching and removing documents."""

    @pytest.mark.asyncio
    async def test_download(self, manager, storage, session, minimal_process):
        """Test that the stored bytes are returned with the record."""
        document = DocumentRecord(process_id=minimal_process.id, name="a.pdf", file_path="user-1/p/a.pdf")
        session.execute.return_value.fetchall.return_value = [document_row(document)]
        storage.download_file.return_value = b"conteudo"
        service = DocumentService(manager=manager, storage=storage)

        record, content = await service.download(minimal_process.id, document.id, "user-1")

        assert record.id == document.id
        assert content == b"conteudo"
        storage.download_file.assert_called_once_with("user-1/p/a.pdf")

    @pytest.mark.asyncio
    async def test_download_unknown_document(self, manager, storage, session, minimal_process):
        """Test a document id that is not attached to the process."""
        session.execute.return_value.fetchall.return_value = []
        service = DocumentService(manager=manager, storage=storage)

        with pytest.raises(DocumentNotFoundError):
            await service.download(minimal_process.id, uuid4(), "user-1")

    @pytest.mark.asyncio
    async def test_delete(self, manager, storage, session, minimal_process):
        """Test that the row and the object are removed."""
        session.execute.return_value.fetchone.return_value = MagicMock(file_path="user-1/p/a.pdf")
        service = DocumentService(manager=manager, storage=storage)

        await service.delete(minimal_process.id, uuid4(), "user-1")

        storage.delete_file.assert_called_once_with("user-1/p/a.pdf")

    @pytest.mark.asyncio
    async def test_delete_unknown_document(self, manager, storage, session, minimal_process):
        """Test that nothing is removed from storage for an unknown id."""
        session.execute.return_value.fetchone.return_value = None
        service = DocumentService(manager=manager, storage=storage)

        with pytest.raises(DocumentNotFoundError):
            await service.delete(minimal_process.id, uuid4(), "user-1")

        storage.delete_file.assert_not_called()


class TestSign:
    """Tests for preview links."""

    def test_failures_become_warnings(self, manager, storage, minimal_process):
        """Test that one failing document does not block the others."""
        good = DocumentRecord(process_id=minimal_process.id, name="a.pdf", file_path="k/a.pdf")
        bad = DocumentRecord(process_id=minimal_process.id, name="b.pdf", file_path="k/b.pdf")
        storage.generate_presigned_url.side_effect = ["https://s3/a", RuntimeError("denied")]
        service = DocumentService(manager=manager, storage=storage)

        signed = service.sign([good, bad])

        assert signed.urls == {str(good.id): "https://s3/a"}
        assert signed.warnings == ["Falha ao gerar link de b.pdf: denied"]
