"""Documents attached to a process: upload, listing, download, removal and preview links."""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import text

from ..storage import StorageClient, generate_process_key, get_storage, validate_upload
from .manager import ProcessManager, get_process_manager
from .models import DocumentRecord

logger = logging.getLogger(__name__)


class DocumentNotFoundError(LookupError):
    """The document does not belong to the process."""


@dataclass
class SignedDocuments:
    """Preview links for the documents of a process."""

    urls: dict[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


class DocumentService:
    """Stores uploaded files and their ``documents`` rows."""

    def __init__(
        self,
        manager: ProcessManager | None = None,
        storage: StorageClient | None = None,
    ):
        self._manager = manager or get_process_manager()
        self._storage = storage

    @property
    def storage(self) -> StorageClient:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    async def upload(
        self,
        process_id: UUID,
        filename: str,
        content: bytes,
        content_type: str,
        user_id: str | None,
        cpf: str | None = None,
        category: str = "documents",
        description: str | None = None,
        is_confidential: bool = False,
    ) -> DocumentRecord:
        """Validate, store and register an uploaded file.

        Raises:
            UploadRejected: Size or MIME type not allowed
        """
        process = await self._manager.get_process(process_id, user_id, cpf)
        validate_upload(filename, content_type, len(content))

        # Files always live under the owner's prefix, even for delegated uploads
        key = generate_process_key(process.user_id or user_id, str(process_id), filename, category)
        await asyncio.to_thread(self.storage.upload_file, content, key, content_type=content_type)

        document = DocumentRecord(
            id=uuid4(),
            process_id=process_id,
            name=filename,
            file_path=key,
            file_type=content_type,
            file_size=len(content),
            category=category,
            description=description,
            is_confidential=is_confidential,
            uploaded_by=user_id,
            created_at=datetime.utcnow(),
        )

        async with self._manager._get_session() as session:
            await session.execute(
                text("""
                INSERT INTO documents (
                    id, process_id, name, file_path, file_type, file_size,
                    category, description, is_confidential, uploaded_by, created_at
                ) VALUES (
                    :id, :process_id, :name, :file_path, :file_type, :file_size,
                    :category, :description, :is_confidential, :uploaded_by, :created_at
                )
                """),
                {
                    **document.model_dump(),
                    "id": str(document.id),
                    "process_id": str(process_id),
                },
            )

        logger.info(f"Uploaded {key} ({len(content)} bytes) to process {process_id}")
        return document

    async def list_documents(
        self,
        process_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
    ) -> list[DocumentRecord]:
        """Documents of a process, newest first."""
        await self._manager.get_process(process_id, user_id, cpf)
        async with self._manager._get_session() as session:
            result = await session.execute(
                text("""
                SELECT id, process_id, name, file_path, file_type, file_size,
                       category, description, is_confidential, uploaded_by, created_at
                FROM documents
                WHERE process_id = :process_id
                ORDER BY created_at DESC
                """),
                {"process_id": str(process_id)},
            )
            return [DocumentRecord.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def download(
        self,
        process_id: UUID,
        document_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
    ) -> tuple[DocumentRecord, bytes]:
        """Fetch a stored document and its bytes.

        Raises:
            DocumentNotFoundError: The document does not belong to the process
        """
        documents = await self.list_documents(process_id, user_id, cpf)
        document = next((d for d in documents if d.id == document_id), None)
        if document is None:
            raise DocumentNotFoundError(f"Documento {document_id} não encontrado")
        return document, await asyncio.to_thread(self.storage.download_file, document.file_path)

    async def delete(
        self,
        process_id: UUID,
        document_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
    ) -> None:
        """Remove a document row and its stored object.

        Raises:
            DocumentNotFoundError: The document does not belong to the process
        """
        await self._manager.get_process(process_id, user_id, cpf)
        async with self._manager._get_session() as session:
            result = await session.execute(
                text("""
                DELETE FROM documents
                WHERE id = :id AND process_id = :process_id
                RETURNING file_path
                """),
                {"id": str(document_id), "process_id": str(process_id)},
            )
            row = result.fetchone()
        if row is None:
            raise DocumentNotFoundError(f"Documento {document_id} não encontrado")
        await asyncio.to_thread(self.storage.delete_file, row.file_path)
        logger.info(f"Deleted document {document_id} ({row.file_path}) of process {process_id}")

    def sign(self, documents: list[DocumentRecord], expiration: int | None = None) -> SignedDocuments:
        """Generate preview URLs; a failure for one document is only a warning."""
        signed = SignedDocuments()
        for document in documents:
            try:
                signed.urls[str(document.id)] = self.storage.generate_presigned_url(
                    document.file_path, expiration
                )
            except Exception as e:
                logger.warning(f"Could not sign {document.file_path}: {e}")
                signed.warnings.append(f"Falha ao gerar link de {document.name}: {e}")
        return signed


# Singleton instance
_document_service: DocumentService | None = None


def get_document_service() -> DocumentService:
    """Get the document service singleton."""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
