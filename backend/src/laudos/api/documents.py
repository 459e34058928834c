"""API endpoints for process documents."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel

from ..extraction.lexicons import ExtractionCategory
from ..extraction.pipeline import ExtractionPipeline
from ..processes.documents import DocumentNotFoundError, DocumentService, get_document_service
from ..processes.models import DocumentRecord
from . import NotFoundError, ValidationError
from .auth import CurrentUser
from .extraction import ExtractionResponse, get_pipeline, to_response

router = APIRouter(prefix="/processes/{process_id}/documents", tags=["documents"])


class SignedUrlsResponse(BaseModel):
    """Preview links keyed by document ID."""

    urls: dict[str, str]
    warnings: list[str]


@router.get("", response_model=list[DocumentRecord])
async def list_documents(
    process_id: UUID,
    user: CurrentUser,
    service: DocumentService = Depends(get_document_service),
) -> list[DocumentRecord]:
    """Documents of a process, newest first."""
    return await service.list_documents(process_id, user.id, user.cpf)


@router.post("", response_model=DocumentRecord, status_code=201)
async def upload_document(
    process_id: UUID,
    user: CurrentUser,
    file: UploadFile = File(...),
    category: str = Form("documents"),
    description: str | None = Form(None),
    is_confidential: bool = Form(False),
    service: DocumentService = Depends(get_document_service),
) -> DocumentRecord:
    """Upload a file to the process after size and type checks."""
    content = await file.read()
    return await service.upload(
        process_id,
        file.filename or "arquivo",
        content,
        file.content_type or "application/octet-stream",
        user.id,
        cpf=user.cpf,
        category=category,
        description=description,
        is_confidential=is_confidential,
    )


@router.get("/signed-urls", response_model=SignedUrlsResponse)
async def signed_urls(
    process_id: UUID,
    user: CurrentUser,
    expiration: int | None = Query(default=None, ge=60, le=604800),
    service: DocumentService = Depends(get_document_service),
) -> SignedUrlsResponse:
    """Time-limited preview links for every document of the process."""
    documents = await service.list_documents(process_id, user.id, user.cpf)
    signed = service.sign(documents, expiration)
    return SignedUrlsResponse(urls=signed.urls, warnings=signed.warnings)


@router.post("/{document_id}/extract", response_model=ExtractionResponse)
async def extract_document(
    process_id: UUID,
    document_id: UUID,
    user: CurrentUser,
    categories: list[ExtractionCategory] = Query(default=[ExtractionCategory.INSALUBRIDADE]),
    service: DocumentService = Depends(get_document_service),
    pipeline: ExtractionPipeline = Depends(get_pipeline),
) -> ExtractionResponse:
    """Extract category excerpts from a document already attached to the process."""
    try:
        document, content = await service.download(process_id, document_id, user.id, user.cpf)
    except DocumentNotFoundError:
        raise NotFoundError("Documento", document_id)
    try:
        result = await pipeline.extract_document(content, document.name, categories, document.file_type)
    except ValueError as e:
        raise ValidationError(str(e))
    return to_response(result)


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    process_id: UUID,
    document_id: UUID,
    user: CurrentUser,
    service: DocumentService = Depends(get_document_service),
) -> None:
    """Remove a document and its stored file."""
    try:
        await service.delete(process_id, document_id, user.id, user.cpf)
    except DocumentNotFoundError:
        raise NotFoundError("Documento", document_id)
