"""API endpoints for excerpt extraction and the assistant endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from pydantic import BaseModel, Field

from ..extraction.lexicons import ExtractionCategory
from ..extraction.llm import LLMClient, get_llm_client
from ..extraction.pipeline import ExtractionPipeline, ExtractionResult, get_extraction_pipeline
from ..processes.manager import ProcessManager, get_process_manager
from ..processes.models import AnnexRow, EPIItem
from . import ServiceUnavailableError, ValidationError
from .auth import CurrentUser

router = APIRouter(prefix="/extraction", tags=["extraction"])


class ExtractTextRequest(BaseModel):
    text: str
    categories: list[ExtractionCategory] = Field(
        default_factory=lambda: [ExtractionCategory.INSALUBRIDADE]
    )


class CategoryResult(BaseModel):
    category: str
    method: str
    content: str


class ExtractionResponse(BaseModel):
    content: str
    found: bool
    results: list[CategoryResult]


class TextResponse(BaseModel):
    content: str


def to_response(result: ExtractionResult) -> ExtractionResponse:
    return ExtractionResponse(
        content=result.content,
        found=result.found,
        results=[CategoryResult(category=r.category, method=r.method, content=r.content)
                 for r in result.results],
    )


def get_pipeline() -> ExtractionPipeline:
    """Pipeline dependency with the default configuration."""
    return get_extraction_pipeline()


def _categories(raw: str) -> list[ExtractionCategory]:
    try:
        return [ExtractionCategory(c.strip()) for c in raw.split(",") if c.strip()]
    except ValueError:
        allowed = ", ".join(c.value for c in ExtractionCategory)
        raise ValidationError(f"Categoria inválida. Use: {allowed}")


@router.post("/text", response_model=ExtractionResponse)
async def extract_text(
    request: ExtractTextRequest,
    user: CurrentUser,
    pipeline: ExtractionPipeline = Depends(get_pipeline),
) -> ExtractionResponse:
    """Extract category excerpts from pasted text."""
    if not request.text.strip():
        raise ValidationError("Texto vazio")
    result = await pipeline.extract(request.text, request.categories)
    return to_response(result)


@router.post("/file", response_model=ExtractionResponse)
async def extract_file(
    user: CurrentUser,
    file: UploadFile = File(...),
    categories: str = Form(ExtractionCategory.INSALUBRIDADE.value),
    pipeline: ExtractionPipeline = Depends(get_pipeline),
) -> ExtractionResponse:
    """Extract category excerpts from an uploaded PDF, DOCX or text file."""
    content = await file.read()
    try:
        result = await pipeline.extract_document(
            content, file.filename or "", _categories(categories), file.content_type
        )
    except ValueError as e:
        raise ValidationError(str(e))
    return to_response(result)


# =============================================================================
# Assistant endpoints (optional, configured by URL)
# =============================================================================


class ProofreadRequest(BaseModel):
    text: str


class EvaluateInsalubrityRequest(BaseModel):
    """Evaluate the annexes of a process, or the ones sent."""

    process_id: UUID | None = None
    annexes: list[AnnexRow] = Field(default_factory=list)
    epis: list[EPIItem] = Field(default_factory=list)


class EvaluateEpiRequest(BaseModel):
    text: str = ""
    epis: list[EPIItem] = Field(default_factory=list)


def _require(content: str | None, name: str) -> TextResponse:
    if not content:
        raise ServiceUnavailableError(f"{name} não configurado ou indisponível")
    return TextResponse(content=content)


@router.post("/proofread", response_model=TextResponse)
async def proofread(
    request: ProofreadRequest,
    user: CurrentUser,
    llm: LLMClient = Depends(get_llm_client),
) -> TextResponse:
    """Spelling and grammar review of a narrative field."""
    if not request.text.strip():
        raise ValidationError("Nada para revisar")
    return _require(await llm.proofread(request.text.strip()), "LLM de revisão")


@router.post("/audio/transcription", response_model=TextResponse)
async def transcribe_audio(
    user: CurrentUser,
    audio: UploadFile = File(...),
    llm: LLMClient = Depends(get_llm_client),
) -> TextResponse:
    content = await audio.read()
    result = await llm.transcribe_audio(audio.filename or "audio", content, audio.content_type or "audio/webm")
    return _require(result, "Transcrição de áudio")


@router.post("/audio/activities", response_model=TextResponse)
async def audio_activities(
    user: CurrentUser,
    file: UploadFile = File(...),
    llm: LLMClient = Depends(get_llm_client),
) -> TextResponse:
    content = await file.read()
    result = await llm.extract_activities(file.filename or "audio", content, file.content_type or "audio/webm")
    return _require(result, "Extração de atividades")


@router.post("/audio/attendees", response_model=list[str])
async def audio_attendees(
    user: CurrentUser,
    file: UploadFile = File(...),
    llm: LLMClient = Depends(get_llm_client),
) -> list[str]:
    content = await file.read()
    result = await llm.extract_attendees(file.filename or "audio", content, file.content_type or "audio/webm")
    if result is None:
        raise ServiceUnavailableError("Extração de acompanhantes não configurada ou indisponível")
    return result


@router.post("/evaluate/insalubrity", response_model=TextResponse)
async def evaluate_insalubrity(
    request: EvaluateInsalubrityRequest,
    user: CurrentUser,
    llm: LLMClient = Depends(get_llm_client),
    manager: ProcessManager = Depends(get_process_manager),
) -> TextResponse:
    """NR-15 evaluation from the annex table and EPIs."""
    annexes, epis = request.annexes, request.epis
    if request.process_id is not None:
        process = await manager.get_process(request.process_id, user.id, user.cpf)
        annexes = annexes or process.report_config.analysis_tables.nr15
        epis = epis or [e for e in process.epis if isinstance(e, EPIItem)]
    return _require(await llm.evaluate_insalubrity(annexes, epis), "Avaliação de insalubridade")


@router.post("/evaluate/epi-periodicity", response_model=TextResponse)
async def evaluate_epi_periodicity(
    request: EvaluateEpiRequest,
    user: CurrentUser,
    llm: LLMClient = Depends(get_llm_client),
) -> TextResponse:
    return _require(await llm.evaluate_epi_periodicity(request.text, request.epis), "Avaliação de periodicidade")


@router.post("/evaluate/epi-usage", response_model=TextResponse)
async def evaluate_epi_usage(
    request: EvaluateEpiRequest,
    user: CurrentUser,
    llm: LLMClient = Depends(get_llm_client),
) -> TextResponse:
    return _require(await llm.evaluate_epi_usage(request.text, request.epis), "Avaliação de uso de EPI")


@router.post("/ocr", response_model=TextResponse)
async def ocr(
    user: CurrentUser,
    file: UploadFile = File(...),
    pipeline: ExtractionPipeline = Depends(get_pipeline),
) -> TextResponse:
    """Text of a document, using OCR when it has no text layer."""
    content = await file.read()
    try:
        text = await pipeline.document_text(content, file.filename or "", file.content_type)
    except ValueError:
        text = await pipeline.llm.ocr(file.filename or "", content, file.content_type or "application/octet-stream")
    return _require(text, "OCR")
