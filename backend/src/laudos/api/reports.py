"""API endpoints for report generation and history."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse
from pydantic import AliasChoices, BaseModel, Field

from ..processes.models import ReportRecord, ReportType
from ..reports.generator import GeneratedReport, ReportGenerator, get_report_generator
from ..reports.remote import RemoteReportClient, get_remote_report_client
from . import APIResponse, ValidationError
from .auth import CurrentUser

router = APIRouter(prefix="/reports", tags=["reports"])
functions_router = APIRouter(prefix="/functions", tags=["functions"])


class GenerateReportRequest(BaseModel):
    """Request to generate a report."""

    report_type: ReportType = ReportType.COMPLETO
    persist: bool = True
    prefer_remote: bool = False


class GenerateReportFunctionRequest(BaseModel):
    """Function-style request body."""

    process_id: UUID = Field(validation_alias=AliasChoices("processId", "process_id"))
    report_type: str = Field(
        default=ReportType.COMPLETO.value,
        validation_alias=AliasChoices("reportType", "report_type"),
    )
    test_mode: bool = Field(default=False, validation_alias=AliasChoices("testMode", "test_mode"))


@router.post("/{process_id}", response_model=GeneratedReport)
async def generate_report(
    process_id: UUID,
    request: GenerateReportRequest,
    user: CurrentUser,
    generator: ReportGenerator = Depends(get_report_generator),
    remote: RemoteReportClient = Depends(get_remote_report_client),
) -> GeneratedReport:
    """Generate a report, optionally trying the remote function first."""
    if request.prefer_remote:
        return await remote.generate(
            process_id, user.id, user.cpf,
            report_type=request.report_type,
            access_token=user.token,
            persist=request.persist,
        )
    return await generator.generate(
        process_id, user.id, user.cpf,
        report_type=request.report_type,
        persist=request.persist,
    )


@router.post("/{process_id}/text", response_class=PlainTextResponse)
async def generate_report_text(
    process_id: UUID,
    user: CurrentUser,
    report_type: ReportType = ReportType.COMPLETO,
    generator: ReportGenerator = Depends(get_report_generator),
) -> str:
    """Generate a report and return only its text, without saving history."""
    report = await generator.generate(
        process_id, user.id, user.cpf, report_type=report_type, persist=False
    )
    return report.content


@router.get("/{process_id}/history", response_model=list[ReportRecord])
async def list_reports(
    process_id: UUID,
    user: CurrentUser,
    limit: int = Query(default=20, ge=1, le=100),
    generator: ReportGenerator = Depends(get_report_generator),
) -> list[ReportRecord]:
    """Generated reports of a process, newest first."""
    return await generator.list_reports(process_id, user.id, user.cpf, limit=limit)


@functions_router.post("/generate-report", response_model=APIResponse[dict])
async def generate_report_function(
    request: GenerateReportFunctionRequest,
    user: CurrentUser,
    generator: ReportGenerator = Depends(get_report_generator),
) -> APIResponse[dict]:
    """Function-style report generation with the ``{success, data}`` envelope."""
    try:
        report_type = ReportType(request.report_type)
    except ValueError:
        raise ValidationError(f"Tipo de relatório inválido: {request.report_type}")

    report = await generator.generate(
        request.process_id, user.id, user.cpf,
        report_type=report_type,
        persist=not request.test_mode,
    )
    return APIResponse(data={
        "reportContent": report.content,
        "conclusion": report.conclusion,
        "insalubrityGrade": report.insalubrity_grade,
        "periculosityIdentified": report.periculosity_identified,
        "processData": report.process_data.model_dump(),
        "statistics": {
            "riskAgentsCount": report.statistics.risk_agents_count,
            "questionnairesCount": report.statistics.questionnaires_count,
            "sectionsGenerated": report.statistics.sections_generated,
        },
    })
