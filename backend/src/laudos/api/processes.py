"""API endpoints for processes.

Provides CRUD, search, cascading delete, autosave, statistics, progress,
validation and the questionnaire / risk agent sub-resources.
"""

from datetime import date
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..processes.autosave import AutosaveBuffer, FlushResult, get_autosave_buffer
from ..processes.cascade import ProcessDeleter, get_process_deleter
from ..processes.manager import SORTABLE_COLUMNS, ProcessManager, get_process_manager
from ..processes.models import (
    CreateProcessRequest,
    DeleteProcessResult,
    ProcessListResponse,
    ProcessProgress,
    ProcessRecord,
    ProcessStatistics,
    QuestionnaireEntry,
    RiskAgent,
    UpdateProcessRequest,
    ValidationResult,
)
from ..processes.validation import validate_business_rules, validate_process
from . import ValidationError
from .auth import CurrentUser

router = APIRouter(prefix="/processes", tags=["processes"])


# =============================================================================
# Process Endpoints
# =============================================================================


@router.get("", response_model=ProcessListResponse)
async def list_processes(
    user: CurrentUser,
    search: str | None = None,
    status: str | None = None,
    court: str | None = None,
    created_from: date | None = None,
    created_to: date | None = None,
    sort_by: str = "created_at",
    descending: bool = True,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    manager: ProcessManager = Depends(get_process_manager),
) -> ProcessListResponse:
    """List and search the processes visible to the user."""
    if sort_by not in SORTABLE_COLUMNS:
        raise ValidationError(f"Ordenação inválida: {sort_by}")
    items, total = await manager.list_processes(
        user.id,
        cpf=user.cpf,
        search=search,
        status=status,
        court=court,
        created_from=created_from,
        created_to=created_to,
        sort_by=sort_by,
        descending=descending,
        limit=limit,
        offset=offset,
    )
    return ProcessListResponse(items=items, total=total, limit=limit, offset=offset)


@router.post("", response_model=ProcessRecord, status_code=201)
async def create_process(
    request: CreateProcessRequest,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> ProcessRecord:
    """Create a new process owned by the user."""
    return await manager.create_process(request, user.id)


@router.get("/statistics", response_model=ProcessStatistics)
async def get_statistics(
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> ProcessStatistics:
    """Dashboard counters for the user's own processes."""
    return await manager.get_statistics(user.id)


@router.post("/validate", response_model=ValidationResult)
async def validate_entity(
    entity_type: str,
    data: dict[str, Any],
    user: CurrentUser,
) -> ValidationResult:
    """Validate a process, risk agent or questionnaire payload."""
    try:
        return validate_business_rules(entity_type, data)
    except ValueError as e:
        raise ValidationError(str(e))


@router.get("/{process_id}", response_model=ProcessRecord)
async def get_process(
    process_id: UUID,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> ProcessRecord:
    """Get a process the user owns or was granted."""
    return await manager.get_process(process_id, user.id, user.cpf)


@router.patch("/{process_id}", response_model=ProcessRecord)
async def update_process(
    process_id: UUID,
    request: UpdateProcessRequest,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> ProcessRecord:
    """Write the fields sent; later writes overwrite earlier ones."""
    try:
        return await manager.update_process(process_id, request.fields, user.id, user.cpf)
    except ValueError as e:
        raise ValidationError(str(e))


@router.delete("/{process_id}", response_model=DeleteProcessResult)
async def delete_process(
    process_id: UUID,
    user: CurrentUser,
    deleter: ProcessDeleter = Depends(get_process_deleter),
) -> DeleteProcessResult:
    """Delete a process with its rows and stored files.

    Storage and dependent-row failures are reported in ``storage_warnings``.
    """
    return await deleter.delete(process_id, user.id)


# =============================================================================
# Autosave
# =============================================================================


class AutosaveResponse(BaseModel):
    """Fields queued for the debounced write."""

    process_id: UUID
    pending_fields: list[str]
    delay_seconds: float


@router.post("/{process_id}/autosave", response_model=AutosaveResponse, status_code=202)
async def autosave(
    process_id: UUID,
    request: UpdateProcessRequest,
    user: CurrentUser,
    buffer: AutosaveBuffer = Depends(get_autosave_buffer),
) -> AutosaveResponse:
    """Queue an editor change; rapid changes are merged into one write."""
    buffer.update(process_id, request.fields, user.id, user.cpf)
    return AutosaveResponse(
        process_id=process_id,
        pending_fields=sorted(buffer.pending_fields(process_id)),
        delay_seconds=buffer.delay,
    )


@router.post("/{process_id}/autosave/flush")
async def flush_autosave(
    process_id: UUID,
    user: CurrentUser,
    buffer: AutosaveBuffer = Depends(get_autosave_buffer),
) -> dict:
    """Write the pending changes of a process now."""
    result: FlushResult | None = await buffer.flush(process_id)
    if result is None:
        return {"process_id": str(process_id), "saved": False, "fields": [], "error": None}
    return {
        "process_id": str(result.process_id),
        "saved": result.saved,
        "fields": result.fields,
        "error": result.error,
    }


# =============================================================================
# Progress and validation
# =============================================================================


@router.get("/{process_id}/progress", response_model=ProcessProgress)
async def get_progress(
    process_id: UUID,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> ProcessProgress:
    """Which editor steps of the process are filled in."""
    return await manager.get_progress(process_id, user.id, user.cpf)


@router.get("/{process_id}/validation", response_model=ValidationResult)
async def validate_stored_process(
    process_id: UUID,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> ValidationResult:
    """Validate a stored process before generating its report."""
    process = await manager.get_process(process_id, user.id, user.cpf)
    return validate_process(process)


# =============================================================================
# Questionnaires and risk agents
# =============================================================================


@router.get("/{process_id}/questionnaires", response_model=list[QuestionnaireEntry])
async def list_questionnaires(
    process_id: UUID,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> list[QuestionnaireEntry]:
    """Questionnaire entries ordered by party and number."""
    await manager.get_process(process_id, user.id, user.cpf)
    return await manager.list_questionnaires(process_id)


@router.put("/{process_id}/questionnaires", response_model=QuestionnaireEntry)
async def save_questionnaire(
    process_id: UUID,
    entry: QuestionnaireEntry,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> QuestionnaireEntry:
    """Create or replace a questionnaire entry."""
    await manager.get_process(process_id, user.id, user.cpf)
    entry.process_id = process_id
    result = validate_business_rules("questionnaire", entry.model_dump())
    if not result.is_valid:
        raise ValidationError("; ".join(result.errors))
    return await manager.save_questionnaire(entry)


@router.get("/{process_id}/risk-agents", response_model=list[RiskAgent])
async def list_risk_agents(
    process_id: UUID,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> list[RiskAgent]:
    """Risk agents identified in the process."""
    await manager.get_process(process_id, user.id, user.cpf)
    return await manager.list_risk_agents(process_id)


@router.put("/{process_id}/risk-agents", response_model=RiskAgent)
async def save_risk_agent(
    process_id: UUID,
    agent: RiskAgent,
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> RiskAgent:
    """Create or replace a risk agent."""
    await manager.get_process(process_id, user.id, user.cpf)
    agent.process_id = process_id
    result = validate_business_rules("risk_agent", agent.model_dump())
    if not result.is_valid:
        raise ValidationError("; ".join(result.errors))
    return await manager.save_risk_agent(agent)
