"""API endpoints for inspection scheduling."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from ..processes.manager import ProcessManager, get_process_manager
from ..scheduling.calendar import build_ics, build_schedule_message, google_calendar_url, whatsapp_url
from ..scheduling.email import (
    TRACKING_PIXEL,
    EmailNotConfigured,
    RecipientResult,
    ScheduleMailer,
    SendScheduleEmailRequest,
    get_schedule_mailer,
)
from . import APIResponse, ServiceUnavailableError, ValidationError
from .auth import CurrentUser

router = APIRouter(prefix="/scheduling", tags=["scheduling"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


class ScheduleLinks(BaseModel):
    google_calendar_url: str
    message: str
    whatsapp_url: str | None = None


@router.get("/calendar.ics")
async def export_ics(
    user: CurrentUser,
    manager: ProcessManager = Depends(get_process_manager),
) -> Response:
    """iCalendar file with every scheduled inspection of the user."""
    summaries, _ = await manager.list_processes(user.id, cpf=user.cpf, limit=1000, offset=0)
    processes = [
        await manager.get_process(s.id, user.id, user.cpf)
        for s in summaries
        if s.inspection_date
    ]
    return Response(
        content=build_ics(processes),
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="vistorias.ics"'},
    )


@router.get("/{process_id}/links", response_model=ScheduleLinks)
async def schedule_links(
    process_id: UUID,
    user: CurrentUser,
    contact_name: str | None = None,
    phone: str | None = None,
    manager: ProcessManager = Depends(get_process_manager),
) -> ScheduleLinks:
    """Google Calendar link, schedule notice and optional WhatsApp link."""
    process = await manager.get_process(process_id, user.id, user.cpf)
    message = build_schedule_message(process, contact_name)
    links = ScheduleLinks(google_calendar_url=google_calendar_url(process), message=message)
    if phone:
        try:
            links.whatsapp_url = whatsapp_url(phone, message)
        except ValueError as e:
            raise ValidationError(str(e))
    return links


@router.post("/email", response_model=APIResponse[list[RecipientResult]])
async def send_schedule_email(
    request: SendScheduleEmailRequest,
    user: CurrentUser,
    mailer: ScheduleMailer = Depends(get_schedule_mailer),
) -> APIResponse[list[RecipientResult]]:
    """E-mail the schedule; each recipient gets a tracked receipt."""
    try:
        results = await mailer.send(request, user.id)
    except EmailNotConfigured as e:
        raise ServiceUnavailableError(str(e))
    except ValueError as e:
        raise ValidationError(str(e))
    return APIResponse(data=results)


@router.get("/{process_id}/email-receipts")
async def list_receipts(
    process_id: UUID,
    user: CurrentUser,
    limit: int = Query(default=50, ge=1, le=200),
    mailer: ScheduleMailer = Depends(get_schedule_mailer),
) -> list[dict]:
    """Latest e-mail receipts of a process."""
    return await mailer.list_receipts(process_id, user.id, limit=limit)


# Tracking links are opened by e-mail clients, without a token


@router.get("/email-track/open")
async def track_open(
    id: str = "",
    mailer: ScheduleMailer = Depends(get_schedule_mailer),
) -> Response:
    """Tracking pixel; records the first open."""
    if not id.strip():
        return HTMLResponse("Parâmetro inválido", status_code=400)
    await mailer.mark_opened(id)
    return Response(content=TRACKING_PIXEL, media_type="image/gif", headers=NO_CACHE_HEADERS)


@router.get("/email-track/confirm", response_class=HTMLResponse)
async def track_confirm(
    id: str = "",
    mailer: ScheduleMailer = Depends(get_schedule_mailer),
) -> HTMLResponse:
    """Confirmation link; records the first confirmation."""
    if not id.strip():
        return HTMLResponse("Parâmetro inválido", status_code=400)
    await mailer.mark_confirmed(id)
    return HTMLResponse("Recebimento confirmado.")
