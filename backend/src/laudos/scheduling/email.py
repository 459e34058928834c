"""Schedule e-mails with delivery receipts.

Each recipient gets one ``schedule_email_receipts`` row, created with status
``sending`` before the provider is called and then marked ``sent`` or
``error``. The message carries a confirmation link and a 1x1 tracking pixel
that fill ``confirmed_at`` and ``opened_at`` the first time they are hit.
"""

import base64
import html
import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote
from uuid import UUID, uuid4

import httpx
from pydantic import BaseModel, Field
from sqlalchemy import text

from ..config import get_settings
from ..db import get_db_session
from ..processes.manager import ProcessAccessDenied, ProcessNotFoundError, require_session
from ..processes.validation import is_valid_email, normalize_email

logger = logging.getLogger(__name__)

PROVIDER = "resend"

TRACKING_PIXEL = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///ywAAAAAAQABAAACAUwAOw==")


class Recipient(BaseModel):
    role: str = "other"
    email: str


class SendScheduleEmailRequest(BaseModel):
    """Request to e-mail the inspection schedule to the parties."""

    process_id: str = ""
    subject: str = ""
    body: str = ""
    recipients: list[Recipient] = Field(default_factory=list)


class RecipientResult(BaseModel):
    role: str
    email: str
    success: bool
    receipt_id: UUID | None = None
    provider_message_id: str | None = None
    error: str | None = None


class EmailNotConfigured(RuntimeError):
    """The e-mail provider key or sender is missing."""


def normalize_recipients(recipients: list[Recipient]) -> list[Recipient]:
    """Trim roles, lowercase e-mails and drop invalid addresses."""
    normalized = [
        Recipient(role=(r.role or "").strip() or "other", email=normalize_email(r.email))
        for r in recipients
    ]
    return [r for r in normalized if is_valid_email(r.email)]


def validate_request(request: SendScheduleEmailRequest) -> list[Recipient]:
    """Check the request and return the valid recipients.

    Raises:
        ValueError: With the message shown to the user
    """
    if not request.process_id.strip():
        raise ValueError("processId é obrigatório")
    if not request.subject.strip():
        raise ValueError("Assunto é obrigatório")
    if not request.body.strip():
        raise ValueError("Mensagem é obrigatória")
    if not request.recipients:
        raise ValueError("Informe ao menos 1 destinatário")
    recipients = normalize_recipients(request.recipients)
    if not recipients:
        raise ValueError("Nenhum e-mail válido informado")
    return recipients


def tracking_urls(receipt_id: UUID) -> tuple[str, str]:
    """(open pixel URL, confirmation URL) of a receipt."""
    base = get_settings().public_base_url.rstrip("/")
    rid = quote(str(receipt_id), safe="")
    return (
        f"{base}/api/v1/scheduling/email-track/open?id={rid}",
        f"{base}/api/v1/scheduling/email-track/confirm?id={rid}",
    )


def render_html(body: str, open_url: str, confirm_url: str) -> str:
    safe_body = html.escape(body, quote=True).replace("\n", "<br/>")
    return (
        "<!doctype html><html><body>"
        '<div style="font-family:Arial,sans-serif;font-size:14px;line-height:1.5">'
        f"<div>{safe_body}</div>"
        f'<div style="margin-top:16px"><a href="{confirm_url}">Confirmar recebimento</a></div>'
        f'<img src="{open_url}" width="1" height="1" alt="" />'
        "</div></body></html>"
    )


class ScheduleMailer:
    """Sends schedule e-mails through the provider and tracks receipts."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_db_session
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def send(
        self,
        request: SendScheduleEmailRequest,
        user_id: str | None,
    ) -> list[RecipientResult]:
        """Send the schedule e-mail to every valid recipient.

        A failure for one recipient is recorded on its receipt and does not
        stop the others.

        Raises:
            SessionExpiredError: No authenticated user
            EmailNotConfigured: Provider key or sender missing
            ValueError: Invalid request
            ProcessNotFoundError / ProcessAccessDenied: Process checks
        """
        user_id = require_session(user_id)
        settings = get_settings()
        missing = [
            name for name, value in (
                ("RESEND_API_KEY", settings.resend_api_key),
                ("SCHEDULE_EMAIL_FROM", settings.schedule_email_from),
            ) if not value
        ]
        if missing:
            raise EmailNotConfigured(f"E-mail não configurado. Faltando: {', '.join(missing)}")

        recipients = validate_request(request)
        process_id = request.process_id.strip()
        await self._check_owner(process_id, user_id)

        subject = request.subject.strip()
        body = request.body.strip()
        results: list[RecipientResult] = []

        for recipient in recipients:
            try:
                receipt_id = await self._create_receipt(process_id, user_id, recipient, subject, body)
            except Exception as e:
                logger.warning(f"Could not register receipt for {recipient.email}: {e}")
                results.append(RecipientResult(
                    role=recipient.role, email=recipient.email, success=False,
                    error="Falha ao registrar envio",
                ))
                continue

            open_url, confirm_url = tracking_urls(receipt_id)
            message_id, error = await self._deliver(
                recipient.email, subject, body, render_html(body, open_url, confirm_url)
            )
            if error:
                await self._update_receipt(receipt_id, status="error", error=error)
                results.append(RecipientResult(
                    role=recipient.role, email=recipient.email, success=False,
                    receipt_id=receipt_id, error=error,
                ))
                continue

            await self._update_receipt(
                receipt_id, status="sent", sent_at=datetime.utcnow(),
                provider_message_id=message_id or None,
            )
            results.append(RecipientResult(
                role=recipient.role, email=recipient.email, success=True,
                receipt_id=receipt_id, provider_message_id=message_id or None,
            ))

        logger.info(
            f"Schedule e-mail for process {process_id}: "
            f"{sum(r.success for r in results)}/{len(results)} sent"
        )
        return results

    async def _check_owner(self, process_id: str, user_id: str) -> None:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT id, user_id FROM processes WHERE id = :id"),
                {"id": process_id},
            )
            row = result.fetchone()
        if row is None:
            raise ProcessNotFoundError("Processo não encontrado")
        if str(row.user_id) != user_id:
            raise ProcessAccessDenied("Sem permissão")

    async def _create_receipt(
        self,
        process_id: str,
        user_id: str,
        recipient: Recipient,
        subject: str,
        body: str,
    ) -> UUID:
        receipt_id = uuid4()
        async with self._session_factory() as session:
            await session.execute(
                text("""
                INSERT INTO schedule_email_receipts (
                    id, process_id, user_id, recipient_role, recipient_email,
                    subject, body, provider, status, created_at
                ) VALUES (
                    :id, :process_id, :user_id, :role, :email,
                    :subject, :body, :provider, 'sending', now()
                )
                """),
                {
                    "id": str(receipt_id),
                    "process_id": process_id,
                    "user_id": user_id,
                    "role": recipient.role,
                    "email": recipient.email,
                    "subject": subject,
                    "body": body,
                    "provider": PROVIDER,
                },
            )
        return receipt_id

    async def _update_receipt(self, receipt_id: UUID, **fields: Any) -> None:
        assignments = ", ".join(f"{name} = :{name}" for name in fields)
        async with self._session_factory() as session:
            await session.execute(
                text(f"UPDATE schedule_email_receipts SET {assignments} WHERE id = :id"),
                {**fields, "id": str(receipt_id)},
            )

    async def _deliver(
        self, email: str, subject: str, body: str, html_body: str
    ) -> tuple[str | None, str | None]:
        """Call the provider; returns (message id, error)."""
        settings = get_settings()
        try:
            response = await self.http_client.post(
                settings.resend_api_url,
                headers={
                    "Authorization": f"Bearer {settings.resend_api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": settings.schedule_email_from,
                    "to": [email],
                    "subject": subject,
                    "html": html_body,
                    "text": body,
                },
            )
        except httpx.HTTPError as e:
            return None, str(e) or "Falha ao enviar"

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("error")
            return None, str(message or response.reason_phrase or "Falha ao enviar")
        return str((data or {}).get("id") or ""), None

    # =========================
    # Tracking
    # =========================

    async def mark_opened(self, receipt_id: str) -> None:
        """Record the first open of a receipt."""
        await self._track(receipt_id, "opened_at")

    async def mark_confirmed(self, receipt_id: str) -> None:
        """Record the first confirmation of a receipt."""
        await self._track(receipt_id, "confirmed_at")

    async def _track(self, receipt_id: str, column: str) -> None:
        if not receipt_id.strip():
            raise ValueError("Parâmetro inválido")
        async with self._session_factory() as session:
            await session.execute(
                text(f"""
                UPDATE schedule_email_receipts
                SET {column} = :now
                WHERE id = :id AND {column} IS NULL
                """),
                {"id": receipt_id.strip(), "now": datetime.utcnow()},
            )

    async def list_receipts(self, process_id: UUID, user_id: str | None, limit: int = 50) -> list[dict]:
        """Latest receipts of a process, newest first."""
        user_id = require_session(user_id)
        await self._check_owner(str(process_id), user_id)
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                SELECT id, recipient_role, recipient_email, subject, status, error,
                       provider_message_id, sent_at, opened_at, confirmed_at, created_at
                FROM schedule_email_receipts
                WHERE process_id = :process_id
                ORDER BY created_at DESC
                LIMIT :limit
                """),
                {"process_id": str(process_id), "limit": limit},
            )
            return [dict(row._mapping) for row in result.fetchall()]


# Singleton instance
_schedule_mailer: ScheduleMailer | None = None


def get_schedule_mailer() -> ScheduleMailer:
    """Get the schedule mailer singleton."""
    global _schedule_mailer
    if _schedule_mailer is None:
        _schedule_mailer = ScheduleMailer()
    return _schedule_mailer
