"""Client for a remote report-generation function.

Deployments may run report generation as a separate function. When one is
configured it is tried first; the local generator is used when it is not
configured, unreachable, answers with an error status, with
``success: false`` or with fields of the wrong type. The remote function
always records the report in the history, so a generation that must not be
persisted runs locally.

The remote function may answer flat::

    {"success": true, "reportContent": "...", "insalubrityGrade": ...}

or wrapped::

    {"success": true, "data": {"reportContent": "...", ...}}
"""

import logging
from typing import Any
from uuid import UUID

import httpx
from pydantic import ValidationError

from ..config import get_settings
from ..processes.models import ReportType
from .generator import (
    GeneratedReport,
    ProcessSnapshot,
    ReportGenerator,
    ReportStatistics,
    get_report_generator,
    parse_report_type,
)

logger = logging.getLogger(__name__)


class RemoteReportError(Exception):
    """The remote function did not produce a usable report."""


def normalize_envelope(payload: Any) -> dict[str, Any]:
    """Unwrap a flat or ``data``-wrapped response envelope.

    Raises:
        RemoteReportError: The envelope reports a failure or has no content
    """
    if not isinstance(payload, dict):
        raise RemoteReportError("Resposta inválida da função de relatório")
    if payload.get("success") is False:
        raise RemoteReportError(
            str(payload.get("error") or payload.get("message") or "Falha ao gerar relatório")
        )

    data = payload.get("data")
    body = data if isinstance(data, dict) else payload
    content = body.get("reportContent") or body.get("report_content") or body.get("content")
    if not content:
        raise RemoteReportError("Relatório vazio retornado pela função")
    return {**body, "content": content}


def _pick(body: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in body and body[key] is not None:
            return body[key]
    return default


class RemoteReportClient:
    """Tries the remote function first, then the local generator."""

    def __init__(
        self,
        fallback: ReportGenerator | None = None,
        url: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self._fallback = fallback
        self._url = settings.report_function_url if url is None else url
        self._timeout = timeout or settings.report_function_timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def fallback(self) -> ReportGenerator:
        if self._fallback is None:
            self._fallback = get_report_generator()
        return self._fallback

    @property
    def is_configured(self) -> bool:
        return bool(self._url)

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def generate(
        self,
        process_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
        report_type: str | ReportType = ReportType.COMPLETO,
        access_token: str | None = None,
        persist: bool = True,
    ) -> GeneratedReport:
        """Generate a report, remotely when possible."""
        report_type = parse_report_type(report_type)

        if self.is_configured and persist:
            try:
                return await self._generate_remote(process_id, report_type, access_token)
            except RemoteReportError as e:
                logger.warning(f"Remote report function failed, using local generator: {e}")
            except httpx.HTTPError as e:
                logger.warning(f"Remote report function unreachable, using local generator: {e}")

        return await self.fallback.generate(
            process_id, user_id, cpf, report_type=report_type, persist=persist
        )

    async def _generate_remote(
        self,
        process_id: UUID,
        report_type: ReportType,
        access_token: str | None,
    ) -> GeneratedReport:
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        response = await self.http_client.post(
            self._url,
            json={"processId": str(process_id), "reportType": report_type.value},
            headers=headers,
        )
        if response.status_code >= 400:
            raise RemoteReportError(f"HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError:
            raise RemoteReportError("Resposta não é JSON")

        body = normalize_envelope(payload)

        try:
            return self._build_report(process_id, report_type, body)
        except (ValidationError, TypeError) as e:
            raise RemoteReportError(f"Campos inválidos na resposta: {e}") from e

    def _build_report(
        self,
        process_id: UUID,
        report_type: ReportType,
        body: dict[str, Any],
    ) -> GeneratedReport:
        snapshot = _pick(body, "processData", "process_data", default={}) or {}
        stats = _pick(body, "statistics", default={}) or {}
        if not isinstance(snapshot, dict) or not isinstance(stats, dict):
            raise TypeError("processData and statistics must be objects")

        return GeneratedReport(
            process_id=process_id,
            report_type=report_type.value,
            content=body["content"],
            conclusion=_pick(body, "conclusion", default="") or "",
            insalubrity_grade=_pick(body, "insalubrityGrade", "insalubrity_grade"),
            periculosity_identified=_pick(body, "periculosityIdentified", "periculosity_identified"),
            process_data=ProcessSnapshot(
                process_number=str(_pick(snapshot, "process_number", "processNumber", default="")),
                claimant_name=str(_pick(snapshot, "claimant_name", "claimantName", default="")),
                defendant_name=str(_pick(snapshot, "defendant_name", "defendantName", default="")),
            ),
            statistics=ReportStatistics(
                risk_agents_count=_pick(stats, "riskAgentsCount", "risk_agents_count", default=0),
                questionnaires_count=_pick(stats, "questionnairesCount", "questionnaires_count", default=0),
                sections_generated=_pick(stats, "sectionsGenerated", "sections_generated", default=21),
            ),
            source="remote",
            persisted=bool(_pick(body, "persisted", "saved", default=True)),
        )


# Singleton instance
_remote_client: RemoteReportClient | None = None


def get_remote_report_client() -> RemoteReportClient:
    """Get the remote report client singleton."""
    global _remote_client
    if _remote_client is None:
        _remote_client = RemoteReportClient()
    return _remote_client
