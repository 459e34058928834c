"""Report generation around the assembler.

Loads a process with its questionnaires and risk agents, assembles the
report text, derives the summary fields (insalubrity grade and whether
periculosity was identified) and appends a row to the report history.
"""

import logging
from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field
from sqlalchemy import text

from ..logging import log_report_generated
from ..processes.manager import ProcessManager, get_process_manager
from ..processes.models import ReportRecord, ReportType
from .assembler import SECTION_TITLES, assemble_report
from .formatting import is_informed

logger = logging.getLogger(__name__)

REPORT_TITLES: dict[str, str] = {
    ReportType.INSALUBRIDADE.value: "Laudo Pericial de Insalubridade",
    ReportType.PERICULOSIDADE.value: "Laudo Pericial de Periculosidade",
    ReportType.COMPLETO.value: "Laudo Pericial Completo",
}

# Checked in order; the first hit wins
GRADE_MARKERS: tuple[tuple[str, str], ...] = (
    ("grau máximo", "máximo"),
    ("grau médio", "médio"),
    ("grau mínimo", "mínimo"),
)


def derive_insalubrity_grade(results: str | None) -> str | None:
    """Infer the insalubrity grade from the results narrative."""
    if not results:
        return None
    lowered = results.lower()
    for marker, grade in GRADE_MARKERS:
        if marker in lowered:
            return grade
    return None


def derive_periculosity_identified(results: str | None) -> bool | None:
    """True when the periculosity results mention "constatad(o/a)".

    None when the results are not informed at all.
    """
    if not is_informed(results):
        return None
    return "constatad" in results.lower()


def parse_report_type(value: str | ReportType) -> ReportType:
    """Parse a report type tag.

    Raises:
        ValueError: If the tag is not one of the three report types
    """
    try:
        return ReportType(value)
    except ValueError:
        allowed = ", ".join(t.value for t in ReportType)
        raise ValueError(f"Tipo de relatório inválido: {value}. Use: {allowed}")


class ReportStatistics(BaseModel):
    risk_agents_count: int = 0
    questionnaires_count: int = 0
    sections_generated: int = len(SECTION_TITLES)


class ProcessSnapshot(BaseModel):
    process_number: str
    claimant_name: str
    defendant_name: str


class GeneratedReport(BaseModel):
    """Result of a report generation."""

    report_id: UUID | None = None
    process_id: UUID
    report_type: str
    content: str
    conclusion: str = ""
    insalubrity_grade: str | None = None
    periculosity_identified: bool | None = None
    process_data: ProcessSnapshot
    statistics: ReportStatistics = Field(default_factory=ReportStatistics)
    source: str = "local"
    persisted: bool = False


class ReportGenerator:
    """Generates reports from stored process data."""

    def __init__(self, manager: ProcessManager | None = None):
        self._manager = manager or get_process_manager()

    async def generate(
        self,
        process_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
        report_type: str | ReportType = ReportType.COMPLETO,
        persist: bool = True,
        generated_on: date | None = None,
    ) -> GeneratedReport:
        """Generate a report for a process.

        Args:
            process_id: Process to report on
            user_id: Caller user ID
            cpf: Caller CPF, for delegated access
            report_type: insalubridade, periculosidade or completo
            persist: Append the result to the report history
            generated_on: Date stamped on the report

        Raises:
            ValueError: Unknown report type
            ProcessNotFoundError: The process does not exist
            ProcessAccessDenied: The caller has no access to it
        """
        report_type = parse_report_type(report_type)
        process = await self._manager.get_process(process_id, user_id, cpf)
        questionnaires = await self._manager.list_questionnaires(process_id)
        risk_agents = await self._manager.list_risk_agents(process_id)
        expert = await self._manager.get_expert_profile(process.user_id) if process.user_id else None

        content = assemble_report(
            process,
            questionnaires=questionnaires,
            risk_agents=risk_agents,
            report_type=report_type,
            generated_on=generated_on,
            expert=expert,
        )

        report = GeneratedReport(
            process_id=process_id,
            report_type=report_type.value,
            content=content,
            conclusion=process.conclusion or "",
            insalubrity_grade=derive_insalubrity_grade(process.insalubrity_results),
            periculosity_identified=derive_periculosity_identified(process.periculosity_results),
            process_data=ProcessSnapshot(
                process_number=process.process_number,
                claimant_name=process.claimant_name,
                defendant_name=process.defendant_name,
            ),
            statistics=ReportStatistics(
                risk_agents_count=len(risk_agents),
                questionnaires_count=len(questionnaires),
            ),
        )

        if persist:
            # History is append-only; a failed insert does not lose the text
            try:
                record = await self._save(report)
                report.report_id = record.id
                report.persisted = True
            except Exception:
                logger.exception(f"Could not save report history for process {process_id}")

        log_report_generated(
            str(process_id), report.report_type, report.source, len(content), report.persisted
        )
        return report

    async def _save(self, report: GeneratedReport) -> ReportRecord:
        async with self._manager._get_session() as session:
            result = await session.execute(
                text("SELECT COALESCE(MAX(version), 0) FROM reports WHERE process_id = :process_id"),
                {"process_id": str(report.process_id)},
            )
            version = (result.scalar() or 0) + 1

            record = ReportRecord(
                id=uuid4(),
                process_id=report.process_id,
                report_type=report.report_type,
                title=REPORT_TITLES[report.report_type],
                content=report.content,
                conclusion=report.conclusion,
                insalubrity_grade=report.insalubrity_grade,
                periculosity_identified=report.periculosity_identified,
                version=version,
                generated_at=datetime.utcnow(),
            )

            await session.execute(
                text("""
                INSERT INTO reports (
                    id, process_id, report_type, title, content, conclusion,
                    insalubrity_grade, periculosity_identified, status, version,
                    generated_at
                ) VALUES (
                    :id, :process_id, :report_type, :title, :content, :conclusion,
                    :insalubrity_grade, :periculosity_identified, :status, :version,
                    :generated_at
                )
                """),
                {
                    **record.model_dump(exclude={"file_path"}),
                    "id": str(record.id),
                    "process_id": str(record.process_id),
                },
            )
        return record

    async def list_reports(
        self,
        process_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
        limit: int = 20,
    ) -> list[ReportRecord]:
        """Report history of a process, newest first."""
        await self._manager.get_process(process_id, user_id, cpf)
        async with self._manager._get_session() as session:
            result = await session.execute(
                text("""
                SELECT id, process_id, report_type, title, content, conclusion,
                       insalubrity_grade, periculosity_identified, status, version,
                       file_path, generated_at
                FROM reports
                WHERE process_id = :process_id
                ORDER BY generated_at DESC
                LIMIT :limit
                """),
                {"process_id": str(process_id), "limit": limit},
            )
            rows = result.fetchall()
        return [ReportRecord.model_validate(self._row_dict(row)) for row in rows]

    @staticmethod
    def _row_dict(row: Any) -> dict[str, Any]:
        data = dict(row._mapping)
        if data.get("report_type") not in REPORT_TITLES:
            data["report_type"] = ReportType.COMPLETO.value
        return data


# Singleton instance
_report_generator: ReportGenerator | None = None


def get_report_generator() -> ReportGenerator:
    """Get the report generator singleton."""
    global _report_generator
    if _report_generator is None:
        _report_generator = ReportGenerator()
    return _report_generator
