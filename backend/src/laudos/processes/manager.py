"""Process lifecycle management.

The ProcessManager handles creation, lookup, search, partial updates and the
related questionnaire and risk-agent rows of a process. Access is scoped by
ownership (``user_id``) or by a delegated grant: a ``process_access`` row
pointing at a ``linked_users`` entry whose CPF matches the caller's.

Edits are last-write-wins at the row level; there is no version column.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, time
from typing import Any, AsyncGenerator
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_db_session
from .insights import compute_progress, compute_statistics
from .models import (
    CreateProcessRequest,
    ExpertProfile,
    ProcessProgress,
    ProcessRecord,
    ProcessStatistics,
    ProcessStatus,
    ProcessSummary,
    QuestionnaireEntry,
    RiskAgent,
)
from .validation import clean_cpf

logger = logging.getLogger(__name__)


class ProcessNotFoundError(LookupError):
    """The process does not exist."""


class ProcessAccessDenied(PermissionError):
    """The caller neither owns the process nor holds a grant for it."""


class SessionExpiredError(PermissionError):
    """No authenticated user is attached to the operation."""


JSON_COLUMNS = frozenset({
    "identifications",
    "claimant_data",
    "defendant_data",
    "workplace_characteristics",
    "diligence_data",
    "attendees",
    "documents_presented",
    "epis",
    "report_config",
    "cover_data",
})

REQUIRED_FIELDS = ("process_number", "claimant_name", "defendant_name")

UPDATABLE_FIELDS = frozenset(
    set(ProcessRecord.model_fields) - {"id", "user_id", "created_at", "updated_at"}
)

SORTABLE_COLUMNS = frozenset({
    "created_at", "updated_at", "process_number", "claimant_name",
    "defendant_name", "inspection_date", "status",
})

# Delegated access through linked users, matched on CPF
ACCESS_CLAUSE = """
    (p.user_id = :user_id OR EXISTS (
        SELECT 1 FROM process_access pa
        JOIN linked_users lu ON lu.id = pa.linked_user_id
        WHERE pa.process_id = p.id
          AND lu.linked_user_cpf = :cpf
          AND lu.status = 'active'
    ))
"""


def require_session(user_id: str | None) -> str:
    """Fail fast when there is no authenticated user."""
    if not user_id:
        raise SessionExpiredError("Sessão expirada")
    return user_id


def _db_value(field: str, value: Any) -> Any:
    if field in JSON_COLUMNS:
        if hasattr(value, "model_dump"):
            value = value.model_dump(mode="json")
        return json.dumps(value, ensure_ascii=False, default=str)
    if hasattr(value, "value"):
        return value.value
    if field in ("inspection_date", "distribution_date", "payment_date", "payment_due_date"):
        if isinstance(value, str) and value:
            return date.fromisoformat(value[:10])
    if field == "inspection_time" and isinstance(value, str) and value:
        return time.fromisoformat(value)
    return value


class ProcessManager:
    """Manages processes and their dependent rows."""

    def __init__(self, session: AsyncSession | None = None):
        """Initialize the ProcessManager.

        Args:
            session: Optional database session. If not provided, a fresh
                    session is opened per operation.
        """
        self._session = session

    @asynccontextmanager
    async def _get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Get a database session as a context manager."""
        if self._session is not None:
            yield self._session
            return
        async with get_db_session() as session:
            yield session

    # =========================================================================
    # Processes
    # =========================================================================

    async def create_process(
        self,
        request: CreateProcessRequest,
        user_id: str | None,
    ) -> ProcessRecord:
        """Create a new process owned by the caller.

        Args:
            request: Identity and scheduling fields
            user_id: Owner user ID

        Returns:
            The created ProcessRecord
        """
        user_id = require_session(user_id)
        now = datetime.utcnow()
        process = ProcessRecord(
            id=uuid4(),
            user_id=user_id,
            status=ProcessStatus.PENDING.value,
            created_at=now,
            updated_at=now,
            **request.model_dump(),
        )

        async with self._get_session() as session:
            await session.execute(
                text("""
                INSERT INTO processes (
                    id, user_id, process_number, claimant_name, defendant_name,
                    court, status, inspection_date, inspection_time,
                    inspection_address, inspection_city, claimant_email,
                    defendant_email, report_config, created_at, updated_at
                ) VALUES (
                    :id, :user_id, :process_number, :claimant_name, :defendant_name,
                    :court, :status, :inspection_date, :inspection_time,
                    :inspection_address, :inspection_city, :claimant_email,
                    :defendant_email, CAST(:report_config AS jsonb), :created_at, :updated_at
                )
                """),
                {
                    "id": str(process.id),
                    "user_id": user_id,
                    "process_number": process.process_number,
                    "claimant_name": process.claimant_name,
                    "defendant_name": process.defendant_name,
                    "court": process.court,
                    "status": process.status,
                    "inspection_date": request.inspection_date,
                    "inspection_time": request.inspection_time,
                    "inspection_address": process.inspection_address,
                    "inspection_city": process.inspection_city,
                    "claimant_email": process.claimant_email,
                    "defendant_email": process.defendant_email,
                    "report_config": _db_value("report_config", process.report_config),
                    "created_at": now,
                    "updated_at": now,
                },
            )

        logger.info(f"Created process {process.id} ({process.process_number})")
        return process

    async def get_process(
        self,
        process_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
    ) -> ProcessRecord:
        """Load a process the caller may access.

        Raises:
            SessionExpiredError: No authenticated user
            ProcessNotFoundError: The process does not exist
            ProcessAccessDenied: The caller has no access to it
        """
        user_id = require_session(user_id)
        async with self._get_session() as session:
            result = await session.execute(
                text("SELECT * FROM processes WHERE id = :id"),
                {"id": str(process_id)},
            )
            row = result.fetchone()
            if row is None:
                raise ProcessNotFoundError(f"Processo não encontrado: {process_id}")

            if str(row.user_id) != user_id:
                if not await self._has_grant(session, process_id, cpf):
                    raise ProcessAccessDenied("Sem permissão para acessar este processo")

            return self._row_to_process(row)

    async def _has_grant(
        self,
        session: AsyncSession,
        process_id: UUID,
        cpf: str | None,
    ) -> bool:
        digits = clean_cpf(cpf)
        if not digits:
            return False
        result = await session.execute(
            text("""
            SELECT 1 FROM process_access pa
            JOIN linked_users lu ON lu.id = pa.linked_user_id
            WHERE pa.process_id = :process_id
              AND lu.linked_user_cpf = :cpf
              AND lu.status = 'active'
            LIMIT 1
            """),
            {"process_id": str(process_id), "cpf": digits},
        )
        return result.fetchone() is not None

    async def list_processes(
        self,
        user_id: str | None,
        cpf: str | None = None,
        search: str | None = None,
        status: str | None = None,
        court: str | None = None,
        created_from: date | None = None,
        created_to: date | None = None,
        sort_by: str = "created_at",
        descending: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[ProcessSummary], int]:
        """Search the processes visible to the caller.

        Args:
            user_id: Caller user ID
            cpf: Caller CPF, for delegated access
            search: Free text matched against number, claimant and defendant
            status: Status filter
            court: Court filter (substring, case-insensitive)
            created_from: Earliest creation date (inclusive)
            created_to: Latest creation date (inclusive)
            sort_by: Column to order by
            descending: Sort direction
            limit: Maximum results
            offset: Offset for pagination

        Returns:
            Tuple of (list of ProcessSummary, total count)
        """
        user_id = require_session(user_id)
        if sort_by not in SORTABLE_COLUMNS:
            raise ValueError(f"Cannot sort by {sort_by}")

        conditions = [ACCESS_CLAUSE]
        params: dict[str, Any] = {
            "user_id": user_id,
            "cpf": clean_cpf(cpf) or None,
            "limit": limit,
            "offset": offset,
        }

        if search and search.strip():
            conditions.append(
                "(p.process_number ILIKE :search OR p.claimant_name ILIKE :search "
                "OR p.defendant_name ILIKE :search)"
            )
            params["search"] = f"%{search.strip()}%"
        if status:
            conditions.append("p.status = :status")
            params["status"] = status
        if court:
            conditions.append("p.court ILIKE :court")
            params["court"] = f"%{court}%"
        if created_from:
            conditions.append("p.created_at >= :created_from")
            params["created_from"] = datetime.combine(created_from, datetime.min.time())
        if created_to:
            conditions.append("p.created_at <= :created_to")
            params["created_to"] = datetime.combine(created_to, datetime.max.time())

        where_clause = " AND ".join(conditions)
        direction = "DESC" if descending else "ASC"

        async with self._get_session() as session:
            count_result = await session.execute(
                text(f"SELECT COUNT(*) FROM processes p WHERE {where_clause}"),
                params,
            )
            total = count_result.scalar() or 0

            result = await session.execute(
                text(f"""
                SELECT * FROM processes p
                WHERE {where_clause}
                ORDER BY p.{sort_by} {direction} NULLS LAST
                LIMIT :limit OFFSET :offset
                """),
                params,
            )
            rows = result.fetchall()

        summaries = [self._to_summary(self._row_to_process(row)) for row in rows]
        return summaries, total

    async def update_process(
        self,
        process_id: UUID,
        fields: dict[str, Any],
        user_id: str | None,
        cpf: str | None = None,
    ) -> ProcessRecord:
        """Write a partial update; later writes simply overwrite earlier ones.

        Raises:
            ValueError: Unknown fields or a blank identity field
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Campos desconhecidos: {', '.join(sorted(unknown))}")
        for field in REQUIRED_FIELDS:
            if field in fields and not str(fields[field] or "").strip():
                raise ValueError(f"{field} não pode ficar em branco")

        current = await self.get_process(process_id, user_id, cpf)
        if not fields:
            return current

        # Validate through the record so bags are normalized before storage
        candidate = ProcessRecord.model_validate({**current.model_dump(), **fields})

        assignments = []
        params: dict[str, Any] = {"id": str(process_id), "updated_at": datetime.utcnow()}
        for field in sorted(fields):
            value = getattr(candidate, field)
            if field in JSON_COLUMNS:
                assignments.append(f"{field} = CAST(:{field} AS jsonb)")
            else:
                assignments.append(f"{field} = :{field}")
            params[field] = _db_value(field, value)

        async with self._get_session() as session:
            await session.execute(
                text(f"""
                UPDATE processes
                SET {", ".join(assignments)}, updated_at = :updated_at
                WHERE id = :id
                """),
                params,
            )

        candidate.updated_at = params["updated_at"]
        logger.debug(f"Updated process {process_id}: {', '.join(sorted(fields))}")
        return candidate

    # =========================================================================
    # Questionnaires and risk agents
    # =========================================================================

    async def list_questionnaires(self, process_id: UUID) -> list[QuestionnaireEntry]:
        """Questionnaire rows ordered by party then question number."""
        async with self._get_session() as session:
            result = await session.execute(
                text("""
                SELECT * FROM questionnaires
                WHERE process_id = :process_id
                ORDER BY party, question_number
                """),
                {"process_id": str(process_id)},
            )
            return [QuestionnaireEntry.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def save_questionnaire(self, entry: QuestionnaireEntry) -> QuestionnaireEntry:
        """Insert or replace a questionnaire entry."""
        async with self._get_session() as session:
            await session.execute(
                text("""
                INSERT INTO questionnaires (
                    id, process_id, party, question_number, question, answer,
                    notes, attachments, created_at, updated_at
                ) VALUES (
                    :id, :process_id, :party, :question_number, :question, :answer,
                    :notes, CAST(:attachments AS jsonb), now(), now()
                )
                ON CONFLICT (id) DO UPDATE SET
                    party = EXCLUDED.party,
                    question_number = EXCLUDED.question_number,
                    question = EXCLUDED.question,
                    answer = EXCLUDED.answer,
                    notes = EXCLUDED.notes,
                    attachments = EXCLUDED.attachments,
                    updated_at = now()
                """),
                {
                    "id": str(entry.id),
                    "process_id": str(entry.process_id),
                    "party": entry.party,
                    "question_number": entry.question_number,
                    "question": entry.question,
                    "answer": entry.answer,
                    "notes": entry.notes,
                    "attachments": json.dumps(entry.attachments, ensure_ascii=False, default=str),
                },
            )
        return entry

    async def list_risk_agents(self, process_id: UUID) -> list[RiskAgent]:
        """Risk agent rows in creation order."""
        async with self._get_session() as session:
            result = await session.execute(
                text("""
                SELECT * FROM risk_agents
                WHERE process_id = :process_id
                ORDER BY created_at
                """),
                {"process_id": str(process_id)},
            )
            return [RiskAgent.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def save_risk_agent(self, agent: RiskAgent) -> RiskAgent:
        """Insert or replace a risk agent."""
        data = agent.model_dump(mode="json")
        async with self._get_session() as session:
            await session.execute(
                text("""
                INSERT INTO risk_agents (
                    id, process_id, agent_name, agent_type, description,
                    measurement_method, measurement_value, measurement_unit,
                    tolerance_limit, tolerance_unit, risk_level, exposure_level,
                    insalubrity_degree, periculosity_applicable, notes,
                    evidence_photos, created_at, updated_at
                ) VALUES (
                    :id, :process_id, :agent_name, :agent_type, :description,
                    :measurement_method, :measurement_value, :measurement_unit,
                    :tolerance_limit, :tolerance_unit, :risk_level, :exposure_level,
                    :insalubrity_degree, :periculosity_applicable, :notes,
                    CAST(:evidence_photos AS jsonb), now(), now()
                )
                ON CONFLICT (id) DO UPDATE SET
                    agent_name = EXCLUDED.agent_name,
                    agent_type = EXCLUDED.agent_type,
                    description = EXCLUDED.description,
                    measurement_method = EXCLUDED.measurement_method,
                    measurement_value = EXCLUDED.measurement_value,
                    measurement_unit = EXCLUDED.measurement_unit,
                    tolerance_limit = EXCLUDED.tolerance_limit,
                    tolerance_unit = EXCLUDED.tolerance_unit,
                    risk_level = EXCLUDED.risk_level,
                    exposure_level = EXCLUDED.exposure_level,
                    insalubrity_degree = EXCLUDED.insalubrity_degree,
                    periculosity_applicable = EXCLUDED.periculosity_applicable,
                    notes = EXCLUDED.notes,
                    evidence_photos = EXCLUDED.evidence_photos,
                    updated_at = now()
                """),
                {**data, "evidence_photos": json.dumps(data["evidence_photos"], ensure_ascii=False)},
            )
        return agent

    # =========================================================================
    # Profile, statistics, progress
    # =========================================================================

    async def get_expert_profile(self, user_id: str) -> ExpertProfile | None:
        """Expert identification used in the report preamble."""
        async with self._get_session() as session:
            result = await session.execute(
                text("""
                SELECT full_name, professional_title, registration_number
                FROM profiles WHERE user_id = :user_id
                """),
                {"user_id": user_id},
            )
            row = result.fetchone()
        if row is None or not row.full_name:
            return None
        return ExpertProfile(
            full_name=row.full_name,
            professional_title=row.professional_title,
            registration_number=row.registration_number,
        )

    async def get_statistics(self, user_id: str | None) -> ProcessStatistics:
        """Status and monthly counters for the caller's own processes."""
        user_id = require_session(user_id)
        async with self._get_session() as session:
            result = await session.execute(
                text("SELECT status, created_at FROM processes WHERE user_id = :user_id"),
                {"user_id": user_id},
            )
            rows = [dict(row._mapping) for row in result.fetchall()]
        return compute_statistics(rows)

    async def get_progress(
        self,
        process_id: UUID,
        user_id: str | None,
        cpf: str | None = None,
    ) -> ProcessProgress:
        """Editor completion for one process."""
        process = await self.get_process(process_id, user_id, cpf)
        return compute_progress(process)

    # =========================================================================
    # Row mapping
    # =========================================================================

    def _row_to_process(self, row: Any) -> ProcessRecord:
        """Convert a database row to a ProcessRecord."""
        return ProcessRecord.model_validate(dict(row._mapping))

    def _to_summary(self, process: ProcessRecord) -> ProcessSummary:
        return ProcessSummary(
            id=process.id,
            process_number=process.process_number,
            claimant_name=process.claimant_name,
            defendant_name=process.defendant_name,
            court=process.court,
            status=process.status,
            inspection_date=process.inspection_date,
            created_at=process.created_at,
            updated_at=process.updated_at,
        )


# Singleton instance
_process_manager: ProcessManager | None = None


def get_process_manager() -> ProcessManager:
    """Get the process manager singleton."""
    global _process_manager
    if _process_manager is None:
        _process_manager = ProcessManager()
    return _process_manager
