"""Linked users and delegated process access.

An owner registers linked users by CPF and grants each of them access to
some of the owner's processes. A linked user signing in with that CPF can
then open those processes (see ``ACCESS_CLAUSE`` in the manager) while the
link is active.
"""

import json
import logging
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator
from sqlalchemy import text

from ..db import get_db_session
from .manager import ProcessAccessDenied, require_session
from .models import parse_json_bag
from .validation import clean_cpf, is_valid_email, normalize_email, validate_cpf

logger = logging.getLogger(__name__)


class LinkedUserNotFoundError(LookupError):
    """The linked user does not exist or belongs to another owner."""


class LinkedUserStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"


class ProfessionalInfo(BaseModel):
    profession: str = ""
    council_number: str = ""
    council_registry: str = ""


class LinkedUserPermissions(BaseModel):
    """What a linked user may see; by default only the processes themselves."""

    view_processes: bool = True
    view_documents: bool = False
    view_reports: bool = False
    view_payment: bool = False
    professional: ProfessionalInfo = Field(default_factory=ProfessionalInfo)

    @classmethod
    def from_bag(cls, value: Any) -> "LinkedUserPermissions":
        value = parse_json_bag(value)
        if not isinstance(value, dict):
            return cls()
        try:
            return cls.model_validate(value)
        except ValueError:
            return cls()


class LinkedUser(BaseModel):
    id: UUID
    owner_user_id: str
    linked_user_cpf: str
    linked_user_name: str | None = None
    linked_user_email: str | None = None
    linked_user_phone: str | None = None
    permissions: LinkedUserPermissions = Field(default_factory=LinkedUserPermissions)
    status: str = LinkedUserStatus.ACTIVE
    created_at: datetime | None = None

    @field_validator("owner_user_id", mode="before")
    @classmethod
    def _owner(cls, value: Any) -> str:
        return str(value)

    @field_validator("permissions", mode="before")
    @classmethod
    def _permissions(cls, value: Any) -> LinkedUserPermissions:
        if isinstance(value, LinkedUserPermissions):
            return value
        return LinkedUserPermissions.from_bag(value)


class LinkedUserRequest(BaseModel):
    """Create or edit a linked user."""

    cpf: str
    name: str
    email: str | None = None
    phone: str | None = None
    permissions: LinkedUserPermissions = Field(default_factory=LinkedUserPermissions)


class ProcessAccessEntry(BaseModel):
    """A process a linked user can open."""

    id: UUID
    process_id: UUID
    process_number: str
    claimant_name: str
    defendant_name: str
    created_at: datetime | None = None


def validate_linked_user(request: LinkedUserRequest) -> dict[str, Any]:
    """Check a linked-user form and return the column values.

    Raises:
        ValueError: Invalid CPF, blank name or invalid e-mail
    """
    valid, error = validate_cpf(request.cpf)
    if not valid:
        raise ValueError(error)
    name = (request.name or "").strip()
    if not name:
        raise ValueError("Nome do usuário é obrigatório")
    email = normalize_email(request.email) or None
    if email and not is_valid_email(email):
        raise ValueError("E-mail inválido")
    return {
        "linked_user_cpf": clean_cpf(request.cpf),
        "linked_user_name": name,
        "linked_user_email": email,
        "linked_user_phone": (request.phone or "").strip() or None,
        "permissions": json.dumps(request.permissions.model_dump(), ensure_ascii=False),
    }


class SharingService:
    """Owner-side management of linked users and their process grants."""

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or get_db_session

    # =========================================================================
    # Linked users
    # =========================================================================

    async def list_linked_users(self, owner_id: str | None) -> list[LinkedUser]:
        owner_id = require_session(owner_id)
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                SELECT * FROM linked_users
                WHERE owner_user_id = :owner
                ORDER BY created_at DESC
                """),
                {"owner": owner_id},
            )
            return [LinkedUser.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def create_linked_user(self, request: LinkedUserRequest, owner_id: str | None) -> LinkedUser:
        """Register a linked user for the owner.

        Raises:
            ValueError: Invalid form or CPF already linked to this owner
        """
        owner_id = require_session(owner_id)
        values = validate_linked_user(request)
        linked_id = uuid4()

        async with self._session_factory() as session:
            existing = await session.execute(
                text("""
                SELECT id FROM linked_users
                WHERE owner_user_id = :owner AND linked_user_cpf = :cpf
                """),
                {"owner": owner_id, "cpf": values["linked_user_cpf"]},
            )
            if existing.fetchone() is not None:
                raise ValueError("Este CPF já está vinculado à sua conta.")

            result = await session.execute(
                text("""
                INSERT INTO linked_users (
                    id, owner_user_id, linked_user_cpf, linked_user_name,
                    linked_user_email, linked_user_phone, permissions, status
                ) VALUES (
                    :id, :owner, :linked_user_cpf, :linked_user_name,
                    :linked_user_email, :linked_user_phone, CAST(:permissions AS jsonb), 'active'
                )
                RETURNING *
                """),
                {"id": str(linked_id), "owner": owner_id, **values},
            )
            row = result.fetchone()

        logger.info(f"Owner {owner_id} linked CPF ***{values['linked_user_cpf'][-4:]}")
        return LinkedUser.model_validate(dict(row._mapping))

    async def update_linked_user(
        self,
        linked_user_id: UUID,
        request: LinkedUserRequest,
        owner_id: str | None,
    ) -> LinkedUser:
        owner_id = require_session(owner_id)
        values = validate_linked_user(request)
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                UPDATE linked_users SET
                    linked_user_cpf = :linked_user_cpf,
                    linked_user_name = :linked_user_name,
                    linked_user_email = :linked_user_email,
                    linked_user_phone = :linked_user_phone,
                    permissions = CAST(:permissions AS jsonb),
                    updated_at = now()
                WHERE id = :id AND owner_user_id = :owner
                RETURNING *
                """),
                {"id": str(linked_user_id), "owner": owner_id, **values},
            )
            row = result.fetchone()
        if row is None:
            raise LinkedUserNotFoundError("Usuário vinculado não encontrado")
        return LinkedUser.model_validate(dict(row._mapping))

    async def set_status(self, linked_user_id: UUID, active: bool, owner_id: str | None) -> LinkedUser:
        """Activate or deactivate a link; grants stay stored but stop applying."""
        owner_id = require_session(owner_id)
        status = LinkedUserStatus.ACTIVE if active else LinkedUserStatus.INACTIVE
        async with self._session_factory() as session:
            result = await session.execute(
                text("""
                UPDATE linked_users SET status = :status, updated_at = now()
                WHERE id = :id AND owner_user_id = :owner
                RETURNING *
                """),
                {"id": str(linked_user_id), "owner": owner_id, "status": status},
            )
            row = result.fetchone()
        if row is None:
            raise LinkedUserNotFoundError("Usuário vinculado não encontrado")
        return LinkedUser.model_validate(dict(row._mapping))

    async def delete_linked_user(self, linked_user_id: UUID, owner_id: str | None) -> None:
        """Remove a link together with its grants."""
        owner_id = require_session(owner_id)
        async with self._session_factory() as session:
            await self._require_linked_user(session, linked_user_id, owner_id)
            await session.execute(
                text("DELETE FROM process_access WHERE linked_user_id = :id"),
                {"id": str(linked_user_id)},
            )
            await session.execute(
                text("DELETE FROM linked_users WHERE id = :id AND owner_user_id = :owner"),
                {"id": str(linked_user_id), "owner": owner_id},
            )

    # =========================================================================
    # Process access
    # =========================================================================

    async def list_access(self, linked_user_id: UUID, owner_id: str | None) -> list[ProcessAccessEntry]:
        owner_id = require_session(owner_id)
        async with self._session_factory() as session:
            await self._require_linked_user(session, linked_user_id, owner_id)
            result = await session.execute(
                text("""
                SELECT pa.id, pa.process_id, pa.created_at,
                       p.process_number, p.claimant_name, p.defendant_name
                FROM process_access pa
                JOIN processes p ON p.id = pa.process_id
                WHERE pa.linked_user_id = :id
                ORDER BY p.process_number
                """),
                {"id": str(linked_user_id)},
            )
            return [ProcessAccessEntry.model_validate(dict(row._mapping)) for row in result.fetchall()]

    async def grant(self, linked_user_id: UUID, process_id: UUID, owner_id: str | None) -> None:
        """Give a linked user access to one of the owner's processes.

        Raises:
            LinkedUserNotFoundError: Unknown link for this owner
            ProcessAccessDenied: The process is not the owner's
        """
        owner_id = require_session(owner_id)
        async with self._session_factory() as session:
            await self._require_linked_user(session, linked_user_id, owner_id)
            await self._require_owned(session, [process_id], owner_id)
            await session.execute(
                text("""
                INSERT INTO process_access (id, process_id, linked_user_id, granted_by)
                VALUES (:id, :process_id, :linked_user_id, :owner)
                ON CONFLICT (process_id, linked_user_id) DO NOTHING
                """),
                {
                    "id": str(uuid4()),
                    "process_id": str(process_id),
                    "linked_user_id": str(linked_user_id),
                    "owner": owner_id,
                },
            )

    async def revoke(self, linked_user_id: UUID, process_id: UUID, owner_id: str | None) -> bool:
        """Withdraw one grant; False when there was none."""
        owner_id = require_session(owner_id)
        async with self._session_factory() as session:
            await self._require_linked_user(session, linked_user_id, owner_id)
            result = await session.execute(
                text("""
                DELETE FROM process_access
                WHERE linked_user_id = :linked_user_id AND process_id = :process_id
                """),
                {"linked_user_id": str(linked_user_id), "process_id": str(process_id)},
            )
            return result.rowcount > 0

    async def replace_access(
        self,
        linked_user_id: UUID,
        process_ids: list[UUID],
        owner_id: str | None,
    ) -> int:
        """Make ``process_ids`` the exact set of grants of a linked user.

        Runs in one session, so a rejected process leaves the old grants in place.
        """
        owner_id = require_session(owner_id)
        process_ids = list(dict.fromkeys(process_ids))
        async with self._session_factory() as session:
            await self._require_linked_user(session, linked_user_id, owner_id)
            if process_ids:
                await self._require_owned(session, process_ids, owner_id)
            await session.execute(
                text("DELETE FROM process_access WHERE linked_user_id = :id"),
                {"id": str(linked_user_id)},
            )
            for process_id in process_ids:
                await session.execute(
                    text("""
                    INSERT INTO process_access (id, process_id, linked_user_id, granted_by)
                    VALUES (:id, :process_id, :linked_user_id, :owner)
                    """),
                    {
                        "id": str(uuid4()),
                        "process_id": str(process_id),
                        "linked_user_id": str(linked_user_id),
                        "owner": owner_id,
                    },
                )
        logger.info(f"Linked user {linked_user_id} now has access to {len(process_ids)} processes")
        return len(process_ids)

    async def _require_linked_user(self, session, linked_user_id: UUID, owner_id: str) -> None:
        result = await session.execute(
            text("SELECT id FROM linked_users WHERE id = :id AND owner_user_id = :owner"),
            {"id": str(linked_user_id), "owner": owner_id},
        )
        if result.fetchone() is None:
            raise LinkedUserNotFoundError("Usuário vinculado não encontrado")

    async def _require_owned(self, session, process_ids: list[UUID], owner_id: str) -> None:
        result = await session.execute(
            text("SELECT id FROM processes WHERE user_id = :owner AND id = ANY(:ids)"),
            {"owner": owner_id, "ids": list(process_ids)},
        )
        owned = {str(row.id) for row in result.fetchall()}
        if any(str(process_id) not in owned for process_id in process_ids):
            raise ProcessAccessDenied("Só é possível compartilhar processos próprios")


# Singleton instance
_sharing_service: SharingService | None = None


def get_sharing_service() -> SharingService:
    """Get the sharing service singleton."""
    global _sharing_service
    if _sharing_service is None:
        _sharing_service = SharingService()
    return _sharing_service
