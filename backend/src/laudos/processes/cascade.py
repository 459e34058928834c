"""Cascading deletion of a process.

Deletion runs as an explicit ordered plan:

1. Verify the session, that the process exists and that the caller owns it.
2. Collect the storage paths that belong to the process.
3. Remove the storage objects in batches.
4. Delete the dependent rows, then the process row itself.

Only the checks in step 1 and the final process delete abort the operation.
Everything else is collected into ``storage_warnings`` so that a partially
broken process can still be removed.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Iterable
from uuid import UUID

from sqlalchemy import text

from ..db import get_db_session
from ..logging import log_process_deleted
from ..storage import StorageClient, get_storage, process_prefix
from .manager import ProcessAccessDenied, ProcessNotFoundError, require_session
from .models import DeleteProcessResult, parse_json_bag

logger = logging.getLogger(__name__)

# Dependent tables, in deletion order
DEPENDENT_TABLES: tuple[str, ...] = (
    "process_access",
    "schedule_email_receipts",
    "notifications",
    "questionnaires",
    "reports",
    "risk_agents",
    "documents",
)

# (label used in warnings, SQL returning one column of path values)
PATH_SOURCES: tuple[tuple[str, str], ...] = (
    ("documentos", "SELECT file_path FROM documents WHERE process_id = :process_id"),
    ("relatórios", "SELECT file_path FROM reports WHERE process_id = :process_id"),
    ("anexos de quesitos", "SELECT attachments FROM questionnaires WHERE process_id = :process_id"),
    ("evidências de agentes", "SELECT evidence_photos FROM risk_agents WHERE process_id = :process_id"),
)

_PATH_KEYS = ("path", "file_path", "key", "storage_path")


def collect_paths(value: Any, prefix: str) -> list[str]:
    """Walk a stored value and return every string under ``prefix``.

    Handles plain strings, JSON-encoded strings, lists and dicts (both the
    well-known path keys and any nested values).
    """
    found: list[str] = []

    def walk(item: Any) -> None:
        item = parse_json_bag(item)
        if isinstance(item, str):
            if item.startswith(prefix):
                found.append(item)
        elif isinstance(item, dict):
            for key in _PATH_KEYS:
                if key in item:
                    walk(item[key])
            for key, nested in item.items():
                if key not in _PATH_KEYS and isinstance(nested, (list, dict)):
                    walk(nested)
        elif isinstance(item, (list, tuple)):
            for nested in item:
                walk(nested)

    walk(value)
    return found


def _unique(paths: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(paths))


class ProcessDeleter:
    """Runs the deletion plan for one process at a time."""

    def __init__(
        self,
        storage: StorageClient | None = None,
        session_factory: Callable[[], Any] | None = None,
    ):
        """Initialize the deleter.

        Args:
            storage: Storage client (defaults to the shared one)
            session_factory: Returns an async context manager yielding a
                    session. Each step opens its own session so that a failed
                    statement does not poison the following ones.
        """
        self._storage = storage
        self._session_factory = session_factory or get_db_session

    @property
    def storage(self) -> StorageClient:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    async def delete(self, process_id: UUID, user_id: str | None) -> DeleteProcessResult:
        """Delete a process and everything attached to it.

        Raises:
            SessionExpiredError: No authenticated user
            ProcessNotFoundError: The process does not exist
            ProcessAccessDenied: The caller is not the owner
        """
        user_id = require_session(user_id)
        owner_id = await self._verify_owner(process_id, user_id)
        prefix = process_prefix(owner_id, str(process_id))
        warnings: list[str] = []

        paths = await self._collect(process_id, prefix, warnings)

        removed = 0
        if paths:
            batch = await asyncio.to_thread(self.storage.delete_files, paths)
            removed = batch.removed
            warnings.extend(batch.warnings)

        for table in DEPENDENT_TABLES:
            await self._run_step(
                f"Falha ao excluir {table}",
                warnings,
                self._delete_rows(table, process_id),
            )

        async with self._session_factory() as session:
            result = await session.execute(
                text("DELETE FROM processes WHERE id = :id AND user_id = :user_id"),
                {"id": str(process_id), "user_id": user_id},
            )
            if result.rowcount == 0:
                raise ProcessNotFoundError("Processo não encontrado")

        log_process_deleted(str(process_id), removed, warnings)
        return DeleteProcessResult(removed_files=removed, storage_warnings=warnings)

    async def _verify_owner(self, process_id: UUID, user_id: str) -> str:
        async with self._session_factory() as session:
            result = await session.execute(
                text("SELECT user_id FROM processes WHERE id = :id"),
                {"id": str(process_id)},
            )
            row = result.fetchone()

        if row is None:
            raise ProcessNotFoundError("Processo não encontrado")
        owner_id = str(row.user_id)
        if owner_id != user_id:
            raise ProcessAccessDenied("Sem permissão para excluir este processo")
        return owner_id

    async def _collect(self, process_id: UUID, prefix: str, warnings: list[str]) -> list[str]:
        paths: list[str] = []

        for label, sql in PATH_SOURCES:
            try:
                async with self._session_factory() as session:
                    result = await session.execute(text(sql), {"process_id": str(process_id)})
                    for row in result.fetchall():
                        paths.extend(collect_paths(row[0], prefix))
            except Exception as e:
                logger.warning(f"Could not list {label} of process {process_id}: {e}")
                warnings.append(f"Falha ao listar {label}: {e}")

        try:
            paths.extend(await asyncio.to_thread(self.storage.list_files, prefix))
        except Exception as e:
            logger.warning(f"Could not list storage prefix {prefix}: {e}")
            warnings.append(f"Falha ao listar arquivos do processo: {e}")

        return _unique(paths)

    async def _delete_rows(self, table: str, process_id: UUID) -> None:
        async with self._session_factory() as session:
            await session.execute(
                text(f"DELETE FROM {table} WHERE process_id = :process_id"),
                {"process_id": str(process_id)},
            )

    async def _run_step(self, label: str, warnings: list[str], step: Awaitable[None]) -> None:
        try:
            await step
        except Exception as e:
            logger.warning(f"{label}: {e}")
            warnings.append(f"{label}: {e}")


# Singleton instance
_process_deleter: ProcessDeleter | None = None


def get_process_deleter() -> ProcessDeleter:
    """Get the process deleter singleton."""
    global _process_deleter
    if _process_deleter is None:
        _process_deleter = ProcessDeleter()
    return _process_deleter
