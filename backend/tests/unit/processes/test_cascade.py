"""Unit tests for cascading process deletion.

The database is replaced by a scripted session factory and storage by a
MagicMock, so every step of the deletion plan can be observed.

Run with: pytest tests/unit/processes/test_cascade.py -v
"""

import json
import threading
from contextlib import asynccontextmanager

import pytest
from unittest.mock import MagicMock
from uuid import uuid4

from laudos.processes.cascade import DEPENDENT_TABLES, ProcessDeleter, collect_paths
from laudos.processes.manager import ProcessAccessDenied, ProcessNotFoundError, SessionExpiredError
from laudos.storage import BatchDeleteResult


class ScriptedDatabase:
    """Answers the deletion statements from canned data."""

    def __init__(self, owner="user-1", rows=None, failing=(), deleted=1):
        self.owner = owner
        self.rows = rows or {}
        self.failing = set(failing)
        self.deleted = deleted
        self.statements: list[str] = []

    @asynccontextmanager
    async def session(self):
        yield self

    async def execute(self, clause, params=None):
        sql = " ".join(str(clause).split())
        self.statements.append(sql)
        result = MagicMock()

        if sql.startswith("SELECT user_id FROM processes"):
            result.fetchone.return_value = MagicMock(user_id=self.owner) if self.owner else None
            return result
        if sql.startswith("SELECT"):
            table = sql.split(" FROM ")[1].split()[0]
            if table in self.failing:
                raise RuntimeError(f"{table} unavailable")
            result.fetchall.return_value = [(value,) for value in self.rows.get(table, [])]
            return result
        if sql.startswith("DELETE FROM processes"):
            result.rowcount = self.deleted
            return result
        if sql.startswith("DELETE FROM"):
            table = sql.split()[2]
            if table in self.failing:
                raise RuntimeError(f"{table} locked")
            return result
        raise AssertionError(f"Unexpected statement: {sql}")


@pytest.fixture
def process_id():
    return uuid4()


@pytest.fixture
def storage():
    storage = MagicMock()
    storage.list_files.return_value = []
    storage.delete_files.side_effect = lambda keys: BatchDeleteResult(removed=len(keys))
    return storage


class TestCollectPaths:
    """Tests for path discovery in stored values."""

    def test_nested_values(self):
        """Test strings, JSON text, lists and dicts."""
        prefix = "user-1/p1/"
        value = json.dumps([
            {"path": "user-1/p1/attachments/a.pdf", "name": "a.pdf"},
            {"meta": {"file_path": "user-1/p1/photos/b.jpg"}},
            "user-1/p1/photos/c.jpg",
            "other-user/p2/d.jpg",
        ])

        assert collect_paths(value, prefix) == [
            "user-1/p1/attachments/a.pdf",
            "user-1/p1/photos/b.jpg",
            "user-1/p1/photos/c.jpg",
        ]

    def test_empty_values(self):
        assert collect_paths(None, "x/") == []
        assert collect_paths("", "x/") == []


class TestProcessDeleter:
    """Tests for the ordered deletion plan."""

    @pytest.mark.asyncio
    async def test_storage_calls_leave_event_loop(self, process_id, storage):
        """Test that blocking bucket calls run in a worker thread."""
        loop_thread = threading.get_ident()
        threads = {}

        def list_files(prefix):
            threads["list"] = threading.get_ident()
            return [f"{prefix}a.pdf"]

        def delete_files(keys):
            threads["delete"] = threading.get_ident()
            return BatchDeleteResult(removed=len(keys))

        storage.list_files.side_effect = list_files
        storage.delete_files.side_effect = delete_files
        deleter = ProcessDeleter(storage=storage, session_factory=ScriptedDatabase().session)

        result = await deleter.delete(process_id, "user-1")

        assert result.removed_files == 1
        assert loop_thread not in threads.values()
        assert set(threads) == {"list", "delete"}

    @pytest.mark.asyncio
    async def test_full_deletion(self, process_id, storage):
        """Test that files and rows are removed in order."""
        prefix = f"user-1/{process_id}/"
        db = ScriptedDatabase(rows={
            "documents": [f"{prefix}documents/a.pdf"],
            "reports": [None],
            "questionnaires": [json.dumps([{"path": f"{prefix}attachments/q.png"}])],
            "risk_agents": [[f"{prefix}photos/r.jpg", f"{prefix}documents/a.pdf"]],
        })
        storage.list_files.return_value = [f"{prefix}documents/a.pdf", f"{prefix}orphan.txt"]
        deleter = ProcessDeleter(storage=storage, session_factory=db.session)

        result = await deleter.delete(process_id, "user-1")

        assert result.success is True
        assert result.removed_files == 4
        assert result.storage_warnings == []
        storage.list_files.assert_called_once_with(prefix)
        deleted_keys = storage.delete_files.call_args.args[0]
        assert sorted(deleted_keys) == sorted([
            f"{prefix}documents/a.pdf",
            f"{prefix}attachments/q.png",
            f"{prefix}photos/r.jpg",
            f"{prefix}orphan.txt",
        ])

        deletes = [s.split()[2] for s in db.statements if s.startswith("DELETE FROM")]
        assert deletes == [*DEPENDENT_TABLES, "processes"]

    @pytest.mark.asyncio
    async def test_failures_become_warnings(self, process_id, storage):
        """Test that listing, storage and dependent-row failures do not abort."""
        db = ScriptedDatabase(failing={"risk_agents", "notifications"})
        storage.list_files.side_effect = RuntimeError("bucket offline")
        deleter = ProcessDeleter(storage=storage, session_factory=db.session)

        result = await deleter.delete(process_id, "user-1")

        assert result.success is True
        assert result.removed_files == 0
        assert "Falha ao listar evidências de agentes: risk_agents unavailable" in result.storage_warnings
        assert "Falha ao listar arquivos do processo: bucket offline" in result.storage_warnings
        assert "Falha ao excluir notifications: notifications locked" in result.storage_warnings
        assert "Falha ao excluir risk_agents: risk_agents locked" in result.storage_warnings
        storage.delete_files.assert_not_called()
        assert db.statements[-1].startswith("DELETE FROM processes")

    @pytest.mark.asyncio
    async def test_storage_batch_warnings_are_reported(self, process_id, storage):
        """Test that partial storage failures are surfaced."""
        db = ScriptedDatabase(rows={"documents": [f"user-1/{process_id}/documents/a.pdf"]})
        storage.delete_files.side_effect = None
        storage.delete_files.return_value = BatchDeleteResult(removed=0, warnings=["Falha ao remover arquivos (1): x"])
        deleter = ProcessDeleter(storage=storage, session_factory=db.session)

        result = await deleter.delete(process_id, "user-1")

        assert result.storage_warnings == ["Falha ao remover arquivos (1): x"]

    @pytest.mark.asyncio
    async def test_expired_session(self, process_id, storage):
        """Test that no user aborts before any statement."""
        db = ScriptedDatabase()
        deleter = ProcessDeleter(storage=storage, session_factory=db.session)

        with pytest.raises(SessionExpiredError, match="Sessão expirada"):
            await deleter.delete(process_id, None)

        assert db.statements == []

    @pytest.mark.asyncio
    async def test_missing_process(self, process_id, storage):
        """Test that an unknown process aborts."""
        db = ScriptedDatabase(owner=None)
        deleter = ProcessDeleter(storage=storage, session_factory=db.session)

        with pytest.raises(ProcessNotFoundError, match="Processo não encontrado"):
            await deleter.delete(process_id, "user-1")

    @pytest.mark.asyncio
    async def test_not_owner(self, process_id, storage):
        """Test that only the owner may delete, and nothing is touched."""
        db = ScriptedDatabase(owner="someone-else")
        deleter = ProcessDeleter(storage=storage, session_factory=db.session)

        with pytest.raises(ProcessAccessDenied, match="Sem permissão para excluir este processo"):
            await deleter.delete(process_id, "user-1")

        assert len(db.statements) == 1
        storage.delete_files.assert_not_called()

    @pytest.mark.asyncio
    async def test_final_delete_missing_row(self, process_id, storage):
        """Test that losing the process row at the end is fatal."""
        db = ScriptedDatabase(deleted=0)
        deleter = ProcessDeleter(storage=storage, session_factory=db.session)

        with pytest.raises(ProcessNotFoundError):
            await deleter.delete(process_id, "user-1")
