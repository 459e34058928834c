"""Unit tests for ProcessManager access control and updates.

The database session is an AsyncMock; results are scripted per test.

Run with: pytest tests/unit/processes/test_manager.py -v
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from laudos.processes.manager import (
    ProcessAccessDenied,
    ProcessManager,
    ProcessNotFoundError,
    SessionExpiredError,
)
from laudos.processes.models import CreateProcessRequest


def row_for(process) -> MagicMock:
    """A database row carrying the columns of a process."""
    data = process.model_dump()
    row = MagicMock()
    row._mapping = data
    row.user_id = data["user_id"]
    return row


def result_with(row) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = row
    return result


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.execute = AsyncMock()
    return session


class TestGetProcess:
    """Tests for ownership and delegated access."""

    @pytest.mark.asyncio
    async def test_owner(self, mock_session, minimal_process):
        """Test that the owner loads the process."""
        mock_session.execute.return_value = result_with(row_for(minimal_process))
        manager = ProcessManager(session=mock_session)

        process = await manager.get_process(minimal_process.id, "user-1")

        assert process.id == minimal_process.id
        assert process.claimant_name == "Maria Souza"
        assert mock_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_not_found(self, mock_session, minimal_process):
        """Test an unknown process."""
        mock_session.execute.return_value = result_with(None)
        manager = ProcessManager(session=mock_session)

        with pytest.raises(ProcessNotFoundError):
            await manager.get_process(minimal_process.id, "user-1")

    @pytest.mark.asyncio
    async def test_other_user_without_cpf(self, mock_session, minimal_process):
        """Test that a stranger without CPF is denied without a grant lookup."""
        mock_session.execute.return_value = result_with(row_for(minimal_process))
        manager = ProcessManager(session=mock_session)

        with pytest.raises(ProcessAccessDenied):
            await manager.get_process(minimal_process.id, "user-2")

        assert mock_session.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_delegated_grant(self, mock_session, minimal_process):
        """Test access through an active linked user with a matching CPF."""
        mock_session.execute.side_effect = [
            result_with(row_for(minimal_process)),
            result_with((1,)),
        ]
        manager = ProcessManager(session=mock_session)

        process = await manager.get_process(minimal_process.id, "user-2", cpf="529.982.247-25")

        assert process.id == minimal_process.id
        grant_params = mock_session.execute.await_args_list[1].args[1]
        assert grant_params["cpf"] == "52998224725"

    @pytest.mark.asyncio
    async def test_delegated_without_grant(self, mock_session, minimal_process):
        """Test that a CPF with no active grant is denied."""
        mock_session.execute.side_effect = [
            result_with(row_for(minimal_process)),
            result_with(None),
        ]
        manager = ProcessManager(session=mock_session)

        with pytest.raises(ProcessAccessDenied):
            await manager.get_process(minimal_process.id, "user-2", cpf="52998224725")

    @pytest.mark.asyncio
    async def test_session_expired(self, mock_session, minimal_process):
        """Test that a missing user fails before touching the database."""
        manager = ProcessManager(session=mock_session)

        with pytest.raises(SessionExpiredError, match="Sessão expirada"):
            await manager.get_process(minimal_process.id, None)

        mock_session.execute.assert_not_awaited()


class TestUpdateProcess:
    """Tests for partial updates."""

    @pytest.mark.asyncio
    async def test_unknown_fields(self, mock_session, minimal_process):
        """Test that unknown columns are rejected."""
        manager = ProcessManager(session=mock_session)

        with pytest.raises(ValueError, match="Campos desconhecidos: foo"):
            await manager.update_process(minimal_process.id, {"foo": 1}, "user-1")

        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_identity_field(self, mock_session, minimal_process):
        """Test that identity fields cannot be blanked."""
        manager = ProcessManager(session=mock_session)

        with pytest.raises(ValueError, match="claimant_name"):
            await manager.update_process(minimal_process.id, {"claimant_name": "  "}, "user-1")

    @pytest.mark.asyncio
    async def test_partial_update(self, mock_session, minimal_process):
        """Test that only the given fields are written."""
        mock_session.execute.return_value = result_with(row_for(minimal_process))
        manager = ProcessManager(session=mock_session)

        updated = await manager.update_process(
            minimal_process.id,
            {"objective": "Apurar insalubridade", "defendant_data": {"cnpj": "1"}},
            "user-1",
        )

        assert updated.objective == "Apurar insalubridade"
        assert updated.claimant_name == "Maria Souza"
        sql, params = mock_session.execute.await_args_list[-1].args
        assert "UPDATE processes" in str(sql)
        assert "defendant_data = CAST(:defendant_data AS jsonb)" in str(sql)
        assert params["defendant_data"] == '{"cnpj": "1"}'
        assert "claimant_name" not in params

    @pytest.mark.asyncio
    async def test_empty_update_returns_current(self, mock_session, minimal_process):
        """Test that no fields means no write."""
        mock_session.execute.return_value = result_with(row_for(minimal_process))
        manager = ProcessManager(session=mock_session)

        process = await manager.update_process(minimal_process.id, {}, "user-1")

        assert process.id == minimal_process.id
        assert mock_session.execute.await_count == 1


class TestCreateAndList:
    """Tests for creation and search arguments."""

    @pytest.mark.asyncio
    async def test_create_requires_session(self, mock_session):
        """Test that creation needs an authenticated user."""
        manager = ProcessManager(session=mock_session)
        request = CreateProcessRequest(
            process_number="1", claimant_name="A", defendant_name="B"
        )

        with pytest.raises(SessionExpiredError):
            await manager.create_process(request, None)

    @pytest.mark.asyncio
    async def test_create(self, mock_session):
        """Test that the new process is owned by the caller."""
        manager = ProcessManager(session=mock_session)
        request = CreateProcessRequest(
            process_number="0001234-56.2023.5.02.0001", claimant_name="A", defendant_name="B"
        )

        process = await manager.create_process(request, "user-1")

        assert process.user_id == "user-1"
        assert process.status == "pending"
        params = mock_session.execute.await_args.args[1]
        assert params["user_id"] == "user-1"

    @pytest.mark.asyncio
    async def test_invalid_sort(self, mock_session):
        """Test that only known columns can be sorted on."""
        manager = ProcessManager(session=mock_session)

        with pytest.raises(ValueError, match="Cannot sort by"):
            await manager.list_processes("user-1", sort_by="id; DROP TABLE processes")
