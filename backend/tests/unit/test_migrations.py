"""Unit tests for the initial schema migration.

The migration runs against a mocked ``op`` so no database is needed.

Run with: pytest tests/unit/test_migrations.py -v
"""

import importlib.util
from pathlib import Path

import pytest
from unittest.mock import MagicMock

MIGRATION = Path(__file__).resolve().parents[2] / "migrations" / "versions" / "001_initial.py"

TABLES = {
    "processes", "documents", "reports", "risk_agents", "questionnaires",
    "linked_users", "process_access", "notifications", "templates",
    "schedule_email_receipts", "profiles",
}


@pytest.fixture
def migration():
    spec = importlib.util.spec_from_file_location("initial_migration", MIGRATION)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    module.op = MagicMock()
    return module


class TestInitialMigration:
    """Tests for the tables created and dropped."""

    def test_creates_every_table(self, migration):
        migration.upgrade()

        created = {call.args[0] for call in migration.op.create_table.call_args_list}
        assert created == TABLES

    def test_templates_columns(self, migration):
        """Test the template library columns."""
        migration.upgrade()

        call = next(c for c in migration.op.create_table.call_args_list if c.args[0] == "templates")
        columns = {arg.name for arg in call.args[1:] if hasattr(arg, "name") and arg.name}
        assert {"user_id", "external_id", "name", "text", "nr15_annexes", "nr16_annexes"} <= columns

    def test_downgrade_drops_every_table(self, migration):
        migration.downgrade()

        dropped = [call.args[0] for call in migration.op.drop_table.call_args_list]
        assert set(dropped) == TABLES
        assert dropped[-1] == "processes"
