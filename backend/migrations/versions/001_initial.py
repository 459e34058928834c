"""Initial database schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

Creates the PostgreSQL tables:
- processes: Labor-court cases under expertise
- documents: Uploaded files per process
- reports: Generated report history
- risk_agents: Occupational risk agents per process
- questionnaires: Party questions and expert answers
- linked_users / process_access: Delegated access by CPF
- notifications: User notifications and reminders
- schedule_email_receipts: Schedule e-mails with open/confirm tracking
- profiles: Expert identification for the report preamble
- templates: Reusable analysis texts per user
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        primary_key=True,
        server_default=sa.text("uuid_generate_v4()"),
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    ]


def _process_fk() -> sa.Column:
    return sa.Column(
        "process_id",
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey("processes.id"),
        nullable=False,
    )


def upgrade() -> None:
    # Create UUID extension if not exists
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # =========================
    # Processes Table
    # =========================
    op.create_table(
        "processes",
        _id_column(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("process_number", sa.String(50), nullable=False),
        sa.Column("claimant_name", sa.Text, nullable=False),
        sa.Column("defendant_name", sa.Text, nullable=False),
        sa.Column("court", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        # Scheduling
        sa.Column("inspection_date", sa.Date, nullable=True),
        sa.Column("inspection_time", sa.Time, nullable=True),
        sa.Column("inspection_address", sa.Text, nullable=True),
        sa.Column("inspection_city", sa.Text, nullable=True),
        sa.Column("inspection_duration_minutes", sa.Integer, nullable=True, server_default="60"),
        sa.Column("inspection_reminder_minutes", sa.Integer, nullable=True),
        sa.Column("inspection_notes", sa.Text, nullable=True),
        sa.Column("inspection_status", sa.String(20), nullable=True),
        sa.Column("claimant_email", sa.Text, nullable=True),
        sa.Column("defendant_email", sa.Text, nullable=True),
        sa.Column("distribution_date", sa.Date, nullable=True),
        # Narrative
        sa.Column("objective", sa.Text, nullable=True),
        sa.Column("methodology", sa.Text, nullable=True),
        sa.Column("initial_data", sa.Text, nullable=True),
        sa.Column("defense_data", sa.Text, nullable=True),
        sa.Column("activities_description", sa.Text, nullable=True),
        sa.Column("discordances_presented", sa.Text, nullable=True),
        sa.Column("insalubrity_analysis", sa.Text, nullable=True),
        sa.Column("insalubrity_results", sa.Text, nullable=True),
        sa.Column("periculosity_analysis", sa.Text, nullable=True),
        sa.Column("periculosity_concept", sa.Text, nullable=True),
        sa.Column("periculosity_results", sa.Text, nullable=True),
        sa.Column("flammable_definition", sa.Text, nullable=True),
        sa.Column("conclusion", sa.Text, nullable=True),
        sa.Column("epcs", sa.Text, nullable=True),
        sa.Column("collective_protection", sa.Text, nullable=True),
        sa.Column("epi_intro", sa.Text, nullable=True),
        # Structured
        sa.Column("identifications", postgresql.JSONB, nullable=True),
        sa.Column("claimant_data", postgresql.JSONB, nullable=True),
        sa.Column("defendant_data", postgresql.JSONB, nullable=True),
        sa.Column("workplace_characteristics", postgresql.JSONB, nullable=True),
        sa.Column("diligence_data", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("attendees", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("documents_presented", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("epis", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("report_config", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("cover_data", postgresql.JSONB, nullable=False, server_default="{}"),
        # Payment
        sa.Column("expert_fee", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_status", sa.String(20), nullable=True),
        sa.Column("payment_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_date", sa.Date, nullable=True),
        sa.Column("payment_due_date", sa.Date, nullable=True),
        sa.Column("payment_notes", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_index("idx_processes_user", "processes", ["user_id"])
    op.create_index("idx_processes_status", "processes", ["status"])
    op.create_index("idx_processes_number", "processes", ["process_number"])
    op.create_index("idx_processes_inspection", "processes", ["inspection_date"])

    # =========================
    # Documents Table
    # =========================
    op.create_table(
        "documents",
        _id_column(),
        _process_fk(),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("file_path", sa.Text, nullable=False),
        sa.Column("file_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.BigInteger, nullable=True),
        sa.Column("category", sa.String(50), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_confidential", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("uploaded_by", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    op.create_index("idx_documents_process", "documents", ["process_id"])

    # =========================
    # Reports Table (append-only history)
    # =========================
    op.create_table(
        "reports",
        _id_column(),
        _process_fk(),
        sa.Column("report_type", sa.String(20), nullable=False),
        sa.Column("title", sa.Text, nullable=False),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("conclusion", sa.Text, nullable=True),
        sa.Column("insalubrity_grade", sa.String(20), nullable=True),
        sa.Column("periculosity_identified", sa.Boolean, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="generated"),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("file_path", sa.Text, nullable=True),
        sa.Column(
            "generated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    op.create_index("idx_reports_process", "reports", ["process_id", "generated_at"])

    # =========================
    # Risk Agents Table
    # =========================
    op.create_table(
        "risk_agents",
        _id_column(),
        _process_fk(),
        sa.Column("agent_name", sa.Text, nullable=False),
        sa.Column("agent_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("measurement_method", sa.Text, nullable=True),
        sa.Column("measurement_value", sa.Float, nullable=True),
        sa.Column("measurement_unit", sa.String(30), nullable=True),
        sa.Column("tolerance_limit", sa.Float, nullable=True),
        sa.Column("tolerance_unit", sa.String(30), nullable=True),
        sa.Column("risk_level", sa.String(20), nullable=True),
        sa.Column("exposure_level", sa.String(20), nullable=True),
        sa.Column("insalubrity_degree", sa.String(20), nullable=True),
        sa.Column("periculosity_applicable", sa.Boolean, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("evidence_photos", postgresql.JSONB, nullable=False, server_default="[]"),
        *_timestamps(),
    )

    op.create_index("idx_risk_agents_process", "risk_agents", ["process_id"])

    # =========================
    # Questionnaires Table
    # =========================
    op.create_table(
        "questionnaires",
        _id_column(),
        _process_fk(),
        sa.Column("party", sa.String(20), nullable=False),
        sa.Column("question_number", sa.Integer, nullable=False),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("answer", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("attachments", postgresql.JSONB, nullable=False, server_default="[]"),
        *_timestamps(),
    )

    op.create_index("idx_questionnaires_process", "questionnaires", ["process_id", "party", "question_number"])

    # =========================
    # Delegated Access Tables
    # =========================
    op.create_table(
        "linked_users",
        _id_column(),
        sa.Column("owner_user_id", sa.Text, nullable=False),
        sa.Column("linked_user_cpf", sa.String(11), nullable=False),
        sa.Column("linked_user_name", sa.Text, nullable=True),
        sa.Column("linked_user_email", sa.Text, nullable=True),
        sa.Column("linked_user_phone", sa.String(20), nullable=True),
        sa.Column("permissions", postgresql.JSONB, nullable=False, server_default="{}"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        sa.UniqueConstraint("owner_user_id", "linked_user_cpf", name="uq_linked_users_owner_cpf"),
    )

    op.create_index("idx_linked_users_cpf", "linked_users", ["linked_user_cpf", "status"])

    op.create_table(
        "process_access",
        _id_column(),
        _process_fk(),
        sa.Column(
            "linked_user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("linked_users.id"),
            nullable=False,
        ),
        sa.Column("granted_by", sa.Text, nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.UniqueConstraint("process_id", "linked_user_id", name="uq_process_access"),
    )

    # =========================
    # Notifications Table
    # =========================
    op.create_table(
        "notifications",
        _id_column(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("type", sa.String(20), nullable=False, server_default="info"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("read", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "process_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("processes.id"),
            nullable=True,
        ),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=False, server_default="{}"),
        *_timestamps(),
    )

    op.create_index("idx_notifications_user", "notifications", ["user_id", "read", "created_at"])

    # =========================
    # Schedule E-mail Receipts
    # =========================
    op.create_table(
        "schedule_email_receipts",
        _id_column(),
        _process_fk(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("recipient_role", sa.String(20), nullable=False),
        sa.Column("recipient_email", sa.Text, nullable=False),
        sa.Column("subject", sa.Text, nullable=False),
        sa.Column("body", sa.Text, nullable=False),
        sa.Column("provider", sa.String(20), nullable=False),
        sa.Column("provider_message_id", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("opened_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    op.create_index("idx_email_receipts_process", "schedule_email_receipts", ["process_id", "created_at"])

    # =========================
    # Profiles Table
    # =========================
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.Text, primary_key=True),
        sa.Column("full_name", sa.Text, nullable=False),
        sa.Column("professional_title", sa.Text, nullable=True),
        sa.Column("registration_number", sa.String(50), nullable=True),
        sa.Column("cpf", sa.String(11), nullable=True),
        *_timestamps(),
    )

    # =========================
    # Templates Table
    # =========================
    op.create_table(
        "templates",
        _id_column(),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("external_id", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("text", sa.Text, nullable=True),
        sa.Column("nr15_annexes", postgresql.JSONB, nullable=True),
        sa.Column("nr16_annexes", postgresql.JSONB, nullable=True),
        sa.Column("nr15_enquadramento", sa.Boolean, nullable=True),
        sa.Column("nr16_enquadramento", sa.Boolean, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "external_id", name="uq_templates_user_external"),
    )


def downgrade() -> None:
    op.drop_table("templates")
    op.drop_table("profiles")
    op.drop_table("schedule_email_receipts")
    op.drop_table("notifications")
    op.drop_table("process_access")
    op.drop_table("linked_users")
    op.drop_table("questionnaires")
    op.drop_table("risk_agents")
    op.drop_table("reports")
    op.drop_table("documents")
    op.drop_table("processes")
