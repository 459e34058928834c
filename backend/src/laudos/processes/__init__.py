"""Processes module for Laudos.

A process is the labor-court case an expert witness was appointed to. This
package holds the process records and everything that operates on them
before a report is written.

Main components:
- ProcessManager: create, load, search and update processes
- ProcessDeleter: ordered cascading delete including storage cleanup
- AutosaveBuffer: debounced field updates from the report editor
- DocumentService: uploads and preview links
- Validation: CPF, e-mail and per-entity business rules

Usage:
    from laudos.processes import get_process_manager, CreateProcessRequest

    manager = get_process_manager()
    process = await manager.create_process(
        CreateProcessRequest(
            process_number="0001234-56.2024.5.02.0001",
            claimant_name="Maria da Silva",
            defendant_name="Indústria ABC Ltda",
        ),
        user_id=user.id,
    )

    process = await manager.get_process(process.id, user.id, user.cpf)
"""

from .models import (
    CreateProcessRequest,
    DeleteProcessResult,
    DocumentRecord,
    ExpertProfile,
    Party,
    ProcessRecord,
    ProcessStatus,
    QuestionnaireEntry,
    ReportConfig,
    ReportRecord,
    ReportType,
    RiskAgent,
    ValidationResult,
)

__all__ = [
    "CreateProcessRequest",
    "DeleteProcessResult",
    "DocumentRecord",
    "ExpertProfile",
    "Party",
    "ProcessRecord",
    "ProcessStatus",
    "QuestionnaireEntry",
    "ReportConfig",
    "ReportRecord",
    "ReportType",
    "RiskAgent",
    "ValidationResult",
]
