"""Report generation for Laudos.

The assembler turns a process, its questionnaires and its risk agents into
the plain-text "laudo pericial" with 21 numbered sections. The generator
wraps it with loading, derived fields and history.

Usage:
    from laudos.reports import assemble_report

    text = assemble_report(process, questionnaires, risk_agents, "insalubridade")

    from laudos.reports.generator import get_report_generator

    report = await get_report_generator().generate(process_id, user.id, user.cpf)
"""

from .assembler import SECTION_TITLES, assemble_report, parse_epc_items
from .formatting import NOT_INFORMED, is_informed

__all__ = [
    "NOT_INFORMED",
    "SECTION_TITLES",
    "assemble_report",
    "is_informed",
    "parse_epc_items",
]
