"""CLI commands for report assembly.

Usage:
    laudos report build process.json --type insalubridade --output laudo.txt
    laudos report generate <process-id> --user <user-id>
"""

import asyncio
import json
import sys
from pathlib import Path
from uuid import UUID

import click

from ..logging import setup_logging
from ..processes.models import ExpertProfile, ProcessRecord, QuestionnaireEntry, ReportType, RiskAgent
from ..reports.assembler import assemble_report

REPORT_TYPES = [t.value for t in ReportType]


@click.group(name="report")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
def cli(verbose: bool):
    """Report assembly commands."""
    setup_logging("DEBUG" if verbose else None)


def load_export(path: Path) -> tuple[ProcessRecord, list[QuestionnaireEntry], list[RiskAgent], ExpertProfile | None]:
    """Read a process export.

    The file holds either a bare process object or
    ``{"process": ..., "questionnaires": [...], "risk_agents": [...], "expert": ...}``.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if "process" not in data:
        data = {"process": data}

    expert = data.get("expert")
    return (
        ProcessRecord.model_validate(data["process"]),
        [QuestionnaireEntry.model_validate(q) for q in data.get("questionnaires") or []],
        [RiskAgent.model_validate(a) for a in data.get("risk_agents") or []],
        ExpertProfile.model_validate(expert) if expert else None,
    )


@cli.command(name="build")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--type", "report_type", type=click.Choice(REPORT_TYPES), default=ReportType.COMPLETO.value,
              help="Report type")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the report to a file instead of stdout")
def build(source: Path, report_type: str, output: Path | None) -> None:
    """Assemble a report from a JSON process export."""
    try:
        process, questionnaires, risk_agents, expert = load_export(source)
    except (ValueError, KeyError) as e:
        click.echo(f"Invalid process export: {e}", err=True)
        sys.exit(1)

    content = assemble_report(process, questionnaires, risk_agents, report_type, expert=expert)
    if output is None:
        click.echo(content, nl=False)
        return
    output.write_text(content, encoding="utf-8")
    click.echo(f"Report written to {output} ({len(content)} chars)")


@cli.command(name="generate")
@click.argument("process_id", type=click.UUID)
@click.option("--user", "user_id", required=True, help="Owner user ID")
@click.option("--type", "report_type", type=click.Choice(REPORT_TYPES), default=ReportType.COMPLETO.value,
              help="Report type")
@click.option("--no-save", is_flag=True, help="Do not store the report in the history")
def generate(process_id: UUID, user_id: str, report_type: str, no_save: bool) -> None:
    """Generate a report from the database and print it."""
    from ..reports.generator import get_report_generator

    report = asyncio.run(
        get_report_generator().generate(
            process_id, user_id, report_type=ReportType(report_type), persist=not no_save
        )
    )
    click.echo(report.content, nl=False)
    if not no_save and not report.persisted:
        click.echo("Warning: report could not be saved to the history", err=True)
