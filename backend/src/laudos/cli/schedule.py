"""CLI commands for inspection schedules.

Usage:
    laudos schedule ics processes.json --output vistorias.ics
    laudos schedule message process.json --contact "Dr. Silva" --phone "(11) 98765-4321"
"""

import json
import sys
from pathlib import Path

import click

from ..logging import setup_logging
from ..processes.models import ProcessRecord
from ..scheduling.calendar import build_ics, build_schedule_message, google_calendar_url, whatsapp_url


@click.group(name="schedule")
@click.option("-v", "--verbose", is_flag=True, help="Log at DEBUG level")
def cli(verbose: bool):
    """Inspection schedule commands."""
    setup_logging("DEBUG" if verbose else None)


def _load_processes(path: Path) -> list[ProcessRecord]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = [data]
    return [ProcessRecord.model_validate(item) for item in data]


@cli.command(name="ics")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write the calendar to a file instead of stdout")
def export_ics(source: Path, output: Path | None) -> None:
    """Export scheduled inspections from a JSON process list as iCalendar."""
    processes = _load_processes(source)
    content = build_ics(processes)
    if output is None:
        click.echo(content, nl=False)
        return
    # ICS needs CRLF kept as is
    output.write_bytes(content.encode("utf-8"))
    scheduled = sum(1 for p in processes if p.inspection_date)
    click.echo(f"{scheduled} inspection(s) written to {output}")


@cli.command(name="message")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--contact", default=None, help="Name used in the greeting")
@click.option("--phone", default=None, help="WhatsApp number for a wa.me link")
def message(source: Path, contact: str | None, phone: str | None) -> None:
    """Print the schedule notice and calendar links of one process."""
    process = _load_processes(source)[0]
    text = build_schedule_message(process, contact)
    click.echo(text)
    click.echo()
    click.echo(f"Google Calendar: {google_calendar_url(process)}")
    if phone:
        try:
            click.echo(f"WhatsApp: {whatsapp_url(phone, text)}")
        except ValueError as e:
            click.echo(str(e), err=True)
            sys.exit(1)
