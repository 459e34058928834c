"""CLI entry points for Laudos.

Provides command-line tools for:
- Report assembly from exported process data
- Excerpt extraction from documents
- Inspection calendar export
- Development utilities
"""

import click

from .. import __version__
from .dev import cli as dev_cli
from .extract import cli as extract_cli
from .report import cli as report_cli
from .schedule import cli as schedule_cli


@click.group()
@click.version_option(version=__version__, prog_name="laudos")
def main():
    """Laudos - forensic expert case management.

    Command-line tools for assembling reports, extracting
    excerpts and exporting inspection schedules.
    """
    pass


main.add_command(report_cli, name="report")
main.add_command(extract_cli, name="extract")
main.add_command(schedule_cli, name="schedule")
main.add_command(dev_cli, name="dev")


if __name__ == "__main__":
    main()
