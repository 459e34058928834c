"""Development utilities.

Usage:
    laudos dev cpf 529.982.247-25
    laudos dev token <user-id> --cpf 52998224725
    laudos dev serve --reload
"""

import sys
from datetime import timedelta

import click

from ..config import get_settings
from ..processes.validation import format_cpf, validate_cpf


@click.group(name="dev")
def cli():
    """Development utilities."""
    pass


@cli.command(name="cpf")
@click.argument("cpf")
def check_cpf(cpf: str) -> None:
    """Validate a CPF and print it formatted."""
    valid, error = validate_cpf(cpf)
    if not valid:
        click.echo(error, err=True)
        sys.exit(1)
    click.echo(format_cpf(cpf))


@cli.command(name="token")
@click.argument("user_id")
@click.option("--email", default=None)
@click.option("--cpf", default=None)
@click.option("--hours", default=8, show_default=True, help="Token lifetime")
def token(user_id: str, email: str | None, cpf: str | None, hours: int) -> None:
    """Issue an access token for local testing."""
    from ..api.auth import create_access_token

    click.echo(create_access_token(user_id, email=email, cpf=cpf, expires_in=timedelta(hours=hours)))


@cli.command(name="serve")
@click.option("--host", default=None, help="Defaults to API_HOST")
@click.option("--port", default=None, type=int, help="Defaults to API_PORT")
@click.option("--reload", is_flag=True, help="Restart on code changes")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_config=None,
    )
