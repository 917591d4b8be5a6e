"""
Command-line interface for heroku_pg.

Small wrappers around the library for checking a ``DATABASE_URL`` by hand:
show how it parses, test that a connection comes up, or run the smoke test.
Every command reads ``DATABASE_URL`` when no URL is given.
"""
from typing import Optional

import psycopg
import typer
from rich.console import Console
from rich.table import Table
from typer import Argument, Option
from typing_extensions import Annotated

from heroku_pg.application.exceptions import ConfigurationError, ConnectError, ParseError
from heroku_pg.application.smoke_test import smoke_test
from heroku_pg.cli.status import DEFAULT_TIMEOUT_SECONDS, render_results, run_status_checks
from heroku_pg.domain.connection_params import parse as parse_url
from heroku_pg.domain.trust_policy import build_trust_policy
from heroku_pg.infrastructure import log_utils
from heroku_pg.infrastructure.client_factory import get_client
from heroku_pg.infrastructure.db_conn import get_database_url

console = Console()

app = typer.Typer(
    name="heroku-pg",
    help="Connect to Heroku Postgres over TLS without certificate verification.",
    add_completion=False,
)


def _resolve_url(url: Optional[str]) -> str:
    if url:
        return url
    try:
        return get_database_url()
    except ConfigurationError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)


@app.command()
def parse(
    url: Annotated[Optional[str], Argument(help="Connection URL. Defaults to DATABASE_URL.")] = None,
) -> None:
    """Show how a connection URL is parsed, with the password masked."""
    try:
        params = parse_url(_resolve_url(url))
    except ParseError as exc:
        typer.echo(f"Invalid URL: {exc}")
        raise typer.Exit(code=1)

    policy = build_trust_policy()
    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("scheme", params.scheme)
    table.add_row("host", params.host)
    table.add_row("port", str(params.port))
    table.add_row("user", params.user)
    table.add_row("password", "********" if params.password.get_secret_value() else "(empty)")
    table.add_row("database", params.database)
    for key, value in params.query:
        table.add_row(f"?{key}", value)
    table.add_row("sslmode", policy.sslmode)
    console.print(table)


@app.command()
def status(
    url: Annotated[Optional[str], Option("--url", help="Connection URL. Defaults to DATABASE_URL.")] = None,
    timeout: Annotated[float, Option("--timeout", help="Connect timeout in seconds.")] = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """Open a connection, run SELECT 1 and report the outcome."""
    results = run_status_checks(_resolve_url(url), timeout=timeout)
    typer.echo(render_results(results))
    exit_code = 0 if all(result.ok for result in results) else 1
    raise typer.Exit(code=exit_code)


@app.command()
def smoke(
    url: Annotated[Optional[str], Option("--url", help="Connection URL. Defaults to DATABASE_URL.")] = None,
) -> None:
    """Create a scratch table, write and read a row, then drop the table."""
    target = _resolve_url(url)
    log_utils.info("Starting smoke test.")
    try:
        with get_client(target) as conn:
            rows = smoke_test(conn)
    except (ParseError, ConnectError) as exc:
        typer.echo(f"Smoke test could not connect: {exc}")
        raise typer.Exit(code=1)
    except psycopg.Error as exc:
        typer.echo(f"Smoke test failed: {exc}")
        raise typer.Exit(code=1)

    for row in rows:
        typer.echo(f"found row: {row!r}")
    typer.echo("Smoke test passed.")


if __name__ == "__main__":
    app()
