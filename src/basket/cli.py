"""Command-line interface for Basket."""

from __future__ import annotations

import json
from typing import Optional

import typer

from basket.config import get_settings
from basket.db.notifications import get_notification_counts
from basket.db.reference import list_settings, set_setting
from basket.db.repository import get_engine
from basket.errors import InvalidInputError

app = typer.Typer(help="Basket shopping-list administration commands.")


@app.command("init-db")
def init_db() -> None:
    """Create the database schema and seed reference data."""

    settings = get_settings()
    get_engine()
    typer.echo(f"Database ready at {settings.database_path}")


@app.command("set-setting")
def set_setting_command(
    key: str = typer.Argument(..., help="Setting key, e.g. REGISTRATION_INVITATION_CODE."),
    value: Optional[str] = typer.Argument(None, help="New value; omit to clear the setting."),
) -> None:
    """Store (or clear) an application setting."""

    try:
        set_setting(key, value)
    except InvalidInputError as exc:
        raise typer.BadParameter(exc.message, param_hint="KEY") from exc
    typer.echo(f"{key} {'updated' if value else 'cleared'}")


@app.command("settings")
def show_settings(
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty-print output JSON."),
) -> None:
    """Print every stored application setting."""

    typer.echo(json.dumps(list_settings(), indent=2 if pretty else None, sort_keys=True))


@app.command()
def notifications(
    email: str = typer.Argument(..., help="Email address to count pending invitations for."),
) -> None:
    """Show pending invitation counts for an email address."""

    try:
        counts = get_notification_counts(email)
    except InvalidInputError as exc:
        raise typer.BadParameter(exc.message, param_hint="EMAIL") from exc
    typer.echo(json.dumps(counts.model_dump()))


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port."),
    reload: Optional[bool] = typer.Option(None, "--reload/--no-reload", help="Restart on source changes."),
    shutdown_after: Optional[float] = typer.Option(
        None, "--shutdown-after", help="Stop after this many seconds."
    ),
) -> None:
    """Run the HTTP API with uvicorn."""

    from basket.server import run

    try:
        options = run.resolve_options(
            get_settings(), host=host, port=port, reload=reload, shutdown_after=shutdown_after
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc), param_hint="--shutdown-after") from exc
    run.serve(options)


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for `python -m basket`."""
    app(prog_name="basket", args=argv)


if __name__ == "__main__":
    main()
