"""Typer CLI root application."""

import typer
from pydantic import ValidationError

from outreach_crm.core.config import get_settings
from outreach_crm.core.logging import setup_logging

app = typer.Typer(name="outreach-crm", help="Influencer roster import/export job client")


def _describe_config_error(exc: ValidationError) -> str:
    """Summarize settings validation errors by environment variable name."""
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"])
        problems.append(f"CRM_{field.upper()}: {error['msg']}")
    return "; ".join(problems) or str(exc)


@app.callback()
def _main_callback() -> None:
    """Initialize logging for all CLI commands."""
    try:
        settings = get_settings()
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {_describe_config_error(exc)}", err=True)
        raise typer.Exit(code=1) from exc
    setup_logging(settings.log_level, log_dir=settings.log_dir)


def _register_subcommands() -> None:
    """Register all CLI subcommand groups."""
    from outreach_crm.cli.export_cmd import export_app
    from outreach_crm.cli.import_cmd import import_app

    app.add_typer(import_app, name="import", help="Roster import commands")
    app.add_typer(export_app, name="export", help="Roster export commands")


_register_subcommands()
