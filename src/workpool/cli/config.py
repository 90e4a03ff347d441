"""
CLI: ``workpool config`` — configuration inspection.
"""

from __future__ import annotations

import typer

from workpool.cli.utils import console, render_kv

app = typer.Typer(no_args_is_help=True)


@app.command("show")
def show_config(
    format: str = typer.Option("table", "--format", "-f", help="Output format: table, json, env"),
) -> None:
    """Show the effective pool settings (environment and .env applied)."""
    from workpool.core.settings import get_settings

    settings = get_settings()

    if format == "json":
        typer.echo(settings.model_dump_json(indent=2))
        return

    if format == "env":
        for key, value in sorted(settings.model_dump().items()):
            console.print(f"WORKPOOL_{key.upper()}={'' if value is None else value}")
        return

    if format != "table":
        raise typer.BadParameter(f"unknown format {format!r}; expected table, json or env")

    render_kv("Pool settings", settings)
