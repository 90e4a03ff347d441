"""
Root Typer application for the workpool CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

app = Typer(
    name="workpool",
    help="workpool — bounded worker pool with timeout and retry policy.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from workpool import __version__

        typer.echo(f"workpool {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """workpool CLI — run functions through a bounded pool, inspect settings."""


# ── Sub-command registration ─────────────────────────────────────────────

from workpool.cli.config import app as config_app  # noqa: E402
from workpool.cli.run import run as run_command  # noqa: E402

app.command("run")(run_command)
app.add_typer(config_app, name="config", help="Configuration inspection.")


if __name__ == "__main__":
    app()
