"""
CLI: ``workpool run`` — run a function over payloads through a pool.
"""

from __future__ import annotations

import sys
from typing import Any

import typer
from rich.table import Table

from workpool.cli.utils import console, err_console, load_target, parse_payloads, render_json, render_kv


def run(
    target: str = typer.Argument(..., help="Handler to run, as 'package.module:function'"),
    payload: list[str] = typer.Option([], "--payload", "-p", help="JSON payload (repeatable, one task each)"),
    repeat: int = typer.Option(1, "--repeat", "-n", min=1, help="Submit every payload this many times"),
    capacity: int | None = typer.Option(None, "--capacity", "-c", min=0, help="Concurrent executions (0 = unbounded)"),  # noqa: UP007
    timeout: float | None = typer.Option(None, "--timeout", "-t", min=0, help="Seconds per attempt (0 disables)"),  # noqa: UP007
    retries: int | None = typer.Option(None, "--retries", "-r", min=0, help="Re-attempts after a failure"),  # noqa: UP007
    backend: str | None = typer.Option(None, "--backend", "-b", help="Worker backend: thread, process, inline"),  # noqa: UP007
    json_output: bool = typer.Option(False, "--json", help="Print results and stats as JSON"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Pool log level"),
) -> None:
    """Run TARGET once per payload and report each outcome.

    Exit code is 1 if any task did not succeed.

    Example::

        workpool run mypkg.images:thumbnail -p '{"path": "a.png"}' -p '{"path": "b.png"}' -c 2 -r 1
    """
    from workpool.core.errors import WorkPoolError
    from workpool.core.logging import configure_logging
    from workpool.core.settings import get_settings
    from workpool.execution.pool import WorkPool

    settings = get_settings()
    configure_logging(level=log_level, json_format=settings.log_json, stream=sys.stderr)

    handler = load_target(target)
    payloads = parse_payloads(payload) * repeat

    overrides: dict[str, Any] = {"name": "workpool-cli"}
    if capacity is not None:
        overrides["capacity"] = capacity
    if backend is not None:
        overrides["executor"] = backend
    submit_kwargs: dict[str, Any] = {}
    if timeout is not None:
        submit_kwargs["timeout"] = timeout
    if retries is not None:
        submit_kwargs["retries"] = retries

    try:
        pool = WorkPool.from_settings(settings, **overrides)
    except WorkPoolError as exc:
        err_console.print(f"[red]{exc.message}[/red]")
        raise typer.Exit(code=2) from None

    with pool:
        futures = [pool.execute(handler, item, **submit_kwargs) for item in payloads]

    outcomes = []
    for index, (item, future) in enumerate(zip(payloads, futures, strict=True), start=1):
        try:
            outcomes.append({"index": index, "payload": item, "status": "ok", "result": future.result()})
        except WorkPoolError as exc:
            outcomes.append({"index": index, "payload": item, "status": "failed", "error": exc.to_dict()})

    stats = pool.stats()
    failed = sum(1 for outcome in outcomes if outcome["status"] != "ok")

    if json_output:
        render_json({"results": outcomes, "stats": stats.to_dict()})
    else:
        table = Table(title=f"{target} × {len(payloads)}")
        table.add_column("#", justify="right")
        table.add_column("Status")
        table.add_column("Payload")
        table.add_column("Result / Error")
        for outcome in outcomes:
            if outcome["status"] == "ok":
                table.add_row(str(outcome["index"]), "[green]ok[/green]", str(outcome["payload"]), str(outcome["result"]))
            else:
                error = outcome["error"]
                table.add_row(
                    str(outcome["index"]),
                    "[red]failed[/red]",
                    str(outcome["payload"]),
                    f"{error['error_type']}: {error['message']}",
                )
        console.print(table)
        render_kv("Pool", stats)

    if failed:
        raise typer.Exit(code=1)
