"""
CLI utility helpers — output formatting and task loading.
"""

from __future__ import annotations

import importlib
import json
from collections.abc import Callable
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def load_target(target: str) -> Callable[[Any], Any]:
    """Import ``package.module:function`` (or ``package.module.function``)."""
    if ":" in target:
        module_path, _, attr = target.partition(":")
    else:
        module_path, _, attr = target.rpartition(".")
    if not module_path or not attr:
        raise typer.BadParameter(f"expected 'module:function', got {target!r}")

    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise typer.BadParameter(f"cannot import {module_path!r}: {exc}") from exc

    handler = module
    for part in attr.split("."):
        handler = getattr(handler, part, None)
        if handler is None:
            raise typer.BadParameter(f"{module_path!r} has no attribute {attr!r}")
    if not callable(handler):
        raise typer.BadParameter(f"{target!r} is not callable")
    return handler


def parse_payloads(raw: list[str]) -> list[Any]:
    """Decode each ``--payload`` as JSON; no payloads means one ``None``."""
    if not raw:
        return [None]
    payloads = []
    for value in raw:
        try:
            payloads.append(json.loads(value))
        except json.JSONDecodeError as exc:
            raise typer.BadParameter(f"payload is not valid JSON: {value!r} ({exc.msg})") from exc
    return payloads


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def render_json(data: Any) -> None:
    """Print ``data`` as indented JSON, unwrapped so it stays machine-readable."""
    typer.echo(json.dumps(data, indent=2, default=str))


def render_kv(title: str, data: Any) -> None:
    """Two-column table of a record's fields."""
    table = Table(title=title, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for key, value in _to_dict(data).items():
        table.add_row(str(key), "" if value is None else str(value))
    console.print(table)
