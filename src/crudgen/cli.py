"""
crudgen command line.

Commands:
- crudgen routes TARGET: print the synthesized route table
- crudgen models TARGET: summarize registered model configs
- crudgen serve TARGET: run a development server

TARGET is ``package.module:attribute`` naming a ModelRegistry, or a
zero-argument callable returning one. ``serve`` also accepts a FastAPI app.
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    help="Schema-driven CRUD engine tools",
    no_args_is_help=True,
)

console = Console()


def _load_target(target: str) -> Any:
    """Import ``module:attr`` from the current directory."""
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        typer.echo(f"Invalid target '{target}': expected 'module:attribute'", err=True)
        raise typer.Exit(code=2)

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        typer.echo(f"Cannot import {module_name}: {e}", err=True)
        raise typer.Exit(code=1)

    obj = getattr(module, attr, None)
    if obj is None:
        typer.echo(f"{module_name} has no attribute '{attr}'", err=True)
        raise typer.Exit(code=1)
    return obj


def _load_registry(target: str) -> Any:
    from crudgen.runtime.registry import ModelRegistry

    obj = _load_target(target)
    if callable(obj) and not isinstance(obj, ModelRegistry):
        obj = obj()
    if not isinstance(obj, ModelRegistry):
        typer.echo(f"{target} is not a ModelRegistry", err=True)
        raise typer.Exit(code=1)
    return obj


@app.command(name="routes")
def routes_command(
    target: Annotated[str, typer.Argument(help="module:attribute naming a ModelRegistry")],
) -> None:
    """Print the route table in dispatch order."""
    from crudgen.runtime.config import EngineSettings
    from crudgen.runtime.dispatcher import build_dispatcher
    from crudgen.runtime.persistence import InMemoryPersistence

    registry = _load_registry(target)
    dispatcher = build_dispatcher(registry, InMemoryPersistence(), settings=EngineSettings.from_env())

    table = Table(title="Routes")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Method", style="cyan")
    table.add_column("Path")
    table.add_column("Model", style="green")
    table.add_column("Kind")
    for i, entry in enumerate(dispatcher.table, start=1):
        table.add_row(str(i), entry.method, entry.template, entry.model or "-", entry.kind.value)
    console.print(table)


@app.command(name="models")
def models_command(
    target: Annotated[str, typer.Argument(help="module:attribute naming a ModelRegistry")],
) -> None:
    """Summarize registered models: permissions, filters, hooks."""
    from crudgen.specs.model import Operation

    registry = _load_registry(target)

    table = Table(title=f"Models ({len(registry)})")
    table.add_column("Model", style="green")
    for op in Operation:
        table.add_column(op.value.capitalize())
    table.add_column("Filters")
    table.add_column("Hooks")
    table.add_column("Custom routes", justify="right")

    for config in registry:
        roles = []
        for op in Operation:
            declared = config.permissions.roles_for(op)
            roles.append(", ".join(declared) if declared else "[dim]default[/dim]")
        hooks = [name for name, fn in config.hooks if fn is not None]
        table.add_row(
            config.key,
            *roles,
            ", ".join(f"{k}:{v.type.value}" for k, v in config.filters.items()) or "-",
            ", ".join(hooks) or "-",
            str(len(config.custom_routes)),
        )
    console.print(table)


@app.command(name="serve")
def serve_command(
    target: Annotated[
        str, typer.Argument(help="module:attribute naming a ModelRegistry or FastAPI app")
    ],
    host: Annotated[str, typer.Option("--host", envvar="HOST")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", envvar="PORT")] = 8000,
) -> None:
    """Run a development server. Registries are served from in-memory storage."""
    try:
        import uvicorn
        from fastapi import FastAPI
    except ImportError as e:
        typer.echo(f"Missing dependencies: {e}", err=True)
        raise typer.Exit(code=1)

    from crudgen.runtime.app_factory import create_app
    from crudgen.runtime.config import EngineSettings
    from crudgen.runtime.logging import setup_logging
    from crudgen.runtime.persistence import InMemoryPersistence
    from crudgen.runtime.request_context import InMemoryActivityLog

    settings = EngineSettings.from_env()
    setup_logging(settings)

    obj = _load_target(target)
    if isinstance(obj, FastAPI):
        api = obj
    else:
        api = create_app(
            _load_registry(target),
            InMemoryPersistence(),
            settings=settings,
            activity_sink=InMemoryActivityLog(),
        )

    console.print(f"[bold]crudgen[/bold] serving on http://{host}:{port}")
    uvicorn.run(api, host=host, port=port, log_level=settings.log_level.lower())


def main() -> None:
    app()


if __name__ == "__main__":
    main()
