"""
Command line interface for dazzle forms.

Commands:
- check: load a schema and summarise its fields
- validate: run a data document through a schema (visibility + validation)
- steps: list the steps of a multi-step schema
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.table import Table

from dazzle_forms import __version__
from dazzle_forms.config import FormsConfig, load_forms_config
from dazzle_forms.errors import SchemaLoadError
from dazzle_forms.logging import setup_logging
from dazzle_forms.runtime.session import FormSession
from dazzle_forms.runtime.step_orchestrator import StepOrchestrator
from dazzle_forms.runtime.validator_registry import default_registries
from dazzle_forms.schema_loader import load_schema
from dazzle_forms.specs.schema import FieldSpec, FormSchemaSpec

app = typer.Typer(
    help="Inspect and validate declarative form schemas",
    no_args_is_help=True,
)

console = Console()

_config: FormsConfig = FormsConfig()


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"dazzle-forms {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    config_path: Annotated[
        Path,
        typer.Option("--config", "-c", help="dazzle.toml holding a [forms] section"),
    ] = Path("dazzle.toml"),
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version"),
    ] = False,
) -> None:
    """Inspect and validate declarative form schemas."""
    global _config
    _config = load_forms_config(config_path)
    setup_logging("DEBUG" if verbose else _config.log_level, _config.log_file)


def _load(schema_path: Path) -> FormSchemaSpec:
    try:
        return load_schema(schema_path, _config)
    except SchemaLoadError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        raise typer.Exit(code=1) from e


def _validators(field: FieldSpec) -> str:
    names = []
    if field.validation.custom_validator is not None:
        names.append(field.validation.custom_validator.validator)
    if field.validation.async_validator is not None:
        names.append(f"{field.validation.async_validator.name} (async)")
    return ", ".join(names)


@app.command(name="check")
def check(
    schema_path: Annotated[Path, typer.Argument(help="Schema JSON file")],
) -> None:
    """Load a schema and list its fields."""
    schema = _load(schema_path)

    table = Table(title=schema.form_title)
    table.add_column("Field")
    table.add_column("Type")
    table.add_column("Required")
    table.add_column("Conditional on")
    table.add_column("Validators")

    for field in schema.all_fields():
        table.add_row(
            field.name,
            field.type,
            "[green]yes[/green]" if field.is_required else "",
            ", ".join(sorted(field.conditional.referenced_fields())) if field.conditional else "",
            _validators(field),
        )

    console.print(table)
    console.print(f"\n[dim]{len(schema.all_fields())} field(s)[/dim]")


@app.command(name="validate")
def validate(
    schema_path: Annotated[Path, typer.Argument(help="Schema JSON file")],
    data_path: Annotated[Path, typer.Argument(help="JSON object of field values")],
    step: Annotated[
        int | None,
        typer.Option("--step", "-s", help="Validate only this step (0-based)"),
    ] = None,
    output_json: Annotated[bool, typer.Option("--json", help="Output as JSON")] = False,
) -> None:
    """Validate field values against a schema."""
    schema = _load(schema_path)

    try:
        data = json.loads(data_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] cannot read data file: {e}")
        raise typer.Exit(code=1) from e
    if not isinstance(data, dict):
        console.print("[red]Error:[/red] data file must hold a JSON object")
        raise typer.Exit(code=1)

    target = schema
    if step is not None:
        sections = schema.sections or []
        if not 0 <= step < len(sections):
            console.print(f"[red]Error:[/red] schema has no step {step}")
            raise typer.Exit(code=1)
        target = schema.section_schema(step)

    sync_registry, async_registry = default_registries()
    with FormSession(
        target,
        sync_registry=sync_registry,
        async_registry=async_registry,
        config=_config,
    ) as session:
        session.set_values(data)
        outcome = asyncio.run(session.validate())
        visibility = dict(session.visibility)
        payload = session.payload()

    if output_json:
        result: dict[str, Any] = {
            "valid": outcome.valid,
            "errors": outcome.errors,
            "visibility": visibility,
            "payload": payload,
        }
        console.print_json(json.dumps(result, default=str))
    else:
        table = Table(title=target.form_title)
        table.add_column("Field")
        table.add_column("Visible")
        table.add_column("Errors")
        for name, visible in visibility.items():
            messages = "; ".join(outcome.errors.get(name, []))
            table.add_row(
                name,
                "yes" if visible else "[dim]hidden[/dim]",
                f"[red]{messages}[/red]" if messages else "",
            )
        console.print(table)
        if outcome.valid:
            console.print("[green]Valid[/green]")
        else:
            console.print(f"[red]Invalid:[/red] {len(outcome.errors)} field(s) with errors")

    if not outcome.valid:
        raise typer.Exit(code=1)


@app.command(name="steps")
def steps(
    schema_path: Annotated[Path, typer.Argument(help="Schema JSON file")],
) -> None:
    """List the steps of a schema."""
    schema = _load(schema_path)
    orchestrator = StepOrchestrator(schema, config=_config)

    table = Table(title=schema.form_title)
    table.add_column("#", style="dim")
    table.add_column("Title")
    table.add_column("Fields")
    sections = schema.sections or []
    for index, title in enumerate(orchestrator.step_titles):
        fields = sections[index].fields if sections else schema.all_fields()
        table.add_row(str(index), title, ", ".join(f.name for f in fields))

    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
