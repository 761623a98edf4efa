import subprocess
import sys
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape

from catalog.config import settings
from catalog.exceptions import IntegrityBlocked, NotFound, StoreUnavailable, ValidationError
from catalog.library import Library
from catalog.models import Kind
from catalog.ui_helpers import print_records, print_summary, record_label, set_output_mode

console = Console()

app = typer.Typer(help="Library catalog CLI")


def get_library() -> Library:
    """Library over the configured database file."""
    return Library()


def parse_fields(pairs: List[str]) -> Dict[str, Any]:
    """Turn ``key=value`` pairs into a form; repeated keys collect into a list."""
    form: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise typer.BadParameter(f"Expected key=value, got {pair!r}")
        key, value = pair.split("=", 1)
        key = key.strip()
        if key in form:
            existing = form[key]
            form[key] = (existing if isinstance(existing, list) else [existing]) + [value]
        else:
            form[key] = value
    return form


def _print_errors(exc: ValidationError) -> None:
    print("Validation failed:")
    for error in exc.errors:
        print(f"  {error.path}: {error.msg}")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    )
):
    """Global CLI options (e.g. output mode)."""
    if output:
        set_output_mode(output)


@app.command("list")
def cli_list(kind: Kind):
    """List all records of a kind."""
    try:
        print_records(kind, get_library().list_records(kind))
    except StoreUnavailable as e:
        print(f"Database unavailable: {e}")
        raise typer.Exit(code=1)


@app.command("show")
def cli_show(kind: Kind, record_id: str):
    """Show one record and the records linked to it."""
    try:
        detail = get_library().detail(kind, record_id)
    except NotFound:
        print(f"{kind.value} {record_id} not found.")
        raise typer.Exit(code=1)
    record = detail[kind.value]
    print(record_label(kind, record))
    print(f"URL: {record['url']}")
    for key, related in detail.items():
        if key == kind.value:
            continue
        related_kind = Kind.BOOK if key == "books" else Kind.BOOK_INSTANCE
        print(f"{key}: {len(related)}")
        for item in related:
            print(f"  {item['id']} - {record_label(related_kind, item)}")


@app.command("add")
def cli_add(
    kind: Kind,
    fields: List[str] = typer.Argument(None, help="Form fields as key=value; repeat a key for lists"),
):
    """Create a record from key=value fields."""
    try:
        url = get_library().create(kind, parse_fields(fields or []))
    except ValidationError as e:
        _print_errors(e)
        raise typer.Exit(code=1)
    print(f"Created: {url}")


@app.command("update")
def cli_update(
    kind: Kind,
    record_id: str,
    fields: List[str] = typer.Argument(None, help="Complete form as key=value pairs"),
):
    """Replace a record with the given fields."""
    try:
        url = get_library().update(kind, record_id, parse_fields(fields or []))
    except NotFound:
        print(f"{kind.value} {record_id} not found.")
        raise typer.Exit(code=1)
    except ValidationError as e:
        _print_errors(e)
        raise typer.Exit(code=1)
    print(f"Updated: {url}")


@app.command("delete")
def cli_delete(kind: Kind, record_id: str):
    """Delete a record unless other records still reference it."""
    try:
        get_library().delete(kind, record_id)
    except IntegrityBlocked as e:
        console.print(f"[bold red]Cannot delete {kind.value} {escape(record_id)}:[/] {e.count} record(s) depend on it.")
        for plural, records in e.dependents.items():
            dependent_kind = Kind(plural[:-1])
            for r in records:
                print(f"  {r['id']} - {record_label(dependent_kind, r)}")
        raise typer.Exit(code=1)
    print(f"{kind.value} {record_id} has been removed.")


@app.command("stats")
def cli_stats():
    """Show record counts."""
    print_summary(get_library().summary())


@app.command("serve")
def cli_serve(reload: bool = typer.Option(False, "--reload", help="Restart on code changes")):
    """Start the API with uvicorn."""
    host = settings.api_host
    port = int(settings.api_port)
    print(f"Starting API on http://{host}:{port}/")
    args = [
        sys.executable,
        "-m", "uvicorn",
        "catalog.api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    subprocess.run(args)


if __name__ == "__main__":
    app()
