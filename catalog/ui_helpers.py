import os
import json
from typing import List, Any, Dict
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from catalog.models import Kind

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "CATALOG_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def record_label(kind: Kind, record: Dict[str, Any]) -> str:
    """One-line description of a presented record."""
    if kind is Kind.AUTHOR:
        return f"{record.get('name', '')} ({record.get('lifespan', '')})"
    if kind is Kind.GENRE:
        return record.get("name", "")
    if kind is Kind.BOOK:
        author = record.get("author")
        if isinstance(author, dict):
            return f"{record.get('title', '')} by {author.get('name', '')}"
        return record.get("title", "")
    book = record.get("book")
    title = book.get("title", "") if isinstance(book, dict) else book
    due = record.get("due_back_formatted")
    line = f"{title}: {record.get('imprint', '')} [{record.get('status', '')}]"
    return f"{line} due {due}" if due else line


def print_records(kind: Kind, records: List[Dict[str, Any]]) -> None:
    """Print a list of records in the current output mode.
    - plain: 'id - label' lines, or 'No <kind>s in catalog.'
    - json: JSON array of the presented records
    - rich: Rich table
    """
    mode = get_output_mode()

    if not records:
        print(f"No {kind.plural} in catalog.")
        return

    if mode == "json":
        print(json.dumps(records, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title=kind.plural.capitalize(), show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Record", style="white")
        for r in records:
            table.add_row(r.get("id", ""), record_label(kind, r))
        _console.print(table)
    else:
        for r in records:
            print(f"{r.get('id', '')} - {record_label(kind, r)}")


def print_summary(summary: Dict[str, int]) -> None:
    mode = get_output_mode()
    lines = [
        ("Books", summary.get("book_count", 0)),
        ("Copies", summary.get("book_instance_count", 0)),
        ("Copies available", summary.get("book_instance_available_count", 0)),
        ("Authors", summary.get("author_count", 0)),
        ("Genres", summary.get("genre_count", 0)),
    ]
    if mode == "json":
        print(json.dumps(summary, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {value}" for label, value in lines)
        _console.print(Panel.fit(content, title="Catalog", border_style="blue"))
    else:
        for label, value in lines:
            print(f"{label}: {value}")
