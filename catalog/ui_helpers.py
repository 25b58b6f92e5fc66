import json
import os
from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable controlling CLI output mode.
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "CATALOG_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_records(title: str, columns: Sequence[str], rows: List[Dict[str, Any]], empty: str) -> None:
    """Print catalog rows in the current output mode.
    - plain: one ' | '-joined line per row, or ``empty``
    - json: JSON array of the rows
    - rich: Rich table
    """
    mode = get_output_mode()

    if not rows:
        print(empty)
        return

    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False, default=str))
    elif mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for i, column in enumerate(columns):
            table.add_column(column.replace("_", " ").title(), style="magenta" if i == 0 else "white")
        for row in rows:
            table.add_row(*(str(row.get(c) or "") for c in columns))
        _console.print(table)
    else:
        for row in rows:
            print(" | ".join(str(row.get(c) or "") for c in columns))


def print_stats_result(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()

    if not stats:
        print("No statistics available.")
        return

    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
    elif mode == "rich":
        content = "\n".join(f"[bold]{k.replace('_', ' ').title()}:[/] {v}" for k, v in stats.items())
        _console.print(Panel.fit(content, title="Catalog", border_style="blue"))
    else:
        for key, value in stats.items():
            print(f"{key.replace('_', ' ').title()}: {value}")
