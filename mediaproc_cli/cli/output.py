"""Output formatting utilities for mediaproc.

Tables and key/value listings used by the plugin management commands.
"""

from pathlib import Path
from typing import Any, Dict, List, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

# Default console for output
console = Console()


def print_table(
    data: List[Dict[str, Any]],
    columns: List[str],
    title: str | None = None,
    column_styles: Dict[str, str] | None = None,
    console_instance: Console | None = None,
) -> None:
    """Print rows of dictionaries as a table.

    Args:
        data: List of dictionaries containing row data
        columns: List of column keys to display
        title: Optional table title
        column_styles: Optional dict mapping column names to Rich styles
        console_instance: Optional custom console instance

    Example:
        rows = [{"name": "image", "package": "mediaproc-image", "loaded": True}]
        print_table(rows, ["name", "package", "loaded"], title="Plugins")
    """
    out = console_instance or console
    column_styles = column_styles or {}

    table = Table(title=title)
    for col in columns:
        table.add_column(col.replace("_", " ").title(), style=column_styles.get(col))

    for row in data:
        values = []
        for col in columns:
            value = row.get(col, "")
            if value is None:
                value = ""
            elif isinstance(value, bool):
                value = "[green]yes[/green]" if value else "[dim]no[/dim]"
            values.append(str(value))
        table.add_row(*values)

    out.print(table)


def print_key_value(
    data: Dict[str, Any],
    title: str | None = None,
    key_style: str = "cyan",
    console_instance: Console | None = None,
) -> None:
    """Print aligned ``key : value`` lines, skipping empty values.

    Example:
        print_key_value({"Type": "official", "Category": "core"}, title="mediaproc-image")
    """
    out = console_instance or console

    if title:
        out.print(f"[bold]{escape(title)}[/bold]")

    rows = {k: v for k, v in data.items() if v not in (None, "", [], ())}
    max_key_len = max((len(str(k)) for k in rows), default=0)

    for key, value in rows.items():
        if isinstance(value, (list, tuple)):
            formatted = ", ".join(str(v) for v in value)
        else:
            formatted = str(value)
        padded_key = str(key).ljust(max_key_len)
        out.print(f"  [{key_style}]{padded_key}[/{key_style}] : {formatted}")


def print_list(
    items: Sequence[str],
    title: str | None = None,
    bullet: str = "•",
    console_instance: Console | None = None,
) -> None:
    """Print a bulleted list."""
    out = console_instance or console
    if title:
        out.print(f"[bold]{title}[/bold]")
    for item in items:
        out.print(f"  {bullet} {escape(item)}")


def format_path(path: Path, relative_to: Path | None = None) -> str:
    """Format a path for display, relative to ``relative_to`` (default: cwd) when possible."""
    base = relative_to or Path.cwd()
    try:
        return str(path.resolve().relative_to(base.resolve()))
    except ValueError:
        return str(path)
