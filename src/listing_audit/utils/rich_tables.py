# ABOUTME: Rich table utilities for validation reports and CLI status displays
# ABOUTME: Provides pre-configured table generators for summaries, violations and record samples

from collections.abc import Sequence
from typing import Any

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.table import Table

from listing_audit.core.models import Record, StopReason, ValidationReport

STOP_REASON_LABELS = {
    StopReason.TARGET_REACHED: "🎯 Target reached",
    StopReason.SOURCE_EXHAUSTED: "📭 Source exhausted",
    StopReason.DEADLINE_REACHED: "⏰ Deadline reached",
}


def _truncate(text: str, length: int) -> str:
    return text[:length] + "..." if len(text) > length else text


def create_key_value_table(
    title: str,
    data: dict[str, str],
    title_style: str = "bold cyan",
    key_style: str = "bold blue",
    value_style: str = "green",
    box_style=ROUNDED,
) -> Table:
    """Create a key-value table.

    Args:
        title: Table title with emoji/styling
        data: Dictionary of key-value pairs to display
        title_style: Style for the table title
        key_style: Style for the key column
        value_style: Style for the value column
        box_style: Border style for the table

    Returns:
        Formatted Rich table ready for printing
    """
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style="bold magenta",
        border_style="cyan",
        title_justify="left",
        expand=False,
    )

    table.add_column("Field", style=key_style, width=None, no_wrap=False)
    table.add_column("Value", style=value_style, width=None, no_wrap=False)

    for key, value in data.items():
        table.add_row(key, str(value))

    return table


def create_multi_column_table(
    title: str,
    columns: list[tuple[str, str]],
    rows: list[list[str]],
    title_style: str = "bold cyan",
    header_style: str = "bold magenta",
    alternate_row_styles: list[str] | None = None,
    box_style=ROUNDED,
) -> Table:
    """Create a multi-column table.

    Args:
        title: Table title with emoji/styling
        columns: List of (column_name, column_style) tuples
        rows: List of row data
        title_style: Style for the table title
        header_style: Style for column headers
        alternate_row_styles: Alternating row styles for zebra striping
        box_style: Border style for the table

    Returns:
        Formatted Rich table ready for printing
    """
    table = Table(
        title=f"[{title_style}]{title}[/{title_style}]",
        box=box_style,
        show_header=True,
        header_style=header_style,
        border_style="cyan",
        title_justify="left",
        row_styles=alternate_row_styles or ["", "dim"],
        expand=True,
    )

    for name, style in columns:
        table.add_column(name, style=style)

    for row in rows:
        table.add_row(*row)

    return table


def create_validation_summary_table(report: ValidationReport) -> Table:
    """Create the headline table for a validation report."""
    if report.is_sorted:
        verdict = "[bold green]✅ Records are sorted correctly[/bold green]"
    else:
        verdict = "[bold red]❌ Records are not sorted correctly[/bold red]"

    summary_data = {
        "📋 Result": verdict,
        "📥 Collected": str(report.total_collected),
        "📄 Pages Visited": str(report.pages_visited),
        "🛑 Stopped Because": STOP_REASON_LABELS[report.stop_reason],
        "⚠️ Sorting Errors": str(report.violation_count),
    }

    return create_key_value_table(
        title="🔍 Validation Results",
        data=summary_data,
        title_style="bold green" if report.is_sorted else "bold red",
        key_style="cyan",
        value_style="white",
    )


def create_violations_table(report: ValidationReport) -> Table:
    """Create a table listing every ordering violation.

    Args:
        report: Validation report with violations

    Returns:
        Styled violations table
    """
    columns = [
        ("#", "cyan"),
        ("Position", "yellow"),
        ("Current Record", "white"),
        ("Current Age", "magenta"),
        ("Next Record", "white"),
        ("Next Age", "magenta"),
    ]

    rows = [
        [
            str(index),
            str(violation.position),
            _truncate(violation.current.title, 50),
            violation.current.age_raw,
            _truncate(violation.next.title, 50),
            violation.next.age_raw,
        ]
        for index, violation in enumerate(report.violations, start=1)
    ]

    return create_multi_column_table(title="🚨 Sorting Errors", columns=columns, rows=rows, title_style="bold red")


def create_records_table(title: str, records: Sequence[Record], first_position: int = 1) -> Table:
    """Create a table for a slice of collected records.

    Args:
        title: Table title
        records: Records to display
        first_position: 1-based collection position of the first record

    Returns:
        Styled records table
    """
    columns = [
        ("#", "cyan"),
        ("Title", "white"),
        ("Age", "magenta"),
        ("Score", "green"),
        ("Author", "blue"),
    ]

    rows = [
        [str(position), _truncate(record.title, 60), record.age_raw, record.score_text, record.author]
        for position, record in enumerate(records, start=first_position)
    ]

    return create_multi_column_table(title=title, columns=columns, rows=rows, box_style=SIMPLE)


def create_logging_status_table(status: dict[str, Any]) -> Table:
    """Create a logging configuration status table.

    Args:
        status: Logging status dictionary

    Returns:
        Styled logging configuration table
    """
    logging_data = {
        "🔧 Mode": status["mode"].title(),
        "📁 Log Directory": status["log_directory"] or "N/A (production mode)",
        "🔇 Suppressed Libraries": ", ".join(status["third_party_suppressed"]),
    }

    # Add log files if they exist
    if status["log_files"]["main"]:
        logging_data["📝 Main Log"] = status["log_files"]["main"]
    if status["log_files"]["json"]:
        logging_data["📊 JSON Log"] = status["log_files"]["json"]
    if status["log_files"]["errors"]:
        logging_data["🚨 Error Log"] = status["log_files"]["errors"]

    return create_key_value_table(
        title="🔍 Logging Configuration",
        data=logging_data,
        title_style="bold green",
        key_style="blue",
        value_style="white",
    )


def print_rich_table(console: Console, table: Table) -> None:
    """Print a rich table with consistent spacing and style.

    Args:
        console: Rich console instance
        table: Configured table to print
    """
    console.print()  # Add spacing before
    console.print(table)
    console.print()  # Add spacing after
