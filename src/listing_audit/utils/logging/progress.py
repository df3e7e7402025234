# ABOUTME: Rich progress bar that consumes collection engine progress events
# ABOUTME: Acts as the engine's progress sink for interactive CLI runs

from typing import Any

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn, TimeElapsedColumn

from listing_audit.core.models import (
    BatchEvent,
    ErrorEvent,
    ProgressEvent,
    ResultEvent,
    StatusEvent,
    ValidationReport,
)


class RichProgressReporter:
    """Progress sink rendering engine events as a single rich progress bar."""

    def __init__(self, console: Console, initial_description: str = "🔎 Preparing listing audit..."):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        )
        self.task_id: Any = self.progress.add_task(initial_description, total=100)
        self.report: ValidationReport | None = None
        self.error_message: str | None = None
        self.batches = 0

    def __enter__(self) -> "RichProgressReporter":
        self.progress.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.progress.stop()

    def __call__(self, event: ProgressEvent) -> None:
        if isinstance(event, StatusEvent):
            self.progress.update(self.task_id, description=f"🔄 {event.message}", completed=event.percent)
        elif isinstance(event, BatchEvent):
            self.batches += 1
            self.progress.update(
                self.task_id,
                description=f"📥 Collected {event.collected}/{event.total} (+{len(event.new_records)})",
            )
        elif isinstance(event, ResultEvent):
            self.report = event.report
            self.progress.update(self.task_id, description="✅ Validation complete", completed=100)
        elif isinstance(event, ErrorEvent):
            self.error_message = event.message
            self.progress.update(self.task_id, description=f"[red]❌ {event.message}[/red]")
