# ABOUTME: Main CLI application entry point using asyncclick for native async support
# ABOUTME: Runs one listing collection + ordering audit and maps the outcome to an exit code

import json as jsonlib

import asyncclick as click
from rich.console import Console
from rich.panel import Panel

from listing_audit.config import Config, get_config
from listing_audit.core import CollectionEngine, ValidationReport
from listing_audit.extraction.browser import PlaywrightListingSession
from listing_audit.utils.logging import (
    LoggingMode,
    RichProgressReporter,
    configure_logging,
    get_logging_status,
    with_run_context,
)
from listing_audit.utils.rich_tables import (
    create_logging_status_table,
    create_records_table,
    create_validation_summary_table,
    create_violations_table,
    print_rich_table,
)

console = Console()

EXIT_SORTED = 0
EXIT_FAILED = 1


async def _run_collection(
    config: Config, target: int, url: str, headless: bool, json_output: bool
) -> ValidationReport:
    """Drive one collection run against a live browser session."""
    selectors = config.selectors()

    async with PlaywrightListingSession(
        selectors=selectors, headless=headless, load_attempts=config.load_attempts
    ) as session:
        engine = CollectionEngine(
            session,
            session,
            selectors=selectors,
            selector_timeout_ms=config.selector_timeout_ms,
            quiet_ms=config.quiet_ms,
            quiescence_timeout_ms=config.quiescence_timeout_ms,
            run_deadline_seconds=config.run_deadline_seconds,
        )

        if json_output:
            return await engine.collect(target, start_url=url)

        with RichProgressReporter(console) as reporter:
            return await engine.collect(target, reporter, start_url=url)


def _display_report(report: ValidationReport, show_records: int) -> None:
    """Display the validation report in a clean format."""
    print_rich_table(console, create_validation_summary_table(report))

    if report.violations:
        print_rich_table(console, create_violations_table(report))

    if show_records > 0 and report.records:
        print_rich_table(console, create_records_table(f"⬆️ First {show_records} records", report.head(show_records)))
        tail = report.tail(show_records)
        first_position = report.total_collected - len(tail) + 1
        print_rich_table(console, create_records_table(f"⬇️ Last {show_records} records", tail, first_position))


@click.command()
@click.option("--target", "-n", type=click.IntRange(min=1), default=None, help="Number of records to collect")
@click.option("--url", default=None, help="First listing page (defaults to the configured source)")
@click.option("--headed", is_flag=True, help="Show the browser window while collecting")
@click.option("--show-records", type=click.IntRange(min=0), default=5, help="Records to show from each end")
@click.pass_context
async def validate(ctx, target: int | None, url: str | None, headed: bool, show_records: int):
    """
    🔎 Collect listing records and check they are ordered newest-first.

    Exits with 0 when the sample is sorted, 1 when violations were found or the run failed.
    """
    exit_code = await _validate_async(target, url, headed, show_records, ctx.obj["json_output"])
    ctx.exit(exit_code)


async def _validate_async(
    target: int | None, url: str | None, headed: bool, show_records: int, json_output: bool
) -> int:
    config = get_config()
    final_target = target or config.target_count
    final_url = url or config.source_url
    headless = config.headless and not headed

    with with_run_context(final_url, target=final_target) as logger:
        logger.info("Starting listing validation")

        if not json_output:
            console.print(
                Panel.fit(
                    f"🔎 [bold cyan]Listing Audit[/bold cyan]\nCollecting {final_target} records from {final_url}",
                    border_style="magenta",
                )
            )

        try:
            report = await _run_collection(config, final_target, final_url, headless, json_output)
        except Exception as e:
            logger.error("Validation run failed", error=str(e), error_type=type(e).__name__)
            if json_output:
                click.echo(jsonlib.dumps({"kind": "error", "message": str(e)}))
            else:
                console.print(f"[red]❌ {e}[/red]")
            return EXIT_FAILED

        logger.info(
            "Validation finished",
            is_sorted=report.is_sorted,
            total_collected=report.total_collected,
            violations=report.violation_count,
        )

        if json_output:
            click.echo(report.model_dump_json(indent=2))
        else:
            _display_report(report, show_records)

        return EXIT_SORTED if report.is_sorted else EXIT_FAILED


def _initialize_logging(json_output: bool, log_level: str | None = None, log_file: str | None = None) -> None:
    """Initialize logging configuration."""
    config = get_config()
    mode = LoggingMode.PRODUCTION if json_output else LoggingMode.INTERACTIVE

    # Use config defaults when CLI parameters are not provided
    final_log_level = log_level or config.log_level
    final_log_file = log_file or (str(config.log_file) if config.log_file else None)

    configure_logging(mode=mode, log_level=final_log_level, log_file=final_log_file)


@click.command(name="logging-status")
def logging_status():
    """
    📊 Show current logging configuration and status.
    """
    status = get_logging_status()
    logging_table = create_logging_status_table(status)
    print_rich_table(console, logging_table)


@click.group(invoke_without_command=True)
@click.option("--json", is_flag=True, help="Output structured JSON instead of the rich interface")
@click.option("--log-level", default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--log-file", help="Custom log file path")
@click.pass_context
def app(ctx, json: bool, log_level: str | None, log_file: str | None):
    """
    🔎 Listing Audit - newest-first ordering checks for paginated listings

    Walks a paginated listing in a real browser, collects a bounded sample of
    records and reports every place where an older record precedes a newer one.
    """
    # Store global options in context for commands to access
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json

    # Initialize logging once here instead of in each command
    _initialize_logging(json, log_level, log_file)

    # Show help if no command provided
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


# Add commands to the main group
app.add_command(validate)
app.add_command(logging_status)


if __name__ == "__main__":
    app()
