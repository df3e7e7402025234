# ABOUTME: Logging configuration, progress tracking, and structured logger helpers
# ABOUTME: Provides rich console progress and structured logging for collection runs

from .config import LoggingMode, configure_logging, get_logging_status
from .progress import RichProgressReporter
from .utils import LogContext, generate_operation_id, get_logger, log_engine_step, with_run_context

__all__ = [
    # Configuration
    "LoggingMode",
    "configure_logging",
    "get_logging_status",
    # Progress Reporting
    "RichProgressReporter",
    # Utilities
    "LogContext",
    "generate_operation_id",
    "get_logger",
    "log_engine_step",
    "with_run_context",
]
