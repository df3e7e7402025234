# ABOUTME: Core domain layer: listing records, validation report and the collection engine
# ABOUTME: Exposes the collect entry point and the ordering audit

from .models import (
    BatchEvent,
    CollectionState,
    EnginePhase,
    ErrorEvent,
    ListingSelectors,
    PageSnapshot,
    ProgressEvent,
    Record,
    ResultEvent,
    SortViolation,
    StatusEvent,
    StopReason,
    ValidationReport,
)
from .engine import DEFAULT_TARGET_COUNT, CollectionEngine, audit_order, build_report, collect

__all__ = [
    "BatchEvent",
    "CollectionEngine",
    "CollectionState",
    "DEFAULT_TARGET_COUNT",
    "EnginePhase",
    "ErrorEvent",
    "ListingSelectors",
    "PageSnapshot",
    "ProgressEvent",
    "Record",
    "ResultEvent",
    "SortViolation",
    "StatusEvent",
    "StopReason",
    "ValidationReport",
    "audit_order",
    "build_report",
    "collect",
]
