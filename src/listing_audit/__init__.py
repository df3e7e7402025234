# ABOUTME: listing-audit harvests paginated listing pages and audits newest-first ordering
# ABOUTME: Package root exposing the collection entry point and report models

from listing_audit.core import CollectionEngine, Record, SortViolation, ValidationReport, audit_order, collect

__version__ = "0.1.0"

__all__ = [
    "CollectionEngine",
    "Record",
    "SortViolation",
    "ValidationReport",
    "audit_order",
    "collect",
]
