"""Selectors for read-only access to workflow data."""

from workflow_kernel.selectors.audit_trail_reader import (
    AuditEntryView,
    AuditFilter,
    AuditPage,
    AuditTrailReader,
    Severity,
)

__all__ = [
    "AuditEntryView",
    "AuditFilter",
    "AuditPage",
    "AuditTrailReader",
    "Severity",
]
