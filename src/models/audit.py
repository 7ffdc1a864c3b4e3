"""
Audit Models for the Finance Reporting Engine

Every report computation leaves an audit trail:
1. Which snapshot it was computed from
2. How many records needed defaults during normalization
3. Which report and export were produced
4. What went wrong when the store could not be read

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Snapshot retrieval
    SNAPSHOT_FETCHED = "snapshot_fetched"
    SNAPSHOT_FETCH_FAILED = "snapshot_fetch_failed"

    # Normalization
    RECORDS_NORMALIZED = "records_normalized"

    # Reports
    REPORT_GENERATED = "report_generated"
    REPORT_GENERATION_FAILED = "report_generation_failed"
    REPORT_EXPORTED = "report_exported"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which user's data and which report
    user_id: Optional[str] = Field(
        default=None,
        description="Owner of the records the event concerns"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'snapshot', 'report')"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., fetch, build and export of one report)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "user_id": self.user_id,
            "entity_type": self.entity_type,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.snapshot_fetched(user_id, 42, correlation_id)
        event = AuditEventBuilder.report_generated(user_id, "monthly", ...)
    """

    @staticmethod
    def snapshot_fetched(
        user_id: str,
        record_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_FETCHED,
            user_id=user_id,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Snapshot fetched with {record_count} records",
            details={
                "record_count": record_count,
            },
        )

    @staticmethod
    def snapshot_fetch_failed(
        user_id: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_FETCH_FAILED,
            severity=AuditSeverity.WARNING,
            user_id=user_id,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Record store unavailable; reporting on an empty snapshot",
            error_message=error_message,
        )

    @staticmethod
    def records_normalized(
        user_id: str,
        record_count: int,
        records_with_issues: int,
        undated_records: int,
        correlation_id: UUID
    ) -> AuditEvent:
        severity = (
            AuditSeverity.WARNING if records_with_issues else AuditSeverity.INFO
        )
        return AuditEvent(
            event_type=AuditEventType.RECORDS_NORMALIZED,
            severity=severity,
            user_id=user_id,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=(
                f"Normalized {record_count} records, "
                f"{records_with_issues} needed defaults"
            ),
            details={
                "record_count": record_count,
                "records_with_issues": records_with_issues,
                "undated_records": undated_records,
            },
        )

    @staticmethod
    def report_generated(
        user_id: str,
        report_type: str,
        period_label: str,
        insufficient_data: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            user_id=user_id,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"Report generated: {report_type} for {period_label}",
            details={
                "report_type": report_type,
                "period_label": period_label,
                "insufficient_data": insufficient_data,
            },
        )

    @staticmethod
    def report_generation_failed(
        user_id: str,
        report_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATION_FAILED,
            severity=AuditSeverity.ERROR,
            user_id=user_id,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"Report generation failed: {report_type}",
            error_message=error_message,
            details={
                "report_type": report_type,
            },
        )

    @staticmethod
    def report_exported(
        report_type: str,
        export_format: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"Report exported: {report_type} as {export_format}",
            details={
                "report_type": report_type,
                "format": export_format,
                "size_bytes": size_bytes,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
