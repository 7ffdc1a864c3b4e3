"""
Audit Logger

DESIGN DECISION: Every report computation is logged.
This provides:
1. Traceability from a report back to the snapshot it was built from
2. Debugging capability
3. Visibility into records that needed defaults

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash a report if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from src.config import LoggingSettings, get_settings
from src.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from src.services.storage import AuditStorageInterface


def configure_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure structlog for local logging.

    JSON output by default; LOG_RENDER_JSON=false renders for the console.
    """
    settings = settings or get_settings().logging

    logging.basicConfig(format="%(message)s", level=settings.level)
    logging.getLogger().setLevel(settings.level)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.render_json
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        # Persist to storage if available
        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_snapshot_fetched(
        self,
        user_id: str,
        record_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.snapshot_fetched(
            user_id=user_id,
            record_count=record_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_snapshot_fetch_failed(
        self,
        user_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a store failure that degraded a report to an empty snapshot."""
        event = AuditEventBuilder.snapshot_fetch_failed(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_records_normalized(
        self,
        user_id: str,
        record_count: int,
        records_with_issues: int,
        undated_records: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.records_normalized(
            user_id=user_id,
            record_count=record_count,
            records_with_issues=records_with_issues,
            undated_records=undated_records,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_report_generated(
        self,
        user_id: str,
        report_type: str,
        period_label: str,
        insufficient_data: bool,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.report_generated(
            user_id=user_id,
            report_type=report_type,
            period_label=period_label,
            insufficient_data=insufficient_data,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_report_generation_failed(
        self,
        user_id: str,
        report_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.report_generation_failed(
            user_id=user_id,
            report_type=report_type,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_report_exported(
        self,
        report_type: str,
        export_format: str,
        size_bytes: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.report_exported(
            report_type=report_type,
            export_format=export_format,
            size_bytes=size_bytes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new report request.
    Pass it through fetch, build and export.
    """
    return uuid4()
