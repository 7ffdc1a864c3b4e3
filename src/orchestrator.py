"""
Main Orchestrator for the Finance Report Engine

This module ties together the record store, the composer and the export
encoder, and defines the end-to-end report flow:
fetch snapshot → build report → export, audited at each step.

DESIGN DECISION: The orchestrator enforces the boundaries:
- The only suspension point is fetching the snapshot from the store
- Every report is built from exactly one snapshot
- A store failure never surfaces as an exception; it becomes an
  "insufficient data" report built from an empty snapshot
- Every step is audited

Cancellation of an in-flight fetch simply propagates: there is no partial
state to clean up because nothing has been computed yet.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import structlog

from src.audit import AuditLogger, create_correlation_id
from src.config import get_engine_settings
from src.models.records import RecordSnapshot
from src.models.report import (
    ExportFormat,
    PeriodRange,
    Report,
    ReportOptions,
    ReportType,
)
from src.reports import ReportComposer, encode_report, export_filename
from src.services.storage import (
    InMemoryAuditStorage,
    RecordStoreInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


INSUFFICIENT_DATA_MESSAGE = "Not enough data to generate this report yet."


class ReportFlow:
    """
    Orchestrates the report flow.

    Flow:
    1. Fetch → one snapshot from the record store (async, cancellable)
    2. Build → compose the requested report (sync, never raises)
    3. Export → encode as JSON, CSV or HTML

    If the store is missing or fails in step 1, the report is built from an
    empty snapshot and flagged insufficient_data.
    """

    def __init__(
        self,
        record_store: Optional[RecordStoreInterface] = None,
        composer: Optional[ReportComposer] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._record_store = record_store
        self._composer = composer or ReportComposer()
        self._audit_logger = audit_logger

    async def fetch_snapshot(
        self,
        user_id: str,
        correlation_id: UUID,
    ) -> Optional[RecordSnapshot]:
        """
        Fetch one snapshot for the user.

        Returns None if the store is not configured or cannot be read.
        """
        if not self._record_store:
            logger.warning("record_store_not_configured", user_id=user_id)
            if self._audit_logger:
                await self._audit_logger.log_snapshot_fetch_failed(
                    user_id=user_id,
                    error_message="Record store not configured",
                    correlation_id=correlation_id,
                )
            return None

        try:
            snapshot = await self._record_store.fetch_snapshot(user_id)
        except StorageError as e:
            logger.warning("snapshot_fetch_failed", user_id=user_id, error=str(e))
            if self._audit_logger:
                await self._audit_logger.log_snapshot_fetch_failed(
                    user_id=user_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return None

        if self._audit_logger:
            await self._audit_logger.log_snapshot_fetched(
                user_id=user_id,
                record_count=snapshot.count,
                correlation_id=correlation_id,
            )
            await self._audit_logger.log_records_normalized(
                user_id=user_id,
                record_count=snapshot.count,
                records_with_issues=sum(1 for r in snapshot.records if r.issues),
                undated_records=sum(1 for r in snapshot.records if not r.has_timestamp),
                correlation_id=correlation_id,
            )
        return snapshot

    async def generate(
        self,
        user_id: str,
        report_type: ReportType,
        period_range: Optional[PeriodRange] = None,
        options: Optional[ReportOptions] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Report:
        """
        Generate a report for the user.

        Never raises for store failures; the report is flagged
        insufficient_data instead.
        """
        correlation_id = correlation_id or create_correlation_id()
        report_type = ReportType(report_type)

        # Step 1: Fetch (the only suspension point)
        try:
            snapshot = await self.fetch_snapshot(user_id, correlation_id)
        except Exception as e:
            logger.error(
                "snapshot_fetch_error",
                user_id=user_id,
                error=str(e),
                exc_info=True,
            )
            if self._audit_logger:
                await self._audit_logger.log_report_generation_failed(
                    user_id=user_id,
                    report_type=report_type.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            snapshot = None

        # Step 2: Build
        if snapshot is None:
            report = self._composer.compose(
                RecordSnapshot.empty(), report_type, period_range, options
            ).model_copy(update={
                "insufficient_data": True,
                "insights": [INSUFFICIENT_DATA_MESSAGE],
            })
        else:
            report = self._composer.compose(snapshot, report_type, period_range, options)

        # Audit
        if self._audit_logger:
            await self._audit_logger.log_report_generated(
                user_id=user_id,
                report_type=report_type.value,
                period_label=report.period_label,
                insufficient_data=report.insufficient_data,
                correlation_id=correlation_id,
            )

        return report

    async def export(
        self,
        report: Report,
        export_format: ExportFormat,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[str, str]:
        """
        Encode a report for download.

        Returns:
            (filename, content)
        """
        content = encode_report(report, export_format)
        export_format = ExportFormat(export_format)
        filename = export_filename(export_format, now)

        if self._audit_logger:
            await self._audit_logger.log_report_exported(
                report_type=report.report_type.value,
                export_format=export_format.value,
                size_bytes=len(content.encode("utf-8")),
                correlation_id=correlation_id,
            )

        return filename, content


def create_report_flow(
    record_store: Optional[RecordStoreInterface] = None,
    persist_audit: bool = True,
) -> ReportFlow:
    """
    Factory function to create the report flow.

    Args:
        record_store: The store to read records from.
                     If None, every report is flagged insufficient_data.
        persist_audit: Whether to keep audit events in memory
                      in addition to logging them locally.

    Returns:
        A ready-to-use ReportFlow
    """
    audit_logger = AuditLogger(InMemoryAuditStorage()) if persist_audit else AuditLogger()
    return ReportFlow(
        record_store=record_store,
        composer=ReportComposer(get_engine_settings()),
        audit_logger=audit_logger,
    )
