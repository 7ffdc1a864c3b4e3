"""
Reports Package

Composes reports from a record snapshot and encodes them for export.
"""

from src.reports.composer import ReportComposer, build_report, empty_summary
from src.reports.export import (
    ExportError,
    encode_csv,
    encode_html,
    encode_json,
    encode_report,
    export_filename,
)

__all__ = [
    "ExportError",
    "ReportComposer",
    "build_report",
    "empty_summary",
    "encode_csv",
    "encode_html",
    "encode_json",
    "encode_report",
    "export_filename",
]
