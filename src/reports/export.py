"""
Export Encoder

Serializes a Report to JSON, CSV or HTML text.

- JSON: the report verbatim, camelCase keys, money as numbers
- CSV: title line, Summary section, Category Breakdown section
- HTML: a minimal standalone document; every value is escaped
"""

import csv
import html
import io
from datetime import datetime
from decimal import Decimal
from typing import Optional

import structlog

from src.config import get_engine_settings
from src.models.report import ExportFormat, Report


logger = structlog.get_logger(__name__)


class ExportError(Exception):
    """Requested export format is not supported."""
    pass


def _plain(value) -> str:
    """Summary value as CSV text."""
    if isinstance(value, float):
        return f"{value:g}" if value == int(value) else str(value)
    return str(value)


def encode_json(report: Report) -> str:
    return report.model_dump_json(by_alias=True, indent=2, exclude_none=True)


def encode_csv(report: Report) -> str:
    """
    Financial Report - <type>
    <blank>
    Summary
    key,value ...
    <blank>
    Category Breakdown
    Category,Amount,Percentage
    <category>,<amount>,<NN.N>% ...
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")

    writer.writerow([f"Financial Report - {report.type}"])
    writer.writerow([])
    writer.writerow(["Summary"])
    for key, value in report.summary.items():
        writer.writerow([key, _plain(value)])

    if report.category_breakdown is not None:
        writer.writerow([])
        writer.writerow(["Category Breakdown"])
        writer.writerow(["Category", "Amount", "Percentage"])
        for share in report.category_breakdown:
            writer.writerow([
                share.category,
                str(share.amount),
                f"{share.percentage_of_total:.1f}%",
            ])

    return buffer.getvalue()


def _html_value(value, currency_symbol: str) -> str:
    if isinstance(value, Decimal):
        return f"{currency_symbol}{value:,.2f}"
    return _plain(value)


def encode_html(report: Report) -> str:
    """A minimal HTML document for the report."""
    symbol = get_engine_settings().currency_symbol
    esc = html.escape

    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{esc(report.type)}</title>",
        "</head>",
        "<body>",
        f"<h1>{esc(report.type)}</h1>",
        f"<p><strong>Period:</strong> {esc(report.period_label)}</p>",
        "<h2>Summary</h2>",
    ]
    for key, value in report.summary.items():
        parts.append(
            f"<p><strong>{esc(key)}:</strong> {esc(_html_value(value, symbol))}</p>"
        )

    if report.category_breakdown:
        parts.append("<h2>Category Breakdown</h2>")
        parts.append("<table>")
        parts.append("<tr><th>Category</th><th>Amount</th><th>Percentage</th></tr>")
        for share in report.category_breakdown:
            parts.append(
                f"<tr><td>{esc(share.category)}</td>"
                f"<td>{esc(_html_value(share.amount, symbol))}</td>"
                f"<td>{share.percentage_of_total:.1f}%</td></tr>"
            )
        parts.append("</table>")

    if report.insights:
        parts.append("<h2>Insights</h2>")
        parts.append("<ul>")
        parts.extend(f"<li>{esc(insight)}</li>" for insight in report.insights)
        parts.append("</ul>")

    if report.recommendations:
        parts.append("<h2>Recommendations</h2>")
        parts.append("<ul>")
        parts.extend(f"<li>{esc(item)}</li>" for item in report.recommendations)
        parts.append("</ul>")

    parts.append(
        f"<p><em>Generated on {report.generated_at.strftime('%d %b %Y %H:%M')}</em></p>"
    )
    parts.append("</body>")
    parts.append("</html>")
    return "\n".join(parts) + "\n"


_ENCODERS = {
    ExportFormat.JSON: encode_json,
    ExportFormat.CSV: encode_csv,
    ExportFormat.HTML: encode_html,
}


def encode_report(report: Report, format: ExportFormat) -> str:
    """Encode a report in the given format (json, csv or html)."""
    try:
        export_format = ExportFormat(format)
    except ValueError as e:
        raise ExportError(f"Unsupported export format: {format}") from e

    content = _ENCODERS[export_format](report)
    logger.debug(
        "report_encoded",
        report_type=report.report_type.value,
        format=export_format.value,
        size=len(content),
    )
    return content


def export_filename(format: ExportFormat, now: Optional[datetime] = None) -> str:
    """financial_report_YYYY-MM-DD_HH-mm.<ext>"""
    export_format = ExportFormat(format)
    now = now or datetime.now(get_engine_settings().tzinfo)
    return f"financial_report_{now.strftime('%Y-%m-%d_%H-%M')}.{export_format.extension}"
