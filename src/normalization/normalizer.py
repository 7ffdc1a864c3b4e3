"""
Record Normalizer

Converts raw store documents into canonical FinancialRecord models.

DESIGN DECISION: The normalizer never raises. Field readers raise
NormalizationError subclasses internally; the normalizer catches each one,
substitutes a default, and attaches a NormalizationIssue to the record.
Nothing is silently corrected: every default is visible on record.issues.

Date handling:
- Stored instants (datetime, Firestore-style {"seconds": ...} mappings,
  objects with to_datetime(), epoch numbers, ISO-8601 strings) keep their
  instant and are expressed in the reporting timezone.
- Bare dates ("YYYY-MM-DD" strings, date objects) and naive datetimes are
  read as wall-clock time in the reporting timezone; bare dates are local
  midnight.
- Absent or unparseable dates leave occurred_at as None. Such records are
  kept; they only drop out of time-windowed views.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import structlog
from dateutil import parser as date_parser

from src.config import EngineSettings, get_engine_settings
from src.models.records import (
    ZERO,
    DebtRecord,
    ExpenseRecord,
    FinancialRecord,
    InterestPayment,
    InvestmentPlanRecord,
    LoanRecord,
    NormalizationIssue,
    ObligationRecord,
    RecordKind,
    RecordSnapshot,
    RecordStatus,
    StockHoldingRecord,
    to_money,
)


logger = structlog.get_logger(__name__)


# =============================================================================
# ERRORS
# =============================================================================

class NormalizationError(Exception):
    """A raw field could not be read as its canonical type."""

    issue_type = "invalid_value"

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")

    def to_issue(self) -> NormalizationIssue:
        return NormalizationIssue(
            field=self.field,
            issue_type=self.issue_type,
            message=self.message,
        )


class MissingFieldError(NormalizationError):
    """A required numeric or date field is absent."""

    issue_type = "missing"


class UnparseableDateError(NormalizationError):
    """A date field is present but cannot be resolved to an instant."""

    issue_type = "unparseable_date"


# =============================================================================
# DATE RESOLUTION
# =============================================================================

# Epoch numbers above this are JavaScript millisecond timestamps
_MILLISECOND_THRESHOLD = 100_000_000_000

_BARE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def resolve_instant(
    value: Any,
    tz: Optional[tzinfo] = None,
    field: str = "date",
) -> Optional[datetime]:
    """
    Resolve a stored date representation to an aware datetime in tz.

    Returns None when value is absent (None or blank).
    Raises UnparseableDateError when value is present but unreadable.
    """
    tz = tz or get_engine_settings().tzinfo

    if value is None or (isinstance(value, str) and not value.strip()):
        return None

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=tz)
        return value.astimezone(tz)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=tz)

    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        try:
            total = float(seconds) + float(nanos) / 1e9
        except (TypeError, ValueError, OverflowError) as e:
            raise UnparseableDateError(
                field, f"Unrecognized timestamp mapping: {dict(value)}"
            ) from e
        return _from_epoch(total, tz, field)

    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        return resolve_instant(to_datetime(), tz, field)

    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        try:
            seconds = float(value)
        except OverflowError as e:
            raise UnparseableDateError(field, f"Epoch value out of range: {value}") from e
        if abs(seconds) > _MILLISECOND_THRESHOLD:
            seconds /= 1000
        return _from_epoch(seconds, tz, field)

    if isinstance(value, str):
        text = value.strip()
        try:
            if _BARE_DATE.match(text):
                parsed = datetime.combine(date.fromisoformat(text), time.min)
            else:
                parsed = date_parser.isoparse(text)
        except ValueError:
            try:
                parsed = date_parser.parse(text)
            except (ValueError, OverflowError) as e:
                raise UnparseableDateError(field, f"Cannot parse date '{text}'") from e
        return resolve_instant(parsed, tz, field)

    raise UnparseableDateError(field, f"Unsupported date type {type(value).__name__}")


def _from_epoch(seconds: float, tz: tzinfo, field: str) -> datetime:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone(tz)
    except (OverflowError, OSError, ValueError) as e:
        raise UnparseableDateError(field, f"Epoch value out of range: {seconds}") from e


# =============================================================================
# FIELD READERS
# =============================================================================

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Numbers at or above this are rejected as out of range
_MAX_MAGNITUDE = Decimal("1e15")


def _spellings(name: str) -> tuple[str, str]:
    """A camelCase name and its snake_case spelling."""
    return name, _CAMEL_BOUNDARY.sub("_", name).lower()


def _lookup(raw: Mapping, *names: str) -> Any:
    """First present, non-None value among names (camelCase or snake_case)."""
    for name in names:
        for key in _spellings(name):
            value = raw.get(key)
            if value is not None:
                return value
    return None


def _read_decimal(raw: Mapping, field: str, *names: str) -> Decimal:
    """
    Read a non-negative number.

    Raises MissingFieldError when absent, NormalizationError when not a
    finite non-negative number.
    """
    value = _lookup(raw, *names)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError(field, f"{field} is missing; defaulted to 0")
    if isinstance(value, bool):
        raise NormalizationError(field, f"{field} is not a number; defaulted to 0")
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise NormalizationError(field, f"{field} '{value}' is not a number; defaulted to 0")
    if not number.is_finite():
        raise NormalizationError(field, f"{field} '{value}' is not finite; defaulted to 0")
    if number < 0:
        raise NormalizationError(field, f"{field} {value} is negative; defaulted to 0")
    if number >= _MAX_MAGNITUDE:
        raise NormalizationError(field, f"{field} {value} is out of range; defaulted to 0")
    return number


def _read_text(raw: Mapping, *names: str, limit: int = 200) -> str:
    value = _lookup(raw, *names)
    if value is None:
        return ""
    return str(value).strip()[:limit]


# =============================================================================
# STATUS
# =============================================================================

_DEFAULT_STATUS = {
    RecordKind.EXPENSE: RecordStatus.PAID,
    RecordKind.DEBT_OWED_BY_ME: RecordStatus.PENDING,
    RecordKind.DEBT_OWED_TO_ME: RecordStatus.PENDING,
    RecordKind.INVESTMENT_PLAN: RecordStatus.ACTIVE,
    RecordKind.STOCK_HOLDING: RecordStatus.HOLDING,
    RecordKind.LOAN: RecordStatus.PENDING,
    RecordKind.TAX: RecordStatus.PENDING,
    RecordKind.VIOLATION: RecordStatus.PENDING,
}

_RECORD_MODELS = {
    RecordKind.EXPENSE: ExpenseRecord,
    RecordKind.DEBT_OWED_BY_ME: DebtRecord,
    RecordKind.DEBT_OWED_TO_ME: DebtRecord,
    RecordKind.INVESTMENT_PLAN: InvestmentPlanRecord,
    RecordKind.STOCK_HOLDING: StockHoldingRecord,
    RecordKind.LOAN: LoanRecord,
    RecordKind.TAX: ObligationRecord,
    RecordKind.VIOLATION: ObligationRecord,
}

_STATUS_BY_NAME = {status.value.lower(): status for status in RecordStatus}
_STATUS_BY_NAME["canceled"] = RecordStatus.CANCELLED


def resolve_status(raw: Mapping, kind: RecordKind) -> RecordStatus:
    """Match a stored status case-insensitively, falling back to the kind default."""
    if kind == RecordKind.DEBT_OWED_TO_ME and raw.get("cleared") is True:
        return RecordStatus.CLEARED
    value = raw.get("status")
    if isinstance(value, str):
        status = _STATUS_BY_NAME.get(value.strip().lower())
        if status is not None:
            return status
    return _DEFAULT_STATUS[kind]


# =============================================================================
# NORMALIZER
# =============================================================================

class RecordNormalizer:
    """
    Builds canonical records from raw store documents.

    One builder per kind family; all share the common-field reader.
    """

    def __init__(self, settings: Optional[EngineSettings] = None):
        self._settings = settings or get_engine_settings()
        self._tz = self._settings.tzinfo

    def normalize(self, raw: Mapping, kind: RecordKind) -> FinancialRecord:
        """Normalize one raw document. Never raises."""
        kind = RecordKind(kind)
        raw = raw or {}
        issues: list[NormalizationIssue] = []

        builder = {
            RecordKind.EXPENSE: self._expense,
            RecordKind.DEBT_OWED_BY_ME: self._debt,
            RecordKind.DEBT_OWED_TO_ME: self._debt,
            RecordKind.INVESTMENT_PLAN: self._investment_plan,
            RecordKind.STOCK_HOLDING: self._stock_holding,
            RecordKind.LOAN: self._loan,
            RecordKind.TAX: self._obligation,
            RecordKind.VIOLATION: self._obligation,
        }[kind]

        fields = builder(raw, kind, issues)

        record = _RECORD_MODELS[kind](
            **self._common(raw, kind),
            **fields,
            issues=issues,
        )

        if issues:
            logger.debug(
                "record_normalized_with_issues",
                record_id=record.id,
                kind=kind.value,
                issues=[f"{issue.field}:{issue.issue_type}" for issue in issues],
            )
        return record

    def normalize_many(
        self,
        raw_by_kind: Mapping[RecordKind, Iterable[Mapping]],
        taken_at: Optional[datetime] = None,
    ) -> RecordSnapshot:
        """Normalize every document of every kind into one snapshot."""
        records: list[FinancialRecord] = []
        for kind, documents in raw_by_kind.items():
            for raw in documents:
                records.append(self.normalize(raw, kind))

        with_issues = sum(1 for record in records if record.issues)
        if with_issues:
            logger.warning(
                "snapshot_normalized_with_issues",
                record_count=len(records),
                records_with_issues=with_issues,
            )

        if taken_at is None:
            return RecordSnapshot(records=tuple(records))
        return RecordSnapshot(records=tuple(records), taken_at=taken_at)

    # -------------------------------------------------------------------------
    # Shared readers
    # -------------------------------------------------------------------------

    def _common(self, raw: Mapping, kind: RecordKind) -> dict:
        fields: dict[str, Any] = {
            "kind": kind,
            "category": _read_text(raw, "category") or self._settings.default_category,
            "status": resolve_status(raw, kind),
            "note": _read_text(raw, "note", "notes", "description", limit=1000) or None,
        }
        record_id = raw.get("id")
        if record_id:
            fields["id"] = str(record_id)
        return fields

    def _money(self, raw: Mapping, field: str, issues: list, *names: str) -> Decimal:
        try:
            return to_money(_read_decimal(raw, field, *names))
        except NormalizationError as e:
            issues.append(e.to_issue())
            return ZERO

    def _number(
        self,
        raw: Mapping,
        field: str,
        issues: list,
        *names: str,
        required: bool = True,
    ) -> Decimal:
        try:
            return _read_decimal(raw, field, *names)
        except MissingFieldError as e:
            if required:
                issues.append(e.to_issue())
            return Decimal("0")
        except NormalizationError as e:
            issues.append(e.to_issue())
            return Decimal("0")

    def _instant(
        self,
        raw: Mapping,
        field: str,
        issues: list,
        *names: str,
        required: bool = False,
    ) -> Optional[datetime]:
        try:
            instant = resolve_instant(_lookup(raw, *names), self._tz, field)
        except UnparseableDateError as e:
            issues.append(e.to_issue())
            return None
        if instant is None and required:
            issues.append(MissingFieldError(field, f"{field} is missing").to_issue())
        return instant

    # -------------------------------------------------------------------------
    # Per-kind builders
    # -------------------------------------------------------------------------

    def _expense(self, raw: Mapping, kind: RecordKind, issues: list) -> dict:
        return {
            "amount": self._money(raw, "amount", issues, "amount"),
            "occurred_at": self._instant(
                raw, "occurred_at", issues, "date", required=True
            ),
        }

    def _debt(self, raw: Mapping, kind: RecordKind, issues: list) -> dict:
        due_date = self._instant(raw, "due_date", issues, "dueDate")
        created_at = self._instant(raw, "created_at", issues, "createdAt")
        occurred_at = created_at or due_date
        if occurred_at is None:
            issues.append(MissingFieldError("occurred_at", "No createdAt or dueDate").to_issue())
        return {
            "amount": self._money(raw, "amount", issues, "amount"),
            "counterparty_name": _read_text(
                raw, "counterpartyName", "person", "debtorName", "name"
            ),
            "due_date": due_date,
            "occurred_at": occurred_at,
        }

    def _investment_plan(self, raw: Mapping, kind: RecordKind, issues: list) -> dict:
        monthly = self._money(
            raw, "monthly_amount", issues, "monthlyAmount", "sipAmount", "amount"
        )
        start_date = self._instant(
            raw, "start_date", issues, "startDate", required=True
        )
        duration = self._number(raw, "duration_months", issues, "durationMonths")
        return {
            "amount": monthly,
            "monthly_amount": monthly,
            "name": _read_text(raw, "name", "fundName"),
            "annual_return_rate_percent": self._number(
                raw,
                "annual_return_rate_percent",
                issues,
                "annualReturnRatePercent",
                "expectedReturnRate",
            ),
            "duration_months": int(duration),
            "start_date": start_date,
            "occurred_at": start_date,
        }

    def _stock_holding(self, raw: Mapping, kind: RecordKind, issues: list) -> dict:
        quantity = self._number(raw, "quantity", issues, "quantity")
        buy_price = self._money(raw, "buy_price", issues, "buyPrice")
        buy_date = self._instant(raw, "buy_date", issues, "buyDate", required=True)

        sell_quantity = None
        sell_price = None
        if _lookup(raw, "sellQuantity") is not None:
            sell_quantity = self._number(raw, "sell_quantity", issues, "sellQuantity")
        if _lookup(raw, "sellPrice") is not None:
            sell_price = self._money(raw, "sell_price", issues, "sellPrice")

        return {
            "amount": to_money(quantity * buy_price),
            "name": _read_text(raw, "name", "stockName"),
            "quantity": quantity,
            "buy_price": buy_price,
            "current_price": self._money(raw, "current_price", issues, "currentPrice"),
            "buy_date": buy_date,
            "occurred_at": buy_date,
            "sell_quantity": sell_quantity,
            "sell_price": sell_price,
            "sell_date": self._instant(raw, "sell_date", issues, "sellDate"),
        }

    def _loan(self, raw: Mapping, kind: RecordKind, issues: list) -> dict:
        principal = self._money(raw, "principal", issues, "principal", "loanAmount")
        due_date = self._instant(raw, "due_date", issues, "dueDate")
        created_at = self._instant(raw, "created_at", issues, "createdAt")
        occurred_at = created_at or due_date
        if occurred_at is None:
            issues.append(MissingFieldError("occurred_at", "No createdAt or dueDate").to_issue())
        return {
            "amount": principal,
            "principal": principal,
            "organization_name": _read_text(
                raw, "organizationName", "loanOrganizationName"
            ),
            "reason": _read_text(raw, "reason", limit=500) or None,
            "annual_interest_rate_percent": self._number(
                raw,
                "annual_interest_rate_percent",
                issues,
                "annualInterestRatePercent",
                "annualInterest",
            ),
            "due_date": due_date,
            "occurred_at": occurred_at,
            "interest_payment_history": self._payments(raw, issues),
            "last_interest_paid_at": self._instant(
                raw, "last_interest_paid_at", issues,
                "lastInterestPaidAt", "lastInterestPaid", "lastInterestPaidDate",
            ),
        }

    def _payments(self, raw: Mapping, issues: list) -> tuple[InterestPayment, ...]:
        history = _lookup(raw, "interestPaymentHistory", "interestPayments")
        if not isinstance(history, (list, tuple)):
            return ()
        payments = []
        for index, entry in enumerate(history):
            if not isinstance(entry, Mapping):
                continue
            field = f"interest_payment_history[{index}]"
            paid_at = self._instant(entry, field, issues, "date", "paidAt")
            if paid_at is None:
                # A payment without a date cannot be placed on the timeline
                continue
            payments.append(InterestPayment(
                paid_at=paid_at,
                amount=self._money(entry, field, issues, "amount"),
            ))
        return tuple(sorted(payments, key=lambda payment: payment.paid_at))

    def _obligation(self, raw: Mapping, kind: RecordKind, issues: list) -> dict:
        due_date = self._instant(raw, "due_date", issues, "dueDate")
        fields: dict[str, Any] = {
            "obligation_type": _read_text(
                raw, "type", "obligationType", "taxType", "violationType"
            ),
            "paid_at": self._instant(raw, "paid_at", issues, "paidAt", "paidDate"),
        }

        if kind == RecordKind.VIOLATION:
            violation_date = self._instant(
                raw, "violation_date", issues, "violationDate", required=True
            )
            if due_date is None and violation_date is not None:
                due_date = violation_date + timedelta(
                    days=self._settings.violation_grace_days
                )
            fields.update(
                amount=self._money(raw, "amount", issues, "amount", "fineAmount"),
                violation_date=violation_date,
                notice_number=_read_text(raw, "noticeNumber", limit=100) or None,
                occurred_at=violation_date,
            )
        else:
            created_at = self._instant(raw, "created_at", issues, "createdAt")
            occurred_at = created_at or due_date
            if occurred_at is None:
                issues.append(
                    MissingFieldError("occurred_at", "No createdAt or dueDate").to_issue()
                )
            fields.update(
                amount=self._money(raw, "amount", issues, "amount"),
                occurred_at=occurred_at,
            )

        fields["due_date"] = due_date
        return fields


# =============================================================================
# MODULE-LEVEL ENTRY POINTS
# =============================================================================

def normalize(raw: Mapping, kind: RecordKind) -> FinancialRecord:
    """Normalize one raw document with the configured settings."""
    return RecordNormalizer().normalize(raw, kind)


def normalize_snapshot(
    raw_by_kind: Mapping[RecordKind, Iterable[Mapping]],
    taken_at: Optional[datetime] = None,
) -> RecordSnapshot:
    """Normalize raw documents grouped by kind into one RecordSnapshot."""
    return RecordNormalizer().normalize_many(raw_by_kind, taken_at)
