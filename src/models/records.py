"""
Canonical Financial Record Models

Every raw record fetched from the record store is normalized into one of
these models before any aggregation happens. They are designed to:
1. Carry a single resolved timestamp per record (or None)
2. Hold money as Decimal cents, never floats
3. Keep kind-specific fields on one concrete type per record kind
4. Remember what had to be defaulted during normalization

DESIGN DECISION: Records are frozen. Operations that "change" a record
(paying loan interest, selling stock) return a new record via model_copy.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated, Any, Literal, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Decimal in Python, a plain JSON number on the wire
Money = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


def to_money(value: Any) -> Decimal:
    """Quantize a number to cents (half-up). Non-numbers and unrepresentable values become 0.00."""
    if isinstance(value, Decimal):
        candidate = value
    else:
        try:
            candidate = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError):
            return ZERO
    if not candidate.is_finite():
        return ZERO
    try:
        return candidate.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class RecordKind(str, Enum):
    """The kinds of financial fact the store keeps."""
    EXPENSE = "expense"
    DEBT_OWED_BY_ME = "debt_owed_by_me"
    DEBT_OWED_TO_ME = "debt_owed_to_me"
    INVESTMENT_PLAN = "investment_plan"
    STOCK_HOLDING = "stock_holding"
    LOAN = "loan"
    TAX = "tax"
    VIOLATION = "violation"


class RecordStatus(str, Enum):
    """
    Lifecycle status across all record kinds.

    Each kind uses a subset:
    - debts: Pending/Unpaid → Paid/Cleared
    - investment plans: Active → Completed
    - stock holdings: Holding → Sold
    - loans, taxes, violations: Pending → Paid (violations may be Cancelled)
    """
    PENDING = "Pending"
    UNPAID = "Unpaid"
    PAID = "Paid"
    CLEARED = "Cleared"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    HOLDING = "Holding"
    SOLD = "Sold"
    CANCELLED = "Cancelled"


# Statuses after which a record no longer counts as outstanding
SETTLED_STATUSES = frozenset({
    RecordStatus.PAID,
    RecordStatus.CLEARED,
    RecordStatus.CANCELLED,
})

DEBT_KINDS = frozenset({RecordKind.DEBT_OWED_BY_ME, RecordKind.DEBT_OWED_TO_ME})
OBLIGATION_KINDS = frozenset({RecordKind.TAX, RecordKind.VIOLATION})


class NormalizationIssue(BaseModel):
    """Something the normalizer had to default or drop for one record."""

    field: str = Field(
        ...,
        description="Canonical field the issue concerns"
    )
    issue_type: str = Field(
        ...,
        pattern="^(missing|invalid_value|unparseable_date)$",
        description="Type of issue"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )


# =============================================================================
# CORE RECORD MODEL
# =============================================================================

class FinancialRecord(BaseModel):
    """
    Fields shared by every record kind.

    occurred_at is None when the stored date was absent or unparseable.
    Such records are excluded from time-windowed views but still count
    towards totals that are not time-scoped.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=lambda: uuid4().hex,
        description="Store document ID"
    )
    kind: RecordKind
    amount: Money = Field(
        default=ZERO,
        ge=0,
        description="Non-negative amount in the record's natural sense"
    )
    occurred_at: Optional[datetime] = Field(
        default=None,
        description="Resolved, timezone-aware instant"
    )
    category: str = Field(
        default="Uncategorized",
        min_length=1,
        max_length=200,
    )
    status: RecordStatus = RecordStatus.PENDING
    note: Optional[str] = Field(
        default=None,
        max_length=1000,
    )
    issues: list[NormalizationIssue] = Field(default_factory=list)

    @property
    def is_settled(self) -> bool:
        """True once the record no longer represents an open amount."""
        return self.status in SETTLED_STATUSES

    @property
    def has_timestamp(self) -> bool:
        return self.occurred_at is not None


class ExpenseRecord(FinancialRecord):
    """A single spend."""

    kind: Literal[RecordKind.EXPENSE] = RecordKind.EXPENSE
    status: RecordStatus = RecordStatus.PAID


class DebtRecord(FinancialRecord):
    """Money owed by me or to me, depending on kind."""

    counterparty_name: str = Field(
        default="",
        max_length=200,
    )
    due_date: Optional[datetime] = None

    @field_validator('kind')
    @classmethod
    def validate_kind(cls, v: RecordKind) -> RecordKind:
        if v not in DEBT_KINDS:
            raise ValueError(f"DebtRecord cannot have kind {v.value}")
        return v


class InvestmentPlanRecord(FinancialRecord):
    """A systematic investment plan: fixed monthly contribution."""

    kind: Literal[RecordKind.INVESTMENT_PLAN] = RecordKind.INVESTMENT_PLAN
    status: RecordStatus = RecordStatus.ACTIVE
    name: str = Field(default="", max_length=200)
    monthly_amount: Money = Field(default=ZERO, ge=0)
    annual_return_rate_percent: Decimal = Field(default=Decimal("0"))
    duration_months: int = Field(default=0, ge=0)
    start_date: Optional[datetime] = None


class StockHoldingRecord(FinancialRecord):
    """
    A position in one stock.

    amount is the invested value (quantity * buy_price).
    """

    kind: Literal[RecordKind.STOCK_HOLDING] = RecordKind.STOCK_HOLDING
    status: RecordStatus = RecordStatus.HOLDING
    name: str = Field(default="", max_length=200)
    quantity: Decimal = Field(default=Decimal("0"), ge=0)
    buy_price: Money = Field(default=ZERO, ge=0)
    current_price: Money = Field(default=ZERO, ge=0)
    buy_date: Optional[datetime] = None

    # Set once sold
    sell_quantity: Optional[Decimal] = None
    sell_price: Optional[Money] = None
    sell_date: Optional[datetime] = None

    @property
    def is_sold(self) -> bool:
        return self.status == RecordStatus.SOLD

    @property
    def invested_amount(self) -> Decimal:
        return to_money(self.quantity * self.buy_price)


class InterestPayment(BaseModel):
    """One monthly interest payment made on a loan."""
    model_config = ConfigDict(frozen=True)

    paid_at: datetime
    amount: Money = Field(ge=0)


class LoanRecord(FinancialRecord):
    """
    A loan I owe. amount is the principal.

    Interest is paid monthly and never reduces principal.
    """

    kind: Literal[RecordKind.LOAN] = RecordKind.LOAN
    organization_name: str = Field(default="", max_length=200)
    reason: Optional[str] = Field(default=None, max_length=500)
    principal: Money = Field(default=ZERO, ge=0)
    annual_interest_rate_percent: Decimal = Field(default=Decimal("0"))
    due_date: Optional[datetime] = None
    interest_payment_history: tuple[InterestPayment, ...] = ()
    last_interest_paid_at: Optional[datetime] = None


class ObligationRecord(FinancialRecord):
    """A tax or a traffic-violation fine with a due date."""

    obligation_type: str = Field(default="", max_length=200)
    due_date: Optional[datetime] = None
    paid_at: Optional[datetime] = None

    # Violations only
    violation_date: Optional[datetime] = None
    notice_number: Optional[str] = Field(default=None, max_length=100)

    @field_validator('kind')
    @classmethod
    def validate_kind(cls, v: RecordKind) -> RecordKind:
        if v not in OBLIGATION_KINDS:
            raise ValueError(f"ObligationRecord cannot have kind {v.value}")
        return v


# =============================================================================
# SNAPSHOT
# =============================================================================

class RecordSnapshot(BaseModel):
    """
    An immutable set of normalized records taken from the store at one moment.

    Every report is computed from exactly one snapshot.
    """
    model_config = ConfigDict(frozen=True)

    records: tuple[FinancialRecord, ...] = ()
    taken_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def empty(cls) -> "RecordSnapshot":
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.records

    @property
    def count(self) -> int:
        return len(self.records)

    def of_kind(self, *kinds: RecordKind) -> list[FinancialRecord]:
        """Records of the given kinds, in snapshot order."""
        wanted = set(kinds)
        return [record for record in self.records if record.kind in wanted]

    @property
    def expenses(self) -> list[ExpenseRecord]:
        return self.of_kind(RecordKind.EXPENSE)

    @property
    def debts_owed_by_me(self) -> list[DebtRecord]:
        return self.of_kind(RecordKind.DEBT_OWED_BY_ME)

    @property
    def debts_owed_to_me(self) -> list[DebtRecord]:
        return self.of_kind(RecordKind.DEBT_OWED_TO_ME)

    @property
    def investment_plans(self) -> list[InvestmentPlanRecord]:
        return self.of_kind(RecordKind.INVESTMENT_PLAN)

    @property
    def stock_holdings(self) -> list[StockHoldingRecord]:
        return self.of_kind(RecordKind.STOCK_HOLDING)

    @property
    def loans(self) -> list[LoanRecord]:
        return self.of_kind(RecordKind.LOAN)

    @property
    def taxes(self) -> list[ObligationRecord]:
        return self.of_kind(RecordKind.TAX)

    @property
    def violations(self) -> list[ObligationRecord]:
        return self.of_kind(RecordKind.VIOLATION)
