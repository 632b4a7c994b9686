from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from dateutil.relativedelta import relativedelta


class LoanType(Enum):
    PAYABLE = "payable"  # Owed by the tenant
    RECEIVABLE = "receivable"  # Owed to the tenant


class LoanStatus(Enum):
    ACTIVE = "active"
    PAID_OFF = "paid_off"
    DEFAULTED = "defaulted"  # Set by hand, never derived


class PaymentFrequency(Enum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUALLY = "annually"

    @property
    def periods_per_year(self) -> int:
        return {
            PaymentFrequency.WEEKLY: 52,
            PaymentFrequency.BIWEEKLY: 26,
            PaymentFrequency.MONTHLY: 12,
            PaymentFrequency.QUARTERLY: 4,
            PaymentFrequency.ANNUALLY: 1,
        }[self]

    @property
    def step(self) -> relativedelta:
        """Calendar distance between two consecutive due dates."""
        return {
            PaymentFrequency.WEEKLY: relativedelta(days=7),
            PaymentFrequency.BIWEEKLY: relativedelta(days=14),
            PaymentFrequency.MONTHLY: relativedelta(months=1),
            PaymentFrequency.QUARTERLY: relativedelta(months=3),
            PaymentFrequency.ANNUALLY: relativedelta(years=1),
        }[self]

    @property
    def label(self) -> str:
        return {
            PaymentFrequency.WEEKLY: "Weekly",
            PaymentFrequency.BIWEEKLY: "Bi-weekly",
            PaymentFrequency.MONTHLY: "Monthly",
            PaymentFrequency.QUARTERLY: "Quarterly",
            PaymentFrequency.ANNUALLY: "Annually",
        }[self]


@dataclass(frozen=True)
class Loan:
    name: str
    type: LoanType
    principal_amount: Decimal
    interest_rate: Decimal  # Annual, e.g. Decimal("0.05")
    term_months: int
    start_date: date
    payment_frequency: PaymentFrequency | None = None
    payment_amount: Decimal | None = None  # Regular payment per period

    # Cached from the payment ledger, see engine.ledger.refresh_cached_totals
    remaining_balance: Decimal = Decimal("0")
    total_paid_principal: Decimal = Decimal("0")
    total_paid_interest: Decimal = Decimal("0")
    status: LoanStatus = LoanStatus.ACTIVE

    id: str | None = None
    contact_id: str | None = None
    notes: str | None = None

    @property
    def is_payable(self) -> bool:
        return self.type is LoanType.PAYABLE


@dataclass(frozen=True)
class LoanPayment:
    loan_id: str
    payment_date: date
    total_amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    account_id: str | None = None
    id: str | None = None
    notes: str | None = None
