from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from tallybook.models.loan import LoanPayment, LoanStatus, PaymentFrequency


@dataclass(frozen=True)
class AmortizationEntry:
    payment_number: int
    payment_date: date
    payment_amount: Decimal
    principal: Decimal
    interest: Decimal
    remaining_balance: Decimal  # After this payment


@dataclass(frozen=True)
class AmortizationSchedule:
    entries: list[AmortizationEntry]
    frequency: PaymentFrequency
    payment_amount: Decimal  # Regular payment for the schedule's frequency
    periods: int  # Scheduled periods, may exceed len(entries) on early payoff
    total_interest: Decimal
    total_principal: Decimal
    unpaid_balance: Decimal  # Left after the last entry
    degenerate: bool = False

    @property
    def total_paid(self) -> Decimal:
        return self.total_principal + self.total_interest

    @property
    def final_payment_date(self) -> date | None:
        return self.entries[-1].payment_date if self.entries else None


@dataclass(frozen=True)
class PaymentBreakdown:
    total: Decimal
    principal: Decimal
    interest: Decimal


@dataclass(frozen=True)
class YearlyLoanSummary:
    year: int
    principal: Decimal
    interest: Decimal
    total_paid: Decimal
    ending_balance: Decimal


@dataclass(frozen=True)
class PaymentWithBalance:
    payment: LoanPayment
    balance_after: Decimal


@dataclass(frozen=True)
class LoanBalance:
    loan_id: str | None
    principal_amount: Decimal
    remaining_balance: Decimal
    total_paid_principal: Decimal
    total_paid_interest: Decimal
    status: LoanStatus
    payments: list[PaymentWithBalance] = field(default_factory=list)  # Oldest first

    @property
    def percent_repaid(self) -> Decimal:
        repaid = (self.principal_amount - self.remaining_balance) / self.principal_amount * 100
        return min(Decimal("100"), repaid).quantize(Decimal("0.1"), ROUND_HALF_UP)

    @property
    def is_active(self) -> bool:
        return self.status is LoanStatus.ACTIVE


@dataclass
class PortfolioSummary:
    total_payable: Decimal = Decimal("0")
    total_receivable: Decimal = Decimal("0")
    active_payable: int = 0
    active_receivable: int = 0
    paid_off: int = 0
