"""Loan payment ledger: balances, status and payment entry.

The payment ledger is the authoritative source for a loan's remaining
balance. The ``remaining_balance`` / ``total_paid_*`` fields stored on a loan
row are a cache, rebuilt by ``refresh_cached_totals`` after every payment
write.
"""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Iterable

from tallybook.engine.amortization import (
    MAX_RATE,
    ZERO,
    round_money,
    check_loan_terms,
    next_payment,
    payment_amount,
    to_date,
    to_decimal,
    to_frequency,
)
from tallybook.errors import InvalidParameterError
from tallybook.models.loan import (
    Loan,
    LoanPayment,
    LoanStatus,
    LoanType,
    PaymentFrequency,
)
from tallybook.models.results import (
    LoanBalance,
    PaymentBreakdown,
    PaymentWithBalance,
    PortfolioSummary,
)

logger = logging.getLogger(__name__)


def originate_loan(
    name: str,
    loan_type: LoanType | str,
    principal: Decimal,
    annual_rate: Decimal,
    term_months: int,
    start_date: date,
    frequency: PaymentFrequency | str | None = None,
    **extra,
) -> Loan:
    """Build a new active loan with its regular payment filled in.

    Without a frequency there is no regular payment; the loan is settled by
    ad-hoc payments.
    """
    principal, annual_rate, term_months = check_loan_terms(principal, annual_rate, term_months)
    try:
        loan_type = LoanType(loan_type)
    except ValueError:
        raise InvalidParameterError(f"Unknown loan type: {loan_type!r}") from None
    frequency = to_frequency(frequency) if frequency is not None else None

    return Loan(
        name=name,
        type=loan_type,
        principal_amount=principal,
        interest_rate=annual_rate,
        term_months=term_months,
        start_date=to_date(start_date),
        payment_frequency=frequency,
        payment_amount=(
            payment_amount(principal, annual_rate, term_months, frequency) if frequency else None
        ),
        remaining_balance=principal,
        status=LoanStatus.ACTIVE,
        **extra,
    )


def derive_status(remaining_balance: Decimal, current: LoanStatus = LoanStatus.ACTIVE) -> LoanStatus:
    if current is LoanStatus.DEFAULTED:
        return current
    return LoanStatus.PAID_OFF if remaining_balance <= 0 else LoanStatus.ACTIVE


def loan_balance(loan: Loan, payments: Iterable[LoanPayment]) -> LoanBalance:
    """Rebuild a loan's balance from its recorded payments.

    Payments are applied oldest first; same-day payments keep their given
    order.
    """
    if loan.principal_amount <= 0:
        raise InvalidParameterError(f"principal must be positive, got {loan.principal_amount}")
    ordered = sorted(payments, key=lambda p: p.payment_date)
    for p in ordered:
        if loan.id is not None and p.loan_id != loan.id:
            raise InvalidParameterError(f"Payment {p.id} belongs to loan {p.loan_id}, not {loan.id}")

    balance = loan.principal_amount
    total_principal = ZERO
    total_interest = ZERO
    history: list[PaymentWithBalance] = []

    for p in ordered:
        balance -= p.principal_amount
        total_principal += p.principal_amount
        total_interest += p.interest_amount
        history.append(PaymentWithBalance(payment=p, balance_after=max(ZERO, balance)))

    remaining = max(ZERO, balance)
    return LoanBalance(
        loan_id=loan.id,
        principal_amount=loan.principal_amount,
        remaining_balance=remaining,
        total_paid_principal=total_principal,
        total_paid_interest=total_interest,
        status=derive_status(remaining, loan.status),
        payments=history,
    )


def refresh_cached_totals(loan: Loan, payments: Iterable[LoanPayment]) -> Loan:
    """Return ``loan`` with its cached balance fields rebuilt from ``payments``."""
    balance = loan_balance(loan, payments)
    return replace(
        loan,
        remaining_balance=balance.remaining_balance,
        total_paid_principal=balance.total_paid_principal,
        total_paid_interest=balance.total_paid_interest,
        status=balance.status,
    )


def cache_drift(loan: Loan, balance: LoanBalance) -> Decimal:
    """Stored minus ledger-derived remaining balance; zero when in sync."""
    drift = loan.remaining_balance - balance.remaining_balance
    if drift != 0:
        logger.warning(
            "Loan %s stored balance %s differs from ledger balance %s",
            loan.id, loan.remaining_balance, balance.remaining_balance,
        )
    return drift


def suggest_payment(loan: Loan, remaining_balance: Decimal) -> PaymentBreakdown:
    """Pre-fill the record-payment form for ``loan``.

    Loans on a schedule suggest their next regular payment; loans without one
    suggest paying off the whole balance.
    """
    remaining_balance = to_decimal(remaining_balance, "remaining_balance")
    if loan.payment_frequency is None or loan.payment_amount is None:
        return PaymentBreakdown(total=remaining_balance, principal=remaining_balance, interest=ZERO)
    return next_payment(
        remaining_balance, loan.interest_rate, loan.payment_frequency, loan.payment_amount
    )


def split_payment(
    total: Decimal,
    remaining_balance: Decimal,
    annual_rate: Decimal,
    frequency: PaymentFrequency | str | None = None,
) -> PaymentBreakdown:
    """Split a user-entered payment total into interest first, then principal."""
    total = to_decimal(total, "total")
    remaining_balance = to_decimal(remaining_balance, "remaining_balance")
    annual_rate = to_decimal(annual_rate, "annual_rate", MAX_RATE)
    frequency = to_frequency(frequency or PaymentFrequency.MONTHLY)
    if total <= 0:
        raise InvalidParameterError(f"Payment total must be positive, got {total}")
    if remaining_balance < 0 or annual_rate < 0:
        raise InvalidParameterError("remaining_balance and annual_rate must not be negative")

    accrued = round_money(remaining_balance * annual_rate / frequency.periods_per_year)
    interest = min(accrued, total)
    return PaymentBreakdown(total=total, principal=round_money(total - interest), interest=interest)


def portfolio_summary(balances: Iterable[tuple[Loan, LoanBalance]]) -> PortfolioSummary:
    summary = PortfolioSummary()
    for loan, balance in balances:
        outstanding = balance.remaining_balance
        if outstanding <= 0:
            summary.paid_off += 1
        elif loan.is_payable:
            summary.total_payable += outstanding
            summary.active_payable += 1
        else:
            summary.total_receivable += outstanding
            summary.active_receivable += 1
    return summary
