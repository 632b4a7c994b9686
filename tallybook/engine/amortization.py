"""Loan amortization: payment amounts, schedules and single-payment splits.

Pure functions: Decimal in, dataclass out. No I/O.
"""

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

from tallybook.errors import DegenerateScheduleError, InvalidParameterError
from tallybook.models.loan import PaymentFrequency
from tallybook.models.results import (
    AmortizationEntry,
    AmortizationSchedule,
    PaymentBreakdown,
    YearlyLoanSummary,
)

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")

# Widest values the loans table can hold: Numeric(12, 2) money, Numeric(7, 6) rates
MAX_AMOUNT = Decimal("9999999999.99")
MAX_RATE = Decimal("9.999999")
MAX_TERM_MONTHS = 1200

# Working precision for the annuity factor, so tiny rates do not collapse (1 + r)^n to 1
FACTOR_PRECISION = 60


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(TWO_PLACES, ROUND_HALF_UP)


def to_decimal(value, name: str, limit: Decimal = MAX_AMOUNT) -> Decimal:
    """Coerce a money or rate input to a finite Decimal no wider than ``limit``."""
    if isinstance(value, bool):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}")
    try:
        # str() keeps floats at their shortest repr instead of binary noise
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidParameterError(f"{name} must be a number, got {value!r}") from None
    if not amount.is_finite():
        raise InvalidParameterError(f"{name} must be finite, got {value!r}")
    if abs(amount) > limit:
        raise InvalidParameterError(f"{name} must not exceed {limit} in magnitude, got {value!r}")
    return amount


def to_frequency(value) -> PaymentFrequency:
    if isinstance(value, PaymentFrequency):
        return value
    try:
        return PaymentFrequency(value)
    except ValueError:
        raise InvalidParameterError(f"Unknown payment frequency: {value!r}") from None


def to_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError:
            pass
    raise InvalidParameterError(f"Malformed start date: {value!r}")


def check_loan_terms(principal, annual_rate, term_months) -> tuple[Decimal, Decimal, int]:
    principal = to_decimal(principal, "principal")
    annual_rate = to_decimal(annual_rate, "annual_rate", MAX_RATE)
    if principal <= 0:
        raise InvalidParameterError(f"principal must be positive, got {principal}")
    if annual_rate < 0:
        raise InvalidParameterError(f"annual_rate must not be negative, got {annual_rate}")
    if isinstance(term_months, bool) or not isinstance(term_months, int):
        raise InvalidParameterError(f"term_months must be an integer, got {term_months!r}")
    if term_months <= 0:
        raise InvalidParameterError(f"term_months must be positive, got {term_months}")
    if term_months > MAX_TERM_MONTHS:
        raise InvalidParameterError(f"term_months must not exceed {MAX_TERM_MONTHS}, got {term_months}")
    return principal, annual_rate, term_months


def periods_per_year(frequency: PaymentFrequency | str) -> int:
    return to_frequency(frequency).periods_per_year


def period_count(term_months: int, frequency: PaymentFrequency | str) -> int:
    """Number of payments needed to cover ``term_months`` at ``frequency``.

    Partial periods round up, so a 10-month loan paid quarterly has 4 payments.
    """
    frequency = to_frequency(frequency)
    if frequency is PaymentFrequency.MONTHLY:
        return term_months
    # ceil(term_months * ppy / 12) in integer arithmetic
    return -(-term_months * frequency.periods_per_year // 12)


def payment_date(start_date: date, frequency: PaymentFrequency | str, number: int) -> date:
    """Due date of payment ``number`` (1-based).

    Always stepped from the start date, so month-end dates clamp without
    drifting: Jan 31, Feb 28, Mar 31. Advancing from the previous due date
    instead would give Mar 28; this anchoring departs from that on purpose.
    """
    return start_date + to_frequency(frequency).step * (number - 1)


def monthly_payment(principal: Decimal, annual_rate: Decimal, term_months: int) -> Decimal:
    """Calculate the fixed monthly payment that retires the loan in ``term_months``."""
    principal, annual_rate, term_months = check_loan_terms(principal, annual_rate, term_months)
    if annual_rate == 0:
        return round_money(principal / term_months)

    with localcontext() as ctx:
        ctx.prec = FACTOR_PRECISION
        r = annual_rate / 12
        # M = P * [r(1+r)^n] / [(1+r)^n - 1]
        factor = (1 + r) ** term_months
        if factor == 1:
            # Rate too small to register, interest rounds to nothing
            payment = principal / term_months
        else:
            payment = principal * (r * factor) / (factor - 1)
    return round_money(payment)


def payment_amount(
    principal: Decimal,
    annual_rate: Decimal,
    term_months: int,
    frequency: PaymentFrequency | str,
) -> Decimal:
    """Regular payment for ``frequency``, converted from the monthly payment.

    This is a pro-rata conversion (weekly = monthly * 12 / 52), not a second
    annuity solve at the periodic rate.
    """
    frequency = to_frequency(frequency)
    monthly = monthly_payment(principal, annual_rate, term_months)

    if frequency is PaymentFrequency.MONTHLY:
        return monthly
    if frequency is PaymentFrequency.QUARTERLY:
        return round_money(monthly * 3)
    return round_money(monthly * 12 / frequency.periods_per_year)


def rounding_tolerance(periods: int) -> Decimal:
    """Largest unpaid balance still put down to cent rounding.

    One cent per scheduled period: each period rounds its interest and
    principal to the cent, and the regular payment itself is rounded once.
    The bound therefore grows with the term, so a 360-payment schedule may end
    up to 3.60 short (a 30-year 400000 loan at 7% ends 0.31 short) without
    being flagged. Shortfalls from under-sized payments, such as quarterly
    payments converted from a monthly amount, exceed it quickly.
    """
    return TWO_PLACES * periods


def _split(balance: Decimal, period_rate: Decimal, payment: Decimal) -> tuple[Decimal, Decimal]:
    interest = round_money(balance * period_rate)
    principal_paid = round_money(payment - interest)

    # Final payment adjustment
    if principal_paid > balance:
        principal_paid = balance
    return principal_paid, interest


def amortization_schedule(
    principal: Decimal,
    annual_rate: Decimal,
    term_months: int,
    start_date: date,
    frequency: PaymentFrequency | str = PaymentFrequency.MONTHLY,
    strict: bool = False,
) -> AmortizationSchedule:
    """Generate the full payment schedule for a fixed-rate loan.

    Args:
        principal: Loan amount
        annual_rate: Annual interest rate (e.g. 0.06 for 6%)
        term_months: Loan term in months
        start_date: Due date of the first payment
        frequency: Payment cadence
        strict: Raise DegenerateScheduleError instead of flagging the
            schedule when it fails to retire the loan

    The schedule stops early once the balance reaches zero. A schedule is
    flagged ``degenerate`` when any payment makes no principal progress or
    when more than ``rounding_tolerance(periods)`` is left unpaid at the end.
    """
    principal, annual_rate, term_months = check_loan_terms(principal, annual_rate, term_months)
    start_date = to_date(start_date)
    frequency = to_frequency(frequency)

    pmt = payment_amount(principal, annual_rate, term_months, frequency)
    period_rate = annual_rate / frequency.periods_per_year
    n_periods = period_count(term_months, frequency)

    entries: list[AmortizationEntry] = []
    balance = principal
    total_interest = ZERO
    total_principal = ZERO
    stalled = False

    for period in range(1, n_periods + 1):
        if balance <= 0:
            break
        principal_paid, interest = _split(balance, period_rate, pmt)
        if principal_paid <= 0:
            stalled = True

        balance = max(ZERO, round_money(balance - principal_paid))
        total_interest += interest
        total_principal += principal_paid

        entries.append(AmortizationEntry(
            payment_number=period,
            payment_date=payment_date(start_date, frequency, period),
            payment_amount=principal_paid + interest,
            principal=principal_paid,
            interest=interest,
            remaining_balance=balance,
        ))

    degenerate = stalled or balance > rounding_tolerance(n_periods)
    schedule = AmortizationSchedule(
        entries=entries,
        frequency=frequency,
        payment_amount=pmt,
        periods=n_periods,
        total_interest=total_interest,
        total_principal=total_principal,
        unpaid_balance=balance,
        degenerate=degenerate,
    )

    logger.debug(
        "Schedule for %s @ %s over %d months (%s): %d payments of %s, %s unpaid",
        principal, annual_rate, term_months, frequency.value, len(entries), pmt, balance,
    )
    if degenerate:
        message = (
            f"{frequency.label} payment of {pmt} does not retire {principal} at {annual_rate} "
            f"within {term_months} months; {balance} left unpaid"
        )
        if strict:
            raise DegenerateScheduleError(message, unpaid_balance=balance)
        logger.warning(message)

    return schedule


def next_payment(
    remaining_balance: Decimal,
    annual_rate: Decimal,
    frequency: PaymentFrequency | str,
    regular_payment: Decimal,
) -> PaymentBreakdown:
    """Split the next regular payment against an externally tracked balance.

    The balance comes from the caller (normally the payment ledger), not from
    the generated schedule, so prepayments and missed payments are honoured.
    """
    remaining_balance = to_decimal(remaining_balance, "remaining_balance")
    annual_rate = to_decimal(annual_rate, "annual_rate", MAX_RATE)
    regular_payment = to_decimal(regular_payment, "regular_payment")
    frequency = to_frequency(frequency)
    if remaining_balance < 0:
        raise InvalidParameterError(f"remaining_balance must not be negative, got {remaining_balance}")
    if annual_rate < 0:
        raise InvalidParameterError(f"annual_rate must not be negative, got {annual_rate}")
    if regular_payment < 0:
        raise InvalidParameterError(f"regular_payment must not be negative, got {regular_payment}")

    principal_paid, interest = _split(
        remaining_balance, annual_rate / frequency.periods_per_year, regular_payment
    )
    if principal_paid < 0:
        logger.warning(
            "Payment of %s does not cover %s interest on %s",
            regular_payment, interest, remaining_balance,
        )

    return PaymentBreakdown(
        total=round_money(principal_paid + interest),
        principal=principal_paid,
        interest=interest,
    )


def yearly_summary(schedule: AmortizationSchedule) -> list[YearlyLoanSummary]:
    """Aggregate an amortization schedule by loan year."""
    per_year = schedule.frequency.periods_per_year
    yearly: list[YearlyLoanSummary] = []
    year_principal = ZERO
    year_interest = ZERO

    for e in schedule.entries:
        year_principal += e.principal
        year_interest += e.interest

        if e.payment_number % per_year == 0 or e is schedule.entries[-1]:
            yearly.append(YearlyLoanSummary(
                year=(e.payment_number - 1) // per_year + 1,
                principal=year_principal,
                interest=year_interest,
                total_paid=year_principal + year_interest,
                ending_balance=e.remaining_balance,
            ))
            year_principal = ZERO
            year_interest = ZERO

    return yearly
