"""Shared loan fixtures.

Fixture loan: $12,000 payable, 6% annual, 12 months, paid monthly from Jan 31 2025.
"""

from datetime import date
from decimal import Decimal

import pytest

from tallybook.models.loan import Loan, LoanPayment, LoanType, PaymentFrequency


@pytest.fixture
def equipment_loan() -> Loan:
    return Loan(
        id="loan-001",
        name="Equipment loan",
        type=LoanType.PAYABLE,
        principal_amount=Decimal("12000"),
        interest_rate=Decimal("0.06"),
        term_months=12,
        start_date=date(2025, 1, 31),
        payment_frequency=PaymentFrequency.MONTHLY,
        payment_amount=Decimal("1032.80"),
        remaining_balance=Decimal("12000"),
    )


@pytest.fixture
def shareholder_loan() -> Loan:
    """Receivable with no payment schedule."""
    return Loan(
        id="loan-002",
        name="Shareholder advance",
        type=LoanType.RECEIVABLE,
        principal_amount=Decimal("1000"),
        interest_rate=Decimal("0"),
        term_months=6,
        start_date=date(2025, 1, 1),
        remaining_balance=Decimal("1000"),
    )


@pytest.fixture
def first_two_payments() -> list[LoanPayment]:
    """First two scheduled payments on the equipment loan, newest first."""
    return [
        LoanPayment(
            id="pay-002",
            loan_id="loan-001",
            payment_date=date(2025, 2, 28),
            total_amount=Decimal("1032.80"),
            principal_amount=Decimal("977.66"),
            interest_amount=Decimal("55.14"),
        ),
        LoanPayment(
            id="pay-001",
            loan_id="loan-001",
            payment_date=date(2025, 1, 31),
            total_amount=Decimal("1032.80"),
            principal_amount=Decimal("972.80"),
            interest_amount=Decimal("60.00"),
        ),
    ]
