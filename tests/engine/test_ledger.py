import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from tallybook.engine.ledger import (
    cache_drift,
    derive_status,
    loan_balance,
    originate_loan,
    portfolio_summary,
    refresh_cached_totals,
    split_payment,
    suggest_payment,
)
from tallybook.errors import InvalidParameterError
from tallybook.models.loan import Loan, LoanPayment, LoanStatus, LoanType, PaymentFrequency


def _payment(principal: str, interest: str = "0", day: date = date(2025, 3, 1), loan_id="loan-002"):
    return LoanPayment(
        loan_id=loan_id,
        payment_date=day,
        total_amount=Decimal(principal) + Decimal(interest),
        principal_amount=Decimal(principal),
        interest_amount=Decimal(interest),
    )


class TestOriginateLoan:
    def test_scheduled_loan(self):
        loan = originate_loan(
            "Van", "payable", Decimal("12000"), Decimal("0.06"), 12, date(2025, 1, 31), "weekly"
        )
        assert loan.type is LoanType.PAYABLE
        assert loan.payment_frequency is PaymentFrequency.WEEKLY
        assert loan.payment_amount == Decimal("238.34")
        assert loan.remaining_balance == Decimal("12000")
        assert loan.status is LoanStatus.ACTIVE

    def test_without_frequency(self):
        loan = originate_loan(
            "Advance", LoanType.RECEIVABLE, Decimal("500"), Decimal("0"), 3, date(2025, 1, 1),
            contact_id="contact-9",
        )
        assert loan.payment_amount is None
        assert loan.contact_id == "contact-9"

    def test_rejects_bad_terms(self):
        with pytest.raises(InvalidParameterError):
            originate_loan("Bad", "payable", Decimal("0"), Decimal("0.05"), 12, date(2025, 1, 1))
        with pytest.raises(InvalidParameterError):
            originate_loan("Bad", "lease", Decimal("100"), Decimal("0.05"), 12, date(2025, 1, 1))


class TestLoanBalance:
    def test_no_payments(self, equipment_loan):
        balance = loan_balance(equipment_loan, [])
        assert balance.remaining_balance == Decimal("12000")
        assert balance.total_paid_principal == 0
        assert balance.status is LoanStatus.ACTIVE
        assert balance.percent_repaid == Decimal("0.0")

    def test_payments_applied_oldest_first(self, equipment_loan, first_two_payments):
        balance = loan_balance(equipment_loan, first_two_payments)
        assert [p.payment.id for p in balance.payments] == ["pay-001", "pay-002"]
        assert [p.balance_after for p in balance.payments] == [Decimal("11027.20"), Decimal("10049.54")]
        assert balance.remaining_balance == Decimal("10049.54")
        assert balance.total_paid_principal == Decimal("1950.46")
        assert balance.total_paid_interest == Decimal("115.14")

    def test_percent_repaid(self, shareholder_loan):
        balance = loan_balance(shareholder_loan, [_payment("250"), _payment("250")])
        assert balance.percent_repaid == Decimal("50.0")

    def test_percent_repaid_rounds_half_up(self):
        loan = Loan(
            id="loan-004",
            name="Petty loan",
            type=LoanType.PAYABLE,
            principal_amount=Decimal("800"),
            interest_rate=Decimal("0"),
            term_months=12,
            start_date=date(2025, 1, 1),
        )
        # 0.40 of 800 is exactly 0.05%
        balance = loan_balance(loan, [_payment("0.40", loan_id="loan-004")])
        assert balance.percent_repaid == Decimal("0.1")

    def test_overpayment_clamps_to_zero(self, shareholder_loan):
        balance = loan_balance(shareholder_loan, [_payment("700"), _payment("400", day=date(2025, 4, 1))])
        assert balance.remaining_balance == 0
        assert balance.payments[-1].balance_after == 0
        assert balance.status is LoanStatus.PAID_OFF
        assert balance.percent_repaid == Decimal("100.0")
        assert not balance.is_active

    def test_defaulted_is_preserved(self, shareholder_loan):
        loan = replace(shareholder_loan, status=LoanStatus.DEFAULTED)
        assert loan_balance(loan, [_payment("100")]).status is LoanStatus.DEFAULTED

    def test_foreign_payment_rejected(self, equipment_loan):
        with pytest.raises(InvalidParameterError):
            loan_balance(equipment_loan, [_payment("100", loan_id="loan-999")])


class TestCachedTotals:
    def test_refresh(self, equipment_loan, first_two_payments):
        refreshed = refresh_cached_totals(equipment_loan, first_two_payments)
        assert refreshed.remaining_balance == Decimal("10049.54")
        assert refreshed.total_paid_interest == Decimal("115.14")
        assert equipment_loan.remaining_balance == Decimal("12000")

    def test_refresh_marks_paid_off(self, shareholder_loan):
        refreshed = refresh_cached_totals(shareholder_loan, [_payment("1000")])
        assert refreshed.status is LoanStatus.PAID_OFF

    def test_drift_detected(self, equipment_loan, first_two_payments, caplog):
        balance = loan_balance(equipment_loan, first_two_payments)
        with caplog.at_level(logging.WARNING):
            drift = cache_drift(equipment_loan, balance)
        assert drift == Decimal("1950.46")
        assert "differs from ledger balance" in caplog.text

    def test_no_drift_after_refresh(self, equipment_loan, first_two_payments):
        refreshed = refresh_cached_totals(equipment_loan, first_two_payments)
        assert cache_drift(refreshed, loan_balance(refreshed, first_two_payments)) == 0


class TestDeriveStatus:
    def test_transitions(self):
        assert derive_status(Decimal("0.01")) is LoanStatus.ACTIVE
        assert derive_status(Decimal("0")) is LoanStatus.PAID_OFF
        assert derive_status(Decimal("0"), LoanStatus.DEFAULTED) is LoanStatus.DEFAULTED


class TestPaymentEntry:
    def test_suggest_next_regular_payment(self, equipment_loan):
        suggestion = suggest_payment(equipment_loan, Decimal("11027.20"))
        assert suggestion.interest == Decimal("55.14")
        assert suggestion.principal == Decimal("977.66")
        assert suggestion.total == Decimal("1032.80")

    def test_suggest_payoff_without_schedule(self, shareholder_loan):
        suggestion = suggest_payment(shareholder_loan, Decimal("640"))
        assert suggestion.total == Decimal("640")
        assert suggestion.principal == Decimal("640")
        assert suggestion.interest == 0

    def test_split_interest_first(self):
        result = split_payment(Decimal("300"), Decimal("10000"), Decimal("0.06"))
        assert result.interest == Decimal("50.00")
        assert result.principal == Decimal("250.00")

    def test_split_small_total_is_all_interest(self):
        result = split_payment(Decimal("20"), Decimal("10000"), Decimal("0.06"))
        assert result.interest == Decimal("20")
        assert result.principal == Decimal("0.00")

    def test_split_uses_frequency(self):
        result = split_payment(Decimal("300"), Decimal("10000"), Decimal("0.06"), "quarterly")
        assert result.interest == Decimal("150.00")

    def test_split_rejects_non_positive_total(self):
        with pytest.raises(InvalidParameterError):
            split_payment(Decimal("0"), Decimal("10000"), Decimal("0.06"))


class TestPortfolioSummary:
    def test_totals_by_direction(self, equipment_loan, shareholder_loan, first_two_payments):
        paid_loan = replace(shareholder_loan, id="loan-003", type=LoanType.PAYABLE)
        summary = portfolio_summary([
            (equipment_loan, loan_balance(equipment_loan, first_two_payments)),
            (shareholder_loan, loan_balance(shareholder_loan, [_payment("400")])),
            (paid_loan, loan_balance(paid_loan, [_payment("1000", loan_id="loan-003")])),
        ])
        assert summary.total_payable == Decimal("10049.54")
        assert summary.total_receivable == Decimal("600")
        assert summary.active_payable == 1
        assert summary.active_receivable == 1
        assert summary.paid_off == 1
