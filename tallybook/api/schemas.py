"""Pydantic schemas for API request/response models."""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from tallybook.models.loan import LoanStatus, LoanType, PaymentFrequency


# ---- Request schemas ----

class LoanTermsRequest(BaseModel):
    principal: Decimal = Field(..., description="Amount borrowed or lent")
    annual_rate: Decimal = Field(..., description="Annual rate as a fraction, 0.05 = 5%")
    term_months: int
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY


class ScheduleRequest(LoanTermsRequest):
    start_date: date
    include_yearly: bool = False


class NextPaymentRequest(BaseModel):
    remaining_balance: Decimal
    annual_rate: Decimal
    frequency: PaymentFrequency
    regular_payment: Decimal


class SplitPaymentRequest(BaseModel):
    total: Decimal
    remaining_balance: Decimal
    annual_rate: Decimal
    frequency: PaymentFrequency | None = None


class LoanPaymentIn(BaseModel):
    id: str | None = None
    payment_date: date
    total_amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    account_id: str | None = None
    notes: str | None = None


class LoanBalanceRequest(BaseModel):
    """A loan as stored plus its recorded payments."""
    id: str = "loan"
    name: str = ""
    type: LoanType = LoanType.PAYABLE
    principal_amount: Decimal
    interest_rate: Decimal
    term_months: int
    start_date: date
    payment_frequency: PaymentFrequency | None = None
    payment_amount: Decimal | None = None
    remaining_balance: Decimal | None = None  # Stored cache, checked for drift
    status: LoanStatus = LoanStatus.ACTIVE
    payments: list[LoanPaymentIn] = []


# ---- Response schemas ----

class PaymentAmountResponse(BaseModel):
    frequency: PaymentFrequency
    frequency_label: str
    monthly_payment: Decimal
    payment_amount: Decimal
    currency: str


class PaymentBreakdownResponse(BaseModel):
    total: Decimal
    principal: Decimal
    interest: Decimal


class AmortizationEntryResponse(BaseModel):
    payment_number: int
    payment_date: date
    payment_amount: Decimal
    principal: Decimal
    interest: Decimal
    remaining_balance: Decimal


class YearlyLoanSummaryResponse(BaseModel):
    year: int
    principal: Decimal
    interest: Decimal
    total_paid: Decimal
    ending_balance: Decimal


class ScheduleResponse(BaseModel):
    frequency: PaymentFrequency
    payment_amount: Decimal
    periods: int
    total_interest: Decimal
    total_principal: Decimal
    total_paid: Decimal
    unpaid_balance: Decimal
    degenerate: bool
    currency: str
    entries: list[AmortizationEntryResponse]
    yearly: list[YearlyLoanSummaryResponse] | None = None


class PaymentWithBalanceResponse(BaseModel):
    id: str | None
    payment_date: date
    total_amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    balance_after: Decimal


class LoanBalanceResponse(BaseModel):
    loan_id: str | None
    remaining_balance: Decimal
    total_paid_principal: Decimal
    total_paid_interest: Decimal
    status: LoanStatus
    percent_repaid: Decimal
    cache_drift: Decimal | None = None
    suggested_payment: PaymentBreakdownResponse | None = None
    payments: list[PaymentWithBalanceResponse]  # Newest first
