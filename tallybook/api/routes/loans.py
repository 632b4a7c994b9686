"""Loan calculation routes."""

from dataclasses import asdict, replace

from fastapi import APIRouter, HTTPException

from tallybook.api.schemas import (
    LoanTermsRequest,
    ScheduleRequest,
    NextPaymentRequest,
    SplitPaymentRequest,
    LoanBalanceRequest,
    PaymentAmountResponse,
    PaymentBreakdownResponse,
    AmortizationEntryResponse,
    YearlyLoanSummaryResponse,
    ScheduleResponse,
    PaymentWithBalanceResponse,
    LoanBalanceResponse,
)
from tallybook.config import settings
from tallybook.engine.amortization import (
    amortization_schedule,
    monthly_payment,
    next_payment,
    payment_amount,
    yearly_summary,
)
from tallybook.engine.ledger import cache_drift, loan_balance, split_payment, suggest_payment
from tallybook.errors import DegenerateScheduleError
from tallybook.models.loan import Loan, LoanPayment

router = APIRouter(prefix="/api/v1/loans", tags=["loans"])


@router.post("/payment", response_model=PaymentAmountResponse)
async def payment(req: LoanTermsRequest):
    """Regular payment for a loan at the requested frequency."""
    try:
        monthly = monthly_payment(req.principal, req.annual_rate, req.term_months)
        amount = payment_amount(req.principal, req.annual_rate, req.term_months, req.frequency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return PaymentAmountResponse(
        frequency=req.frequency,
        frequency_label=req.frequency.label,
        monthly_payment=monthly,
        payment_amount=amount,
        currency=settings.currency,
    )


@router.post("/schedule", response_model=ScheduleResponse)
async def schedule(req: ScheduleRequest):
    """Full amortization schedule."""
    try:
        result = amortization_schedule(
            req.principal,
            req.annual_rate,
            req.term_months,
            req.start_date,
            req.frequency,
            strict=settings.strict_schedules,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DegenerateScheduleError as e:
        raise HTTPException(status_code=422, detail=str(e))

    yearly = None
    if req.include_yearly:
        yearly = [YearlyLoanSummaryResponse(**asdict(y)) for y in yearly_summary(result)]

    return ScheduleResponse(
        frequency=result.frequency,
        payment_amount=result.payment_amount,
        periods=result.periods,
        total_interest=result.total_interest,
        total_principal=result.total_principal,
        total_paid=result.total_paid,
        unpaid_balance=result.unpaid_balance,
        degenerate=result.degenerate,
        currency=settings.currency,
        entries=[AmortizationEntryResponse(**asdict(e)) for e in result.entries],
        yearly=yearly,
    )


@router.post("/next-payment", response_model=PaymentBreakdownResponse)
async def next_payment_route(req: NextPaymentRequest):
    """Split the next regular payment against the current balance."""
    try:
        result = next_payment(
            req.remaining_balance, req.annual_rate, req.frequency, req.regular_payment
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PaymentBreakdownResponse(**asdict(result))


@router.post("/split", response_model=PaymentBreakdownResponse)
async def split(req: SplitPaymentRequest):
    """Split a user-entered payment total into interest and principal."""
    try:
        result = split_payment(req.total, req.remaining_balance, req.annual_rate, req.frequency)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PaymentBreakdownResponse(**asdict(result))


@router.post("/balance", response_model=LoanBalanceResponse)
async def balance(req: LoanBalanceRequest):
    """Remaining balance and totals derived from the loan's payment ledger."""
    loan = Loan(
        id=req.id,
        name=req.name,
        type=req.type,
        principal_amount=req.principal_amount,
        interest_rate=req.interest_rate,
        term_months=req.term_months,
        start_date=req.start_date,
        payment_frequency=req.payment_frequency,
        payment_amount=req.payment_amount,
        status=req.status,
    )
    payments = [
        LoanPayment(
            loan_id=req.id,
            id=p.id,
            account_id=p.account_id,
            payment_date=p.payment_date,
            total_amount=p.total_amount,
            principal_amount=p.principal_amount,
            interest_amount=p.interest_amount,
            notes=p.notes,
        )
        for p in req.payments
    ]

    try:
        result = loan_balance(loan, payments)
        suggested = None
        if result.remaining_balance > 0:
            suggested = PaymentBreakdownResponse(
                **asdict(suggest_payment(loan, result.remaining_balance))
            )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    drift = None
    if req.remaining_balance is not None:
        drift = cache_drift(replace(loan, remaining_balance=req.remaining_balance), result)

    return LoanBalanceResponse(
        loan_id=result.loan_id,
        remaining_balance=result.remaining_balance,
        total_paid_principal=result.total_paid_principal,
        total_paid_interest=result.total_paid_interest,
        status=result.status,
        percent_repaid=result.percent_repaid,
        cache_drift=drift,
        suggested_payment=suggested,
        payments=[
            PaymentWithBalanceResponse(
                id=p.payment.id,
                payment_date=p.payment.payment_date,
                total_amount=p.payment.total_amount,
                principal_amount=p.payment.principal_amount,
                interest_amount=p.payment.interest_amount,
                balance_after=p.balance_after,
            )
            for p in reversed(result.payments)
        ],
    )
