"""SQLAlchemy ORM models for the loans and loan_payments tables.

Rows are converted to engine inputs with ``to_loan`` / ``to_payment``; the
cached balance columns are written back with ``apply_balance``.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String,
    Integer,
    Numeric,
    Date,
    DateTime,
    ForeignKey,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column

from tallybook.models.loan import Loan, LoanPayment, LoanStatus, LoanType, PaymentFrequency
from tallybook.models.results import LoanBalance


class Base(DeclarativeBase):
    pass


class LoanRecord(Base):
    __tablename__ = "loans"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True)
    contact_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), onupdate=func.now())

    type: Mapped[str] = mapped_column(String(20))  # "payable" / "receivable"
    name: Mapped[str] = mapped_column(String(255))
    principal_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    interest_rate: Mapped[Decimal] = mapped_column(Numeric(7, 6))  # Annual, 0.05 = 5%
    term_months: Mapped[int] = mapped_column(Integer)
    payment_frequency: Mapped[str | None] = mapped_column(String(20), nullable=True)
    start_date: Mapped[date] = mapped_column(Date)
    # Regular payment for payment_frequency, despite the column name
    monthly_payment: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    # Cache of the payment ledger
    remaining_balance: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    total_paid_principal: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    total_paid_interest: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    status: Mapped[str] = mapped_column(String(20), default="active")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    payments: Mapped[list["LoanPaymentRecord"]] = relationship(back_populates="loan")


class LoanPaymentRecord(Base):
    __tablename__ = "loan_payments"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    loan_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("loans.id"), index=True)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), index=True)
    account_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True))
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    payment_date: Mapped[date] = mapped_column(Date)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    principal_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    interest_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    loan: Mapped["LoanRecord"] = relationship(back_populates="payments")


def _str_or_none(value) -> str | None:
    return str(value) if value is not None else None


def to_loan(record: LoanRecord) -> Loan:
    return Loan(
        id=str(record.id),
        contact_id=_str_or_none(record.contact_id),
        name=record.name,
        type=LoanType(record.type),
        principal_amount=Decimal(record.principal_amount),
        interest_rate=Decimal(record.interest_rate),
        term_months=record.term_months,
        start_date=record.start_date,
        payment_frequency=(
            PaymentFrequency(record.payment_frequency) if record.payment_frequency else None
        ),
        payment_amount=(
            Decimal(record.monthly_payment) if record.monthly_payment is not None else None
        ),
        remaining_balance=Decimal(record.remaining_balance),
        total_paid_principal=Decimal(record.total_paid_principal or 0),
        total_paid_interest=Decimal(record.total_paid_interest or 0),
        status=LoanStatus(record.status or "active"),
        notes=record.notes,
    )


def to_payment(record: LoanPaymentRecord) -> LoanPayment:
    return LoanPayment(
        id=str(record.id),
        loan_id=str(record.loan_id),
        account_id=_str_or_none(record.account_id),
        payment_date=record.payment_date,
        total_amount=Decimal(record.total_amount),
        principal_amount=Decimal(record.principal_amount),
        interest_amount=Decimal(record.interest_amount),
        notes=record.notes,
    )


def apply_balance(record: LoanRecord, balance: LoanBalance) -> LoanRecord:
    """Copy ledger-derived totals onto ``record``; the caller commits."""
    record.remaining_balance = balance.remaining_balance
    record.total_paid_principal = balance.total_paid_principal
    record.total_paid_interest = balance.total_paid_interest
    record.status = balance.status.value
    return record
