"""
Request and result models for the financial terms engine.
Money is carried as Decimal rounded to two places; JSON responses render it as strings.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

FeeMethod = Literal["add_to_total", "deduct_from_disbursal"]


class TermsRequest(BaseModel):
    principal: Decimal
    day_rate_percent: Decimal = Field(..., alias="dayRatePercent")
    days: int
    processing_fee_percent: Decimal = Field(Decimal("0"), alias="processingFeePercent")
    installment_count: int = Field(1, alias="installmentCount")
    fee_method: FeeMethod = Field("add_to_total", alias="feeMethod")

    model_config = {"populate_by_name": True}


class TermsCommit(BaseModel):
    """Sanctioned pricing for an application; the tenure follows from the installment count."""

    day_rate_percent: Decimal = Field(..., alias="dayRatePercent")
    processing_fee_percent: Decimal = Field(Decimal("0"), alias="processingFeePercent")
    installment_count: int = Field(1, alias="installmentCount")
    salary_day: Optional[int] = Field(None, alias="salaryDay", ge=1, le=31)
    post_service_fee: Decimal = Field(Decimal("0"), alias="postServiceFee", ge=0)

    model_config = {"populate_by_name": True}


class LoanTermsSchema(BaseModel):
    principal: Decimal
    days: int
    day_rate_percent: Decimal
    interest: Decimal
    processing_fee: Decimal
    processing_fee_gst: Decimal
    fees: Decimal
    fee_method: FeeMethod
    disbursal_amount: Decimal
    total_repayable: Decimal
    installment_count: int
    emi: Decimal
    apr: Decimal


class PenaltyTierSchema(BaseModel):
    label: str
    from_day: int
    to_day: Optional[int] = None
    days: int
    rate_percent: Decimal
    one_time: bool = False
    amount: Decimal


class PenaltySchema(BaseModel):
    """Penal charges on overdue principal, kept apart from interest."""

    overdue_principal: Decimal
    days_overdue: int
    amount: Decimal
    gst: Decimal
    total: Decimal
    tiers: list[PenaltyTierSchema] = Field(default_factory=list)


class EmiIllustrationRequest(BaseModel):
    principal: Decimal
    annual_rate_percent: Decimal = Field(..., alias="annualRatePercent")
    months: int

    model_config = {"populate_by_name": True}


class EmiIllustrationSchema(BaseModel):
    principal: Decimal
    annual_rate_percent: Decimal
    months: int
    emi: Decimal
    total_payment: Decimal
    total_interest: Decimal
    illustrative: bool = True


class ExtensionLoanSchema(BaseModel):
    """Snapshot of a processed loan as the extension calculator needs it."""

    principal: Decimal
    day_rate_percent: Decimal
    processed_on: Optional[date] = None
    due_date: Optional[date] = None
    extension_count: int = 0
    extension_status: Optional[str] = None
    post_service_fee: Decimal = Decimal("0")
    installment_count: int = 1
    salary_day: Optional[int] = None


class ExtensionEligibilitySchema(BaseModel):
    eligible: bool
    reason: Optional[str] = None
    window_start: Optional[date] = None
    window_end: Optional[date] = None
    is_within_window: bool = False


class ExtensionQuoteSchema(BaseModel):
    extension_index: int
    extension_date: date
    fee: Decimal
    gst_on_fee: Decimal
    interest_days: int
    interest_till_today: Decimal
    days_overdue: int
    penalty: Decimal
    penalty_gst: Decimal
    total_extension_payment: Decimal
    cumulative_extension_fees: Decimal
    original_due_date: date
    new_due_date: date
    extension_period_days: int
    outstanding_loan_balance: Decimal
    outstanding_loan_balance_after_extension: Decimal
