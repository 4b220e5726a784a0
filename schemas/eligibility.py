from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

HoldType = Literal["permanent", "temporary"]
HoldBasis = Literal["age", "income_tier", "payment_mode", "cooling_period"]
EligibilityStatus = Literal["pending", "eligible", "not_eligible"]
GraduationStatus = Literal["graduated", "not_graduated"]


class EligibilityProfileSchema(BaseModel):
    employment_type: str = Field(..., alias="employmentType")
    date_of_birth: date = Field(..., alias="dateOfBirth")
    income_range: Optional[str] = Field(None, alias="incomeRange")
    payment_mode: Optional[str] = Field(None, alias="paymentMode")
    graduation_status: Optional[GraduationStatus] = Field(None, alias="graduationStatus")

    model_config = {"populate_by_name": True}


class IncomeTierSchema(BaseModel):
    income_range: str
    tier_name: str = ""
    min_salary: Decimal = Decimal("0")
    max_salary: Optional[Decimal] = None
    loan_limit: Decimal = Decimal("0")
    hold_permanent: bool = False

    model_config = {"from_attributes": True}


class HoldDecision(BaseModel):
    hold_type: HoldType
    basis: HoldBasis
    reason: str
    hold_until: Optional[datetime] = None


class EligibilityDecision(BaseModel):
    eligible: bool
    eligibility_status: EligibilityStatus
    hold: Optional[HoldDecision] = None
    rejected: bool = False
    reason: Optional[str] = None
    loan_limit: Optional[Decimal] = None


class HoldStatusSchema(BaseModel):
    """Structured hold report rendered by the client; never an exception payload string."""

    is_on_hold: bool
    hold_type: Optional[HoldType] = None
    reason: Optional[str] = None
    hold_until: Optional[datetime] = None
    remaining_days: Optional[int] = None
    can_reapply: bool = True
    expired: bool = False


class GraduationUpdate(BaseModel):
    graduation_status: GraduationStatus = Field(..., alias="graduationStatus")
    graduation_date: Optional[date] = Field(None, alias="graduationDate")

    model_config = {"populate_by_name": True}


class GraduationResult(BaseModel):
    previous_loan_limit: Decimal
    new_loan_limit: Decimal
    changed: bool
