from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field

ApplicationStatus = Literal[
    "submitted",
    "under_review",
    "qa_verification",
    "follow_up",
    "bank_details_provided",
    "ready_for_disbursement",
    "ready_to_repeat_disbursal",
    "disbursal",
    "repeat_disbursal",
    "approved",
    "disbursed",
    "cleared",
    "cancelled",
    "rejected",
]


class UserCreate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    employment_type: Optional[str] = Field(None, alias="employmentType")
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")

    model_config = {"populate_by_name": True}


class ApplicationCreate(BaseModel):
    principal: Decimal = Field(..., alias="loanAmount", gt=0)
    purpose: Optional[str] = Field(None, alias="loanPurpose", max_length=255)

    model_config = {"populate_by_name": True}
