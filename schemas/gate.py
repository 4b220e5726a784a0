from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class ApplicationSnapshot(BaseModel):
    id: str
    status: str
    current_step: Optional[str] = None
    created_at: Optional[datetime] = None


class KYCSnapshot(BaseModel):
    kyc_status: str = "pending"
    rekyc_required: bool = False


class PostDisbursalSnapshot(BaseModel):
    current_step: int = 0
    selfie_captured: bool = False
    selfie_verified: bool = False
    agreement_signed: bool = False


class BankStatementSnapshot(BaseModel):
    status: str
    verification_status: str
    user_status: Optional[str] = None
    loan_application_id: Optional[str] = None


class ValidationActionSnapshot(BaseModel):
    id: str
    loan_application_id: str
    action_type: str
    documents: list[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class UploadedDocumentSnapshot(BaseModel):
    name: str
    status: str = "pending"


class DocumentRequestStatus(BaseModel):
    application_id: str
    requested: list[str] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)

    @property
    def pending(self) -> bool:
        return bool(self.missing)


class GateSnapshot(BaseModel):
    """
    Everything the classifier reads, fetched fresh for one page load.
    A name in `unavailable` marks a collaborator fetch that failed; rules reading it
    fall back to their failure policy.
    """

    user_id: str
    applications: list[ApplicationSnapshot] = Field(default_factory=list)
    kyc: Optional[KYCSnapshot] = None
    post_disbursal: dict[str, PostDisbursalSnapshot] = Field(default_factory=dict)
    bank_statement: Optional[BankStatementSnapshot] = None
    document_requests: list[DocumentRequestStatus] = Field(default_factory=list)
    unavailable: set[str] = Field(default_factory=set)


class GateDecisionSchema(BaseModel):
    action: Literal["allow", "redirect"]
    path: str
    target: Optional[str] = None
    step: str = "none"
    application_id: Optional[str] = None
    skipped_rules: list[str] = Field(default_factory=list)
    cached: bool = False
