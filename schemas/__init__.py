from schemas.application import ApplicationCreate, ApplicationStatus, UserCreate
from schemas.eligibility import (
    EligibilityDecision,
    EligibilityProfileSchema,
    GraduationResult,
    GraduationUpdate,
    HoldDecision,
    HoldStatusSchema,
    IncomeTierSchema,
)
from schemas.gate import (
    ApplicationSnapshot,
    BankStatementSnapshot,
    DocumentRequestStatus,
    GateDecisionSchema,
    GateSnapshot,
    KYCSnapshot,
    PostDisbursalSnapshot,
    UploadedDocumentSnapshot,
    ValidationActionSnapshot,
)
from schemas.terms import (
    EmiIllustrationRequest,
    EmiIllustrationSchema,
    ExtensionEligibilitySchema,
    ExtensionLoanSchema,
    ExtensionQuoteSchema,
    LoanTermsSchema,
    PenaltySchema,
    PenaltyTierSchema,
    TermsRequest,
)

__all__ = [
    "ApplicationCreate",
    "ApplicationStatus",
    "UserCreate",
    "EligibilityDecision",
    "EligibilityProfileSchema",
    "GraduationResult",
    "GraduationUpdate",
    "HoldDecision",
    "HoldStatusSchema",
    "IncomeTierSchema",
    "ApplicationSnapshot",
    "BankStatementSnapshot",
    "DocumentRequestStatus",
    "GateDecisionSchema",
    "GateSnapshot",
    "KYCSnapshot",
    "PostDisbursalSnapshot",
    "UploadedDocumentSnapshot",
    "ValidationActionSnapshot",
    "EmiIllustrationRequest",
    "EmiIllustrationSchema",
    "ExtensionEligibilitySchema",
    "ExtensionLoanSchema",
    "ExtensionQuoteSchema",
    "LoanTermsSchema",
    "PenaltySchema",
    "PenaltyTierSchema",
    "TermsRequest",
]
