from models.application import LoanApplication, UploadedDocument, ValidationAction
from models.user import LoanLimitTier, User
from models.verification import BankStatementRecord, KYCRecord, PostDisbursalProgress

__all__ = [
    "BankStatementRecord",
    "KYCRecord",
    "LoanApplication",
    "LoanLimitTier",
    "PostDisbursalProgress",
    "UploadedDocument",
    "User",
    "ValidationAction",
]
