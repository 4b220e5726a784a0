"""
Collaborator contract consumed by the navigation gate, plus the SQLAlchemy-backed implementation.

Every call returns a CollaboratorResult instead of raising. Reads use populate_existing
so a page load always sees the current row, never an identity-map copy.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Generic, Optional, Protocol, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from models import (
    BankStatementRecord,
    KYCRecord,
    LoanApplication,
    PostDisbursalProgress,
    UploadedDocument,
    ValidationAction,
)
from schemas.gate import (
    ApplicationSnapshot,
    BankStatementSnapshot,
    KYCSnapshot,
    PostDisbursalSnapshot,
    UploadedDocumentSnapshot,
    ValidationActionSnapshot,
)
from services import applications
from services.documents import requested_documents
from services.errors import BusinessReason, BusinessRuleError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CollaboratorResult(Generic[T]):
    ok: bool
    data: Optional[T] = None
    reason: Optional[BusinessReason] = None
    message: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success(cls, data: T) -> "CollaboratorResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(
        cls, reason: BusinessReason, message: str, details: dict[str, Any] | None = None
    ) -> "CollaboratorResult[T]":
        return cls(ok=False, reason=reason, message=message, details=details or {})


class LoanCollaborators(Protocol):
    async def get_loan_applications(self, user_id: str) -> CollaboratorResult[list[ApplicationSnapshot]]: ...

    async def get_validation_history(self, application_id: str) -> CollaboratorResult[list[ValidationActionSnapshot]]: ...

    async def get_uploaded_documents(self, application_id: str) -> CollaboratorResult[list[UploadedDocumentSnapshot]]: ...

    async def get_kyc_status(self, application_id: str) -> CollaboratorResult[Optional[KYCSnapshot]]: ...

    async def get_post_disbursal_progress(self, application_id: str) -> CollaboratorResult[Optional[PostDisbursalSnapshot]]: ...

    async def get_bank_statement_status(self, user_id: str) -> CollaboratorResult[Optional[BankStatementSnapshot]]: ...

    async def submit_loan_application(
        self, user_id: str, principal: Decimal, purpose: Optional[str]
    ) -> CollaboratorResult[ApplicationSnapshot]: ...

    async def update_graduation_status(
        self, user_id: str, graduation_status: str, graduation_date: Optional[date]
    ) -> CollaboratorResult[dict[str, Any]]: ...


def collaborator_call(func):
    """Wrap a collaborator coroutine so business errors and database errors become failed results."""

    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return CollaboratorResult.success(await func(self, *args, **kwargs))
        except BusinessRuleError as exc:
            return CollaboratorResult.failure(exc.reason, exc.message, exc.details)
        except SQLAlchemyError as exc:
            logger.warning("Collaborator call %s failed: %s", func.__name__, exc)
            return CollaboratorResult.failure(
                BusinessReason.COLLABORATOR_UNAVAILABLE,
                "Service temporarily unavailable",
                {"operation": func.__name__},
            )

    return wrapper


class SqlCollaborators:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _scalars(self, stmt):
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().all()

    async def _scalar(self, stmt):
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalars().first()

    @collaborator_call
    async def get_loan_applications(self, user_id: str) -> list[ApplicationSnapshot]:
        rows = await self._scalars(
            select(LoanApplication)
            .where(LoanApplication.user_id == user_id)
            .order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
        )
        return [
            ApplicationSnapshot(id=a.id, status=a.status, current_step=a.current_step, created_at=a.created_at)
            for a in rows
        ]

    @collaborator_call
    async def get_validation_history(self, application_id: str) -> list[ValidationActionSnapshot]:
        rows = await self._scalars(
            select(ValidationAction)
            .where(ValidationAction.loan_application_id == application_id)
            .order_by(ValidationAction.created_at.desc(), ValidationAction.id.desc())
        )
        return [
            ValidationActionSnapshot(
                id=v.id,
                loan_application_id=v.loan_application_id,
                action_type=v.action_type,
                documents=requested_documents(v.action_details),
                created_at=v.created_at,
            )
            for v in rows
        ]

    @collaborator_call
    async def get_uploaded_documents(self, application_id: str) -> list[UploadedDocumentSnapshot]:
        rows = await self._scalars(
            select(UploadedDocument).where(UploadedDocument.loan_application_id == application_id)
        )
        return [UploadedDocumentSnapshot(name=d.document_name, status=d.upload_status) for d in rows]

    @collaborator_call
    async def get_kyc_status(self, application_id: str) -> Optional[KYCSnapshot]:
        row = await self._scalar(select(KYCRecord).where(KYCRecord.loan_application_id == application_id))
        if row is None:
            return None
        return KYCSnapshot(kyc_status=row.kyc_status, rekyc_required=bool(row.rekyc_required))

    @collaborator_call
    async def get_post_disbursal_progress(self, application_id: str) -> Optional[PostDisbursalSnapshot]:
        row = await self._scalar(
            select(PostDisbursalProgress).where(PostDisbursalProgress.loan_application_id == application_id)
        )
        if row is None:
            return None
        return PostDisbursalSnapshot(
            current_step=row.current_step or 0,
            selfie_captured=bool(row.selfie_captured),
            selfie_verified=bool(row.selfie_verified),
            agreement_signed=bool(row.agreement_signed),
        )

    @collaborator_call
    async def get_bank_statement_status(self, user_id: str) -> Optional[BankStatementSnapshot]:
        row = await self._scalar(
            select(BankStatementRecord)
            .where(BankStatementRecord.user_id == user_id)
            .order_by(BankStatementRecord.updated_at.desc(), BankStatementRecord.id.desc())
        )
        if row is None:
            return None
        return BankStatementSnapshot(
            status=row.status,
            verification_status=row.verification_status,
            user_status=row.user_status,
            loan_application_id=row.loan_application_id,
        )

    @collaborator_call
    async def submit_loan_application(
        self, user_id: str, principal: Decimal, purpose: Optional[str]
    ) -> ApplicationSnapshot:
        app = await applications.submit_loan_application(self.session, user_id, principal, purpose)
        return ApplicationSnapshot(id=app.id, status=app.status, current_step=app.current_step, created_at=app.created_at)

    @collaborator_call
    async def update_graduation_status(
        self, user_id: str, graduation_status: str, graduation_date: Optional[date]
    ) -> dict[str, Any]:
        result = await applications.update_graduation_status(self.session, user_id, graduation_status, graduation_date)
        return {"new_loan_limit": result.new_loan_limit, "changed": result.changed}
