from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import forget_user, get_collaborators, to_http_error
from database import get_db
from models import LoanApplication
from schemas.terms import ExtensionLoanSchema, TermsCommit
from services import applications as application_service
from services.collaborators import SqlCollaborators
from services.documents import document_request_status
from services.eligibility import as_utc
from services.errors import BusinessReason, BusinessRuleError
from services.financial_terms import check_extension_eligibility, compute_extension, resolve_apr
from utils.case import model_to_response

router = APIRouter(prefix="/api/applications", tags=["applications"])


def _money(value: Any) -> Optional[str]:
    return None if value is None else f"{value:.2f}"


def _apr(app: LoanApplication) -> Optional[str]:
    # only priced applications carry an APR
    if app.interest_percent_per_day is None:
        return None
    return str(resolve_apr(app.apr))


def _iso(value: Optional[datetime]) -> Optional[str]:
    value = as_utc(value)
    return value.isoformat() if value else None


def app_to_response(app: LoanApplication) -> dict[str, Any]:
    return {
        "id": app.id,
        "userId": app.user_id,
        "status": app.status,
        "currentStep": app.current_step,
        "loanAmount": _money(app.loan_amount),
        "loanPurpose": app.loan_purpose,
        "interestPercentPerDay": None if app.interest_percent_per_day is None else str(app.interest_percent_per_day),
        "processingFeePercent": None if app.processing_fee_percent is None else str(app.processing_fee_percent),
        "installmentCount": app.installment_count,
        "extensionCount": app.extension_count,
        "extensionStatus": app.extension_status,
        "apr": _apr(app),
        "dueDate": app.due_date.isoformat() if app.due_date else None,
        "processedAt": _iso(app.processed_at),
        "submittedAt": _iso(app.submitted_at),
        "createdAt": _iso(app.created_at),
        "updatedAt": _iso(app.updated_at),
    }


def extension_loan(app: LoanApplication) -> ExtensionLoanSchema:
    processed_at = as_utc(app.processed_at)
    return ExtensionLoanSchema(
        principal=app.loan_amount,
        day_rate_percent=app.interest_percent_per_day or 0,
        processed_on=processed_at.date() if processed_at else None,
        due_date=app.due_date,
        extension_count=app.extension_count or 0,
        extension_status=app.extension_status,
        post_service_fee=app.post_service_fee or 0,
        installment_count=app.installment_count or 1,
        salary_day=app.salary_day,
    )


@router.get("/{application_id}")
async def get_application(application_id: str, db: AsyncSession = Depends(get_db)):
    try:
        app = await application_service.get_application(db, application_id)
    except BusinessRuleError as e:
        raise to_http_error(e)
    return app_to_response(app)


@router.post("/{application_id}/terms")
async def commit_terms(
    application_id: str,
    body: TermsCommit,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    try:
        app, terms = await application_service.commit_terms(
            db,
            application_id,
            body.day_rate_percent,
            body.processing_fee_percent,
            body.installment_count,
            body.salary_day,
            body.post_service_fee,
        )
    except BusinessRuleError as e:
        raise to_http_error(e)
    await forget_user(request, db, app.user_id)
    return {"application": app_to_response(app), "terms": model_to_response(terms)}


@router.get("/{application_id}/pending-documents")
async def get_pending_documents(
    application_id: str,
    collaborators: SqlCollaborators = Depends(get_collaborators),
):
    try:
        await application_service.get_application(collaborators.session, application_id)
    except BusinessRuleError as e:
        raise to_http_error(e)
    history = await collaborators.get_validation_history(application_id)
    if not history.ok:
        raise to_http_error(
            BusinessRuleError(history.reason or BusinessReason.COLLABORATOR_UNAVAILABLE, history.message or "")
        )
    uploads = await collaborators.get_uploaded_documents(application_id)
    status = document_request_status(application_id, history.data or [], uploads.data if uploads.ok else None)
    return {
        "applicationId": application_id,
        "pending": status.pending,
        "requested": status.requested,
        "missing": status.missing,
    }


@router.get("/{application_id}/extension-quote")
async def get_extension_quote(
    application_id: str,
    on: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
):
    try:
        app = await application_service.get_application(db, application_id)
        loan = extension_loan(app)
        on = on or datetime.now(timezone.utc).date()
        eligibility = check_extension_eligibility(loan, on)
        quote = compute_extension(loan, loan.extension_count + 1, on) if eligibility.eligible else None
    except BusinessRuleError as e:
        raise to_http_error(e)
    return {
        "applicationId": application_id,
        "eligibility": model_to_response(eligibility),
        "quote": model_to_response(quote) if quote else None,
    }
