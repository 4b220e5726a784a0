from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.applications import app_to_response
from api.deps import forget_user, get_dashboard_cache, to_http_error
from database import get_db
from models import User
from schemas.application import ApplicationCreate, UserCreate
from schemas.eligibility import EligibilityProfileSchema, GraduationUpdate
from services import applications as application_service
from services.cache import TTLCache
from services.dashboard import build_dashboard
from services.eligibility import as_utc
from services.errors import BusinessRuleError
from utils.case import model_to_response

router = APIRouter(prefix="/api/users", tags=["users"])


def user_to_response(u: User) -> dict[str, Any]:
    hold_until = as_utc(u.hold_until)
    return {
        "id": u.id,
        "name": u.name,
        "phone": u.phone,
        "status": u.status,
        "eligibilityStatus": u.eligibility_status,
        "holdReason": u.hold_reason,
        "holdBasis": u.hold_basis,
        "holdUntil": hold_until.isoformat() if hold_until else None,
        "loanLimit": f"{u.loan_limit or 0:.2f}",
        "employmentType": u.employment_type,
        "dateOfBirth": u.date_of_birth.isoformat() if u.date_of_birth else None,
        "incomeRange": u.income_range,
        "paymentMode": u.payment_mode,
        "graduationStatus": u.graduation_status,
        "graduationDate": u.graduation_date.isoformat() if u.graduation_date else None,
        "createdAt": u.created_at.isoformat() if u.created_at else None,
        "updatedAt": u.updated_at.isoformat() if u.updated_at else None,
    }


@router.post("", status_code=201)
async def create_user(body: UserCreate, db: AsyncSession = Depends(get_db)):
    try:
        user = await application_service.create_user(db, body)
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Phone number already registered")
    return user_to_response(user)


@router.get("/{user_id}")
async def get_user(user_id: str, db: AsyncSession = Depends(get_db)):
    try:
        user = await application_service.get_user(db, user_id)
    except BusinessRuleError as e:
        raise to_http_error(e)
    return user_to_response(user)


@router.post("/{user_id}/eligibility")
async def check_eligibility(
    user_id: str,
    body: EligibilityProfileSchema,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    try:
        user, decision = await application_service.run_eligibility_check(db, user_id, body)
    except BusinessRuleError as e:
        raise to_http_error(e)
    await forget_user(request, db, user_id)
    return {
        "user": user_to_response(user),
        "decision": model_to_response(decision),
    }


@router.get("/{user_id}/hold-status")
async def get_hold_status(user_id: str, request: Request, db: AsyncSession = Depends(get_db)):
    try:
        status = await application_service.get_hold_status(db, user_id)
    except BusinessRuleError as e:
        raise to_http_error(e)
    if status.expired:
        await forget_user(request, db, user_id)
    return model_to_response(status)


@router.post("/{user_id}/graduation")
async def update_graduation(
    user_id: str,
    body: GraduationUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    try:
        result = await application_service.update_graduation_status(
            db, user_id, body.graduation_status, body.graduation_date
        )
    except BusinessRuleError as e:
        raise to_http_error(e)
    await forget_user(request, db, user_id)
    return model_to_response(result)


@router.get("/{user_id}/dashboard")
async def get_dashboard(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_dashboard_cache),
):
    try:
        return await build_dashboard(db, user_id, cache)
    except BusinessRuleError as e:
        raise to_http_error(e)


@router.get("/{user_id}/applications")
async def list_user_applications(user_id: str, db: AsyncSession = Depends(get_db)):
    try:
        apps = await application_service.list_user_applications(db, user_id)
    except BusinessRuleError as e:
        raise to_http_error(e)
    return [app_to_response(a) for a in apps]


@router.post("/{user_id}/applications", status_code=201)
async def submit_application(
    user_id: str,
    body: ApplicationCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    try:
        app = await application_service.submit_loan_application(db, user_id, body.principal, body.purpose)
    except BusinessRuleError as e:
        raise to_http_error(e)
    await forget_user(request, db, user_id)
    return app_to_response(app)
