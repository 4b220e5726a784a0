from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import LoanApplication, LoanLimitTier, User
from schemas.application import UserCreate
from schemas.eligibility import (
    EligibilityDecision,
    EligibilityProfileSchema,
    GraduationResult,
    HoldStatusSchema,
    IncomeTierSchema,
)
from schemas.terms import LoanTermsSchema
from services.eligibility import (
    apply_graduation,
    apply_hold_decision,
    check_limit_ceiling,
    classify_eligibility,
    hold_status,
    release_expired_hold,
    release_hold,
)
from services.errors import (
    BusinessReason,
    HoldError,
    InputValidationError,
    NotFoundError,
    StateConflictError,
)
from services.financial_terms import compute_terms, money, tenure_days, to_decimal
from services.status_classifier import TERMINAL_STATUSES


async def get_user(session: AsyncSession, user_id: str) -> User:
    result = await session.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFoundError(BusinessReason.USER_NOT_FOUND, "User not found", {"user_id": user_id})
    return user


async def get_application(session: AsyncSession, application_id: str) -> LoanApplication:
    result = await session.execute(select(LoanApplication).where(LoanApplication.id == application_id))
    app = result.scalar_one_or_none()
    if not app:
        raise NotFoundError(
            BusinessReason.APPLICATION_NOT_FOUND, "Application not found", {"application_id": application_id}
        )
    return app


async def list_user_applications(session: AsyncSession, user_id: str) -> list[LoanApplication]:
    await get_user(session, user_id)
    result = await session.execute(
        select(LoanApplication)
        .where(LoanApplication.user_id == user_id)
        .order_by(LoanApplication.created_at.desc(), LoanApplication.id.desc())
    )
    return list(result.scalars().all())


async def create_user(session: AsyncSession, body: UserCreate) -> User:
    now = datetime.now(timezone.utc)
    user = User(
        id=f"usr-{uuid.uuid4().hex[:12]}",
        name=body.name,
        phone=body.phone,
        status="active",
        eligibility_status="pending",
        loan_limit=Decimal("0"),
        employment_type=body.employment_type,
        date_of_birth=body.date_of_birth,
        created_at=now,
        updated_at=now,
    )
    session.add(user)
    await session.flush()
    return user


async def load_income_tiers(session: AsyncSession) -> list[IncomeTierSchema]:
    result = await session.execute(
        select(LoanLimitTier).where(LoanLimitTier.is_active.is_(True)).order_by(LoanLimitTier.tier_order)
    )
    return [IncomeTierSchema.model_validate(t) for t in result.scalars().all()]


async def run_eligibility_check(
    session: AsyncSession,
    user_id: str,
    profile: EligibilityProfileSchema,
    now: Optional[datetime] = None,
) -> tuple[User, EligibilityDecision]:
    """
    Classify the submitted profile, store it on the user and apply any resulting hold.
    Eligible users whose limit reaches the ceiling are moved into the cooling period.
    """
    now = now or datetime.now(timezone.utc)
    user = await get_user(session, user_id)
    if user.status == "deleted":
        raise StateConflictError(BusinessReason.USER_DELETED, "User account has been deleted")
    release_expired_hold(user, now)

    tiers = await load_income_tiers(session)
    decision = classify_eligibility(profile, tiers, now)

    user.employment_type = profile.employment_type
    user.date_of_birth = profile.date_of_birth
    user.income_range = profile.income_range
    user.payment_mode = profile.payment_mode
    if profile.graduation_status is not None:
        user.graduation_status = profile.graduation_status

    if decision.hold is not None:
        apply_hold_decision(user, decision.hold, now)
    else:
        apply_hold_decision(user, None, now)
        if decision.rejected or hold_status(user, now).is_on_hold:
            # a live hold of another basis (cooling period) keeps its limit until released
            user.eligibility_status = "not_eligible"
        else:
            user.eligibility_status = "eligible"
            user.loan_limit = decision.loan_limit
            cooling = check_limit_ceiling(decision.loan_limit)
            if cooling is not None:
                apply_hold_decision(user, cooling, now)

    user.updated_at = now
    await session.flush()
    return user, decision


async def get_hold_status(session: AsyncSession, user_id: str, now: Optional[datetime] = None) -> HoldStatusSchema:
    """Report the user's hold; a temporary hold past its date is released on the way out."""
    now = now or datetime.now(timezone.utc)
    user = await get_user(session, user_id)
    status = hold_status(user, now)
    if status.expired:
        release_hold(user)
        user.updated_at = now
        await session.flush()
    return status


async def submit_loan_application(
    session: AsyncSession,
    user_id: str,
    principal,
    purpose: Optional[str],
    now: Optional[datetime] = None,
) -> LoanApplication:
    now = now or datetime.now(timezone.utc)
    user = await get_user(session, user_id)
    if user.status == "deleted":
        raise StateConflictError(BusinessReason.USER_DELETED, "User account has been deleted")

    release_expired_hold(user, now)
    status = hold_status(user, now)
    if status.is_on_hold:
        reason = BusinessReason.COOLING_PERIOD if user.hold_basis == "cooling_period" else BusinessReason.USER_ON_HOLD
        raise HoldError(status, reason)
    cooling = check_limit_ceiling(user.loan_limit)
    if cooling is not None:
        raise HoldError(
            HoldStatusSchema(is_on_hold=True, hold_type="permanent", reason=cooling.reason, can_reapply=False),
            BusinessReason.COOLING_PERIOD,
        )
    if user.eligibility_status != "eligible":
        raise StateConflictError(BusinessReason.NOT_ELIGIBLE, "Complete the eligibility check before applying")

    result = await session.execute(
        select(LoanApplication).where(
            LoanApplication.user_id == user_id,
            LoanApplication.status.notin_(TERMINAL_STATUSES),
        )
    )
    active = result.scalars().first()
    if active is not None:
        raise StateConflictError(
            BusinessReason.ACTIVE_APPLICATION_EXISTS,
            "An active loan application already exists",
            {"application_id": active.id, "status": active.status},
        )

    principal = to_decimal(principal, "principal")
    if principal <= 0:
        raise InputValidationError("Loan amount must be greater than zero", {"field": "principal"})
    limit = Decimal(str(user.loan_limit or 0))
    if principal > limit:
        raise InputValidationError(
            "Loan amount exceeds your loan limit",
            {"field": "principal", "loan_limit": str(money(limit))},
        )

    app = LoanApplication(
        id=f"app-{uuid.uuid4().hex[:12]}",
        user_id=user_id,
        status="submitted",
        loan_amount=money(principal),
        loan_purpose=purpose,
        installment_count=1,
        extension_count=0,
        submitted_at=now,
        created_at=now,
        updated_at=now,
    )
    session.add(app)
    await session.flush()
    return app


async def commit_terms(
    session: AsyncSession,
    application_id: str,
    day_rate_percent,
    processing_fee_percent,
    installment_count: int = 1,
    salary_day: Optional[int] = None,
    post_service_fee=0,
    now: Optional[datetime] = None,
) -> tuple[LoanApplication, LoanTermsSchema]:
    """
    Price the application over its tenure and store the pricing with the APR it produces.
    The stored APR is the figure every later document reads.
    """
    now = now or datetime.now(timezone.utc)
    app = await get_application(session, application_id)
    if app.status in TERMINAL_STATUSES or app.processed_at is not None:
        raise StateConflictError(
            BusinessReason.INVALID_INPUT,
            "Terms can only be set before the loan is processed",
            {"application_id": application_id, "status": app.status},
        )
    terms = compute_terms(
        app.loan_amount, day_rate_percent, tenure_days(installment_count), processing_fee_percent, installment_count
    )
    app.interest_percent_per_day = terms.day_rate_percent
    app.processing_fee_percent = to_decimal(processing_fee_percent, "processing_fee_percent")
    app.installment_count = terms.installment_count
    app.salary_day = salary_day
    app.post_service_fee = money(to_decimal(post_service_fee or 0, "post_service_fee"))
    app.apr = terms.apr
    app.updated_at = now
    await session.flush()
    return app, terms


async def update_graduation_status(
    session: AsyncSession,
    user_id: str,
    graduation_status: str,
    graduation_date: Optional[date] = None,
    today: Optional[date] = None,
) -> GraduationResult:
    today = today or datetime.now(timezone.utc).date()
    user = await get_user(session, user_id)
    result = apply_graduation(user, graduation_status, graduation_date, today)
    if result.changed:
        user.updated_at = datetime.now(timezone.utc)
        await session.flush()
    return result
