"""
Eligibility rules: age, income tier and payment-mode holds, loan-limit ceiling, student graduation upsell.

Holds come in two kinds. A permanent hold has no end date and the user cannot reapply.
A temporary hold carries `hold_until`; once that moment passes the hold is released.
Functions here take the user row (or any object with the same attributes) and never
touch the session.
"""
from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional

from config import settings
from schemas.eligibility import (
    EligibilityDecision,
    EligibilityProfileSchema,
    GraduationResult,
    HoldDecision,
    HoldStatusSchema,
    IncomeTierSchema,
)
from services.errors import BusinessReason, InputValidationError, StateConflictError

logger = logging.getLogger(__name__)

COOLING_PERIOD_REASON = "Your Profile is under cooling period. We will let you know once you are eligible."
PROFILE_HOLD_BASES = ("age", "income_tier", "payment_mode")
SECONDS_PER_DAY = 86400


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 Feb in a non-leap target year
        return day.replace(year=day.year + years, day=28)


def age_on(date_of_birth: date, today: date) -> int:
    age = today.year - date_of_birth.year
    if (today.month, today.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def format_inr(amount: Decimal) -> str:
    """Rupee amount with Indian digit grouping: 100000 -> ₹1,00,000."""
    digits = str(int(amount))
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    return f"₹{digits}"


def find_tier(tiers: Iterable[IncomeTierSchema], income_range: Optional[str]) -> IncomeTierSchema:
    if not income_range:
        raise InputValidationError(
            "income_range is required", {"field": "income_range"}, BusinessReason.UNKNOWN_INCOME_RANGE
        )
    for tier in tiers:
        if tier.income_range == income_range:
            return tier
    raise InputValidationError(
        f"Unknown income range: {income_range}",
        {"field": "income_range", "value": income_range},
        BusinessReason.UNKNOWN_INCOME_RANGE,
    )


def income_hold_reason(tier: IncomeTierSchema) -> str:
    if tier.max_salary is None:
        return f"Application held: Gross monthly income {format_inr(tier.min_salary)} and above"
    return f"Application held: Gross monthly income {format_inr(tier.min_salary)} to {format_inr(tier.max_salary)}"


def student_loan_limit(graduation_status: Optional[str]) -> Decimal:
    if graduation_status == "graduated":
        return settings.student_limit_graduated
    return settings.student_limit_not_graduated


def _held(hold: HoldDecision) -> EligibilityDecision:
    return EligibilityDecision(
        eligible=False, eligibility_status="not_eligible", hold=hold, reason=hold.reason
    )


def _tier_decision(tier: IncomeTierSchema) -> Optional[EligibilityDecision]:
    if tier.loan_limit <= 0 or tier.hold_permanent:
        return _held(HoldDecision(hold_type="permanent", basis="income_tier", reason=income_hold_reason(tier)))
    return None


def classify_eligibility(
    profile: EligibilityProfileSchema,
    tiers: Iterable[IncomeTierSchema],
    now: datetime,
) -> EligibilityDecision:
    """
    Decide hold / rejection / eligibility for a profile.
    salaried: over-age is a permanent hold, then the income tier, then salary payment mode.
    student: under-age is a temporary hold until the 19th birthday; limit depends on graduation.
    anything else: outside the configured age band is a rejection.
    """
    now = as_utc(now)
    today = now.date()
    age = age_on(profile.date_of_birth, today)
    employment_type = (profile.employment_type or "").lower()

    if employment_type == "student":
        if age < settings.student_min_age:
            eligible_on = add_years(profile.date_of_birth, settings.student_min_age)
            return _held(
                HoldDecision(
                    hold_type="temporary",
                    basis="age",
                    reason=(
                        f"Application held: Age ({age} years) is below the minimum of "
                        f"{settings.student_min_age} years for students"
                    ),
                    hold_until=datetime.combine(eligible_on, time.min, tzinfo=timezone.utc),
                )
            )
        return EligibilityDecision(
            eligible=True,
            eligibility_status="eligible",
            loan_limit=student_loan_limit(profile.graduation_status),
        )

    if employment_type == "salaried":
        if age > settings.salaried_max_age:
            return _held(
                HoldDecision(
                    hold_type="permanent",
                    basis="age",
                    reason=(
                        f"Application held: Age ({age} years) exceeds maximum limit of "
                        f"{settings.salaried_max_age} years"
                    ),
                )
            )
        tier = find_tier(tiers, profile.income_range)
        held = _tier_decision(tier)
        if held is not None:
            return held
        payment_mode = (profile.payment_mode or "").lower()
        if payment_mode == "cash":
            return _held(
                HoldDecision(
                    hold_type="permanent",
                    basis="payment_mode",
                    reason="Application held: Salary received in cash",
                )
            )
        if payment_mode == "cheque":
            return _held(
                HoldDecision(
                    hold_type="temporary",
                    basis="payment_mode",
                    reason="Application held: Salary received by cheque",
                    hold_until=now + timedelta(days=settings.hold_period_days),
                )
            )
        return EligibilityDecision(eligible=True, eligibility_status="eligible", loan_limit=tier.loan_limit)

    if age < settings.min_age_years or age > settings.max_age_years:
        return EligibilityDecision(
            eligible=False,
            eligibility_status="not_eligible",
            rejected=True,
            reason=(
                f"Age ({age} years) must be between {settings.min_age_years} "
                f"and {settings.max_age_years} years"
            ),
        )
    tier = find_tier(tiers, profile.income_range)
    held = _tier_decision(tier)
    if held is not None:
        return held
    return EligibilityDecision(eligible=True, eligibility_status="eligible", loan_limit=tier.loan_limit)


def check_limit_ceiling(loan_limit: Any) -> Optional[HoldDecision]:
    """Users whose limit reached the ceiling go into a cooling period instead of a new application."""
    if Decimal(str(loan_limit or 0)) >= settings.loan_limit_ceiling:
        return HoldDecision(hold_type="permanent", basis="cooling_period", reason=COOLING_PERIOD_REASON)
    return None


def hold_status(user: Any, now: datetime) -> HoldStatusSchema:
    if user.status != "on_hold":
        return HoldStatusSchema(is_on_hold=False)
    now = as_utc(now)
    hold_until = as_utc(user.hold_until)
    if hold_until is None:
        return HoldStatusSchema(
            is_on_hold=True, hold_type="permanent", reason=user.hold_reason, can_reapply=False
        )
    if hold_until <= now:
        return HoldStatusSchema(
            is_on_hold=False,
            hold_type="temporary",
            reason=user.hold_reason,
            hold_until=hold_until,
            remaining_days=0,
            can_reapply=True,
            expired=True,
        )
    remaining_days = math.ceil((hold_until - now).total_seconds() / SECONDS_PER_DAY)
    return HoldStatusSchema(
        is_on_hold=True,
        hold_type="temporary",
        reason=user.hold_reason,
        hold_until=hold_until,
        remaining_days=remaining_days,
        can_reapply=True,
    )


def release_hold(user: Any) -> None:
    user.status = "active"
    user.eligibility_status = "pending"
    user.hold_reason = None
    user.hold_basis = None
    user.hold_until = None


def release_expired_hold(user: Any, now: datetime) -> bool:
    if hold_status(user, now).expired:
        logger.info("Releasing expired hold for user %s", user.id)
        release_hold(user)
        return True
    return False


def apply_hold_decision(user: Any, hold: Optional[HoldDecision], now: datetime) -> bool:
    """
    Write a hold decision onto the user. Returns True when the user row changed.
    Re-applying the same hold is a no-op; a live hold with another basis is left alone;
    a profile hold is released when the profile no longer warrants one.
    """
    if user.status == "deleted":
        return False
    current = hold_status(user, now)
    live_hold = current.is_on_hold

    if hold is None:
        if live_hold and user.hold_basis not in PROFILE_HOLD_BASES:
            return False
        if user.status == "on_hold":
            release_hold(user)
            return True
        return False

    if live_hold:
        if user.hold_basis != hold.basis:
            return False
        if user.hold_reason == hold.reason:
            # a cheque hold runs from the date it was first placed
            if hold.basis == "payment_mode" or as_utc(user.hold_until) == as_utc(hold.hold_until):
                return False

    user.status = "on_hold"
    user.eligibility_status = "not_eligible"
    user.hold_reason = hold.reason
    user.hold_basis = hold.basis
    user.hold_until = hold.hold_until
    logger.info("User %s placed on %s hold (%s)", user.id, hold.hold_type, hold.basis)
    return True


def apply_graduation(user: Any, graduation_status: str, graduation_date: Optional[date], today: date) -> GraduationResult:
    """Students only. not_graduated -> graduated raises the limit; the reverse is refused."""
    previous_limit = Decimal(str(user.loan_limit or 0))
    if (user.employment_type or "").lower() != "student":
        raise StateConflictError(BusinessReason.NOT_A_STUDENT, "Graduation status applies to students only")
    if graduation_date is not None and graduation_date > today:
        raise InputValidationError("graduation_date cannot be in the future", {"field": "graduation_date"})
    if user.graduation_status == graduation_status:
        return GraduationResult(previous_loan_limit=previous_limit, new_loan_limit=previous_limit, changed=False)
    if user.graduation_status == "graduated" and graduation_status == "not_graduated":
        raise StateConflictError(
            BusinessReason.GRADUATION_DOWNGRADE, "Graduation status cannot be changed back to not graduated"
        )

    new_limit = student_loan_limit(graduation_status)
    user.graduation_status = graduation_status
    if graduation_status == "graduated":
        user.graduation_date = graduation_date or today
    user.loan_limit = new_limit
    return GraduationResult(previous_loan_limit=previous_limit, new_loan_limit=new_limit, changed=True)
