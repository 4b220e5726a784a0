"""
Financial terms engine: interest, processing fee, APR, penal charges, tenure and extension cost.

Loans use simple daily interest on the sanctioned principal:
    interest = principal x (day_rate_percent / 100) x days
and the repayable total is split evenly across installments. That EMI is the
authoritative figure. `illustrative_emi` is the textbook reducing-balance EMI and is
only for calculator screens.

All money is Decimal, rounded half-up to paise at the end of each figure.
"""
from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, NamedTuple, Optional

from config import settings
from schemas.terms import (
    EmiIllustrationSchema,
    ExtensionEligibilitySchema,
    ExtensionLoanSchema,
    ExtensionQuoteSchema,
    LoanTermsSchema,
    PenaltySchema,
    PenaltyTierSchema,
)
from services.errors import TermsValidationError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0")
HUNDRED = Decimal("100")
APR_DAYS_FACTOR = Decimal("36500")
FEE_METHODS = ("add_to_total", "deduct_from_disbursal")


class PenaltyTier(NamedTuple):
    label: str
    from_day: int
    to_day: Optional[int]
    rate_percent: Decimal
    one_time: bool


PENALTY_TIERS = (
    PenaltyTier("day_1_one_time", 1, 1, Decimal("5"), True),
    PenaltyTier("days_2_to_10", 2, 10, Decimal("1"), False),
    PenaltyTier("days_11_to_120", 11, 120, Decimal("0.6"), False),
    PenaltyTier("after_day_120", 121, None, ZERO, False),
)


def money(value: Decimal) -> Decimal:
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise TermsValidationError(f"{field} must be a number", {"field": field})
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise TermsValidationError(f"{field} must be a number", {"field": field})
    if not result.is_finite():
        raise TermsValidationError(f"{field} must be a finite number", {"field": field})
    return result


def _positive_int(value: Any, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise TermsValidationError(f"{field} must be a positive whole number", {"field": field, "value": value})
    return value


def _positive_principal(value: Any) -> Decimal:
    principal = to_decimal(value, "principal")
    if principal <= 0:
        raise TermsValidationError("principal must be greater than zero", {"field": "principal"})
    return principal


def _non_negative_rate(value: Any, field: str) -> Decimal:
    rate = to_decimal(value, field)
    if rate < 0:
        raise TermsValidationError(f"{field} cannot be negative", {"field": field})
    return rate


def simple_interest(principal: Decimal, day_rate_percent: Decimal, days: int) -> Decimal:
    return money(principal * day_rate_percent / HUNDRED * days)


def days_inclusive(start: date, end: date) -> int:
    """Count both endpoints, so a loan processed and repaid on the same day accrues one day."""
    if end < start:
        return 0
    return (end - start).days + 1


def gst_on(amount: Decimal) -> Decimal:
    return money(amount * settings.gst_rate)


def calculate_apr(principal: Decimal, interest: Decimal, fees: Decimal, days: int) -> Decimal:
    return money((fees + interest) / principal / days * APR_DAYS_FACTOR)


def compute_terms(
    principal: Any,
    day_rate_percent: Any,
    days: Any,
    processing_fee_percent: Any = ZERO,
    installment_count: Any = 1,
    fee_method: str = "add_to_total",
) -> LoanTermsSchema:
    principal = _positive_principal(principal)
    day_rate_percent = _non_negative_rate(day_rate_percent, "day_rate_percent")
    days = _positive_int(days, "days")
    processing_fee_percent = _non_negative_rate(processing_fee_percent, "processing_fee_percent")
    if processing_fee_percent > HUNDRED:
        raise TermsValidationError(
            "processing_fee_percent cannot exceed 100", {"field": "processing_fee_percent"}
        )
    installment_count = _positive_int(installment_count, "installment_count")
    if fee_method not in FEE_METHODS:
        raise TermsValidationError(
            f"fee_method must be one of {', '.join(FEE_METHODS)}", {"field": "fee_method"}
        )

    interest = simple_interest(principal, day_rate_percent, days)
    processing_fee = money(principal * processing_fee_percent / HUNDRED)
    processing_fee_gst = gst_on(processing_fee)
    fees = processing_fee + processing_fee_gst

    if fee_method == "add_to_total":
        disbursal_amount = money(principal)
        total_repayable = money(principal + interest + fees)
    else:
        disbursal_amount = money(principal - fees)
        total_repayable = money(principal + interest)

    return LoanTermsSchema(
        principal=money(principal),
        days=days,
        day_rate_percent=day_rate_percent,
        interest=interest,
        processing_fee=processing_fee,
        processing_fee_gst=processing_fee_gst,
        fees=fees,
        fee_method=fee_method,
        disbursal_amount=disbursal_amount,
        total_repayable=total_repayable,
        installment_count=installment_count,
        emi=money(total_repayable / installment_count),
        apr=calculate_apr(principal, interest, fees, days),
    )


def illustrative_emi(principal: Any, annual_rate_percent: Any, months: Any) -> EmiIllustrationSchema:
    """
    Reducing-balance EMI: P x r x (1 + r)^n / ((1 + r)^n - 1) with r the monthly rate.
    For display on calculators only; committed loans use compute_terms.
    """
    principal = _positive_principal(principal)
    annual_rate_percent = _non_negative_rate(annual_rate_percent, "annual_rate_percent")
    months = _positive_int(months, "months")

    monthly_rate = annual_rate_percent / Decimal("12") / HUNDRED
    if monthly_rate == 0:
        emi = money(principal / months)
    else:
        growth = (1 + monthly_rate) ** months
        emi = money(principal * monthly_rate * growth / (growth - 1))
    total_payment = money(emi * months)
    return EmiIllustrationSchema(
        principal=money(principal),
        annual_rate_percent=annual_rate_percent,
        months=months,
        emi=emi,
        total_payment=total_payment,
        total_interest=money(total_payment - principal),
    )


def penalty_rate_for_day(day: int) -> Decimal:
    """Penal rate (percent of overdue principal) charged for the given overdue day."""
    for tier in PENALTY_TIERS:
        if day >= tier.from_day and (tier.to_day is None or day <= tier.to_day):
            return tier.rate_percent
    return ZERO


def compute_penalty(overdue_principal: Any, days_overdue: Any) -> PenaltySchema:
    overdue_principal = to_decimal(overdue_principal, "overdue_principal")
    if overdue_principal < 0:
        raise TermsValidationError("overdue_principal cannot be negative", {"field": "overdue_principal"})
    if isinstance(days_overdue, bool) or not isinstance(days_overdue, int) or days_overdue < 0:
        raise TermsValidationError("days_overdue must be a non-negative whole number", {"field": "days_overdue"})

    tiers: list[PenaltyTierSchema] = []
    amount = ZERO
    for tier in PENALTY_TIERS:
        last_day = days_overdue if tier.to_day is None else min(days_overdue, tier.to_day)
        tier_days = last_day - tier.from_day + 1
        if tier_days <= 0:
            continue
        charged_days = 1 if tier.one_time else tier_days
        tier_amount = money(overdue_principal * tier.rate_percent / HUNDRED * charged_days)
        amount += tier_amount
        tiers.append(
            PenaltyTierSchema(
                label=tier.label,
                from_day=tier.from_day,
                to_day=tier.to_day,
                days=tier_days,
                rate_percent=tier.rate_percent,
                one_time=tier.one_time,
                amount=tier_amount,
            )
        )

    gst = gst_on(amount)
    return PenaltySchema(
        overdue_principal=money(overdue_principal),
        days_overdue=days_overdue,
        amount=money(amount),
        gst=gst,
        total=money(amount + gst),
        tiers=tiers,
    )


def tenure_days(installment_count: Any = 1) -> int:
    installment_count = _positive_int(installment_count, "installment_count")
    return settings.base_tenure_days + (installment_count - 1) * settings.installment_gap_days


def outstanding_balance(principal: Any, post_service_fee: Any = ZERO) -> Decimal:
    """Principal plus post-service fee and its GST. Extensions never change it."""
    principal = to_decimal(principal, "principal")
    post_service_fee = to_decimal(post_service_fee or ZERO, "post_service_fee")
    return money(principal + post_service_fee + gst_on(post_service_fee))


def new_due_date(due_date: date, salary_day: Optional[int] = None) -> date:
    """Push the due date by one extension period, or to next month's salary day for salary-based plans."""
    if not salary_day:
        return due_date + timedelta(days=settings.extension_period_days)
    year = due_date.year + (1 if due_date.month == 12 else 0)
    month = 1 if due_date.month == 12 else due_date.month + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(salary_day, last_day))


def extension_window(due_date: date) -> tuple[date, date]:
    return (
        due_date - timedelta(days=settings.extension_window_before_days),
        due_date + timedelta(days=settings.extension_window_after_days),
    )


def check_extension_eligibility(loan: ExtensionLoanSchema, on: date) -> ExtensionEligibilitySchema:
    if loan.processed_on is None or loan.due_date is None:
        return ExtensionEligibilitySchema(eligible=False, reason="Loan has not been processed yet")

    window_start, window_end = extension_window(loan.due_date)
    within = window_start <= on <= window_end
    reason = None
    if loan.extension_count >= settings.max_extensions:
        reason = f"Maximum of {settings.max_extensions} extensions reached"
    elif loan.extension_status == "pending":
        reason = "An extension request is already pending"
    elif not within:
        reason = (
            f"Extension is available from {window_start.isoformat()} to {window_end.isoformat()}"
        )
    return ExtensionEligibilitySchema(
        eligible=reason is None,
        reason=reason,
        window_start=window_start,
        window_end=window_end,
        is_within_window=within,
    )


def compute_extension(loan: ExtensionLoanSchema, extension_index: Any, extension_date: date) -> ExtensionQuoteSchema:
    if isinstance(extension_index, bool) or not isinstance(extension_index, int) or not (
        1 <= extension_index <= settings.max_extensions
    ):
        raise TermsValidationError(
            f"extension_index must be between 1 and {settings.max_extensions}",
            {"field": "extension_index", "value": extension_index},
        )
    if loan.processed_on is None or loan.due_date is None:
        raise TermsValidationError("Loan has not been processed yet", {"field": "processed_on"})
    if extension_date < loan.processed_on:
        raise TermsValidationError("extension_date is before the processing date", {"field": "extension_date"})

    principal = _positive_principal(loan.principal)
    day_rate_percent = _non_negative_rate(loan.day_rate_percent, "day_rate_percent")

    fee = money(principal * settings.extension_fee_rate)
    gst_on_fee = gst_on(fee)
    interest_days = days_inclusive(loan.processed_on, extension_date)
    interest_till_today = simple_interest(principal, day_rate_percent, interest_days)
    days_overdue = max(0, (extension_date - loan.due_date).days)
    penalty = compute_penalty(principal, days_overdue)
    balance = outstanding_balance(principal, loan.post_service_fee)

    return ExtensionQuoteSchema(
        extension_index=extension_index,
        extension_date=extension_date,
        fee=fee,
        gst_on_fee=gst_on_fee,
        interest_days=interest_days,
        interest_till_today=interest_till_today,
        days_overdue=days_overdue,
        penalty=penalty.amount,
        penalty_gst=penalty.gst,
        total_extension_payment=money(fee + gst_on_fee + interest_till_today + penalty.amount + penalty.gst),
        cumulative_extension_fees=money(fee * extension_index),
        original_due_date=loan.due_date,
        new_due_date=new_due_date(loan.due_date, loan.salary_day),
        extension_period_days=settings.extension_period_days,
        outstanding_loan_balance=balance,
        outstanding_loan_balance_after_extension=balance,
    )


def resolve_apr(reported: Any) -> Decimal:
    """APR for the key facts statement. Only the backend figure is used; absent means 0.00 plus a warning."""
    if reported is None or reported == "":
        logger.warning("APR missing from loan data; rendering 0.00 instead of estimating")
        return money(ZERO)
    return money(to_decimal(reported, "apr"))
