"""
Business exceptions raised by the services and translated to HTTP errors by the routers.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from schemas.eligibility import HoldStatusSchema


class BusinessReason(str, Enum):
    USER_NOT_FOUND = "user_not_found"
    APPLICATION_NOT_FOUND = "application_not_found"
    ACTIVE_APPLICATION_EXISTS = "active_application_exists"
    USER_ON_HOLD = "user_on_hold"
    USER_DELETED = "user_deleted"
    COOLING_PERIOD = "cooling_period"
    NOT_ELIGIBLE = "not_eligible"
    GRADUATION_DOWNGRADE = "graduation_downgrade"
    NOT_A_STUDENT = "not_a_student"
    INVALID_INPUT = "invalid_input"
    UNKNOWN_INCOME_RANGE = "unknown_income_range"
    COLLABORATOR_UNAVAILABLE = "collaborator_unavailable"


class BusinessRuleError(Exception):
    """Base class: carries a stable reason code next to the human-readable message."""

    def __init__(self, reason: BusinessReason, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.details = details or {}


class InputValidationError(BusinessRuleError, ValueError):
    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        reason: BusinessReason = BusinessReason.INVALID_INPUT,
    ):
        super().__init__(reason, message, details)


class TermsValidationError(InputValidationError):
    pass


class NotFoundError(BusinessRuleError):
    pass


class StateConflictError(BusinessRuleError):
    pass


class HoldError(BusinessRuleError):
    def __init__(self, hold: HoldStatusSchema, reason: BusinessReason = BusinessReason.USER_ON_HOLD):
        super().__init__(reason, hold.reason or "Your account is on hold", {"hold": hold})
        self.hold = hold
