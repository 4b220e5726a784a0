"""
Maps a user's applications and auxiliary records to one canonical "current step".

GATE_RULES is an ordered list; the first matching rule decides where the user must be.
If the user is already on that rule's page the result is allow. Terminal applications
(cleared, cancelled) never match any rule.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from schemas.gate import ApplicationSnapshot, GateDecisionSchema, GateSnapshot, PostDisbursalSnapshot

logger = logging.getLogger(__name__)

DASHBOARD_PAGE = "/dashboard"
KYC_PAGE = "/loan-application/kyc-verification"
POST_DISBURSAL_PAGE = "/post-disbursal"
BANK_STATEMENT_PAGE = "/loan-application/bank-statement"
UPLOAD_DOCUMENTS_PAGE = "/loan-application/upload-documents"
UNDER_REVIEW_PAGE = "/application-under-review"

TERMINAL_STATUSES = frozenset({"cleared", "cancelled"})
SELFIE_STATUSES = frozenset({"ready_for_disbursement", "disbursal", "repeat_disbursal"})
AWAITING_DISBURSAL_STATUSES = frozenset({"ready_for_disbursement", "ready_to_repeat_disbursal"})
AGREEMENT_STATUSES = frozenset({"disbursal", "repeat_disbursal"})
REVIEW_STATUSES = frozenset({"under_review", "submitted", "qa_verification", "follow_up"})
AGREEMENT_STEP = 6
COMPLETED_STEP = 7


class FailurePolicy(str, Enum):
    FAIL_OPEN = "fail_open"
    FAIL_CLOSED = "fail_closed"


class SnapshotUnavailable(Exception):
    def __init__(self, field: str):
        super().__init__(f"{field} unavailable")
        self.field = field


@dataclass(frozen=True)
class RuleMatch:
    application_id: Optional[str] = None


@dataclass(frozen=True)
class GateRule:
    name: str
    target: str
    predicate: Callable[[GateSnapshot], Optional[RuleMatch]]
    exempt_paths: tuple[str, ...] = ()
    failure_policy: FailurePolicy = FailurePolicy.FAIL_OPEN


def require(snapshot: GateSnapshot, field: str):
    if field in snapshot.unavailable:
        raise SnapshotUnavailable(field)
    return getattr(snapshot, field)


def active_applications(snapshot: GateSnapshot) -> list[ApplicationSnapshot]:
    """Non-terminal applications, most recent first."""
    return [a for a in require(snapshot, "applications") if a.status not in TERMINAL_STATUSES]


def agreement_unsigned(progress: PostDisbursalSnapshot) -> bool:
    if progress.current_step >= COMPLETED_STEP:
        return False
    return not (progress.current_step >= AGREEMENT_STEP and progress.agreement_signed)


def _rekyc(snapshot: GateSnapshot) -> Optional[RuleMatch]:
    active = active_applications(snapshot)
    if not active:
        return None
    kyc = require(snapshot, "kyc")
    if kyc is not None and kyc.rekyc_required:
        return RuleMatch(active[0].id)
    return None


def _selfie_recapture(snapshot: GateSnapshot) -> Optional[RuleMatch]:
    candidates = [a for a in active_applications(snapshot) if a.status in SELFIE_STATUSES]
    if not candidates:
        return None
    progress_by_app = require(snapshot, "post_disbursal")
    for app in candidates:
        progress = progress_by_app.get(app.id)
        if progress is not None and progress.selfie_captured and not progress.selfie_verified:
            return RuleMatch(app.id)
    return None


def _bank_statement_reset(snapshot: GateSnapshot) -> Optional[RuleMatch]:
    active = active_applications(snapshot)
    if not active:
        return None
    record = require(snapshot, "bank_statement")
    if record is None:
        return None
    if record.status == "pending" and record.verification_status == "not_started" and record.user_status is None:
        active_ids = {a.id for a in active}
        if record.loan_application_id is None or record.loan_application_id in active_ids:
            return RuleMatch(record.loan_application_id or active[0].id)
    return None


def _awaiting_disbursal(snapshot: GateSnapshot) -> Optional[RuleMatch]:
    for app in active_applications(snapshot):
        if app.status in AWAITING_DISBURSAL_STATUSES:
            return RuleMatch(app.id)
    return None


def _agreement_pending(snapshot: GateSnapshot) -> Optional[RuleMatch]:
    candidates = [a for a in active_applications(snapshot) if a.status in AGREEMENT_STATUSES]
    if not candidates:
        return None
    progress_by_app = require(snapshot, "post_disbursal")
    for app in candidates:
        # no progress row yet means nothing has been signed
        if agreement_unsigned(progress_by_app.get(app.id) or PostDisbursalSnapshot()):
            return RuleMatch(app.id)
    return None


def _documents_requested(snapshot: GateSnapshot) -> Optional[RuleMatch]:
    active_ids = {a.id for a in active_applications(snapshot)}
    if not active_ids:
        return None
    for status in require(snapshot, "document_requests"):
        if status.application_id in active_ids and status.pending:
            return RuleMatch(status.application_id)
    return None


def _under_review(snapshot: GateSnapshot) -> Optional[RuleMatch]:
    for app in active_applications(snapshot):
        if app.status in REVIEW_STATUSES and (app.current_step == "complete" or app.status == "qa_verification"):
            return RuleMatch(app.id)
    return None


GATE_RULES: tuple[GateRule, ...] = (
    GateRule("rekyc", KYC_PAGE, _rekyc),
    GateRule("selfie_recapture", POST_DISBURSAL_PAGE, _selfie_recapture),
    GateRule("bank_statement_reset", BANK_STATEMENT_PAGE, _bank_statement_reset),
    GateRule("awaiting_disbursal", POST_DISBURSAL_PAGE, _awaiting_disbursal, exempt_paths=(DASHBOARD_PAGE,)),
    GateRule("agreement_pending", POST_DISBURSAL_PAGE, _agreement_pending),
    GateRule("documents_requested", UPLOAD_DOCUMENTS_PAGE, _documents_requested),
    GateRule("under_review", UNDER_REVIEW_PAGE, _under_review, exempt_paths=(UPLOAD_DOCUMENTS_PAGE,)),
)


def page_of(path: str) -> str:
    page = (path or "/").split("?", 1)[0].split("#", 1)[0]
    if len(page) > 1:
        page = page.rstrip("/")
    return page or "/"


def on_page(path: str, target: str) -> bool:
    page = page_of(path)
    return page == target or page.startswith(target + "/")


def classify(snapshot: GateSnapshot, path: str, rules: Sequence[GateRule] = GATE_RULES) -> GateDecisionSchema:
    """First matching rule wins. Rules whose input could not be fetched follow their failure policy."""
    page = page_of(path)
    skipped: list[str] = []
    for rule in rules:
        if any(on_page(page, exempt) for exempt in rule.exempt_paths):
            continue
        try:
            match = rule.predicate(snapshot)
        except SnapshotUnavailable as exc:
            if rule.failure_policy is FailurePolicy.FAIL_CLOSED:
                logger.warning("Gate rule %s failed closed: %s", rule.name, exc)
                match = RuleMatch()
            else:
                logger.warning("Gate rule %s skipped: %s", rule.name, exc)
                skipped.append(rule.name)
                continue
        if match is None:
            continue
        if on_page(page, rule.target):
            return GateDecisionSchema(
                action="allow", path=page, step=rule.name, application_id=match.application_id, skipped_rules=skipped
            )
        return GateDecisionSchema(
            action="redirect",
            path=page,
            target=rule.target,
            step=rule.name,
            application_id=match.application_id,
            skipped_rules=skipped,
        )
    return GateDecisionSchema(action="allow", path=page, skipped_rules=skipped)
