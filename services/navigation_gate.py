"""
Navigation gate: runs on every page load and answers allow or redirect(target).

The gate reads fresh data through the collaborators, never writes, and never raises.
A collaborator failure marks that part of the snapshot unavailable; the classifier then
skips the rules that depend on it.
"""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable, Optional, Sequence

from schemas.gate import GateDecisionSchema, GateSnapshot
from services.cache import TTLCache
from services.collaborators import CollaboratorResult, LoanCollaborators
from services.documents import document_request_status
from services.errors import BusinessReason
from services.status_classifier import GATE_RULES, TERMINAL_STATUSES, GateRule, classify, page_of

logger = logging.getLogger(__name__)


class GateCheckTracker:
    """
    Remembers the last (page, decision) per user so repeated renders of the same page
    reuse one evaluation. A different page, a mutation for the user, or expiry starts over.
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ):
        self._entries = TTLCache(ttl_seconds, clock=clock, max_entries=max_entries)

    def lookup(self, user_id: str, path: str) -> Optional[GateDecisionSchema]:
        entry = self._entries.get(user_id)
        if entry is None:
            return None
        page, decision = entry
        if page != page_of(path):
            return None
        return decision

    def record(self, user_id: str, path: str, decision: GateDecisionSchema) -> None:
        self._entries.set(user_id, (page_of(path), decision))

    def reset(self, user_id: str) -> None:
        self._entries.invalidate(user_id)

    def __len__(self) -> int:
        return len(self._entries)


class NavigationGate:
    def __init__(
        self,
        collaborators: LoanCollaborators,
        tracker: Optional[GateCheckTracker] = None,
        rules: Sequence[GateRule] = GATE_RULES,
    ):
        self.collaborators = collaborators
        self.tracker = tracker
        self.rules = rules

    async def check(self, user_id: str, path: str) -> GateDecisionSchema:
        if self.tracker is not None:
            previous = self.tracker.lookup(user_id, path)
            if previous is not None:
                return previous.model_copy(update={"cached": True})

        try:
            snapshot = await self.build_snapshot(user_id)
            decision = classify(snapshot, path, self.rules)
        except Exception:
            logger.exception("Navigation gate failed for user %s on %s; allowing", user_id, path)
            decision = GateDecisionSchema(action="allow", path=page_of(path))

        if decision.action == "redirect":
            logger.info("Gate redirect user=%s from=%s to=%s step=%s", user_id, decision.path, decision.target, decision.step)
        if self.tracker is not None:
            self.tracker.record(user_id, path, decision)
        return decision

    async def _fetch(self, source: str, call: Awaitable[CollaboratorResult]) -> CollaboratorResult:
        """Await one collaborator call; an exception becomes a failed result for that source only."""
        try:
            return await call
        except Exception as e:
            logger.warning("Gate source %s raised %s: %s", source, type(e).__name__, e)
            return CollaboratorResult.failure(BusinessReason.COLLABORATOR_UNAVAILABLE, str(e))

    async def build_snapshot(self, user_id: str) -> GateSnapshot:
        snapshot = GateSnapshot(user_id=user_id)
        c = self.collaborators

        apps = await self._fetch("applications", c.get_loan_applications(user_id))
        if not apps.ok:
            logger.warning("Loan applications unavailable for %s: %s", user_id, apps.reason)
            snapshot.unavailable.add("applications")
            return snapshot
        snapshot.applications = apps.data or []

        active = [a for a in snapshot.applications if a.status not in TERMINAL_STATUSES]
        if not active:
            return snapshot

        kyc = await self._fetch("kyc", c.get_kyc_status(active[0].id))
        if kyc.ok:
            snapshot.kyc = kyc.data
        else:
            snapshot.unavailable.add("kyc")

        for app in active:
            progress = await self._fetch("post_disbursal", c.get_post_disbursal_progress(app.id))
            if not progress.ok:
                snapshot.unavailable.add("post_disbursal")
                break
            if progress.data is not None:
                snapshot.post_disbursal[app.id] = progress.data

        bank = await self._fetch("bank_statement", c.get_bank_statement_status(user_id))
        if bank.ok:
            snapshot.bank_statement = bank.data
        else:
            snapshot.unavailable.add("bank_statement")

        for app in active:
            history = await self._fetch("document_requests", c.get_validation_history(app.id))
            if not history.ok:
                snapshot.unavailable.add("document_requests")
                break
            if not any(a.action_type == "need_document" for a in history.data or []):
                continue
            uploads = await self._fetch("uploads", c.get_uploaded_documents(app.id))
            snapshot.document_requests.append(
                document_request_status(app.id, history.data, uploads.data if uploads.ok else None)
            )

        return snapshot
