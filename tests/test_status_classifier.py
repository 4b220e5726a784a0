"""
Tests for the ordered gate rules: which page a user is sent to for a given snapshot.
"""
import unittest

from schemas.gate import (
    ApplicationSnapshot,
    BankStatementSnapshot,
    DocumentRequestStatus,
    GateSnapshot,
    KYCSnapshot,
    PostDisbursalSnapshot,
)
from services.status_classifier import (
    BANK_STATEMENT_PAGE,
    DASHBOARD_PAGE,
    KYC_PAGE,
    POST_DISBURSAL_PAGE,
    UNDER_REVIEW_PAGE,
    UPLOAD_DOCUMENTS_PAGE,
    FailurePolicy,
    GateRule,
    RuleMatch,
    classify,
    page_of,
    require,
)


def _snapshot(status="under_review", current_step="complete", **fields):
    apps = [ApplicationSnapshot(id="app-1", status=status, current_step=current_step)]
    return GateSnapshot(user_id="usr-1", applications=apps, **fields)


class TestClassifier(unittest.TestCase):
    def test_no_applications_allows(self):
        decision = classify(GateSnapshot(user_id="usr-1"), "/dashboard")
        self.assertEqual(decision.action, "allow")
        self.assertEqual(decision.step, "none")

    def test_rekyc_wins_over_under_review(self):
        """Both ReKYC and under-review match -> KYC page, never the under-review page."""
        snapshot = _snapshot(kyc=KYCSnapshot(kyc_status="verified", rekyc_required=True))
        decision = classify(snapshot, "/dashboard")
        self.assertEqual(decision.action, "redirect")
        self.assertEqual(decision.target, KYC_PAGE)
        self.assertEqual(decision.step, "rekyc")
        self.assertEqual(decision.application_id, "app-1")

    def test_already_on_target_page_allows(self):
        snapshot = _snapshot(kyc=KYCSnapshot(rekyc_required=True))
        decision = classify(snapshot, KYC_PAGE + "?applicationId=app-1")
        self.assertEqual(decision.action, "allow")
        self.assertEqual(decision.step, "rekyc")

    def test_selfie_recapture(self):
        snapshot = _snapshot(
            status="disbursal",
            post_disbursal={"app-1": PostDisbursalSnapshot(current_step=7, selfie_captured=True)},
        )
        decision = classify(snapshot, "/dashboard")
        self.assertEqual(decision.target, POST_DISBURSAL_PAGE)
        self.assertEqual(decision.step, "selfie_recapture")

    def test_bank_statement_reset(self):
        snapshot = _snapshot(
            status="follow_up",
            current_step="bank_statement",
            bank_statement=BankStatementSnapshot(status="pending", verification_status="not_started"),
        )
        decision = classify(snapshot, "/dashboard")
        self.assertEqual(decision.target, BANK_STATEMENT_PAGE)
        self.assertEqual(decision.step, "bank_statement_reset")

    def test_bank_statement_in_progress_is_not_a_reset(self):
        snapshot = _snapshot(
            status="follow_up",
            current_step="bank_statement",
            bank_statement=BankStatementSnapshot(status="pending", verification_status="in_progress"),
        )
        self.assertEqual(classify(snapshot, "/dashboard").action, "allow")

    def test_awaiting_disbursal_exempts_dashboard(self):
        snapshot = _snapshot(status="ready_for_disbursement")
        self.assertEqual(classify(snapshot, DASHBOARD_PAGE).action, "allow")
        decision = classify(snapshot, "/loan-application/steps")
        self.assertEqual(decision.target, POST_DISBURSAL_PAGE)
        self.assertEqual(decision.step, "awaiting_disbursal")

    def test_agreement_pending_without_progress_record(self):
        decision = classify(_snapshot(status="disbursal"), "/dashboard")
        self.assertEqual(decision.target, POST_DISBURSAL_PAGE)
        self.assertEqual(decision.step, "agreement_pending")

    def test_agreement_signed_allows(self):
        for progress in (
            PostDisbursalSnapshot(current_step=6, agreement_signed=True),
            PostDisbursalSnapshot(current_step=7),
        ):
            with self.subTest(progress=progress):
                snapshot = _snapshot(status="repeat_disbursal", post_disbursal={"app-1": progress})
                self.assertEqual(classify(snapshot, "/dashboard").action, "allow")

    def test_documents_requested_before_under_review(self):
        snapshot = _snapshot(
            document_requests=[DocumentRequestStatus(application_id="app-1", requested=["PAN"], missing=["PAN"])]
        )
        decision = classify(snapshot, "/dashboard")
        self.assertEqual(decision.target, UPLOAD_DOCUMENTS_PAGE)
        self.assertEqual(decision.step, "documents_requested")

    def test_upload_page_exempt_from_under_review(self):
        snapshot = _snapshot()
        self.assertEqual(classify(snapshot, UPLOAD_DOCUMENTS_PAGE).action, "allow")
        self.assertEqual(classify(snapshot, "/dashboard").target, UNDER_REVIEW_PAGE)

    def test_under_review_requires_complete_steps_unless_qa(self):
        self.assertEqual(classify(_snapshot(current_step="references"), "/dashboard").action, "allow")
        decision = classify(_snapshot(status="qa_verification", current_step=None), "/dashboard")
        self.assertEqual(decision.target, UNDER_REVIEW_PAGE)

    def test_terminal_applications_ignored(self):
        snapshot = _snapshot(status="cleared", kyc=KYCSnapshot(rekyc_required=True))
        self.assertEqual(classify(snapshot, "/dashboard").action, "allow")

    def test_unavailable_input_skips_rule(self):
        """KYC fetch failed -> ReKYC rule skipped, chain continues to under-review."""
        snapshot = _snapshot(unavailable={"kyc"})
        with self.assertLogs("services.status_classifier", level="WARNING"):
            decision = classify(snapshot, "/dashboard")
        self.assertEqual(decision.step, "under_review")
        self.assertIn("rekyc", decision.skipped_rules)

    def test_fail_closed_rule_redirects(self):
        def needs_kyc(snapshot):
            kyc = require(snapshot, "kyc")
            return RuleMatch("app-1") if kyc else None

        rules = (GateRule("strict_kyc", KYC_PAGE, needs_kyc, failure_policy=FailurePolicy.FAIL_CLOSED),)
        with self.assertLogs("services.status_classifier", level="WARNING"):
            decision = classify(_snapshot(unavailable={"kyc"}), "/dashboard", rules)
        self.assertEqual(decision.action, "redirect")
        self.assertEqual(decision.target, KYC_PAGE)

    def test_page_of(self):
        self.assertEqual(page_of("/post-disbursal/?applicationId=app-1"), "/post-disbursal")
        self.assertEqual(page_of(""), "/")


if __name__ == "__main__":
    unittest.main()
