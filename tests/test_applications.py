"""
Service tests against an in-memory SQLite database: eligibility, submission, holds,
graduation, collaborators and the dashboard cache.
"""
import unittest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from api.applications import app_to_response
from database import init_db, make_engine, make_sessionmaker
from models import (
    KYCRecord,
    LoanApplication,
    LoanLimitTier,
    UploadedDocument,
    User,
    ValidationAction,
)
from schemas.eligibility import EligibilityProfileSchema
from services import applications
from services.cache import TTLCache
from services.collaborators import SqlCollaborators
from services.dashboard import build_dashboard
from services.errors import BusinessReason, HoldError, InputValidationError, NotFoundError, StateConflictError
from services.navigation_gate import NavigationGate
from services.status_classifier import KYC_PAGE

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


class ServiceTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.engine = make_engine("sqlite+aiosqlite://")
        await init_db(bind=self.engine)
        self.session = make_sessionmaker(self.engine)()
        self.session.add_all(
            [
                LoanLimitTier(
                    id="tier-low", tier_name="Entry", income_range="1k-20k", min_salary=Decimal("1000"),
                    max_salary=Decimal("20000"), loan_limit=Decimal("0"), hold_permanent=True, tier_order=1,
                ),
                LoanLimitTier(
                    id="tier-mid", tier_name="Bronze", income_range="20k-30k", min_salary=Decimal("20000"),
                    max_salary=Decimal("30000"), loan_limit=Decimal("8000"), tier_order=2,
                ),
                LoanLimitTier(
                    id="tier-top", tier_name="Platinum", income_range="above-40k", min_salary=Decimal("40000"),
                    loan_limit=Decimal("50000"), tier_order=3,
                ),
                User(id="usr-1", name="Asha", phone="9000000001", created_at=NOW, updated_at=NOW),
            ]
        )
        await self.session.flush()

    async def asyncTearDown(self):
        await self.session.close()
        await self.engine.dispose()

    async def _make_eligible(self, income_range="20k-30k"):
        profile = EligibilityProfileSchema(
            employment_type="salaried", date_of_birth=date(1995, 5, 1), income_range=income_range,
            payment_mode="bank_transfer",
        )
        return await applications.run_eligibility_check(self.session, "usr-1", profile, NOW)

    def _application(self, app_id, status, created_at=NOW, current_step=None):
        return LoanApplication(
            id=app_id, user_id="usr-1", status=status, current_step=current_step, loan_amount=Decimal("5000"),
            created_at=created_at, updated_at=created_at,
        )


class TestEligibilityService(ServiceTestCase):
    async def test_eligible_salaried_user_gets_tier_limit(self):
        user, decision = await self._make_eligible()
        self.assertTrue(decision.eligible)
        self.assertEqual(user.eligibility_status, "eligible")
        self.assertEqual(Decimal(user.loan_limit), Decimal("8000"))

    async def test_zero_limit_tier_places_permanent_hold(self):
        user, _ = await self._make_eligible("1k-20k")
        self.assertEqual(user.status, "on_hold")
        self.assertEqual(user.hold_basis, "income_tier")
        self.assertIsNone(user.hold_until)

    async def test_limit_at_ceiling_enters_cooling_period(self):
        user, _ = await self._make_eligible("above-40k")
        self.assertEqual(user.status, "on_hold")
        self.assertEqual(user.hold_basis, "cooling_period")

    async def test_rerun_during_cooling_period_keeps_hold_and_limit(self):
        user = await applications.get_user(self.session, "usr-1")
        user.status = "on_hold"
        user.hold_basis = "cooling_period"
        user.hold_reason = "Your Profile is under cooling period. We will let you know once you are eligible."
        user.eligibility_status = "not_eligible"
        user.loan_limit = Decimal("50000")
        await self.session.flush()

        user, decision = await self._make_eligible("20k-30k")
        self.assertTrue(decision.eligible)
        self.assertEqual(user.status, "on_hold")
        self.assertEqual(user.hold_basis, "cooling_period")
        self.assertEqual(user.eligibility_status, "not_eligible")
        self.assertEqual(Decimal(user.loan_limit), Decimal("50000"))

    async def test_unknown_user(self):
        with self.assertRaises(NotFoundError):
            await applications.get_user(self.session, "usr-missing")

    async def test_expired_hold_released_on_status_check(self):
        user = await applications.get_user(self.session, "usr-1")
        user.status = "on_hold"
        user.hold_basis = "payment_mode"
        user.hold_reason = "Application held: Salary received by cheque"
        user.hold_until = NOW - timedelta(days=1)
        await self.session.flush()

        status = await applications.get_hold_status(self.session, "usr-1", NOW)
        self.assertTrue(status.expired)
        self.assertEqual(user.status, "active")
        self.assertEqual(user.eligibility_status, "pending")

    async def test_graduation_upgrade(self):
        user = await applications.get_user(self.session, "usr-1")
        user.employment_type = "student"
        user.graduation_status = "not_graduated"
        user.loan_limit = Decimal("10000")
        result = await applications.update_graduation_status(
            self.session, "usr-1", "graduated", date(2026, 5, 30), today=NOW.date()
        )
        self.assertEqual(result.new_loan_limit, Decimal("25000"))
        with self.assertRaises(StateConflictError):
            await applications.update_graduation_status(self.session, "usr-1", "not_graduated", today=NOW.date())


class TestSubmission(ServiceTestCase):
    async def test_submit_and_reject_second_active_application(self):
        await self._make_eligible()
        app = await applications.submit_loan_application(self.session, "usr-1", Decimal("5000"), "medical", NOW)
        self.assertEqual(app.status, "submitted")
        self.assertTrue(app.id.startswith("app-"))

        with self.assertRaises(StateConflictError) as ctx:
            await applications.submit_loan_application(self.session, "usr-1", Decimal("1000"), None, NOW)
        self.assertEqual(ctx.exception.reason, BusinessReason.ACTIVE_APPLICATION_EXISTS)

    async def test_cleared_application_does_not_block(self):
        await self._make_eligible()
        self.session.add(self._application("app-old", "cleared"))
        await self.session.flush()
        app = await applications.submit_loan_application(self.session, "usr-1", Decimal("5000"), None, NOW)
        self.assertEqual(app.status, "submitted")

    async def test_hold_blocks_submission_with_structured_status(self):
        await self._make_eligible("1k-20k")
        with self.assertRaises(HoldError) as ctx:
            await applications.submit_loan_application(self.session, "usr-1", Decimal("5000"), None, NOW)
        self.assertEqual(ctx.exception.reason, BusinessReason.USER_ON_HOLD)
        self.assertEqual(ctx.exception.hold.hold_type, "permanent")
        self.assertFalse(ctx.exception.hold.can_reapply)

    async def test_ceiling_blocks_submission(self):
        await self._make_eligible()
        user = await applications.get_user(self.session, "usr-1")
        user.loan_limit = Decimal("45600")
        with self.assertRaises(HoldError) as ctx:
            await applications.submit_loan_application(self.session, "usr-1", Decimal("5000"), None, NOW)
        self.assertEqual(ctx.exception.reason, BusinessReason.COOLING_PERIOD)

    async def test_amount_over_limit(self):
        await self._make_eligible()
        with self.assertRaises(InputValidationError):
            await applications.submit_loan_application(self.session, "usr-1", Decimal("9000"), None, NOW)

    async def test_eligibility_required(self):
        with self.assertRaises(StateConflictError) as ctx:
            await applications.submit_loan_application(self.session, "usr-1", Decimal("100"), None, NOW)
        self.assertEqual(ctx.exception.reason, BusinessReason.NOT_ELIGIBLE)


class TestCommitTerms(ServiceTestCase):
    async def test_commit_stores_apr_from_terms(self):
        self.session.add(self._application("app-1", "under_review"))
        await self.session.flush()

        app, terms = await applications.commit_terms(
            self.session, "app-1", Decimal("0.1"), Decimal("10"), installment_count=1, now=NOW
        )
        self.assertEqual(terms.days, 165)
        self.assertEqual(terms.interest, Decimal("825.00"))
        self.assertEqual(terms.fees, Decimal("590.00"))
        self.assertEqual(Decimal(app.apr), Decimal("62.60"))
        self.assertEqual(app_to_response(app)["apr"], "62.60")

    async def test_priced_application_without_apr_reports_zero(self):
        app = self._application("app-1", "under_review")
        app.interest_percent_per_day = Decimal("0.1")
        with self.assertLogs("services.financial_terms", level="WARNING"):
            self.assertEqual(app_to_response(app)["apr"], "0.00")

    async def test_unpriced_application_has_no_apr(self):
        self.assertIsNone(app_to_response(self._application("app-1", "submitted"))["apr"])

    async def test_processed_application_terms_are_fixed(self):
        app = self._application("app-1", "disbursal")
        app.processed_at = NOW
        self.session.add(app)
        await self.session.flush()
        with self.assertRaises(StateConflictError):
            await applications.commit_terms(self.session, "app-1", Decimal("0.1"), Decimal("10"), now=NOW)

    async def test_dashboard_shows_committed_apr(self):
        await self._make_eligible()
        app = await applications.submit_loan_application(self.session, "usr-1", Decimal("5000"), None, NOW)
        await applications.commit_terms(self.session, app.id, Decimal("0.1"), Decimal("10"), now=NOW)
        summary = await build_dashboard(self.session, "usr-1", TTLCache(300), NOW)
        self.assertEqual(summary["activeApplication"]["apr"], "62.60")


class TestSqlCollaborators(ServiceTestCase):
    async def test_reads_most_recent_first(self):
        self.session.add_all(
            [
                self._application("app-old", "cleared", NOW - timedelta(days=30)),
                self._application("app-new", "under_review", NOW, current_step="complete"),
                ValidationAction(
                    id="va-1", loan_application_id="app-new", action_type="need_document",
                    action_details={"documents": ["PAN Card"]}, created_at=NOW - timedelta(hours=2),
                ),
                ValidationAction(
                    id="va-2", loan_application_id="app-new", action_type="need_document",
                    action_details={"documents": ["Salary Slip"]}, created_at=NOW,
                ),
                UploadedDocument(id="doc-1", loan_application_id="app-new", document_name="pan.jpg"),
            ]
        )
        await self.session.flush()
        collaborators = SqlCollaborators(self.session)

        apps = await collaborators.get_loan_applications("usr-1")
        self.assertTrue(apps.ok)
        self.assertEqual([a.id for a in apps.data], ["app-new", "app-old"])

        history = await collaborators.get_validation_history("app-new")
        self.assertEqual(history.data[0].documents, ["Salary Slip"])

        uploads = await collaborators.get_uploaded_documents("app-new")
        self.assertEqual(uploads.data[0].name, "pan.jpg")

        kyc = await collaborators.get_kyc_status("app-new")
        self.assertTrue(kyc.ok)
        self.assertIsNone(kyc.data)

    async def test_business_errors_become_failed_results(self):
        await self._make_eligible()
        collaborators = SqlCollaborators(self.session)
        first = await collaborators.submit_loan_application("usr-1", Decimal("5000"), None)
        self.assertTrue(first.ok)
        second = await collaborators.submit_loan_application("usr-1", Decimal("5000"), None)
        self.assertFalse(second.ok)
        self.assertEqual(second.reason, BusinessReason.ACTIVE_APPLICATION_EXISTS)

    async def test_gate_end_to_end(self):
        self.session.add_all(
            [
                self._application("app-1", "under_review", current_step="complete"),
                KYCRecord(id="kyc-1", loan_application_id="app-1", kyc_status="verified", rekyc_required=True),
            ]
        )
        await self.session.flush()
        decision = await NavigationGate(SqlCollaborators(self.session)).check("usr-1", "/dashboard")
        self.assertEqual(decision.action, "redirect")
        self.assertEqual(decision.target, KYC_PAGE)


class TestDashboard(ServiceTestCase):
    async def test_cached_until_invalidated(self):
        cache = TTLCache(300)
        first = await build_dashboard(self.session, "usr-1", cache, NOW)
        self.assertFalse(first["cached"])
        self.assertFalse(first["hold"]["isOnHold"])

        await self._make_eligible()
        second = await build_dashboard(self.session, "usr-1", cache, NOW)
        self.assertTrue(second["cached"])
        self.assertEqual(second["loanLimit"], "0.00")

        cache.invalidate("usr-1")
        third = await build_dashboard(self.session, "usr-1", cache, NOW)
        self.assertFalse(third["cached"])
        self.assertEqual(third["loanLimit"], "8000.00")


if __name__ == "__main__":
    unittest.main()
