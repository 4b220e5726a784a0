"""
Tests for matching admin document requests against uploads.
"""
import unittest
from datetime import datetime, timezone

from schemas.gate import UploadedDocumentSnapshot, ValidationActionSnapshot
from services.documents import (
    document_matches,
    document_request_status,
    latest_document_request,
    missing_documents,
    normalize_document_name,
    requested_documents,
    resolve_pending,
)


def _upload(name, status="pending"):
    return UploadedDocumentSnapshot(name=name, status=status)


def _request(action_id, documents, day):
    return ValidationActionSnapshot(
        id=action_id,
        loan_application_id="app-1",
        action_type="need_document",
        documents=documents,
        created_at=datetime(2026, 3, day, tzinfo=timezone.utc),
    )


class TestDocumentMatching(unittest.TestCase):
    def test_normalize(self):
        self.assertEqual(normalize_document_name("Aadhaar Card (Front)"), "aadhaarcardfront")
        self.assertEqual(normalize_document_name(None), "")

    def test_equal_and_containment(self):
        self.assertTrue(document_matches("Salary Slip", "salary-slip"))
        self.assertTrue(document_matches("Salary Slip", "Salary slip March 2026.pdf"))
        self.assertTrue(document_matches("Bank Statement March", "bank statement"))

    def test_synonyms(self):
        """aadhar/aadhaar spelling and any PAN document count as the same."""
        self.assertTrue(document_matches("Aadhar Card", "aadhaar_card.pdf"))
        self.assertTrue(document_matches("Aadhaar", "my aadhar"))
        self.assertTrue(document_matches("PAN Card", "pan.jpg"))

    def test_unrelated_names(self):
        self.assertFalse(document_matches("Bank Statement", "Aadhaar"))
        self.assertFalse(document_matches("", "anything"))

    def test_rejected_upload_does_not_satisfy(self):
        uploads = [_upload("Aadhaar Card", status="rejected")]
        self.assertEqual(missing_documents(["Aadhaar Card"], uploads), ["Aadhaar Card"])
        self.assertFalse(resolve_pending(["Aadhaar Card"], uploads))

    def test_all_satisfied(self):
        uploads = [_upload("aadhaar front", "verified"), _upload("PAN"), _upload("salary slip")]
        self.assertTrue(resolve_pending(["Aadhar Card", "Pan Card", "Salary Slip"], uploads))


class TestDocumentRequests(unittest.TestCase):
    def test_latest_request_supersedes(self):
        older = _request("va-1", ["Bank Statement", "Salary Slip"], 1)
        newer = _request("va-2", ["Rent Agreement"], 5)
        other = ValidationActionSnapshot(id="va-3", loan_application_id="app-1", action_type="approve")
        self.assertEqual(latest_document_request([other, older, newer]).id, "va-2")
        self.assertIsNone(latest_document_request([other]))

        status = document_request_status("app-1", [newer, older], [_upload("salary slip")])
        self.assertEqual(status.requested, ["Rent Agreement"])
        self.assertEqual(status.missing, ["Rent Agreement"])
        self.assertTrue(status.pending)

    def test_upload_fetch_failure_reports_nothing_pending(self):
        with self.assertLogs("services.documents", level="WARNING"):
            status = document_request_status("app-1", [_request("va-1", ["PAN"], 1)], None)
        self.assertFalse(status.pending)

    def test_no_request(self):
        self.assertFalse(document_request_status("app-1", [], []).pending)

    def test_requested_documents_payload(self):
        self.assertEqual(requested_documents({"documents": ["PAN", " ", 3]}), ["PAN"])
        self.assertEqual(requested_documents(["Aadhaar"]), ["Aadhaar"])
        self.assertEqual(requested_documents(None), [])


if __name__ == "__main__":
    unittest.main()
