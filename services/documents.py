"""
Reconciles an admin `need_document` request with what the user uploaded.
Names are free text on both sides, so matching is fuzzy: normalised equality,
containment either way, or one of a small fixed set of synonym rules.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Optional, Sequence

from schemas.gate import DocumentRequestStatus, UploadedDocumentSnapshot, ValidationActionSnapshot

logger = logging.getLogger(__name__)

NEED_DOCUMENT = "need_document"

# (fragment in requested name, fragment in uploaded name)
SYNONYM_RULES: tuple[tuple[str, str], ...] = (
    ("aadhar", "aadhaar"),
    ("aadhaar", "aadhar"),
    ("pan", "pan"),
)

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize_document_name(name: Optional[str]) -> str:
    return _NON_ALNUM.sub("", (name or "").lower())


def document_matches(requested: str, uploaded: str) -> bool:
    req = normalize_document_name(requested)
    up = normalize_document_name(uploaded)
    if not req or not up:
        return False
    if req == up or req in up or up in req:
        return True
    return any(a in req and b in up for a, b in SYNONYM_RULES)


def requested_documents(details: Any) -> list[str]:
    """Document names from a need_document payload ({"documents": [...]} or a bare list)."""
    if isinstance(details, dict):
        details = details.get("documents")
    if not isinstance(details, list):
        return []
    return [str(d) for d in details if isinstance(d, str) and d.strip()]


def latest_document_request(actions: Iterable[ValidationActionSnapshot]) -> Optional[ValidationActionSnapshot]:
    requests = [a for a in actions if a.action_type == NEED_DOCUMENT]
    if not requests:
        return None
    # ties keep the first entry; callers pass most-recent-first
    return max(requests, key=lambda a: a.created_at.timestamp() if a.created_at else float("-inf"))


def missing_documents(requested: Sequence[str], uploaded: Iterable[UploadedDocumentSnapshot]) -> list[str]:
    usable = [d.name for d in uploaded if d.status != "rejected"]
    return [name for name in requested if not any(document_matches(name, u) for u in usable)]


def resolve_pending(requested: Sequence[str], uploaded: Iterable[UploadedDocumentSnapshot]) -> bool:
    """True when every requested document is covered by a non-rejected upload."""
    return not missing_documents(requested, uploaded)


def document_request_status(
    application_id: str,
    actions: Iterable[ValidationActionSnapshot],
    uploaded: Optional[list[UploadedDocumentSnapshot]],
) -> DocumentRequestStatus:
    """`uploaded=None` means the upload list could not be fetched; that reports nothing pending."""
    request = latest_document_request(actions)
    if request is None:
        return DocumentRequestStatus(application_id=application_id)
    if uploaded is None:
        logger.warning("Uploaded documents unavailable for %s; treating request as satisfied", application_id)
        return DocumentRequestStatus(application_id=application_id, requested=request.documents)
    return DocumentRequestStatus(
        application_id=application_id,
        requested=request.documents,
        missing=missing_documents(request.documents, uploaded),
    )
