from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from services.applications import get_user, list_user_applications
from services.cache import TTLCache
from services.eligibility import hold_status
from services.financial_terms import outstanding_balance, resolve_apr
from services.status_classifier import TERMINAL_STATUSES
from utils.case import model_to_response


def _money_str(value: Any) -> Optional[str]:
    return None if value is None else f"{value:.2f}"


async def build_dashboard(
    session: AsyncSession,
    user_id: str,
    cache: TTLCache,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Dashboard summary for a user, cached per user until a mutation invalidates it.
    The navigation gate never reads from here.
    """
    cached = cache.get(user_id)
    if cached is not None:
        return {**cached, "cached": True}

    now = now or datetime.now(timezone.utc)
    user = await get_user(session, user_id)
    apps = await list_user_applications(session, user_id)
    active = next((a for a in apps if a.status not in TERMINAL_STATUSES), None)
    hold = hold_status(user, now)

    active_summary = None
    if active is not None:
        active_summary = {
            "id": active.id,
            "status": active.status,
            "currentStep": active.current_step,
            "loanAmount": _money_str(active.loan_amount),
            "dueDate": active.due_date.isoformat() if active.due_date else None,
            "extensionCount": active.extension_count or 0,
            "apr": str(resolve_apr(active.apr)) if active.interest_percent_per_day is not None else None,
            "outstandingBalance": (
                _money_str(outstanding_balance(active.loan_amount, active.post_service_fee))
                if active.processed_at
                else None
            ),
        }

    summary = {
        "userId": user.id,
        "name": user.name,
        "status": user.status,
        "eligibilityStatus": user.eligibility_status,
        "loanLimit": _money_str(user.loan_limit),
        "hold": model_to_response(hold),
        "activeApplication": active_summary,
        "applicationCount": len(apps),
        "cleared": sum(1 for a in apps if a.status == "cleared"),
        "generatedAt": now.isoformat(),
    }
    cache.set(user_id, summary)
    return {**summary, "cached": False}
