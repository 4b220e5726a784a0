from __future__ import annotations

from typing import Any

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from services.cache import TTLCache
from services.collaborators import SqlCollaborators
from services.errors import (
    BusinessReason,
    BusinessRuleError,
    HoldError,
    NotFoundError,
    StateConflictError,
)
from services.navigation_gate import GateCheckTracker
from utils.case import dict_keys_to_camel, model_to_response


def get_dashboard_cache(request: Request) -> TTLCache:
    return request.app.state.dashboard_cache


def get_gate_tracker(request: Request) -> GateCheckTracker:
    return request.app.state.gate_tracker


def get_collaborators(db: AsyncSession = Depends(get_db)) -> SqlCollaborators:
    return SqlCollaborators(db)


async def forget_user(request: Request, db: AsyncSession, user_id: str) -> None:
    """Commit the mutation, then drop cached dashboard and gate state for the user."""
    await db.commit()
    request.app.state.dashboard_cache.invalidate(user_id)
    request.app.state.gate_tracker.reset(user_id)


def to_http_error(exc: BusinessRuleError) -> HTTPException:
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=404, detail=exc.message)
    if exc.reason is BusinessReason.COLLABORATOR_UNAVAILABLE:
        return HTTPException(status_code=503, detail=exc.message or "Service temporarily unavailable")
    detail: dict[str, Any] = {"reason": exc.reason.value, "message": exc.message}
    if isinstance(exc, HoldError):
        detail["hold"] = model_to_response(exc.hold)
        return HTTPException(status_code=403, detail=detail)
    if exc.details:
        detail["details"] = dict_keys_to_camel(exc.details)
    if isinstance(exc, StateConflictError):
        return HTTPException(status_code=409, detail=detail)
    return HTTPException(status_code=400, detail=detail)
