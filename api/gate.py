from fastapi import APIRouter, Depends, Query

from api.deps import get_collaborators, get_gate_tracker
from services.collaborators import LoanCollaborators
from services.navigation_gate import GateCheckTracker, NavigationGate
from utils.case import model_to_response

router = APIRouter(prefix="/api/gate", tags=["gate"])


@router.get("")
async def check_navigation(
    user_id: str = Query(..., alias="userId"),
    path: str = Query("/dashboard"),
    collaborators: LoanCollaborators = Depends(get_collaborators),
    tracker: GateCheckTracker = Depends(get_gate_tracker),
):
    """Allow or redirect for one page load. Always 200; failures degrade to allow."""
    decision = await NavigationGate(collaborators, tracker).check(user_id, path)
    return model_to_response(decision)
