from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel
from typing import Optional
import logging

from courtroom.config import GROQ_API_KEY
from courtroom.dependencies import get_case_repository, get_registry, get_scheduler, get_storage
from courtroom.errors import CaseNotFoundError, PersistenceError, SessionNotFoundError, StateError, ValidationError
from courtroom.models.session import TurnResult
from courtroom.models.users import CurrentUser
from courtroom.routes.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/simulation", tags=["Simulation"])

# ================= MODELS =================
class StartRequest(BaseModel):
    case_id: str

class TurnRequest(BaseModel):
    text: Optional[str] = None

# ================= HELPERS =================
def provider_credential(user: CurrentUser) -> Optional[str]:
    return user.provider_api_key or GROQ_API_KEY

def get_live_session(session_id: str, user: CurrentUser, registry):
    try:
        return registry.get(session_id, user.user_id)
    except SessionNotFoundError:
        raise HTTPException(404, "Session not found")

def _report(result: TurnResult) -> TurnResult:
    if result.errors:
        logger.info(f"Session {result.session_id} reported: {result.errors}")
    return result

# ================= SESSION =================
@router.post("/start", response_model=TurnResult)
async def start(
    req: StartRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scheduler=Depends(get_scheduler),
    cases=Depends(get_case_repository),
    registry=Depends(get_registry),
):
    try:
        case = await cases.get_case(req.case_id)
    except CaseNotFoundError:
        raise HTTPException(404, "Case not found")
    except PersistenceError as e:
        raise HTTPException(503, str(e))

    # finished sessions of this user and idle sessions of anyone leave memory here
    for old in registry.for_user(current_user.user_id):
        if old.ended:
            registry.discard(old.session_id)
    registry.sweep()

    session = scheduler.create_session(
        user_id=current_user.user_id,
        case=case,
        credential=provider_credential(current_user),
    )
    registry.add(session)
    logger.info(f"Starting session {session.session_id} for user {current_user.user_id} on case {case.id}")

    result = await scheduler.start_session(session)
    return _report(result)

@router.get("/{session_id}", response_model=TurnResult)
async def fetch_session(
    session_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    scheduler=Depends(get_scheduler),
    registry=Depends(get_registry),
):
    session = get_live_session(session_id, current_user, registry)
    return scheduler.view(session)

@router.get("/{session_id}/transcript")
async def transcript(
    session_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    registry=Depends(get_registry),
    storage=Depends(get_storage),
):
    try:
        session = registry.get(session_id, current_user.user_id)
    except SessionNotFoundError:
        # no longer live; fall back to what was persisted
        records = await storage.list_progress(current_user.user_id)
        if not any(r.session_id == session_id for r in records):
            raise HTTPException(404, "Session not found")
        return await storage.get_transcript(session_id)
    return list(session.transcript.turns)

# ================= STUDENT =================
@router.post("/{session_id}/turn", response_model=TurnResult)
async def submit_turn(
    session_id: str,
    req: TurnRequest,
    current_user: CurrentUser = Depends(get_current_user),
    scheduler=Depends(get_scheduler),
    registry=Depends(get_registry),
):
    session = get_live_session(session_id, current_user, registry)
    try:
        result = await scheduler.submit_student_turn(session, req.text or "")
    except ValidationError as e:
        raise HTTPException(400, str(e))
    except StateError as e:
        raise HTTPException(409, str(e))
    return _report(result)

@router.post("/{session_id}/end", response_model=TurnResult)
async def end_session(
    session_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    scheduler=Depends(get_scheduler),
    registry=Depends(get_registry),
):
    session = get_live_session(session_id, current_user, registry)
    try:
        result = await scheduler.end_session_manually(session)
    except StateError as e:
        raise HTTPException(409, str(e))
    return _report(result)
