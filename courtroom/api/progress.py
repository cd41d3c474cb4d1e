from fastapi import APIRouter, HTTPException, Depends
from typing import List

from courtroom.dependencies import get_storage
from courtroom.errors import PersistenceError
from courtroom.models.session import Achievement, ProgressRecord, ProgressStats
from courtroom.models.users import CurrentUser
from courtroom.routes.auth import get_current_user

router = APIRouter(prefix="/progress", tags=["Progress"])


@router.get("", response_model=List[ProgressRecord])
async def get_progress(current_user: CurrentUser = Depends(get_current_user), storage=Depends(get_storage)):
    try:
        return await storage.list_progress(current_user.user_id)
    except PersistenceError as e:
        raise HTTPException(503, str(e))


@router.get("/stats", response_model=ProgressStats)
async def get_stats(current_user: CurrentUser = Depends(get_current_user), storage=Depends(get_storage)):
    try:
        return await storage.progress_stats(current_user.user_id)
    except PersistenceError as e:
        raise HTTPException(503, str(e))


@router.get("/achievements", response_model=List[Achievement])
async def get_achievements(current_user: CurrentUser = Depends(get_current_user), storage=Depends(get_storage)):
    try:
        return await storage.list_achievements(current_user.user_id)
    except PersistenceError as e:
        raise HTTPException(503, str(e))
