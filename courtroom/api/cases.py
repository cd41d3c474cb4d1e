from fastapi import APIRouter, HTTPException, Depends
from typing import List

from courtroom.dependencies import get_case_repository
from courtroom.errors import CaseNotFoundError, PersistenceError
from courtroom.models.case import Case, CaseCreate
from courtroom.models.users import CurrentUser
from courtroom.routes.auth import get_current_user, require_role

router = APIRouter()


def _clean_case(data: CaseCreate) -> CaseCreate:
    evidence = [e.strip() for e in data.evidence if e.strip()]
    if not data.title.strip() or not data.description.strip() or not evidence:
        raise HTTPException(status_code=400, detail="Title, description and evidence are required")
    return data.model_copy(update={"evidence": evidence})


# =========================
# GET ALL CASES
# =========================
@router.get("/cases", response_model=List[Case])
async def get_cases(current_user: CurrentUser = Depends(get_current_user), cases=Depends(get_case_repository)):
    try:
        return await cases.list_cases()
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


# =========================
# GET SINGLE CASE BY STRING ID
# =========================
@router.get("/cases/{case_id}", response_model=Case)
async def get_case(case_id: str, current_user: CurrentUser = Depends(get_current_user), cases=Depends(get_case_repository)):
    try:
        return await cases.get_case(case_id)
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


# =========================
# CREATE CASE (teachers/admins only)
# =========================
@router.post("/cases", response_model=Case)
async def create_case(
    data: CaseCreate,
    current_user: CurrentUser = Depends(require_role(["teacher", "admin"])),
    cases=Depends(get_case_repository),
):
    data = _clean_case(data)
    try:
        return await cases.create_case(data, created_by=current_user.user_id)
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


# =========================
# UPDATE CASE (teachers/admins only)
# =========================
@router.put("/cases/{case_id}", response_model=Case)
async def update_case(
    case_id: str,
    data: CaseCreate,
    current_user: CurrentUser = Depends(require_role(["teacher", "admin"])),
    cases=Depends(get_case_repository),
):
    data = _clean_case(data)
    try:
        return await cases.update_case(case_id, data)
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))


# =========================
# DELETE CASE (admins only, soft delete)
# =========================
@router.delete("/cases/{case_id}")
async def delete_case(
    case_id: str,
    current_user: CurrentUser = Depends(require_role(["admin"])),
    cases=Depends(get_case_repository),
):
    try:
        await cases.deactivate_case(case_id)
    except CaseNotFoundError:
        raise HTTPException(status_code=404, detail="Case not found")
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"message": "Case deleted"}
