# courtroom/routes/auth.py
from fastapi import APIRouter, HTTPException, Response, Cookie, Depends
from typing import List, Optional
import uuid
from bson import ObjectId
from bson.errors import InvalidId
from datetime import datetime
from passlib.context import CryptContext

from courtroom.database.mongodb import users_collection, auth_sessions_collection
from courtroom.models.users import ApiKeyUpdate, CurrentUser, UserLogin

router = APIRouter()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# ------------------------------- Password Helpers -------------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def to_current_user(user: dict) -> CurrentUser:
    return CurrentUser(
        user_id=str(user["_id"]),
        username=user["username"],
        role=user.get("role", "student"),
        provider_api_key=user.get("provider_api_key"),
    )

# ------------------------------- Reusable Dependencies -------------------------------
async def get_current_user(session_cookie: Optional[str] = Cookie(default=None)) -> CurrentUser:
    """Resolve the logged-in user from the auth cookie."""
    if not session_cookie:
        raise HTTPException(status_code=401, detail="Not authenticated")
    session = await auth_sessions_collection.find_one({"session_id": session_cookie})
    if not session:
        raise HTTPException(status_code=401, detail="Invalid session")
    user_id = session.get("user_id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Session invalid: missing user_id")
    try:
        user = await users_collection.find_one({"_id": ObjectId(user_id)})
    except InvalidId:
        raise HTTPException(status_code=401, detail="Session invalid: bad user_id")
    if not user or not user.get("is_active", True):
        raise HTTPException(status_code=404, detail="User not found")
    return to_current_user(user)

def require_role(roles: List[str]):
    async def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return current_user
    return checker

def _set_session_cookie(response: Response, session_id: str):
    response.set_cookie(
        key="session_cookie",
        value=session_id,
        httponly=True,
        samesite="lax",
        secure=False,
        path="/"
    )

# ------------------------------- Login -------------------------------
@router.post("/auth/login")
async def login_user(user: UserLogin, response: Response):
    db_user = await users_collection.find_one({"username": user.username})
    if not db_user or not verify_password(user.password, db_user["hashed_password"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not db_user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account is disabled")

    session_id = str(uuid.uuid4())
    await auth_sessions_collection.insert_one({
        "session_id": session_id,
        "user_id": db_user["_id"],
        "created_at": datetime.utcnow()
    })
    await users_collection.update_one({"_id": db_user["_id"]}, {"$set": {"last_login": datetime.utcnow()}})

    _set_session_cookie(response, session_id)

    current = to_current_user(db_user)
    return {
        "message": f"Hi {current.username}, you’re now logged in.",
        "user": current.model_dump()
    }

# ------------------------------- Logout -------------------------------
@router.post("/auth/logout")
async def logout_user(response: Response, session_cookie: Optional[str] = Cookie(default=None)):
    if session_cookie:
        await auth_sessions_collection.delete_one({"session_id": session_cookie})
        response.delete_cookie(
            key="session_cookie",
            path="/",
            samesite="lax",
            secure=False,
            httponly=True
        )
    return {"message": "Logged out successfully"}

# ------------------------------- Get Current User -------------------------------
@router.get("/auth/me")
async def get_me(current_user: CurrentUser = Depends(get_current_user)):
    return {
        **current_user.model_dump(),
        "has_provider_key": bool(current_user.provider_api_key),
    }

# ------------------------------- Provider API Key -------------------------------
@router.put("/auth/api-key")
async def update_api_key(data: ApiKeyUpdate, current_user: CurrentUser = Depends(get_current_user)):
    """Store the user's own language-model key; it is preferred over the server key."""
    key = (data.api_key or "").strip()
    if key:
        update = {"$set": {"provider_api_key": key}}
    else:
        update = {"$unset": {"provider_api_key": ""}}
    await users_collection.update_one({"_id": ObjectId(current_user.user_id)}, update)
    return {"message": "API key updated", "has_provider_key": bool(key)}
