from pydantic import BaseModel, Field
from typing import Optional

class UserLogin(BaseModel):
    username: str
    password: str

class CurrentUser(BaseModel):
    user_id: str
    username: str
    role: str = "student"
    provider_api_key: Optional[str] = Field(default=None, exclude=True)

class ApiKeyUpdate(BaseModel):
    # empty or missing clears the stored key
    api_key: Optional[str] = None
