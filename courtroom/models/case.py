from pydantic import BaseModel, Field
from typing import List, Optional


class Case(BaseModel):
    id: str
    title: str
    description: str
    evidence: List[str] = Field(default_factory=list)
    difficulty_level: int = 1
    category: str = "general"
    is_active: bool = True
    created_by: Optional[str] = None


class CaseCreate(BaseModel):
    title: str
    description: str
    evidence: List[str]
    difficulty_level: int = 1
    category: str = "general"
