# courtroom/models/session.py

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum


class Phase(str, Enum):
    NOT_STARTED = "not_started"
    OPENING = "opening"
    ACTIVE = "active"
    CLOSING = "closing"
    ENDED = "ended"


PHASE_ORDER = list(Phase)


class Speaker(str, Enum):
    JUDGE = "judge"
    PROSECUTOR = "prosecutor"
    DEFENDANT = "defendant"
    STUDENT = "student"
    SYSTEM = "system"


class Turn(BaseModel):
    """
    A single utterance in the courtroom.
    speaker: judge | prosecutor | defendant | student | system
    name: display name used when the transcript is rendered
    timestamp: UTC datetime of the turn
    """
    model_config = ConfigDict(frozen=True)

    speaker: Speaker
    name: str
    text: str
    timestamp: datetime


class SessionResult(BaseModel):
    """
    Outcome of one completed session, computed once.
    score is clamped to 0-100; the bonuses explain how it was reached.
    """
    score: int
    base: int
    time_bonus: int
    participation_bonus: int
    engagement_bonus: int
    student_turns: int
    average_length: float
    elapsed_seconds: int
    verdict_reached: bool
    feedback: str


class TurnResult(BaseModel):
    """What the client gets back after each step of the session protocol."""
    session_id: str
    phase: Phase
    turns: List[Turn] = Field(default_factory=list)
    input_enabled: bool = False
    judge_interventions: int = 0
    evidence_presented: int = 0
    result: Optional[SessionResult] = None
    achievements: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


class ProgressRecord(BaseModel):
    session_id: str

    user_id: str
    case_id: str
    case_title: Optional[str] = None

    status: str = "started"              # started | completed
    score: Optional[int] = None
    time_spent: int = 0

    conversation_log: List[Turn] = Field(default_factory=list)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None


class ProgressStats(BaseModel):
    total_cases: int = 0
    completed_cases: int = 0
    average_score: Optional[float] = None
    total_time: int = 0


class Achievement(BaseModel):
    user_id: str
    achievement_type: str
    achievement_name: str
    description: str
    earned_at: datetime = Field(default_factory=datetime.utcnow)
