# courtroom/config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "courtroom")

GROQ_API_KEY = os.getenv("GROQ_API_KEY")
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# live sessions untouched this long are dropped from memory
SESSION_IDLE_SECONDS = float(os.getenv("SESSION_IDLE_SECONDS", "3600"))


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(frozen=True)
class SimulationSettings:
    """Tuning constants for the turn scheduler.

    Delays are in seconds and only model persona "thinking time".
    """
    judge_response_probability: float = 0.4
    min_judge_interventions: int = 2
    max_judge_interventions: int = 3
    evidence_cap: int = 4
    response_delay: float = 2.0
    follow_up_delay: float = 2.0
    closing_delay: float = 8.0
    verdict_delay: float = 4.0
    max_student_chars: int = 2000
    model: str = GROQ_MODEL

    @classmethod
    def from_env(cls) -> "SimulationSettings":
        return cls(
            judge_response_probability=_env_float("JUDGE_RESPONSE_PROBABILITY", 0.4),
            min_judge_interventions=_env_int("MIN_JUDGE_INTERVENTIONS", 2),
            max_judge_interventions=_env_int("MAX_JUDGE_INTERVENTIONS", 3),
            evidence_cap=_env_int("EVIDENCE_CAP", 4),
            response_delay=_env_float("RESPONSE_DELAY", 2.0),
            follow_up_delay=_env_float("FOLLOW_UP_DELAY", 2.0),
            closing_delay=_env_float("CLOSING_DELAY", 8.0),
            verdict_delay=_env_float("VERDICT_DELAY", 4.0),
            max_student_chars=_env_int("MAX_STUDENT_CHARS", 2000),
            model=GROQ_MODEL,
        )
