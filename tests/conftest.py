from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Dict, List, Optional, Sequence

import pytest

from courtroom.config import SimulationSettings
from courtroom.engine.achievements import ACHIEVEMENTS, AchievementType
from courtroom.engine.scheduler import TurnScheduler
from courtroom.errors import CaseNotFoundError, PersistenceError
from courtroom.models.case import Case, CaseCreate
from courtroom.models.session import Achievement, ProgressRecord, ProgressStats, Turn


class InMemoryStorage:
    def __init__(self):
        self.records: Dict[str, ProgressRecord] = {}
        self.appended: Dict[str, List[Turn]] = {}
        self.achievements: Dict[tuple, Achievement] = {}
        self.fail_opens = 0
        self.fail_appends = False
        self.fail_finalize = False
        self.fail_achievements = set()

    async def open_session(self, session_id, user_id, case_id, case_title):
        if self.fail_opens:
            self.fail_opens -= 1
            raise PersistenceError("database unavailable")
        self.records.setdefault(session_id, ProgressRecord(
            session_id=session_id, user_id=user_id, case_id=case_id, case_title=case_title
        ))

    async def get_transcript(self, session_id):
        record = self.records.get(session_id)
        return list(record.conversation_log) if record else []

    async def append_turn(self, session_id, turn):
        if self.fail_appends:
            raise PersistenceError("database unavailable")
        if session_id not in self.records:
            raise PersistenceError(f"No open progress record for session {session_id}")
        self.appended.setdefault(session_id, []).append(turn)

    async def finalize_session(self, session_id, score, elapsed_seconds, transcript: Sequence[Turn], *,
                               user_id, case_id, case_title=None):
        if self.fail_finalize:
            raise PersistenceError("database unavailable")
        record = self.records.get(session_id) or ProgressRecord(
            session_id=session_id, user_id=user_id, case_id=case_id, case_title=case_title
        )
        self.records[session_id] = record.model_copy(update={
            "status": "completed",
            "score": score,
            "time_spent": elapsed_seconds,
            "conversation_log": list(transcript),
            "completed_at": datetime.utcnow(),
        })

    async def record_achievement(self, user_id, achievement_type):
        if achievement_type in self.fail_achievements:
            raise PersistenceError("database unavailable")
        key = (user_id, achievement_type)
        if key in self.achievements:
            return False
        info = ACHIEVEMENTS[AchievementType(achievement_type)]
        self.achievements[key] = Achievement(
            user_id=user_id,
            achievement_type=achievement_type,
            achievement_name=info.name,
            description=info.description,
        )
        return True

    async def count_completed_sessions(self, user_id):
        return sum(1 for r in self.records.values() if r.user_id == user_id and r.status == "completed")

    async def list_progress(self, user_id):
        return [r for r in self.records.values() if r.user_id == user_id]

    async def progress_stats(self, user_id):
        mine = [r for r in self.records.values() if r.user_id == user_id]
        done = [r for r in mine if r.status == "completed"]
        return ProgressStats(
            total_cases=len(mine),
            completed_cases=len(done),
            average_score=sum(r.score for r in done) / len(done) if done else None,
            total_time=sum(r.time_spent for r in mine),
        )

    async def list_achievements(self, user_id):
        return [a for (uid, _), a in self.achievements.items() if uid == user_id]


class InMemoryCaseRepository:
    def __init__(self, cases: List[Case]):
        self.cases = {c.id: c for c in cases}

    async def get_case(self, case_id):
        case = self.cases.get(case_id)
        if case is None or not case.is_active:
            raise CaseNotFoundError(case_id)
        return case

    async def list_cases(self):
        return [c for c in self.cases.values() if c.is_active]

    async def create_case(self, data: CaseCreate, created_by):
        case = Case(id=f"case-{len(self.cases) + 1}", created_by=created_by, **data.model_dump())
        self.cases[case.id] = case
        return case

    async def update_case(self, case_id, data: CaseCreate):
        case = await self.get_case(case_id)
        self.cases[case_id] = case.model_copy(update=data.model_dump())
        return self.cases[case_id]

    async def deactivate_case(self, case_id):
        if case_id not in self.cases:
            raise CaseNotFoundError(case_id)
        self.cases[case_id] = self.cases[case_id].model_copy(update={"is_active": False})


class ScriptedGateway:
    """Answers every prompt with a numbered reply.

    ``failures`` maps a call index to the exception raised for that call;
    ``block_on`` holds call indexes that wait for ``release`` before answering.
    """

    def __init__(self, failures: Optional[Dict[int, Exception]] = None, block_on=()):
        self.failures = dict(failures or {})
        self.block_on = set(block_on)
        self.calls = []
        self.entered: Optional[asyncio.Event] = None
        self.release: Optional[asyncio.Event] = None

    async def complete(self, payload, model, credential):
        index = len(self.calls)
        self.calls.append((payload, model, credential))
        if index in self.block_on:
            self.entered.set()
            await self.release.wait()
        if index in self.failures:
            raise self.failures[index]
        return f"reply {index}"


class FixedRandom:
    """Replays the given draws; the last one repeats forever."""

    def __init__(self, *values):
        self.values = list(values)

    def random(self):
        if len(self.values) > 1:
            return self.values.pop(0)
        return self.values[0]


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


FAST = SimulationSettings(
    response_delay=0,
    follow_up_delay=0,
    closing_delay=0,
    verdict_delay=0,
    model="test-model",
)


@pytest.fixture
def case():
    return Case(
        id="burglary-1",
        title="The State v. Alex Vermeer",
        description="A laptop was stolen from a student dormitory on the night of 3 March.",
        evidence=[
            "CCTV footage of a hooded figure at 23:10",
            "Fingerprints on the window frame",
            "Witness statement from the neighbour",
            "The laptop found in the defendant's car",
            "Bank records showing a sale on a marketplace",
        ],
        difficulty_level=2,
        category="criminal",
    )


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_scheduler(storage, gateway, clock):
    def _make(rng=None, **kwargs):
        kwargs.setdefault("gateway", gateway)
        kwargs.setdefault("storage", storage)
        return TurnScheduler(settings=FAST, rng=rng or FixedRandom(0.9), clock=clock, **kwargs)
    return _make
