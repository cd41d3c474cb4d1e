from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

from courtroom.engine.transcript import TranscriptStore
from courtroom.errors import StateError
from courtroom.models.case import Case
from courtroom.models.session import PHASE_ORDER, Phase, SessionResult


@dataclass
class CourtSession:
    session_id: str
    user_id: str
    case: Case
    transcript: TranscriptStore
    model: str
    credential: Optional[str] = field(default=None, repr=False)
    phase: Phase = Phase.NOT_STARTED
    judge_interventions: int = 0
    evidence_presented: int = 0
    # index of the next item the prosecutor has not focused on yet
    evidence_cursor: int = 0
    started_at: Optional[float] = None
    input_enabled: bool = False
    closing_statement_given: bool = False
    verdict_reached: bool = False
    result: Optional[SessionResult] = None
    achievements: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    reported_errors: int = 0
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def total_evidence(self) -> int:
        return len(self.case.evidence)

    @property
    def ended(self) -> bool:
        return self.phase == Phase.ENDED

    def evidence_target(self, cap: int) -> int:
        return min(cap, self.total_evidence)

    def next_evidence(self) -> Optional[str]:
        if self.evidence_cursor < self.total_evidence:
            return self.case.evidence[self.evidence_cursor]
        return None

    def evidence_shown(self) -> None:
        self.evidence_cursor = min(self.evidence_cursor + 1, self.total_evidence)

    def advance_to(self, phase: Phase) -> None:
        """Phases only move forward."""
        if PHASE_ORDER.index(phase) <= PHASE_ORDER.index(self.phase):
            raise StateError(f"Cannot move from '{self.phase.value}' to '{phase.value}'")
        self.phase = phase
