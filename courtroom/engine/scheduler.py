import asyncio
import logging
import random
import time
from typing import Callable, List, Optional

from bson import ObjectId

from courtroom.config import SimulationSettings
from courtroom.engine.achievements import AchievementEvaluator
from courtroom.engine.context_builder import build_prompt
from courtroom.engine.personas import STUDENT_NAME, SYSTEM_NAME, Persona, get_profile
from courtroom.engine.scoring import DEFAULT_SCORING, ScoringConfig
from courtroom.engine.state import CourtSession
from courtroom.engine.transcript import TranscriptStore
from courtroom.errors import GatewayError, PersistenceError, StateError, ValidationError
from courtroom.models.case import Case
from courtroom.models.session import Phase, Speaker, Turn, TurnResult
from courtroom.services.session_finalizer import elapsed_seconds, finalize_court_session

logger = logging.getLogger(__name__)

# ================= SITUATIONS =================
OPENING_SITUATION = (
    "You are now opening the trial about: {description}. The following evidence is available: "
    "{evidence}. Open the hearing formally and ask the prosecutor to begin."
)
FIRST_EVIDENCE_SITUATION = (
    "The judge has opened the hearing. Now present the case and the first piece of evidence "
    "against the defendant. Use concrete evidence from the list."
)
JUDGE_FOLLOW_UP_SITUATION = (
    'The defendant answered: "{message}". Respond as the judge - ask follow-up questions or '
    "request clarification. Lead the conversation."
)
PROSECUTOR_FOLLOW_UP_SITUATION = (
    'The defendant says: "{message}". Respond to this as the public prosecutor. Present new '
    "evidence or ask critical follow-up questions. Use the available evidence."
)
EVIDENCE_FOCUS = ' Focus on this piece of evidence: "{evidence}".'
CLOSING_SITUATION = (
    "The hearing has gone on long enough. Now make your sentencing demand based on all the "
    "evidence presented and the defendant's responses. Be concrete about the sentence."
)
VERDICT_SITUATION = (
    "Having heard all arguments and evidence, now deliver your verdict as judge. Weigh the "
    "evidence against the defence and reach a judgment."
)


class TurnScheduler:
    """
    Drives one courtroom session through
    not_started -> opening -> active -> closing -> ended.

    Every public method runs one externally triggered step and returns the
    turns it produced. Gateway failures never escape: they become a system
    turn and student input is enabled again.
    """

    def __init__(
        self,
        gateway,
        storage,
        settings: Optional[SimulationSettings] = None,
        rng=None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable = asyncio.sleep,
        scoring: ScoringConfig = DEFAULT_SCORING,
        achievements: Optional[AchievementEvaluator] = None,
    ):
        self.gateway = gateway
        self.storage = storage
        self.settings = settings or SimulationSettings()
        self.rng = rng or random.Random()
        self.clock = clock
        self._sleep = sleep
        self.scoring = scoring
        self.achievements = achievements or AchievementEvaluator(storage)

    # ================= SESSION PROTOCOL =================
    def create_session(
        self,
        user_id: str,
        case: Case,
        credential: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> CourtSession:
        session_id = session_id or str(ObjectId())
        errors: List[str] = []
        return CourtSession(
            session_id=session_id,
            user_id=user_id,
            case=case,
            transcript=TranscriptStore(
                session_id,
                self.storage,
                errors=errors,
                owner={"user_id": user_id, "case_id": case.id, "case_title": case.title},
            ),
            model=self.settings.model,
            credential=credential,
            errors=errors,
        )

    async def start_session(self, session: CourtSession) -> TurnResult:
        if session.phase != Phase.NOT_STARTED:
            raise StateError("This session has already been started")
        if session.lock.locked():
            raise StateError("The session is already starting")

        async with session.lock:
            since = len(session.transcript)
            session.advance_to(Phase.OPENING)
            session.started_at = self.clock()
            logger.info(f"session_start | session={session.session_id} user={session.user_id} case={session.case.id}")

            # a failed open is retried by the next transcript flush
            await session.transcript.open()

            opening = await self._persona_turn(
                session,
                Persona.JUDGE,
                OPENING_SITUATION.format(
                    description=session.case.description,
                    evidence=", ".join(session.case.evidence),
                ),
            )
            if opening is None:
                return self._result(session, since)

            session.advance_to(Phase.ACTIVE)
            self._log_phase(session)
            if self._failed(opening):
                session.input_enabled = True
                return self._result(session, since)

            await self._pause(self.settings.follow_up_delay)
            situation = FIRST_EVIDENCE_SITUATION
            evidence = session.next_evidence()
            if evidence:
                situation += EVIDENCE_FOCUS.format(evidence=evidence)
            presented = await self._persona_turn(session, Persona.PROSECUTOR, situation)
            if presented is not None:
                if not self._failed(presented):
                    session.evidence_shown()
                session.input_enabled = True
            return self._result(session, since)

    async def submit_student_turn(self, session: CourtSession, text: str) -> TurnResult:
        if session.ended:
            raise StateError("This session has ended")
        if session.phase not in (Phase.ACTIVE, Phase.CLOSING):
            raise StateError("The hearing has not been opened yet")
        if session.lock.locked() or not session.input_enabled:
            raise StateError("Wait for the court to respond")
        text = (text or "").strip()
        if not text:
            raise ValidationError("Your message cannot be empty")
        if len(text) > self.settings.max_student_chars:
            raise ValidationError(f"Your message is longer than {self.settings.max_student_chars} characters")

        async with session.lock:
            since = len(session.transcript)
            session.input_enabled = False
            session.transcript.append(Speaker.STUDENT, STUDENT_NAME, text)
            logger.info(f"student_turn | session={session.session_id} phase={session.phase.value} chars={len(text)}")

            if session.phase == Phase.CLOSING:
                await self._closing(session)
            else:
                await self._respond(session, text)
            return self._result(session, since)

    async def end_session_manually(self, session: CourtSession) -> TurnResult:
        """Jump straight to ended; safe while a persona call is in flight."""
        if session.ended:
            raise StateError("This session has already ended")

        since = len(session.transcript)
        logger.info(f"session_end_manual | session={session.session_id} from={session.phase.value}")
        session.advance_to(Phase.ENDED)
        session.input_enabled = False
        await self._complete(session)
        return self._result(session, since)

    def view(self, session: CourtSession) -> TurnResult:
        return self._result(session, 0, consume_errors=False)

    # ================= TURN TAKING =================
    def judge_should_respond(self, session: CourtSession) -> bool:
        s = self.settings
        draw = self.rng.random()
        if session.judge_interventions >= s.max_judge_interventions:
            return False
        return draw < s.judge_response_probability or session.judge_interventions < s.min_judge_interventions

    async def _respond(self, session: CourtSession, message: str) -> None:
        s = self.settings

        if self.judge_should_respond(session):
            await self._pause(s.response_delay)
            turn = await self._persona_turn(
                session,
                Persona.JUDGE,
                JUDGE_FOLLOW_UP_SITUATION.format(message=message),
                responding_to=message,
            )
            if turn is None:
                return
            if not self._failed(turn):
                session.judge_interventions += 1
        else:
            await self._pause(s.response_delay)
            situation = PROSECUTOR_FOLLOW_UP_SITUATION.format(message=message)
            evidence = session.next_evidence()
            if evidence:
                situation += EVIDENCE_FOCUS.format(evidence=evidence)
            turn = await self._persona_turn(session, Persona.PROSECUTOR, situation, responding_to=message)
            if turn is None:
                return
            if not self._failed(turn):
                session.evidence_shown()
                session.evidence_presented = min(session.evidence_presented + 1, session.total_evidence)
                if session.evidence_presented >= session.evidence_target(s.evidence_cap):
                    await self._pause(s.closing_delay)
                    await self._closing(session)
                    return

        session.input_enabled = True

    async def _closing(self, session: CourtSession) -> None:
        if session.ended:
            return
        if session.phase == Phase.ACTIVE:
            session.advance_to(Phase.CLOSING)
            self._log_phase(session)

        if not session.closing_statement_given:
            demand = await self._persona_turn(session, Persona.PROSECUTOR, CLOSING_SITUATION)
            if demand is None:
                return
            if self._failed(demand):
                session.input_enabled = True
                return
            session.closing_statement_given = True
            await self._pause(self.settings.verdict_delay)

        verdict = await self._persona_turn(session, Persona.JUDGE, VERDICT_SITUATION)
        if verdict is None:
            return
        if self._failed(verdict):
            session.input_enabled = True
            return

        session.verdict_reached = True
        session.advance_to(Phase.ENDED)
        self._log_phase(session)
        await self._complete(session)

    async def _persona_turn(
        self,
        session: CourtSession,
        persona: Persona,
        situation: str,
        responding_to: Optional[str] = None,
    ) -> Optional[Turn]:
        """Returns None when the session ended before the persona could speak."""
        if session.ended:
            return None

        profile = get_profile(persona)
        payload = build_prompt(session.case, session.transcript.turns, persona, situation, responding_to)
        try:
            text = await self.gateway.complete(payload, session.model, session.credential)
        except GatewayError as e:
            if session.ended:
                return None
            logger.warning(f"persona_turn_failed | session={session.session_id} persona={persona.value} kind={e.kind.value} | {e}")
            return session.transcript.append(Speaker.SYSTEM, SYSTEM_NAME, f"Error: {e.user_message}")

        if session.ended:
            logger.info(f"persona_turn_discarded | session={session.session_id} persona={persona.value}")
            return None

        turn = session.transcript.append(persona.speaker, profile.display_name, text)
        self._log_turn(session, turn)
        return turn

    # ================= COMPLETION =================
    async def _complete(self, session: CourtSession) -> None:
        if session.result is not None:
            return

        duration = elapsed_seconds(session, self.clock())
        session.result = finalize_court_session(session, duration, self.scoring)
        logger.info(
            f"session_scored | session={session.session_id} score={session.result.score} "
            f"elapsed={duration}s student_turns={session.result.student_turns} verdict={session.verdict_reached}"
        )

        await session.transcript.drain()
        try:
            await self.storage.finalize_session(
                session.session_id,
                session.result.score,
                duration,
                list(session.transcript.turns),
                user_id=session.user_id,
                case_id=session.case.id,
                case_title=session.case.title,
            )
        except PersistenceError as e:
            logger.warning(f"finalize_failed | session={session.session_id} | {e}")
            session.errors.append(f"The final result could not be saved: {e}")
            return

        try:
            granted = await self.achievements.evaluate(session.user_id, session.result.score, duration)
        except PersistenceError as e:
            logger.warning(f"achievements_failed | session={session.session_id} | {e}")
            session.errors.append(f"Achievements could not be checked: {e}")
            return
        session.achievements = [a.value for a in granted]

    # ================= HELPERS =================
    async def _pause(self, seconds: float) -> None:
        if seconds > 0:
            await self._sleep(seconds)

    @staticmethod
    def _failed(turn: Turn) -> bool:
        return turn.speaker == Speaker.SYSTEM

    def _result(self, session: CourtSession, since: int, consume_errors: bool = True) -> TurnResult:
        if consume_errors:
            errors = session.errors[session.reported_errors:]
            session.reported_errors = len(session.errors)
        else:
            errors = list(session.errors)
        return TurnResult(
            session_id=session.session_id,
            phase=session.phase,
            turns=list(session.transcript.turns[since:]),
            input_enabled=session.input_enabled,
            judge_interventions=session.judge_interventions,
            evidence_presented=session.evidence_presented,
            result=session.result,
            achievements=list(session.achievements),
            errors=errors,
        )

    def _log_phase(self, session: CourtSession) -> None:
        logger.info(f"phase_transition | session={session.session_id} phase={session.phase.value}")

    def _log_turn(self, session: CourtSession, turn: Turn) -> None:
        snippet = turn.text if len(turn.text) <= 200 else turn.text[:200] + "..."
        one_line = " ".join(snippet.split())
        logger.info(
            f"persona_turn | session={session.session_id} spk={turn.speaker.value} phase={session.phase.value} "
            f"judge={session.judge_interventions} evidence={session.evidence_presented} | msg='{one_line}'"
        )
