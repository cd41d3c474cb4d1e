from courtroom.engine.scoring import DEFAULT_SCORING, ScoringConfig, calculate_score
from courtroom.engine.state import CourtSession
from courtroom.models.session import SessionResult


def elapsed_seconds(live: CourtSession, now: float) -> int:
    if live.started_at is None:
        return 0
    return max(0, int(now - live.started_at))


def finalize_court_session(
    live: CourtSession,
    duration: int,
    config: ScoringConfig = DEFAULT_SCORING,
) -> SessionResult:

    messages = [turn.text for turn in live.transcript.student_turns()]

    return calculate_score(
        elapsed_seconds=duration,
        student_messages=messages,
        verdict_reached=live.verdict_reached,
        config=config,
    )
