from dataclasses import dataclass
from typing import Sequence, Tuple

from courtroom.models.session import SessionResult

# (upper bound in seconds, bonus); first bracket with t < bound wins
TIME_BRACKETS = ((300, 10), (600, 20), (900, 15), (1200, 10))
# (minimum student turns, bonus)
PARTICIPATION_BRACKETS = ((5, 20), (3, 15), (1, 10))
# (average length must exceed, bonus)
ENGAGEMENT_BRACKETS = ((100, 15), (50, 10), (20, 5))


@dataclass(frozen=True)
class ScoringConfig:
    base: int = 50
    time_brackets: Tuple[Tuple[int, int], ...] = TIME_BRACKETS
    participation_brackets: Tuple[Tuple[int, int], ...] = PARTICIPATION_BRACKETS
    engagement_brackets: Tuple[Tuple[int, int], ...] = ENGAGEMENT_BRACKETS


DEFAULT_SCORING = ScoringConfig()


def time_bonus(elapsed_seconds: int, config: ScoringConfig = DEFAULT_SCORING) -> int:
    for bound, bonus in config.time_brackets:
        if elapsed_seconds < bound:
            return bonus
    return 0


def participation_bonus(student_turns: int, config: ScoringConfig = DEFAULT_SCORING) -> int:
    for minimum, bonus in config.participation_brackets:
        if student_turns >= minimum:
            return bonus
    return 0


def engagement_bonus(average_length: float, config: ScoringConfig = DEFAULT_SCORING) -> int:
    for threshold, bonus in config.engagement_brackets:
        if average_length > threshold:
            return bonus
    return 0


def score_feedback(score: int) -> str:
    if score >= 90:
        return "Excellent! You handled this case perfectly."
    if score >= 80:
        return "Well done! You show good legal skills."
    if score >= 70:
        return "Fair. There is still room for improvement."
    if score >= 60:
        return "Okay. Keep practising to get better."
    return "Try again! More participation will improve your score."


def calculate_score(
    elapsed_seconds: int,
    student_messages: Sequence[str],
    verdict_reached: bool = True,
    config: ScoringConfig = DEFAULT_SCORING,
) -> SessionResult:
    """Score a finished session.

    Pure function of the elapsed time and the student's own messages, in
    transcript order. ``verdict_reached`` is reported back but does not move
    the score.
    """
    n = len(student_messages)
    avg = sum(len(m) for m in student_messages) / n if n else 0.0

    t_bonus = time_bonus(elapsed_seconds, config)
    p_bonus = participation_bonus(n, config)
    e_bonus = engagement_bonus(avg, config)
    score = min(100, max(0, config.base + t_bonus + p_bonus + e_bonus))

    return SessionResult(
        score=score,
        base=config.base,
        time_bonus=t_bonus,
        participation_bonus=p_bonus,
        engagement_bonus=e_bonus,
        student_turns=n,
        average_length=round(avg, 2),
        elapsed_seconds=elapsed_seconds,
        verdict_reached=verdict_reached,
        feedback=score_feedback(score),
    )
