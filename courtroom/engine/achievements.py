import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from courtroom.errors import PersistenceError

logger = logging.getLogger(__name__)


class AchievementType(str, Enum):
    FIRST_COMPLETION = "first_completion"
    HIGH_SCORE = "high_score"
    SPEED_DEMON = "speed_demon"
    MILESTONE_5 = "milestone_5"
    MILESTONE_10 = "milestone_10"


@dataclass(frozen=True)
class AchievementInfo:
    name: str
    description: str


ACHIEVEMENTS: Dict[AchievementType, AchievementInfo] = {
    AchievementType.FIRST_COMPLETION: AchievementInfo("First Case! 🎉", "You completed your first court case!"),
    AchievementType.HIGH_SCORE: AchievementInfo("Perfect Performance! ⭐", "You scored 90 or higher!"),
    AchievementType.SPEED_DEMON: AchievementInfo("Quick Jurist! ⚡", "Case completed in under 5 minutes!"),
    AchievementType.MILESTONE_5: AchievementInfo("Experienced Jurist! 🏆", "You completed 5 court cases!"),
    AchievementType.MILESTONE_10: AchievementInfo("Legal Expert! 🎓", "You completed 10 court cases!"),
}

HIGH_SCORE_THRESHOLD = 90
SPEED_LIMIT_SECONDS = 300


class AchievementEvaluator:
    """Grants one-time badges after a session has been finalized."""

    def __init__(self, storage):
        self.storage = storage

    def earned(self, completed_sessions: int, score: int, elapsed_seconds: int) -> List[AchievementType]:
        earned = []
        if completed_sessions == 1:
            earned.append(AchievementType.FIRST_COMPLETION)
        if score >= HIGH_SCORE_THRESHOLD:
            earned.append(AchievementType.HIGH_SCORE)
        if elapsed_seconds < SPEED_LIMIT_SECONDS:
            earned.append(AchievementType.SPEED_DEMON)
        if completed_sessions == 5:
            earned.append(AchievementType.MILESTONE_5)
        if completed_sessions == 10:
            earned.append(AchievementType.MILESTONE_10)
        return earned

    async def evaluate(self, user_id: str, score: int, elapsed_seconds: int) -> List[AchievementType]:
        """Returns only the achievements that were newly stored."""
        completed = await self.storage.count_completed_sessions(user_id)

        granted = []
        for achievement in self.earned(completed, score, elapsed_seconds):
            try:
                created = await self.storage.record_achievement(user_id, achievement.value)
            except PersistenceError as e:
                logger.warning(f"achievement_save_failed | user={user_id} type={achievement.value} | {e}")
                continue
            if created:
                logger.info(f"achievement_granted | user={user_id} type={achievement.value}")
                granted.append(achievement)
        return granted
