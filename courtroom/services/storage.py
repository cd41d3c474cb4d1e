# courtroom/services/storage.py
import logging
from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from courtroom.database.mongodb import achievements_collection, progress_collection
from courtroom.engine.achievements import ACHIEVEMENTS, AchievementType
from courtroom.errors import PersistenceError
from courtroom.models.session import Achievement, ProgressRecord, ProgressStats, Turn

logger = logging.getLogger(__name__)


class Storage(Protocol):
    async def open_session(self, session_id: str, user_id: str, case_id: str, case_title: str) -> None: ...

    async def get_transcript(self, session_id: str) -> List[Turn]: ...

    async def append_turn(self, session_id: str, turn: Turn) -> None: ...

    async def finalize_session(
        self,
        session_id: str,
        score: int,
        elapsed_seconds: int,
        transcript: Sequence[Turn],
        *,
        user_id: str,
        case_id: str,
        case_title: Optional[str] = None,
    ) -> None: ...

    async def record_achievement(self, user_id: str, achievement_type: str) -> bool: ...

    async def count_completed_sessions(self, user_id: str) -> int: ...

    async def list_progress(self, user_id: str) -> List[ProgressRecord]: ...

    async def progress_stats(self, user_id: str) -> ProgressStats: ...

    async def list_achievements(self, user_id: str) -> List[Achievement]: ...


def _turn_doc(turn: Turn) -> dict:
    return turn.model_dump(mode="json")


class MongoStorage:
    """Progress and achievements on top of the motor collections."""

    def __init__(self, progress=progress_collection, achievements=achievements_collection):
        self.progress = progress
        self.achievements = achievements
        self._indexes_ready = False

    async def ensure_indexes(self) -> None:
        if self._indexes_ready:
            return
        try:
            await self.progress.create_index("session_id", unique=True)
            await self.progress.create_index([("user_id", ASCENDING), ("status", ASCENDING)])
            await self.achievements.create_index(
                [("user_id", ASCENDING), ("achievement_type", ASCENDING)], unique=True
            )
        except PyMongoError as e:
            raise PersistenceError(f"Could not create indexes: {e}") from e
        self._indexes_ready = True
        logger.info("progress and achievement indexes ready")

    # ================= TRANSCRIPT =================
    async def open_session(self, session_id: str, user_id: str, case_id: str, case_title: str) -> None:
        await self.ensure_indexes()
        record = ProgressRecord(session_id=session_id, user_id=user_id, case_id=case_id, case_title=case_title)
        try:
            # idempotent: a retried open leaves an existing record alone
            await self.progress.update_one(
                {"session_id": session_id},
                {"$setOnInsert": record.model_dump(mode="python", exclude={"session_id"})},
                upsert=True,
            )
        except PyMongoError as e:
            raise PersistenceError(f"Could not open progress record: {e}") from e

    async def get_transcript(self, session_id: str) -> List[Turn]:
        try:
            doc = await self.progress.find_one({"session_id": session_id}, {"conversation_log": 1})
        except PyMongoError as e:
            raise PersistenceError(f"Could not load transcript: {e}") from e
        if not doc:
            return []
        return [Turn(**t) for t in doc.get("conversation_log", [])]

    async def append_turn(self, session_id: str, turn: Turn) -> None:
        try:
            result = await self.progress.update_one(
                {"session_id": session_id, "status": "started"},
                {"$push": {"conversation_log": _turn_doc(turn)}},
            )
        except PyMongoError as e:
            raise PersistenceError(f"Could not save turn: {e}") from e
        if result.matched_count == 0:
            raise PersistenceError(f"No open progress record for session {session_id}")

    async def finalize_session(
        self,
        session_id: str,
        score: int,
        elapsed_seconds: int,
        transcript: Sequence[Turn],
        *,
        user_id: str,
        case_id: str,
        case_title: Optional[str] = None,
    ) -> None:
        try:
            await self.progress.update_one(
                {"session_id": session_id},
                {
                    "$set": {
                        "status": "completed",
                        "score": score,
                        "time_spent": elapsed_seconds,
                        "conversation_log": [_turn_doc(t) for t in transcript],
                        "completed_at": datetime.utcnow(),
                    },
                    # only used when the record was never opened
                    "$setOnInsert": {
                        "user_id": user_id,
                        "case_id": case_id,
                        "case_title": case_title,
                        "created_at": datetime.utcnow(),
                    },
                },
                upsert=True,
            )
        except PyMongoError as e:
            raise PersistenceError(f"Could not complete session: {e}") from e

    # ================= ACHIEVEMENTS =================
    async def record_achievement(self, user_id: str, achievement_type: str) -> bool:
        info = ACHIEVEMENTS[AchievementType(achievement_type)]
        try:
            result = await self.achievements.update_one(
                {"user_id": user_id, "achievement_type": achievement_type},
                {"$setOnInsert": {
                    "achievement_name": info.name,
                    "description": info.description,
                    "earned_at": datetime.utcnow(),
                }},
                upsert=True,
            )
        except DuplicateKeyError:
            # concurrent upsert won the race
            return False
        except PyMongoError as e:
            raise PersistenceError(f"Could not record achievement: {e}") from e
        return result.upserted_id is not None

    async def count_completed_sessions(self, user_id: str) -> int:
        try:
            return await self.progress.count_documents({"user_id": user_id, "status": "completed"})
        except PyMongoError as e:
            raise PersistenceError(f"Could not count sessions: {e}") from e

    # ================= PROGRESS VIEWS =================
    async def list_progress(self, user_id: str) -> List[ProgressRecord]:
        try:
            docs = await self.progress.find({"user_id": user_id}).sort("created_at", DESCENDING).to_list(length=100)
        except PyMongoError as e:
            raise PersistenceError(f"Could not load progress: {e}") from e
        return [ProgressRecord(**doc) for doc in docs]

    async def progress_stats(self, user_id: str) -> ProgressStats:
        pipeline = [
            {"$match": {"user_id": user_id}},
            {"$group": {
                "_id": None,
                "total_cases": {"$sum": 1},
                "completed_cases": {"$sum": {"$cond": [{"$eq": ["$status", "completed"]}, 1, 0]}},
                "average_score": {"$avg": {"$cond": [{"$eq": ["$status", "completed"]}, "$score", None]}},
                "total_time": {"$sum": "$time_spent"},
            }},
        ]
        try:
            rows = await self.progress.aggregate(pipeline).to_list(length=1)
        except PyMongoError as e:
            raise PersistenceError(f"Could not load statistics: {e}") from e
        if not rows:
            return ProgressStats()
        row = rows[0]
        row.pop("_id", None)
        return ProgressStats(**row)

    async def list_achievements(self, user_id: str) -> List[Achievement]:
        try:
            docs = await self.achievements.find({"user_id": user_id}).sort("earned_at", DESCENDING).to_list(length=100)
        except PyMongoError as e:
            raise PersistenceError(f"Could not load achievements: {e}") from e
        return [Achievement(**doc) for doc in docs]
