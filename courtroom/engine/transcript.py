import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple

from courtroom.errors import PersistenceError
from courtroom.models.session import Speaker, Turn

logger = logging.getLogger(__name__)


class TranscriptStore:
    """
    Append-only log of the turns of one session.

    Every append schedules a background write of the turns storage has not
    seen yet. A failed write is logged and kept in ``errors``; the unsent
    turns stay queued and go out with the next append. The same holds for
    the progress record itself when opening it failed.
    """

    def __init__(
        self,
        session_id: str,
        storage,
        turns: Optional[List[Turn]] = None,
        errors: Optional[List[str]] = None,
        owner: Optional[Dict[str, str]] = None,
    ):
        self.session_id = session_id
        self.storage = storage
        # user_id, case_id and case_title of the progress record; None when it already exists
        self.owner = owner
        self._opened = owner is None
        self._turns: List[Turn] = list(turns or [])
        self._pending: List[Turn] = []
        self._tasks: Set[asyncio.Task] = set()
        self._flush_lock = asyncio.Lock()
        self.errors: List[str] = errors if errors is not None else []

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> Tuple[Turn, ...]:
        return tuple(self._turns)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def student_turns(self) -> List[Turn]:
        return [t for t in self._turns if t.speaker == Speaker.STUDENT]

    def append(self, speaker: Speaker, name: str, text: str) -> Turn:
        timestamp = datetime.utcnow()
        if self._turns and timestamp < self._turns[-1].timestamp:
            timestamp = self._turns[-1].timestamp
        turn = Turn(speaker=speaker, name=name, text=text, timestamp=timestamp)
        self._turns.append(turn)
        self._pending.append(turn)
        self.schedule_flush()
        return turn

    def schedule_flush(self) -> None:
        task = asyncio.create_task(self.flush())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def open(self) -> bool:
        """Create the progress record; later flushes retry it until it exists."""
        async with self._flush_lock:
            return await self._open()

    async def _open(self) -> bool:
        if self._opened:
            return True
        try:
            await self.storage.open_session(self.session_id, **self.owner)
        except PersistenceError as e:
            logger.warning(f"progress_open_failed | session={self.session_id} | {e}")
            self.errors.append(f"Progress could not be saved: {e}")
            return False
        self._opened = True
        return True

    async def flush(self) -> bool:
        async with self._flush_lock:
            if self._pending and not await self._open():
                return False
            while self._pending:
                turn = self._pending[0]
                try:
                    await self.storage.append_turn(self.session_id, turn)
                except PersistenceError as e:
                    logger.warning(f"transcript_save_failed | session={self.session_id} pending={len(self._pending)} | {e}")
                    self.errors.append(f"Auto-save failed: {e}")
                    return False
                self._pending.pop(0)
        return True

    async def drain(self) -> None:
        """Wait for every scheduled write."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
