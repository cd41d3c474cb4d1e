from functools import lru_cache

from courtroom.config import SESSION_IDLE_SECONDS, SimulationSettings
from courtroom.engine.gateway import ChatCompletionGateway
from courtroom.engine.scheduler import TurnScheduler
from courtroom.services.case_repository import MongoCaseRepository
from courtroom.services.registry import SessionRegistry
from courtroom.services.storage import MongoStorage


@lru_cache(maxsize=1)
def get_storage() -> MongoStorage:
    return MongoStorage()


@lru_cache(maxsize=1)
def get_case_repository() -> MongoCaseRepository:
    return MongoCaseRepository()


@lru_cache(maxsize=1)
def get_registry() -> SessionRegistry:
    return SessionRegistry(max_idle_seconds=SESSION_IDLE_SECONDS)


@lru_cache(maxsize=1)
def get_scheduler() -> TurnScheduler:
    return TurnScheduler(
        gateway=ChatCompletionGateway(),
        storage=get_storage(),
        settings=SimulationSettings.from_env(),
    )
