from typing import List, Protocol

from bson import ObjectId
from pymongo.errors import PyMongoError

from courtroom.database.mongodb import cases_collection
from courtroom.errors import CaseNotFoundError, PersistenceError
from courtroom.models.case import Case, CaseCreate


class CaseRepository(Protocol):
    async def get_case(self, case_id: str) -> Case: ...

    async def list_cases(self) -> List[Case]: ...

    async def create_case(self, data: CaseCreate, created_by: str) -> Case: ...

    async def update_case(self, case_id: str, data: CaseCreate) -> Case: ...

    async def deactivate_case(self, case_id: str) -> None: ...


class MongoCaseRepository:
    def __init__(self, collection=cases_collection):
        self.collection = collection

    async def get_case(self, case_id: str) -> Case:
        # Clean the ID: remove accidental quotes from URL param
        clean_id = case_id.strip("'\"")
        try:
            doc = await self.collection.find_one({"id": clean_id, "is_active": {"$ne": False}}, {"_id": 0})
        except PyMongoError as e:
            raise PersistenceError(f"Could not load case: {e}") from e
        if not doc:
            raise CaseNotFoundError(f"Case {clean_id} not found")
        return Case(**doc)

    async def list_cases(self) -> List[Case]:
        try:
            docs = await self.collection.find({"is_active": {"$ne": False}}, {"_id": 0}).sort(
                [("difficulty_level", 1), ("title", 1)]
            ).to_list(length=200)
        except PyMongoError as e:
            raise PersistenceError(f"Could not load cases: {e}") from e
        return [Case(**doc) for doc in docs]

    async def create_case(self, data: CaseCreate, created_by: str) -> Case:
        case = Case(id=str(ObjectId()), created_by=created_by, **data.model_dump())
        try:
            await self.collection.insert_one(case.model_dump())
        except PyMongoError as e:
            raise PersistenceError(f"Could not create case: {e}") from e
        return case

    async def update_case(self, case_id: str, data: CaseCreate) -> Case:
        try:
            result = await self.collection.update_one(
                {"id": case_id, "is_active": {"$ne": False}}, {"$set": data.model_dump()}
            )
        except PyMongoError as e:
            raise PersistenceError(f"Could not update case: {e}") from e
        if result.matched_count == 0:
            raise CaseNotFoundError(f"Case {case_id} not found")
        return await self.get_case(case_id)

    async def deactivate_case(self, case_id: str) -> None:
        """Soft delete; past progress rows keep pointing at the case."""
        try:
            result = await self.collection.update_one({"id": case_id}, {"$set": {"is_active": False}})
        except PyMongoError as e:
            raise PersistenceError(f"Could not delete case: {e}") from e
        if result.matched_count == 0:
            raise CaseNotFoundError(f"Case {case_id} not found")
