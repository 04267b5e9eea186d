"""Data access for campuses"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from models import Campus, MapCoordinates
from schemas import Campus as CampusSchema
from services.errors import DuplicateCampusName


def _to_schema(campus: Campus) -> CampusSchema:
    return CampusSchema.model_validate(campus.model_dump())


class CampusStore:
    """MongoDB-backed campus storage"""

    async def list_campuses(self) -> List[CampusSchema]:
        campuses = await Campus.find_all().sort(+Campus.name).to_list()
        return [_to_schema(c) for c in campuses]

    async def get(self, campus_id: str) -> Optional[CampusSchema]:
        if not ObjectId.is_valid(campus_id):
            return None
        campus = await Campus.get(ObjectId(campus_id))
        return _to_schema(campus) if campus else None

    async def get_by_name(self, name: str) -> Optional[CampusSchema]:
        campus = await Campus.find_one(Campus.name == name)
        return _to_schema(campus) if campus else None

    async def create(self, data: Dict[str, Any]) -> CampusSchema:
        data = dict(data)
        data["coordinates"] = MapCoordinates(**(data.get("coordinates") or {}))
        campus = Campus(**data)
        try:
            await campus.insert()
        except DuplicateKeyError:
            raise DuplicateCampusName(f'Campus with name "{data.get("name")}" already exists')
        return _to_schema(campus)

    async def update(self, campus_id: str, fields: Dict[str, Any]) -> Optional[CampusSchema]:
        fields = dict(fields, updated_at=datetime.utcnow())
        try:
            result = await Campus.get_motor_collection().update_one(
                {"_id": ObjectId(campus_id)}, {"$set": fields}
            )
        except DuplicateKeyError:
            raise DuplicateCampusName(f'Campus with name "{fields.get("name")}" already exists')
        if result.matched_count == 0:
            return None
        return await self.get(campus_id)

    async def delete(self, campus_id: str) -> bool:
        result = await Campus.get_motor_collection().delete_one({"_id": ObjectId(campus_id)})
        return result.deleted_count > 0


campus_store = CampusStore()


def get_campus_store() -> CampusStore:
    return campus_store
