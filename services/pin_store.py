"""
Data access for pins.

All pin reads and writes used by the graph services go through PinStore so
that neighbor edits can use atomic array operators ($addToSet / $pull) and
the optimistic version check in one place.
"""

import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from models import Campus, Pin
from schemas import PinNode
from services.errors import DuplicateNodeId
from services.node_ids import is_numeric_id, node_id_sort_key
from utils.logger import get_logger

logger = get_logger(__name__)


def _to_node(pin: Pin) -> PinNode:
    return PinNode(
        record_id=str(pin.id),
        campus_id=str(pin.campus_id),
        node_id=pin.node_id,
        x=pin.x,
        y=pin.y,
        title=pin.title,
        description=pin.description,
        category=pin.category,
        is_visible=pin.is_visible,
        qr_code=pin.qr_code,
        image=pin.image,
        building_number=pin.building_number,
        floors=list(pin.floors or []),
        neighbors=list(pin.neighbors or []),
        version=pin.version,
        created_at=pin.created_at,
        updated_at=pin.updated_at,
    )


def _sorted(pins: Iterable[Pin]) -> List[PinNode]:
    nodes = [_to_node(p) for p in pins]
    nodes.sort(key=lambda n: node_id_sort_key(n.node_id))
    return nodes


class PinStore:
    """MongoDB-backed pin storage"""

    # ---------- reads ----------

    async def get(self, record_id: str) -> Optional[PinNode]:
        if not ObjectId.is_valid(record_id):
            return None
        pin = await Pin.get(ObjectId(record_id))
        return _to_node(pin) if pin else None

    async def get_by_node_id(self, node_id: str, campus_id: Optional[str] = None) -> Optional[PinNode]:
        query: Dict[str, Any] = {"node_id": node_id}
        if campus_id:
            query["campus_id"] = ObjectId(campus_id)
        pin = await Pin.find_one(query)
        return _to_node(pin) if pin else None

    async def get_by_qr_code(self, qr_code: str, campus_id: Optional[str] = None) -> Optional[PinNode]:
        query: Dict[str, Any] = {"qr_code": qr_code}
        if campus_id:
            query["campus_id"] = ObjectId(campus_id)
        pin = await Pin.find_one(query)
        return _to_node(pin) if pin else None

    async def list_pins(
        self,
        campus_id: Optional[str] = None,
        include_invisible: bool = False,
        category: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[PinNode]:
        """Pins sorted by node id; waypoints only when include_invisible"""
        query: Dict[str, Any] = {}
        if campus_id:
            query["campus_id"] = ObjectId(campus_id)
        if not include_invisible:
            query["is_visible"] = True
        if category:
            query["category"] = category
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [
                {"title": pattern},
                {"description": pattern},
                {"qr_code": pattern},
            ]
        pins = await Pin.find(query).to_list()
        return _sorted(pins)

    async def find_by_refs(self, campus_id: str, refs: Iterable[str]) -> List[PinNode]:
        """Campus pins whose node id or record id is one of `refs`"""
        refs = list(refs)
        if not refs:
            return []
        record_ids = [ObjectId(r) for r in refs if ObjectId.is_valid(r)]
        clauses: List[Dict[str, Any]] = [{"node_id": {"$in": refs}}]
        if record_ids:
            clauses.append({"_id": {"$in": record_ids}})
        pins = await Pin.find({"campus_id": ObjectId(campus_id), "$or": clauses}).to_list()
        return _sorted(pins)

    async def get_campus_summary(self, campus_id: str) -> Optional[Dict[str, str]]:
        campus = await Campus.get(ObjectId(campus_id))
        if not campus:
            return None
        return {"_id": str(campus.id), "name": campus.name}

    async def count_pins(self, campus_id: str) -> int:
        return await Pin.find(Pin.campus_id == ObjectId(campus_id)).count()

    async def next_node_id(self, campus_id: str) -> str:
        """Highest numeric node id in the campus plus one"""
        pins = await Pin.find(Pin.campus_id == ObjectId(campus_id)).to_list()
        numeric = [int(float(p.node_id)) for p in pins if is_numeric_id(p.node_id)]
        return str(max(numeric) + 1) if numeric else "1"

    # ---------- writes ----------

    async def create(self, data: Dict[str, Any]) -> PinNode:
        pin = Pin(**data)
        try:
            await pin.insert()
        except DuplicateKeyError:
            raise DuplicateNodeId(f"Pin with id {data.get('node_id')} already exists")
        return _to_node(pin)

    async def update_fields(self, record_id: str, fields: Dict[str, Any]) -> Optional[PinNode]:
        fields = dict(fields, updated_at=datetime.utcnow())
        result = await Pin.get_motor_collection().update_one(
            {"_id": ObjectId(record_id)}, {"$set": fields}
        )
        if result.matched_count == 0:
            return None
        return await self.get(record_id)

    async def delete(self, record_id: str) -> bool:
        result = await Pin.get_motor_collection().delete_one({"_id": ObjectId(record_id)})
        return result.deleted_count > 0

    async def set_neighbors(self, record_id: str, neighbors: List[str], expected_version: int) -> bool:
        """Replace the neighbor list if nobody else wrote it since `expected_version`"""
        result = await Pin.get_motor_collection().update_one(
            {"_id": ObjectId(record_id), "version": expected_version},
            {
                "$set": {"neighbors": list(neighbors), "updated_at": datetime.utcnow()},
                "$inc": {"version": 1},
            },
        )
        return result.matched_count > 0

    async def add_neighbor(self, campus_id: str, node_id: str, neighbor_id: str) -> bool:
        result = await Pin.get_motor_collection().update_one(
            {"campus_id": ObjectId(campus_id), "node_id": node_id},
            {
                "$addToSet": {"neighbors": neighbor_id},
                "$set": {"updated_at": datetime.utcnow()},
                "$inc": {"version": 1},
            },
        )
        return result.matched_count > 0

    async def remove_neighbor(self, campus_id: str, node_id: str, neighbor_id: str) -> bool:
        result = await Pin.get_motor_collection().update_one(
            {"campus_id": ObjectId(campus_id), "node_id": node_id},
            {
                "$pull": {"neighbors": neighbor_id},
                "$set": {"updated_at": datetime.utcnow()},
                "$inc": {"version": 1},
            },
        )
        return result.matched_count > 0

    async def remove_from_all_neighbors(self, campus_id: str, node_id: str) -> int:
        """Drop `node_id` from every neighbor list in the campus"""
        result = await Pin.get_motor_collection().update_many(
            {"campus_id": ObjectId(campus_id), "neighbors": node_id},
            {
                "$pull": {"neighbors": node_id},
                "$set": {"updated_at": datetime.utcnow()},
                "$inc": {"version": 1},
            },
        )
        return result.modified_count

    async def delete_campus_pins(self, campus_id: str) -> int:
        result = await Pin.get_motor_collection().delete_many({"campus_id": ObjectId(campus_id)})
        return result.deleted_count


pin_store = PinStore()


def get_pin_store() -> PinStore:
    return pin_store
