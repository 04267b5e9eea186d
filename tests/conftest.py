"""Pytest fixtures for the Campus Navigation API tests."""

from datetime import datetime
from types import SimpleNamespace
from typing import Dict, List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from schemas import Campus as CampusSchema, PinNode
from services.errors import DuplicateCampusName, DuplicateNodeId
from services.node_ids import is_numeric_id, node_id_sort_key

CAMPUS_ID = str(ObjectId())
OTHER_CAMPUS_ID = str(ObjectId())


def make_pin(node_id, neighbors=(), x=0.0, y=0.0, campus_id=CAMPUS_ID, **fields) -> PinNode:
    return PinNode(
        record_id=fields.pop("record_id", str(ObjectId())),
        campus_id=campus_id,
        node_id=str(node_id),
        x=x,
        y=y,
        title=fields.pop("title", f"Pin {node_id}"),
        neighbors=[str(n) for n in neighbors],
        **fields,
    )


class FakePinStore:
    """In-memory stand-in for PinStore with the same async interface"""

    def __init__(self, pins=(), campuses=None):
        self.pins: Dict[str, PinNode] = {}
        self.campuses = campuses or {CAMPUS_ID: "Main Campus", OTHER_CAMPUS_ID: "North Campus"}
        self.failing_nodes = set()
        self.version_bumps_on_save = 0
        for pin in pins:
            self.add(pin)

    # helpers for tests
    def add(self, pin: PinNode) -> PinNode:
        self.pins[pin.record_id] = pin
        return pin

    def node(self, node_id, campus_id=CAMPUS_ID) -> PinNode:
        for pin in self.pins.values():
            if pin.node_id == str(node_id) and pin.campus_id == campus_id:
                return pin
        raise KeyError(node_id)

    def neighbors_of(self, node_id, campus_id=CAMPUS_ID) -> List[str]:
        return list(self.node(node_id, campus_id).neighbors)

    def _find(self, campus_id, node_id) -> Optional[PinNode]:
        try:
            return self.node(node_id, campus_id)
        except KeyError:
            return None

    # PinStore interface
    async def get(self, record_id):
        pin = self.pins.get(record_id)
        return pin.model_copy(deep=True) if pin else None

    async def get_by_node_id(self, node_id, campus_id=None):
        for pin in self.pins.values():
            if pin.node_id == node_id and (campus_id is None or pin.campus_id == campus_id):
                return pin.model_copy(deep=True)
        return None

    async def get_by_qr_code(self, qr_code, campus_id=None):
        for pin in self.pins.values():
            if pin.qr_code == qr_code and (campus_id is None or pin.campus_id == campus_id):
                return pin.model_copy(deep=True)
        return None

    async def list_pins(self, campus_id=None, include_invisible=False, category=None, search=None):
        result = []
        for pin in self.pins.values():
            if campus_id and pin.campus_id != campus_id:
                continue
            if not include_invisible and not pin.is_visible:
                continue
            if category and pin.category != category:
                continue
            if search and search.lower() not in pin.title.lower():
                continue
            result.append(pin.model_copy(deep=True))
        result.sort(key=lambda p: node_id_sort_key(p.node_id))
        return result

    async def find_by_refs(self, campus_id, refs):
        refs = set(refs)
        return [
            p.model_copy(deep=True)
            for p in self.pins.values()
            if p.campus_id == campus_id and (p.node_id in refs or p.record_id in refs)
        ]

    async def get_campus_summary(self, campus_id):
        name = self.campuses.get(campus_id)
        return {"_id": campus_id, "name": name} if name else None

    async def count_pins(self, campus_id):
        return sum(1 for p in self.pins.values() if p.campus_id == campus_id)

    async def next_node_id(self, campus_id):
        numeric = [int(p.node_id) for p in self.pins.values()
                   if p.campus_id == campus_id and is_numeric_id(p.node_id)]
        return str(max(numeric) + 1) if numeric else "1"

    async def create(self, data):
        data = dict(data)
        campus_id = str(data.pop("campus_id"))
        if self._find(campus_id, data["node_id"]):
            raise DuplicateNodeId(data["node_id"])
        pin = PinNode(record_id=str(ObjectId()), campus_id=campus_id, **data)
        self.add(pin)
        return pin.model_copy(deep=True)

    async def update_fields(self, record_id, fields):
        pin = self.pins.get(record_id)
        if pin is None:
            return None
        # Validate like a read back from MongoDB would
        self.pins[record_id] = PinNode.model_validate({**pin.model_dump(), **fields})
        return await self.get(record_id)

    async def delete(self, record_id):
        return self.pins.pop(record_id, None) is not None

    async def set_neighbors(self, record_id, neighbors, expected_version):
        pin = self.pins.get(record_id)
        if pin is None:
            return False
        # Simulate another writer sneaking in before the save
        if self.version_bumps_on_save:
            self.version_bumps_on_save -= 1
            pin.version += 1
        if pin.version != expected_version:
            return False
        pin.neighbors = list(neighbors)
        pin.version += 1
        return True

    async def add_neighbor(self, campus_id, node_id, neighbor_id):
        if node_id in self.failing_nodes:
            raise RuntimeError(f"write to {node_id} failed")
        pin = self._find(campus_id, node_id)
        if pin is None:
            return False
        if neighbor_id not in pin.neighbors:
            pin.neighbors.append(neighbor_id)
        pin.version += 1
        return True

    async def remove_neighbor(self, campus_id, node_id, neighbor_id):
        if node_id in self.failing_nodes:
            raise RuntimeError(f"write to {node_id} failed")
        pin = self._find(campus_id, node_id)
        if pin is None:
            return False
        pin.neighbors = [n for n in pin.neighbors if n != neighbor_id]
        pin.version += 1
        return True

    async def remove_from_all_neighbors(self, campus_id, node_id):
        count = 0
        for pin in self.pins.values():
            if pin.campus_id == campus_id and node_id in pin.neighbors:
                pin.neighbors = [n for n in pin.neighbors if n != node_id]
                pin.version += 1
                count += 1
        return count

    async def delete_campus_pins(self, campus_id):
        doomed = [r for r, p in self.pins.items() if p.campus_id == campus_id]
        for record_id in doomed:
            del self.pins[record_id]
        return len(doomed)


class FakeCampusStore:
    """In-memory stand-in for CampusStore, sharing campus names with a FakePinStore"""

    def __init__(self, pin_store: FakePinStore):
        self.pin_store = pin_store
        self.campuses: Dict[str, CampusSchema] = {}
        for campus_id, name in pin_store.campuses.items():
            self._put(CampusSchema(id=campus_id, name=name, coordinates={"x": 0, "y": 0}, created_at=datetime.utcnow()))

    def _put(self, campus: CampusSchema) -> CampusSchema:
        self.campuses[str(campus.id)] = campus
        self.pin_store.campuses[str(campus.id)] = campus.name
        return campus

    async def list_campuses(self):
        return sorted(self.campuses.values(), key=lambda c: c.name)

    async def get(self, campus_id):
        return self.campuses.get(campus_id)

    async def get_by_name(self, name):
        return next((c for c in self.campuses.values() if c.name == name), None)

    async def create(self, data):
        if await self.get_by_name(data["name"]):
            raise DuplicateCampusName(data["name"])
        now = datetime.utcnow()
        return self._put(CampusSchema(id=str(ObjectId()), created_at=now, updated_at=now, **data))

    async def update(self, campus_id, fields):
        campus = self.campuses.get(campus_id)
        if campus is None:
            return None
        data = {**campus.model_dump(), **fields, "updated_at": datetime.utcnow()}
        return self._put(CampusSchema.model_validate(data))

    async def delete(self, campus_id):
        self.pin_store.campuses.pop(campus_id, None)
        return self.campuses.pop(campus_id, None) is not None


@pytest.fixture
def store():
    return FakePinStore()


@pytest.fixture
def campuses(store):
    return FakeCampusStore(store)


@pytest.fixture
def client(store, campuses):
    from main import app
    from auth_utils import get_admin_user
    from services.campus_store import get_campus_store
    from services.pin_store import get_pin_store

    app.dependency_overrides[get_pin_store] = lambda: store
    app.dependency_overrides[get_campus_store] = lambda: campuses
    app.dependency_overrides[get_admin_user] = lambda: SimpleNamespace(username="tester", is_active=True)
    # Not used as a context manager so the startup hook never connects to MongoDB
    yield TestClient(app)
    app.dependency_overrides.clear()
