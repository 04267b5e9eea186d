from pydantic import BaseModel, ConfigDict, Field
from pydantic_core import core_schema
from typing import List, Optional, Dict, Any
from datetime import datetime
from bson import ObjectId

from models import Floor
from services.node_ids import NodeId


class PyObjectId(ObjectId):
    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        return core_schema.union_schema([
            core_schema.is_instance_schema(ObjectId),
            core_schema.chain_schema([
                core_schema.str_schema(),
                core_schema.no_info_plain_validator_function(cls.validate),
            ])
        ],
        serialization=core_schema.plain_serializer_function_ser_schema(
            lambda x: str(x)
        ))

    @classmethod
    def validate(cls, v):
        if isinstance(v, ObjectId):
            return v
        if not ObjectId.is_valid(v):
            raise ValueError("Invalid objectid")
        return ObjectId(v)


# ============================================
# GRAPH NODE
# ============================================

class PinNode(BaseModel):
    """Storage-independent snapshot of a pin, as the graph services see it"""
    record_id: str
    campus_id: str
    node_id: str
    x: float = 0
    y: float = 0
    title: str
    description: Optional[str] = None
    category: str = "Other"
    is_visible: bool = True
    qr_code: Optional[str] = None
    image: Optional[str] = None
    building_number: Optional[int] = None
    floors: List[Floor] = []
    neighbors: List[str] = []
    version: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_response(self, campus: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Shape used by every pin endpoint; `campus` replaces campus_id when populated"""
        return {
            "_id": self.record_id,
            "campus_id": campus if campus is not None else self.campus_id,
            "id": self.node_id,
            "x": self.x,
            "y": self.y,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "is_visible": self.is_visible,
            "qr_code": self.qr_code,
            "image": self.image,
            "building_number": self.building_number,
            "floors": [f.model_dump() for f in self.floors],
            "neighbors": list(self.neighbors),
            "version": self.version,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# ============================================
# CAMPUSES
# ============================================

class CoordinatesIn(BaseModel):
    x: float = 0
    y: float = 0


class CampusCreate(BaseModel):
    name: str = Field(min_length=1)
    map_image_url: Optional[str] = None
    categories: List[str] = []
    coordinates: CoordinatesIn = Field(default_factory=CoordinatesIn)


class CampusUpdate(BaseModel):
    """Campus fields to change; omitted fields stay as they are"""
    name: Optional[str] = Field(None, min_length=1)
    map_image_url: Optional[str] = None
    categories: Optional[List[str]] = None
    coordinates: Optional[CoordinatesIn] = None


class Campus(BaseModel):
    id: PyObjectId
    name: str
    map_image_url: Optional[str] = None
    categories: List[str] = []
    coordinates: CoordinatesIn
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, arbitrary_types_allowed=True)


# ============================================
# PINS
# ============================================

class PinCreate(BaseModel):
    campus_id: PyObjectId
    id: Optional[NodeId] = None  # Next numeric id in the campus when omitted
    x: float = 0
    y: float = 0
    title: str = Field(min_length=1)
    description: Optional[str] = None
    category: str = "Other"
    is_visible: bool = True
    qr_code: Optional[str] = None
    image: Optional[str] = None
    building_number: Optional[int] = None
    floors: List[Floor] = []

    model_config = ConfigDict(arbitrary_types_allowed=True)


class PinUpdate(BaseModel):
    """Editable pin fields - neighbors only change through the neighbors endpoint"""
    x: Optional[float] = None
    y: Optional[float] = None
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    is_visible: Optional[bool] = None
    qr_code: Optional[str] = None
    image: Optional[str] = None
    building_number: Optional[int] = None
    floors: Optional[List[Floor]] = None


# ============================================
# GRAPH VALIDATION
# ============================================

class GraphValidationResult(BaseModel):
    """Result of graph validation"""
    is_valid: bool
    isolated_nodes: List[str]
    dead_ends: List[str]
    missing_reverse_edges: List[Dict[str, str]]
    dangling_references: List[Dict[str, str]]
    components: int
    warnings: List[str]


# ============================================
# ROUTING
# ============================================

class RouteStop(BaseModel):
    id: str
    title: str
    x: float
    y: float
    is_visible: bool


class RouteResponse(BaseModel):
    start: str
    end: str
    algorithm: str
    reachable: bool
    path: List[str]
    hops: int
    distance: float
    stops: List[RouteStop]
    message: Optional[str] = None
