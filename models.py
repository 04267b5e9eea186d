from beanie import Document, Indexed
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from bson import ObjectId
import pymongo


class MapCoordinates(BaseModel):
    x: float = 0
    y: float = 0


class Room(BaseModel):
    name: str
    image: Optional[str] = None
    description: Optional[str] = None
    qr_code: Optional[str] = None
    order: int = 0  # Display order on the floor
    beside_rooms: List[str] = []  # Names of adjacent rooms, used for stairs and elevators


class Floor(BaseModel):
    level: int
    floor_plan: Optional[str] = None  # Floor plan image URL
    rooms: List[Room] = []


class Campus(Document):
    """Root collection - every pin belongs to exactly one campus"""
    name: Indexed(str, unique=True)
    map_image_url: Optional[str] = None  # Map image shown behind the pins
    categories: List[str] = []  # Custom category list for this campus
    coordinates: MapCoordinates = Field(default_factory=MapCoordinates)  # Initial map center
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    class Settings:
        name = "campuses"


class Pin(Document):
    """Visible facility or invisible pathfinding waypoint"""
    campus_id: ObjectId
    node_id: str  # Canonical graph identifier (legacy numeric ids are stored as "5")
    x: float = 0  # Map X coordinate
    y: float = 0  # Map Y coordinate
    title: str
    description: Optional[str] = None
    category: str = "Other"
    is_visible: bool = True  # False for waypoints used only for routing
    qr_code: Optional[str] = None
    image: Optional[str] = None
    building_number: Optional[int] = None
    floors: List[Floor] = []  # Building interior, empty for outdoor pins
    neighbors: List[str] = []  # Node ids of connected pins, kept symmetric
    version: int = 0  # Bumped on every neighbor write for optimistic checks
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    class Settings:
        name = "pins"
        indexes = [
            pymongo.IndexModel(
                [("campus_id", pymongo.ASCENDING), ("node_id", pymongo.ASCENDING)],
                unique=True,
            ),
            [("campus_id", pymongo.ASCENDING), ("is_visible", pymongo.ASCENDING)],
            [("campus_id", pymongo.ASCENDING), ("category", pymongo.ASCENDING)],
            "qr_code",
            "neighbors",
        ]


class Admin(Document):
    username: Indexed(str, unique=True)
    email: Indexed(str, unique=True)
    hashed_password: str
    role: str = "admin"  # "admin" or "super_admin"
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(arbitrary_types_allowed=True)

    class Settings:
        name = "admins"
