"""
Admin pin management
- Pin CRUD (neighbors excluded from the generic update)
- Neighbor updates with automatic reverse-edge repair
- Graph validation and repair per campus
"""

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from typing import Any, Dict, Optional
from bson import ObjectId
import math

from models import Admin
from schemas import PinCreate, PinUpdate, PinNode
from auth_utils import get_admin_user
from services.edge_sync import remove_node_from_graph, update_neighbors
from services.errors import DuplicateNodeId, EdgeUpdateConflict, PinNotFound
from services.graph_validation import repair_graph, validate_graph
from services.node_ids import InvalidNodeId
from services.pin_store import PinStore, get_pin_store
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

# PinUpdate fields that may be omitted but never set to null
NON_NULLABLE_PIN_FIELDS = ("x", "y", "title", "category", "is_visible", "floors")


async def _get_pin_or_404(store: PinStore, pin_id: str) -> PinNode:
    if not ObjectId.is_valid(pin_id):
        raise HTTPException(status_code=400, detail="Invalid pin ID")

    pin = await store.get(pin_id)
    if not pin:
        raise HTTPException(status_code=404, detail="Pin not found")
    return pin


async def _require_campus(store: PinStore, campus_id: str) -> Dict[str, str]:
    if not ObjectId.is_valid(campus_id):
        raise HTTPException(status_code=400, detail="Invalid campus ID")

    campus = await store.get_campus_summary(campus_id)
    if not campus:
        raise HTTPException(status_code=404, detail="Campus not found")
    return campus


# ============================================
# PIN CRUD
# ============================================

@router.get("/pins")
async def list_pins(
    campus_id: Optional[str] = Query(None, alias="campusId"),
    search: Optional[str] = None,
    include_invisible: bool = Query(False, alias="includeInvisible"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    """Paginated pin listing for the admin panel"""
    if campus_id is not None and not ObjectId.is_valid(campus_id):
        raise HTTPException(status_code=400, detail="Invalid campus ID")

    pins = await store.list_pins(campus_id=campus_id, include_invisible=include_invisible, search=search)
    start = (page - 1) * limit

    return {
        "success": True,
        "pins": [p.to_response() for p in pins[start:start + limit]],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": len(pins),
            "pages": math.ceil(len(pins) / limit),
        },
    }


@router.get("/pins/{pin_id}")
async def get_pin(
    pin_id: str,
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    pin = await _get_pin_or_404(store, pin_id)
    campus = await store.get_campus_summary(pin.campus_id)
    return {"success": True, "pin": pin.to_response(campus)}


@router.post("/pins", status_code=201)
async def create_pin(
    pin_data: PinCreate,
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    """Create a pin; the next numeric id in the campus is used when none is given"""
    campus_id = str(pin_data.campus_id)
    campus = await _require_campus(store, campus_id)

    node_id = pin_data.id or await store.next_node_id(campus_id)
    if await store.get_by_node_id(node_id, campus_id=campus_id):
        raise HTTPException(status_code=409, detail=f"Pin with ID {node_id} already exists")

    data = pin_data.model_dump(exclude={"id", "campus_id"})
    try:
        pin = await store.create(dict(data, campus_id=pin_data.campus_id, node_id=node_id))
    except DuplicateNodeId as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(f"Pin {pin.node_id} ({pin.title}) created in campus {campus['name']} by {current_admin.username}")
    return {"success": True, "pin": pin.to_response(campus)}


@router.put("/pins/{pin_id}/neighbors")
async def update_pin_neighbors(
    pin_id: str,
    payload: Dict[str, Any] = Body(...),
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    """
    Replace a pin's neighbors and repair the reverse connections.

    Neighbors may be node ids (numbers or strings) or pin record ids.
    Unknown pins are skipped, a failed reverse update on one neighbor does
    not stop the others.
    """
    neighbors = payload.get("neighbors")
    logger.info(f"Update neighbors request: pin={pin_id} neighbors={neighbors!r}")

    if not isinstance(neighbors, list):
        raise HTTPException(
            status_code=400,
            detail=f"Neighbors must be an array, received {type(neighbors).__name__}"
        )

    await _get_pin_or_404(store, pin_id)

    try:
        result = await update_neighbors(store, pin_id, neighbors)
    except InvalidNodeId as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PinNotFound:
        raise HTTPException(status_code=404, detail="Pin not found")
    except EdgeUpdateConflict as e:
        raise HTTPException(status_code=409, detail=str(e))

    campus = await store.get_campus_summary(result.pin.campus_id)
    return {
        "success": True,
        "pin": result.pin.to_response(campus),
        "added": result.added,
        "removed": result.removed,
        "skipped": result.skipped,
        "failed": result.failed,
    }


@router.put("/pins/{pin_id}")
async def update_pin(
    pin_id: str,
    update: PinUpdate,
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    await _get_pin_or_404(store, pin_id)

    fields = update.model_dump(exclude_unset=True)
    nulls = [name for name in NON_NULLABLE_PIN_FIELDS if name in fields and fields[name] is None]
    if nulls:
        raise HTTPException(status_code=400, detail=f"{', '.join(nulls)} cannot be null")
    if "title" in fields and not (fields["title"] or "").strip():
        raise HTTPException(status_code=400, detail="Title cannot be empty")

    pin = await store.update_fields(pin_id, fields) if fields else await store.get(pin_id)
    if not pin:
        raise HTTPException(status_code=404, detail="Pin not found")

    campus = await store.get_campus_summary(pin.campus_id)
    return {"success": True, "pin": pin.to_response(campus)}


@router.delete("/pins/{pin_id}")
async def delete_pin(
    pin_id: str,
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    """Delete a pin and remove it from every neighbor list in its campus"""
    pin = await _get_pin_or_404(store, pin_id)

    if not await store.delete(pin_id):
        raise HTTPException(status_code=404, detail="Pin not found")
    cleaned = await remove_node_from_graph(store, pin)

    logger.info(f"Pin {pin.node_id} ({pin.title}) deleted by {current_admin.username}")
    return {
        "success": True,
        "message": "Pin deleted successfully",
        "neighbors_cleaned": cleaned,
    }


# ============================================
# GRAPH VALIDATION
# ============================================

@router.get("/campuses/{campus_id}/graph/validate")
async def validate_campus_graph(
    campus_id: str,
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    await _require_campus(store, campus_id)
    pins = await store.list_pins(campus_id=campus_id, include_invisible=True)
    validation = validate_graph(pins)
    return {
        "campus_id": campus_id,
        "nodes_count": len(pins),
        "edges_count": sum(len(p.neighbors) for p in pins) // 2,
        "validation": validation.model_dump(),
    }


@router.post("/campuses/{campus_id}/graph/repair")
async def repair_campus_graph(
    campus_id: str,
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    """Add missing reverse edges and drop references to pins that no longer exist"""
    await _require_campus(store, campus_id)
    applied = await repair_graph(store, campus_id)

    pins = await store.list_pins(campus_id=campus_id, include_invisible=True)
    return {
        "success": True,
        "campus_id": campus_id,
        **applied,
        "validation": validate_graph(pins).model_dump(),
    }
