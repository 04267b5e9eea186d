from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
from bson import ObjectId

from services.node_ids import InvalidNodeId, parse_node_id
from services.pin_store import PinStore, get_pin_store

router = APIRouter()


def _check_campus_id(campus_id: Optional[str]):
    if campus_id is not None and not ObjectId.is_valid(campus_id):
        raise HTTPException(status_code=400, detail="Invalid campus ID")


@router.get("/")
async def list_pins(
    campus_id: Optional[str] = Query(None, alias="campusId"),
    category: Optional[str] = None,
    search: Optional[str] = None,
    include_invisible: bool = Query(False, alias="includeInvisible"),
    store: PinStore = Depends(get_pin_store),
):
    """
    List pins sorted by node id.

    Invisible waypoints are left out unless includeInvisible=true; clients
    that run pathfinding locally need them.
    """
    _check_campus_id(campus_id)
    pins = await store.list_pins(
        campus_id=campus_id,
        include_invisible=include_invisible,
        category=category,
        search=search,
    )
    return {
        "success": True,
        "count": len(pins),
        "includeInvisible": include_invisible,
        "data": [p.to_response() for p in pins],
    }


@router.get("/qr/{qr_code}")
async def get_pin_by_qr(
    qr_code: str,
    campus_id: Optional[str] = Query(None, alias="campusId"),
    store: PinStore = Depends(get_pin_store),
):
    """Look up the pin printed on a scanned QR code"""
    _check_campus_id(campus_id)
    pin = await store.get_by_qr_code(qr_code, campus_id=campus_id)
    if not pin:
        raise HTTPException(status_code=404, detail=f"No pin with QR code '{qr_code}'")
    return {"success": True, "data": pin.to_response()}


@router.get("/category/{category}")
async def list_pins_by_category(
    category: str,
    campus_id: Optional[str] = Query(None, alias="campusId"),
    include_invisible: bool = Query(False, alias="includeInvisible"),
    store: PinStore = Depends(get_pin_store),
):
    _check_campus_id(campus_id)
    pins = await store.list_pins(
        campus_id=campus_id,
        include_invisible=include_invisible,
        category=category,
    )
    return {
        "success": True,
        "count": len(pins),
        "category": category,
        "includeInvisible": include_invisible,
        "data": [p.to_response() for p in pins],
    }


@router.get("/{node_id}")
async def get_pin(
    node_id: str,
    campus_id: Optional[str] = Query(None, alias="campusId"),
    store: PinStore = Depends(get_pin_store),
):
    _check_campus_id(campus_id)
    try:
        canonical = parse_node_id(node_id)
    except InvalidNodeId as e:
        raise HTTPException(status_code=400, detail=str(e))

    pin = await store.get_by_node_id(canonical, campus_id=campus_id)
    if not pin:
        raise HTTPException(status_code=404, detail=f"Pin with ID {node_id} not found")
    return {"success": True, "data": pin.to_response()}
