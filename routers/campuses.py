from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List
from bson import ObjectId

from models import Admin
from schemas import CampusCreate, CampusUpdate, Campus as CampusSchema
from auth_utils import get_admin_user
from services.campus_store import CampusStore, get_campus_store
from services.edge_sync import node_locks
from services.errors import DuplicateCampusName
from services.pin_store import PinStore, get_pin_store
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


async def _get_campus_or_404(campuses: CampusStore, campus_id: str) -> CampusSchema:
    if not ObjectId.is_valid(campus_id):
        raise HTTPException(status_code=400, detail="Invalid campus ID")

    campus = await campuses.get(campus_id)
    if not campus:
        raise HTTPException(status_code=404, detail="Campus not found")
    return campus


def _duplicate_name(name: str) -> HTTPException:
    return HTTPException(status_code=409, detail=f'Campus with name "{name}" already exists')


@router.get("/", response_model=List[CampusSchema])
async def get_campuses(campuses: CampusStore = Depends(get_campus_store)):
    return await campuses.list_campuses()


@router.get("/{campus_id}", response_model=CampusSchema)
async def get_campus(campus_id: str, campuses: CampusStore = Depends(get_campus_store)):
    return await _get_campus_or_404(campuses, campus_id)


@router.get("/{campus_id}/categories")
async def get_campus_categories(campus_id: str, campuses: CampusStore = Depends(get_campus_store)):
    campus = await _get_campus_or_404(campuses, campus_id)
    return {
        "success": True,
        "campusId": str(campus.id),
        "campusName": campus.name,
        "categories": campus.categories or [],
    }


@router.post("/", response_model=CampusSchema, status_code=201)
async def create_campus(
    campus: CampusCreate,
    campuses: CampusStore = Depends(get_campus_store),
    current_admin: Admin = Depends(get_admin_user)
):
    if await campuses.get_by_name(campus.name):
        raise _duplicate_name(campus.name)

    try:
        db_campus = await campuses.create(campus.model_dump())
    except DuplicateCampusName:
        raise _duplicate_name(campus.name)

    logger.info(f"Campus '{db_campus.name}' created by {current_admin.username}")
    return db_campus


@router.put("/{campus_id}", response_model=CampusSchema)
async def update_campus(
    campus_id: str,
    update: CampusUpdate,
    campuses: CampusStore = Depends(get_campus_store),
    current_admin: Admin = Depends(get_admin_user)
):
    current = await _get_campus_or_404(campuses, campus_id)

    fields = update.model_dump(exclude_unset=True)
    nulls = sorted(name for name in ("name", "categories", "coordinates") if name in fields and fields[name] is None)
    if nulls:
        raise HTTPException(status_code=400, detail=f"{', '.join(nulls)} cannot be null")
    if not fields:
        return current

    if "name" in fields and fields["name"] != current.name:
        other = await campuses.get_by_name(fields["name"])
        if other and str(other.id) != campus_id:
            raise _duplicate_name(fields["name"])

    try:
        campus = await campuses.update(campus_id, fields)
    except DuplicateCampusName:
        raise _duplicate_name(fields["name"])
    if not campus:
        raise HTTPException(status_code=404, detail="Campus not found")

    logger.info(f"Campus '{campus.name}' updated by {current_admin.username}: {sorted(fields)}")
    return campus


@router.delete("/{campus_id}")
async def delete_campus(
    campus_id: str,
    cascade: bool = Query(False),
    campuses: CampusStore = Depends(get_campus_store),
    store: PinStore = Depends(get_pin_store),
    current_admin: Admin = Depends(get_admin_user)
):
    """
    Delete a campus. A campus that still has pins is only deleted with
    `cascade=true`, which deletes its pins too.
    """
    campus = await _get_campus_or_404(campuses, campus_id)

    pin_count = await store.count_pins(campus_id)
    if pin_count and not cascade:
        raise HTTPException(
            status_code=409,
            detail=f"Campus still has {pin_count} pins, delete them first or pass cascade=true"
        )

    pins_deleted = await store.delete_campus_pins(campus_id) if pin_count else 0
    node_locks.discard_campus(campus_id)
    if not await campuses.delete(campus_id):
        raise HTTPException(status_code=404, detail="Campus not found")

    logger.info(f"Campus '{campus.name}' deleted by {current_admin.username} ({pins_deleted} pins removed)")
    return {
        "success": True,
        "message": "Campus deleted successfully",
        "pins_deleted": pins_deleted,
    }
