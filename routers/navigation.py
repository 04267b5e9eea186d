from fastapi import APIRouter, Depends, HTTPException, Query
from bson import ObjectId

from schemas import RouteResponse, RouteStop
from services.errors import NodeNotFound
from services.node_ids import InvalidNodeId, parse_node_id
from services.pathfinding import ALGORITHMS, DEFAULT_ALGORITHM, find_route
from services.pin_store import PinStore, get_pin_store
from utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.get("/campuses/{campus_id}/route", response_model=RouteResponse)
async def get_route(
    campus_id: str,
    start: str,
    end: str,
    algorithm: str = Query(DEFAULT_ALGORITHM, pattern=f"^({'|'.join(ALGORITHMS)})$"),
    store: PinStore = Depends(get_pin_store),
):
    """
    Shortest route between two pins of a campus.

    Invisible waypoints take part in the search and appear in `path`;
    `stops` carries the details of every pin on the way. An unreachable
    destination is reported with reachable=false, not as an error.
    """
    if not ObjectId.is_valid(campus_id):
        raise HTTPException(status_code=400, detail="Invalid campus ID")

    try:
        start_id = parse_node_id(start)
        end_id = parse_node_id(end)
    except InvalidNodeId as e:
        raise HTTPException(status_code=400, detail=str(e))

    pins = await store.list_pins(campus_id=campus_id, include_invisible=True)

    try:
        route = find_route(pins, start_id, end_id, algorithm)
    except NodeNotFound as e:
        raise HTTPException(status_code=404, detail=f"Pin '{e.args[0]}' not found in this campus")

    nodes = {p.node_id: p for p in pins}
    stops = [
        RouteStop(
            id=node_id,
            title=nodes[node_id].title,
            x=nodes[node_id].x,
            y=nodes[node_id].y,
            is_visible=nodes[node_id].is_visible,
        )
        for node_id in route.path
    ]

    if route.reachable:
        logger.info(f"Route {start_id} -> {end_id} ({algorithm}): {route.hops} hops, distance {route.distance}")
        message = None
    else:
        logger.info(f"No route {start_id} -> {end_id} in campus {campus_id}")
        message = "No path found between these pins"

    return RouteResponse(
        start=start_id,
        end=end_id,
        algorithm=algorithm,
        reachable=route.reachable,
        path=route.path,
        hops=route.hops,
        distance=route.distance,
        stops=stops,
        message=message,
    )
