from collections import deque
from typing import Dict, Iterable, List, Tuple

from schemas import GraphValidationResult, PinNode
from services.node_ids import node_id_sort_key
from utils.logger import get_logger

logger = get_logger(__name__)


def _components(node_map: Dict[str, PinNode]) -> int:
    """Connected components when every listed edge is walked both ways"""
    undirected: Dict[str, set] = {node_id: set() for node_id in node_map}
    for pin in node_map.values():
        for neighbor_id in pin.neighbors:
            if neighbor_id in undirected and neighbor_id != pin.node_id:
                undirected[pin.node_id].add(neighbor_id)
                undirected[neighbor_id].add(pin.node_id)

    visited = set()
    count = 0
    for node_id in sorted(undirected, key=node_id_sort_key):
        if node_id in visited:
            continue
        count += 1
        queue = deque([node_id])
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            queue.extend(n for n in undirected[current] if n not in visited)
    return count


def validate_graph(pins: Iterable[PinNode]) -> GraphValidationResult:
    """Validate a campus pin graph for issues"""
    pins = sorted(pins, key=lambda p: node_id_sort_key(p.node_id))
    node_map = {p.node_id: p for p in pins}

    isolated = []
    dead_ends = []
    missing_reverse = []
    dangling = []
    warnings = []

    for pin in pins:
        neighbors = pin.neighbors

        if not neighbors:
            isolated.append(pin.node_id)
        elif len(set(neighbors)) == 1:
            dead_ends.append(pin.node_id)

        if len(set(neighbors)) != len(neighbors):
            warnings.append(f"Pin {pin.node_id} lists the same neighbor more than once")

        for neighbor_id in neighbors:
            if neighbor_id == pin.node_id:
                warnings.append(f"Pin {pin.node_id} lists itself as a neighbor")
                continue
            neighbor = node_map.get(neighbor_id)
            if neighbor is None:
                dangling.append({"from": pin.node_id, "to": neighbor_id})
                continue
            if pin.node_id not in neighbor.neighbors:
                missing_reverse.append({"from": pin.node_id, "to": neighbor_id})

    components = _components(node_map) if node_map else 0
    if components > 1:
        warnings.append(f"Graph is split into {components} disconnected components")

    is_valid = not missing_reverse and not dangling and not warnings

    return GraphValidationResult(
        is_valid=is_valid,
        isolated_nodes=isolated,
        dead_ends=dead_ends,
        missing_reverse_edges=missing_reverse,
        dangling_references=dangling,
        components=components,
        warnings=warnings,
    )


def plan_graph_repair(pins: Iterable[PinNode]) -> Tuple[List[Dict[str, str]], List[Dict[str, str]]]:
    """
    Edits that make the graph symmetric.

    Returns (additions, removals) as {"pin": node_id, "neighbor": node_id};
    each addition is a missing reverse edge, each removal a dangling or
    self reference.
    """
    pins = list(pins)
    validation = validate_graph(pins)
    additions = [{"pin": e["to"], "neighbor": e["from"]} for e in validation.missing_reverse_edges]
    removals = [{"pin": e["from"], "neighbor": e["to"]} for e in validation.dangling_references]
    for pin in pins:
        if pin.node_id in pin.neighbors:
            removals.append({"pin": pin.node_id, "neighbor": pin.node_id})
    return additions, removals


async def repair_graph(store, campus_id: str) -> Dict[str, List[Dict[str, str]]]:
    """Apply plan_graph_repair to a campus, one atomic edit per change"""
    pins = await store.list_pins(campus_id=campus_id, include_invisible=True)
    additions, removals = plan_graph_repair(pins)

    applied = {"added": [], "removed": [], "failed": []}
    for action, edits in (("add", additions), ("remove", removals)):
        for edit in edits:
            try:
                if action == "add":
                    ok = await store.add_neighbor(campus_id, edit["pin"], edit["neighbor"])
                else:
                    ok = await store.remove_neighbor(campus_id, edit["pin"], edit["neighbor"])
                if not ok:
                    raise LookupError(f"pin {edit['pin']} disappeared")
            except Exception as e:
                logger.exception(f"Graph repair failed to {action} {edit['neighbor']} on pin {edit['pin']}")
                applied["failed"].append(dict(edit, action=action, error=str(e)))
                continue
            applied["added" if action == "add" else "removed"].append(edit)

    logger.info(
        f"Repaired graph for campus {campus_id}: {len(applied['added'])} reverse edges added, "
        f"{len(applied['removed'])} references removed"
    )
    return applied
