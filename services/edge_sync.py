"""
Edge-consistency maintainer.

Pins form an undirected graph through their `neighbors` lists. When an admin
rewrites one pin's list, every pin that entered or left that list must have
its own list adjusted so that A lists B exactly when B lists A.

The update runs as a small edge transaction:
1. resolve and canonicalise the requested neighbors,
2. save the source pin's list with an optimistic version check (retried),
3. add / remove the reverse edge on each affected neighbor independently.
A failure on one neighbor is logged and reported, it never aborts the rest.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from config import EDGE_UPDATE_MAX_RETRIES
from schemas import PinNode
from services.errors import EdgeUpdateConflict, PinNotFound
from services.node_ids import parse_node_ids
from utils.logger import get_logger

logger = get_logger(__name__)

ADD = "add"
REMOVE = "remove"


@dataclass(frozen=True)
class ReverseEdgeChange:
    """One write on a neighbor's list: add or remove the source id"""
    neighbor_id: str
    action: str


@dataclass
class NeighborUpdateResult:
    pin: PinNode
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    skipped: List[Dict[str, str]] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)


def _union(old: Sequence[str], new: Sequence[str]) -> List[str]:
    seen = set()
    ordered = []
    for node_id in list(old) + list(new):
        if node_id not in seen:
            seen.add(node_id)
            ordered.append(node_id)
    return ordered


def plan_reverse_edges(
    source_id: str,
    old_neighbors: Sequence[str],
    new_neighbors: Sequence[str],
    neighbor_lists: Mapping[str, Sequence[str]],
) -> Tuple[List[ReverseEdgeChange], List[str]]:
    """
    Work out which neighbor lists need the source id added or removed.

    All ids must already be canonical. `neighbor_lists` maps each known
    neighbor id to its current list. Returns the changes and the ids from
    old/new that are not in `neighbor_lists`.
    """
    old_set = set(old_neighbors)
    new_set = set(new_neighbors)
    changes = []
    missing = []

    for neighbor_id in _union(old_neighbors, new_neighbors):
        if neighbor_id == source_id:
            continue
        if neighbor_id not in neighbor_lists:
            missing.append(neighbor_id)
            continue

        reciprocated = source_id in set(neighbor_lists[neighbor_id])
        is_now_connected = neighbor_id in new_set
        was_connected = neighbor_id in old_set

        if is_now_connected and not reciprocated:
            changes.append(ReverseEdgeChange(neighbor_id, ADD))
        elif not is_now_connected and was_connected and reciprocated:
            changes.append(ReverseEdgeChange(neighbor_id, REMOVE))

    return changes, missing


class NodeLockRegistry:
    """One asyncio.Lock per (campus, node) so edits to the same pin run one at a time"""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    def lock(self, campus_id: str, node_id: str) -> asyncio.Lock:
        return self._locks[(campus_id, node_id)]

    def discard(self, campus_id: str, node_id: str) -> None:
        """Forget the lock of a deleted pin unless someone is holding it"""
        lock = self._locks.get((campus_id, node_id))
        if lock is not None and not lock.locked():
            del self._locks[(campus_id, node_id)]

    def discard_campus(self, campus_id: str) -> None:
        for key in [k for k, lock in self._locks.items() if k[0] == campus_id and not lock.locked()]:
            del self._locks[key]

    def __len__(self):
        return len(self._locks)


node_locks = NodeLockRegistry()


async def resolve_neighbor_refs(store, source: PinNode, refs: Sequence[str]) -> Tuple[List[str], List[Dict[str, str]]]:
    """
    Map canonical refs (node ids or record ids) onto node ids in the source's campus.

    Returns (resolved node ids in request order, skipped entries).
    """
    candidates = await store.find_by_refs(source.campus_id, refs)
    by_node_id = {p.node_id: p for p in candidates}
    by_record_id = {p.record_id: p for p in candidates}

    resolved = []
    skipped = []
    seen = set()
    for ref in refs:
        pin = by_node_id.get(ref) or by_record_id.get(ref)
        if pin is None:
            logger.warning(f"Pin {source.node_id}: neighbor '{ref}' not found in campus {source.campus_id}, skipping")
            skipped.append({"neighbor": ref, "reason": "not_found"})
            continue
        if pin.node_id == source.node_id:
            logger.warning(f"Pin {source.node_id}: ignoring self reference")
            skipped.append({"neighbor": ref, "reason": "self_reference"})
            continue
        if pin.node_id in seen:
            continue
        seen.add(pin.node_id)
        resolved.append(pin.node_id)

    return resolved, skipped


async def _save_source(store, record_id: str, new_neighbors: List[str], max_retries: int) -> Tuple[PinNode, List[str]]:
    """Versioned save of the source list; returns (pin before the save, old list)"""
    for attempt in range(max_retries + 1):
        pin = await store.get(record_id)
        if pin is None:
            raise PinNotFound(record_id)
        old_neighbors = list(pin.neighbors)
        if await store.set_neighbors(record_id, new_neighbors, pin.version):
            return pin, old_neighbors
        logger.info(f"Pin {pin.node_id}: version {pin.version} changed during neighbor update (attempt {attempt + 1})")
    raise EdgeUpdateConflict(f"Pin {record_id} was modified concurrently {max_retries + 1} times")


async def update_neighbors(
    store,
    record_id: str,
    raw_neighbors: Sequence[Any],
    locks: Optional[NodeLockRegistry] = None,
    max_retries: int = EDGE_UPDATE_MAX_RETRIES,
) -> NeighborUpdateResult:
    """
    Replace a pin's neighbor list and keep the graph undirected.

    Raises PinNotFound, InvalidNodeId (bad identifier in the payload) or
    EdgeUpdateConflict. Per-neighbor failures are reported, not raised.
    """
    locks = locks or node_locks

    source = await store.get(record_id)
    if source is None:
        raise PinNotFound(record_id)

    refs = parse_node_ids(raw_neighbors)
    new_neighbors, skipped = await resolve_neighbor_refs(store, source, refs)

    async with locks.lock(source.campus_id, source.node_id):
        source, old_neighbors = await _save_source(store, record_id, new_neighbors, max_retries)

        affected = _union(old_neighbors, new_neighbors)
        neighbor_pins = await store.find_by_refs(source.campus_id, affected)
        neighbor_lists = {p.node_id: p.neighbors for p in neighbor_pins}

        changes, missing = plan_reverse_edges(source.node_id, old_neighbors, new_neighbors, neighbor_lists)
        # Pins deleted since they were listed
        for node_id in missing:
            logger.warning(f"Pin {source.node_id}: neighbor '{node_id}' no longer exists")

        result = NeighborUpdateResult(pin=source, skipped=skipped)
        for change in changes:
            try:
                if change.action == ADD:
                    ok = await store.add_neighbor(source.campus_id, change.neighbor_id, source.node_id)
                else:
                    ok = await store.remove_neighbor(source.campus_id, change.neighbor_id, source.node_id)
                if not ok:
                    raise LookupError(f"pin {change.neighbor_id} disappeared")
            except Exception as e:
                logger.exception(f"Error updating reverse connection {change.neighbor_id} -> {source.node_id}")
                result.failed.append({"neighbor": change.neighbor_id, "action": change.action, "error": str(e)})
                continue

            if change.action == ADD:
                result.added.append(change.neighbor_id)
                logger.info(f"Added reverse connection: {change.neighbor_id} now connects to {source.node_id}")
            else:
                result.removed.append(change.neighbor_id)
                logger.info(f"Removed reverse connection: {change.neighbor_id} no longer connects to {source.node_id}")

    saved = await store.get(record_id)
    if saved is None:
        # Deleted right after the save
        saved = source.model_copy(update={"neighbors": list(new_neighbors), "version": source.version + 1})
    result.pin = saved
    logger.info(
        f"Neighbors updated for pin {source.node_id} ({source.title}): "
        f"{len(new_neighbors)} neighbors, {len(result.added)} added, "
        f"{len(result.removed)} removed, {len(result.failed)} failed"
    )
    return result


async def remove_node_from_graph(store, pin: PinNode, locks: Optional[NodeLockRegistry] = None) -> int:
    """Strip a deleted pin's id from every neighbor list in its campus"""
    locks = locks or node_locks
    async with locks.lock(pin.campus_id, pin.node_id):
        cleaned = await store.remove_from_all_neighbors(pin.campus_id, pin.node_id)
    locks.discard(pin.campus_id, pin.node_id)
    if cleaned:
        logger.info(f"Removed pin {pin.node_id} from {cleaned} neighbor lists")
    return cleaned
