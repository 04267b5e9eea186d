"""
Shortest-path search over the campus pin graph.

The graph includes every pin, invisible waypoints too - they only exist to
route through. Edges come from the `neighbors` lists and are treated as
undirected: an edge listed on either end is walkable, which keeps routing
working while a graph still has missing reverse edges.

Algorithms:
- bfs: fewest hops, ignores coordinates
- dijkstra: shortest Euclidean length
- astar: same result as dijkstra, guided by straight-line distance to the goal
"""

import heapq
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from schemas import PinNode
from services.errors import NodeNotFound

ALGORITHMS = ("bfs", "dijkstra", "astar")
DEFAULT_ALGORITHM = "astar"

Adjacency = Dict[str, Dict[str, float]]


@dataclass
class RouteResult:
    start: str
    end: str
    algorithm: str
    path: List[str] = field(default_factory=list)
    distance: float = 0.0

    @property
    def reachable(self) -> bool:
        return bool(self.path)

    @property
    def hops(self) -> int:
        return max(len(self.path) - 1, 0)


def distance(a: PinNode, b: PinNode) -> float:
    """Straight-line distance between two pins on the map"""
    return math.hypot(a.x - b.x, a.y - b.y)


def build_adjacency(pins: Iterable[PinNode]) -> Tuple[Adjacency, Dict[str, PinNode]]:
    """Symmetric weighted adjacency; references to unknown pins are ignored"""
    nodes = {p.node_id: p for p in pins}
    graph: Adjacency = {node_id: {} for node_id in nodes}

    for pin in nodes.values():
        for neighbor_id in pin.neighbors:
            neighbor = nodes.get(neighbor_id)
            if neighbor is None or neighbor_id == pin.node_id:
                continue
            weight = distance(pin, neighbor)
            graph[pin.node_id][neighbor_id] = weight
            graph[neighbor_id][pin.node_id] = weight

    return graph, nodes


def _reconstruct(came_from: Dict[str, Optional[str]], end: str) -> List[str]:
    path = []
    node: Optional[str] = end
    while node is not None:
        path.append(node)
        node = came_from[node]
    path.reverse()
    return path


def bfs_path(graph: Adjacency, start: str, end: str) -> List[str]:
    """Fewest-hop path, or [] when `end` cannot be reached"""
    if start == end:
        return [start]

    came_from: Dict[str, Optional[str]] = {start: None}
    queue = deque([start])
    while queue:
        current = queue.popleft()
        # Sorted so ties always resolve the same way
        for neighbor in sorted(graph.get(current, {})):
            if neighbor in came_from:
                continue
            came_from[neighbor] = current
            if neighbor == end:
                return _reconstruct(came_from, end)
            queue.append(neighbor)
    return []


def _best_first(graph: Adjacency, start: str, end: str, heuristic) -> List[str]:
    if start == end:
        return [start]

    best: Dict[str, float] = {start: 0.0}
    came_from: Dict[str, Optional[str]] = {start: None}
    closed = set()
    open_heap = [(heuristic(start), 0.0, start)]

    while open_heap:
        _, g, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        if current == end:
            return _reconstruct(came_from, end)
        closed.add(current)

        for neighbor, weight in graph.get(current, {}).items():
            if neighbor in closed:
                continue
            tentative = g + weight
            if tentative < best.get(neighbor, math.inf):
                best[neighbor] = tentative
                came_from[neighbor] = current
                heapq.heappush(open_heap, (tentative + heuristic(neighbor), tentative, neighbor))
    return []


def dijkstra_path(graph: Adjacency, start: str, end: str) -> List[str]:
    return _best_first(graph, start, end, lambda node_id: 0.0)


def astar_path(graph: Adjacency, nodes: Dict[str, PinNode], start: str, end: str) -> List[str]:
    goal = nodes[end]
    return _best_first(graph, start, end, lambda node_id: distance(nodes[node_id], goal))


def path_length(graph: Adjacency, path: List[str]) -> float:
    return sum(graph[a][b] for a, b in zip(path, path[1:]))


def find_route(pins: Iterable[PinNode], start: str, end: str, algorithm: str = DEFAULT_ALGORITHM) -> RouteResult:
    """
    Route between two node ids over all pins.

    Raises NodeNotFound for an unknown start or end and ValueError for an
    unknown algorithm. A disconnected pair is not an error: the result has
    an empty path and reachable == False.
    """
    if algorithm not in ALGORITHMS:
        raise ValueError(f"Unknown algorithm '{algorithm}', expected one of {', '.join(ALGORITHMS)}")

    graph, nodes = build_adjacency(pins)
    for node_id in (start, end):
        if node_id not in nodes:
            raise NodeNotFound(node_id)

    if algorithm == "bfs":
        path = bfs_path(graph, start, end)
    elif algorithm == "dijkstra":
        path = dijkstra_path(graph, start, end)
    else:
        path = astar_path(graph, nodes, start, end)

    return RouteResult(
        start=start,
        end=end,
        algorithm=algorithm,
        path=path,
        distance=round(path_length(graph, path), 3),
    )
