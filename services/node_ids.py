"""
Canonical node identifiers.

Pins have historically been referenced by numbers (legacy ids from the
static pin data), numeric strings sent by the admin panel, arbitrary
strings, and Mongo record ids. Everything that enters the graph goes
through parse_node_id so that "5", 5 and 5.0 compare equal.
"""

import math
import re
from typing import Any, Annotated, Iterable, List, Tuple

from bson import ObjectId
from pydantic import BeforeValidator

_NUMERIC_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")


class InvalidNodeId(ValueError):
    """Raised when a value cannot be used as a node identifier"""


def _format_number(number: float) -> str:
    if not math.isfinite(number):
        raise InvalidNodeId(f"Node id must be a finite number, got {number!r}")
    if float(number).is_integer():
        return str(int(number))
    return repr(float(number))


def parse_node_id(value: Any) -> str:
    """Convert a raw identifier into its canonical string form"""
    # bool is an int subclass, reject it before the int branch
    if isinstance(value, bool):
        raise InvalidNodeId("Node id cannot be a boolean")

    if isinstance(value, ObjectId):
        return str(value)

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        return _format_number(value)

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidNodeId("Node id cannot be empty")
        if _NUMERIC_RE.match(text):
            if "." in text:
                return _format_number(float(text))
            return str(int(text))
        if ObjectId.is_valid(text):
            return text.lower()
        return text

    raise InvalidNodeId(f"Unsupported node id type: {type(value).__name__}")


def parse_node_ids(values: Iterable[Any]) -> List[str]:
    """Parse a list of identifiers, dropping duplicates but keeping order"""
    seen = set()
    result = []
    for value in values:
        node_id = parse_node_id(value)
        if node_id not in seen:
            seen.add(node_id)
            result.append(node_id)
    return result


def is_numeric_id(node_id: str) -> bool:
    return bool(_NUMERIC_RE.match(node_id))


def node_id_sort_key(node_id: str) -> Tuple[int, float, str]:
    """Numeric ids first in numeric order, then everything else alphabetically"""
    if is_numeric_id(node_id):
        return (0, float(node_id), node_id)
    return (1, 0.0, node_id)


# Pydantic field type that runs the parser at the API boundary
NodeId = Annotated[str, BeforeValidator(parse_node_id)]
