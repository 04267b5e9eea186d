class PinNotFound(LookupError):
    """No pin record with the given record id"""


class NodeNotFound(LookupError):
    """No pin with the given node id in the campus graph"""


class DuplicateNodeId(ValueError):
    """A pin with this node id already exists in the campus"""


class EdgeUpdateConflict(RuntimeError):
    """The pin kept changing underneath a neighbor update"""


class DuplicateCampusName(ValueError):
    """Another campus already uses this name"""
