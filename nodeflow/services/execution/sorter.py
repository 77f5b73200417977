"""Topological ordering of workflow nodes (Kahn's algorithm)."""

import heapq
from collections import defaultdict
from typing import Dict, List, Sequence

from nodeflow.core.logging import get_logger
from nodeflow.models import Connection, Node
from .exceptions import CycleError, InvalidWorkflowError

logger = get_logger(__name__)


def topological_sort(nodes: Sequence[Node], connections: Sequence[Connection]) -> List[Node]:
    """Return ``nodes`` ordered so every connection's source precedes its target.

    Among nodes that become ready at the same time, the one appearing first in
    ``nodes`` goes first, so the same input always yields the same order.
    Connections naming a node that is not in ``nodes`` are ignored. Nodes
    without an id cannot take part in a connection and keep their relative
    position among the ready nodes.

    Raises:
        CycleError: the connections form a cycle; no partial order is returned
        InvalidWorkflowError: two nodes share an id
    """
    index_by_id: Dict[str, int] = {}
    for index, node in enumerate(nodes):
        if node.id is None:
            continue
        if node.id in index_by_id:
            raise InvalidWorkflowError(f"Duplicate node id: {node.id}")
        index_by_id[node.id] = index

    # Build adjacency and in-degree maps over node positions
    in_degree = [0] * len(nodes)
    successors: Dict[int, List[int]] = defaultdict(list)

    for connection in connections:
        source = index_by_id.get(connection.source)
        target = index_by_id.get(connection.target)
        if source is None or target is None:
            logger.debug("Ignoring connection to unknown node",
                         source=connection.source, target=connection.target)
            continue
        successors[source].append(target)
        in_degree[target] += 1

    ready = [index for index, degree in enumerate(in_degree) if degree == 0]
    heapq.heapify(ready)

    order: List[int] = []
    while ready:
        index = heapq.heappop(ready)
        order.append(index)
        for successor in successors[index]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                heapq.heappush(ready, successor)

    if len(order) < len(nodes):
        placed = set(order)
        remaining = [nodes[i].id for i in range(len(nodes)) if i not in placed]
        logger.warning("Cycle detected", remaining=remaining)
        raise CycleError(remaining)

    return [nodes[index] for index in order]
