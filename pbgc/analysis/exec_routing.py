from collections import defaultdict
from typing import Dict, List, Tuple, TYPE_CHECKING

import logging

from ..core.Types import ConnectionType

if TYPE_CHECKING:
    from ..core.GraphPrimitives import Graph

logger = logging.getLogger(__name__)


class ExecutionRouting:
    """(node id, output pin id) -> downstream node ids, in connection order."""

    def __init__(self, routes: Dict[Tuple[str, str], List[str]]):
        self._routes = {key: list(targets) for key, targets in routes.items()}

    def downstream(self, node_id: str, pin_id: str) -> List[str]:
        return list(self._routes.get((node_id, pin_id), []))

    def route_count(self) -> int:
        return sum(len(t) for t in self._routes.values())

    @classmethod
    def build_from_graph(cls, graph: "Graph") -> "ExecutionRouting":
        routes: Dict[Tuple[str, str], List[str]] = defaultdict(list)
        for conn in graph.connections:
            if conn.connection_type != ConnectionType.EXECUTION:
                continue
            targets = routes[(conn.source_node, conn.source_pin)]
            # Parallel wires between the same two pins collapse into one route
            if conn.target_node not in targets:
                targets.append(conn.target_node)
        logger.debug("Execution routing: %d routes", sum(len(t) for t in routes.values()))
        return cls(routes)


__all__ = ["ExecutionRouting"]
