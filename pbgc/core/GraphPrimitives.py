from typing import Dict, List, NamedTuple, Optional, Tuple
from collections import defaultdict
from dataclasses import dataclass, field

import logging

from .Types import ConnectionType, DataType
from .Errors import NodeNotFoundError, PinNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Pin:
    name: str
    data_type: DataType = DataType.ANY
    # Only meaningful for DataType.TYPED, e.g. "i32" or "Vec<String>"
    type_string: Optional[str] = None

    def is_execution(self) -> bool:
        return self.data_type == DataType.EXECUTION


@dataclass(frozen=True)
class PinInstance:
    id: str
    pin: Pin


@dataclass
class NodeInstance:
    id: str
    node_type: str
    inputs: List[PinInstance] = field(default_factory=list)
    outputs: List[PinInstance] = field(default_factory=list)
    # input pin id -> literal source text bound to that pin
    properties: Dict[str, str] = field(default_factory=dict)

    def get_input(self, pin_id: str) -> Optional[PinInstance]:
        return next((p for p in self.inputs if p.id == pin_id), None)

    def get_output(self, pin_id: str) -> Optional[PinInstance]:
        return next((p for p in self.outputs if p.id == pin_id), None)

    def find_input_by_name(self, name: str) -> Optional[PinInstance]:
        return next((p for p in self.inputs if p.pin.name == name), None)

    def find_output_by_name(self, name: str) -> Optional[PinInstance]:
        return next((p for p in self.outputs if p.pin.name == name), None)

    def exec_outputs(self) -> List[PinInstance]:
        return [p for p in self.outputs if p.pin.is_execution()]

    def set_property(self, pin_id: str, value: str):
        if self.get_input(pin_id) is None:
            raise PinNotFoundError(self.id, pin_id)
        self.properties[pin_id] = value


# Immutable connection record; all graph wiring lives in Graph.connections
class Connection(NamedTuple):
    source_node: str
    source_pin: str
    target_node: str
    target_pin: str
    connection_type: ConnectionType = ConnectionType.DATA

    def __repr__(self):
        return f"Connection({self.source_node}.{self.source_pin} -> {self.target_node}.{self.target_pin})"


class Graph:
    """
    A blueprint graph: nodes keyed by id plus the list of connections between
    their pins. Connections are stored centrally and indexed by endpoint.
    """

    def __init__(self, name: str = "blueprint"):
        self.name = name
        self.nodes: Dict[str, NodeInstance] = {}
        self.connections: List[Connection] = []

        self._incoming: Dict[Tuple[str, str], List[Connection]] = defaultdict(list)
        self._outgoing: Dict[Tuple[str, str], List[Connection]] = defaultdict(list)

    def add_node(self, node: NodeInstance) -> NodeInstance:
        if node.id in self.nodes:
            raise ValueError(f"Node with id '{node.id}' already exists in the graph")
        self.nodes[node.id] = node
        logger.debug("Graph %s: added node %s (%s)", self.name, node.id, node.node_type)
        return node

    def get_node(self, node_id: str) -> Optional[NodeInstance]:
        return self.nodes.get(node_id)

    def require_node(self, node_id: str) -> NodeInstance:
        node = self.nodes.get(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    def add_connection(self,
                       source_node: str,
                       source_pin: str,
                       target_node: str,
                       target_pin: str,
                       connection_type: Optional[ConnectionType] = None) -> Connection:
        """
        Wire an output pin to an input pin. Both pins are addressed by id.
        When connection_type is omitted it is inferred from the source pin.
        """
        src = self.require_node(source_node)
        dst = self.require_node(target_node)

        src_pin = src.get_output(source_pin)
        if src_pin is None:
            raise PinNotFoundError(source_node, source_pin)
        if dst.get_input(target_pin) is None:
            raise PinNotFoundError(target_node, target_pin)

        if connection_type is None:
            connection_type = (ConnectionType.EXECUTION if src_pin.pin.is_execution()
                               else ConnectionType.DATA)

        conn = Connection(source_node, source_pin, target_node, target_pin, connection_type)
        self.connections.append(conn)
        self._incoming[(target_node, target_pin)].append(conn)
        self._outgoing[(source_node, source_pin)].append(conn)
        return conn

    def connect(self, source_node: str, source_pin_name: str,
                target_node: str, target_pin_name: str) -> Connection:
        """Convenience wrapper over add_connection that addresses pins by name."""
        src = self.require_node(source_node)
        dst = self.require_node(target_node)
        src_pin = src.find_output_by_name(source_pin_name)
        if src_pin is None:
            raise PinNotFoundError(source_node, source_pin_name)
        dst_pin = dst.find_input_by_name(target_pin_name)
        if dst_pin is None:
            raise PinNotFoundError(target_node, target_pin_name)
        return self.add_connection(source_node, src_pin.id, target_node, dst_pin.id)

    def get_incoming(self, node_id: str, pin_id: str) -> List[Connection]:
        return list(self._incoming.get((node_id, pin_id), []))

    def get_outgoing(self, node_id: str, pin_id: str) -> List[Connection]:
        return list(self._outgoing.get((node_id, pin_id), []))

    def sorted_nodes(self) -> List[NodeInstance]:
        """Nodes ordered by id; every enumeration that affects output uses this."""
        return [self.nodes[k] for k in sorted(self.nodes)]

    def __repr__(self):
        return f"Graph({self.name}: {len(self.nodes)} nodes, {len(self.connections)} connections)"
