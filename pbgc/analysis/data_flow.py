"""
pbgc Analysis — Data Flow Resolver
==================================
Answers two questions for the code generator:

  input_source(node_id, pin_id)
      Where does the value of an input pin come from?
        • Connection  — a data edge from another node's output pin
        • Constant    — literal text stored in the node's properties
        • Default     — nothing bound; the generator synthesises a zero value

  result_variable(node_id)
      Which generated identifier holds a non-pure node's output?

Result variables are "<safe node id>_result" and are assigned to every node
that produces data at run time (function, control-flow and event nodes with
a non-execution output). Pure nodes and variable getters are inlined as
expressions instead and get no variable. Names are unique per graph;
ids that sanitise to the same text get a numeric suffix in node-id order.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple, Union, TYPE_CHECKING

import logging

from ..core.Types import ConnectionType, NodeKind
from ..core.Errors import ContractViolationError, NodeNotFoundError, PinNotFoundError
from ..noderegistry.NodeRegistry import GETTER_PREFIX, SETTER_PREFIX

if TYPE_CHECKING:
    from ..core.GraphPrimitives import Graph

logger = logging.getLogger(__name__)


# ── Data sources ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ConnectionSource:
    source_node: str
    source_pin: str


@dataclass(frozen=True)
class ConstantSource:
    value: str


@dataclass(frozen=True)
class DefaultSource:
    pass


DataSource = Union[ConnectionSource, ConstantSource, DefaultSource]


def _safe_name(name: str) -> str:
    """Convert a node id into a lower-case identifier fragment."""
    safe = re.sub(r"[^0-9A-Za-z_]", "_", name).lower()
    if safe and safe[0].isdigit():
        safe = f"n_{safe}"
    return safe


def _unique_result_name(node_id: str, taken: Set[str]) -> str:
    """
    "<safe id>_result", or "<safe id>_<n>_result" when an earlier node id
    sanitised to the same text ("r-1" and "r_1", "A" and "a").
    """
    safe = _safe_name(node_id)
    name = f"{safe}_result"
    suffix = 2
    while name in taken:
        name = f"{safe}_{suffix}_result"
        suffix += 1
    taken.add(name)
    return name


# ── Resolver ─────────────────────────────────────────────────────────────────

class DataResolver:
    def __init__(self,
                 input_sources: Dict[Tuple[str, str], DataSource],
                 result_variables: Dict[str, str],
                 pure_order: Optional[List[str]] = None):
        self._input_sources = input_sources
        self._result_variables = result_variables
        self._pure_order = list(pure_order or [])

    def input_source(self, node_id: str, pin_id: str) -> Optional[DataSource]:
        return self._input_sources.get((node_id, pin_id))

    def result_variable(self, node_id: str) -> Optional[str]:
        return self._result_variables.get(node_id)

    def pure_evaluation_order(self) -> List[str]:
        return list(self._pure_order)

    # ── Construction ──────────────────────────────────────────────────────

    @classmethod
    def build(cls, graph: "Graph", metadata) -> "DataResolver":
        """
        Classify every data input of every node and assign result variables.

        Raises:
            NodeNotFoundError / PinNotFoundError: A data connection names an
                endpoint that does not exist.
            ContractViolationError: An input pin has more than one incoming
                data connection.
        """
        for conn in graph.connections:
            if conn.connection_type != ConnectionType.DATA:
                continue
            src = graph.get_node(conn.source_node)
            dst = graph.get_node(conn.target_node)
            if src is None:
                raise NodeNotFoundError(conn.source_node)
            if dst is None:
                raise NodeNotFoundError(conn.target_node)
            if src.get_output(conn.source_pin) is None:
                raise PinNotFoundError(conn.source_node, conn.source_pin)
            if dst.get_input(conn.target_pin) is None:
                raise PinNotFoundError(conn.target_node, conn.target_pin)

        sources: Dict[Tuple[str, str], DataSource] = {}
        variables: Dict[str, str] = {}
        taken: Set[str] = set()

        for node in graph.sorted_nodes():
            for pin in node.inputs:
                if pin.pin.is_execution():
                    continue
                incoming = [c for c in graph.get_incoming(node.id, pin.id)
                            if c.connection_type == ConnectionType.DATA]
                if len(incoming) > 1:
                    raise ContractViolationError(
                        f"Input '{node.id}.{pin.id}' has {len(incoming)} incoming data connections")
                if incoming:
                    sources[(node.id, pin.id)] = ConnectionSource(incoming[0].source_node,
                                                                  incoming[0].source_pin)
                elif pin.id in node.properties:
                    sources[(node.id, pin.id)] = ConstantSource(node.properties[pin.id])
                else:
                    sources[(node.id, pin.id)] = DefaultSource()

            if _produces_runtime_value(node, metadata):
                variables[node.id] = _unique_result_name(node.id, taken)

        pure_order = _pure_topological_order(graph, metadata)
        logger.debug("Data flow: %d inputs classified, %d result variables",
                     len(sources), len(variables))
        return cls(sources, variables, pure_order)


def _is_pure(node, metadata) -> bool:
    if node.node_type.startswith(GETTER_PREFIX):
        return True
    meta = metadata.lookup(node.node_type)
    return meta is not None and meta.kind == NodeKind.PURE


def _produces_runtime_value(node, metadata) -> bool:
    if _is_pure(node, metadata) or node.node_type.startswith(SETTER_PREFIX):
        return False
    if metadata.lookup(node.node_type) is None:
        return False
    return any(not p.pin.is_execution() for p in node.outputs)


def _pure_topological_order(graph: "Graph", metadata) -> List[str]:
    """
    Order pure nodes so that every pure node follows the pure nodes it reads
    from. Nodes on a data cycle are left out; the generator reports the
    cycle when it reaches one.
    """
    visited: Set[str] = set()
    on_stack: Set[str] = set()
    order: List[str] = []

    def visit(nid: str) -> bool:
        if nid in on_stack:
            return False
        if nid in visited:
            return True
        visited.add(nid)
        on_stack.add(nid)
        node = graph.get_node(nid)
        acyclic = True
        for pin in node.inputs:
            for conn in graph.get_incoming(nid, pin.id):
                if conn.connection_type != ConnectionType.DATA:
                    continue
                src = graph.get_node(conn.source_node)
                if src is not None and _is_pure(src, metadata):
                    acyclic = visit(src.id) and acyclic
        on_stack.discard(nid)
        if acyclic:
            order.append(nid)
        return acyclic

    for node in graph.sorted_nodes():
        if _is_pure(node, metadata):
            visit(node.id)
    return order


__all__ = ["ConnectionSource", "ConstantSource", "DefaultSource", "DataSource", "DataResolver"]
