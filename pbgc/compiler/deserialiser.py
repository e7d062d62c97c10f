"""
pbgc Compiler — JSON Deserialiser
=================================
Converts a serialised graph (file path or pre-parsed dict) into a Graph plus
its class-variable declarations.

Pipeline
--------
    graph.json  →  [json_to_graph]  →  (Graph, variables)
    Graph       →  [compile_graph_with_variables]  →  source str

See pbgc/compiler/schema.py for the JSON format.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import logging

from pydantic import ValidationError

from ..core.Types import ConnectionType
from ..core.Errors import GraphError, SchemaError
from ..core.GraphPrimitives import Graph, NodeInstance, Pin, PinInstance
from ..noderegistry.NodeRegistry import (
    GETTER_PREFIX,
    SETTER_PREFIX,
    NodeRegistry,
    default_registry,
)
from .schema import GraphModel, NodeModel, PinModel

logger = logging.getLogger(__name__)


def _pin(model: PinModel) -> PinInstance:
    return PinInstance(id=model.id, pin=Pin(model.name, model.data_type, model.type_string))


def _build_node(node_model: NodeModel, registry: NodeRegistry, variables: Dict[str, str]) -> NodeInstance:
    if node_model.inputs or node_model.outputs:
        node = NodeInstance(id=node_model.id, node_type=node_model.type,
                            inputs=[_pin(p) for p in node_model.inputs],
                            outputs=[_pin(p) for p in node_model.outputs])
    elif node_model.type in registry:
        node = registry.create_node(node_model.id, node_model.type)
    elif node_model.type.startswith((GETTER_PREFIX, SETTER_PREFIX)):
        var_name = node_model.type.split("_", 1)[1]
        var_type = variables.get(var_name)
        if var_type is None:
            raise SchemaError(
                f"node '{node_model.id}': no pins given and variable '{var_name}' is not declared")
        factory = (registry.create_getter if node_model.type.startswith(GETTER_PREFIX)
                   else registry.create_setter)
        node = factory(node_model.id, var_name, var_type)
    else:
        raise SchemaError(f"node '{node_model.id}': no pins given and type '{node_model.type}' is not registered")

    for pin_id, value in node_model.properties.items():
        if node.get_input(pin_id) is None:
            # Properties may also be keyed by pin name
            by_name = node.find_input_by_name(pin_id)
            if by_name is None:
                raise SchemaError(f"node '{node_model.id}': property for unknown input pin '{pin_id}'")
            pin_id = by_name.id
        node.properties[pin_id] = value
    return node


def json_to_graph(source: Union[str, Path, Dict[str, Any]],
                  registry: Optional[NodeRegistry] = None) -> Tuple[Graph, Dict[str, str]]:
    """
    Parse a graph JSON description.

    Args:
        source:   A path to a JSON file, or a pre-parsed dict.
        registry: Used to build pins for nodes that list none.

    Returns:
        (graph, variables)

    Raises:
        FileNotFoundError: If a path is given and the file does not exist.
        SchemaError:       If the document is not a valid graph.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        with path.open(encoding="utf-8") as fh:
            try:
                data = json.load(fh)
            except json.JSONDecodeError as exc:
                raise SchemaError(f"{path}: invalid JSON: {exc}") from exc
    else:
        data = source

    try:
        model = GraphModel.model_validate(data)
    except ValidationError as exc:
        raise SchemaError(str(exc)) from exc

    if registry is None:
        registry = default_registry()

    graph = Graph(model.graph_name)
    try:
        for node_model in model.nodes:
            graph.add_node(_build_node(node_model, registry, model.variables))
        for conn in model.connections:
            conn_type = ConnectionType[conn.connection_type] if conn.connection_type else None
            graph.add_connection(conn.source_node, conn.source_pin,
                                 conn.target_node, conn.target_pin, conn_type)
    except SchemaError:
        raise
    except (GraphError, ValueError) as exc:
        raise SchemaError(str(exc)) from exc

    logger.info("Loaded graph %s from JSON", graph)
    return graph, dict(model.variables)


__all__ = ["json_to_graph"]
