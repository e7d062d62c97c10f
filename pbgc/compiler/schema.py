"""
pbgc Compiler — Graph JSON Schema
=================================
Canonical serialisation format for blueprint graphs, as pydantic models.

    {
      "graph_name": "hello",                          // human label (str, required)
      "variables":  { "counter": "i32" },            // class variables (optional)
      "nodes": [
        {
          "id":   "print_1",                          // unique within the graph
          "type": "print_string",                     // node-type key
          "inputs": [                                 // ordered input pins
            { "id": "print_1_exec",    "name": "exec",    "data_type": "execution" },
            { "id": "print_1_message", "name": "message", "data_type": "string" }
          ],
          "outputs": [
            { "id": "print_1_next", "name": "next", "data_type": "execution" }
          ],
          "properties": { "print_1_message": "\"hello\"" }   // constants by pin id
        }
      ],
      "connections": [
        { "source_node": "begin_play", "source_pin": "begin_play_next",
          "target_node": "print_1",    "target_pin": "print_1_exec",
          "connection_type": "execution" }
        // connection_type is optional and inferred from the source pin
      ]
    }

When a node lists no pins at all, the deserialiser builds them from the
node type's registered metadata instead.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..core.Types import ConnectionType, DataType


class PinModel(BaseModel):
    id: str
    name: str
    data_type: DataType = DataType.ANY
    type_string: Optional[str] = None

    @model_validator(mode="after")
    def _typed_needs_type_string(self) -> "PinModel":
        if self.data_type == DataType.TYPED and not self.type_string:
            raise ValueError(f"pin '{self.id}': data_type 'typed' requires type_string")
        return self


class NodeModel(BaseModel):
    id: str
    type: str
    inputs: List[PinModel] = Field(default_factory=list)
    outputs: List[PinModel] = Field(default_factory=list)
    properties: Dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _unique_pin_ids(self) -> "NodeModel":
        seen = set()
        for pin in self.inputs + self.outputs:
            if pin.id in seen:
                raise ValueError(f"node '{self.id}': duplicate pin id '{pin.id}'")
            seen.add(pin.id)
        return self


class ConnectionModel(BaseModel):
    source_node: str
    source_pin: str
    target_node: str
    target_pin: str
    connection_type: Optional[str] = None

    @field_validator("connection_type")
    @classmethod
    def _known_connection_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if value.upper() not in ConnectionType.__members__:
            raise ValueError(f"unknown connection_type '{value}'")
        return value.upper()


class GraphModel(BaseModel):
    graph_name: str
    variables: Dict[str, str] = Field(default_factory=dict)
    nodes: List[NodeModel] = Field(default_factory=list)
    connections: List[ConnectionModel] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_references(self) -> "GraphModel":
        node_ids = set()
        for node in self.nodes:
            if node.id in node_ids:
                raise ValueError(f"duplicate node id '{node.id}'")
            node_ids.add(node.id)
        for i, conn in enumerate(self.connections):
            for endpoint in (conn.source_node, conn.target_node):
                if endpoint not in node_ids:
                    raise ValueError(f"connections[{i}]: node '{endpoint}' not found in nodes")
        return self


__all__ = ["PinModel", "NodeModel", "ConnectionModel", "GraphModel"]
