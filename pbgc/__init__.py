"""
pbgc — blueprint graph compiler.

Turns a node-and-pin blueprint graph into linear Rust-flavoured source.
"""

from .core.GraphPrimitives import Connection, Graph, NodeInstance, Pin, PinInstance
from .core.Types import ConnectionType, DataType, NodeKind
from .core.Errors import GraphError
from .noderegistry.NodeRegistry import NodeMetadata, NodeRegistry, ParamInfo, default_registry
from .compiler import compile_graph, compile_graph_with_variables

__version__ = "0.1.0"

__all__ = [
    "Connection",
    "ConnectionType",
    "DataType",
    "Graph",
    "GraphError",
    "NodeInstance",
    "NodeKind",
    "NodeMetadata",
    "NodeRegistry",
    "ParamInfo",
    "Pin",
    "PinInstance",
    "compile_graph",
    "compile_graph_with_variables",
    "default_registry",
]
