"""
pbgc Compiler
=============
Compiles a blueprint Graph into Rust-flavoured source text.

Pipeline:
    Graph  →  [NodeRegistry]          node-type metadata
    Graph  →  [DataResolver.build]    input sources + result variables
    Graph  →  [ExecutionRouting]      execution adjacency
    all of the above → [BlueprintCodeGenerator.generate] → source str

Public API
----------
    from pbgc.compiler import compile_graph, compile_graph_with_variables

    source = compile_graph(graph)
    source = compile_graph_with_variables(graph, {"counter": "i32"})
"""

from __future__ import annotations

from typing import Dict, Optional, TYPE_CHECKING

import logging

from ..analysis.data_flow import DataResolver
from ..analysis.exec_routing import ExecutionRouting
from ..noderegistry.NodeRegistry import NodeRegistry, default_registry
from .codegen import BlueprintCodeGenerator

if TYPE_CHECKING:
    from ..core.GraphPrimitives import Graph

logger = logging.getLogger(__name__)


def compile_graph(graph: "Graph", *, metadata: Optional[NodeRegistry] = None) -> str:
    """
    Compile a graph that uses no class variables.

    Args:
        graph:     The graph to compile. It is not modified.
        metadata:  Node-type registry; defaults to the standard node library.

    Returns:
        Complete source text.

    Raises:
        GraphError: Any structural or contract failure; no partial output.
    """
    return compile_graph_with_variables(graph, {}, metadata=metadata)


def compile_graph_with_variables(graph: "Graph",
                                 variables: Dict[str, str],
                                 *,
                                 metadata: Optional[NodeRegistry] = None) -> str:
    """
    Compile a graph whose getter/setter nodes refer to class variables.

    Args:
        graph:      The graph to compile. It is not modified.
        variables:  Variable name → declared type text, e.g. {"counter": "i32"}.
        metadata:   Node-type registry; defaults to the standard node library.

    Returns:
        Complete source text, including one storage cell per variable.
    """
    logger.info("Starting blueprint compilation: %s (%d nodes, %d connections, %d variables)",
                graph.name, len(graph.nodes), len(graph.connections), len(variables))

    if metadata is None:
        metadata = default_registry()
    logger.info("Phase 1: %d node types available", len(metadata))

    data_resolver = DataResolver.build(graph, metadata)
    logger.info("Phase 2: data flow analysed, %d pure nodes in evaluation order",
                len(data_resolver.pure_evaluation_order()))

    exec_routing = ExecutionRouting.build_from_graph(graph)
    logger.info("Phase 3: execution flow analysed, %d routes", exec_routing.route_count())

    generator = BlueprintCodeGenerator(graph, metadata, data_resolver, exec_routing, variables)
    code = generator.generate()

    logger.info("Phase 4: code generation complete (%d bytes)", len(code))
    return code


__all__ = ["compile_graph", "compile_graph_with_variables", "BlueprintCodeGenerator"]
