"""
pbgc Compiler — Code Generator
==============================
Walks a blueprint graph and emits Rust-flavoured source text.

Output structure
----------------
    // header comment
    use <import>;                 (sorted, deduplicated)

    thread_local! { ... }         (only when class variables are declared)

    pub fn <event>() {
        <statements of every chain reachable from the event's exec outputs>
    }

Traversal
---------
Each execution output of an event starts a fresh walk with an empty
visited set. Inside a walk a node is emitted at most once; function nodes
and setters continue the walk in place, control-flow nodes give each branch
a copy of the visited set so sibling branches never see each other.

Pure nodes and variable getters never produce statements. They are rebuilt
as expressions wherever one of their outputs is consumed.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Set, TYPE_CHECKING

import logging

from ..core.Types import NodeKind
from ..core.Errors import (
    ContractViolationError,
    CyclicDataDependencyError,
    MetadataNotFoundError,
    NodeNotFoundError,
    NoEventNodesError,
    PinNotFoundError,
    TemplateError,
    UnboundParameterError,
    UnresolvedDataSourceError,
    VariableNotFoundError,
)
from ..analysis.data_flow import ConnectionSource, ConstantSource, DefaultSource
from ..noderegistry.NodeRegistry import GETTER_PREFIX, SETTER_PREFIX
from .templates import CodeWriter, inline_template, trim_blank_lines
from .variables import default_value, getter_expression, setter_statement, storage_declarations

if TYPE_CHECKING:
    from ..core.GraphPrimitives import Graph, NodeInstance
    from ..noderegistry.NodeRegistry import NodeMetadata

logger = logging.getLogger(__name__)


def _header(graph_name: str) -> List[str]:
    return [
        f"// Compiled from blueprint graph: {graph_name}",
        "// Generated by pbgc. Do not edit by hand; recompile the graph to regenerate.",
        "",
    ]


class BlueprintCodeGenerator:
    """
    Args:
        graph:         The graph to compile. Never modified.
        metadata:      Anything with lookup(node_type) -> Optional[NodeMetadata].
        data_resolver: Anything with input_source(node_id, pin_id) and
                       result_variable(node_id).
        exec_routing:  Anything with downstream(node_id, pin_id) -> List[str].
        variables:     Class variable name -> declared type text.
    """

    def __init__(self, graph: "Graph", metadata, data_resolver, exec_routing,
                 variables: Optional[Dict[str, str]] = None):
        self.graph = graph
        self.metadata = metadata
        self.data_resolver = data_resolver
        self.exec_routing = exec_routing
        self.variables: Dict[str, str] = dict(variables or {})

    # ── Program assembly ─────────────────────────────────────────────────

    def generate(self) -> str:
        """Generate the complete program text."""
        lines: List[str] = _header(self.graph.name)

        imports = self._collect_imports()
        lines.extend(f"use {path};" for path in imports)
        if imports:
            lines.append("")

        declarations = storage_declarations(self.variables)
        if declarations:
            lines.extend(declarations)
            lines.append("")

        event_nodes = [n for n in self.graph.sorted_nodes() if self._is_event(n)]
        if not event_nodes:
            raise NoEventNodesError()

        for event_node in event_nodes:
            lines.extend(self._generate_event_function(event_node))
            lines.append("")

        return "\n".join(lines)

    def _collect_imports(self) -> List[str]:
        imports: Set[str] = set()
        for node in self.graph.sorted_nodes():
            meta = self.metadata.lookup(node.node_type)
            if meta is not None:
                imports.update(meta.imports)
        return sorted(imports)

    def _is_event(self, node: "NodeInstance") -> bool:
        meta = self.metadata.lookup(node.node_type)
        return meta is not None and meta.kind == NodeKind.EVENT

    def _require_metadata(self, node: "NodeInstance") -> "NodeMetadata":
        meta = self.metadata.lookup(node.node_type)
        if meta is None:
            raise MetadataNotFoundError(node.node_type)
        return meta

    def _downstream_nodes(self, node: "NodeInstance", pin_id: str) -> List["NodeInstance"]:
        return [self.graph.require_node(nid)
                for nid in self.exec_routing.downstream(node.id, pin_id)]

    # ── Event functions ──────────────────────────────────────────────────

    def _generate_event_function(self, event_node: "NodeInstance") -> List[str]:
        meta = self._require_metadata(event_node)

        w = CodeWriter()
        w.writeln(f"pub fn {meta.name}() {{")
        for output_pin in event_node.exec_outputs():
            connected = self._downstream_nodes(event_node, output_pin.id)
            logger.debug("Event %s pin %s: %d connected nodes",
                         event_node.id, output_pin.id, len(connected))
            for next_node in connected:
                # Every output pin walks independently of the others
                w.append_raw(self._emit_chain(next_node, 1, set()))
        w.writeln("}")
        return w.lines()

    # ── Execution chains ─────────────────────────────────────────────────

    def _emit_chain(self, node: "NodeInstance", indent: int, visited: Set[str]) -> List[str]:
        """
        Emit `node` and everything it continues into, depth first.

        Function nodes and setters continue in place through a worklist;
        only control-flow branches recurse, so stack depth follows nesting
        and not chain length.
        """
        w = CodeWriter(indent)
        pending = [node]
        while pending:
            current = pending.pop()
            if current.id in visited:
                continue
            visited.add(current.id)

            if current.node_type.startswith(GETTER_PREFIX):
                continue
            if current.node_type.startswith(SETTER_PREFIX):
                w.writeln(self._setter_line(current))
            else:
                meta = self._require_metadata(current)
                if meta.kind == NodeKind.FUNCTION:
                    w.writeln(self._function_line(current, meta))
                elif meta.kind == NodeKind.CONTROL_FLOW:
                    w.extend(self._control_flow_lines(current, meta, visited))
                    continue
                else:
                    # PURE nodes are inlined at their use site, EVENT nodes only start chains
                    continue

            # Reversed so the first connected successor is popped first
            pending.extend(reversed(self._successors(current)))
        return w.lines()

    def _successors(self, node: "NodeInstance") -> List["NodeInstance"]:
        nodes: List["NodeInstance"] = []
        for output_pin in node.exec_outputs():
            nodes.extend(self._downstream_nodes(node, output_pin.id))
        return nodes

    def _function_line(self, node: "NodeInstance", meta: "NodeMetadata") -> str:
        call = f"{meta.name}({', '.join(self._collect_arguments(node, meta))})"
        if meta.return_type is None:
            return f"{call};"
        result_var = self.data_resolver.result_variable(node.id)
        if result_var is None:
            raise ContractViolationError(f"No result variable for node: {node.id}")
        return f"let {result_var} = {call};"

    def _control_flow_lines(self, node: "NodeInstance", meta: "NodeMetadata",
                            visited: Set[str]) -> List[str]:
        """Inlined template body, relative to the node's own indentation."""
        if meta.template is None:
            raise TemplateError(f"Control-flow node type '{node.node_type}' has no template body")

        exec_bindings: Dict[str, str] = {}
        for output_pin in node.exec_outputs():
            branch_visited = set(visited)
            branch_lines: List[str] = []
            for next_node in self._downstream_nodes(node, output_pin.id):
                branch_lines.extend(self._emit_chain(next_node, 0, branch_visited))
            exec_bindings[output_pin.pin.name] = trim_blank_lines("\n".join(branch_lines))

        param_bindings: Dict[str, str] = {}
        for param in meta.params:
            pin = node.find_input_by_name(param.name)
            if pin is None:
                raise UnboundParameterError(param.name, node.id)
            param_bindings[param.name] = self._input_expression(node.id, pin.id)

        body = inline_template(meta.template, exec_bindings, param_bindings)
        return body.splitlines()

    def _setter_line(self, node: "NodeInstance") -> str:
        var_name = node.node_type[len(SETTER_PREFIX):]
        if not var_name:
            raise ContractViolationError(f"Invalid setter node type: {node.node_type}")

        value_pin = node.find_input_by_name("value")
        if value_pin is None:
            raise ContractViolationError(f"Value input not found on setter node: {node.id}")
        value_expr = self._input_expression(node.id, value_pin.id)

        var_type = self.variables.get(var_name)
        if var_type is None:
            raise VariableNotFoundError(var_name)
        return setter_statement(var_name, var_type, value_expr)

    # ── Expressions ──────────────────────────────────────────────────────

    def _collect_arguments(self, node: "NodeInstance", meta: "NodeMetadata",
                           pure_stack: Optional[List[str]] = None) -> List[str]:
        args = []
        for param in meta.params:
            pin = node.find_input_by_name(param.name)
            if pin is None:
                raise UnboundParameterError(param.name, node.id)
            args.append(self._input_expression(node.id, pin.id, pure_stack))
        return args

    def _input_expression(self, node_id: str, pin_id: str,
                          pure_stack: Optional[List[str]] = None) -> str:
        """
        Expression text for one input pin.

        `pure_stack` lists the pure nodes currently being inlined for this
        expression; meeting one of them again means the data edges form a
        cycle.
        """
        source = self.data_resolver.input_source(node_id, pin_id)

        if isinstance(source, ConnectionSource):
            source_node = self.graph.get_node(source.source_node)
            if source_node is None:
                raise NodeNotFoundError(source.source_node)

            if source_node.node_type.startswith(GETTER_PREFIX):
                return self._getter_expression(source_node)

            meta = self.metadata.lookup(source_node.node_type)
            if meta is not None and meta.kind == NodeKind.PURE:
                return self._pure_expression(source_node, meta, pure_stack or [])

            result_var = self.data_resolver.result_variable(source_node.id)
            if result_var is None:
                raise ContractViolationError(f"No variable for source node: {source_node.id}")
            return result_var

        if isinstance(source, ConstantSource):
            return source.value

        if isinstance(source, DefaultSource):
            node = self.graph.get_node(node_id)
            if node is None:
                raise NodeNotFoundError(node_id)
            pin = node.get_input(pin_id)
            if pin is None:
                raise PinNotFoundError(node_id, pin_id)
            return default_value(pin.pin)

        raise UnresolvedDataSourceError(node_id, pin_id)

    def _pure_expression(self, node: "NodeInstance", meta: "NodeMetadata",
                         pure_stack: List[str]) -> str:
        if node.id in pure_stack:
            cycle = pure_stack[pure_stack.index(node.id):] + [node.id]
            raise CyclicDataDependencyError(cycle)
        args = self._collect_arguments(node, meta, pure_stack + [node.id])
        return f"{meta.name}({', '.join(args)})"

    def _getter_expression(self, node: "NodeInstance") -> str:
        var_name = node.node_type[len(GETTER_PREFIX):]
        if not var_name:
            raise ContractViolationError(f"Invalid getter node type: {node.node_type}")
        var_type = self.variables.get(var_name)
        if var_type is None:
            raise VariableNotFoundError(var_name)
        return getter_expression(var_name, var_type)


__all__ = ["BlueprintCodeGenerator"]
