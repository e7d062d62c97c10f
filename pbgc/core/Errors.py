"""
Exception taxonomy shared by every compilation phase.

All errors abort the compilation that raised them; nothing is retried and
no partial output is returned.
"""

from typing import Optional


class GraphError(Exception):
    """Base class for every error raised while compiling a graph."""


class NodeNotFoundError(GraphError):
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class MetadataNotFoundError(NodeNotFoundError):
    """No metadata is registered for a node type."""

    def __init__(self, node_type: str):
        super().__init__(node_type)
        self.node_type = node_type
        self.args = (f"No metadata registered for node type: {node_type}",)


class PinNotFoundError(GraphError):
    def __init__(self, node_id: str, pin_id: str):
        self.node_id = node_id
        self.pin_id = pin_id
        super().__init__(f"Pin '{pin_id}' not found on node '{node_id}'")


class CodeGenerationError(GraphError):
    """The graph as a whole cannot be turned into a program."""


class NoEventNodesError(CodeGenerationError):
    def __init__(self):
        super().__init__(
            "No event nodes found in graph - add a 'main' or 'begin_play' event"
        )


class ContractViolationError(GraphError):
    """A node, pin or template does not satisfy what its metadata promises."""


class UnboundParameterError(ContractViolationError):
    def __init__(self, param_name: str, node_id: str):
        self.param_name = param_name
        self.node_id = node_id
        super().__init__(
            f"Input pin not found for parameter '{param_name}' on node '{node_id}'"
        )


class VariableNotFoundError(ContractViolationError):
    def __init__(self, var_name: str):
        self.var_name = var_name
        super().__init__(f"Variable '{var_name}' not found")


class UnresolvedDataSourceError(ContractViolationError):
    def __init__(self, node_id: str, pin_id: str):
        self.node_id = node_id
        self.pin_id = pin_id
        super().__init__(f"No data source for input: {node_id}.{pin_id}")


class TemplateError(ContractViolationError):
    def __init__(self, message: str, placeholder: Optional[str] = None):
        self.placeholder = placeholder
        super().__init__(message)


class CyclicDataDependencyError(ContractViolationError):
    def __init__(self, cycle: list):
        self.cycle = list(cycle)
        super().__init__(
            "Cyclic data dependency between pure nodes: " + " -> ".join(self.cycle)
        )


class SchemaError(GraphError, ValueError):
    """Raised when serialised graph JSON fails structural validation."""
