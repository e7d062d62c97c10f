from dataclasses import dataclass, field
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional

import logging

from ..core.Types import DataType, NodeKind
from ..core.GraphPrimitives import NodeInstance, Pin, PinInstance
from ..core.Errors import ContractViolationError

logger = logging.getLogger(__name__)

GETTER_PREFIX = "get_"
SETTER_PREFIX = "set_"


@dataclass(frozen=True)
class ParamInfo:
    name: str
    type: str


@dataclass(frozen=True)
class NodeMetadata:
    """
    Everything the code generator needs to know about one node type.

    `name` is the identifier emitted for calls and event functions.
    `template` is only set for CONTROL_FLOW nodes; it references execution
    branches as {{exec:<pin>}} and parameters as {{param:<name>}}.
    """
    kind: NodeKind
    name: str
    params: List[ParamInfo] = field(default_factory=list)
    return_type: Optional[str] = None
    imports: FrozenSet[str] = frozenset()
    template: Optional[str] = None
    exec_inputs: List[str] = field(default_factory=list)
    exec_outputs: List[str] = field(default_factory=list)
    category: str = "General"
    description: str = ""


class NodeRegistry:
    """
    Maps node-type keys to NodeMetadata and builds node instances whose pins
    match that metadata.
    """

    def __init__(self):
        self._metadata: Dict[str, NodeMetadata] = {}

    def __len__(self) -> int:
        return len(self._metadata)

    def __contains__(self, node_type: str) -> bool:
        return node_type in self._metadata

    def node_types(self) -> List[str]:
        return sorted(self._metadata)

    def add(self, node_type: str, metadata: NodeMetadata) -> NodeMetadata:
        if node_type in self._metadata:
            raise ValueError(f"Node type '{node_type}' is already registered.")
        if node_type.startswith((GETTER_PREFIX, SETTER_PREFIX)):
            raise ValueError(
                f"Node type '{node_type}' collides with the variable getter/setter prefixes.")
        self._validate(node_type, metadata)
        self._metadata[node_type] = metadata
        return metadata

    def register(self, node_type: str) -> Callable[[Callable[[], NodeMetadata]], Callable[[], NodeMetadata]]:
        """Decorator: registers the metadata returned by the decorated factory."""
        def decorator(factory: Callable[[], NodeMetadata]) -> Callable[[], NodeMetadata]:
            self.add(node_type, factory())
            return factory
        return decorator

    def lookup(self, node_type: str) -> Optional[NodeMetadata]:
        return self._metadata.get(node_type)

    @staticmethod
    def _validate(node_type: str, metadata: NodeMetadata):
        if metadata.kind != NodeKind.CONTROL_FLOW:
            return
        if metadata.template is None:
            raise ValueError(f"Control-flow node type '{node_type}' has no template body.")

        from ..compiler.templates import find_placeholders

        exec_refs, param_refs = find_placeholders(metadata.template)
        if exec_refs != set(metadata.exec_outputs):
            raise ValueError(
                f"Control-flow node type '{node_type}': template branches {sorted(exec_refs)} "
                f"do not match execution outputs {sorted(metadata.exec_outputs)}")
        unknown = param_refs - {p.name for p in metadata.params}
        if unknown:
            raise ValueError(
                f"Control-flow node type '{node_type}': template references undeclared "
                f"parameters {sorted(unknown)}")

    # ── Instance factories ────────────────────────────────────────────────

    def create_node(self, node_id: str, node_type: str) -> NodeInstance:
        """
        Build a NodeInstance for a registered type. Pin ids are
        "<node_id>_<pin_name>"; parameters become data inputs and a return
        type becomes a "result" output.
        """
        meta = self.lookup(node_type)
        if meta is None:
            raise ValueError(f"Node type '{node_type}' is not registered.")

        inputs = [_pin(node_id, name, DataType.EXECUTION) for name in meta.exec_inputs]
        for param in meta.params:
            inputs.append(_pin(node_id, param.name, DataType.from_type_string(param.type), param.type))

        outputs = [_pin(node_id, name, DataType.EXECUTION) for name in meta.exec_outputs]
        if meta.return_type is not None:
            outputs.append(_pin(node_id, "result",
                                DataType.from_type_string(meta.return_type), meta.return_type))

        return NodeInstance(id=node_id, node_type=node_type, inputs=inputs, outputs=outputs)

    @staticmethod
    def create_getter(node_id: str, var_name: str, var_type: str) -> NodeInstance:
        if not var_name:
            raise ContractViolationError(f"Invalid getter node '{node_id}': empty variable name")
        return NodeInstance(
            id=node_id,
            node_type=f"{GETTER_PREFIX}{var_name}",
            outputs=[_pin(node_id, "value", DataType.from_type_string(var_type), var_type)],
        )

    @staticmethod
    def create_setter(node_id: str, var_name: str, var_type: str) -> NodeInstance:
        if not var_name:
            raise ContractViolationError(f"Invalid setter node '{node_id}': empty variable name")
        return NodeInstance(
            id=node_id,
            node_type=f"{SETTER_PREFIX}{var_name}",
            inputs=[
                _pin(node_id, "exec", DataType.EXECUTION),
                _pin(node_id, "value", DataType.from_type_string(var_type), var_type),
            ],
            outputs=[_pin(node_id, "next", DataType.EXECUTION)],
        )


def _pin(node_id: str, name: str, data_type: DataType, type_string: Optional[str] = None) -> PinInstance:
    if data_type != DataType.TYPED:
        type_string = None
    return PinInstance(id=f"{node_id}_{name}", pin=Pin(name, data_type, type_string))


# ── Standard node library ────────────────────────────────────────────────────

def _event(name: str, description: str) -> NodeMetadata:
    return NodeMetadata(kind=NodeKind.EVENT, name=name, exec_outputs=["next"],
                        category="Events", description=description)


def _function(name: str, params: Iterable[ParamInfo], return_type: Optional[str],
              module: str, description: str) -> NodeMetadata:
    return NodeMetadata(kind=NodeKind.FUNCTION, name=name, params=list(params),
                        return_type=return_type,
                        imports=frozenset({f"pulsar_std::{module}::{name}"}),
                        exec_inputs=["exec"], exec_outputs=["next"],
                        category=module.capitalize(), description=description)


def _pure(name: str, params: Iterable[ParamInfo], return_type: str,
          module: str, description: str) -> NodeMetadata:
    return NodeMetadata(kind=NodeKind.PURE, name=name, params=list(params),
                        return_type=return_type,
                        imports=frozenset({f"pulsar_std::{module}::{name}"}),
                        category=module.capitalize(), description=description)


_BRANCH = """\
if {{param:condition}} {
    {{exec:then}}
} else {
    {{exec:else}}
}
"""

_FOR_LOOP = """\
for _index in {{param:start}}..{{param:end}} {
    {{exec:body}}
}
{{exec:completed}}
"""

_WHILE_LOOP = """\
while {{param:condition}} {
    {{exec:body}}
}
{{exec:completed}}
"""

_SEQUENCE = """\
{{exec:then_0}}
{{exec:then_1}}
"""


def _number_pair(a: str = "a", b: str = "b") -> List[ParamInfo]:
    return [ParamInfo(a, "f64"), ParamInfo(b, "f64")]


def _bool_pair() -> List[ParamInfo]:
    return [ParamInfo("a", "bool"), ParamInfo("b", "bool")]


def default_registry() -> NodeRegistry:
    """A registry preloaded with the standard blueprint node library."""
    reg = NodeRegistry()

    reg.add("main", _event("main", "Program entry point"))
    reg.add("begin_play", _event("begin_play", "Fires once when play starts"))
    reg.add("on_tick", _event("on_tick", "Fires every frame"))

    reg.add("print_string", _function("print_string", [ParamInfo("message", "String")], None,
                                      "io", "Print a line of text"))
    reg.add("print_number", _function("print_number", [ParamInfo("value", "f64")], None,
                                      "io", "Print a number"))
    reg.add("delay", _function("delay", [ParamInfo("seconds", "f64")], None,
                               "time", "Block the current event for a duration"))
    reg.add("random_range", _function("random_range", _number_pair("min", "max"), "f64",
                                       "math", "Random number in [min, max)"))

    reg.add("add", _pure("add", _number_pair(), "f64", "math", "a + b"))
    reg.add("subtract", _pure("subtract", _number_pair(), "f64", "math", "a - b"))
    reg.add("multiply", _pure("multiply", _number_pair(), "f64", "math", "a * b"))
    reg.add("divide", _pure("divide", _number_pair(), "f64", "math", "a / b"))
    reg.add("greater_than", _pure("greater_than", _number_pair(), "bool", "math", "a > b"))
    reg.add("less_than", _pure("less_than", _number_pair(), "bool", "math", "a < b"))
    reg.add("equals", _pure("equals", _number_pair(), "bool", "math", "a == b"))
    reg.add("and", _pure("and", _bool_pair(), "bool", "logic", "a && b"))
    reg.add("or", _pure("or", _bool_pair(), "bool", "logic", "a || b"))
    reg.add("not", _pure("not", [ParamInfo("value", "bool")], "bool", "logic", "!value"))
    reg.add("concat", _pure("concat", [ParamInfo("a", "String"), ParamInfo("b", "String")],
                            "String", "string", "Join two strings"))
    reg.add("to_string", _pure("to_string", [ParamInfo("value", "f64")], "String",
                               "string", "Format a number as text"))
    reg.add("make_vector2", _pure("make_vector2", _number_pair("x", "y"), "(f64, f64)",
                                  "math", "Build a 2D vector"))

    reg.add("branch", NodeMetadata(
        kind=NodeKind.CONTROL_FLOW, name="branch",
        params=[ParamInfo("condition", "bool")],
        template=_BRANCH, exec_inputs=["exec"], exec_outputs=["then", "else"],
        category="Flow", description="Run one of two branches"))
    reg.add("for_loop", NodeMetadata(
        kind=NodeKind.CONTROL_FLOW, name="for_loop",
        params=[ParamInfo("start", "i64"), ParamInfo("end", "i64")],
        template=_FOR_LOOP, exec_inputs=["exec"], exec_outputs=["body", "completed"],
        category="Flow", description="Run the body for each index in [start, end)"))
    reg.add("while_loop", NodeMetadata(
        kind=NodeKind.CONTROL_FLOW, name="while_loop",
        params=[ParamInfo("condition", "bool")],
        template=_WHILE_LOOP, exec_inputs=["exec"], exec_outputs=["body", "completed"],
        category="Flow", description="Run the body while the condition holds"))
    reg.add("sequence", NodeMetadata(
        kind=NodeKind.CONTROL_FLOW, name="sequence",
        template=_SEQUENCE, exec_inputs=["exec"], exec_outputs=["then_0", "then_1"],
        category="Flow", description="Run two chains one after the other"))

    logger.debug("Loaded %d standard node types", len(reg))
    return reg
