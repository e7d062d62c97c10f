import pytest

from pbgc.core.Types import DataType, NodeKind
from pbgc.core.Errors import ContractViolationError
from pbgc.noderegistry.NodeRegistry import (
    NodeMetadata,
    NodeRegistry,
    ParamInfo,
    default_registry,
)


def _branch_meta(template="if {{param:c}} {\n    {{exec:yes}}\n}\n", exec_outputs=("yes",)):
    return NodeMetadata(kind=NodeKind.CONTROL_FLOW, name="check",
                        params=[ParamInfo("c", "bool")], template=template,
                        exec_inputs=["exec"], exec_outputs=list(exec_outputs))


class TestRegistration:

    def setup_method(self):
        self.reg = NodeRegistry()

    def test_add_and_lookup(self):
        meta = NodeMetadata(kind=NodeKind.PURE, name="twice", params=[ParamInfo("x", "f64")],
                            return_type="f64")
        self.reg.add("twice", meta)

        assert self.reg.lookup("twice") is meta
        assert "twice" in self.reg
        assert len(self.reg) == 1

    def test_unknown_lookup_is_none(self):
        assert self.reg.lookup("missing") is None

    def test_duplicate_registration_fails(self):
        self.reg.add("main", NodeMetadata(kind=NodeKind.EVENT, name="main"))
        with pytest.raises(ValueError, match="already registered"):
            self.reg.add("main", NodeMetadata(kind=NodeKind.EVENT, name="main"))

    def test_decorator_registers_factory_result(self):
        @self.reg.register("tick")
        def tick():
            return NodeMetadata(kind=NodeKind.EVENT, name="tick", exec_outputs=["next"])

        assert self.reg.lookup("tick").name == "tick"

    @pytest.mark.parametrize("node_type", ["get_score", "set_score"])
    def test_variable_prefix_is_reserved(self, node_type):
        with pytest.raises(ValueError, match="prefixes"):
            self.reg.add(node_type, NodeMetadata(kind=NodeKind.PURE, name=node_type))

    def test_control_flow_needs_template(self):
        meta = NodeMetadata(kind=NodeKind.CONTROL_FLOW, name="nothing", exec_outputs=["a"])
        with pytest.raises(ValueError, match="no template"):
            self.reg.add("nothing", meta)

    def test_template_branches_must_match_exec_outputs(self):
        with pytest.raises(ValueError, match="do not match"):
            self.reg.add("check", _branch_meta(exec_outputs=("yes", "no")))

    def test_template_params_must_be_declared(self):
        template = "if {{param:other}} {\n    {{exec:yes}}\n}\n"
        with pytest.raises(ValueError, match="undeclared"):
            self.reg.add("check", _branch_meta(template=template))

    def test_valid_control_flow_is_accepted(self):
        self.reg.add("check", _branch_meta())
        assert self.reg.lookup("check").kind == NodeKind.CONTROL_FLOW


class TestFactories:

    def setup_method(self):
        self.reg = default_registry()

    def test_function_node_pins(self):
        node = self.reg.create_node("rnd", "random_range")

        assert [p.id for p in node.inputs] == ["rnd_exec", "rnd_min", "rnd_max"]
        assert [p.id for p in node.outputs] == ["rnd_next", "rnd_result"]
        assert node.inputs[0].pin.is_execution()
        assert node.get_input("rnd_min").pin.data_type == DataType.NUMBER

    def test_pure_node_has_no_exec_pins(self):
        node = self.reg.create_node("a", "add")

        assert all(not p.pin.is_execution() for p in node.inputs + node.outputs)
        assert node.find_output_by_name("result") is not None

    def test_typed_params_keep_type_string(self):
        node = self.reg.create_node("loop", "for_loop")
        start = node.find_input_by_name("start").pin

        assert start.data_type == DataType.TYPED
        assert start.type_string == "i64"

    def test_event_node_has_only_exec_output(self):
        node = self.reg.create_node("bp", "begin_play")

        assert node.inputs == []
        assert [p.pin.name for p in node.outputs] == ["next"]

    def test_unknown_type_fails(self):
        with pytest.raises(ValueError, match="not registered"):
            self.reg.create_node("x", "teleport")

    def test_getter(self):
        node = NodeRegistry.create_getter("g", "counter", "i32")

        assert node.node_type == "get_counter"
        assert node.inputs == []
        assert node.outputs[0].id == "g_value"
        assert node.outputs[0].pin.type_string == "i32"

    def test_setter(self):
        node = NodeRegistry.create_setter("s", "name", "String")

        assert node.node_type == "set_name"
        assert [p.pin.name for p in node.inputs] == ["exec", "value"]
        assert node.get_input("s_value").pin.data_type == DataType.STRING
        assert [p.id for p in node.outputs] == ["s_next"]

    def test_empty_variable_name_fails(self):
        with pytest.raises(ContractViolationError):
            NodeRegistry.create_getter("g", "", "i32")


class TestStandardLibrary:

    def test_expected_node_types(self):
        reg = default_registry()
        for node_type in ("main", "begin_play", "on_tick", "print_string", "add",
                          "branch", "for_loop", "while_loop", "sequence"):
            assert node_type in reg

    def test_kinds(self):
        reg = default_registry()

        assert reg.lookup("main").kind == NodeKind.EVENT
        assert reg.lookup("print_string").kind == NodeKind.FUNCTION
        assert reg.lookup("add").kind == NodeKind.PURE
        assert reg.lookup("branch").kind == NodeKind.CONTROL_FLOW

    def test_imports_name_std_module(self):
        reg = default_registry()

        assert reg.lookup("print_string").imports == frozenset({"pulsar_std::io::print_string"})
        assert reg.lookup("branch").imports == frozenset()

    def test_each_call_builds_a_fresh_registry(self):
        assert default_registry() is not default_registry()
