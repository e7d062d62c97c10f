import json

import pytest

from pbgc.core.Types import ConnectionType, DataType
from pbgc.core.Errors import SchemaError
from pbgc.compiler import compile_graph, compile_graph_with_variables
from pbgc.compiler.deserialiser import json_to_graph


def branch_document():
    return {
        "graph_name": "from_json",
        "nodes": [
            {"id": "begin_play", "type": "begin_play"},
            {"id": "branch_1", "type": "branch", "properties": {"condition": "true"}},
            {"id": "print_yes", "type": "print_string", "properties": {"message": '"yes"'}},
            {"id": "print_no", "type": "print_string", "properties": {"print_no_message": '"no"'}},
        ],
        "connections": [
            {"source_node": "begin_play", "source_pin": "begin_play_next",
             "target_node": "branch_1", "target_pin": "branch_1_exec"},
            {"source_node": "branch_1", "source_pin": "branch_1_then",
             "target_node": "print_yes", "target_pin": "print_yes_exec"},
            {"source_node": "branch_1", "source_pin": "branch_1_else",
             "target_node": "print_no", "target_pin": "print_no_exec",
             "connection_type": "execution"},
        ],
    }


class TestJsonToGraph:

    def test_pins_are_built_from_registry(self):
        graph, variables = json_to_graph(branch_document())

        assert variables == {}
        assert graph.name == "from_json"
        assert [p.id for p in graph.nodes["branch_1"].outputs] == ["branch_1_then", "branch_1_else"]
        assert all(c.connection_type == ConnectionType.EXECUTION for c in graph.connections)

    def test_properties_by_name_or_id(self):
        graph, _ = json_to_graph(branch_document())

        assert graph.nodes["print_yes"].properties == {"print_yes_message": '"yes"'}
        assert graph.nodes["print_no"].properties == {"print_no_message": '"no"'}

    def test_compiles_like_a_hand_built_graph(self):
        graph, _ = json_to_graph(branch_document())

        code = compile_graph(graph)

        assert (
            "pub fn begin_play() {\n"
            "    if true {\n"
            '        print_string("yes");\n'
            "    } else {\n"
            '        print_string("no");\n'
            "    }\n"
            "}\n"
        ) in code

    def test_explicit_pins_are_used_verbatim(self):
        doc = {
            "graph_name": "explicit",
            "nodes": [{
                "id": "p", "type": "print_number",
                "inputs": [
                    {"id": "in_exec", "name": "exec", "data_type": "execution"},
                    {"id": "in_value", "name": "value", "data_type": "typed", "type_string": "u8"},
                ],
                "outputs": [{"id": "out_next", "name": "next", "data_type": "execution"}],
            }],
        }

        graph, _ = json_to_graph(doc)
        value = graph.nodes["p"].get_input("in_value").pin

        assert value.data_type == DataType.TYPED
        assert value.type_string == "u8"

    def test_variable_nodes_use_declared_types(self):
        doc = {
            "graph_name": "vars",
            "variables": {"score": "i32"},
            "nodes": [
                {"id": "main", "type": "main"},
                {"id": "s", "type": "set_score", "properties": {"value": "7"}},
                {"id": "g", "type": "get_score"},
                {"id": "p", "type": "print_number"},
            ],
            "connections": [
                {"source_node": "main", "source_pin": "main_next", "target_node": "s", "target_pin": "s_exec"},
                {"source_node": "s", "source_pin": "s_next", "target_node": "p", "target_pin": "p_exec"},
                {"source_node": "g", "source_pin": "g_value", "target_node": "p", "target_pin": "p_value"},
            ],
        }

        graph, variables = json_to_graph(doc)
        code = compile_graph_with_variables(graph, variables)

        assert "    SCORE.with(|v| v.set(7));\n    print_number(SCORE.with(|v| v.get()));\n" in code

    def test_reads_from_file(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps(branch_document()), encoding="utf-8")

        graph, _ = json_to_graph(path)

        assert len(graph.nodes) == 4


class TestSchemaErrors:

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{ not json", encoding="utf-8")

        with pytest.raises(SchemaError, match="invalid JSON"):
            json_to_graph(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            json_to_graph(tmp_path / "absent.json")

    def test_missing_graph_name(self):
        with pytest.raises(SchemaError):
            json_to_graph({"nodes": []})

    def test_duplicate_node_ids(self):
        doc = {"graph_name": "dup", "nodes": [{"id": "a", "type": "main"}, {"id": "a", "type": "main"}]}
        with pytest.raises(SchemaError, match="duplicate node id"):
            json_to_graph(doc)

    def test_connection_to_unknown_node(self):
        doc = branch_document()
        doc["connections"][0]["target_node"] = "ghost"
        with pytest.raises(SchemaError, match="ghost"):
            json_to_graph(doc)

    def test_connection_to_unknown_pin(self):
        doc = branch_document()
        doc["connections"][0]["target_pin"] = "branch_1_nope"
        with pytest.raises(SchemaError, match="branch_1_nope"):
            json_to_graph(doc)

    def test_unknown_connection_type(self):
        doc = branch_document()
        doc["connections"][0]["connection_type"] = "telepathy"
        with pytest.raises(SchemaError, match="telepathy"):
            json_to_graph(doc)

    def test_typed_pin_without_type_string(self):
        doc = {"graph_name": "t", "nodes": [{
            "id": "n", "type": "x", "inputs": [{"id": "n_a", "name": "a", "data_type": "typed"}]}]}
        with pytest.raises(SchemaError, match="type_string"):
            json_to_graph(doc)

    def test_unregistered_type_without_pins(self):
        doc = {"graph_name": "t", "nodes": [{"id": "n", "type": "teleport"}]}
        with pytest.raises(SchemaError, match="not registered"):
            json_to_graph(doc)

    def test_undeclared_variable(self):
        doc = {"graph_name": "t", "nodes": [{"id": "g", "type": "get_ghost"}]}
        with pytest.raises(SchemaError, match="not declared"):
            json_to_graph(doc)

    def test_property_for_unknown_pin(self):
        doc = {"graph_name": "t", "nodes": [
            {"id": "p", "type": "print_string", "properties": {"colour": "red"}}]}
        with pytest.raises(SchemaError, match="colour"):
            json_to_graph(doc)
