import pytest

from pbgc.core.Errors import TemplateError
from pbgc.compiler.templates import CodeWriter, find_placeholders, inline_template, trim_blank_lines


BRANCH = "if {{param:condition}} {\n    {{exec:then}}\n} else {\n    {{exec:else}}\n}\n"


class TestInlineTemplate:

    def test_substitutes_params_and_branches(self):
        out = inline_template(BRANCH, {"then": "a();", "else": "b();"}, {"condition": "x > 1"})

        assert out == "if x > 1 {\n    a();\n} else {\n    b();\n}"

    def test_multiline_branch_is_indented_to_placeholder(self):
        out = inline_template(BRANCH, {"then": "a();\nb();", "else": ""}, {"condition": "c"})

        assert out.splitlines() == ["if c {", "    a();", "    b();", "} else {", "    ", "}"]

    def test_unbound_placeholder_fails(self):
        with pytest.raises(TemplateError) as exc_info:
            inline_template(BRANCH, {"then": ""}, {"condition": "c"})
        assert exc_info.value.placeholder == "exec:else"

    def test_unused_binding_is_ignored(self):
        out = inline_template("go({{param:x}});", {"unused": "nope();"}, {"x": "1", "y": "2"})

        assert out == "go(1);"

    def test_placeholder_whitespace_is_tolerated(self):
        assert inline_template("{{ param : x }}", {}, {"x": "42"}) == "42"

    def test_find_placeholders(self):
        exec_refs, param_refs = find_placeholders(BRANCH)

        assert exec_refs == {"then", "else"}
        assert param_refs == {"condition"}

    def test_trim_blank_lines_keeps_interior(self):
        assert trim_blank_lines("\n\n  \na();\n\nb();\n \n") == "a();\n\nb();"


class TestCodeWriter:

    def test_indentation(self):
        w = CodeWriter(indent=1)
        w.writeln("y();").writeln()

        assert w.lines() == ["    y();", ""]

    def test_extend_reindents_and_drops_blank_lines(self):
        w = CodeWriter(indent=2)
        w.extend(["a {", "    ", "    b;", "}"])

        assert w.lines() == ["        a {", "            b;", "        }"]

    def test_append_raw_keeps_lines(self):
        w = CodeWriter(indent=1)
        w.append_raw(["  raw"])

        assert w.lines() == ["  raw"]
