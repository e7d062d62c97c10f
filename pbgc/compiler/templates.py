"""
pbgc Compiler — Control-Flow Templates
======================================
Control-flow nodes are realised by inlining a template body taken from
their metadata. Two placeholder families are recognised:

    {{exec:<pin>}}     replaced by the generated code of an execution branch
    {{param:<name>}}   replaced by the expression bound to a parameter

Example (branch):

    if {{param:condition}} {
        {{exec:then}}
    } else {
        {{exec:else}}
    }

A multi-line substitution is re-indented so that every continuation line
lines up with the leading whitespace of the line holding the placeholder.
Referencing a placeholder with no binding is a TemplateError; bindings the
template never references are ignored.

This module also hosts CodeWriter, the indented line accumulator used by
the emitter.
"""

from __future__ import annotations

import re
from typing import Dict, List, Set, Tuple

from ..core.Errors import TemplateError

INDENT = "    "

_PLACEHOLDER = re.compile(r"\{\{\s*(exec|param)\s*:\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


# ── Code writer ───────────────────────────────────────────────────────────────

class CodeWriter:
    """Simple indented string accumulator."""

    def __init__(self, indent: int = 0):
        self._lines: List[str] = []
        self._indent = indent

    def writeln(self, line: str = "") -> "CodeWriter":
        if line:
            self._lines.append(INDENT * self._indent + line)
        else:
            self._lines.append("")
        return self

    def extend(self, lines: List[str]) -> "CodeWriter":
        """Append lines re-indented to the current level; blank lines are dropped."""
        for line in lines:
            if line.strip():
                self.writeln(line)
        return self

    def append_raw(self, lines: List[str]) -> "CodeWriter":
        """Append lines that already carry their own indentation."""
        self._lines.extend(lines)
        return self

    def lines(self) -> List[str]:
        return self._lines


# ── Placeholder handling ─────────────────────────────────────────────────────

def find_placeholders(template: str) -> Tuple[Set[str], Set[str]]:
    """Return (exec branch names, parameter names) referenced by a template."""
    exec_refs: Set[str] = set()
    param_refs: Set[str] = set()
    for family, name in _PLACEHOLDER.findall(template):
        (exec_refs if family == "exec" else param_refs).add(name)
    return exec_refs, param_refs


def trim_blank_lines(text: str) -> str:
    """Drop leading and trailing blank lines, keeping interior layout."""
    lines = text.splitlines()
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def _substitute_line(line: str,
                     exec_bindings: Dict[str, str],
                     param_bindings: Dict[str, str]) -> str:
    leading = line[:len(line) - len(line.lstrip())]

    def replace(match: "re.Match[str]") -> str:
        family, name = match.group(1), match.group(2)
        bindings = exec_bindings if family == "exec" else param_bindings
        if name not in bindings:
            raise TemplateError(
                f"Template placeholder '{family}:{name}' has no binding",
                placeholder=f"{family}:{name}",
            )
        value = bindings[name]
        if "\n" not in value:
            return value
        first, *rest = value.split("\n")
        return "\n".join([first] + [leading + r if r.strip() else r for r in rest])

    return _PLACEHOLDER.sub(replace, line)


def inline_template(template: str,
                    exec_bindings: Dict[str, str],
                    param_bindings: Dict[str, str]) -> str:
    """
    Substitute every placeholder in `template`.

    Args:
        template:       Template body from control-flow metadata.
        exec_bindings:  Branch pin name -> generated branch code.
        param_bindings: Parameter name -> resolved expression.

    Returns:
        The inlined body. Indentation is relative to the template.

    Raises:
        TemplateError: If the template references an unbound placeholder.
    """
    out = [_substitute_line(line, exec_bindings, param_bindings)
           for line in template.splitlines()]
    return "\n".join(out)


__all__ = ["CodeWriter", "INDENT", "find_placeholders", "inline_template", "trim_blank_lines"]
