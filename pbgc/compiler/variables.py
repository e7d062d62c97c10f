"""
pbgc Compiler — Variable Storage Policy
=======================================
Blueprint class variables live in process-wide storage cells named after the
variable, upper-cased (`counter` -> `COUNTER`). The declared type picks the
cell flavour:

    plain-copy  (integers, floats, bool, char)   std::cell::Cell<T>
        read   COUNTER.with(|v| v.get())
        write  COUNTER.with(|v| v.set(<expr>));

    complex     (everything else)                std::cell::RefCell<T>
        read   NAME.with(|v| v.borrow().clone())
        write  NAME.with(|v| *v.borrow_mut() = <expr>);

Cells are thread-local and assume event handlers never run concurrently.
"""

from __future__ import annotations

import re
from typing import Dict, List

from ..core.Types import DataType

PLAIN_COPY_TYPES = frozenset({
    "i8", "i16", "i32", "i64", "i128", "isize",
    "u8", "u16", "u32", "u64", "u128", "usize",
    "f32", "f64", "bool", "char",
})

_INTEGER_TYPES = PLAIN_COPY_TYPES - {"f32", "f64", "bool", "char"}


def is_copy_type(type_str: str) -> bool:
    return type_str.strip() in PLAIN_COPY_TYPES


def storage_cell_name(var_name: str) -> str:
    return var_name.upper()


def getter_expression(var_name: str, var_type: str) -> str:
    cell = storage_cell_name(var_name)
    if is_copy_type(var_type):
        return f"{cell}.with(|v| v.get())"
    return f"{cell}.with(|v| v.borrow().clone())"


def setter_statement(var_name: str, var_type: str, value_expr: str) -> str:
    cell = storage_cell_name(var_name)
    if is_copy_type(var_type):
        return f"{cell}.with(|v| v.set({value_expr}));"
    return f"{cell}.with(|v| *v.borrow_mut() = {value_expr});"


def storage_declarations(variables: Dict[str, str]) -> List[str]:
    """One thread_local! block declaring a cell per variable, sorted by name."""
    if not variables:
        return []
    lines = ["thread_local! {"]
    for name in sorted(variables):
        var_type = variables[name].strip()
        wrapper = "std::cell::Cell" if is_copy_type(var_type) else "std::cell::RefCell"
        lines.append(
            f"    static {storage_cell_name(name)}: {wrapper}<{var_type}> = "
            f"{wrapper}::new({default_value_for_type(var_type)});"
        )
    lines.append("}")
    return lines


# ── Zero values ──────────────────────────────────────────────────────────────

_GENERIC = re.compile(r"^([A-Za-z_][A-Za-z0-9_:]*)\s*<.*>$")


def _split_tuple(inner: str) -> List[str]:
    parts, depth, current = [], 0, ""
    for ch in inner:
        if ch in "<([":
            depth += 1
        elif ch in ">)]":
            depth -= 1
        if ch == "," and depth == 0:
            parts.append(current.strip())
            current = ""
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def default_value_for_type(type_str: str) -> str:
    """Zero-value expression for a declared type string."""
    t = type_str.strip()
    if t in _INTEGER_TYPES:
        return "0"
    if t in ("f32", "f64"):
        return "0.0"
    if t == "bool":
        return "false"
    if t == "char":
        return "'\\0'"
    if t == "String":
        return "String::new()"
    if t in ("&str", "&'static str"):
        return '""'
    if t == "()":
        return "()"
    if t.startswith("(") and t.endswith(")"):
        elements = [default_value_for_type(e) for e in _split_tuple(t[1:-1])]
        if len(elements) == 1:
            return f"({elements[0]},)"
        return "(" + ", ".join(elements) + ")"

    generic = _GENERIC.match(t)
    if generic:
        base = generic.group(1).split("::")[-1]
        if base == "Vec":
            return "Vec::new()"
        if base == "Option":
            return "None"
        if base in ("HashMap", "HashSet", "BTreeMap", "BTreeSet", "VecDeque"):
            return f"{base}::new()"
    return "Default::default()"


_DEFAULTS = {
    DataType.EXECUTION: "()",
    DataType.NUMBER: "0.0",
    DataType.STRING: "String::new()",
    DataType.BOOLEAN: "false",
    DataType.VECTOR2: "(0.0, 0.0)",
    DataType.VECTOR3: "(0.0, 0.0, 0.0)",
    DataType.COLOR: "(0.0, 0.0, 0.0, 1.0)",
    DataType.ANY: "Default::default()",
}


def default_value(pin) -> str:
    """Zero-value expression for an unbound input pin."""
    if pin.data_type == DataType.TYPED:
        return default_value_for_type(pin.type_string or "")
    return _DEFAULTS[pin.data_type]


__all__ = [
    "PLAIN_COPY_TYPES",
    "is_copy_type",
    "storage_cell_name",
    "getter_expression",
    "setter_statement",
    "storage_declarations",
    "default_value_for_type",
    "default_value",
]
