from enum import Enum, auto
from typing import Optional


class ConnectionType(Enum):
    EXECUTION = auto()
    DATA = auto()


class NodeKind(Enum):
    EVENT = "event"
    PURE = "pure"
    FUNCTION = "fn"
    CONTROL_FLOW = "control_flow"


class DataType(Enum):
    EXECUTION = "execution"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    VECTOR2 = "vector2"
    VECTOR3 = "vector3"
    COLOR = "color"
    ANY = "any"
    TYPED = "typed"

    @staticmethod
    def from_type_string(type_str: Optional[str]) -> 'DataType':
        """Map a declared parameter type onto the closest pin kind."""
        if type_str is None:
            return DataType.ANY
        t = type_str.strip()
        if t in ("f32", "f64"):
            return DataType.NUMBER
        if t in ("String", "&str"):
            return DataType.STRING
        if t == "bool":
            return DataType.BOOLEAN
        if t in ("(f32, f32)", "(f64, f64)"):
            return DataType.VECTOR2
        if t in ("(f32, f32, f32)", "(f64, f64, f64)"):
            return DataType.VECTOR3
        if t in ("(f32, f32, f32, f32)", "(f64, f64, f64, f64)"):
            return DataType.COLOR
        return DataType.TYPED
