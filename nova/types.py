"""Nova Type System.

Built-in types: Int, Float, Bool, String, Void
Function types: fn(params) -> return
Type environment with one scope frame per function.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from nova.errors import SourceLocation, unknown_type_name


# ---------------------------------------------------------------------------
# Type Representations
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NovaType:
    """Base type. Equality is structural."""
    def __str__(self) -> str:
        return "Unknown"


@dataclass(frozen=True)
class PrimitiveType(NovaType):
    name: str = ""

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class FunctionType(NovaType):
    param_types: tuple[NovaType, ...] = ()
    return_type: NovaType = field(default_factory=NovaType)

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.param_types)
        return f"fn({params}) -> {self.return_type}"


# ---------------------------------------------------------------------------
# Built-in Types
# ---------------------------------------------------------------------------

INT = PrimitiveType("Int")
FLOAT = PrimitiveType("Float")
BOOL = PrimitiveType("Bool")
STRING = PrimitiveType("String")
VOID = PrimitiveType("Void")

# Source spellings accepted in annotations, mapped to canonical types.
TYPE_NAMES: dict[str, NovaType] = {
    "i32": INT,
    "int": INT,
    "f64": FLOAT,
    "float": FLOAT,
    "bool": BOOL,
    "string": STRING,
}


def make_function_type(params: list[NovaType], return_type: NovaType) -> FunctionType:
    return FunctionType(tuple(params), return_type)


def resolve_type_name(name: str, location: Optional[SourceLocation] = None) -> NovaType:
    """Resolve an annotation string to its canonical type."""
    typ = TYPE_NAMES.get(name)
    if typ is None:
        raise unknown_type_name(name, location)
    return typ


# ---------------------------------------------------------------------------
# Type Environment
# ---------------------------------------------------------------------------

class TypeEnvironment:
    """Scoped name -> type mapping.

    The root environment is the global frame. ``child_scope`` opens a frame
    for a function body; names bound there disappear when the checker returns
    to the parent.
    """

    def __init__(self, parent: Optional[TypeEnvironment] = None):
        self.parent = parent
        self._symbols: dict[str, NovaType] = {}

    def insert(self, name: str, typ: NovaType) -> None:
        self._symbols[name] = typ

    def get(self, name: str) -> Optional[NovaType]:
        if name in self._symbols:
            return self._symbols[name]
        if self.parent:
            return self.parent.get(name)
        return None

    def local_names(self) -> list[str]:
        return list(self._symbols)

    def child_scope(self) -> TypeEnvironment:
        return TypeEnvironment(parent=self)

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None
