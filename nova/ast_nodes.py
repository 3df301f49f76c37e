"""Nova AST Node definitions.

A program is a Program node holding top-level declarations. The same node
type is reused for a function body's statement list, so every Function body
is a Program. Nodes own their children exclusively; the tree is built once by
the parser and not mutated afterwards.

Source locations are carried for diagnostics only and never take part in
node equality.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from nova.errors import SourceLocation


class BinaryOperator(Enum):
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"


@dataclass
class Node:
    """Base class for all AST nodes."""

    @property
    def kind(self) -> str:
        return type(self).__name__


@dataclass
class Program(Node):
    items: list[Node] = field(default_factory=list)
    location: Optional[SourceLocation] = field(default=None, compare=False)


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------

@dataclass
class Number(Node):
    value: int = 0
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass
class StringLiteral(Node):
    value: str = ""
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass
class Boolean(Node):
    value: bool = False
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass
class Identifier(Node):
    name: str = ""
    location: Optional[SourceLocation] = field(default=None, compare=False)


# ---------------------------------------------------------------------------
# Declarations and statements
# ---------------------------------------------------------------------------

@dataclass
class Let(Node):
    name: str = ""
    type_annotation: Optional[str] = None
    value: Node = field(default_factory=Node)
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass
class Function(Node):
    name: str = ""
    params: list[tuple[str, str]] = field(default_factory=list)
    body: Program = field(default_factory=Program)
    # Declared return type name, if written. Informational only.
    return_type: Optional[str] = None
    location: Optional[SourceLocation] = field(default=None, compare=False)


@dataclass
class Return(Node):
    value: Node = field(default_factory=Node)
    location: Optional[SourceLocation] = field(default=None, compare=False)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass
class BinaryOp(Node):
    op: BinaryOperator = BinaryOperator.ADD
    left: Node = field(default_factory=Node)
    right: Node = field(default_factory=Node)
    location: Optional[SourceLocation] = field(default=None, compare=False)
