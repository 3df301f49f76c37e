"""Nova Pass 1 — Check.

Single post-order walk that infers the type of every node and validates
annotations against inferred types. The first failure raises NovaTypeError.

Rules:
  - literals map directly to Int, String, Bool
  - Let checks its value, compares with the annotation if any, binds the name
  - Function checks its body in a fresh scope frame; its type is the body's
  - Return has the type of its value
  - Program has the type of its last child, Void when empty
  - Identifier resolves through the scope frames
  - anything else (BinaryOp included) is rejected as unsupported
"""

from __future__ import annotations

import logging

from nova.ast_nodes import (
    Node, Program, Function, Let, Return,
    Number, StringLiteral, Boolean, Identifier,
)
from nova.types import (
    NovaType, INT, STRING, BOOL, VOID,
    TypeEnvironment, make_function_type, resolve_type_name,
)
from nova.errors import type_mismatch, undefined_name, unsupported_node

logger = logging.getLogger(__name__)


class TypeChecker:
    """Type checks a Nova AST."""

    def __init__(self) -> None:
        self.globals = TypeEnvironment()
        self.env = self.globals

    def check(self, node: Node) -> NovaType:
        if isinstance(node, Program):
            return self._check_program(node)
        if isinstance(node, Function):
            return self._check_function(node)
        if isinstance(node, Let):
            return self._check_let(node)
        if isinstance(node, Return):
            return self.check(node.value)
        if isinstance(node, Number):
            return INT
        if isinstance(node, StringLiteral):
            return STRING
        if isinstance(node, Boolean):
            return BOOL
        if isinstance(node, Identifier):
            return self._check_identifier(node)
        raise unsupported_node(node.kind, node.location)

    def _check_program(self, node: Program) -> NovaType:
        last_type: NovaType = VOID
        for item in node.items:
            last_type = self.check(item)
        return last_type

    def _check_function(self, node: Function) -> NovaType:
        outer = self.env
        self.env = outer.child_scope()
        try:
            for param_name, type_name in node.params:
                self.env.insert(param_name, resolve_type_name(type_name, node.location))
            body_type = self.check(node.body)
        finally:
            self.env = outer
        # Call expressions do not exist yet, so the parameter list stays empty.
        self.env.insert(node.name, make_function_type([], body_type))
        logger.debug("function %s: %s", node.name, body_type)
        return body_type

    def _check_let(self, node: Let) -> NovaType:
        value_type = self.check(node.value)
        if node.type_annotation is not None:
            expected = resolve_type_name(node.type_annotation, node.location)
            if expected != value_type:
                raise type_mismatch(
                    str(expected), str(value_type), name=node.name, location=node.location,
                )
        self.env.insert(node.name, value_type)
        return value_type

    def _check_identifier(self, node: Identifier) -> NovaType:
        typ = self.env.get(node.name)
        if typ is None:
            raise undefined_name(node.name, node.location)
        return typ


def check(node: Node) -> NovaType:
    """Run Pass 1: type check a node and return its type."""
    return TypeChecker().check(node)
