"""Nova Pass 2 — Emit.

Walks a checked AST and drives the native backend: one LLVM function per
`fn` declaration, stack slots for `let` bindings, loads for identifier
references and a return for every function. The backend lowers the finished
module to a host object file.

Every generated function returns i32 and takes no arguments. Source
parameters are accepted by the parser and the checker but are not part of
the generated signature.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from nova.ast_nodes import (
    Node, Program, Function, Let, Return,
    Number, StringLiteral, Boolean, Identifier,
)
from nova.backend import LLVMBackend, Slot, I1, I32, I64
from nova.config import CompilerOptions
from nova.errors import CodeGenErrorCode, codegen_error

logger = logging.getLogger(__name__)


def narrow_to_i32(value: int) -> int:
    """Two's-complement truncation of a 64-bit literal to 32 bits."""
    value &= 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return value


class CodeGenerator:
    """Generates a backend module from a Nova AST."""

    def __init__(self, options: Optional[CompilerOptions] = None,
                 backend: Optional[LLVMBackend] = None):
        self.options = options or CompilerOptions()
        self.backend = backend or LLVMBackend()
        self.module = self.backend.create_module(self.options.module_name)
        # Variable storage, one frame per function on top of the global frame.
        self._scopes: list[dict[str, Slot]] = [{}]

    def generate(self, node: Node) -> None:
        if isinstance(node, Program):
            for item in node.items:
                self._generate_statement(item)
        else:
            self._generate_statement(node)

    # -------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------

    def _generate_statement(self, node: Node) -> None:
        if isinstance(node, Program):
            for item in node.items:
                self._generate_statement(item)
        elif isinstance(node, Function):
            self._generate_function(node)
        elif isinstance(node, Let):
            self._generate_let(node)
        elif isinstance(node, Return):
            self.backend.build_return(self._generate_value(node.value))
        elif isinstance(node, (Number, StringLiteral, Boolean, Identifier)):
            self._generate_value(node)
        elif self.options.strict:
            raise codegen_error(
                CodeGenErrorCode.UNSUPPORTED_NODE,
                f"No code generation rule for {node.kind}",
                node.location,
                node=node.kind,
            )
        else:
            logger.debug("skipping %s: no code generation rule", node.kind)

    def _generate_function(self, node: Function) -> None:
        logger.debug("generating function %s", node.name)
        function = self.backend.add_function(node.name, I32)
        block = self.backend.append_block(function, "entry")
        self.backend.position_at(block)

        self._scopes.append({})
        try:
            for stmt in node.body.items:
                if self.backend.is_terminated():
                    logger.debug("skipping %s after return in %s", stmt.kind, node.name)
                    break
                self._generate_statement(stmt)

            if not self.backend.is_terminated():
                self.backend.build_return(self.backend.const_int(I32, 0))
        finally:
            self._scopes.pop()
            self.backend.clear_position()

        if not self.backend.verify_function(function):
            raise codegen_error(
                CodeGenErrorCode.VERIFICATION_FAILED,
                f"Invalid function generated: {node.name}",
                node.location,
                function=node.name,
            )

    def _generate_let(self, node: Let) -> None:
        value = self._generate_value(node.value)
        slot = self.backend.build_alloca(value.type, node.name)
        self.backend.build_store(slot, value)
        # Redeclaration replaces the binding; the old slot stays allocated.
        self._scopes[-1][node.name] = slot

    # -------------------------------------------------------------------
    # Values
    # -------------------------------------------------------------------

    def _generate_value(self, node: Node) -> Any:
        if isinstance(node, Number):
            return self.backend.const_int(I32, narrow_to_i32(node.value))
        if isinstance(node, Boolean):
            return self.backend.const_int(I1, int(node.value))
        if isinstance(node, StringLiteral):
            return self.backend.const_string(node.value)
        if isinstance(node, Identifier):
            return self._load_variable(node)
        raise codegen_error(
            CodeGenErrorCode.UNSUPPORTED_NODE,
            f"Unsupported expression for value generation: {node.kind}",
            node.location,
            node=node.kind,
        )

    def _load_variable(self, node: Identifier) -> Any:
        name = node.name
        slot = self._lookup(name)
        if slot is None:
            raise codegen_error(
                CodeGenErrorCode.UNDEFINED_VARIABLE,
                f"Undefined variable: {name}",
                node.location,
                name=name,
            )
        typ = I64 if self.options.legacy_wide_loads else slot.type
        return self.backend.build_load(typ, slot, name)

    def _lookup(self, name: str) -> Optional[Slot]:
        for frame in reversed(self._scopes):
            if name in frame:
                return frame[name]
        return None

    # -------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------

    def emit_ir(self) -> str:
        return self.backend.emit_ir()

    def write_object_file(self, path: str) -> None:
        self.backend.write_object(path, opt_level=self.options.opt_level)

    def write_bitcode_file(self, path: str) -> None:
        self.backend.write_bitcode(path)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def generate(program: Node, options: Optional[CompilerOptions] = None) -> CodeGenerator:
    """Run Pass 2 over a checked AST. Returns the generator holding the module."""
    codegen = CodeGenerator(options)
    codegen.generate(program)
    return codegen


def emit(program: Node, options: Optional[CompilerOptions] = None) -> str:
    """Run Pass 2 and return the module's LLVM IR text."""
    return generate(program, options).emit_ir()


def emit_and_compile(program: Node, output_path: str,
                     options: Optional[CompilerOptions] = None) -> str:
    """Run Pass 2, write an object file to output_path. Returns LLVM IR text."""
    codegen = generate(program, options)
    codegen.write_object_file(output_path)
    return codegen.emit_ir()
