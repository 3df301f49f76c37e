"""Nova compilation pipeline: tokenize -> parse -> check -> emit.

Each stage runs once, in order, and raises on its first error. Linking the
object file into an executable is left to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from nova.ast_nodes import Program
from nova.config import CompilerOptions
from nova.lexer import tokenize
from nova.parser import Parser
from nova.pass1_check import check
from nova.pass2_emit import generate
from nova.types import NovaType

logger = logging.getLogger(__name__)


@dataclass
class CompilationResult:
    program: Program
    program_type: NovaType
    llvm_ir: str
    object_path: str


def parse_source(source: str, options: Optional[CompilerOptions] = None) -> Program:
    options = options or CompilerOptions()
    tokens = tokenize(source, options.filename)
    return Parser(tokens, options.filename).parse()


def check_source(source: str, options: Optional[CompilerOptions] = None) -> NovaType:
    """Parse and type check source, returning the program's type."""
    return check(parse_source(source, options))


def compile_source(source: str, output_path: str,
                   options: Optional[CompilerOptions] = None) -> CompilationResult:
    """Compile source to a native object file at output_path."""
    options = options or CompilerOptions()
    program = parse_source(source, options)
    program_type = check(program)
    logger.debug("%s type checked as %s", options.filename, program_type)

    codegen = generate(program, options)
    codegen.write_object_file(output_path)
    return CompilationResult(
        program=program,
        program_type=program_type,
        llvm_ir=codegen.emit_ir(),
        object_path=output_path,
    )
