"""Nova — a small expression-and-function language compiled to native code."""

__version__ = "0.1.0"

from nova.errors import CompileError, NovaSyntaxError, NovaTypeError, CodeGenError
from nova.lexer import tokenize
from nova.parser import Parser, parse
from nova.pass1_check import TypeChecker, check
from nova.pass2_emit import CodeGenerator, emit, emit_and_compile
from nova.config import CompilerOptions, load_config
from nova.pipeline import compile_source, check_source
