"""Structured error objects for the Nova compiler.

Every failure carries a machine-readable diagnostic: a stage kind, a
stage-specific code, a human message, an optional source location and a
details dict. Each stage raises its own exception subclass on the first
error it meets; nothing is recovered or accumulated.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ErrorKind(Enum):
    SYNTAX_ERROR = "syntax_error"
    TYPE_ERROR = "type_error"
    CODEGEN_ERROR = "codegen_error"


class TypeErrorCode(Enum):
    UNKNOWN_TYPE_NAME = "unknown_type_name"
    MISMATCH = "mismatch"
    UNSUPPORTED_NODE = "unsupported_node"
    UNDEFINED_NAME = "undefined_name"


class CodeGenErrorCode(Enum):
    BACKEND_ALLOCATION_FAILED = "backend_allocation_failed"
    BACKEND_STORE_FAILED = "backend_store_failed"
    BACKEND_LOAD_FAILED = "backend_load_failed"
    BACKEND_RETURN_FAILED = "backend_return_failed"
    UNDEFINED_VARIABLE = "undefined_variable"
    UNSUPPORTED_NODE = "unsupported_node"
    FUNCTION_DECLARATION_FAILED = "function_declaration_failed"
    VERIFICATION_FAILED = "verification_failed"
    TARGET_INIT_FAILED = "target_init_failed"
    TARGET_RESOLUTION_FAILED = "target_resolution_failed"
    MACHINE_CREATION_FAILED = "machine_creation_failed"
    OBJECT_WRITE_FAILED = "object_write_failed"
    BITCODE_WRITE_FAILED = "bitcode_write_failed"


@dataclass
class SourceLocation:
    line: int
    column: int
    file: str = "<stdin>"

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


@dataclass
class Diagnostic:
    kind: ErrorKind
    code: str
    message: str
    location: Optional[SourceLocation] = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
        }
        if self.location:
            d["location"] = {
                "file": self.location.file,
                "line": self.location.line,
                "column": self.location.column,
            }
        if self.details:
            d["details"] = self.details
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    def __str__(self) -> str:
        loc = f" at {self.location}" if self.location else ""
        return f"[{self.kind.value}:{self.code}]{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class CompileError(Exception):
    """Exception wrapping the diagnostic of the first failure in a stage."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(str(diagnostic))

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def details(self) -> dict[str, Any]:
        return self.diagnostic.details

    def to_dict(self) -> dict[str, Any]:
        return self.diagnostic.to_dict()

    def to_json(self, indent: int = 2) -> str:
        return self.diagnostic.to_json(indent=indent)


class NovaSyntaxError(CompileError):
    """Raised by the parser at the first unmet grammar expectation."""

    @property
    def expected(self) -> str:
        return self.details.get("expected", "")

    @property
    def actual(self) -> str:
        return self.details.get("actual", "")


class NovaTypeError(CompileError):
    """Raised by the type checker."""


class CodeGenError(CompileError):
    """Raised by the code generation driver and its backend."""


class ConfigError(ValueError):
    """Raised for an unreadable or invalid compiler configuration."""


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------

def syntax_error(
    expected: str,
    actual: str,
    location: Optional[SourceLocation] = None,
) -> NovaSyntaxError:
    return NovaSyntaxError(Diagnostic(
        kind=ErrorKind.SYNTAX_ERROR,
        code="unexpected_token",
        message=f"Expected {expected}, got '{actual}'",
        location=location,
        details={"expected": expected, "actual": actual},
    ))


def unknown_type_name(name: str, location: Optional[SourceLocation] = None) -> NovaTypeError:
    return NovaTypeError(Diagnostic(
        kind=ErrorKind.TYPE_ERROR,
        code=TypeErrorCode.UNKNOWN_TYPE_NAME.value,
        message=f"Unknown type: {name}",
        location=location,
        details={"name": name},
    ))


def type_mismatch(
    expected: str,
    actual: str,
    name: str = "",
    location: Optional[SourceLocation] = None,
) -> NovaTypeError:
    details: dict[str, Any] = {"expected_type": expected, "actual_type": actual}
    if name:
        details["name"] = name
    return NovaTypeError(Diagnostic(
        kind=ErrorKind.TYPE_ERROR,
        code=TypeErrorCode.MISMATCH.value,
        message=f"Type mismatch: expected {expected}, got {actual}",
        location=location,
        details=details,
    ))


def unsupported_node(node_kind: str, location: Optional[SourceLocation] = None) -> NovaTypeError:
    return NovaTypeError(Diagnostic(
        kind=ErrorKind.TYPE_ERROR,
        code=TypeErrorCode.UNSUPPORTED_NODE.value,
        message=f"Unsupported node type for type checking: {node_kind}",
        location=location,
        details={"node": node_kind},
    ))


def undefined_name(name: str, location: Optional[SourceLocation] = None) -> NovaTypeError:
    return NovaTypeError(Diagnostic(
        kind=ErrorKind.TYPE_ERROR,
        code=TypeErrorCode.UNDEFINED_NAME.value,
        message=f"Undefined name '{name}'",
        location=location,
        details={"name": name},
    ))


def codegen_error(
    code: CodeGenErrorCode,
    message: str,
    location: Optional[SourceLocation] = None,
    **details: Any,
) -> CodeGenError:
    return CodeGenError(Diagnostic(
        kind=ErrorKind.CODEGEN_ERROR,
        code=code.value,
        message=message,
        location=location,
        details=details,
    ))
