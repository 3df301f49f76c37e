"""Nova native backend — llvmlite adapter.

Thin layer over llvmlite's IR builder and LLVM binding. The code generation
driver only talks to this class: module and function creation, block
positioning, stack slots, loads, stores, returns, verification and object
emission. Every failing step raises CodeGenError with the matching code.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from llvmlite import ir as llvm_ir
from llvmlite import binding as llvm_binding

from nova.errors import CodeGenErrorCode, codegen_error

logger = logging.getLogger(__name__)

I1 = llvm_ir.IntType(1)
I8 = llvm_ir.IntType(8)
I32 = llvm_ir.IntType(32)
I64 = llvm_ir.IntType(64)
VOID = llvm_ir.VoidType()


@dataclass(frozen=True)
class Slot:
    """A stack slot and the type it was allocated with."""
    pointer: Any
    type: Any


# ---------------------------------------------------------------------------
# LLVM initialization
# ---------------------------------------------------------------------------

_core_initialized = False


def _initialize_core() -> None:
    global _core_initialized
    if _core_initialized:
        return
    try:
        llvm_binding.initialize()
    except RuntimeError as exc:
        # Recent llvmlite releases initialize the core on import and reject
        # the explicit call.
        logger.debug("llvm_binding.initialize() refused: %s", exc)
    _core_initialized = True


def _parse_and_verify(llvm_ir_str: str) -> Any:
    _initialize_core()
    mod = llvm_binding.parse_assembly(llvm_ir_str)
    mod.verify()
    return mod


class LLVMBackend:
    """Builds one LLVM module through llvmlite."""

    def __init__(self) -> None:
        self.module: Optional[Any] = None
        self._builder = llvm_ir.IRBuilder()
        self._string_count = 0

    # -------------------------------------------------------------------
    # Module structure
    # -------------------------------------------------------------------

    def create_module(self, name: str) -> Any:
        self.module = llvm_ir.Module(name=name)
        self.module.triple = llvm_binding.get_default_triple()
        self._builder = llvm_ir.IRBuilder()
        self._string_count = 0
        return self.module

    def add_function(self, name: str, return_type: Any, param_types: tuple = ()) -> Any:
        if self.module is None:
            raise codegen_error(
                CodeGenErrorCode.FUNCTION_DECLARATION_FAILED,
                f"Cannot declare function '{name}' before a module exists",
                function=name,
            )
        fn_type = llvm_ir.FunctionType(return_type, list(param_types))
        try:
            return llvm_ir.Function(self.module, fn_type, name=name)
        except NameError as exc:
            raise codegen_error(
                CodeGenErrorCode.FUNCTION_DECLARATION_FAILED,
                f"Failed to declare function '{name}': {exc}",
                function=name,
            ) from exc

    def append_block(self, function: Any, label: str) -> Any:
        return function.append_basic_block(name=label)

    def position_at(self, block: Any) -> None:
        self._builder.position_at_end(block)

    def clear_position(self) -> None:
        self._builder = llvm_ir.IRBuilder()

    def is_terminated(self) -> bool:
        block = self._builder.block
        return block is not None and block.is_terminated

    # -------------------------------------------------------------------
    # Instructions
    # -------------------------------------------------------------------

    def const_int(self, typ: Any, value: int) -> Any:
        return llvm_ir.Constant(typ, value)

    def const_string(self, text: str) -> Any:
        """Private NUL-terminated global; returns an i8* to its first byte."""
        data = bytearray((text + "\0").encode("utf-8"))
        str_type = llvm_ir.ArrayType(I8, len(data))
        global_str = llvm_ir.GlobalVariable(self.module, str_type, name=f".str.{self._string_count}")
        self._string_count += 1
        global_str.linkage = "private"
        global_str.global_constant = True
        global_str.initializer = llvm_ir.Constant(str_type, data)
        return global_str.bitcast(I8.as_pointer())

    def build_alloca(self, typ: Any, name: str) -> Slot:
        if self._builder.block is None:
            raise codegen_error(
                CodeGenErrorCode.BACKEND_ALLOCATION_FAILED,
                f"Failed to allocate '{name}': no active function",
                name=name,
            )
        try:
            pointer = self._builder.alloca(typ, name=name)
        except (TypeError, ValueError) as exc:
            raise codegen_error(
                CodeGenErrorCode.BACKEND_ALLOCATION_FAILED,
                f"Failed to allocate '{name}': {exc}",
                name=name,
            ) from exc
        return Slot(pointer=pointer, type=typ)

    def build_store(self, slot: Slot, value: Any) -> None:
        if self._builder.block is None:
            raise codegen_error(CodeGenErrorCode.BACKEND_STORE_FAILED, "Failed to store: no active function")
        try:
            self._builder.store(value, slot.pointer)
        except (TypeError, ValueError) as exc:
            raise codegen_error(CodeGenErrorCode.BACKEND_STORE_FAILED, f"Failed to store: {exc}") from exc

    def build_load(self, typ: Any, slot: Slot, name: str) -> Any:
        """Load a ``typ`` value from ``slot``.

        When ``typ`` differs from the slot's allocated type the slot pointer
        is reinterpreted, so the load reads ``typ``'s width from memory.
        """
        if self._builder.block is None:
            raise codegen_error(
                CodeGenErrorCode.BACKEND_LOAD_FAILED,
                f"Failed to load variable '{name}': no active function",
                name=name,
            )
        try:
            pointer = slot.pointer
            if typ != slot.type:
                pointer = self._builder.bitcast(pointer, typ.as_pointer(), name=f"{name}.cast")
            return self._builder.load(pointer, name=name, typ=typ)
        except (TypeError, ValueError) as exc:
            raise codegen_error(
                CodeGenErrorCode.BACKEND_LOAD_FAILED,
                f"Failed to load variable '{name}': {exc}",
                name=name,
            ) from exc

    def build_return(self, value: Optional[Any] = None) -> None:
        if self._builder.block is None:
            raise codegen_error(CodeGenErrorCode.BACKEND_RETURN_FAILED, "Failed to build return: no active function")
        try:
            if value is None:
                self._builder.ret_void()
            else:
                self._builder.ret(value)
        except (TypeError, ValueError, AssertionError) as exc:
            raise codegen_error(CodeGenErrorCode.BACKEND_RETURN_FAILED, f"Failed to build return: {exc}") from exc

    # -------------------------------------------------------------------
    # Verification and emission
    # -------------------------------------------------------------------

    def verify_function(self, function: Any) -> bool:
        """Verify the module holding ``function``.

        Functions are verified as soon as they are complete, so a failure
        here belongs to the most recent one.
        """
        try:
            _parse_and_verify(str(self.module))
        except RuntimeError as exc:
            logger.debug("verification of %s failed: %s", function.name, exc)
            return False
        return True

    def emit_ir(self) -> str:
        return str(self.module)

    def write_bitcode(self, path: str) -> None:
        """Write the verified module as LLVM bitcode."""
        try:
            bitcode = _parse_and_verify(str(self.module)).as_bitcode()
            with open(path, "wb") as f:
                f.write(bitcode)
        except (RuntimeError, OSError) as exc:
            raise codegen_error(
                CodeGenErrorCode.BITCODE_WRITE_FAILED,
                f"Failed to write bitcode file '{path}': {exc}",
                path=str(path),
            ) from exc
        logger.debug("wrote %d byte bitcode file %s", len(bitcode), path)

    def write_object(self, path: str, opt_level: int = 2) -> None:
        """Lower the module for the host target and write one object file."""
        try:
            llvm_binding.initialize_native_target()
            llvm_binding.initialize_native_asmprinter()
        except RuntimeError as exc:
            raise codegen_error(
                CodeGenErrorCode.TARGET_INIT_FAILED,
                f"Failed to initialize target: {exc}",
            ) from exc

        triple = llvm_binding.get_default_triple()
        try:
            target = llvm_binding.Target.from_triple(triple)
        except RuntimeError as exc:
            raise codegen_error(
                CodeGenErrorCode.TARGET_RESOLUTION_FAILED,
                f"Failed to get target from triple '{triple}': {exc}",
                triple=triple,
            ) from exc

        try:
            machine = target.create_target_machine(
                cpu=llvm_binding.get_host_cpu_name(),
                features=llvm_binding.get_host_cpu_features().flatten(),
                opt=opt_level,
                reloc="default",
                codemodel="default",
            )
        except RuntimeError as exc:
            raise codegen_error(
                CodeGenErrorCode.MACHINE_CREATION_FAILED,
                f"Failed to create target machine: {exc}",
                triple=triple,
            ) from exc

        try:
            mod = _parse_and_verify(str(self.module))
            obj_code = machine.emit_object(mod)
            with open(path, "wb") as f:
                f.write(obj_code)
        except (RuntimeError, OSError) as exc:
            raise codegen_error(
                CodeGenErrorCode.OBJECT_WRITE_FAILED,
                f"Failed to write object file '{path}': {exc}",
                path=str(path),
            ) from exc
        logger.debug("wrote %d byte object file %s", len(obj_code), path)
