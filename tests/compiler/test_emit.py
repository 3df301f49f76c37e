"""Nova Pass 2 Tests — code generation driver and llvmlite backend."""

import logging

import pytest
from llvmlite import binding as llvm_binding

from nova import backend as nova_backend
from nova.ast_nodes import BinaryOp, BinaryOperator, Function, Number, Program
from nova.backend import LLVMBackend
from nova.config import CompilerOptions
from nova.errors import CodeGenError
from nova.parser import parse
from nova.pass2_emit import CodeGenerator, emit, emit_and_compile, generate, narrow_to_i32


BACKEND_CALLS = (
    "create_module", "add_function", "append_block", "position_at",
    "build_alloca", "build_store", "build_load", "build_return",
    "verify_function", "const_int", "write_object", "write_bitcode",
)


def _recording(name):
    def method(self, *args, **kwargs):
        self.calls.append(name)
        return getattr(LLVMBackend, name)(self, *args, **kwargs)
    return method


class RecordingBackend(LLVMBackend):
    """LLVMBackend that logs the interface calls made by the driver."""

    def __init__(self):
        self.calls = []
        super().__init__()


for _name in BACKEND_CALLS:
    setattr(RecordingBackend, _name, _recording(_name))


def _generate_recorded(source, options=None):
    backend = RecordingBackend()
    codegen = CodeGenerator(options, backend=backend)
    codegen.generate(parse(source))
    return codegen, backend.calls


def _assert_valid(llvm_ir):
    llvm_binding.parse_assembly(llvm_ir).verify()


class TestFunctions:

    def test_return_constant(self):
        llvm_ir = emit(parse("fn main(): i32 { return 42; }"))
        assert 'define i32 @"main"()' in llvm_ir
        assert "ret i32 42" in llvm_ir
        _assert_valid(llvm_ir)

    def test_implicit_return_zero(self):
        llvm_ir = emit(parse("fn main(): i32 { }"))
        assert "ret i32 0" in llvm_ir
        _assert_valid(llvm_ir)

    def test_regeneration_is_identical(self):
        program = parse("fn main(): i32 { }")
        assert emit(program) == emit(program)

    def test_parameters_not_in_signature(self):
        llvm_ir = emit(parse("fn f(a: i32, b: bool): i32 { return 1; }"))
        assert 'define i32 @"f"()' in llvm_ir

    def test_parameter_reference_is_undefined(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn f(a: i32): i32 { return a; }"))
        assert exc_info.value.code == "undefined_variable"

    def test_several_functions(self):
        llvm_ir = emit(parse("fn a(): i32 { return 1; } fn b(): i32 { return 2; }"))
        assert 'define i32 @"a"()' in llvm_ir
        assert 'define i32 @"b"()' in llvm_ir
        _assert_valid(llvm_ir)

    def test_duplicate_function(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn a() { } fn a() { }"))
        assert exc_info.value.code == "function_declaration_failed"


class TestBackendCallSequence:
    """The driver's backend calls, in order."""

    def test_let_then_return(self):
        _, calls = _generate_recorded("fn main(): i32 { let a: i32 = 1; return a; }")
        assert calls == [
            "create_module", "add_function", "append_block", "position_at",
            "const_int", "build_alloca", "build_store",
            "build_load", "build_return",
            "verify_function",
        ]

    def test_empty_body_gets_default_return(self):
        _, calls = _generate_recorded("fn main(): i32 { }")
        assert calls == [
            "create_module", "add_function", "append_block", "position_at",
            "const_int", "build_return", "verify_function",
        ]

    def test_explicit_return_suppresses_default(self):
        _, calls = _generate_recorded("fn main(): i32 { return 3; }")
        assert calls.count("build_return") == 1

    def test_object_emission_is_last(self, tmp_path):
        codegen, calls = _generate_recorded("fn main(): i32 { return 0; }")
        codegen.write_object_file(str(tmp_path / "out.o"))
        assert calls[-1] == "write_object"


class TestVariables:

    def test_let_allocates_stores_and_loads(self):
        llvm_ir = emit(parse("fn main(): i32 { let a: i32 = 1; return a; }"))
        assert "alloca i32" in llvm_ir
        assert "store i32 1" in llvm_ir
        assert "load i32" in llvm_ir
        _assert_valid(llvm_ir)

    def test_undeclared_identifier(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn main(): i32 { return undeclared_var; }"))
        err = exc_info.value
        assert err.code == "undefined_variable"
        assert err.details["name"] == "undeclared_var"

    def test_undeclared_identifier_location(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn main(): i32 {\n  return undeclared_var;\n}"))
        location = exc_info.value.diagnostic.location
        assert (location.line, location.column) == (2, 10)

    def test_redeclaration_uses_latest_slot(self):
        llvm_ir = emit(parse("fn main(): i32 { let a = 1; let a = 2; return a; }"))
        assert llvm_ir.count("alloca i32") == 2
        load_line = next(line for line in llvm_ir.splitlines() if "load" in line)
        assert '"a.1"' in load_line
        _assert_valid(llvm_ir)

    def test_locals_do_not_leak_between_functions(self):
        source = """
fn a(): i32 { let x: i32 = 1; return x; }
fn b(): i32 { return x; }
"""
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse(source))
        assert exc_info.value.code == "undefined_variable"

    def test_top_level_let_has_no_function(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("let x = 1;"))
        assert exc_info.value.code == "backend_allocation_failed"

    def test_top_level_let_after_function(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn main(): i32 { } let x = 1;"))
        assert exc_info.value.code == "backend_allocation_failed"

    def test_bool_slot(self):
        llvm_ir = emit(parse("fn main(): i32 { let b = true; }"))
        assert "alloca i1" in llvm_ir
        _assert_valid(llvm_ir)

    def test_string_slot(self):
        llvm_ir = emit(parse('fn main(): i32 { let s = "hi"; }'))
        assert 'c"hi\\00"' in llvm_ir
        _assert_valid(llvm_ir)


class TestWidths:

    def test_literal_narrowed_to_i32(self):
        llvm_ir = emit(parse("fn main(): i32 { return 4294967303; }"))
        assert "ret i32 7" in llvm_ir

    @pytest.mark.parametrize("value,expected", [
        (0, 0),
        (2 ** 31 - 1, 2 ** 31 - 1),
        (2 ** 31, -(2 ** 31)),
        (2 ** 32 + 7, 7),
        (2 ** 63 - 1, -1),
    ])
    def test_narrow_to_i32(self, value, expected):
        assert narrow_to_i32(value) == expected

    def test_legacy_wide_load_reads_64_bits(self):
        """Baseline: legacy loads read i64 from an i32 slot."""
        options = CompilerOptions(legacy_wide_loads=True)
        llvm_ir = emit(parse("fn main(): i32 { let a: i32 = 1; let b = a; }"), options)
        assert "alloca i32" in llvm_ir
        assert "load i64" in llvm_ir
        assert "alloca i64" in llvm_ir

    def test_legacy_wide_load_return_fails_verification(self):
        """Baseline: returning a wide load from an i32 function is rejected."""
        options = CompilerOptions(legacy_wide_loads=True)
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn main(): i32 { let a: i32 = 1; return a; }"), options)
        assert exc_info.value.code == "verification_failed"
        assert exc_info.value.details["function"] == "main"

    def test_bool_return_fails_verification(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn main(): i32 { return true; }"))
        assert exc_info.value.code == "verification_failed"


class TestUnsupportedNodes:

    def _program_with_binary_statement(self):
        stmt = BinaryOp(op=BinaryOperator.ADD, left=Number(value=1), right=Number(value=2))
        return Program(items=[Function(name="main", body=Program(items=[stmt]))])

    def test_strict_rejects_statement(self):
        with pytest.raises(CodeGenError) as exc_info:
            generate(self._program_with_binary_statement())
        assert exc_info.value.code == "unsupported_node"
        assert exc_info.value.details["node"] == "BinaryOp"

    def test_lenient_skips_statement(self):
        llvm_ir = emit(self._program_with_binary_statement(), CompilerOptions(strict=False))
        assert "ret i32 0" in llvm_ir

    @pytest.mark.parametrize("strict", [True, False])
    def test_binary_value_always_rejected(self, strict):
        with pytest.raises(CodeGenError) as exc_info:
            generate(parse("fn main(): i32 { return 1 + 2; }"), CompilerOptions(strict=strict))
        assert exc_info.value.code == "unsupported_node"

    def test_bare_literal_statement(self):
        llvm_ir = emit(Program(items=[Number(value=42)]))
        assert "define" not in llvm_ir


class TestObjectEmission:

    def test_writes_object_file(self, tmp_path):
        out = tmp_path / "main.o"
        llvm_ir = emit_and_compile(parse("fn main(): i32 { return 42; }"), str(out))
        assert out.stat().st_size > 0
        assert "ret i32 42" in llvm_ir

    def test_unwritable_path(self, tmp_path):
        out = tmp_path / "missing" / "main.o"
        with pytest.raises(CodeGenError) as exc_info:
            emit_and_compile(parse("fn main(): i32 { return 0; }"), str(out))
        assert exc_info.value.code == "object_write_failed"

    def test_target_init_failure(self, tmp_path, monkeypatch):
        def fail():
            raise RuntimeError("no native target")
        codegen = generate(parse("fn main(): i32 { return 0; }"))
        monkeypatch.setattr(llvm_binding, "initialize_native_target", fail)
        with pytest.raises(CodeGenError) as exc_info:
            codegen.write_object_file(str(tmp_path / "main.o"))
        assert exc_info.value.code == "target_init_failed"

    def test_target_resolution_failure(self, tmp_path, monkeypatch):
        codegen = generate(parse("fn main(): i32 { return 0; }"))
        monkeypatch.setattr(llvm_binding, "get_default_triple", lambda: "bogus-unknown-nowhere")
        with pytest.raises(CodeGenError) as exc_info:
            codegen.write_object_file(str(tmp_path / "main.o"))
        assert exc_info.value.code == "target_resolution_failed"
        assert exc_info.value.details["triple"] == "bogus-unknown-nowhere"

    def test_machine_creation_failure(self, tmp_path, monkeypatch):
        def fail():
            raise RuntimeError("cannot read host features")
        codegen = generate(parse("fn main(): i32 { return 0; }"))
        monkeypatch.setattr(llvm_binding, "get_host_cpu_features", fail)
        with pytest.raises(CodeGenError) as exc_info:
            codegen.write_object_file(str(tmp_path / "main.o"))
        assert exc_info.value.code == "machine_creation_failed"
        assert not (tmp_path / "main.o").exists()


class TestBitcodeEmission:

    def test_writes_bitcode_file(self, tmp_path):
        out = tmp_path / "main.bc"
        codegen = generate(parse("fn main(): i32 { let a: i32 = 5; return a; }"))
        codegen.write_bitcode_file(str(out))
        mod = llvm_binding.parse_bitcode(out.read_bytes())
        mod.verify()
        assert mod.get_function("main").name == "main"

    def test_bitcode_write_is_last(self, tmp_path):
        codegen, calls = _generate_recorded("fn main(): i32 { return 0; }")
        codegen.write_bitcode_file(str(tmp_path / "out.bc"))
        assert calls[-1] == "write_bitcode"

    def test_unwritable_path(self, tmp_path):
        out = tmp_path / "missing" / "main.bc"
        codegen = generate(parse("fn main(): i32 { return 0; }"))
        with pytest.raises(CodeGenError) as exc_info:
            codegen.write_bitcode_file(str(out))
        assert exc_info.value.code == "bitcode_write_failed"
        assert exc_info.value.details["path"] == str(out)


class TestCoreInitialization:

    def test_refused_initialize_is_logged(self, monkeypatch, caplog):
        def refuse():
            raise RuntimeError("initialization is automatic")
        monkeypatch.setattr(llvm_binding, "initialize", refuse)
        monkeypatch.setattr(nova_backend, "_core_initialized", False)
        with caplog.at_level(logging.DEBUG, logger="nova.backend"):
            llvm_ir = emit(parse("fn main(): i32 { return 0; }"))
        assert "ret i32 0" in llvm_ir
        assert any("initialize() refused" in r.getMessage() for r in caplog.records)
