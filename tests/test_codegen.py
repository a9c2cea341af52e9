"""
Code Generator Test Suite
=========================

Tests for x86-64 code generation: exact instruction sequences for the
core constructs, virtual stack height bookkeeping, label allocation,
options, and the fatal code generation errors.
"""

import pytest

from stackc.lang.arena import ASTArena
from stackc.lang.ast import AdditiveExpression, BinaryOperator, Primary
from stackc.lang.codegen import CodeGenerator
from stackc.lang.errors import (
    CCodeGenError,
    DuplicateDeclarationError,
    StackMismatchError,
    StackUnderflowError,
    UndeclaredIdentifierError,
    UnknownOperatorError,
    UnsupportedFeatureError,
)
from stackc.lang.options import CompilerOptions
from stackc.lang.parser import parse_source


HEADER = ["global _start", "section .text", "_start:"]
FOOTER = ["mov rax, 60", "xor rdi, rdi", "syscall"]


def generate(source: str, **options) -> str:
    options.setdefault("emit_comments", False)
    return CodeGenerator(CompilerOptions(**options)).generate(parse_source(source, "test.c"))


def body(source: str, **options) -> list[str]:
    """Instruction lines between the entry label and the exit footer."""
    lines = [line.strip() for line in generate(source, **options).splitlines()]
    assert lines[:3] == HEADER
    assert lines[-3:] == FOOTER
    return lines[3:-3]


def push_literal(n: int) -> list[str]:
    return [f"mov rax, {n}", "push rax"]


# =============================================================================
# Program Structure
# =============================================================================

class TestProgramStructure:
    """Header, footer and output format."""

    def test_empty_program(self):
        assert generate("{ }") == "\n".join(HEADER + ["    " + i for i in FOOTER]) + "\n"

    def test_labels_are_flush_and_instructions_indented(self):
        asm = generate("{ while (0) { } }")
        assert "label0:" in asm.splitlines()
        assert "    jmp label0" in asm.splitlines()

    def test_comments_on_by_default(self):
        asm = CodeGenerator().generate(parse_source("{ int a; if (a) { } }"))
        assert "    ; int a" in asm.splitlines()
        assert "    ; if" in asm.splitlines()

    def test_no_comments(self):
        asm = generate("{ int a; while (a) a = a - 1; return a; }")
        assert not any(line.lstrip().startswith(";") for line in asm.splitlines())

    def test_entry_symbol(self):
        asm = generate("{ }", entry_symbol="main")
        assert asm.splitlines()[:3] == ["global main", "section .text", "main:"]

    def test_default_options(self):
        assert CodeGenerator().options == CompilerOptions()


# =============================================================================
# Expressions
# =============================================================================

class TestExpressions:
    """Tier lowering and operand order."""

    def test_multiply_before_add(self):
        assert body("{ int a; a = 2 + 3 * 4; }") == [
            "sub rsp, 8",
            *push_literal(2),
            *push_literal(3),
            *push_literal(4),
            "pop rcx", "pop rax", "imul rax, rcx", "push rax",
            "pop rax", "pop rbx", "add rbx, rax", "push rbx",
            "pop rax",
            "mov [rsp + 0], rax",
            "push rax",
            "pop rax",
            "add rsp, 8",
        ]

    def test_subtract_operand_order(self):
        assert body("{ 7 - 2; }") == [
            *push_literal(7), *push_literal(2),
            "pop rax", "pop rbx", "sub rbx, rax", "push rbx",
            "pop rax",
        ]

    def test_divide_and_modulo(self):
        assert body("{ 7 / 2; }")[4:] == ["pop rcx", "pop rax", "cqo", "idiv rcx", "push rax", "pop rax"]
        assert body("{ 7 % 2; }")[4:] == ["pop rcx", "pop rax", "cqo", "idiv rcx", "push rdx", "pop rax"]

    @pytest.mark.parametrize("op, setcc", [
        (">", "setg"), (">=", "setge"), ("<", "setl"), ("<=", "setle"),
        ("==", "sete"), ("!=", "setne"),
    ])
    def test_comparisons(self, op, setcc):
        assert body(f"{{ 1 {op} 2; }}") == [
            *push_literal(1), *push_literal(2),
            "pop rax", "pop rbx", "cmp rbx, rax", f"{setcc} al", "movzx rax, al", "push rax",
            "pop rax",
        ]

    def test_parenthesized_expression(self):
        lines = body("{ (1 + 2) * 3; }")
        assert lines.index("add rbx, rax") < lines.index("imul rax, rcx")

    def test_variable_read_offsets(self):
        assert body("{ int a; int b; b = a; }") == [
            "sub rsp, 8",
            "sub rsp, 8",
            "push QWORD [rsp + 8]",
            "pop rax",
            "mov [rsp + 0], rax",
            "push rax",
            "pop rax",
            "add rsp, 16",
        ]

    def test_offsets_track_temporaries(self):
        lines = body("{ int a; a + a; }")
        assert lines[1:3] == ["push QWORD [rsp + 0]", "push QWORD [rsp + 8]"]

    def test_chained_assignment_value(self):
        lines = body("{ int a; int b; b = (a = 5) + 1; }")
        assert lines[:5] == ["sub rsp, 8", "sub rsp, 8", *push_literal(5), "pop rax"]
        # a is slot 0, b sits above it
        assert lines[5] == "mov [rsp + 8], rax"
        assert lines[6] == "push rax"


# =============================================================================
# Statements
# =============================================================================

class TestStatements:
    """Blocks, control flow and return."""

    def test_while_loop(self):
        assert body("{ int x; x = 1; while (x) { x = 0; } }") == [
            "sub rsp, 8",
            *push_literal(1), "pop rax", "mov [rsp + 0], rax", "push rax", "pop rax",
            "label0:",
            "push QWORD [rsp + 0]",
            "pop rax",
            "test rax, rax",
            "jz label1",
            *push_literal(0), "pop rax", "mov [rsp + 0], rax", "push rax", "pop rax",
            "jmp label0",
            "label1:",
            "add rsp, 8",
        ]

    def test_if_else(self):
        assert body("{ if (1) 2; else 3; }") == [
            *push_literal(1),
            "pop rax",
            "test rax, rax",
            "jz label0",
            *push_literal(2), "pop rax",
            "jmp label1",
            "label0:",
            *push_literal(3), "pop rax",
            "label1:",
        ]

    def test_if_without_else(self):
        lines = body("{ if (1) 2; }")
        assert lines[-4:] == ["pop rax", "jmp label1", "label0:", "label1:"]

    def test_labels_are_unique(self):
        lines = body("{ if (1) { } while (1) { } if (1) { } else { } }")
        labels = [line for line in lines if line.endswith(":")]
        assert labels == ["label0:", "label1:", "label2:", "label3:", "label4:", "label5:"]

    def test_nested_block_releases_its_slots(self):
        lines = body("{ int a; { int b; int c; } }")
        assert lines == ["sub rsp, 8", "sub rsp, 8", "sub rsp, 8", "add rsp, 16", "add rsp, 8"]

    def test_block_without_declarations_emits_no_release(self):
        assert body("{ { } }") == []

    def test_shadowed_variable_uses_inner_slot(self):
        lines = body("{ int a; { int a; int b; a = 5; } }")
        assert "mov [rsp + 8], rax" in lines
        assert "mov [rsp + 16], rax" not in lines

    def test_outer_variable_after_inner_block(self):
        lines = body("{ int a; { int b; } a = 1; }")
        assert lines[-5:] == ["pop rax", "mov [rsp + 0], rax", "push rax", "pop rax", "add rsp, 8"]

    def test_return_value(self):
        assert body("{ return 3; }") == [*push_literal(3), "pop rdi", "mov rax, 60", "syscall"]

    def test_return_without_value(self):
        assert body("{ return; }") == FOOTER


# =============================================================================
# Stack Height Bookkeeping
# =============================================================================

class HeightRecorder(CodeGenerator):
    """Records (stack height, variables in scope) after every statement."""

    def generate(self, program):
        self.samples = []
        return super().generate(program)

    def _generate_statement(self, stmt):
        super()._generate_statement(stmt)
        self.samples.append((self.stack_height, len(self._scopes)))


class TestStackHeight:

    def test_height_equals_variables_in_scope(self):
        gen = HeightRecorder(CompilerOptions(emit_comments=False))
        gen.generate(parse_source("""{
            int a; a = 10;
            int b; b = a * 2 + 1;
            while (a > 0) { int t; t = a % 3; if (t == 0) { int u; u = t; } else b = b - t; a = a - 1; }
            { int c; c = (a + b) * (a - b); }
            if (a) return a; else return;
        }"""))
        assert gen.samples
        for height, variables in gen.samples:
            assert height == variables
        assert gen.stack_height == 0

    def test_generation_is_repeatable(self):
        program = parse_source("{ int a; while (a < 3) { if (a) a = a + 1; else a = 1; } }")
        gen = CodeGenerator()
        first = gen.generate(program)
        second = gen.generate(program)
        assert first == second
        assert "label0:" in second

    def test_fresh_generators_agree(self):
        program = parse_source("{ int a; if (a == 1) return 1; }")
        assert CodeGenerator().generate(program) == CodeGenerator().generate(program)


class LeakyReturn(CodeGenerator):
    """Leaves a word on the virtual stack after every return."""

    def _generate_return(self, stmt):
        super()._generate_return(stmt)
        self._push("rax")


class TestStackErrors:

    def test_branch_height_mismatch(self):
        program = parse_source("{ if (1) return; else { } }", "test.c")
        with pytest.raises(StackMismatchError) as exc_info:
            LeakyReturn().generate(program)
        assert exc_info.value.then_height == 1
        assert exc_info.value.else_height == 0
        assert str(exc_info.value.location) == "test.c:1:3"

    def test_missing_else_is_an_empty_branch(self):
        with pytest.raises(StackMismatchError):
            LeakyReturn().generate(parse_source("{ if (1) return; }"))

    def test_equal_branch_heights_merge(self):
        asm = LeakyReturn().generate(parse_source("{ if (1) return; else return; }"))
        assert "label1:" in asm

    def test_underflow(self):
        gen = CodeGenerator()
        with pytest.raises(StackUnderflowError, match="'rax'"):
            gen._pop("rax")


# =============================================================================
# Name and Feature Errors
# =============================================================================

class TestCodegenErrors:

    def test_undeclared_identifier(self):
        with pytest.raises(UndeclaredIdentifierError) as exc_info:
            generate("{ a = 1; }")
        assert exc_info.value.identifier == "a"
        assert str(exc_info.value.location) == "test.c:1:3"

    def test_undeclared_in_expression(self):
        with pytest.raises(UndeclaredIdentifierError, match="'b'"):
            generate("{ int a; a = b + 1; }")

    def test_variable_out_of_scope_after_block(self):
        with pytest.raises(UndeclaredIdentifierError):
            generate("{ { int a; } a = 1; }")

    def test_duplicate_declaration(self):
        with pytest.raises(DuplicateDeclarationError) as exc_info:
            generate("{ int a; int a; }")
        assert str(exc_info.value.location) == "test.c:1:10"
        assert "redefinition of 'a'" in str(exc_info.value)

    def test_function_call_unsupported(self):
        with pytest.raises(UnsupportedFeatureError, match="function calls"):
            generate("{ int f; f(1); }")

    def test_operator_outside_its_tier(self):
        arena = ASTArena()
        program = parse_source("{ 1 + 2; }", arena=arena)
        additive = next(n for n in arena if isinstance(n, AdditiveExpression) and n.rights)
        additive.rights[0] = (BinaryOperator.MULTIPLY, additive.rights[0][1])
        with pytest.raises(UnknownOperatorError) as exc_info:
            CodeGenerator().generate(program)
        assert exc_info.value.operator == "*"
        assert exc_info.value.tier == "additive"

    def test_unknown_statement_type(self):
        arena = ASTArena()
        program = parse_source("{ }", arena=arena)
        program.block.items.append(arena.alloc(Primary, location=program.location, value=1))
        with pytest.raises(CCodeGenError, match="unknown statement type 'Primary'"):
            CodeGenerator().generate(program)


# =============================================================================
# Options
# =============================================================================

class TestDebugPrint:

    def test_extern_declared(self):
        asm = generate("{ }", debug_print=True)
        assert asm.splitlines()[:4] == ["global _start", "section .text", "extern print", "_start:"]

    def test_print_after_assignment(self):
        lines = [line.strip() for line in generate("{ int a; a = 4; }", debug_print=True).splitlines()]
        i = lines.index("mov [rsp + 0], rax")
        assert lines[i:i + 4] == ["mov [rsp + 0], rax", "push rax", "mov rdi, rax", "call print"]

    def test_no_print_by_default(self):
        assert "call print" not in generate("{ int a; a = 4; }")
        assert "extern print" not in generate("{ int a; a = 4; }")
