"""
x86-64 Code Generator
=====================

This module lowers the syntax tree to x86-64 assembly in NASM syntax,
linked as a freestanding Linux executable.

Code Generation Strategy
------------------------
Every value lives on the machine stack:

1. An expression pushes exactly one word (its value).
2. Binary operators pop their two operands into scratch registers,
   combine them, and push the result.
3. A declaration reserves one word with ``sub rsp, 8``; leaving a block
   releases all of the block's words with one ``add rsp``.
4. Variables are addressed relative to ``rsp``.

The generator keeps a *virtual stack height*: the number of words it has
pushed and not yet popped. A variable declared when the height became
``h`` has slot ``h - 1``; while the height is ``H`` its word is at

    [rsp + (H - slot - 1) * 8]

Register Usage
--------------
| Register | Usage                                         |
|----------|-----------------------------------------------|
| rax      | Results, condition tests, syscall number      |
| rbx      | Left operand of additive/comparison operators |
| rcx      | Right operand of multiplicative operators     |
| rdx      | Remainder of ``idiv``                         |
| rdi      | Exit code for the exit syscall                |

Generated Assembly Format (comments omitted)
-------------------------------------------
    global _start
    section .text
    _start:
        sub rsp, 8
        mov rax, 7
        push rax
        pop rax
        mov [rsp + 0], rax
        push rax
        pop rax
        add rsp, 8
        mov rax, 60
        xor rdi, rdi
        syscall

Usage
-----
>>> from stackc.lang.parser import parse_source
>>> from stackc.lang.codegen import CodeGenerator
>>> program = parse_source('{ int a; a = 7; }')
>>> print(CodeGenerator().generate(program))
"""

import logging
from typing import Optional

from stackc.errors import SourceLocation
from stackc.lang.ast import (
    AdditiveExpression,
    AssignmentExpression,
    BinaryOperator,
    Block,
    Declaration,
    EqualityExpression,
    Expression,
    ExpressionStatement,
    IfStatement,
    MultiplicativeExpression,
    PostfixExpression,
    Primary,
    Program,
    RelationalExpression,
    ReturnStatement,
    WhileStatement,
)
from stackc.lang.errors import (
    CCodeGenError,
    StackMismatchError,
    StackUnderflowError,
    UnknownOperatorError,
    UnsupportedFeatureError,
)
from stackc.lang.options import CompilerOptions
from stackc.lang.scope import ScopeEntry, ScopeStack, SymbolKind

logger = logging.getLogger(__name__)

WORD_SIZE = 8

# Linux x86-64 exit syscall number
SYS_EXIT = 60

# Comparison operator -> setcc mnemonic
RELATIONAL_SETCC = {
    BinaryOperator.GREATER: "setg",
    BinaryOperator.GREATER_EQ: "setge",
    BinaryOperator.LESS: "setl",
    BinaryOperator.LESS_EQ: "setle",
}

EQUALITY_SETCC = {
    BinaryOperator.EQUAL: "sete",
    BinaryOperator.NOT_EQUAL: "setne",
}


class CodeGenerator:
    """
    Generates x86-64 NASM assembly from a Program tree.

    All state (output lines, virtual stack height, label counter and the
    scope stack) is reset at the start of ``generate()``, so one generator
    can be reused and produces identical text for identical input.

    Attributes:
        options: CompilerOptions controlling comments and debug output
        stack_height: Current virtual stack height in words
    """

    INDENT = "    "

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

        self._output: list[str] = []
        self._label_counter: int = 0
        self._scopes = ScopeStack()
        self.stack_height: int = 0

    def generate(self, program: Program) -> str:
        """
        Generate assembly code for a whole program.

        Args:
            program: The root node

        Returns:
            Complete NASM source, newline terminated

        Raises:
            CompilerError: On the first error (no partial output)
        """
        self._output = []
        self._label_counter = 0
        self._scopes = ScopeStack()
        self.stack_height = 0

        self._emit_header()
        self._generate_block(program.block)
        self._emit_footer()

        text = "\n".join(self._output) + "\n"
        logger.debug(
            f"Generated {len(self._output)} lines ({len(text)} bytes), "
            f"{self._label_counter} labels"
        )
        return text

    # =========================================================================
    # Assembly Output Methods
    # =========================================================================

    def _emit(self, line: str = "") -> None:
        """Emit a line of assembly."""
        self._output.append(line)

    def _emit_comment(self, comment: str) -> None:
        if self.options.emit_comments:
            self._emit(f"{self.INDENT}; {comment}")

    def _emit_label(self, label: str) -> None:
        self._emit(f"{label}:")

    def _emit_instruction(self, mnemonic: str, operands: str = "") -> None:
        """Emit an instruction with optional operands."""
        if operands:
            self._emit(f"{self.INDENT}{mnemonic} {operands}")
        else:
            self._emit(f"{self.INDENT}{mnemonic}")

    def _new_label(self) -> str:
        """Generate a unique label."""
        label = f"label{self._label_counter}"
        self._label_counter += 1
        return label

    def _push(self, operand: str) -> None:
        self._emit_instruction("push", operand)
        self.stack_height += 1

    def _pop(self, register: str, location: Optional[SourceLocation] = None) -> None:
        """
        Pop the top word into ``register``.

        Raises:
            StackUnderflowError: If the virtual stack is empty
        """
        if self.stack_height <= 0:
            raise StackUnderflowError(register, location)
        self._emit_instruction("pop", register)
        self.stack_height -= 1

    def _slot_address(self, slot: int) -> str:
        return f"[rsp + {(self.stack_height - slot - 1) * WORD_SIZE}]"

    # =========================================================================
    # Header and Footer Generation
    # =========================================================================

    def _emit_header(self) -> None:
        entry = self.options.entry_symbol
        self._emit(f"global {entry}")
        self._emit("section .text")
        if self.options.debug_print:
            self._emit("extern print")
        self._emit_label(entry)

    def _emit_footer(self) -> None:
        self._emit_comment("exit(0)")
        self._emit_exit(zero_status=True)

    def _emit_exit(self, zero_status: bool = False) -> None:
        """Emit the exit syscall; the status is taken from rdi unless ``zero_status``."""
        self._emit_instruction("mov", f"rax, {SYS_EXIT}")
        if zero_status:
            self._emit_instruction("xor", "rdi, rdi")
        self._emit_instruction("syscall")

    # =========================================================================
    # Blocks, Declarations and Statements
    # =========================================================================

    def _generate_block(self, block: Block) -> None:
        """Generate a block; its declarations are released on exit."""
        self._scopes.enter_scope()

        for item in block.items:
            if isinstance(item, Declaration):
                self._generate_declaration(item)
            else:
                self._generate_statement(item)

        released = self._scopes.exit_scope()
        if released:
            self._emit_instruction("add", f"rsp, {released * WORD_SIZE}")
        self.stack_height -= released

    def _generate_declaration(self, decl: Declaration) -> None:
        self._emit_comment(f"int {decl.name}")
        self._emit_instruction("sub", f"rsp, {WORD_SIZE}")
        self.stack_height += 1
        self._scopes.insert(
            decl.name,
            ScopeEntry(SymbolKind.VARIABLE, self.stack_height - 1, decl.location),
        )

    def _generate_statement(self, stmt) -> None:
        """Generate code for any statement."""
        if isinstance(stmt, Block):
            self._generate_block(stmt)
        elif isinstance(stmt, ExpressionStatement):
            self._generate_expression(stmt.expression)
            self._pop("rax", stmt.location)
        elif isinstance(stmt, IfStatement):
            self._generate_if(stmt)
        elif isinstance(stmt, WhileStatement):
            self._generate_while(stmt)
        elif isinstance(stmt, ReturnStatement):
            self._generate_return(stmt)
        else:
            location = getattr(stmt, "location", None)
            raise CCodeGenError(
                f"unknown statement type '{type(stmt).__name__}'",
                location=location,
            )

    def _generate_condition(self, condition: Expression) -> None:
        """Evaluate a condition and leave it in rax, flags set by test."""
        self._generate_expression(condition)
        self._pop("rax", condition.location)
        self._emit_instruction("test", "rax, rax")

    def _generate_if(self, stmt: IfStatement) -> None:
        """
        Generate an if statement.

        Both branches start from the same virtual height and must finish
        at the same height, otherwise code after the if would address
        variables at the wrong offsets.
        """
        else_label = self._new_label()
        end_label = self._new_label()

        self._emit_comment("if")
        self._generate_condition(stmt.condition)
        self._emit_instruction("jz", else_label)

        height_before = self.stack_height
        self._generate_statement(stmt.then_branch)
        then_height = self.stack_height
        self._emit_instruction("jmp", end_label)

        self._emit_label(else_label)
        self.stack_height = height_before
        if stmt.else_branch is not None:
            self._generate_statement(stmt.else_branch)

        self._merge_branch_heights(then_height, self.stack_height, stmt.location)
        self._emit_label(end_label)

    def _merge_branch_heights(self, then_height: int, else_height: int,
                              location: Optional[SourceLocation]) -> None:
        if then_height != else_height:
            raise StackMismatchError(then_height, else_height, location)
        self.stack_height = then_height

    def _generate_while(self, stmt: WhileStatement) -> None:
        start_label = self._new_label()
        end_label = self._new_label()

        self._emit_comment("while")
        self._emit_label(start_label)
        self._generate_condition(stmt.condition)
        self._emit_instruction("jz", end_label)

        height_before = self.stack_height
        self._generate_statement(stmt.body)

        self._emit_instruction("jmp", start_label)
        self._emit_label(end_label)
        self.stack_height = height_before

    def _generate_return(self, stmt: ReturnStatement) -> None:
        """Exit the process with the value (or 0) as the status code."""
        self._emit_comment("return")
        if stmt.value is not None:
            self._generate_expression(stmt.value)
            self._pop("rdi", stmt.location)
            self._emit_exit()
        else:
            self._emit_exit(zero_status=True)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _generate_expression(self, expr: Expression) -> None:
        """Generate an expression; the result is pushed (net +1 word)."""
        self._generate_assignment(expr.assignment)

    def _generate_assignment(self, expr: AssignmentExpression) -> None:
        if not expr.is_assignment:
            self._generate_equality(expr.value)
            return

        # Target resolves before the value is evaluated
        entry = self._scopes.lookup(expr.target, expr.location)

        self._generate_equality(expr.value)
        self._pop("rax", expr.location)
        self._emit_instruction("mov", f"{self._slot_address(entry.stack_offset)}, rax")
        self._push("rax")

        if self.options.debug_print:
            self._emit_instruction("mov", "rdi, rax")
            self._emit_instruction("call", "print")

    def _generate_equality(self, expr: EqualityExpression) -> None:
        self._generate_relational(expr.left)
        for op, right in expr.rights:
            self._generate_relational(right)
            self._generate_comparison(op, EQUALITY_SETCC, "equality", right.location)

    def _generate_relational(self, expr: RelationalExpression) -> None:
        self._generate_additive(expr.left)
        for op, right in expr.rights:
            self._generate_additive(right)
            self._generate_comparison(op, RELATIONAL_SETCC, "relational", right.location)

    def _generate_comparison(self, op: BinaryOperator, setcc: dict, tier: str,
                             location: Optional[SourceLocation]) -> None:
        """Compare the top two words and push 1 or 0."""
        if op not in setcc:
            raise UnknownOperatorError(op.symbol, tier, location)
        self._pop("rax", location)
        self._pop("rbx", location)
        self._emit_instruction("cmp", "rbx, rax")
        self._emit_instruction(setcc[op], "al")
        self._emit_instruction("movzx", "rax, al")
        self._push("rax")

    def _generate_additive(self, expr: AdditiveExpression) -> None:
        self._generate_multiplicative(expr.left)
        for op, right in expr.rights:
            self._generate_multiplicative(right)
            if op == BinaryOperator.ADD:
                mnemonic = "add"
            elif op == BinaryOperator.SUBTRACT:
                mnemonic = "sub"
            else:
                raise UnknownOperatorError(op.symbol, "additive", right.location)
            self._pop("rax", right.location)
            self._pop("rbx", right.location)
            self._emit_instruction(mnemonic, "rbx, rax")
            self._push("rbx")

    def _generate_multiplicative(self, expr: MultiplicativeExpression) -> None:
        self._generate_postfix(expr.left)
        for op, right in expr.rights:
            self._generate_postfix(right)
            if op not in (BinaryOperator.MULTIPLY, BinaryOperator.DIVIDE, BinaryOperator.MODULO):
                raise UnknownOperatorError(op.symbol, "multiplicative", right.location)
            self._pop("rcx", right.location)
            self._pop("rax", right.location)

            if op == BinaryOperator.MULTIPLY:
                self._emit_instruction("imul", "rax, rcx")
                self._push("rax")
            else:
                # Signed divide of rdx:rax; quotient in rax, remainder in rdx
                self._emit_instruction("cqo")
                self._emit_instruction("idiv", "rcx")
                self._push("rax" if op == BinaryOperator.DIVIDE else "rdx")

    def _generate_postfix(self, expr: PostfixExpression) -> None:
        if expr.call_lists:
            raise UnsupportedFeatureError(
                "function calls",
                location=expr.location,
                alternative="compute the value inline",
            )
        self._generate_primary(expr.primary)

    def _generate_primary(self, expr: Primary) -> None:
        if expr.is_literal:
            self._emit_instruction("mov", f"rax, {expr.value}")
            self._push("rax")
        elif expr.is_identifier:
            entry = self._scopes.lookup(expr.name, expr.location)
            self._push(f"QWORD {self._slot_address(entry.stack_offset)}")
        else:
            self._generate_expression(expr.expression)
