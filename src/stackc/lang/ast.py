"""
Abstract Syntax Tree (AST) Definitions
======================================

This module defines the AST node types built by the parser and walked by
the code generator. Every node is allocated through an ``ASTArena``
(see ``stackc.lang.arena``) and records its arena ``handle``.

Node Hierarchy
--------------
ASTNode (base)
├── Program - root, holds the global Block
├── Declaration - 'int name;'
├── Statements
│   ├── Block - '{' items '}'
│   ├── ExpressionStatement - expression ';'
│   ├── IfStatement - if/else
│   ├── WhileStatement - while loop
│   └── ReturnStatement - return with optional value
└── Expressions (one class per precedence tier)
    ├── Expression - top-level wrapper
    ├── AssignmentExpression - 'name = equality' or a bare equality
    ├── EqualityExpression - == !=
    ├── RelationalExpression - < > <= >=
    ├── AdditiveExpression - + -
    ├── MultiplicativeExpression - * / %
    ├── PostfixExpression - primary plus call-argument lists
    └── Primary - literal, identifier or parenthesized expression

Design Notes
------------
- Binary tiers are flat chains: a ``left`` operand plus an ordered list of
  ``(operator, operand)`` pairs. Evaluating the pairs in order gives
  strict left-associativity without deep recursion.
- Precedence is encoded by which tier class holds which operand type, not
  by a numeric table.
- Nodes are not mutated after construction, except that an IfStatement's
  ``else_branch`` is attached after the ``if`` node itself is allocated.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from stackc.errors import SourceLocation


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        location: Source location where this node starts
        handle: Index of this node in its arena (-1 until allocated)
    """
    location: SourceLocation
    handle: int = field(default=-1, compare=False, repr=False)


@dataclass
class Statement(ASTNode):
    """Base class of the closed statement family."""
    pass


# =============================================================================
# Operators
# =============================================================================

class BinaryOperator(Enum):
    """Binary operators, valued by their source spelling."""
    # Multiplicative
    MULTIPLY = "*"
    DIVIDE = "/"
    MODULO = "%"

    # Additive
    ADD = "+"
    SUBTRACT = "-"

    # Relational
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="

    # Equality
    EQUAL = "=="
    NOT_EQUAL = "!="

    @property
    def symbol(self) -> str:
        return self.value


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Primary(ASTNode):
    """
    Innermost expression: exactly one of a literal, a name, or a
    parenthesized expression.

    Attributes:
        value: Integer literal value
        name: Identifier name
        expression: Parenthesized sub-expression
    """
    value: Optional[int] = None
    name: Optional[str] = None
    expression: Optional["Expression"] = None

    def __post_init__(self):
        present = sum(x is not None for x in (self.value, self.name, self.expression))
        if present != 1:
            raise ValueError("Primary needs exactly one of value, name, expression")

    @property
    def is_literal(self) -> bool:
        return self.value is not None

    @property
    def is_identifier(self) -> bool:
        return self.name is not None


@dataclass
class PostfixExpression(ASTNode):
    """
    A primary followed by zero or more call-argument lists: ``f(a)(b, c)``.

    Call lists are parsed but the code generator does not lower them.
    """
    primary: Primary = None
    call_lists: list[list["AssignmentExpression"]] = field(default_factory=list)


@dataclass
class MultiplicativeExpression(ASTNode):
    """Postfix operands joined by ``*``, ``/``, ``%``."""
    left: PostfixExpression = None
    rights: list[tuple[BinaryOperator, PostfixExpression]] = field(default_factory=list)


@dataclass
class AdditiveExpression(ASTNode):
    """Multiplicative operands joined by ``+``, ``-``."""
    left: MultiplicativeExpression = None
    rights: list[tuple[BinaryOperator, MultiplicativeExpression]] = field(default_factory=list)


@dataclass
class RelationalExpression(ASTNode):
    """Additive operands joined by ``<``, ``>``, ``<=``, ``>=``."""
    left: AdditiveExpression = None
    rights: list[tuple[BinaryOperator, AdditiveExpression]] = field(default_factory=list)


@dataclass
class EqualityExpression(ASTNode):
    """Relational operands joined by ``==``, ``!=``."""
    left: RelationalExpression = None
    rights: list[tuple[BinaryOperator, RelationalExpression]] = field(default_factory=list)


@dataclass
class AssignmentExpression(ASTNode):
    """
    Either a bare equality expression (``target`` is None) or
    ``target = value``, which stores and also yields the value.
    """
    target: Optional[str] = None
    value: EqualityExpression = None

    @property
    def is_assignment(self) -> bool:
        return self.target is not None


@dataclass
class Expression(ASTNode):
    """Top-level expression wrapper."""
    assignment: AssignmentExpression = None


BinaryTier = Union[
    MultiplicativeExpression,
    AdditiveExpression,
    RelationalExpression,
    EqualityExpression,
]


# =============================================================================
# Declarations and Statements
# =============================================================================

@dataclass
class Declaration(ASTNode):
    """``int name;`` - reserves one stack slot, no initializer."""
    name: str = ""


@dataclass
class Block(Statement):
    """
    Braced sequence of declarations and statements; one lexical scope.

    Attributes:
        items: Declarations and statements in source order
    """
    items: list[Union[Statement, Declaration]] = field(default_factory=list)

    @property
    def declarations(self) -> list[Declaration]:
        return [item for item in self.items if isinstance(item, Declaration)]


@dataclass
class ExpressionStatement(Statement):
    """Expression evaluated for its effect, value discarded."""
    expression: Expression = None


@dataclass
class IfStatement(Statement):
    """
    If statement with optional else clause.

    Attributes:
        condition: The condition expression
        then_branch: Statement executed if condition is non-zero
        else_branch: Optional statement executed if condition is zero
    """
    condition: Expression = None
    then_branch: Statement = None
    else_branch: Optional[Statement] = None


@dataclass
class WhileStatement(Statement):
    """While loop statement."""
    condition: Expression = None
    body: Statement = None


@dataclass
class ReturnStatement(Statement):
    """``return expr?;`` - terminates the process with expr as exit code."""
    value: Optional[Expression] = None


@dataclass
class Program(ASTNode):
    """Root node: the global block."""
    block: Block = None


# =============================================================================
# AST Visitor Pattern
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Dispatches ``visit(node)`` to ``visit_<ClassName>``; node types without
    a handler go to ``generic_visit``, which visits every child node.

    Usage:
        class NameCollector(ASTVisitor):
            def visit_Primary(self, node):
                ...

        NameCollector().visit(program)
    """

    def visit(self, node: ASTNode):
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        for child in iter_children(node):
            self.visit(child)


def iter_children(node: ASTNode):
    """Yield the direct child nodes of ``node`` in source order."""
    for field_name, value in node.__dict__.items():
        if field_name == "location":
            continue
        yield from _nodes_in(value)


def _nodes_in(value):
    if isinstance(value, ASTNode):
        yield value
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _nodes_in(item)


# =============================================================================
# AST Pretty Printer
# =============================================================================

class ASTPrinter(ASTVisitor):
    """
    Pretty printer for AST debugging.

    Expressions are shown fully parenthesized so grouping is visible:

        Program
          Block
            Declaration: a
            Expr: (a = (2 + (3 * 4)))
    """

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def print(self, node: ASTNode) -> str:
        """Print the AST and return as string."""
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output)

    def _emit(self, text: str) -> None:
        indent = "  " * self.indent_level
        self.output.append(f"{indent}{text}")

    def _nested(self, node: ASTNode) -> None:
        self.indent_level += 1
        self.visit(node)
        self.indent_level -= 1

    def visit_Program(self, node: Program):
        self._emit("Program")
        self._nested(node.block)

    def visit_Block(self, node: Block):
        self._emit("Block")
        self.indent_level += 1
        for item in node.items:
            self.visit(item)
        self.indent_level -= 1

    def visit_Declaration(self, node: Declaration):
        self._emit(f"Declaration: {node.name}")

    def visit_ExpressionStatement(self, node: ExpressionStatement):
        self._emit(f"Expr: {self._expr_str(node.expression)}")

    def visit_IfStatement(self, node: IfStatement):
        self._emit(f"If {self._expr_str(node.condition)}")
        self.indent_level += 1
        self._emit("Then:")
        self._nested(node.then_branch)
        if node.else_branch is not None:
            self._emit("Else:")
            self._nested(node.else_branch)
        self.indent_level -= 1

    def visit_WhileStatement(self, node: WhileStatement):
        self._emit(f"While {self._expr_str(node.condition)}")
        self._nested(node.body)

    def visit_ReturnStatement(self, node: ReturnStatement):
        if node.value is not None:
            self._emit(f"Return {self._expr_str(node.value)}")
        else:
            self._emit("Return")

    def _expr_str(self, expr) -> str:
        """Convert any expression node to a parenthesized string."""
        if isinstance(expr, Expression):
            return self._expr_str(expr.assignment)
        if isinstance(expr, AssignmentExpression):
            value = self._expr_str(expr.value)
            if expr.is_assignment:
                return f"({expr.target} = {value})"
            return value
        if isinstance(expr, PostfixExpression):
            text = self._expr_str(expr.primary)
            for args in expr.call_lists:
                text += "(" + ", ".join(self._expr_str(a) for a in args) + ")"
            return text
        if isinstance(expr, Primary):
            if expr.is_literal:
                return str(expr.value)
            if expr.is_identifier:
                return expr.name
            return self._expr_str(expr.expression)
        # Binary tiers fold left to show associativity
        text = self._expr_str(expr.left)
        for op, right in expr.rights:
            text = f"({text} {op.symbol} {self._expr_str(right)})"
        return text


# =============================================================================
# Source Writer
# =============================================================================

class SourceWriter(ASTVisitor):
    """
    Reconstructs source text from a tree.

    The output re-parses to an equivalent tree: parentheses appear only
    where the source had them, and statements are laid out one per line.
    """

    INDENT = "    "

    def __init__(self):
        self.output: list[str] = []
        self.indent_level = 0

    def write(self, node: ASTNode) -> str:
        self.output = []
        self.indent_level = 0
        self.visit(node)
        return "\n".join(self.output) + "\n"

    def _emit(self, text: str) -> None:
        self.output.append(f"{self.INDENT * self.indent_level}{text}")

    def _body(self, stmt: Statement) -> None:
        # Blocks open at the header's level; other bodies are indented
        if isinstance(stmt, Block):
            self.visit(stmt)
        else:
            self.indent_level += 1
            self.visit(stmt)
            self.indent_level -= 1

    def visit_Program(self, node: Program):
        self.visit(node.block)

    def visit_Block(self, node: Block):
        self._emit("{")
        self.indent_level += 1
        for item in node.items:
            self.visit(item)
        self.indent_level -= 1
        self._emit("}")

    def visit_Declaration(self, node: Declaration):
        self._emit(f"int {node.name};")

    def visit_ExpressionStatement(self, node: ExpressionStatement):
        self._emit(f"{self.expression(node.expression)};")

    def visit_IfStatement(self, node: IfStatement):
        self._emit(f"if ({self.expression(node.condition)})")
        self._body(node.then_branch)
        if node.else_branch is not None:
            self._emit("else")
            self._body(node.else_branch)

    def visit_WhileStatement(self, node: WhileStatement):
        self._emit(f"while ({self.expression(node.condition)})")
        self._body(node.body)

    def visit_ReturnStatement(self, node: ReturnStatement):
        if node.value is None:
            self._emit("return;")
        else:
            self._emit(f"return {self.expression(node.value)};")

    def expression(self, expr) -> str:
        """Render one expression node as source text."""
        if isinstance(expr, Expression):
            return self.expression(expr.assignment)
        if isinstance(expr, AssignmentExpression):
            value = self.expression(expr.value)
            if expr.is_assignment:
                return f"{expr.target} = {value}"
            return value
        if isinstance(expr, PostfixExpression):
            text = self.expression(expr.primary)
            for args in expr.call_lists:
                text += "(" + ", ".join(self.expression(a) for a in args) + ")"
            return text
        if isinstance(expr, Primary):
            if expr.is_literal:
                return str(expr.value)
            if expr.is_identifier:
                return expr.name
            return f"({self.expression(expr.expression)})"
        parts = [self.expression(expr.left)]
        for op, right in expr.rights:
            parts.append(op.symbol)
            parts.append(self.expression(right))
        return " ".join(parts)
