"""
Parser Test Suite
=================

Tests for the recursive descent parser: statement forms, expression
precedence and associativity, diagnostics, arena ownership and the
source writer.
"""

import pytest

from stackc.lang.arena import ASTArena
from stackc.lang.ast import (
    ASTPrinter,
    AdditiveExpression,
    BinaryOperator,
    Block,
    Declaration,
    ExpressionStatement,
    IfStatement,
    MultiplicativeExpression,
    Primary,
    Program,
    ReturnStatement,
    SourceWriter,
    WhileStatement,
    iter_children,
)
from stackc.lang.errors import CompilerError, CSyntaxError, MissingTokenError, UnexpectedTokenError
from stackc.lang.lexer import Token, TokenKind, tokenize
from stackc.lang.parser import MAX_LITERAL, MAX_NESTING_DEPTH, Parser, parse_source, parse_tokens


def expr_lines(source: str) -> list[str]:
    """AST dump lines of a program, without the Program/Block header."""
    return [line.strip() for line in ASTPrinter().print(parse_source(source)).splitlines()[2:]]


def walk(node):
    yield node
    for child in iter_children(node):
        yield from walk(child)


# =============================================================================
# Statements
# =============================================================================

class TestParserStatements:
    """Block items and statement forms."""

    def test_empty_program(self):
        program = parse_source("{ }")
        assert isinstance(program, Program)
        assert isinstance(program.block, Block)
        assert program.block.items == []

    def test_declaration(self):
        program = parse_source("{ int a; int b; }")
        decls = program.block.declarations
        assert [d.name for d in decls] == ["a", "b"]
        assert all(isinstance(d, Declaration) for d in decls)

    def test_assignment_statement(self):
        program = parse_source("{ int a; a = 1; }")
        stmt = program.block.items[1]
        assert isinstance(stmt, ExpressionStatement)
        assignment = stmt.expression.assignment
        assert assignment.is_assignment
        assert assignment.target == "a"

    def test_expression_statement(self):
        stmt = parse_source("{ 1 + 2; }").block.items[0]
        assert isinstance(stmt, ExpressionStatement)
        assert not stmt.expression.assignment.is_assignment

    def test_if_without_else(self):
        stmt = parse_source("{ if (1) { } }").block.items[0]
        assert isinstance(stmt, IfStatement)
        assert isinstance(stmt.then_branch, Block)
        assert stmt.else_branch is None

    def test_if_with_else(self):
        stmt = parse_source("{ if (1) return 1; else return 2; }").block.items[0]
        assert isinstance(stmt.then_branch, ReturnStatement)
        assert isinstance(stmt.else_branch, ReturnStatement)

    def test_dangling_else_binds_to_nearest_if(self):
        outer = parse_source("{ if (1) if (2) return 1; else return 2; }").block.items[0]
        assert outer.else_branch is None
        assert isinstance(outer.then_branch, IfStatement)
        assert outer.then_branch.else_branch is not None

    def test_while(self):
        stmt = parse_source("{ while (1) { } }").block.items[0]
        assert isinstance(stmt, WhileStatement)
        assert isinstance(stmt.body, Block)

    def test_return_with_and_without_value(self):
        items = parse_source("{ return; return 3; }").block.items
        assert items[0].value is None
        assert items[1].value is not None

    def test_nested_blocks(self):
        program = parse_source("{ int a; { int a; { } } }")
        inner = program.block.items[1]
        assert isinstance(inner, Block)
        assert inner.declarations[0].name == "a"
        assert isinstance(inner.items[1], Block)

    def test_declarations_and_statements_interleave(self):
        items = parse_source("{ int a; a = 1; int b; b = a; }").block.items
        assert [type(i).__name__ for i in items] == [
            "Declaration", "ExpressionStatement", "Declaration", "ExpressionStatement",
        ]

    def test_locations(self):
        program = parse_source("{\n  int a;\n  a = 1;\n}", "prog.c")
        decl, stmt = program.block.items
        assert str(decl.location) == "prog.c:2:3"
        assert str(stmt.location) == "prog.c:3:3"


# =============================================================================
# Expressions
# =============================================================================

class TestParserExpressions:
    """Precedence tiers and associativity."""

    def test_multiply_binds_tighter_than_add(self):
        assert expr_lines("{ a = 2 + 3 * 4; }") == ["Expr: (a = (2 + (3 * 4)))"]

    def test_additive_is_left_associative(self):
        assert expr_lines("{ 1 - 2 - 3; }") == ["Expr: ((1 - 2) - 3)"]

    def test_multiplicative_is_left_associative(self):
        assert expr_lines("{ 8 / 4 % 3 * 2; }") == ["Expr: (((8 / 4) % 3) * 2)"]

    def test_parentheses_group(self):
        assert expr_lines("{ (1 - 2) * 3; }") == ["Expr: ((1 - 2) * 3)"]

    def test_comparison_tiers(self):
        assert expr_lines("{ 1 < 2 == 3 > 4; }") == ["Expr: ((1 < 2) == (3 > 4))"]
        assert expr_lines("{ a + 1 >= b * 2 != 0; }") == ["Expr: (((a + 1) >= (b * 2)) != 0)"]

    def test_tier_chain_is_flat(self):
        stmt = parse_source("{ 1 + 2 - 3 + 4; }").block.items[0]
        additive = stmt.expression.assignment.value.left.left
        assert isinstance(additive, AdditiveExpression)
        assert [op for op, _ in additive.rights] == [
            BinaryOperator.ADD, BinaryOperator.SUBTRACT, BinaryOperator.ADD,
        ]

    def test_literal_and_identifier_primaries(self):
        program = parse_source("{ a = 42; }")
        primaries = [n for n in walk(program) if isinstance(n, Primary)]
        assert [p.value for p in primaries] == [42]
        program = parse_source("{ a = b; }")
        primaries = [n for n in walk(program) if isinstance(n, Primary)]
        assert [p.name for p in primaries] == ["b"]

    def test_primary_requires_exactly_one_form(self):
        loc = tokenize("x")[0].location
        with pytest.raises(ValueError):
            Primary(location=loc)
        with pytest.raises(ValueError):
            Primary(location=loc, value=1, name="x")

    def test_call_lists(self):
        stmt = parse_source("{ f(1, 2)(3)(); }").block.items[0]
        multiplicative = stmt.expression.assignment.value.left.left.left
        assert isinstance(multiplicative, MultiplicativeExpression)
        postfix = multiplicative.left
        assert postfix.primary.name == "f"
        assert [len(args) for args in postfix.call_lists] == [2, 1, 0]

    def test_call_arguments_may_assign(self):
        assert expr_lines("{ f(a = 1); }") == ["Expr: f((a = 1))"]

    def test_equals_in_comparison_is_not_assignment(self):
        stmt = parse_source("{ a == 1; }").block.items[0]
        assert not stmt.expression.assignment.is_assignment


# =============================================================================
# Diagnostics
# =============================================================================

class TestParserErrors:
    """The parser stops at the first malformed construct."""

    def test_missing_semicolon(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("{ int a }", "test.c")
        err = exc_info.value
        assert err.expected == "';'"
        assert err.found == "}"
        assert str(err.location) == "test.c:1:9"

    def test_missing_identifier(self):
        with pytest.raises(MissingTokenError, match="expected identifier"):
            parse_source("{ int 5; }")

    def test_missing_opening_brace(self):
        with pytest.raises(MissingTokenError, match="expected '\\{'"):
            parse_source("int a;")

    def test_unclosed_block(self):
        with pytest.raises(MissingTokenError) as exc_info:
            parse_source("{ int a;")
        assert exc_info.value.found == "end of input"

    def test_missing_expression(self):
        with pytest.raises(UnexpectedTokenError) as exc_info:
            parse_source("{ a = ; }")
        assert exc_info.value.found == ";"
        assert exc_info.value.expected == "expression"

    def test_missing_condition_paren(self):
        with pytest.raises(MissingTokenError, match="expected '\\)'"):
            parse_source("{ while (1 { } }")

    def test_stray_else(self):
        with pytest.raises(UnexpectedTokenError):
            parse_source("{ else return; }")

    def test_trailing_tokens(self):
        with pytest.raises(UnexpectedTokenError, match="unexpected token 'x'"):
            parse_source("{ } x")

    def test_error_shows_source_line(self):
        with pytest.raises(CSyntaxError) as exc_info:
            parse_source("{\n  a = 1\n}", "test.c")
        message = str(exc_info.value)
        assert message.startswith("test.c:3:1: error: expected ';' before '}'")
        assert "\n    }\n    ^" in message

    def test_invalid_literal_token(self):
        tokens = tokenize("{ 1; }")
        bad = Token(TokenKind.LITERAL, tokens[1].location, "1x")
        with pytest.raises(CSyntaxError, match="invalid integer literal"):
            parse_tokens([tokens[0], bad, *tokens[2:]])

    def test_literal_out_of_range(self):
        with pytest.raises(CSyntaxError) as exc_info:
            parse_source("{ return 123456789012345678901234567890; }", "test.c")
        err = exc_info.value
        assert "integer literal '123456789012345678901234567890' out of range" in str(err)
        assert str(err.location) == "test.c:1:10"

    def test_largest_literal(self):
        program = parse_source(f"{{ return {MAX_LITERAL}; }}")
        literal = next(n for n in walk(program) if isinstance(n, Primary))
        assert literal.value == 2**63 - 1
        with pytest.raises(CSyntaxError, match="out of range"):
            parse_source(f"{{ return {MAX_LITERAL + 1}; }}")

    def test_deep_parentheses(self):
        depth = MAX_NESTING_DEPTH + 16
        with pytest.raises(CSyntaxError, match="nesting too deep"):
            parse_source("{ return " + "(" * depth + "1" + ")" * depth + "; }")

    def test_deep_blocks(self):
        depth = MAX_NESTING_DEPTH + 16
        with pytest.raises(CSyntaxError, match="nesting too deep"):
            parse_source("{" * depth + "}" * depth)

    def test_deep_call_arguments(self):
        depth = MAX_NESTING_DEPTH + 16
        with pytest.raises(CSyntaxError, match="nesting too deep"):
            parse_source("{ " + "f(" * depth + "1" + ")" * depth + "; }")

    def test_nesting_within_limit(self):
        depth = MAX_NESTING_DEPTH - 2
        program = parse_source("{ return " + "(" * depth + "1" + ")" * depth + "; }")
        assert SourceWriter().write(program).count("(") == depth


# =============================================================================
# Token Streams and the Arena
# =============================================================================

class TestParserArena:
    """Node ownership and handle ordering."""

    def test_every_node_is_owned(self):
        arena = ASTArena("test")
        program = parse_source("{ int a; a = 1; if (a) { a = 2; } else a = 3; }", arena=arena)
        nodes = list(walk(program))
        assert all(arena.owns(n) for n in nodes)
        assert len(nodes) == len(arena)

    def test_handles_follow_allocation_order(self):
        arena = ASTArena()
        program = parse_source("{ int a; while (a < 3) a = a + 1; }", arena=arena)
        assert [n.handle for n in arena] == list(range(len(arena)))
        assert arena.get(program.handle) is program
        assert program.handle == len(arena) - 1

    def test_children_allocated_before_parents(self):
        program = parse_source("{ if (1) { 2; } else { 3; } while (4) 5; }")
        for node in walk(program):
            for child in iter_children(node):
                if isinstance(node, IfStatement) and child is node.else_branch:
                    assert child.handle > node.handle
                else:
                    assert child.handle < node.handle

    def test_reset_releases_every_node(self):
        arena = ASTArena()
        program = parse_source("{ int a; }", arena=arena)
        assert len(arena) > 0
        arena.reset()
        assert len(arena) == 0
        assert not arena.owns(program)

    def test_invalid_handle(self):
        arena = ASTArena()
        with pytest.raises(CompilerError, match="invalid AST handle"):
            arena.get(0)

    def test_separate_parses_do_not_share(self):
        first = ASTArena()
        second = ASTArena()
        a = parse_source("{ }", arena=first)
        parse_source("{ }", arena=second)
        assert first.owns(a)
        assert not second.owns(a)

    def test_parsing_again_replaces_the_tree(self):
        parser = Parser(tokenize("{ int a; a = 1; }"))
        first = parser.parse_program()
        count = len(parser.arena)
        second = parser.parse_program()
        assert len(parser.arena) == count
        assert parser.arena.owns(second)
        assert not parser.arena.owns(first)

    def test_parse_tokens_appends_eof(self):
        tokens = [t for t in tokenize("{ int a; }") if t.kind != TokenKind.EOF]
        program = parse_tokens(tokens)
        assert program.block.declarations[0].name == "a"

    def test_parser_reads_eof_past_end(self):
        parser = Parser(tokenize("{ }"))
        assert parser._peek(10).kind == TokenKind.EOF


# =============================================================================
# Printers
# =============================================================================

SAMPLE = """{
    int a;
    int b;
    a = (1 + 2) * 3;
    if (a > 5)
        b = a - 5;
    else
    {
        b = 0;
    }
    while (b != 0)
    {
        int c;
        c = b % 2;
        b = b / 2;
    }
    return a == 9;
}
"""


class TestPrinters:
    """ASTPrinter dumps and SourceWriter round trips."""

    def test_ast_printer_layout(self):
        text = ASTPrinter().print(parse_source("{ int a; if (a) return; else { } }"))
        assert text.splitlines() == [
            "Program",
            "  Block",
            "    Declaration: a",
            "    If a",
            "      Then:",
            "        Return",
            "      Else:",
            "        Block",
        ]

    def test_source_writer_layout(self):
        assert SourceWriter().write(parse_source(SAMPLE)) == SAMPLE

    def test_source_writer_reparses_to_same_text(self):
        source = "{int x;x=1;while(x<10)x=x*(x+1);if(x)if(x-1){}else return 2;}"
        first = SourceWriter().write(parse_source(source))
        second = SourceWriter().write(parse_source(first))
        assert first == second

    def test_source_writer_keeps_parentheses(self):
        text = SourceWriter().write(parse_source("{ a = (1 - (2 - 3)); }"))
        assert "a = (1 - (2 - 3));" in text
