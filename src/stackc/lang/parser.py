"""
Recursive Descent Parser
========================

This module implements the parser for the stackc language. It consumes
the token sequence from the lexer once, left to right, and builds an AST
whose nodes are all allocated from one ``ASTArena``.

Grammar (EBNF)
--------------
program         ::= block EOF
block           ::= '{' (declaration | statement)* '}'
declaration     ::= 'int' IDENTIFIER ';'
statement       ::= if_stmt | while_stmt | return_stmt | block | expr_stmt
if_stmt         ::= 'if' '(' expression ')' statement ('else' statement)?
while_stmt      ::= 'while' '(' expression ')' statement
return_stmt     ::= 'return' expression? ';'
expr_stmt       ::= expression ';'

expression      ::= assignment
assignment      ::= IDENTIFIER '=' equality | equality
equality        ::= relational (('==' | '!=') relational)*
relational      ::= additive (('>' | '>=' | '<' | '<=') additive)*
additive        ::= multiplicative (('+' | '-') multiplicative)*
multiplicative  ::= postfix (('*' | '/' | '%') postfix)*
postfix         ::= primary ('(' arguments? ')')*
arguments       ::= assignment (',' assignment)*
primary         ::= LITERAL | IDENTIFIER | '(' expression ')'

Expression Precedence (lowest to highest)
-----------------------------------------
1. assignment     =
2. equality       == !=
3. relational     < > <= >=
4. additive       + -
5. multiplicative * / %
6. postfix        ()
7. primary        LITERAL, IDENTIFIER, '(' expr ')'

Every binary tier is left-associative and is parsed by the same loop;
which operators a tier accepts is the whole precedence table.

Error Handling
--------------
The parser stops at the first malformed construct and raises a
CSyntaxError carrying the offending token's location. There is no
recovery and no partial tree.

Example Usage
-------------
>>> from stackc.lang.parser import parse_source
>>> program = parse_source('{ int a; a = 2 + 3 * 4; }')
>>> len(program.block.items)
2
"""

import logging
from typing import Callable, Optional, TypeVar

from stackc.errors import SourceLocation
from stackc.lang.arena import ASTArena
from stackc.lang.lexer import Lexer, Token, TokenKind
from stackc.lang.ast import (
    ASTNode,
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
    Statement,
    WhileStatement,
)
from stackc.lang.errors import (
    CSyntaxError,
    MissingTokenError,
    UnexpectedTokenError,
)

logger = logging.getLogger(__name__)

TierT = TypeVar("TierT", bound=ASTNode)

# Largest value a literal may take: it must fit a signed 64-bit word
MAX_LITERAL = 2**63 - 1

# Statements and expressions nested deeper than this are rejected
MAX_NESTING_DEPTH = 64


# =============================================================================
# Operator Tiers
# =============================================================================

MULTIPLICATIVE_OPERATORS: dict[TokenKind, BinaryOperator] = {
    TokenKind.STAR: BinaryOperator.MULTIPLY,
    TokenKind.SLASH: BinaryOperator.DIVIDE,
    TokenKind.PERCENT: BinaryOperator.MODULO,
}

ADDITIVE_OPERATORS: dict[TokenKind, BinaryOperator] = {
    TokenKind.PLUS: BinaryOperator.ADD,
    TokenKind.MINUS: BinaryOperator.SUBTRACT,
}

RELATIONAL_OPERATORS: dict[TokenKind, BinaryOperator] = {
    TokenKind.GT: BinaryOperator.GREATER,
    TokenKind.GE: BinaryOperator.GREATER_EQ,
    TokenKind.LT: BinaryOperator.LESS,
    TokenKind.LE: BinaryOperator.LESS_EQ,
}

EQUALITY_OPERATORS: dict[TokenKind, BinaryOperator] = {
    TokenKind.EQ: BinaryOperator.EQUAL,
    TokenKind.NE: BinaryOperator.NOT_EQUAL,
}


class Parser:
    """
    Recursive descent parser with one token of lookahead.

    Attributes:
        tokens: Token sequence, terminated by an EOF token
        filename: Source filename for error reporting
        arena: Arena that owns every node this parser creates
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
        arena: Optional[ASTArena] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: Tokens from the lexer (an EOF token is appended if missing)
            filename: Source filename for error messages
            source_lines: Original source lines for error context
            arena: Node arena to allocate into (a fresh one by default)
        """
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].kind != TokenKind.EOF:
            end = self.tokens[-1].location if self.tokens else SourceLocation(filename, 1, 1)
            self.tokens.append(Token(TokenKind.EOF, end))

        self.filename = filename
        self.source_lines = source_lines or []
        self.arena = arena if arena is not None else ASTArena(filename)

        self._pos = 0
        self._depth = 0

    def parse_program(self) -> Program:
        """
        Parse the whole token sequence.

        Parsing again starts over: the arena is reset first, so it only
        ever holds the latest tree.

        Returns:
            The Program root node

        Raises:
            CSyntaxError: On the first malformed construct
        """
        self._pos = 0
        self._depth = 0
        self.arena.reset()
        location = self._peek().location
        block = self._parse_block()

        if not self._at_end():
            raise self._unexpected("end of input after the program block")

        program = self.arena.alloc(Program, location=location, block=block)
        logger.debug(f"Parsed {self.filename}: {len(self.arena)} nodes")
        return program

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._peek().kind == TokenKind.EOF

    def _peek(self, offset: int = 0) -> Token:
        """Token at current position + offset; EOF once the stream is depleted."""
        pos = self._pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _advance(self) -> Token:
        token = self._peek()
        if token.kind != TokenKind.EOF:
            self._pos += 1
        return token

    def _check(self, *kinds: TokenKind) -> bool:
        return self._peek().kind in kinds

    def _match(self, *kinds: TokenKind) -> Optional[Token]:
        """Consume the current token if it is one of ``kinds``."""
        if self._check(*kinds):
            return self._advance()
        return None

    def _expect(self, kind: TokenKind, description: Optional[str] = None) -> Token:
        """
        Consume a token of ``kind`` or fail.

        Raises:
            MissingTokenError: Located at the current token
        """
        if self._check(kind):
            return self._advance()

        current = self._peek()
        if description is None:
            if kind in (TokenKind.IDENTIFIER, TokenKind.LITERAL, TokenKind.EOF):
                description = kind.text
            else:
                description = f"'{kind.text}'"
        raise MissingTokenError(
            description,
            found=current.text,
            location=current.location,
            source_line=self._get_source_line(current.location.line),
        )

    def _unexpected(self, expected: str) -> UnexpectedTokenError:
        current = self._peek()
        return UnexpectedTokenError(
            current.text,
            expected=expected,
            location=current.location,
            source_line=self._get_source_line(current.location.line),
        )

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    def _enter_nesting(self) -> None:
        """
        Count one more level of statement or expression nesting.

        Raises:
            CSyntaxError: If the program nests deeper than MAX_NESTING_DEPTH
        """
        self._depth += 1
        if self._depth > MAX_NESTING_DEPTH:
            current = self._peek()
            raise CSyntaxError(
                f"nesting too deep (more than {MAX_NESTING_DEPTH} levels)",
                current.location,
                hint="split the construct using temporary variables",
                source_line=self._get_source_line(current.location.line),
            )

    def _exit_nesting(self) -> None:
        self._depth -= 1

    # =========================================================================
    # Blocks, Declarations and Statements
    # =========================================================================

    def _parse_block(self) -> Block:
        """Parse ``{ (declaration | statement)* }``."""
        location = self._expect(TokenKind.LBRACE).location

        items = []
        while not self._check(TokenKind.RBRACE, TokenKind.EOF):
            if self._check(TokenKind.INT):
                items.append(self._parse_declaration())
            else:
                items.append(self._parse_statement())

        self._expect(TokenKind.RBRACE)
        return self.arena.alloc(Block, location=location, items=items)

    def _parse_declaration(self) -> Declaration:
        location = self._expect(TokenKind.INT).location
        name = self._expect(TokenKind.IDENTIFIER).lexeme
        self._expect(TokenKind.SEMICOLON)
        return self.arena.alloc(Declaration, location=location, name=name)

    def _parse_statement(self) -> Statement:
        token = self._peek()
        self._enter_nesting()

        if token.kind == TokenKind.IF:
            stmt = self._parse_if_statement()
        elif token.kind == TokenKind.WHILE:
            stmt = self._parse_while_statement()
        elif token.kind == TokenKind.RETURN:
            stmt = self._parse_return_statement()
        elif token.kind == TokenKind.LBRACE:
            stmt = self._parse_block()
        elif token.kind in (TokenKind.EOF, TokenKind.ELSE, TokenKind.RBRACE):
            raise self._unexpected("statement")
        else:
            stmt = self._parse_expression_statement()

        self._exit_nesting()
        return stmt

    def _parse_if_statement(self) -> IfStatement:
        location = self._expect(TokenKind.IF).location
        self._expect(TokenKind.LPAREN)
        condition = self._parse_expression()
        self._expect(TokenKind.RPAREN)
        then_branch = self._parse_statement()

        stmt = self.arena.alloc(
            IfStatement,
            location=location,
            condition=condition,
            then_branch=then_branch,
        )
        if self._match(TokenKind.ELSE):
            stmt.else_branch = self._parse_statement()
        return stmt

    def _parse_while_statement(self) -> WhileStatement:
        location = self._expect(TokenKind.WHILE).location
        self._expect(TokenKind.LPAREN)
        condition = self._parse_expression()
        self._expect(TokenKind.RPAREN)
        body = self._parse_statement()
        return self.arena.alloc(WhileStatement, location=location, condition=condition, body=body)

    def _parse_return_statement(self) -> ReturnStatement:
        location = self._expect(TokenKind.RETURN).location

        value = None
        if not self._check(TokenKind.SEMICOLON):
            value = self._parse_expression()

        self._expect(TokenKind.SEMICOLON)
        return self.arena.alloc(ReturnStatement, location=location, value=value)

    def _parse_expression_statement(self) -> ExpressionStatement:
        location = self._peek().location
        expression = self._parse_expression()
        self._expect(TokenKind.SEMICOLON)
        return self.arena.alloc(ExpressionStatement, location=location, expression=expression)

    # =========================================================================
    # Expression Parsing (Precedence Tiers)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        assignment = self._parse_assignment()
        return self.arena.alloc(Expression, location=assignment.location, assignment=assignment)

    def _parse_assignment(self) -> AssignmentExpression:
        """Parse ``IDENTIFIER '=' equality`` or a bare equality."""
        location = self._peek().location
        self._enter_nesting()

        target = None
        if self._check(TokenKind.IDENTIFIER) and self._peek(1).kind == TokenKind.ASSIGN:
            target = self._advance().lexeme
            self._advance()
        value = self._parse_equality()

        self._exit_nesting()
        return self.arena.alloc(AssignmentExpression, location=location, target=target, value=value)

    def _parse_equality(self) -> EqualityExpression:
        return self._parse_tier(EqualityExpression, self._parse_relational, EQUALITY_OPERATORS)

    def _parse_relational(self) -> RelationalExpression:
        return self._parse_tier(RelationalExpression, self._parse_additive, RELATIONAL_OPERATORS)

    def _parse_additive(self) -> AdditiveExpression:
        return self._parse_tier(AdditiveExpression, self._parse_multiplicative, ADDITIVE_OPERATORS)

    def _parse_multiplicative(self) -> MultiplicativeExpression:
        return self._parse_tier(MultiplicativeExpression, self._parse_postfix, MULTIPLICATIVE_OPERATORS)

    def _parse_tier(
        self,
        node_cls: type[TierT],
        operand_parser: Callable[[], ASTNode],
        operators: dict[TokenKind, BinaryOperator],
    ) -> TierT:
        """
        Generic binary tier parser.

        Parses one operand, then loops while the current token is one of
        the tier's operators, collecting ``(operator, operand)`` pairs.

        Args:
            node_cls: Tier node class to allocate
            operand_parser: Parser for the next-tighter tier
            operators: Map of token kinds to this tier's operators
        """
        location = self._peek().location
        left = operand_parser()

        rights = []
        while self._peek().kind in operators:
            op_token = self._advance()
            rights.append((operators[op_token.kind], operand_parser()))

        return self.arena.alloc(node_cls, location=location, left=left, rights=rights)

    def _parse_postfix(self) -> PostfixExpression:
        """Parse a primary followed by any number of call-argument lists."""
        location = self._peek().location
        primary = self._parse_primary()

        call_lists = []
        while self._match(TokenKind.LPAREN):
            arguments = []
            if not self._check(TokenKind.RPAREN):
                arguments.append(self._parse_assignment())
                while self._match(TokenKind.COMMA):
                    arguments.append(self._parse_assignment())
            self._expect(TokenKind.RPAREN)
            call_lists.append(arguments)

        return self.arena.alloc(PostfixExpression, location=location, primary=primary, call_lists=call_lists)

    def _parse_primary(self) -> Primary:
        """Parse a literal, an identifier, or a parenthesized expression."""
        token = self._peek()

        if token.kind == TokenKind.LITERAL:
            self._advance()
            return self.arena.alloc(Primary, location=token.location, value=self._literal_value(token))

        if token.kind == TokenKind.IDENTIFIER:
            self._advance()
            return self.arena.alloc(Primary, location=token.location, name=token.lexeme)

        if token.kind == TokenKind.LPAREN:
            self._advance()
            inner = self._parse_expression()
            self._expect(TokenKind.RPAREN)
            return self.arena.alloc(Primary, location=token.location, expression=inner)

        raise self._unexpected("expression")

    def _literal_value(self, token: Token) -> int:
        """
        Convert a literal token to its value.

        Raises:
            CSyntaxError: If the lexeme is not a decimal integer, or does
                not fit a signed 64-bit word
        """
        try:
            value = int(token.lexeme)
        except (TypeError, ValueError):
            raise CSyntaxError(
                f"invalid integer literal '{token.lexeme}'",
                token.location,
                source_line=self._get_source_line(token.location.line),
            ) from None

        if value > MAX_LITERAL:
            raise CSyntaxError(
                f"integer literal '{token.lexeme}' out of range",
                token.location,
                hint=f"the largest literal is {MAX_LITERAL}",
                source_line=self._get_source_line(token.location.line),
            )
        return value


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_tokens(
    tokens: list[Token],
    filename: str = "<input>",
    arena: Optional[ASTArena] = None,
) -> Program:
    """Parse an externally produced token sequence."""
    return Parser(tokens, filename, arena=arena).parse_program()


def parse_source(source: str, filename: str = "<input>", arena: Optional[ASTArena] = None) -> Program:
    """
    Parse source code into an AST.

    This is a convenience function that combines lexing and parsing.

    Raises:
        CSyntaxError: If lexing or parsing fails
    """
    tokens = list(Lexer(source, filename).tokenize())
    parser = Parser(tokens, filename, source.splitlines(), arena=arena)
    return parser.parse_program()
