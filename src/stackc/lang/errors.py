"""
Compiler Error Hierarchy
========================

This module defines the exception hierarchy for the stackc compiler.
All exceptions inherit from CompilerError, which itself inherits from
the base StackcError.

There is exactly one failure policy: the first error aborts the
compilation. No stage accumulates errors or produces partial output.

Exception Hierarchy
-------------------
CompilerError (base for all compiler errors)
├── CSyntaxError - lexer and parser syntax errors
│   ├── InvalidCharacterError - unexpected character
│   ├── UnexpectedTokenError - token does not fit the grammar
│   └── MissingTokenError - required token not found
├── CSemanticError - name resolution errors
│   ├── UndeclaredIdentifierError - reference to an undeclared name
│   └── DuplicateDeclarationError - name declared twice in one scope
└── CCodeGenError - code generation errors
    ├── StackUnderflowError - pop with an empty virtual stack
    ├── StackMismatchError - if/else branches leave different heights
    ├── UnknownOperatorError - operator used outside its tier
    ├── UnsupportedFeatureError - parsed but not lowered (calls)
    └── ScopeError - scope stack misuse

Error Message Format
--------------------
    hello.c:5:12: error: undeclared identifier 'cnt'
        cnt = 1;
        ^
    hint: did you mean 'count'?
"""

from typing import Optional, List

from stackc.errors import StackcError, SourceLocation


# =============================================================================
# Base Compiler Exception
# =============================================================================

class CompilerError(StackcError):
    """
    Base exception for all compiler errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred
        hint: A suggestion for fixing the error
        source_line: The actual source text at the error location
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

            hello.c:5:12: error: undeclared identifier 'cnt'
                cnt = 1;
                ^
            hint: did you mean 'count'?
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        # Source context with caret pointer
        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)

    def attach_source(self, source_lines: List[str]) -> None:
        """Fill in ``source_line`` from the source text if it is missing."""
        if self.source_line is not None or self.location is None:
            return
        index = self.location.line - 1
        if 0 <= index < len(source_lines):
            self.source_line = source_lines[index]
            self.args = (self._format_message(),)


# =============================================================================
# Syntax Errors (Lexer and Parser)
# =============================================================================

class CSyntaxError(CompilerError):
    """
    Syntax error in source code.

    Raised when the lexer or parser encounters input that cannot be
    tokenized or parsed according to the grammar.
    """
    pass


class InvalidCharacterError(CSyntaxError):
    """Character that cannot start any token."""

    def __init__(
        self,
        char: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.char = char
        super().__init__(
            f"invalid character '{char}' (0x{ord(char):02X})",
            location=location,
            source_line=source_line,
        )


class UnexpectedTokenError(CSyntaxError):
    """
    Unexpected token during parsing.

    Raised when the parser encounters a token that doesn't start any
    alternative of the production being parsed.
    """

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.found = found
        self.expected = expected

        hint = None
        if expected:
            hint = f"expected {expected}"

        super().__init__(
            f"unexpected token '{found}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class MissingTokenError(CSyntaxError):
    """
    Required token is missing.

    Raised by the parser's expect step when the current token is not
    the one the grammar requires (like ';' or ')').
    """

    def __init__(
        self,
        expected: str,
        found: Optional[str] = None,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        self.found = found
        message = f"expected {expected}"
        if found:
            message += f" before '{found}'"
        super().__init__(
            message,
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Semantic Errors (Name Resolution)
# =============================================================================

class CSemanticError(CompilerError):
    """
    Semantic error in source code.

    Raised during code generation when the program is syntactically
    correct but refers to names incorrectly.
    """
    pass


class UndeclaredIdentifierError(CSemanticError):
    """
    Reference to an undeclared identifier.

    The scope stack suggests similarly-named identifiers when this error
    occurs, helping to catch typos.
    """

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        similar_identifiers: Optional[List[str]] = None,
    ):
        self.identifier = identifier
        self.similar_identifiers = similar_identifiers or []

        hint = None
        if self.similar_identifiers:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_identifiers[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(
            f"undeclared identifier '{identifier}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


class DuplicateDeclarationError(CSemanticError):
    """
    Identifier declared more than once in the same scope.

    Declaring the same name in a nested block is shadowing and is allowed.
    """

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.identifier = identifier
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{identifier}' was first declared at {original_location}"

        super().__init__(
            f"redefinition of '{identifier}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )


# =============================================================================
# Code Generation Errors
# =============================================================================

class CCodeGenError(CompilerError):
    """
    Error during code generation.

    Raised when the generator reaches a state from which it cannot
    produce correct assembly.
    """
    pass


class StackUnderflowError(CCodeGenError):
    """Pop attempted while the virtual stack height is zero."""

    def __init__(
        self,
        register: str,
        location: Optional[SourceLocation] = None,
    ):
        self.register = register
        super().__init__(
            f"stack underflow while popping into '{register}'",
            location=location,
        )


class StackMismatchError(CCodeGenError):
    """
    Branches of an if statement leave the stack at different depths.

    Code after the if would address variables at the wrong offsets, so
    the generator refuses to continue.
    """

    def __init__(
        self,
        then_height: int,
        else_height: int,
        location: Optional[SourceLocation] = None,
    ):
        self.then_height = then_height
        self.else_height = else_height
        super().__init__(
            f"stack height mismatch between if branches "
            f"(then: {then_height}, else: {else_height})",
            location=location,
        )


class UnknownOperatorError(CCodeGenError):
    """Operator that the current expression tier cannot lower."""

    def __init__(
        self,
        operator: str,
        tier: str,
        location: Optional[SourceLocation] = None,
    ):
        self.operator = operator
        self.tier = tier
        super().__init__(
            f"unknown operator '{operator}' in {tier} expression",
            location=location,
        )


class UnsupportedFeatureError(CCodeGenError):
    """
    Unsupported language feature.

    Raised for constructs the parser accepts but the generator does not
    lower, such as call-argument lists.
    """

    def __init__(
        self,
        feature: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
        alternative: Optional[str] = None,
    ):
        self.feature = feature
        super().__init__(
            f"unsupported feature: {feature}",
            location=location,
            hint=alternative,
            source_line=source_line,
        )


class ScopeError(CCodeGenError):
    """Scope stack used without an active scope."""
    pass
