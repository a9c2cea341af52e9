"""
stackc Error Hierarchy
======================

This module defines the root of the exception hierarchy for stackc and
the source location type shared by every stage of the compiler.
All exceptions inherit from StackcError, allowing callers to catch every
compiler failure with a single except clause if desired.

Exception Hierarchy
-------------------
StackcError (base)
└── CompilerError (stackc.lang.errors)
    ├── CSyntaxError - lexer and parser errors
    ├── CSemanticError - name resolution errors
    └── CCodeGenError - code generation errors

Design Philosophy
-----------------
Each exception captures source location information (filename, line, column)
when applicable. This allows for detailed error messages that help users
quickly locate and fix issues in their source code.

Error messages follow this format:
    filename:line:column: error: description
    source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass


# =============================================================================
# Base Exception Class
# =============================================================================

class StackcError(Exception):
    """
    Base exception for all stackc errors.

    All exceptions raised by the compiler inherit from this class, so a
    caller can treat a compilation as all-or-nothing:

        try:
            asm = compile_source(source)
        except StackcError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    This class is used throughout the compiler to track where tokens,
    AST nodes, and errors occur in the source file. The immutable
    (frozen) design ensures locations cannot be accidentally modified.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"
