"""
stackc Language Pipeline
========================

The compilation process follows this pipeline:

    Source -> Lexer -> Parser -> AST (arena) -> Code Generator -> Assembly

Language Subset
---------------
- One data type: 64-bit signed ``int``, declared without initializer
- Operators: ``* / %``, ``+ -``, ``< > <= >=``, ``== !=``, assignment
- Control flow: blocks, if/else, while, return
- Call syntax ``f(a, b)`` is parsed but not compiled

Scoping
-------
Every block is a scope. A name may be redeclared in a nested block
(shadowing), but not twice in the same block. Leaving a block releases
its variables.
"""

from stackc.lang.compiler import Compiler, CompilerResult, compile_source
from stackc.lang.options import CompilerOptions
from stackc.lang.errors import (
    CompilerError,
    CSyntaxError,
    CSemanticError,
    CCodeGenError,
    UndeclaredIdentifierError,
    DuplicateDeclarationError,
    StackUnderflowError,
    StackMismatchError,
    UnsupportedFeatureError,
)
from stackc.lang.lexer import Lexer, TokenKind, Token, tokenize
from stackc.lang.parser import Parser, parse_source, parse_tokens
from stackc.lang.arena import ASTArena
from stackc.lang.scope import ScopeStack, ScopeEntry, SymbolKind
from stackc.lang.codegen import CodeGenerator
from stackc.lang.ast import (
    ASTNode,
    ASTPrinter,
    SourceWriter,
    Program,
    Block,
    Declaration,
    ExpressionStatement,
    IfStatement,
    WhileStatement,
    ReturnStatement,
    Expression,
    AssignmentExpression,
    BinaryOperator,
)

__all__ = [
    # Main API
    "Compiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_source",
    # Errors
    "CompilerError",
    "CSyntaxError",
    "CSemanticError",
    "CCodeGenError",
    "UndeclaredIdentifierError",
    "DuplicateDeclarationError",
    "StackUnderflowError",
    "StackMismatchError",
    "UnsupportedFeatureError",
    # Lexer
    "Lexer",
    "TokenKind",
    "Token",
    "tokenize",
    # Parser
    "Parser",
    "parse_source",
    "parse_tokens",
    "ASTArena",
    # Code Generator
    "ScopeStack",
    "ScopeEntry",
    "SymbolKind",
    "CodeGenerator",
    # AST Nodes
    "ASTNode",
    "ASTPrinter",
    "SourceWriter",
    "Program",
    "Block",
    "Declaration",
    "ExpressionStatement",
    "IfStatement",
    "WhileStatement",
    "ReturnStatement",
    "Expression",
    "AssignmentExpression",
    "BinaryOperator",
]
