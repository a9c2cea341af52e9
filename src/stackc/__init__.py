"""
stackc - A Stack-Machine Compiler for a Tiny C-like Language
============================================================

This package compiles a small block-structured language (integer
variables, arithmetic, comparisons, if/else, while, return) to x86-64
assembly for a freestanding Linux executable.

Every value lives on the machine stack, which keeps the generator small
enough to read in one sitting: expressions push their result, operators
pop their operands, and variables are addressed relative to ``rsp``.

Main Components
---------------
- **lang**: the compiler pipeline
    Lexer, parser, syntax-tree arena, scope stack and code generator

- **cli**: command-line front end (stackcc)
    Compiles a source file to a ``.asm`` file

Quick Start
-----------
Compile a program:
    >>> from stackc import compile_source
    >>> asm = compile_source('{ int a; a = 6 * 7; return a; }')

Or use the command-line tool:
    $ stackcc answer.c -o answer.asm
    $ nasm -f elf64 answer.asm && ld -o answer answer.o
    $ ./answer; echo $?
    42
"""

__version__ = "1.0.0"

from stackc.errors import StackcError, SourceLocation
from stackc.lang.compiler import (
    Compiler,
    CompilerResult,
    compile_file,
    compile_source,
)
from stackc.lang.options import CompilerOptions

__all__ = [
    "__version__",
    "StackcError",
    "SourceLocation",
    "Compiler",
    "CompilerOptions",
    "CompilerResult",
    "compile_file",
    "compile_source",
]
