"""
stackc Compiler Main Module
===========================

This module provides the main compiler interface. It orchestrates the
complete compilation process:

    Source -> Lex -> Parse -> Generate -> Assembly

Usage
-----
Command line:
    $ stackcc hello.c -o hello.asm

Programmatic:
    >>> from stackc import compile_source
    >>> asm = compile_source('{ int a; a = 1 + 2; return a; }')

The output is x86-64 NASM source for a freestanding Linux executable:

    $ nasm -f elf64 hello.asm && ld -o hello hello.o

Error Handling
--------------
The first error aborts the compilation and is raised to the caller.
No partial assembly is ever returned.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from stackc.lang.arena import ASTArena
from stackc.lang.ast import Program
from stackc.lang.codegen import CodeGenerator
from stackc.lang.errors import CompilerError
from stackc.lang.lexer import Lexer, Token
from stackc.lang.options import CompilerOptions
from stackc.lang.parser import Parser

logger = logging.getLogger(__name__)


@dataclass
class CompilerResult:
    """
    Result of a successful compilation.

    Attributes:
        filename: Source filename
        assembly: Generated assembly code
        program: Root of the syntax tree
        tokens: Token sequence the program was parsed from
        token_count: Number of tokens, including EOF
        node_count: Number of nodes allocated in the arena
    """
    filename: str = ""
    assembly: str = ""
    program: Optional[Program] = None
    tokens: list[Token] = field(default_factory=list)
    token_count: int = 0
    node_count: int = 0


class Compiler:
    """
    Lexes, parses and generates one compilation unit at a time.

    Example:
        compiler = Compiler()
        result = compiler.compile_file("hello.c")
        print(result.assembly)

    Attributes:
        options: Compiler configuration options
    """

    def __init__(self, options: Optional[CompilerOptions] = None):
        self.options = options or CompilerOptions()

    def compile_source(self, source: str, filename: str = "<input>") -> CompilerResult:
        """
        Compile source code to assembly.

        Args:
            source: Program source text
            filename: Source filename for error messages

        Returns:
            CompilerResult with the assembly and intermediate products

        Raises:
            CompilerError: If compilation fails
        """
        source_lines = source.splitlines()
        try:
            tokens = list(Lexer(source, filename).tokenize())
            return self._compile(tokens, filename, source_lines)
        except CompilerError as e:
            e.attach_source(source_lines)
            raise

    def compile_tokens(self, tokens: list[Token], filename: str = "<input>") -> CompilerResult:
        """
        Compile an externally produced token sequence.

        An EOF token is appended if the sequence lacks one.
        """
        return self._compile(list(tokens), filename, [])

    def compile_file(self, filepath) -> CompilerResult:
        """
        Compile a source file to assembly.

        Raises:
            CompilerError: If compilation fails
            FileNotFoundError: If source file not found
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Source file not found: {filepath}")

        source = path.read_text(encoding="utf-8")
        return self.compile_source(source, str(filepath))

    def _compile(self, tokens: list[Token], filename: str, source_lines: list[str]) -> CompilerResult:
        arena = ASTArena(filename)
        parser = Parser(tokens, filename, source_lines, arena=arena)
        program = parser.parse_program()
        logger.debug(f"Parsed {filename}: {len(parser.tokens)} tokens, {len(arena)} nodes")

        assembly = CodeGenerator(self.options).generate(program)

        return CompilerResult(
            filename=filename,
            assembly=assembly,
            program=program,
            tokens=parser.tokens,
            token_count=len(parser.tokens),
            node_count=len(arena),
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def compile_source(
    source: str,
    filename: str = "<input>",
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile source code to x86-64 assembly.

    This is the primary high-level interface.

    Raises:
        CompilerError: If compilation fails

    Example:
        >>> asm = compile_source('{ int a; a = 6 * 7; return a; }')
    """
    return Compiler(options).compile_source(source, filename).assembly


def compile_file(
    filepath,
    output_path=None,
    options: Optional[CompilerOptions] = None,
) -> str:
    """
    Compile a source file to x86-64 assembly.

    Args:
        filepath: Path to the source file
        output_path: Optional path to write the assembly to
        options: Compiler configuration (defaults if None)

    Returns:
        Generated assembly code

    Raises:
        CompilerError: If compilation fails
        FileNotFoundError: If source file not found
    """
    result = Compiler(options).compile_file(filepath)

    if output_path:
        Path(output_path).write_text(result.assembly, encoding="utf-8")
        logger.debug(f"Wrote {len(result.assembly)} bytes to {output_path}")

    return result.assembly
