"""
stackcc - Compiler Command-Line Interface
=========================================

Usage Examples
--------------
Basic compilation:
    $ stackcc hello.c

With output file:
    $ stackcc hello.c -o hello.asm

Inspect the front end:
    $ stackcc --tokens hello.c
    $ stackcc --ast hello.c
    $ stackcc --print-source hello.c

Full pipeline to an executable:
    $ stackcc hello.c && nasm -f elf64 hello.asm && ld -o hello hello.o

Verbose mode:
    $ stackcc -v hello.c
"""

import logging
from pathlib import Path
from typing import Optional

import click

from stackc import __version__
from stackc.cli.errors import handle_cli_exception
from stackc.lang.ast import ASTPrinter, SourceWriter
from stackc.lang.compiler import Compiler
from stackc.lang.lexer import Lexer
from stackc.lang.options import CompilerOptions
from stackc.lang.parser import parse_source

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output assembly file (default: input.asm)",
)
@click.option(
    "--tokens",
    is_flag=True,
    help="Print the token stream and exit",
)
@click.option(
    "--ast",
    is_flag=True,
    help="Print AST and exit (for debugging)",
)
@click.option(
    "--print-source",
    is_flag=True,
    help="Print the program re-generated from its AST and exit",
)
@click.option(
    "--debug-print",
    is_flag=True,
    help="Call an external 'print' routine with every assigned value",
)
@click.option(
    "--no-comments",
    is_flag=True,
    help="Omit statement comments from the assembly",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="stackcc")
def main(
    input_file: Path,
    output: Optional[Path],
    tokens: bool,
    ast: bool,
    print_source: bool,
    debug_print: bool,
    no_comments: bool,
    verbose: bool,
) -> None:
    """
    Compile a stackc program to x86-64 NASM assembly.

    INPUT_FILE is the source file to compile.

    \b
    Examples:
        stackcc hello.c                 # Outputs hello.asm
        stackcc hello.c -o out.asm      # Specify output file
        stackcc --ast hello.c           # Dump the syntax tree
        stackcc -v hello.c              # Verbose output

    \b
    Language:
        - int variables, declared one per statement
        - * / % + - < > <= >= == != and assignment
        - blocks, if/else, while, return
    """
    setup_logging(verbose)

    if output is None:
        output = input_file.with_suffix(".asm")

    options = CompilerOptions(
        emit_comments=not no_comments,
        debug_print=debug_print,
    )

    try:
        if tokens or ast or print_source:
            source = input_file.read_text(encoding="utf-8")
            if tokens:
                for token in Lexer(source, str(input_file)).tokenize():
                    click.echo(repr(token))
            elif ast:
                click.echo(ASTPrinter().print(parse_source(source, str(input_file))))
            else:
                program = parse_source(source, str(input_file))
                click.echo(SourceWriter().write(program), nl=False)
            return

        logger.debug(f"Compiling {input_file}")
        result = Compiler(options).compile_file(input_file)

        output.write_text(result.assembly, encoding="utf-8")

        logger.debug(f"Tokenized: {result.token_count} tokens")
        logger.debug(f"Parsed: {result.node_count} nodes")
        logger.debug(f"Wrote {len(result.assembly)} bytes to {output}")

        click.echo(f"Compiled {input_file} -> {output}")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose)


if __name__ == "__main__":
    main()
