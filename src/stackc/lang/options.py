"""
Compiler Options
================

Settings shared by the compiler driver and the code generator.
"""

from dataclasses import dataclass


@dataclass
class CompilerOptions:
    """
    Compiler configuration options.

    Attributes:
        emit_comments: Emit ``;`` comments naming each statement
        debug_print: After every assignment, pass the stored value to an
            external ``print`` routine (declared with ``extern print``)
        entry_symbol: Name of the global entry label
    """
    emit_comments: bool = True
    debug_print: bool = False
    entry_symbol: str = "_start"
