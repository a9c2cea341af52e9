"""
Scope Stack
===========

Lexical scopes for code generation. Each block pushes a scope mapping
names to stack slots; lookups search from the innermost scope outward,
so an inner declaration shadows an outer one with the same name.

    scopes = ScopeStack()
    scopes.enter_scope()
    scopes.insert("a", ScopeEntry(SymbolKind.VARIABLE, stack_offset=0))
    scopes.lookup("a").stack_offset   # 0
    scopes.exit_scope()               # 1 (entries released)
"""

import difflib
import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from stackc.errors import SourceLocation
from stackc.lang.errors import (
    DuplicateDeclarationError,
    ScopeError,
    UndeclaredIdentifierError,
)

logger = logging.getLogger(__name__)


class SymbolKind(Enum):
    """What a scope entry names."""
    VARIABLE = auto()
    FUNCTION = auto()


@dataclass(frozen=True)
class ScopeEntry:
    """
    One declared name.

    Attributes:
        kind: Variable or function
        stack_offset: Index of the variable's word counted from the bottom
            of the stack (the virtual height just after it was reserved,
            minus one)
        location: Where the name was declared
    """
    kind: SymbolKind
    stack_offset: int = 0
    location: Optional[SourceLocation] = None


class ScopeStack:
    """Stack of name -> ScopeEntry mappings, one per active block."""

    def __init__(self):
        self._scopes: list[dict[str, ScopeEntry]] = []

    @property
    def depth(self) -> int:
        """Number of active scopes."""
        return len(self._scopes)

    def enter_scope(self) -> None:
        self._scopes.append({})
        logger.debug(f"Entered scope (depth {self.depth})")

    def exit_scope(self) -> int:
        """
        Pop the innermost scope.

        Returns:
            Number of entries the scope held

        Raises:
            ScopeError: If no scope is active
        """
        if not self._scopes:
            raise ScopeError("attempted to exit scope with empty scope stack")
        released = len(self._scopes.pop())
        logger.debug(f"Exited scope (depth {self.depth}), released {released} entries")
        return released

    def insert(self, name: str, entry: ScopeEntry) -> None:
        """
        Declare ``name`` in the innermost scope.

        Raises:
            DuplicateDeclarationError: If ``name`` is already declared in
                the innermost scope
            ScopeError: If no scope is active
        """
        if not self._scopes:
            raise ScopeError("no active scope", location=entry.location)

        current = self._scopes[-1]
        if name in current:
            raise DuplicateDeclarationError(
                name,
                location=entry.location,
                original_location=current[name].location,
            )
        current[name] = entry

    def lookup(self, name: str, location: Optional[SourceLocation] = None) -> ScopeEntry:
        """
        Resolve ``name``, innermost scope first.

        Raises:
            UndeclaredIdentifierError: If no active scope declares ``name``
        """
        for scope in reversed(self._scopes):
            if name in scope:
                return scope[name]

        raise UndeclaredIdentifierError(
            name,
            location=location,
            similar_identifiers=self._similar(name),
        )

    def __contains__(self, name: str) -> bool:
        return any(name in scope for scope in self._scopes)

    def __len__(self) -> int:
        """Total entries across all active scopes, shadowed ones included."""
        return sum(len(scope) for scope in self._scopes)

    def visible_names(self) -> list[str]:
        """Every name currently in scope, innermost first, without duplicates."""
        names: list[str] = []
        for scope in reversed(self._scopes):
            names.extend(n for n in scope if n not in names)
        return names

    def dump(self) -> str:
        """List every entry, outermost scope first (for debugging)."""
        lines = []
        for depth, scope in enumerate(self._scopes):
            for name, entry in scope.items():
                lines.append(f"{'  ' * depth}{name}: {entry.kind.name.lower()}, stack offset {entry.stack_offset}")
        return "\n".join(lines)

    def _similar(self, name: str) -> list[str]:
        return difflib.get_close_matches(name, self.visible_names(), n=3)
