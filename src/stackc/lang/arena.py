"""
AST Arena
=========

Owns every syntax-tree node of one compilation unit.

Nodes are created through ``ASTArena.alloc`` and are given an integer
``handle``: their index in the arena's backing list. Handles grow in
allocation order, so a node's handle is always greater than the handles
of the children it was built from. Individual nodes are never freed;
``reset()`` drops the whole tree at once.

Example:
    >>> arena = ASTArena()
    >>> lit = arena.alloc(Primary, location=loc, value=42)
    >>> arena.get(lit.handle) is lit
    True
"""

import logging
from typing import Iterator, TypeVar

from stackc.lang.errors import CompilerError

logger = logging.getLogger(__name__)

NodeT = TypeVar("NodeT")


class ASTArena:
    """
    Bump-style allocator for AST nodes.

    Attributes:
        name: Label used in debug logging (usually the source filename)
    """

    def __init__(self, name: str = "<arena>"):
        self.name = name
        self._nodes: list = []

    def alloc(self, node_cls: type[NodeT], **fields) -> NodeT:
        """
        Construct a node of ``node_cls`` and take ownership of it.

        Args:
            node_cls: An ASTNode subclass
            **fields: Constructor arguments for the node

        Returns:
            The new node, with ``handle`` set
        """
        node = node_cls(**fields)
        node.handle = len(self._nodes)
        self._nodes.append(node)
        return node

    def get(self, handle: int):
        """Return the node for ``handle``."""
        if not 0 <= handle < len(self._nodes):
            raise CompilerError(f"invalid AST handle {handle} for arena {self.name}")
        return self._nodes[handle]

    def owns(self, node) -> bool:
        """True if ``node`` was allocated by this arena and is still live."""
        handle = getattr(node, "handle", None)
        if handle is None or not 0 <= handle < len(self._nodes):
            return False
        return self._nodes[handle] is node

    def reset(self) -> None:
        """Release every node at once."""
        logger.debug(f"Releasing {len(self._nodes)} nodes from {self.name}")
        self._nodes.clear()

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator:
        return iter(self._nodes)
