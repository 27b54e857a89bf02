"""Tree vertex and query methods for parsed REAPER projects.

A ``ReaperNode`` is built from one document line. Its first token is its type
tag unless that token parses as a number, in which case the node is untyped
and every token is a value. Nodes own their children; the parent link is a
weak reference used only for upward navigation. Parsed nodes hold their
document, which holds the outermost block, so a node kept on its own still
reaches its ancestors.
"""

import weakref
from collections import Counter
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

from reaper_project_parser.tokenization import (
    DEFAULT_STRIP_CHARS,
    is_number,
    tokenize_line,
)

if TYPE_CHECKING:
    from .builder import ReaperDocument

NAME_TYPE = "NAME"


class ReaperNode:
    """One node of a parsed ``.rpp`` document.

    Attributes:
        type: Type tag such as ``TRACK`` or ``ITEM``; empty for value-only lines
        values: Tokens after the type tag (all tokens for untyped nodes)
        children: Child nodes in document order
        parent: Enclosing node, or None for the root
        is_block: Whether the node was opened by a bracket line
        line_number: 1-based source line, when known
    """

    def __init__(
        self,
        node_type: str = "",
        values: Optional[List[str]] = None,
        parent: Optional["ReaperNode"] = None,
        document: Optional["ReaperDocument"] = None,
        is_block: bool = False,
        line_number: Optional[int] = None,
    ) -> None:
        self._type = node_type
        self._values = tuple(values or ())
        self._children: List["ReaperNode"] = []
        self._parent_ref = weakref.ref(parent) if parent is not None else None
        self._document = document
        # Path segments of the children, rebuilt after add_child
        self._child_labels: Optional[Dict[int, str]] = None
        self.is_block = is_block
        self.line_number = line_number

    @classmethod
    def from_tokens(
        cls,
        tokens: List[str],
        parent: Optional["ReaperNode"] = None,
        document: Optional["ReaperDocument"] = None,
        is_block: bool = False,
        line_number: Optional[int] = None,
    ) -> "ReaperNode":
        """Build a node from an already tokenized line.

        A numeric first token makes the node untyped, so a type tag that
        happens to look like a number (``1E5``, ``inf``) is read as a value.
        """
        if tokens and not is_number(tokens[0]):
            node_type, values = tokens[0], tokens[1:]
        else:
            node_type, values = "", tokens
        return cls(node_type, values, parent, document, is_block, line_number)

    @classmethod
    def from_line(
        cls,
        line: str,
        parent: Optional["ReaperNode"] = None,
        document: Optional["ReaperDocument"] = None,
        strip_chars: str = DEFAULT_STRIP_CHARS,
        is_block: bool = False,
        line_number: Optional[int] = None,
    ) -> "ReaperNode":
        """Build a node from a raw, untrimmed document line.

        Examples:
            >>> node = ReaperNode.from_line("  TEMPO 120 4 4")
            >>> node.type, node.values
            ('TEMPO', ['120', '4', '4'])
            >>> ReaperNode.from_line("-1.5 0 1").type
            ''
        """
        tokens = tokenize_line(line.strip(), strip_chars)
        return cls.from_tokens(tokens, parent, document, is_block, line_number)

    @property
    def type(self) -> str:
        return self._type

    @property
    def values(self) -> List[str]:
        return list(self._values)

    @property
    def value(self) -> str:
        """First value, or an empty string when the node has none."""
        return self._values[0] if self._values else ""

    @property
    def children(self) -> List["ReaperNode"]:
        return list(self._children)

    @property
    def parent(self) -> Optional["ReaperNode"]:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def document(self) -> Optional["ReaperDocument"]:
        """Document this node was parsed from, if any."""
        return self._document

    @property
    def is_typed(self) -> bool:
        return bool(self._type)

    @property
    def name(self) -> Optional[str]:
        """First value of the ``NAME`` child, or None without one."""
        name_node = self.first_child_of_type(NAME_TYPE)
        return name_node.value if name_node is not None else None

    def add_child(self, child: "ReaperNode") -> None:
        """Append a child during tree construction."""
        if not isinstance(child, ReaperNode):
            raise TypeError("Child must be a ReaperNode instance")
        if child.parent is not self:
            raise ValueError("Child must be constructed with this node as parent")
        self._children.append(child)
        self._child_labels = None

    def __iter__(self) -> Iterator["ReaperNode"]:
        return iter(self._children)

    def __repr__(self) -> str:
        return (
            f"ReaperNode(type={self._type!r}, values={list(self._values)!r}, "
            f"children={len(self._children)})"
        )

    # Queries

    def first_child_of_type(self, node_type: str) -> Optional["ReaperNode"]:
        """Find the first direct child with matching type."""
        for child in self._children:
            if child.type == node_type:
                return child
        return None

    def last_child_of_type(self, node_type: str) -> Optional["ReaperNode"]:
        """Find the last direct child with matching type."""
        for child in reversed(self._children):
            if child.type == node_type:
                return child
        return None

    def all_children_of_type(
        self, node_type: str, recursive: bool = False
    ) -> List["ReaperNode"]:
        """Find children with matching type.

        Args:
            node_type: Type tag to match
            recursive: Search every descendant in pre-order instead of only
                direct children. Matched and unmatched subtrees are both searched.

        Returns:
            Matching nodes in document order
        """
        if not recursive:
            return [child for child in self._children if child.type == node_type]
        return [node for node in self.iter_descendants() if node.type == node_type]

    def children_of_type_and_name(
        self, node_type: str, name: str, recursive: bool = False
    ) -> List["ReaperNode"]:
        """Find children with matching type whose ``NAME`` child equals ``name``.

        Nodes without a ``NAME`` child never match.
        """
        return [
            node for node in self.all_children_of_type(node_type, recursive)
            if node.name == name
        ]

    def find_by_type_and_name(
        self, node_type: str, name: str
    ) -> Optional["ReaperNode"]:
        """Find the first descendant with matching type and ``NAME`` value."""
        for node in self.iter_descendants():
            if node.type == node_type and node.name == name:
                return node
        return None

    # Navigation

    def iter_descendants(self) -> Iterator["ReaperNode"]:
        """Iterate over all descendants in pre-order, excluding this node."""
        stack = list(reversed(self._children))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node._children))

    def get_depth(self) -> int:
        """Get depth of this node in the tree (root = 0)."""
        depth = 0
        node = self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    def child_label(self, child: "ReaperNode") -> str:
        """Path segment of a direct child, indexed among same-type siblings.

        Labels for all children are computed together on first use.
        """
        if self._child_labels is None:
            totals = Counter(node.type for node in self._children)
            seen: Dict[str, int] = {}
            labels: Dict[int, str] = {}
            for node in self._children:
                label = node.type or "_"
                if totals[node.type] > 1:
                    seen[node.type] = seen.get(node.type, 0) + 1
                    label = f"{label}[{seen[node.type]}]"
                labels[id(node)] = label
            self._child_labels = labels
        return self._child_labels[id(child)]

    def get_path(self) -> str:
        """Get a slash separated path of types, indexed among same-type siblings.

        Untyped nodes appear as ``_``.
        """
        parts = []
        node: Optional[ReaperNode] = self
        while node is not None:
            parent = node.parent
            if parent is not None:
                parts.append(parent.child_label(node))
            else:
                parts.append(node.type or "_")
            node = parent
        return "/" + "/".join(reversed(parts))

    def _own_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self._type, "values": list(self._values)}
        if self.is_block:
            data["block"] = True
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert node and its subtree to a dictionary."""
        result = self._own_dict()
        stack = [(self, result)]
        while stack:
            node, data = stack.pop()
            if node._children:
                children = [child._own_dict() for child in node._children]
                data["children"] = children
                stack.extend(zip(node._children, children))
        return result
