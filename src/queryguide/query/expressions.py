"""
Expression tree primitives for query construction.
"""

from __future__ import annotations

from typing import Any, List, Tuple, Union


AND = "AND"
OR = "OR"

Child = Union["Q", Tuple[str, Any]]


class Q:
    """
    Boolean expression over field lookups.

    Keyword lookups inside one ``Q`` are ANDed; ``&``, ``|`` and ``~``
    build compound conditions::

        Post.objects.filter(Q(title__istartswith="who") | Q(title__istartswith="why"))
    """

    def __init__(self, *children: "Q", **lookups: Any) -> None:
        for child in children:
            if not isinstance(child, Q):
                raise TypeError(f"Positional arguments to Q must be Q objects, got {child!r}")
        self.children: List[Child] = [*children, *lookups.items()]
        self.connector = AND
        self.negated = False

    def __repr__(self) -> str:
        template = "<Q: NOT (%s: %s)>" if self.negated else "<Q: (%s: %s)>"
        return template % (self.connector, ", ".join(str(child) for child in self.children))

    def __str__(self) -> str:
        prefix = "NOT " if self.negated else ""
        return f"{prefix}({self.connector}: {', '.join(str(child) for child in self.children)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Q):
            return NotImplemented
        return (
            self.connector == other.connector
            and self.negated == other.negated
            and self.children == other.children
        )

    def __or__(self, other: "Q") -> "Q":
        return self._combine(other, OR)

    def __and__(self, other: "Q") -> "Q":
        return self._combine(other, AND)

    def __invert__(self) -> "Q":
        q = self._clone()
        q.negated = not q.negated
        return q

    def is_empty(self) -> bool:
        return not self.children

    # Internal helpers -------------------------------------------------
    def _clone(self) -> "Q":
        clone = Q()
        clone.children = list(self.children)
        clone.connector = self.connector
        clone.negated = self.negated
        return clone

    def _combine(self, other: "Q", connector: str) -> "Q":
        if not isinstance(other, Q):
            raise TypeError(f"Cannot combine Q with {type(other).__name__}")
        if other.is_empty():
            return self._clone()
        if self.is_empty():
            return other._clone()
        q = Q()
        q.connector = connector
        for side in (self, other):
            # Flatten same-connector chains: a | b | c -> OR(a, b, c)
            if not side.negated and (side.connector == connector or len(side.children) == 1):
                q.children.extend(side.children)
            else:
                q.children.append(side._clone())
        return q
