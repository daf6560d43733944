"""Insertion-ordered, duplicate-free set of symbols.

Backed by a dense list plus a ``symbol -> position`` dict kept in lockstep,
so membership and ``index_of`` are O(1) while positions stay contiguous.
"""

import operator

from eqsystem.errors import IndexOutOfRange


class OrderedVariableSet:
    """Ordered set of SymPy symbols used as a variable catalogue / column ordering."""

    def __init__(self, symbols=()) -> None:
        self._elements = []
        self._index = {}
        for sym in symbols:
            self.append(sym)

    # ── Mutation ────────────────────────────────────────────────────────

    def append(self, symbol) -> None:
        """Add *symbol* at the end. Already-present symbols are ignored."""
        if symbol in self._index:
            return
        self._index[symbol] = len(self._elements)
        self._elements.append(symbol)

    def insert(self, position: int, symbol) -> None:
        """Insert *symbol* before *position* (``position == size`` appends)."""
        position = operator.index(position)
        if position < 0 or position > len(self._elements):
            raise IndexOutOfRange(position, len(self._elements))
        if symbol in self._index:
            return
        self._elements.insert(position, symbol)
        self._reindex_from(position)

    def remove(self, position: int) -> None:
        """Drop the element at *position*; later elements shift left by one."""
        position = self._check(position)
        del self._index[self._elements[position]]
        del self._elements[position]
        self._reindex_from(position)

    def union_with(self, other) -> None:
        """Append every element of *other* not already present, in *other*'s order."""
        for sym in other:
            self.append(sym)

    def _reindex_from(self, start: int) -> None:
        for i in range(start, len(self._elements)):
            self._index[self._elements[i]] = i

    # ── Queries ─────────────────────────────────────────────────────────

    def at(self, position: int):
        return self._elements[self._check(position)]

    def size(self) -> int:
        return len(self._elements)

    def contains(self, symbol) -> bool:
        return symbol in self._index

    def index_of(self, symbol) -> int:
        """Return the position of *symbol*; ``KeyError`` if it is absent."""
        try:
            return self._index[symbol]
        except KeyError:
            raise KeyError(f"{symbol} is not in the set") from None

    def is_subset(self, other) -> bool:
        """True when every element of ``self`` appears in *other* (any order)."""
        return all(other.contains(sym) for sym in self._elements)

    def is_consistent(self) -> bool:
        """Check that the list and the reverse index describe the same set."""
        if len(self._elements) != len(self._index):
            return False
        return all(self._index.get(sym) == i
                   for i, sym in enumerate(self._elements))

    def copy(self) -> "OrderedVariableSet":
        return OrderedVariableSet(self._elements)

    def to_list(self) -> list:
        return list(self._elements)

    def _check(self, position) -> int:
        position = operator.index(position)
        if position < 0 or position >= len(self._elements):
            raise IndexOutOfRange(position, len(self._elements))
        return position

    # ── Python protocol ─────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self._elements)

    def __iter__(self):
        return iter(self._elements)

    def __contains__(self, symbol) -> bool:
        return symbol in self._index

    def __getitem__(self, position: int):
        return self.at(position)

    def __eq__(self, other) -> bool:
        if not isinstance(other, OrderedVariableSet):
            return NotImplemented
        return self._elements == other._elements

    def __repr__(self) -> str:
        inner = ", ".join(str(sym) for sym in self._elements)
        return f"OrderedVariableSet([{inner}])"
