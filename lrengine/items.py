import dataclasses
import typing

from .grammar import Grammar


@dataclasses.dataclass(frozen=True)
class LRItem:
    """A position within a production, with the set of terminals that may
    follow it (its lookahead).

    Lookaheads are only tracked for LR(1). LR(0) and SLR(1) items always have
    an empty lookahead set, so comparing them with `full_equal` is the same as
    comparing them with `closure_equal`.
    """

    production: int
    dot: int
    lookaheads: frozenset[int] = frozenset()

    @property
    def core(self) -> typing.Tuple[int, int]:
        return (self.production, self.dot)

    def advance(self) -> "LRItem":
        return LRItem(self.production, self.dot + 1, self.lookaheads)

    def with_lookaheads(self, lookaheads: typing.Iterable[int]) -> "LRItem":
        return LRItem(self.production, self.dot, frozenset(lookaheads))

    def format(self, grammar: Grammar) -> str:
        production = grammar.production(self.production)
        symbols = [grammar.name(s) for s in production.rhs]
        if production.epsilon:
            # There is nowhere for the dot to go but the end.
            symbols = []
        symbols.insert(min(self.dot, len(symbols)), ".")

        result = "{lhs} -> {rhs}".format(lhs=grammar.name(production.lhs), rhs=" ".join(symbols))
        if self.lookaheads:
            names = [grammar.name(t) for t in grammar.terminals if t in self.lookaheads]
            result += ", " + "/".join(names)
        return result


def closure_equal(a: LRItem, b: LRItem) -> bool:
    return a.core == b.core


def full_equal(a: LRItem, b: LRItem) -> bool:
    return a.core == b.core and a.lookaheads == b.lookaheads


def is_reduction(item: LRItem, grammar: Grammar) -> bool:
    """True if the parser should reduce by this item's production.

    The ε-production is always a reduction: its one symbol is epsilon, and
    there is nothing to shift, so it is complete with the dot at 0 or at 1.
    """
    production = grammar.production(item.production)
    return production.epsilon or item.dot == production.rhs_length


def symbol_after_dot(item: LRItem, grammar: Grammar) -> int | None:
    production = grammar.production(item.production)
    if production.epsilon or item.dot >= production.rhs_length:
        return None
    return production.rhs[item.dot]


class LRState:
    """A set of items and the transitions out of it.

    Items are kept in the order they were added, with at most one item per
    core. The first `kernel_size` items are the kernel: the ones the state was
    created from, before closure.
    """

    id: int
    items: list[LRItem]
    kernel_size: int
    transitions: dict[int, int]

    def __init__(self, items: typing.Iterable[LRItem] = (), track_lookaheads: bool = False):
        self.id = -1
        self.items = []
        self.transitions = {}
        self._index: dict[typing.Tuple[int, int], int] = {}
        for item in items:
            self.add_item(item, track_lookaheads)
        self.kernel_size = len(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> typing.Iterator[LRItem]:
        return iter(self.items)

    def __repr__(self) -> str:
        return f"LRState(id={self.id}, items={self.items!r})"

    @property
    def kernel(self) -> list[LRItem]:
        return self.items[: self.kernel_size]

    def find(self, item: LRItem) -> LRItem | None:
        """Return the item in this state with the same core as `item`."""
        index = self._index.get(item.core)
        return None if index is None else self.items[index]

    def add_item(self, item: LRItem, track_lookaheads: bool) -> bool:
        """Add an item to the state, and return True if that changed the state.

        If there is already an item with the same core, this merges the new
        lookaheads into it instead (when tracking lookaheads), and only counts
        as a change if the lookahead set actually grew.
        """
        index = self._index.get(item.core)
        if index is None:
            if not track_lookaheads and item.lookaheads:
                item = item.with_lookaheads(())
            self._index[item.core] = len(self.items)
            self.items.append(item)
            return True

        if not track_lookaheads:
            return False

        existing = self.items[index]
        if item.lookaheads <= existing.lookaheads:
            return False

        self.items[index] = existing.with_lookaheads(existing.lookaheads | item.lookaheads)
        return True

    def key(self, track_lookaheads: bool) -> frozenset:
        """A hashable value that is equal for two states exactly when
        `same_items` says they are.
        """
        if track_lookaheads:
            return frozenset((item.core, item.lookaheads) for item in self.items)
        return frozenset(item.core for item in self.items)

    def same_items(self, other: "LRState", track_lookaheads: bool) -> bool:
        if len(self.items) != len(other.items):
            return False
        compare = full_equal if track_lookaheads else closure_equal
        for item in self.items:
            theirs = other.find(item)
            if theirs is None or not compare(item, theirs):
                return False
        return True

    def symbols_after_dot(self, grammar: Grammar) -> list[int]:
        """Every symbol that appears right after a dot, in the order they first
        appear.
        """
        result: list[int] = []
        for item in self.items:
            symbol = symbol_after_dot(item, grammar)
            if symbol is not None and symbol not in result:
                result.append(symbol)
        return result

    def format(self, grammar: Grammar) -> str:
        lines = [f"State {self.id}:"]
        for index, item in enumerate(self.items):
            marker = " " if index < self.kernel_size else "+"
            lines.append(f"  {marker} {item.format(grammar)}")
        for symbol, target in self.transitions.items():
            lines.append(f"    {grammar.name(symbol)} => {target}")
        return "\n".join(lines)
