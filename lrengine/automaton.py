import collections
import functools
import logging
import typing

from .errors import GrammarError
from .first_follow import compute_first_follow, first_of_sequence
from .grammar import Grammar
from .items import LRItem, LRState, symbol_after_dot


automaton_log = logging.getLogger("lrengine.automaton")


class LRAutomaton:
    """The canonical collection of item sets. State 0 is the start state, and
    states refer to each other by index.
    """

    states: list[LRState]
    start_state: int
    track_lookaheads: bool

    def __init__(self, states: list[LRState], track_lookaheads: bool):
        self.states = states
        self.start_state = 0
        self.track_lookaheads = track_lookaheads

    def __len__(self) -> int:
        return len(self.states)

    def __getitem__(self, index: int) -> LRState:
        return self.states[index]

    def __iter__(self) -> typing.Iterator[LRState]:
        return iter(self.states)

    def edges(self) -> list[typing.Tuple[int, int, int]]:
        """All the transitions, as (from, symbol, to)."""
        return [
            (state.id, symbol, target)
            for state in self.states
            for symbol, target in state.transitions.items()
        ]

    def format(self, grammar: Grammar) -> str:
        return "\n\n".join(state.format(grammar) for state in self.states)


class AutomatonBuilder:
    """Build the LR automaton for a grammar.

    With `track_lookaheads` off this builds the LR(0) automaton, which is
    what the LR(0) and SLR(1) tables are made from: items are compared by
    core alone and carry no lookaheads. With it on, it builds the canonical
    LR(1) automaton, where every item carries the set of terminals that may
    follow it, and two states are only the same state if their lookaheads
    match too.
    """

    grammar: Grammar
    track_lookaheads: bool

    def __init__(self, grammar: Grammar, track_lookaheads: bool = False):
        if grammar.augmented_production is None:
            grammar.augment()
        if track_lookaheads and not grammar.sets_valid:
            compute_first_follow(grammar)

        self.grammar = grammar
        self.track_lookaheads = track_lookaheads

    @functools.cache
    def closure_next(self, item: LRItem) -> typing.Tuple[LRItem, ...]:
        """Return the items that `item` adds to a closure.

        If the dot is right before a nonterminal B, that's an item at the
        start of every production of B. (If the dot is before a terminal, or
        at the end, there is nothing.)

        When tracking lookaheads, each new item's lookahead is FIRST of
        whatever comes after B in `item`; if all of that can be empty, then
        `item`'s own lookaheads can follow B as well.
        """
        grammar = self.grammar
        next = symbol_after_dot(item, grammar)
        if next is None or not grammar.is_nonterminal(next):
            return ()

        lookaheads: frozenset[int] = frozenset()
        if self.track_lookaheads:
            rest = grammar.production(item.production).rhs[item.dot + 1 :]
            firsts, nullable = first_of_sequence(grammar, rest)
            if nullable:
                firsts.update(item.lookaheads)
            lookaheads = frozenset(firsts)

        return tuple(
            LRItem(production.id, 0, lookaheads) for production in grammar.productions_for(next)
        )

    def closure(self, state: LRState) -> LRState:
        """Close the state in place, and return it.

        Adding an item can add more items, and so can merging new lookaheads
        into an item that's already there, so this goes until a whole pass
        changes nothing.
        """
        changed = True
        while changed:
            changed = False
            for item in list(state.items):
                # The item may have picked up lookaheads since the snapshot.
                current = state.find(item)
                assert current is not None
                for next_item in self.closure_next(current):
                    if state.add_item(next_item, self.track_lookaheads):
                        changed = True
        return state

    def goto(self, state: LRState, symbol: int) -> LRState | None:
        """The state the parser is in after seeing `symbol` in `state`, or
        None if there isn't one.
        """
        seeds = [
            item.advance() for item in state.items if symbol_after_dot(item, self.grammar) == symbol
        ]
        if len(seeds) == 0:
            return None
        return self.closure(LRState(seeds, self.track_lookaheads))

    def initial_state(self) -> LRState:
        grammar = self.grammar
        assert grammar.augmented_production is not None

        lookaheads = frozenset((grammar.end,)) if self.track_lookaheads else frozenset()
        seed = LRItem(grammar.augmented_production, 0, lookaheads)
        return self.closure(LRState([seed], self.track_lookaheads))

    def build(self) -> LRAutomaton:
        """Generate the whole canonical collection, starting from the closure
        of `S' -> . start`.

        States are numbered in the order they're discovered, working through
        them first-in first-out, and the symbols of each state in the order
        they first show up after a dot. Nothing depends on hash order, so the
        same grammar always numbers its states the same way.
        """
        start = self.initial_state()
        start.id = 0

        states = [start]
        known: dict[frozenset, int] = {start.key(self.track_lookaheads): 0}
        pending = collections.deque([start])
        while len(pending) > 0:
            state = pending.popleft()
            for symbol in state.symbols_after_dot(self.grammar):
                successor = self.goto(state, symbol)
                if successor is None:
                    continue

                key = successor.key(self.track_lookaheads)
                target = known.get(key)
                if target is None:
                    target = len(states)
                    successor.id = target
                    states.append(successor)
                    known[key] = target
                    pending.append(successor)

                state.transitions[symbol] = target

        automaton_log.info(
            "%s automaton has %d states",
            "LR(1)" if self.track_lookaheads else "LR(0)",
            len(states),
        )
        return LRAutomaton(states, self.track_lookaheads)


def build_automaton(grammar: Grammar, track_lookaheads: bool = False) -> LRAutomaton:
    if grammar.start_symbol is None:
        raise GrammarError("The grammar has no start symbol")
    return AutomatonBuilder(grammar, track_lookaheads).build()
