"""Action/Goto tables, and the generators that build them.

There are three generators, each a small refinement of the one before:

- `GenerateLR0` reduces a completed item on every terminal, whatever comes
  next. It only works for grammars with no conflicts at all.

- `GenerateSLR1` reduces a completed item `A -> α .` only on the terminals
  in FOLLOW(A).

- `GenerateLR1` builds the canonical LR(1) automaton, whose items carry
  their own lookaheads, and reduces only on those.

All of them produce the same shape of table, and the same parser runs any
of them.

Conflicts never stop a table from being built. When two actions land in the
same cell the builder keeps one of them by a fixed rule, records a
`Conflict`, and logs a warning:

- Between a shift and a reduce, the shift stays, unless the reduce is by an
  ε-production, in which case the reduce wins.
- Accept is never replaced.
- Otherwise the later action replaces the earlier one.

A table built from an ambiguous grammar can therefore reject good input or
accept bad input. That's the deal.
"""

import dataclasses
import logging
import typing

from .automaton import AutomatonBuilder, LRAutomaton
from .errors import GrammarError
from .first_follow import compute_first_follow
from .grammar import Grammar
from .items import LRItem, LRState, is_reduction


table_log = logging.getLogger("lrengine.table")


@dataclasses.dataclass
class Action:
    pass


@dataclasses.dataclass
class Reduce(Action):
    production: int


@dataclasses.dataclass
class Shift(Action):
    state: int


@dataclasses.dataclass
class Accept(Action):
    pass


@dataclasses.dataclass
class Error(Action):
    pass


ParseAction = Reduce | Shift | Accept | Error


def format_action(action: ParseAction) -> str:
    match action:
        case Accept():
            return "acc"
        case Shift(state=state):
            return f"s{state}"
        case Reduce(production=production):
            return f"r{production}"
        case Error():
            return ""
        case _:
            typing.assert_never(action)


def describe_action(action: ParseAction, grammar: Grammar) -> str:
    match action:
        case Accept():
            return "accept"
        case Shift(state=state):
            return f"shift to {state}"
        case Reduce(production=production):
            return f"reduce {grammar.format_production(production)}"
        case Error():
            return "error"
        case _:
            typing.assert_never(action)


@dataclasses.dataclass
class Conflict:
    """Two actions wanted the same cell of the table."""

    state: int
    terminal: int
    existing: ParseAction
    incoming: ParseAction
    kept: ParseAction

    @property
    def kind(self) -> str:
        kinds = {type(self.existing).__name__.lower(), type(self.incoming).__name__.lower()}
        return "/".join(sorted(kinds))

    def format(self, grammar: Grammar) -> str:
        return "{kind} conflict in state {state} on '{terminal}': {existing} vs {incoming}, keeping {kept}".format(
            kind=self.kind,
            state=self.state,
            terminal=grammar.name(self.terminal),
            existing=describe_action(self.existing, grammar),
            incoming=describe_action(self.incoming, grammar),
            kept=describe_action(self.kept, grammar),
        )


class ActionTable:
    """A dense table of actions, indexed by state and terminal, and of gotos,
    indexed by state and nonterminal. Every action cell starts as `Error` and
    every goto cell as None.

    The table takes a copy of what it needs from the grammar, so that it can
    be formatted and queried on its own.
    """

    actions: list[list[ParseAction]]
    gotos: list[list[int | None]]
    conflicts: list[Conflict]

    terminals: list[int]
    nonterminals: list[int]

    def __init__(self, grammar: Grammar, state_count: int):
        self.terminals = list(grammar.terminals)
        self.nonterminals = list(grammar.nonterminals)
        self.terminal_names = [grammar.name(t) for t in self.terminals]
        self.nonterminal_names = [grammar.name(nt) for nt in self.nonterminals]
        self._terminal_column = {t: i for i, t in enumerate(self.terminals)}
        self._nonterminal_column = {nt: i for i, nt in enumerate(self.nonterminals)}

        self.actions = [[Error() for _ in self.terminals] for _ in range(state_count)]
        self.gotos = [[None for _ in self.nonterminals] for _ in range(state_count)]
        self.conflicts = []

    def __len__(self) -> int:
        return len(self.actions)

    @property
    def state_count(self) -> int:
        return len(self.actions)

    def terminal_column(self, terminal: int) -> int:
        return self._terminal_column[terminal]

    def nonterminal_column(self, nonterminal: int) -> int:
        return self._nonterminal_column[nonterminal]

    def action(self, state: int, terminal: int) -> ParseAction:
        return self.actions[state][self._terminal_column[terminal]]

    def goto(self, state: int, nonterminal: int) -> int | None:
        return self.gotos[state][self._nonterminal_column[nonterminal]]

    def expected_terminals(self, state: int) -> list[int]:
        """The terminals that don't lead to an error in the given state."""
        return [
            terminal
            for terminal, action in zip(self.terminals, self.actions[state])
            if not isinstance(action, Error)
        ]

    def format(self) -> str:
        """Format the table so pretty."""
        header = "      | {terms} | {nts}".format(
            terms=" ".join(f"{name: <6}" for name in self.terminal_names),
            nts=" ".join(f"{name: <5}" for name in self.nonterminal_names),
        )

        lines = [
            header,
            "-" * len(header),
        ] + [
            "{index: <5} | {actions} | {gotos}".format(
                index=i,
                actions=" ".join(f"{format_action(action): <6}" for action in actions),
                gotos=" ".join(f"{'' if goto is None else goto: <5}" for goto in gotos),
            )
            for i, (actions, gotos) in enumerate(zip(self.actions, self.gotos))
        ]
        return "\n".join(lines)


class TableBuilder:
    """A helper object to assemble actions into a table.

    Call `new_row` before filling in the actions for each state, then `flush`
    once every state is done.
    """

    table: ActionTable
    grammar: Grammar
    state: int | None

    def __init__(self, grammar: Grammar, state_count: int):
        self.grammar = grammar
        self.table = ActionTable(grammar, state_count)
        self.state = None

    def flush(self) -> ActionTable:
        """Finish building the table and return it."""
        if self.table.conflicts:
            table_log.warning("%d conflicts in the table", len(self.table.conflicts))
        return self.table

    def new_row(self, state: LRState):
        self.state = state.id

    def set_table_shift(self, terminal: int, target: int):
        self._set_table_action(terminal, Shift(target))

    def set_table_reduce(self, terminal: int, production: int):
        self._set_table_action(terminal, Reduce(production))

    def set_table_accept(self, terminal: int):
        self._set_table_action(terminal, Accept())

    def set_table_goto(self, nonterminal: int, target: int):
        assert self.state is not None
        column = self.table.nonterminal_column(nonterminal)
        assert self.table.gotos[self.state][column] in (None, target)
        self.table.gotos[self.state][column] = target

    def _resolve(self, existing: ParseAction, action: ParseAction) -> ParseAction:
        grammar = self.grammar
        match (existing, action):
            case (Accept(), _):
                return existing
            case (Shift(), Reduce(production=production)):
                return action if grammar.is_epsilon_production(production) else existing
            case (Reduce(production=production), Shift()):
                return existing if grammar.is_epsilon_production(production) else action
            case _:
                return action

    def _set_table_action(self, terminal: int, action: ParseAction):
        """Set the action for `terminal` in the current row, settling any
        conflict with what's already there.
        """
        assert self.state is not None
        row = self.table.actions[self.state]
        column = self.table.terminal_column(terminal)

        existing = row[column]
        if isinstance(existing, Error) or existing == action:
            row[column] = action
            return

        kept = self._resolve(existing, action)
        conflict = Conflict(
            state=self.state,
            terminal=terminal,
            existing=existing,
            incoming=action,
            kept=kept,
        )
        self.table.conflicts.append(conflict)
        if table_log.isEnabledFor(logging.WARNING):
            table_log.warning(conflict.format(self.grammar))

        row[column] = kept


class GenerateLR0:
    """Generate parser tables for an LR0 parser."""

    track_lookaheads: bool = False
    name: str = "LR(0)"

    grammar: Grammar
    explicit_end: bool

    def __init__(self, grammar: Grammar, *, explicit_end: bool = False):
        """Augment the grammar (with `S' -> start #` if explicit_end is set,
        otherwise with `S' -> start`) and make sure FIRST and FOLLOW are
        current.
        """
        if grammar.start_symbol is None:
            raise GrammarError("The grammar has no start symbol")

        self.grammar = grammar
        self.explicit_end = explicit_end
        grammar.augment(explicit_end=explicit_end)
        if not grammar.sets_valid:
            compute_first_follow(grammar)
        self._automaton: LRAutomaton | None = None

    def gen_automaton(self) -> LRAutomaton:
        if self._automaton is None:
            self._automaton = AutomatonBuilder(self.grammar, self.track_lookaheads).build()
        return self._automaton

    def gen_reduce_set(self, item: LRItem) -> typing.Iterable[int]:
        """Return the set of terminals on which to reduce the given item.

        In an LR0 parser, this is every terminal.
        """
        del item
        return self.grammar.terminals

    def gen_table(self) -> ActionTable:
        """Generate the parse table.

        Shifts and gotos come straight from the automaton's transitions.
        Then every completed item either reduces, on the terminals picked by
        `gen_reduce_set`, or, for the augmented production, accepts at the
        end of input.
        """
        grammar = self.grammar
        automaton = self.gen_automaton()
        builder = TableBuilder(grammar, len(automaton))

        for state in automaton.states:
            builder.new_row(state)

            for symbol, target in state.transitions.items():
                if grammar.is_terminal(symbol):
                    builder.set_table_shift(symbol, target)
                else:
                    builder.set_table_goto(symbol, target)

            for item in state.items:
                if not is_reduction(item, grammar):
                    continue

                if item.production == grammar.augmented_production:
                    builder.set_table_accept(grammar.end)
                else:
                    for terminal in sorted(self.gen_reduce_set(item)):
                        builder.set_table_reduce(terminal, item.production)

        table = builder.flush()
        table_log.info(
            "%s table: %d states, %d conflicts", self.name, len(table), len(table.conflicts)
        )
        return table


class GenerateSLR1(GenerateLR0):
    """Generate parse tables for SLR1 grammars.

    SLR1 parsers recognize more than LR0 parsers because they only reduce a
    production when the next terminal could actually follow its nonterminal,
    that is, when it's in FOLLOW. (See `first_follow.FollowInfo` for how
    that's computed.)
    """

    name = "SLR(1)"

    def gen_follow(self, symbol: int) -> set[int]:
        return self.grammar.follow[symbol]

    def gen_reduce_set(self, item: LRItem) -> typing.Iterable[int]:
        """In an SLR1 parser, this is the follow set of the item's
        nonterminal.
        """
        return self.gen_follow(self.grammar.production(item.production).lhs)


class GenerateLR1(GenerateSLR1):
    """Generate parse tables for LR1, or "canonical LR" grammars.

    Like SLR, LR1 is choosy about when it reduces, but the terminals come
    from the item itself rather than from FOLLOW: each item carries a
    lookahead, computed as the closure is computed. (See
    `AutomatonBuilder.closure_next`.) Two items for the same production in
    different contexts can therefore reduce on different terminals, which is
    exactly what SLR can't tell apart.
    """

    track_lookaheads = True
    name = "LR(1)"

    def gen_reduce_set(self, item: LRItem) -> typing.Iterable[int]:
        """In an LR1 parser, this is the lookahead of the item."""
        return item.lookaheads


STRATEGIES: dict[str, type[GenerateLR0]] = {
    "lr0": GenerateLR0,
    "slr1": GenerateSLR1,
    "lr1": GenerateLR1,
}


def build_table(grammar: Grammar, strategy: str = "lr1", *, explicit_end: bool = False) -> ActionTable:
    try:
        generator = STRATEGIES[strategy]
    except KeyError:
        raise ValueError(
            f"Unknown strategy '{strategy}', expected one of {', '.join(STRATEGIES)}"
        ) from None
    return generator(grammar, explicit_end=explicit_end).gen_table()
