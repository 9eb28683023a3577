"""The grammar model: symbols, productions, and the FIRST/FOLLOW tables.

A grammar is built up with a fixed sequence of calls:

    grammar = Grammar()
    PLUS = grammar.add_terminal(TokenKind.ADD, "+")
    ID = grammar.add_terminal(TokenKind.IDN, "id")
    E = grammar.add_nonterminal("E")
    T = grammar.add_nonterminal("T")

    grammar.add_production(E, [E, PLUS, T])
    grammar.add_production(E, [T])
    grammar.add_production(T, [ID])
    grammar.set_start_symbol(E)

Every symbol gets a small integer id, handed out in order and never reused.
Two symbols exist before anything else is added: epsilon, which stands for
"nothing", and the end-of-input marker `#`. An empty right-hand side is
stored as a right-hand side containing only epsilon, never as an empty
tuple, so every production has at least one symbol. The ε-production
reduces without popping anything, though; see `Production.pop_count`.

Nothing here computes FIRST or FOLLOW (that's in `first_follow`), but the
grammar holds the results, and remembers whether they are still good.
"""

import dataclasses
import enum
import logging
import typing

from .errors import GrammarError
from .tokens import TokenKind


grammar_log = logging.getLogger("lrengine.grammar")


class SymbolKind(enum.Enum):
    TERMINAL = 0
    NONTERMINAL = 1
    EPSILON = 2
    END = 3


@dataclasses.dataclass(frozen=True)
class Symbol:
    id: int
    kind: SymbolKind
    name: str
    token: TokenKind | None = None

    @property
    def is_terminal(self) -> bool:
        """The end marker counts as a terminal: it has a column in the action
        table like any other.
        """
        return self.kind in (SymbolKind.TERMINAL, SymbolKind.END)

    @property
    def is_nonterminal(self) -> bool:
        return self.kind == SymbolKind.NONTERMINAL


@dataclasses.dataclass(frozen=True)
class Production:
    id: int
    lhs: int
    rhs: typing.Tuple[int, ...]
    epsilon: bool = False

    @property
    def rhs_length(self) -> int:
        """The number of dot positions past the first, so an ε-production has
        a length of 1.
        """
        return len(self.rhs)

    @property
    def pop_count(self) -> int:
        """The number of parse stack entries a reduction by this production
        removes.
        """
        return 0 if self.epsilon else len(self.rhs)


class Grammar:
    symbols: list[Symbol]
    productions: list[Production]

    start_symbol: int | None
    epsilon: int
    end: int

    # The augmented start symbol S' and the production S' -> start, once
    # `augment` has been called.
    augmented_start: int | None
    augmented_production: int | None

    # FIRST may include the epsilon id; FOLLOW never does. Both are keyed by
    # nonterminal id and are only meaningful while `sets_valid` is True.
    first: dict[int, set[int]]
    follow: dict[int, set[int]]
    sets_valid: bool

    def __init__(self):
        self.symbols = []
        self.productions = []
        self.start_symbol = None
        self.augmented_start = None
        self.augmented_production = None
        self.first = {}
        self.follow = {}
        self.sets_valid = False

        self._names: dict[str, int] = {}
        self._tokens: dict[TokenKind, int] = {}
        self._terminals: list[int] = []
        self._nonterminals: list[int] = []
        self._terminal_index: dict[int, int] = {}
        self._nonterminal_index: dict[int, int] = {}
        self._by_lhs: dict[int, list[int]] = {}

        self.epsilon = self._add_symbol(SymbolKind.EPSILON, "ε")
        self.end = self._add_symbol(SymbolKind.END, "#", TokenKind.EOF)

    def _add_symbol(self, kind: SymbolKind, name: str, token: TokenKind | None = None) -> int:
        if name in self._names:
            raise GrammarError(f"The name '{name}' is already used by another symbol")

        id = len(self.symbols)
        self.symbols.append(Symbol(id=id, kind=kind, name=name, token=token))
        self._names[name] = id

        match kind:
            case SymbolKind.TERMINAL | SymbolKind.END:
                self._terminal_index[id] = len(self._terminals)
                self._terminals.append(id)
                if token is not None:
                    self._tokens[token] = id
            case SymbolKind.NONTERMINAL:
                self._nonterminal_index[id] = len(self._nonterminals)
                self._nonterminals.append(id)
                self._by_lhs[id] = []
            case SymbolKind.EPSILON:
                pass
            case _:
                typing.assert_never(kind)

        return id

    def add_terminal(self, kind: TokenKind, name: str | None = None) -> int:
        """Add a terminal for tokens of the given kind. The name defaults to
        the kind's own display name.
        """
        if kind == TokenKind.EOF:
            raise GrammarError("The end of input is always part of the grammar as '#'")
        if kind in self._tokens:
            raise GrammarError(f"{kind} already has a terminal")
        return self._add_symbol(SymbolKind.TERMINAL, name or kind.value, kind)

    def add_nonterminal(self, name: str) -> int:
        return self._add_symbol(SymbolKind.NONTERMINAL, name)

    def add_production(self, lhs: int, rhs: typing.Iterable[int]) -> int:
        """Add the production `lhs -> rhs` and return its id.

        An empty rhs means the nonterminal can match nothing, and is stored as
        the single symbol epsilon.
        """
        if not self.symbol(lhs).is_nonterminal:
            raise GrammarError(f"'{self.name(lhs)}' is not a nonterminal and cannot have productions")

        symbols = tuple(rhs)
        for symbol in symbols:
            self.symbol(symbol)

        if len(symbols) == 0:
            symbols = (self.epsilon,)
        elif self.epsilon in symbols and len(symbols) > 1:
            raise GrammarError("Epsilon may only appear alone on the right-hand side")

        id = len(self.productions)
        production = Production(id=id, lhs=lhs, rhs=symbols, epsilon=symbols == (self.epsilon,))
        self.productions.append(production)
        self._by_lhs[lhs].append(id)

        if self.sets_valid:
            grammar_log.debug("Production %d invalidates FIRST/FOLLOW", id)
        self.sets_valid = False
        return id

    def set_start_symbol(self, symbol: int):
        if not self.symbol(symbol).is_nonterminal:
            raise GrammarError(f"The start symbol '{self.name(symbol)}' must be a nonterminal")
        if self.augmented_start is not None and symbol != self.start_symbol:
            raise GrammarError("Cannot change the start symbol of an augmented grammar")
        self.start_symbol = symbol
        self.sets_valid = False

    def augment(self, explicit_end: bool = False) -> int:
        """Add the production `S' -> start` (or `S' -> start #`) that the
        automaton starts from, and return its id. Calling this again returns
        the production made the first time, as long as it asks for the same
        kind of end.
        """
        if self.augmented_production is not None:
            production = self.production(self.augmented_production)
            if (production.rhs[-1] == self.end) != explicit_end:
                raise GrammarError(
                    "The grammar is already augmented with "
                    + self.format_production(self.augmented_production)
                )
            return self.augmented_production

        if self.start_symbol is None:
            raise GrammarError("The grammar has no start symbol")

        name = self.name(self.start_symbol) + "'"
        while name in self._names:
            name += "'"

        self.augmented_start = self.add_nonterminal(name)
        rhs = [self.start_symbol, self.end] if explicit_end else [self.start_symbol]
        self.augmented_production = self.add_production(self.augmented_start, rhs)
        grammar_log.debug("Augmented with %s", self.format_production(self.augmented_production))
        return self.augmented_production

    ###########################################################################
    # Lookups
    ###########################################################################
    def symbol(self, id: int) -> Symbol:
        if not isinstance(id, int) or id < 0 or id >= len(self.symbols):
            raise GrammarError(f"Unknown symbol {id!r}")
        return self.symbols[id]

    def production(self, id: int) -> Production:
        if not isinstance(id, int) or id < 0 or id >= len(self.productions):
            raise GrammarError(f"Unknown production {id!r}")
        return self.productions[id]

    def name(self, id: int) -> str:
        return self.symbol(id).name

    def lookup(self, name: str) -> int:
        """Return the id of the symbol with the given name."""
        try:
            return self._names[name]
        except KeyError:
            raise GrammarError(f"No symbol named '{name}'") from None

    def productions_for(self, nonterminal: int) -> list[Production]:
        return [self.productions[id] for id in self._by_lhs.get(nonterminal, ())]

    @property
    def terminals(self) -> typing.Sequence[int]:
        """Every terminal, the end marker included, in id order."""
        return self._terminals

    @property
    def nonterminals(self) -> typing.Sequence[int]:
        return self._nonterminals

    def terminal_index(self, symbol: int) -> int:
        return self._terminal_index[symbol]

    def nonterminal_index(self, symbol: int) -> int:
        return self._nonterminal_index[symbol]

    def terminal_for_token(self, kind: TokenKind) -> int | None:
        if kind == TokenKind.EOF:
            return self.end
        return self._tokens.get(kind)

    def is_terminal(self, symbol: int) -> bool:
        return symbol in self._terminal_index

    def is_nonterminal(self, symbol: int) -> bool:
        return symbol in self._nonterminal_index

    def is_epsilon_production(self, production: int) -> bool:
        return self.production(production).epsilon

    ###########################################################################
    # Formatting
    ###########################################################################
    def format_production(self, production: int) -> str:
        p = self.production(production)
        return "{lhs} -> {rhs}".format(
            lhs=self.name(p.lhs),
            rhs=" ".join(self.name(symbol) for symbol in p.rhs),
        )

    def format_productions(self) -> str:
        width = len(str(len(self.productions)))
        return "\n".join(
            f"{p.id:{width}}: {self.format_production(p.id)}" for p in self.productions
        )

    def format_sets(self) -> str:
        """Dump FIRST and FOLLOW for every nonterminal."""

        def format_set(symbols: set[int]) -> str:
            # Terminals in table order, then epsilon.
            names = [self.name(t) for t in self._terminals if t in symbols]
            if self.epsilon in symbols:
                names.append(self.name(self.epsilon))
            return "{ " + ", ".join(names) + " }"

        width = max((len(self.name(nt)) for nt in self._nonterminals), default=0)
        lines = ["FIRST:"]
        for nt in self._nonterminals:
            lines.append(f"  {self.name(nt):{width}} {format_set(self.first.get(nt, set()))}")
        lines.append("FOLLOW:")
        for nt in self._nonterminals:
            lines.append(f"  {self.name(nt):{width}} {format_set(self.follow.get(nt, set()))}")
        return "\n".join(lines)
