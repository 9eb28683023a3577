import dataclasses
import logging
import typing

from .errors import GrammarError
from .grammar import Grammar


sets_log = logging.getLogger("lrengine.grammar")


def update_changed(items: set[int], other: typing.Iterable[int]) -> bool:
    """Merge the `other` set into the `items` set, and return True if this
    changed the items set.
    """
    old_len = len(items)
    items.update(other)
    return old_len != len(items)


def _sequence_first(
    grammar: Grammar,
    firsts: dict[int, set[int]],
    symbols: typing.Iterable[int],
) -> typing.Tuple[set[int], bool]:
    """FIRST of a sequence of symbols, without epsilon, and whether the whole
    sequence can match nothing.
    """
    result: set[int] = set()
    for symbol in symbols:
        if symbol == grammar.epsilon:
            continue

        if grammar.is_terminal(symbol):
            result.add(symbol)
            return (result, False)

        other = firsts[symbol]
        result.update(s for s in other if s != grammar.epsilon)
        if grammar.epsilon not in other:
            return (result, False)

    return (result, True)


@dataclasses.dataclass(frozen=True)
class FirstInfo:
    """The FIRST sets of a grammar.

    firsts[A] is the set of terminals that can begin a string derived from
    the nonterminal A. If A can derive the empty string then firsts[A] also
    contains the grammar's epsilon symbol. (Terminals don't get an entry; the
    FIRST of a terminal is just the terminal.)

    For example, with

        E -> T X
        X -> + T X
        X -> ε
        T -> id

    FIRST(T) is { id }, FIRST(X) is { +, ε }, and FIRST(E) is { id }: E starts
    with T, and T can't be empty, so nothing after it matters.
    """

    firsts: dict[int, set[int]]
    iterations: int

    @classmethod
    def from_grammar(cls, grammar: Grammar) -> "FirstInfo":
        firsts: dict[int, set[int]] = {nt: set() for nt in grammar.nonterminals}

        # Rules are recursive and mutually recursive, so keep sweeping over
        # all the productions until a sweep doesn't add anything. The sets
        # only ever grow and are bounded by the number of terminals, so this
        # finishes.
        iterations = 0
        changed = True
        while changed:
            changed = False
            iterations += 1
            for production in grammar.productions:
                f = firsts[production.lhs]
                rest, nullable = _sequence_first(grammar, firsts, production.rhs)
                changed = update_changed(f, rest) or changed
                if nullable and grammar.epsilon not in f:
                    f.add(grammar.epsilon)
                    changed = True

        return FirstInfo(firsts=firsts, iterations=iterations)


@dataclasses.dataclass(frozen=True)
class FollowInfo:
    """The FOLLOW sets of a grammar.

    follows[A] is the set of terminals that can come right after A in some
    sentence. It never contains epsilon, and for anything reachable from the
    start symbol it is never empty, since everything eventually runs into
    the end marker '#'.

    Every place B appears in a right-hand side `A -> α B β` contributes
    FIRST(β) to FOLLOW(B). If β can be empty (or B is last) then whatever
    can follow A can also follow B, so FOLLOW(A) goes in too.
    """

    follows: dict[int, set[int]]
    iterations: int

    @classmethod
    def from_grammar(cls, grammar: Grammar, firsts: FirstInfo) -> "FollowInfo":
        if grammar.start_symbol is None:
            raise GrammarError("The grammar has no start symbol")

        follows: dict[int, set[int]] = {nt: set() for nt in grammar.nonterminals}
        follows[grammar.start_symbol].add(grammar.end)
        if grammar.augmented_start is not None:
            follows[grammar.augmented_start].add(grammar.end)

        iterations = 0
        changed = True
        while changed:
            changed = False
            iterations += 1
            for production in grammar.productions:
                for index, symbol in enumerate(production.rhs):
                    if not grammar.is_nonterminal(symbol):
                        continue

                    f = follows[symbol]
                    rest, nullable = _sequence_first(
                        grammar, firsts.firsts, production.rhs[index + 1 :]
                    )
                    changed = update_changed(f, rest) or changed
                    if nullable:
                        changed = update_changed(f, follows[production.lhs]) or changed

        return FollowInfo(follows=follows, iterations=iterations)


def compute_first_follow(grammar: Grammar):
    """Compute FIRST and FOLLOW for every nonterminal and store them in the
    grammar. Running this again on a grammar that hasn't changed produces the
    same sets.
    """
    firsts = FirstInfo.from_grammar(grammar)
    follows = FollowInfo.from_grammar(grammar, firsts)

    grammar.first = firsts.firsts
    grammar.follow = follows.follows
    grammar.sets_valid = True

    sets_log.debug(
        "FIRST settled after %d passes, FOLLOW after %d", firsts.iterations, follows.iterations
    )


def first_of_sequence(grammar: Grammar, symbols: typing.Iterable[int]) -> typing.Tuple[set[int], bool]:
    """Return the FIRST set of a *sequence* of symbols, and True if every
    symbol in it can be empty. The set never contains epsilon.
    """
    if not grammar.sets_valid:
        raise GrammarError("FIRST/FOLLOW are out of date; call compute_first_follow first")
    return _sequence_first(grammar, grammar.first, symbols)
