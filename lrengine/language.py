"""The grammar of the teaching language.

    P -> L | L P
    L -> S ;
    S -> id = E | if C then S N | while C do S | begin P end
    N -> else S | ε
    C -> E > E | E < E | E = E | E >= E | E <= E | E <> E | ( C )
    E -> E + T | E - T | T
    T -> T * F | T / F | F
    F -> ( E ) | id | int8 | int10 | int16

Productions are numbered in the order they're listed, from 0 (P -> L) to
26 (F -> int16).

Note the dangling else: `N -> ε` and `N -> else S` fight over `else`, and
since the ε-production wins shift/reduce conflicts, the SLR(1) table never
attaches an `else` to the `if` before it. The LR(1) table only has that
conflict for an `if` nested right inside another `if`.
"""

import dataclasses

from .grammar import Grammar
from .runtime import Parser, RecoveryPolicy, SyncLevel
from .table import build_table
from .tokens import TokenKind


@dataclasses.dataclass(frozen=True)
class Symbols:
    """The ids of the language's nonterminals."""

    P: int
    L: int
    S: int
    N: int
    C: int
    E: int
    T: int
    F: int


TERMINALS = [
    TokenKind.IDN,
    TokenKind.DEC,
    TokenKind.OCT,
    TokenKind.HEX,
    TokenKind.ADD,
    TokenKind.SUB,
    TokenKind.MUL,
    TokenKind.DIV,
    TokenKind.GT,
    TokenKind.LT,
    TokenKind.EQ,
    TokenKind.GE,
    TokenKind.LE,
    TokenKind.NEQ,
    TokenKind.SLP,
    TokenKind.SRP,
    TokenKind.SEMI,
    TokenKind.IF,
    TokenKind.THEN,
    TokenKind.ELSE,
    TokenKind.WHILE,
    TokenKind.DO,
    TokenKind.BEGIN,
    TokenKind.END,
]

RELATIONS = [
    TokenKind.GT,
    TokenKind.LT,
    TokenKind.EQ,
    TokenKind.GE,
    TokenKind.LE,
    TokenKind.NEQ,
]


def build_grammar() -> Grammar:
    grammar = Grammar()
    t = {kind: grammar.add_terminal(kind) for kind in TERMINALS}

    P = grammar.add_nonterminal("P")
    L = grammar.add_nonterminal("L")
    S = grammar.add_nonterminal("S")
    N = grammar.add_nonterminal("N")
    C = grammar.add_nonterminal("C")
    E = grammar.add_nonterminal("E")
    T = grammar.add_nonterminal("T")
    F = grammar.add_nonterminal("F")

    grammar.add_production(P, [L])
    grammar.add_production(P, [L, P])

    grammar.add_production(L, [S, t[TokenKind.SEMI]])

    grammar.add_production(S, [t[TokenKind.IDN], t[TokenKind.EQ], E])
    grammar.add_production(S, [t[TokenKind.IF], C, t[TokenKind.THEN], S, N])
    grammar.add_production(S, [t[TokenKind.WHILE], C, t[TokenKind.DO], S])
    grammar.add_production(S, [t[TokenKind.BEGIN], P, t[TokenKind.END]])

    grammar.add_production(N, [t[TokenKind.ELSE], S])
    grammar.add_production(N, [])

    for relation in RELATIONS:
        grammar.add_production(C, [E, t[relation], E])
    grammar.add_production(C, [t[TokenKind.SLP], C, t[TokenKind.SRP]])

    grammar.add_production(E, [E, t[TokenKind.ADD], T])
    grammar.add_production(E, [E, t[TokenKind.SUB], T])
    grammar.add_production(E, [T])

    grammar.add_production(T, [T, t[TokenKind.MUL], F])
    grammar.add_production(T, [T, t[TokenKind.DIV], F])
    grammar.add_production(T, [F])

    grammar.add_production(F, [t[TokenKind.SLP], E, t[TokenKind.SRP]])
    grammar.add_production(F, [t[TokenKind.IDN]])
    grammar.add_production(F, [t[TokenKind.OCT]])
    grammar.add_production(F, [t[TokenKind.DEC]])
    grammar.add_production(F, [t[TokenKind.HEX]])

    grammar.set_start_symbol(P)
    return grammar


def symbols(grammar: Grammar) -> Symbols:
    return Symbols(**{name: grammar.lookup(name) for name in "PLSNCETF"})


def recovery_policy(grammar: Grammar) -> RecoveryPolicy:
    nt = symbols(grammar)

    def terminal(kind: TokenKind) -> int:
        result = grammar.terminal_for_token(kind)
        assert result is not None
        return result

    sync_levels = {
        terminal(TokenKind.SRP): SyncLevel.EXPRESSION,
        terminal(TokenKind.SEMI): SyncLevel.STATEMENT,
        terminal(TokenKind.THEN): SyncLevel.STATEMENT,
        terminal(TokenKind.ELSE): SyncLevel.STATEMENT,
        terminal(TokenKind.DO): SyncLevel.STATEMENT,
        terminal(TokenKind.END): SyncLevel.BLOCK,
        grammar.end: SyncLevel.BLOCK,
    }

    contexts = {
        nt.E: SyncLevel.EXPRESSION,
        nt.T: SyncLevel.EXPRESSION,
        nt.F: SyncLevel.EXPRESSION,
        terminal(TokenKind.SLP): SyncLevel.EXPRESSION,
        nt.S: SyncLevel.STATEMENT,
        nt.L: SyncLevel.STATEMENT,
        nt.N: SyncLevel.STATEMENT,
        nt.C: SyncLevel.STATEMENT,
        terminal(TokenKind.IF): SyncLevel.STATEMENT,
        terminal(TokenKind.THEN): SyncLevel.STATEMENT,
        terminal(TokenKind.ELSE): SyncLevel.STATEMENT,
        terminal(TokenKind.WHILE): SyncLevel.STATEMENT,
        terminal(TokenKind.DO): SyncLevel.STATEMENT,
        terminal(TokenKind.EQ): SyncLevel.STATEMENT,
        nt.P: SyncLevel.BLOCK,
        terminal(TokenKind.BEGIN): SyncLevel.BLOCK,
    }

    anchors = {
        SyncLevel.EXPRESSION: nt.E,
        SyncLevel.STATEMENT: nt.S,
        SyncLevel.BLOCK: nt.P,
    }

    pairs = {
        terminal(TokenKind.SLP): terminal(TokenKind.SRP),
        terminal(TokenKind.IF): terminal(TokenKind.THEN),
        terminal(TokenKind.WHILE): terminal(TokenKind.DO),
        terminal(TokenKind.BEGIN): terminal(TokenKind.END),
    }

    return RecoveryPolicy(
        sync_levels=sync_levels,
        contexts=contexts,
        anchors=anchors,
        pairs=pairs,
    )


def build_parser(strategy: str = "lr1", *, explicit_end: bool = False) -> Parser:
    """Build the grammar, a table for it with the given strategy, and a
    parser that recovers from errors.
    """
    grammar = build_grammar()
    table = build_table(grammar, strategy, explicit_end=explicit_end)
    return Parser(grammar, table, recovery_policy(grammar))
