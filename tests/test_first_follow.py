import copy

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from lrengine import Grammar, GrammarError, TokenKind, compute_first_follow, first_of_sequence


def _names(grammar: Grammar, symbols) -> set[str]:
    return {grammar.name(s) for s in symbols}


def _ll_expression_grammar():
    """
    E -> T X
    X -> + T X | ε
    T -> id | ( E )
    """
    grammar = Grammar()
    PLUS = grammar.add_terminal(TokenKind.ADD)
    ID = grammar.add_terminal(TokenKind.IDN)
    LPAREN = grammar.add_terminal(TokenKind.SLP)
    RPAREN = grammar.add_terminal(TokenKind.SRP)
    E = grammar.add_nonterminal("E")
    X = grammar.add_nonterminal("X")
    T = grammar.add_nonterminal("T")
    grammar.add_production(E, [T, X])
    grammar.add_production(X, [PLUS, T, X])
    grammar.add_production(X, [])
    grammar.add_production(T, [ID])
    grammar.add_production(T, [LPAREN, E, RPAREN])
    grammar.set_start_symbol(E)
    return grammar


def test_first_sets():
    grammar = _ll_expression_grammar()
    compute_first_follow(grammar)

    first = {grammar.name(nt): _names(grammar, grammar.first[nt]) for nt in grammar.nonterminals}
    assert first == {
        "E": {"id", "("},
        "X": {"+", "ε"},
        "T": {"id", "("},
    }


def test_follow_sets():
    grammar = _ll_expression_grammar()
    compute_first_follow(grammar)

    follow = {grammar.name(nt): _names(grammar, grammar.follow[nt]) for nt in grammar.nonterminals}
    assert follow == {
        "E": {"#", ")"},
        "X": {"#", ")"},
        "T": {"+", "#", ")"},
    }


def test_nullable_chain():
    """A -> B C, B -> ε, C -> ε: A is nullable too, and whatever follows A
    follows B and C.
    """
    grammar = Grammar()
    SEMI = grammar.add_terminal(TokenKind.SEMI)
    S = grammar.add_nonterminal("S")
    A = grammar.add_nonterminal("A")
    B = grammar.add_nonterminal("B")
    C = grammar.add_nonterminal("C")
    grammar.add_production(S, [A, SEMI])
    grammar.add_production(A, [B, C])
    grammar.add_production(B, [])
    grammar.add_production(C, [])
    grammar.set_start_symbol(S)
    compute_first_follow(grammar)

    assert grammar.first[A] == {grammar.epsilon}
    assert grammar.first[S] == {SEMI}
    assert grammar.follow[B] == {SEMI}
    assert grammar.follow[C] == {SEMI}


def test_first_of_sequence():
    grammar = _ll_expression_grammar()
    compute_first_follow(grammar)
    X = grammar.lookup("X")
    T = grammar.lookup("T")
    RPAREN = grammar.lookup(")")

    first, nullable = first_of_sequence(grammar, [X, T])
    assert _names(grammar, first) == {"+", "id", "("}
    assert not nullable

    first, nullable = first_of_sequence(grammar, [X])
    assert _names(grammar, first) == {"+"}
    assert nullable

    first, nullable = first_of_sequence(grammar, [X, RPAREN])
    assert _names(grammar, first) == {"+", ")"}
    assert not nullable

    assert first_of_sequence(grammar, []) == (set(), True)


def test_first_of_sequence_needs_current_sets():
    grammar = _ll_expression_grammar()
    with pytest.raises(GrammarError):
        first_of_sequence(grammar, [grammar.lookup("E")])


def test_follow_includes_end_for_augmented_start():
    grammar = _ll_expression_grammar()
    grammar.augment()
    compute_first_follow(grammar)
    assert grammar.follow[grammar.augmented_start] == {grammar.end}


def test_format_sets():
    grammar = _ll_expression_grammar()
    compute_first_follow(grammar)
    text = grammar.format_sets()
    assert "FIRST:" in text
    assert "FOLLOW:" in text
    assert "X { +, ε }" in text


@st.composite
def grammars(draw):
    """Small random grammars. They don't have to make sense."""
    kinds = [TokenKind.IDN, TokenKind.ADD, TokenKind.SEMI]
    terminal_count = draw(st.integers(min_value=1, max_value=len(kinds)))
    nonterminal_count = draw(st.integers(min_value=1, max_value=4))

    grammar = Grammar()
    terminals = [grammar.add_terminal(kind) for kind in kinds[:terminal_count]]
    nonterminals = [grammar.add_nonterminal(f"N{i}") for i in range(nonterminal_count)]
    symbols = terminals + nonterminals
    for nt in nonterminals:
        bodies = draw(
            st.lists(st.lists(st.sampled_from(symbols), max_size=3), min_size=1, max_size=3)
        )
        for body in bodies:
            grammar.add_production(nt, body)
    grammar.set_start_symbol(nonterminals[0])
    return grammar


@settings(deadline=None)
@given(grammars())
def test_first_follow_idempotent(grammar):
    compute_first_follow(grammar)
    first = copy.deepcopy(grammar.first)
    follow = copy.deepcopy(grammar.follow)

    compute_first_follow(grammar)
    assert grammar.first == first
    assert grammar.follow == follow


@settings(deadline=None)
@given(grammars())
def test_set_contents(grammar):
    compute_first_follow(grammar)
    allowed_first = set(grammar.terminals) | {grammar.epsilon}
    for nt in grammar.nonterminals:
        assert grammar.first[nt] <= allowed_first
        assert grammar.end not in grammar.first[nt]
        assert grammar.follow[nt] <= set(grammar.terminals)
    assert grammar.end in grammar.follow[grammar.start_symbol]
