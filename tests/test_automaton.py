from hypothesis import given, settings

from lrengine import (
    AutomatonBuilder,
    Grammar,
    LRItem,
    LRState,
    TokenKind,
    build_automaton,
    closure_equal,
    full_equal,
    is_reduction,
    language,
    symbol_after_dot,
)

from test_first_follow import grammars


def _expression_grammar():
    grammar = Grammar()
    PLUS = grammar.add_terminal(TokenKind.ADD)
    ID = grammar.add_terminal(TokenKind.IDN)
    E = grammar.add_nonterminal("E")
    T = grammar.add_nonterminal("T")
    grammar.add_production(E, [E, PLUS, T])
    grammar.add_production(E, [T])
    grammar.add_production(T, [ID])
    grammar.set_start_symbol(E)
    return grammar


def _dragon_grammar():
    """
    S -> C C
    C -> c C | d
    """
    grammar = Grammar()
    c = grammar.add_terminal(TokenKind.IDN, "c")
    d = grammar.add_terminal(TokenKind.DEC, "d")
    S = grammar.add_nonterminal("S")
    C = grammar.add_nonterminal("C")
    grammar.add_production(S, [C, C])
    grammar.add_production(C, [c, C])
    grammar.add_production(C, [d])
    grammar.set_start_symbol(S)
    return grammar


def _cores(state: LRState) -> set[tuple[int, int]]:
    return {item.core for item in state.items}


def test_item_equality():
    a = LRItem(1, 0, frozenset({1}))
    b = LRItem(1, 0, frozenset({2}))
    c = LRItem(1, 1, frozenset({1}))

    assert closure_equal(a, b)
    assert not full_equal(a, b)
    assert full_equal(a, LRItem(1, 0, frozenset({1})))
    assert not closure_equal(a, c)


def test_is_reduction_and_symbol_after_dot():
    grammar = Grammar()
    X = grammar.add_terminal(TokenKind.IDN, "x")
    S = grammar.add_nonterminal("S")
    N = grammar.add_nonterminal("N")
    p = grammar.add_production(S, [X, N])
    eps = grammar.add_production(N, [])

    assert symbol_after_dot(LRItem(p, 0), grammar) == X
    assert symbol_after_dot(LRItem(p, 1), grammar) == N
    assert symbol_after_dot(LRItem(p, 2), grammar) is None
    assert not is_reduction(LRItem(p, 1), grammar)
    assert is_reduction(LRItem(p, 2), grammar)

    # The ε-production is complete wherever the dot is.
    assert is_reduction(LRItem(eps, 0), grammar)
    assert is_reduction(LRItem(eps, 1), grammar)
    assert symbol_after_dot(LRItem(eps, 0), grammar) is None


def test_add_item_merges_lookaheads():
    state = LRState()
    assert state.add_item(LRItem(0, 0, frozenset({1})), track_lookaheads=True)
    assert state.add_item(LRItem(0, 0, frozenset({2})), track_lookaheads=True)
    assert not state.add_item(LRItem(0, 0, frozenset({1, 2})), track_lookaheads=True)

    assert len(state) == 1
    assert state.items[0].lookaheads == {1, 2}


def test_add_item_without_lookaheads():
    state = LRState()
    assert state.add_item(LRItem(0, 0, frozenset({1})), track_lookaheads=False)
    assert not state.add_item(LRItem(0, 0, frozenset({2})), track_lookaheads=False)
    assert state.items == [LRItem(0, 0)]


def test_lr0_automaton():
    grammar = _expression_grammar()
    automaton = build_automaton(grammar, track_lookaheads=False)

    E = grammar.lookup("E")
    T = grammar.lookup("T")
    PLUS = grammar.lookup("+")
    ID = grammar.lookup("id")
    start = grammar.augmented_production

    assert len(automaton) == 6
    assert automaton.start_state == 0
    assert _cores(automaton[0]) == {(start, 0), (0, 0), (1, 0), (2, 0)}
    assert automaton[0].transitions == {E: 1, T: 2, ID: 3}
    assert automaton[1].transitions == {PLUS: 4}
    assert automaton[4].transitions == {T: 5, ID: 3}

    assert automaton[4].kernel == [LRItem(0, 2)]


def test_lr1_lookaheads():
    grammar = _expression_grammar()
    automaton = build_automaton(grammar, track_lookaheads=True)

    assert len(automaton) == 6

    # E -> . E + T is added twice, once from E' -> . E with '#' and once from
    # itself with '+'.
    item = automaton[0].find(LRItem(0, 0))
    assert item is not None
    assert {grammar.name(t) for t in item.lookaheads} == {"#", "+"}


def test_lr1_splits_states():
    """The dragon book grammar has 7 LR(0) states and 10 LR(1) states."""
    assert len(build_automaton(_dragon_grammar(), track_lookaheads=False)) == 7
    assert len(build_automaton(_dragon_grammar(), track_lookaheads=True)) == 10


def test_goto_without_items():
    grammar = _expression_grammar()
    builder = AutomatonBuilder(grammar)
    initial = builder.initial_state()
    assert builder.goto(initial, grammar.lookup("+")) is None


def test_deterministic():
    for track_lookaheads in (False, True):
        first = build_automaton(language.build_grammar(), track_lookaheads)
        second = build_automaton(language.build_grammar(), track_lookaheads)

        assert len(first) == len(second)
        assert first.edges() == second.edges()
        for a, b in zip(first, second):
            assert a.same_items(b, track_lookaheads)


def test_format():
    grammar = _expression_grammar()
    text = build_automaton(grammar, track_lookaheads=True).format(grammar)
    assert "State 0:" in text
    assert "E' -> . E, #" in text
    # Lookaheads come in table order.
    assert "E -> E . + T, #/+" in text


def _check_closure_idempotent(grammar, track_lookaheads):
    builder = AutomatonBuilder(grammar, track_lookaheads)
    automaton = builder.build()
    for state in automaton:
        again = builder.closure(LRState(state.items, track_lookaheads))
        assert again.same_items(state, track_lookaheads)


def test_closure_idempotent_language():
    for track_lookaheads in (False, True):
        _check_closure_idempotent(language.build_grammar(), track_lookaheads)


@settings(deadline=None, max_examples=50)
@given(grammars())
def test_closure_idempotent_lr0(grammar):
    _check_closure_idempotent(grammar, False)


@settings(deadline=None, max_examples=50)
@given(grammars())
def test_closure_idempotent_lr1(grammar):
    _check_closure_idempotent(grammar, True)


@settings(deadline=None, max_examples=25)
@given(grammars())
def test_same_grammar_same_automaton(grammar):
    first = AutomatonBuilder(grammar, True).build()
    second = AutomatonBuilder(grammar, True).build()
    assert first.edges() == second.edges()
