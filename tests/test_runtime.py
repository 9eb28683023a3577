import pytest

from lrengine import (
    EpsilonNode,
    Grammar,
    GrammarError,
    MissingGotoError,
    NonterminalNode,
    Parser,
    ProductionTracker,
    Reduce,
    StackUnderflowError,
    STRATEGIES,
    SyntaxErrorReport,
    TerminalNode,
    Token,
    TokenKind,
    UnknownTokenError,
    build_table,
)
from lrengine.runtime import ParseContext, prepare_tokens


def _expression_grammar():
    """
    E -> E + T | T
    T -> id
    """
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


def _optional_else_grammar():
    """
    S -> id N
    N -> else id | ε
    """
    grammar = Grammar()
    ID = grammar.add_terminal(TokenKind.IDN)
    ELSE = grammar.add_terminal(TokenKind.ELSE)
    S = grammar.add_nonterminal("S")
    N = grammar.add_nonterminal("N")
    grammar.add_production(S, [ID, N])
    grammar.add_production(N, [ELSE, ID])
    grammar.add_production(N, [])
    grammar.set_start_symbol(S)
    return grammar


def _tokens(text: str) -> list[Token]:
    """One token per space-separated kind name, all on line 1. No EOF unless
    the text asks for one with '#'.
    """
    return [Token(TokenKind(name), 1, column) for column, name in enumerate(text.split(), start=1)]


def _shape(node):
    """Turn a tree into nested tuples of names, which are easier to compare."""
    match node:
        case NonterminalNode(name=name, children=children):
            return (name,) + tuple(_shape(child) for child in children)
        case TerminalNode(name=name):
            return name
        case EpsilonNode(name=name):
            return name


def _derivation(grammar, result):
    return [grammar.format_production(p) for p in result.derivation]


def _parser(grammar_fn, strategy="lr1", **kwargs):
    grammar = grammar_fn()
    return grammar, Parser(grammar, build_table(grammar, strategy, **kwargs))


@pytest.mark.parametrize("strategy", list(STRATEGIES))
def test_expression(strategy):
    grammar, parser = _parser(_expression_grammar, strategy)
    result = parser.parse(_tokens("id + id"))

    assert result.ok
    assert _shape(result.tree) == ("E", ("E", ("T", "id")), "+", ("T", "id"))
    assert _derivation(grammar, result) == ["T -> id", "E -> T", "T -> id", "E -> E + T"]


@pytest.mark.parametrize("strategy", list(STRATEGIES))
def test_epsilon(strategy):
    grammar, parser = _parser(_optional_else_grammar, strategy)
    result = parser.parse(_tokens("id"))

    assert result.ok
    assert _shape(result.tree) == ("S", "id", ("N", "ε"))
    assert _derivation(grammar, result) == ["N -> ε", "S -> id N"]


@pytest.mark.parametrize("strategy", ["slr1", "lr1"])
def test_optional_else(strategy):
    grammar, parser = _parser(_optional_else_grammar, strategy)
    result = parser.parse(_tokens("id else id"))

    assert result.ok
    assert _shape(result.tree) == ("S", "id", ("N", "else", "id"))
    assert _derivation(grammar, result) == ["N -> else id", "S -> id N"]


def test_lr0_always_takes_epsilon():
    """LR(0) reduces N -> ε on every terminal, and the ε-production wins
    against the shift of else, so there is no way to get to the else.
    """
    _, parser = _parser(_optional_else_grammar, "lr0")
    result = parser.parse(_tokens("id else id"))

    assert not result.accepted
    assert result.error is None
    assert len(result.diagnostics) == 1
    assert result.diagnostics[0].token.kind == TokenKind.ELSE


def test_eof_is_appended():
    tokens = prepare_tokens(_tokens("id + id"))
    assert tokens[-1] == Token(TokenKind.EOF, 1, 4)
    assert prepare_tokens([]) == [Token(TokenKind.EOF, 1, 1)]


def test_tokens_after_eof_are_ignored():
    _, parser = _parser(_expression_grammar)
    result = parser.parse(_tokens("id # + +"))
    assert result.ok
    assert _shape(result.tree) == ("E", ("T", "id"))


def test_syntax_error_without_recovery():
    _, parser = _parser(_expression_grammar)
    result = parser.parse(_tokens("id id + id"))

    assert not result.accepted
    assert result.error is None
    assert result.error_strings() == [
        "1:2: Syntax error at 'id' in state 3. Expected one of: #, +"
    ]


def test_unexpected_end_of_input():
    _, parser = _parser(_expression_grammar)
    result = parser.parse(_tokens("id +"))

    assert not result.accepted
    [diagnostic] = result.diagnostics
    assert diagnostic.token.kind == TokenKind.EOF
    assert diagnostic.message == "Unexpected end of input in state 4"
    assert diagnostic.expected == ("id",)
    assert diagnostic.hint == "(Did you forget 'id'?)"


def test_missing_goto():
    grammar, parser = _parser(_expression_grammar)
    T = grammar.lookup("T")
    parser.table.gotos[0][parser.table.nonterminal_column(T)] = None

    result = parser.parse(_tokens("id"))
    assert not result.accepted
    assert isinstance(result.error, MissingGotoError)
    assert result.error.state == 0
    assert result.error_strings() == ["1:2: No goto from state 0 on T"]

    with pytest.raises(MissingGotoError):
        parser.parse_or_raise(_tokens("id"))


def test_stack_underflow():
    grammar, parser = _parser(_expression_grammar)
    ID = grammar.lookup("id")
    # E -> E + T wants three entries, and there's only the bottom of the stack.
    parser.table.actions[0][parser.table.terminal_column(ID)] = Reduce(0)

    result = parser.parse(_tokens("id"))
    assert isinstance(result.error, StackUnderflowError)
    assert result.error.wanted == 3
    assert result.error.available == 0


def test_context_pop():
    ctx = ParseContext(tokens=prepare_tokens([]))
    assert ctx.pop(0) == []
    with pytest.raises(StackUnderflowError):
        ctx.pop(1)

    ctx.push(4, None)
    ctx.push(5, EpsilonNode())
    assert ctx.pop(2) == [None, EpsilonNode()]
    assert ctx.states == [0]


def test_unknown_token():
    _, parser = _parser(_expression_grammar)
    result = parser.parse(_tokens("id ;"))
    assert isinstance(result.error, UnknownTokenError)
    assert not result.accepted

    result = parser.parse([Token(TokenKind.ILOCT, 1, 1, "09")])
    assert str(result.error) == "Malformed int8 literal '09'"


def test_parse_or_raise():
    grammar, parser = _parser(_expression_grammar)
    result = parser.parse_or_raise(_tokens("id + id"))
    assert _derivation(grammar, result)[-1] == "E -> E + T"

    with pytest.raises(SyntaxErrorReport) as excinfo:
        parser.parse_or_raise(_tokens("id id"))
    assert len(excinfo.value.diagnostics) == 1
    assert "Syntax error at 'id'" in str(excinfo.value)


@pytest.mark.parametrize("strategy", list(STRATEGIES))
def test_explicit_end(strategy):
    grammar, parser = _parser(_expression_grammar, strategy, explicit_end=True)
    result = parser.parse(_tokens("id + id"))

    assert result.ok
    assert _shape(result.tree) == ("E", ("E", ("T", "id")), "+", ("T", "id"))
    assert _derivation(grammar, result) == ["T -> id", "E -> T", "T -> id", "E -> E + T"]


def test_parser_needs_an_augmented_grammar():
    grammar = _expression_grammar()
    table = build_table(_expression_grammar())
    with pytest.raises(GrammarError):
        Parser(grammar, table)


def test_parser_can_be_reused():
    _, parser = _parser(_expression_grammar)
    first = parser.parse(_tokens("id + id + id"))
    parser.parse(_tokens("id id"))
    second = parser.parse(_tokens("id + id + id"))

    assert second.ok
    assert _shape(first.tree) == _shape(second.tree)
    assert first.derivation.productions == second.derivation.productions


def test_tree_matches_derivation():
    _, parser = _parser(_expression_grammar)
    result = parser.parse(_tokens("id + id + id + id"))
    assert result.tree.reduction_count() == len(result.derivation)


def test_tree_format():
    grammar = _expression_grammar()
    parser = Parser(grammar, build_table(grammar))
    tokens = [Token(TokenKind.IDN, 2, 7, "x")]

    result = parser.parse(tokens)
    assert result.tree.format_lines() == [
        "E",
        "  T",
        "    id 'x' [2:7]",
    ]


def test_production_tracker():
    grammar = _expression_grammar()
    tracker = ProductionTracker()
    tracker.add(2)
    tracker.add(1)
    checkpoint = tracker.checkpoint()
    tracker.add(2)
    tracker.add(0)
    assert len(tracker) == 4

    tracker.rollback_to(checkpoint)
    assert tracker.productions == (2, 1)
    assert tracker[1] == 1
    assert tracker.format_lines(grammar) == [
        "Derivation:",
        "  1: T -> id",
        "  2: E -> T",
    ]

    with pytest.raises(ValueError):
        tracker.rollback_to(3)
    with pytest.raises(ValueError):
        tracker.rollback_to(-1)
