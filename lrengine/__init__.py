"""An LR parsing engine for a small teaching language.

Build a `Grammar`, pick a generator (`GenerateLR0`, `GenerateSLR1` or
`GenerateLR1`) to turn it into an `ActionTable`, and hand both to a `Parser`:

    grammar = language.build_grammar()
    table = GenerateLR1(grammar).gen_table()
    parser = Parser(grammar, table, language.recovery_policy(grammar))

    result = parser.parse(tokenize("x = 1 + 2;"))
    print(result.tree.format())
    print(result.derivation.format(grammar))
"""

from .automaton import AutomatonBuilder, LRAutomaton, build_automaton
from .errors import (
    GrammarError,
    LexError,
    LREngineError,
    MissingGotoError,
    ParseError,
    StackUnderflowError,
    SyntaxErrorReport,
    UnknownTokenError,
)
from .first_follow import compute_first_follow, first_of_sequence
from .grammar import Grammar, Production, Symbol, SymbolKind
from .items import LRItem, LRState, closure_equal, full_equal, is_reduction, symbol_after_dot
from .lexer import tokenize
from .runtime import (
    Diagnostic,
    EpsilonNode,
    NonterminalNode,
    ParseResult,
    ParseTreeNode,
    Parser,
    RecoveryPolicy,
    SyncLevel,
    TerminalNode,
)
from .table import (
    Accept,
    ActionTable,
    Conflict,
    Error,
    GenerateLR0,
    GenerateLR1,
    GenerateSLR1,
    Reduce,
    Shift,
    STRATEGIES,
    build_table,
)
from .tokens import Token, TokenKind
from .tracker import ProductionTracker

from . import language
