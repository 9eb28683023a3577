import typing

if typing.TYPE_CHECKING:
    from .runtime import Diagnostic
    from .tokens import Token


class LREngineError(Exception):
    """Base class for every error raised by lrengine."""


class GrammarError(LREngineError):
    """The grammar is malformed: an unknown symbol, a terminal on the left
    of a production, an epsilon in the middle of a right-hand side, and so on.

    These are always bugs in the code that builds the grammar, never problems
    with the input being parsed.
    """


class LexError(LREngineError):
    def __init__(self, message: str, line: int, column: int):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        return f"{self.line}:{self.column}: {self.message}"


class ParseError(LREngineError):
    """A defect discovered while running the parse driver. Unlike a syntax
    error these cannot be recovered from: they mean that the table does not
    belong to the grammar, or was built wrong.
    """


class MissingGotoError(ParseError):
    def __init__(self, state: int, nonterminal: str):
        super().__init__(f"No goto from state {state} on {nonterminal}")
        self.state = state
        self.nonterminal = nonterminal


class StackUnderflowError(ParseError):
    def __init__(self, wanted: int, available: int):
        super().__init__(f"Cannot pop {wanted} entries from a stack holding {available}")
        self.wanted = wanted
        self.available = available


class UnknownTokenError(ParseError):
    def __init__(self, token: "Token"):
        if token.kind.is_illegal:
            message = f"Malformed {token.kind.value.removeprefix('illegal-')} literal {token}"
        else:
            message = f"Token {token} has no terminal in the grammar"
        super().__init__(message)
        self.token = token


class SyntaxErrorReport(LREngineError):
    """Raised by `Parser.parse_or_raise` when the input had syntax errors."""

    diagnostics: "list[Diagnostic]"

    def __init__(self, diagnostics: "list[Diagnostic]"):
        self.diagnostics = diagnostics

    def __str__(self):
        return f"{len(self.diagnostics)} syntax error(s):\n" + "\n".join(
            diagnostic.format() for diagnostic in self.diagnostics
        )
