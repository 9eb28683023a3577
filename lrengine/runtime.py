import enum
import logging
import typing
from dataclasses import dataclass, field

from .errors import (
    GrammarError,
    MissingGotoError,
    ParseError,
    StackUnderflowError,
    SyntaxErrorReport,
    UnknownTokenError,
)
from .grammar import Grammar
from .table import Accept, ActionTable, Error, Reduce, Shift, format_action
from .tokens import Token, TokenKind
from .tracker import ProductionTracker


@dataclass
class TerminalNode:
    symbol: int
    name: str
    token: Token


@dataclass
class EpsilonNode:
    name: str = "ε"


@dataclass
class NonterminalNode:
    """An interior node of the parse tree.

    `production` is the production the parser reduced to make this node. It's
    None for nodes made by error recovery, which hold whatever the parser
    threw away to get going again.
    """

    symbol: int
    name: str
    production: int | None
    children: typing.Tuple["ParseTreeNode", ...]

    @property
    def is_error(self) -> bool:
        return self.production is None

    def walk(self) -> typing.Iterator["ParseTreeNode"]:
        """Every node in the tree, parents before children."""
        pending: list[ParseTreeNode] = [self]
        while pending:
            node = pending.pop()
            yield node
            if isinstance(node, NonterminalNode):
                pending.extend(reversed(node.children))

    def reduction_count(self) -> int:
        return sum(
            1 for node in self.walk() if isinstance(node, NonterminalNode) and not node.is_error
        )

    def format_lines(self) -> list[str]:
        lines = []

        def format_node(node: ParseTreeNode, indent: int):
            match node:
                case NonterminalNode(name=name, children=children):
                    marker = " <error>" if node.is_error else ""
                    lines.append((" " * indent) + f"{name}{marker}")
                    for child in children:
                        format_node(child, indent + 2)

                case TerminalNode(name=name, token=token):
                    value = "" if token.value is None else f" {token.value!r}"
                    lines.append((" " * indent) + f"{name}{value} [{token.line}:{token.column}]")

                case EpsilonNode(name=name):
                    lines.append((" " * indent) + name)

        format_node(self, 0)
        return lines

    def format(self) -> str:
        return "\n".join(self.format_lines())


ParseTreeNode = NonterminalNode | TerminalNode | EpsilonNode


@dataclass
class Diagnostic:
    message: str
    token: Token
    state: int
    expected: typing.Tuple[str, ...] = ()
    hint: str | None = None

    def format(self) -> str:
        text = f"{self.token.line}:{self.token.column}: {self.message}"
        if self.expected:
            text += ". Expected one of: " + ", ".join(self.expected)
        if self.hint is not None:
            text += f" {self.hint}"
        return text


@dataclass
class ParseResult:
    tree: NonterminalNode | None
    derivation: ProductionTracker
    diagnostics: list[Diagnostic]
    error: ParseError | None = None

    @property
    def accepted(self) -> bool:
        return self.tree is not None

    @property
    def ok(self) -> bool:
        """Accepted, and without having to recover from anything."""
        return self.accepted and not self.diagnostics

    def error_strings(self) -> list[str]:
        return [diagnostic.format() for diagnostic in self.diagnostics]


class SyncLevel(enum.IntEnum):
    """How big a construct a token can end (or a stack symbol belongs to)."""

    NONE = 0
    EXPRESSION = 1
    STATEMENT = 2
    BLOCK = 3


@dataclass
class RecoveryPolicy:
    """What the parser needs to know about a language to recover from syntax
    errors.

    sync_levels maps terminals to the level of construct they can end, e.g.
    ';' ends a statement. Terminals that aren't in it are never sync points.

    contexts maps symbols to the level of the construct they are part of;
    the innermost such symbol on the stack says what the parser was in the
    middle of when things went wrong.

    anchors maps each level to the nonterminal that stands for a whole
    construct of that level. Recovery pretends that one of these was just
    parsed, out of everything from some point on the stack to the sync point.

    pairs maps opening terminals to their closing terminals, for the "did you
    forget" hint.
    """

    sync_levels: dict[int, SyncLevel]
    contexts: dict[int, SyncLevel]
    anchors: dict[SyncLevel, int]
    pairs: dict[int, int] = field(default_factory=dict)
    default_level: SyncLevel = SyncLevel.STATEMENT

    def sync_level(self, terminal: int) -> SyncLevel:
        return self.sync_levels.get(terminal, SyncLevel.NONE)


@dataclass
class ParseContext:
    """The state of one parse: the state stack, the node stack beside it, and
    the position in the input.
    """

    tokens: list[Token]
    states: list[int] = field(default_factory=lambda: [0])
    nodes: list[ParseTreeNode | None] = field(default_factory=lambda: [None])
    cursor: int = 0
    derivation: ProductionTracker = field(default_factory=ProductionTracker)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    last_recovery: int | None = None

    @property
    def token(self) -> Token:
        return self.tokens[self.cursor]

    @property
    def state(self) -> int:
        return self.states[-1]

    def push(self, state: int, node: ParseTreeNode | None):
        self.states.append(state)
        self.nodes.append(node)

    def pop(self, count: int) -> list[ParseTreeNode | None]:
        """Pop `count` entries and return their nodes, bottom first. The
        entry for state 0 can't be popped.
        """
        if count == 0:
            return []
        if count >= len(self.states):
            raise StackUnderflowError(count, len(self.states) - 1)

        nodes = self.nodes[-count:]
        del self.states[-count:]
        del self.nodes[-count:]
        return nodes

    def truncate(self, depth: int) -> list[ParseTreeNode | None]:
        """Pop everything above the entry at `depth`."""
        return self.pop(len(self.states) - depth - 1)


def prepare_tokens(tokens: typing.Iterable[Token]) -> list[Token]:
    """Copy the tokens up to and including the first end-of-input token,
    adding one if there isn't one.
    """
    result: list[Token] = []
    for token in tokens:
        result.append(token)
        if token.kind == TokenKind.EOF:
            break
    else:
        if result:
            last = result[-1]
            result.append(Token(TokenKind.EOF, last.line, last.column + 1))
        else:
            result.append(Token(TokenKind.EOF, 1, 1))
    return result


action_log = logging.getLogger("lrengine.runtime")
recover_log = logging.getLogger("lrengine.recovery")


class Parser:
    """Run an action table over a sequence of tokens.

    The parser doesn't care which generator built the table; LR(0), SLR(1)
    and LR(1) tables all have the same shape. Each call to `parse` starts
    from scratch, so one parser can parse any number of inputs.
    """

    grammar: Grammar
    table: ActionTable
    recovery: RecoveryPolicy | None

    def __init__(self, grammar: Grammar, table: ActionTable, recovery: RecoveryPolicy | None = None):
        if grammar.augmented_production is None:
            raise GrammarError("Build the table before the parser")
        self.grammar = grammar
        self.table = table
        self.recovery = recovery

    def parse(self, tokens: typing.Iterable[Token]) -> ParseResult:
        """Parse the tokens into a tree, returning the tree (if the parse got
        that far), the productions applied, and the syntax errors found along
        the way.

        With a recovery policy the parser keeps going after a syntax error
        for as long as it can find a place to pick up again. Without one it
        stops at the first error. Either way every error gets a diagnostic.

        A defect in the table itself, like a missing goto, ends the parse on
        the spot; the result then has no tree, and its `error` says what
        went wrong.
        """
        ctx = ParseContext(tokens=prepare_tokens(tokens))
        grammar = self.grammar
        result: NonterminalNode | None = None

        al = action_log
        try:
            while True:
                token = ctx.token
                terminal = self._terminal(token)
                current_state = ctx.state

                action = self.table.action(current_state, terminal)
                if al.isEnabledFor(logging.DEBUG):
                    al.debug(
                        "{stack: <30} {input: <10} {action}".format(
                            stack=repr(ctx.states[-5:]),
                            input=grammar.name(terminal),
                            action=format_action(action) or "error",
                        )
                    )

                match action:
                    case Accept():
                        result = self._root(ctx)
                        break

                    case Shift(state=target):
                        if terminal == grammar.end:
                            # Only when the end marker is part of the augmented
                            # production. It stays the current token, and gets no
                            # node.
                            ctx.push(target, None)
                        else:
                            ctx.push(target, TerminalNode(terminal, grammar.name(terminal), token))
                            ctx.cursor += 1

                    case Reduce(production=production):
                        self._reduce(ctx, production)

                    case Error():
                        ctx.diagnostics.append(self._report(ctx, terminal))
                        if self.recovery is None or not self._recover(ctx):
                            break

                    case _:
                        typing.assert_never(action)

        except ParseError as error:
            al.error("Parse abandoned in state %d: %s", ctx.state, error)
            ctx.diagnostics.append(Diagnostic(message=str(error), token=ctx.token, state=ctx.state))
            return ParseResult(
                tree=None,
                derivation=ctx.derivation,
                diagnostics=ctx.diagnostics,
                error=error,
            )

        return ParseResult(tree=result, derivation=ctx.derivation, diagnostics=ctx.diagnostics)

    def parse_or_raise(self, tokens: typing.Iterable[Token]) -> ParseResult:
        """Like `parse`, but raise if the input wasn't perfect: the same
        `ParseError` for a broken table, or `SyntaxErrorReport` for syntax
        errors, even ones that were recovered from.
        """
        result = self.parse(tokens)
        if result.error is not None:
            raise result.error
        if result.diagnostics:
            raise SyntaxErrorReport(result.diagnostics)
        return result

    def _terminal(self, token: Token) -> int:
        terminal = self.grammar.terminal_for_token(token.kind)
        if terminal is None:
            raise UnknownTokenError(token)
        return terminal

    def _root(self, ctx: ParseContext) -> NonterminalNode:
        # The augmented production is never reduced, so the node for the real
        # start symbol is still on the stack.
        for node in reversed(ctx.nodes):
            if isinstance(node, NonterminalNode) and node.symbol == self.grammar.start_symbol:
                return node
        raise ParseError("Accepted without a tree for the start symbol")

    def _reduce(self, ctx: ParseContext, production_id: int):
        grammar = self.grammar
        production = grammar.production(production_id)

        children: typing.Tuple[ParseTreeNode, ...]
        popped = ctx.pop(production.pop_count)
        if production.epsilon:
            children = (EpsilonNode(),)
        else:
            children = tuple(node for node in popped if node is not None)

        node = NonterminalNode(
            symbol=production.lhs,
            name=grammar.name(production.lhs),
            production=production.id,
            children=children,
        )

        goto = self.table.goto(ctx.state, production.lhs)
        if goto is None:
            raise MissingGotoError(ctx.state, grammar.name(production.lhs))

        ctx.push(goto, node)
        ctx.derivation.add(production.id)

    ###########################################################################
    # Errors
    ###########################################################################
    def _report(self, ctx: ParseContext, terminal: int) -> Diagnostic:
        grammar = self.grammar
        token = ctx.token
        expected = self.table.expected_terminals(ctx.state)

        if terminal == grammar.end:
            message = f"Unexpected end of input in state {ctx.state}"
        else:
            message = f"Syntax error at {token} in state {ctx.state}"

        diagnostic = Diagnostic(
            message=message,
            token=token,
            state=ctx.state,
            expected=tuple(grammar.name(t) for t in expected),
            hint=self._missing_token_hint(ctx, expected),
        )
        recover_log.info("%s", diagnostic.format())
        return diagnostic

    def _missing_token_hint(self, ctx: ParseContext, expected: list[int]) -> str | None:
        """Guess at a token the user left out: the only token that would do,
        or else the token that closes the innermost unclosed pair.
        """
        grammar = self.grammar
        if len(expected) == 1 and expected[0] != grammar.end:
            return f"(Did you forget '{grammar.name(expected[0])}'?)"

        if self.recovery is None or not self.recovery.pairs:
            return None

        pairs = self.recovery.pairs
        closers = {close: open for open, close in pairs.items()}
        unmatched: dict[int, int] = {}
        for node in reversed(ctx.nodes):
            if not isinstance(node, TerminalNode):
                continue
            if node.symbol in closers:
                unmatched[node.symbol] = unmatched.get(node.symbol, 0) + 1
                continue

            close = pairs.get(node.symbol)
            if close is None:
                continue
            if unmatched.get(close, 0) > 0:
                unmatched[close] -= 1
                continue

            if close in expected:
                return f"(Did you forget '{grammar.name(close)}'?)"
            return None

        return None

    def _classify(self, ctx: ParseContext) -> SyncLevel:
        """Work out what kind of construct the parser was in from the
        innermost stack symbol that says.
        """
        assert self.recovery is not None
        for node in reversed(ctx.nodes):
            match node:
                case NonterminalNode(symbol=symbol) | TerminalNode(symbol=symbol):
                    level = self.recovery.contexts.get(symbol)
                    if level is not None:
                        return level
                case _:
                    pass
        return self.recovery.default_level

    def _recover(self, ctx: ParseContext) -> bool:
        """Panic mode: skip ahead to a token that can end the construct we
        were in, throw away the top of the stack, and carry on as if a whole
        construct had been parsed.

        Concretely, for each candidate sync token (nearest first) we look for
        an anchor nonterminal A and a state s on the stack such that
        goto(s, A) exists and can go on with that token. Everything above s
        on the stack, and every token skipped, becomes the children of an
        error node for A.

        If we run into the end of the input first then there is nothing to
        be done, and the parse fails.
        """
        assert self.recovery is not None
        grammar = self.grammar
        policy = self.recovery
        rl = recover_log

        required = self._classify(ctx)

        # If we already recovered to this very token and it still failed,
        # that sync point is no good; look further along.
        start = ctx.cursor
        if ctx.last_recovery == ctx.cursor:
            start += 1

        anchors = [policy.anchors[level] for level in sorted(policy.anchors)]
        for index in range(start, len(ctx.tokens)):
            token = ctx.tokens[index]
            terminal = self._terminal(token)
            if terminal == grammar.end:
                break

            if policy.sync_level(terminal) < required:
                continue

            for anchor in anchors:
                for depth in range(len(ctx.states) - 1, -1, -1):
                    target = self.table.goto(ctx.states[depth], anchor)
                    if target is None:
                        continue
                    if isinstance(self.table.action(target, terminal), Error):
                        continue

                    discarded = ctx.truncate(depth)
                    skipped = []
                    for skipped_token in ctx.tokens[ctx.cursor : index]:
                        symbol = self._terminal(skipped_token)
                        skipped.append(TerminalNode(symbol, grammar.name(symbol), skipped_token))
                    node = NonterminalNode(
                        symbol=anchor,
                        name=grammar.name(anchor),
                        production=None,
                        children=tuple(n for n in discarded if n is not None) + tuple(skipped),
                    )
                    ctx.push(target, node)

                    if rl.isEnabledFor(logging.INFO):
                        rl.info(
                            "Recovered at %s (%s level): %s in state %d, skipped %d token(s)",
                            token,
                            required.name.lower(),
                            grammar.name(anchor),
                            target,
                            len(skipped),
                        )

                    ctx.cursor = index
                    ctx.last_recovery = index
                    return True

        rl.info("No place to recover after %s", ctx.token)
        return False
