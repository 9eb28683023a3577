import argparse
import logging
import sys

from . import language
from .errors import LexError
from .lexer import tokenize
from .runtime import Parser
from .table import STRATEGIES


def main(args: list[str]) -> int:
    parser = argparse.ArgumentParser(
        prog="lrengine",
        description="Parse a program in the teaching language with an LR(0), SLR(1) or LR(1) table",
    )
    parser.add_argument(
        "source_path",
        nargs="?",
        default="-",
        help="Path to the program to parse. The default, '-', reads standard input.",
    )
    parser.add_argument(
        "-s",
        "--strategy",
        choices=list(STRATEGIES),
        default="lr1",
        help="How to build the parse table. (Default: %(default)s)",
    )
    parser.add_argument(
        "--explicit-end",
        action="store_true",
        help="Augment the grammar with S' -> P # instead of S' -> P, so the end marker is shifted "
        "before accepting.",
    )
    parser.add_argument("--tokens", action="store_true", help="Print the tokens.")
    parser.add_argument("--grammar", action="store_true", help="Print the numbered productions.")
    parser.add_argument("--sets", action="store_true", help="Print FIRST and FOLLOW.")
    parser.add_argument("--automaton", action="store_true", help="Print the item sets.")
    parser.add_argument("--table", action="store_true", help="Print the action and goto table.")
    parser.add_argument("--tree", action="store_true", help="Print the parse tree.")
    parser.add_argument(
        "--derivation", action="store_true", help="Print the productions the parser applied."
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Log more: once for progress, twice for every parser action.",
    )

    parsed = parser.parse_args(args[1:])

    level = logging.WARNING
    if parsed.verbose == 1:
        level = logging.INFO
    elif parsed.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(name)s: %(message)s", stream=sys.stderr)

    # Without any sections picked, show the tree and the derivation.
    sections = [
        parsed.tokens,
        parsed.grammar,
        parsed.sets,
        parsed.automaton,
        parsed.table,
        parsed.tree,
        parsed.derivation,
    ]
    if not any(sections):
        parsed.tree = parsed.derivation = True

    try:
        if parsed.source_path == "-":
            source = sys.stdin.read()
        else:
            with open(parsed.source_path, encoding="utf-8") as file:
                source = file.read()
    except OSError as error:
        print(f"lrengine: cannot read {parsed.source_path}: {error.strerror}", file=sys.stderr)
        return 2

    try:
        tokens = tokenize(source)
    except LexError as error:
        print(f"{parsed.source_path}:{error}", file=sys.stderr)
        return 2

    if parsed.tokens:
        for token in tokens:
            print(token.format())

    illegal = [token for token in tokens if token.kind.is_illegal]
    if illegal:
        for token in illegal:
            print(
                f"{parsed.source_path}:{token.line}:{token.column}: Malformed integer literal {token}",
                file=sys.stderr,
            )
        return 2

    grammar = language.build_grammar()
    generator = STRATEGIES[parsed.strategy](grammar, explicit_end=parsed.explicit_end)
    table = generator.gen_table()

    if parsed.grammar:
        print(grammar.format_productions())
    if parsed.sets:
        print(grammar.format_sets())
    if parsed.automaton:
        print(generator.gen_automaton().format(grammar))
    if parsed.table:
        print(table.format())

    result = Parser(grammar, table, language.recovery_policy(grammar)).parse(tokens)
    if parsed.tree and result.tree is not None:
        print(result.tree.format())
    if parsed.derivation:
        print(result.derivation.format(grammar))

    for error in result.error_strings():
        print(f"{parsed.source_path}:{error}", file=sys.stderr)

    if result.ok:
        return 0
    return 1


def run():
    sys.exit(main(sys.argv))


if __name__ == "__main__":
    run()
