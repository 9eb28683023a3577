import logging
import re
import typing

from .errors import LexError
from .tokens import KEYWORDS, MAX_TOKEN_LENGTH, Token, TokenKind


lex_log = logging.getLogger("lrengine.lexer")


# Order matters: the first pattern that matches wins, so the malformed
# literals have to come before the well-formed ones they start like, and the
# two-character operators before their one-character prefixes.
TOKEN_PATTERNS: list[typing.Tuple[str, str]] = [
    ("NEWLINE", r"\n"),
    ("SPACE", r"[ \t\r\f\v]+"),
    ("IDN", r"[a-zA-Z][a-zA-Z0-9]*"),
    ("ILHEX", r"0[xX][0-9a-fA-F]*[g-zG-Z]+[0-9a-zA-Z]*"),
    ("HEX", r"0[xX][0-9a-fA-F]+"),
    ("ILOCT", r"0[0-7]*[89][0-9]*"),
    ("OCT", r"0[0-7]+"),
    ("DEC", r"0|[1-9][0-9]*"),
    ("GE", r">="),
    ("LE", r"<="),
    ("NEQ", r"<>"),
    ("GT", r">"),
    ("LT", r"<"),
    ("EQ", r"="),
    ("ADD", r"\+"),
    ("SUB", r"-"),
    ("MUL", r"\*"),
    ("DIV", r"/"),
    ("SLP", r"\("),
    ("SRP", r"\)"),
    ("SEMI", r";"),
]

_master_re = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in TOKEN_PATTERNS))


def _value(kind: TokenKind, text: str) -> int | str | None:
    match kind:
        case TokenKind.DEC:
            return int(text, 10)
        case TokenKind.OCT:
            return int(text[1:], 8)
        case TokenKind.HEX:
            return int(text[2:], 16)
        case TokenKind.IDN | TokenKind.ILOCT | TokenKind.ILHEX:
            return text[:MAX_TOKEN_LENGTH]
        case _:
            return None


def tokenize(text: str) -> list[Token]:
    """Split the text into tokens, ending with an EOF token.

    Malformed integer literals (like `09` or `0x1g`) come out as ILOCT and
    ILHEX tokens rather than stopping the lexer. A character that can't start
    any token at all raises LexError.
    """
    tokens: list[Token] = []
    index = 0
    line = 1
    line_start = 0
    while index < len(text):
        m = _master_re.match(text, index)
        if m is None:
            raise LexError(
                f"Illegal character {text[index]!r}",
                line=line,
                column=index - line_start + 1,
            )

        group = m.lastgroup
        assert group is not None
        if group == "NEWLINE":
            line += 1
            line_start = m.end()
        elif group != "SPACE":
            value = m.group()
            if group == "IDN" and value in KEYWORDS:
                kind = KEYWORDS[value]
            else:
                kind = TokenKind[group]

            token = Token(kind, line, index - line_start + 1, _value(kind, value))
            if kind.is_illegal:
                lex_log.info("%d:%d: malformed literal %s", token.line, token.column, value)
            tokens.append(token)

        index = m.end()

    tokens.append(Token(TokenKind.EOF, line, index - line_start + 1))
    return tokens
