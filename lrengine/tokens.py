import dataclasses
import enum


class TokenKind(enum.Enum):
    """The kinds of token the lexer produces. The value of each kind is the
    name it goes by in grammars, tables and diagnostics.
    """

    IF = "if"
    THEN = "then"
    ELSE = "else"
    WHILE = "while"
    DO = "do"
    BEGIN = "begin"
    END = "end"

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    GT = ">"
    LT = "<"
    EQ = "="
    GE = ">="
    LE = "<="
    NEQ = "<>"

    SLP = "("
    SRP = ")"
    SEMI = ";"

    IDN = "id"
    DEC = "int10"
    OCT = "int8"
    HEX = "int16"

    # Malformed literals. They never appear in a grammar; the lexer emits them
    # so that the caller can report all of them at once.
    ILOCT = "illegal-int8"
    ILHEX = "illegal-int16"

    EOF = "#"

    @property
    def is_illegal(self) -> bool:
        return self in (TokenKind.ILOCT, TokenKind.ILHEX)


KEYWORDS = {
    kind.value: kind
    for kind in (
        TokenKind.IF,
        TokenKind.THEN,
        TokenKind.ELSE,
        TokenKind.WHILE,
        TokenKind.DO,
        TokenKind.BEGIN,
        TokenKind.END,
    )
}

# Identifiers (and the text of malformed literals) are truncated to this many
# characters.
MAX_TOKEN_LENGTH = 64


@dataclasses.dataclass(frozen=True)
class Token:
    kind: TokenKind
    line: int
    column: int
    value: int | str | None = None

    def __str__(self) -> str:
        if self.kind == TokenKind.EOF:
            return "end of input"
        if self.value is not None:
            return f"'{self.value}'"
        return f"'{self.kind.value}'"

    def format(self) -> str:
        value = "" if self.value is None else f" {self.value!r}"
        return f"{self.line:4} {self.column:3} {self.kind.value}{value}"
