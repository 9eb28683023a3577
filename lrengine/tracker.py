import typing

from .grammar import Grammar


class ProductionTracker:
    """The productions applied during a parse, in the order the parser
    applied them.

    This is append-only, except that you can take a checkpoint (which is just
    the current length) and later roll back to it, dropping everything
    recorded since.
    """

    def __init__(self):
        self._productions: list[int] = []

    def __len__(self) -> int:
        return len(self._productions)

    def __iter__(self) -> typing.Iterator[int]:
        return iter(self._productions)

    def __getitem__(self, index: int) -> int:
        return self._productions[index]

    def __repr__(self) -> str:
        return f"ProductionTracker({self._productions!r})"

    @property
    def productions(self) -> typing.Tuple[int, ...]:
        return tuple(self._productions)

    def add(self, production: int):
        self._productions.append(production)

    def checkpoint(self) -> int:
        return len(self._productions)

    def rollback_to(self, length: int):
        if length < 0 or length > len(self._productions):
            raise ValueError(
                f"Cannot roll back to {length}, only {len(self._productions)} productions recorded"
            )
        del self._productions[length:]

    def format_lines(self, grammar: Grammar) -> list[str]:
        width = len(str(len(self._productions)))
        lines = ["Derivation:"]
        for index, production in enumerate(self._productions, start=1):
            lines.append(f"  {index:{width}}: {grammar.format_production(production)}")
        return lines

    def format(self, grammar: Grammar) -> str:
        return "\n".join(self.format_lines(grammar))
