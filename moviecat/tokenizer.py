"""Split a command line into arguments, honouring double-quoted spans."""

from __future__ import annotations

import enum


class _State(enum.Enum):
    UNQUOTED = "unquoted"
    QUOTED = "quoted"


QUOTE = '"'


def tokenize(line: str) -> list[str]:
    """Return the arguments of ``line``.

    Whitespace separates arguments outside quotes. A quoted span is part of
    the current argument with its quotes stripped, so ``-t "The Matrix"``
    gives ``["-t", "The Matrix"]`` and ``""`` gives an empty argument. An
    unterminated quote runs to the end of the line. Quotes cannot be escaped.
    """
    args: list[str] = []
    current: list[str] = []
    started = False
    state = _State.UNQUOTED

    for char in line:
        if state is _State.QUOTED:
            if char == QUOTE:
                state = _State.UNQUOTED
            else:
                current.append(char)
        elif char == QUOTE:
            state = _State.QUOTED
            started = True
        elif char.isspace():
            if started:
                args.append("".join(current))
                current = []
                started = False
        else:
            current.append(char)
            started = True

    if started:
        args.append("".join(current))
    return args
