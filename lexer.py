# DRAMAS (drama-s)
# An assembler and emulator for the DRAMA teaching machine.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
"""
Splits DRAMA source text into lexemes.

The patterns below are tried in order at the current read position,
the first one that matches wins. The last pattern matches any
character so lexing never fails, anything the lexer cannot make
sense of becomes an UNRECOGNISED lexeme for the parser to report.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import *

from drama_instruction import AddressingMode, Condition


class LexemeKind(Enum):
    REGISTER = "register"
    CONDITION = "condition"
    LITERAL = "literal"
    PROGRAM_TERMINATOR = "program terminator"
    ADDRESSING_MODE = "addressing mode"
    ARGUMENT_SEPARATOR = "argument separator"
    STATEMENT_TERMINATOR = "statement terminator"
    LABEL_MARKER = "label marker"
    OPERATOR = "arithmetic operator"
    SCOPE = "index register scope"
    COMMENT = "comment"
    IDENTIFIER = "identifier"
    UNRECOGNISED = "unrecognised text"


@dataclass(frozen=True)
class Lexeme:
    kind: LexemeKind
    text: str
    start: int
    end: int
    # register number, Condition, int, AddressingMode or None
    value: Any = None

    @property
    def span(self) -> Tuple[int, int]:
        return self.start, self.end

    def __str__(self):
        return f"{self.kind.value} '{self.text}'"


HORIZONTAL_WHITESPACE = re.compile(r"[ \t\r\f\v]+")

PATTERNS = [
    (LexemeKind.REGISTER, re.compile(r"[Rr](\d)(?!\w)")),
    (LexemeKind.CONDITION, re.compile(r"\w+")),
    (LexemeKind.LITERAL, re.compile(r"-?\d+")),
    (LexemeKind.PROGRAM_TERMINATOR, re.compile(r"EINDPR.*", re.DOTALL | re.IGNORECASE)),
    (LexemeKind.ADDRESSING_MODE, re.compile(r"\.([wadi])(?!\w)", re.IGNORECASE)),
    (LexemeKind.ARGUMENT_SEPARATOR, re.compile(r",")),
    (LexemeKind.STATEMENT_TERMINATOR, re.compile(r"\n|;")),
    (LexemeKind.LABEL_MARKER, re.compile(r":")),
    (LexemeKind.OPERATOR, re.compile(r"[+\-*/]")),
    (LexemeKind.SCOPE, re.compile(r"[()]")),
    (LexemeKind.COMMENT, re.compile(r"\|[^\n]*")),
    (LexemeKind.IDENTIFIER, re.compile(r"\w+")),
    (LexemeKind.UNRECOGNISED, re.compile(r".", re.DOTALL)),
]


def _value_of(kind: LexemeKind, match: re.Match):
    if kind == LexemeKind.REGISTER:
        return int(match.group(1))

    if kind == LexemeKind.CONDITION:
        return Condition.named(match.group(0))

    if kind == LexemeKind.LITERAL:
        return int(match.group(0))

    if kind == LexemeKind.ADDRESSING_MODE:
        return AddressingMode.from_suffix(match.group(1))

    return None


def lex(text: str, _log_name="Lexer") -> Iterator[Lexeme]:
    _log = logging.getLogger(_log_name)

    position = 0

    while position < len(text):
        whitespace = HORIZONTAL_WHITESPACE.match(text, position)

        if whitespace:
            position = whitespace.end()
            continue

        for kind, pattern in PATTERNS:
            match = pattern.match(text, position)

            if not match:
                continue

            value = _value_of(kind, match)

            # a word is only a condition when it names one
            if kind == LexemeKind.CONDITION and value is None:
                continue

            lexeme = Lexeme(kind, match.group(0), match.start(), match.end(), value)
            _log.debug(f"Lexeme: {lexeme} at {lexeme.span}")

            if kind == LexemeKind.UNRECOGNISED:
                _log.debug(f"Unrecognised character {match.group(0)!r} at {position}")

            position = match.end()
            yield lexeme
            break

    _log.debug("End of text")


def tokenize(text: str) -> List[Lexeme]:
    return list(lex(text))
