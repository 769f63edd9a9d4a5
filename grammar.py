# DRAMAS (drama-s)
# An assembler and emulator for the DRAMA teaching machine.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
"""
Turns a lexeme sequence into a compilation unit.

The parser is a backtracking recursive descent parser, every construct
is a class with a 'parse' classmethod that consumes lexemes from the
parser or raises a ParseError. Parser.parse() restores the read
position when a construct fails so the next alternative can be tried.

Source that no construct accepts is kept as an UnrecognisedSource
element holding the error of the attempt that got the furthest.
"""

import logging
from dataclasses import dataclass, field
from typing import *

from drama_instruction import (
    AddressingMode,
    ArgumentFormatError,
    Command,
    Index,
    Modification,
    ValueOperand,
    encode,
)
from drama_words import MachineWord
from lexer import Lexeme, LexemeKind
from standard_instructions import instructions

Span = Tuple[int, int]


class ParseError(Exception):
    """
    A construct that does not match the source.

    depth is the number of lexemes consumed before the error was found,
    the deepest error is the most helpful one to report.
    """

    def __init__(self, message, depth=0, span: Optional[Span] = None):
        self.message = message
        self.depth = depth
        self.span = span
        super().__init__(message)

    def __lt__(self, other):
        return self.depth < other.depth

    def __gt__(self, other):
        return self.depth > other.depth


class UnexpectedLexemeError(ParseError):
    pass


class UnknownInstructionError(ParseError):
    pass


class DisallowedAddressOperatorError(ParseError):
    pass


class IndexRegisterOperatorError(ParseError):
    pass


class AssemblyError(Exception):
    """An error that stops a program from being assembled."""

    def __init__(self, message, span: Optional[Span] = None, statement_index: Optional[int] = None):
        self.message = message
        self.span = span
        self.statement_index = statement_index
        super().__init__(message)

    def __str__(self):
        if self.statement_index is None:
            return self.message

        return f"{self.message} (statement {self.statement_index})"


class UndefinedSymbolError(AssemblyError):
    def __init__(self, symbol, span=None, statement_index=None):
        self.symbol = symbol
        super().__init__(f"Undefined symbol '{symbol}'", span, statement_index)


class DuplicateSymbolError(AssemblyError):
    def __init__(self, symbol, span=None, statement_index=None):
        self.symbol = symbol
        super().__init__(f"Symbol '{symbol}' is defined more than once", span, statement_index)


class CommandFormatError(AssemblyError):
    def __init__(self, instruction, message, span=None, statement_index=None):
        self.instruction = instruction
        super().__init__(message, span, statement_index)


class AddressSpaceOverflowError(AssemblyError):
    def __init__(self, word_count, span=None):
        self.word_count = word_count
        super().__init__(f"Program of {word_count} words does not fit in the address space", span)


class UnrecognisedSourceError(AssemblyError):
    def __init__(self, source: "UnrecognisedSource"):
        self.source = source
        super().__init__(f"Unrecognised source: {source.error.message}", source.span)


class Parser:
    def __init__(self, lexemes: Iterable[Lexeme]):
        self.lexemes: List[Lexeme] = list(lexemes)
        self.position = 0

    @property
    def at_end(self) -> bool:
        return self.position >= len(self.lexemes)

    def peek(self, *kinds: LexemeKind) -> Optional[Lexeme]:
        """The next lexeme, if there is one and it is of one of the given kinds (or any kind)."""
        if self.at_end:
            return None

        lexeme = self.lexemes[self.position]

        if kinds and lexeme.kind not in kinds:
            return None

        return lexeme

    def consume_if(self, *kinds: LexemeKind) -> Optional[Lexeme]:
        lexeme = self.peek(*kinds)

        if lexeme is not None:
            self.position += 1

        return lexeme

    def consume(self, *kinds: LexemeKind) -> Lexeme:
        lexeme = self.consume_if(*kinds)

        if lexeme is None:
            expected = " or ".join(kind.value for kind in kinds)
            raise self.error(UnexpectedLexemeError, f"Expected {expected}, found {self.describe_next()}")

        return lexeme

    def consume_until(self, *kinds: LexemeKind) -> List[Lexeme]:
        consumed = []

        while not self.at_end and self.peek(*kinds) is None:
            consumed.append(self.consume_if())

        return consumed

    def describe_next(self) -> str:
        lexeme = self.peek()

        if lexeme is None:
            return "end of source"

        return str(lexeme)

    def error(self, kind: Type[ParseError], message: str) -> ParseError:
        lexeme = self.peek()
        span = lexeme.span if lexeme is not None else None

        return kind(message, self.position, span)

    def span_from(self, start: int) -> Span:
        return self.lexemes[start].start, self.lexemes[self.position - 1].end

    def parse(self, construct):
        checkpoint = self.position

        try:
            return construct.parse(self)
        except ParseError:
            self.position = checkpoint
            raise


@dataclass(frozen=True)
class Term:
    value: int = 0
    symbol: Optional[str] = None
    positive: bool = True

    def negated(self) -> "Term":
        if self.symbol is None:
            return Term(-self.value)

        return Term(symbol=self.symbol, positive=not self.positive)

    @classmethod
    def parse(cls, parser: Parser) -> "Term":
        lexeme = parser.consume(LexemeKind.LITERAL, LexemeKind.IDENTIFIER)

        if lexeme.kind == LexemeKind.LITERAL:
            return cls(lexeme.value)

        return cls(symbol=lexeme.text)


@dataclass(frozen=True)
class AddressExpression:
    """Terms summed left to right, optionally indexed, as in 'table + 2(R1+)'."""

    terms: Tuple[Term, ...]
    index: Optional[Index] = None
    span: Optional[Span] = None

    def evaluate(self, addresses_by_symbol: Dict[str, int]) -> int:
        total = 0

        for term in self.terms:
            if term.symbol is None:
                total += term.value
                continue

            if term.symbol not in addresses_by_symbol:
                raise UndefinedSymbolError(term.symbol, self.span)

            if term.positive:
                total += addresses_by_symbol[term.symbol]
            else:
                total -= addresses_by_symbol[term.symbol]

        return total

    def operand(self, addresses_by_symbol: Dict[str, int]) -> ValueOperand:
        return ValueOperand(self.evaluate(addresses_by_symbol), self.index)

    @classmethod
    def parse(cls, parser: Parser) -> "AddressExpression":
        start = parser.position
        terms = [parser.parse(Term)]

        while True:
            operator = parser.peek(LexemeKind.OPERATOR)

            if operator is not None:
                if operator.text not in "+-":
                    raise parser.error(DisallowedAddressOperatorError, f"'{operator.text}' is not allowed in an address")

                parser.consume_if()
                term = parser.parse(Term)
                terms.append(term if operator.text == "+" else term.negated())
                continue

            # 'x-1' lexes as x followed by the literal -1
            literal = parser.peek(LexemeKind.LITERAL)

            if literal is not None and literal.text.startswith("-"):
                parser.consume_if()
                terms.append(Term(literal.value))
                continue

            break

        index = None

        if parser.consume_if(LexemeKind.SCOPE) is not None:
            if parser.lexemes[parser.position - 1].text != "(":
                parser.position -= 1
                raise parser.error(UnexpectedLexemeError, "Expected '(' before the index register")

            pre = parser.consume_if(LexemeKind.OPERATOR)
            register = parser.consume(LexemeKind.REGISTER)
            post = parser.consume_if(LexemeKind.OPERATOR)

            for operator in (pre, post):
                if operator is not None and operator.text not in "+-":
                    raise parser.error(DisallowedAddressOperatorError, f"'{operator.text}' is not allowed around an index register")

            if pre is not None and post is not None:
                raise parser.error(IndexRegisterOperatorError, "An index register cannot be modified both before and after use")

            closing = parser.consume(LexemeKind.SCOPE)

            if closing.text != ")":
                parser.position -= 1
                raise parser.error(UnexpectedLexemeError, "Expected ')' after the index register")

            modification = None

            if pre is not None:
                modification = Modification.PRE_INCREMENT if pre.text == "+" else Modification.PRE_DECREMENT

            elif post is not None:
                modification = Modification.POST_INCREMENT if post.text == "+" else Modification.POST_DECREMENT

            index = Index(register.value, modification)

        return cls(tuple(terms), index, parser.span_from(start))


def parse_argument(parser: Parser):
    """A register number, a Condition or an AddressExpression."""
    register = parser.consume_if(LexemeKind.REGISTER)

    if register is not None:
        return register.value

    condition = parser.consume_if(LexemeKind.CONDITION)

    if condition is not None:
        return condition.value

    return parser.parse(AddressExpression)


@dataclass(frozen=True)
class CommandStatement:
    instruction: Any
    mode: Optional[AddressingMode]
    arguments: Tuple[Any, ...]
    span: Span
    instruction_span: Span

    word_count = 1

    def command(self, addresses_by_symbol: Dict[str, int]) -> Command:
        resolved = []

        for argument in self.arguments:
            if isinstance(argument, AddressExpression):
                argument = argument.operand(addresses_by_symbol)

            resolved.append(argument)

        try:
            return self.instruction.resolve(self.mode, resolved)
        except ArgumentFormatError as e:
            raise CommandFormatError(self.instruction, str(e), self.span)

    def words(self, addresses_by_symbol: Dict[str, int]) -> List[MachineWord]:
        return [encode(self.command(addresses_by_symbol)).base]

    @classmethod
    def parse(cls, parser: Parser) -> "CommandStatement":
        start = parser.position
        name = parser.consume(LexemeKind.IDENTIFIER)
        instruction = instructions.get(name.text.upper())

        if instruction is None:
            parser.position -= 1
            raise parser.error(UnknownInstructionError, f"'{name.text}' is not an instruction")

        mode = None
        mode_lexeme = parser.consume_if(LexemeKind.ADDRESSING_MODE)

        if mode_lexeme is not None:
            mode = mode_lexeme.value

        arguments = []

        if parser.peek(LexemeKind.REGISTER, LexemeKind.CONDITION, LexemeKind.LITERAL, LexemeKind.IDENTIFIER) is not None:
            arguments.append(parse_argument(parser))

            while parser.consume_if(LexemeKind.ARGUMENT_SEPARATOR) is not None:
                arguments.append(parse_argument(parser))

        return cls(instruction, mode, tuple(arguments), parser.span_from(start), name.span)


@dataclass(frozen=True)
class ValueStatement:
    value: int
    span: Span

    word_count = 1

    def words(self, addresses_by_symbol: Dict[str, int]) -> List[MachineWord]:
        return [MachineWord.wrap(self.value)]

    @classmethod
    def parse(cls, parser: Parser) -> "ValueStatement":
        literal = parser.consume(LexemeKind.LITERAL)

        return cls(literal.value, literal.span)


@dataclass(frozen=True)
class AllocationStatement:
    size: int
    span: Span

    @property
    def word_count(self) -> int:
        return self.size

    def words(self, addresses_by_symbol: Dict[str, int]) -> List[MachineWord]:
        return [MachineWord.zero() for _ in range(self.size)]

    @classmethod
    def parse(cls, parser: Parser) -> "AllocationStatement":
        start = parser.position
        keyword = parser.consume(LexemeKind.IDENTIFIER)

        if keyword.text.upper() != "RESGR":
            parser.position -= 1
            raise parser.error(UnexpectedLexemeError, f"Expected RESGR, found {keyword}")

        size = parser.consume(LexemeKind.LITERAL)

        if size.value < 0:
            parser.position -= 1
            raise parser.error(UnexpectedLexemeError, f"Cannot reserve {size.value} words")

        return cls(size.value, parser.span_from(start))


@dataclass(frozen=True)
class Label:
    name: str
    span: Span

    @classmethod
    def parse(cls, parser: Parser) -> "Label":
        start = parser.position
        name = parser.consume(LexemeKind.IDENTIFIER)

        if parser.peek(LexemeKind.LABEL_MARKER) is None:
            parser.position = start
            raise parser.error(UnexpectedLexemeError, f"Expected label marker after '{name.text}'")

        parser.consume(LexemeKind.LABEL_MARKER)

        return cls(name.text, parser.span_from(start))


@dataclass(frozen=True)
class Comment:
    text: str
    span: Span


@dataclass(frozen=True)
class ProgramTerminator:
    span: Span


@dataclass(frozen=True)
class UnrecognisedSource:
    lexemes: Tuple[Lexeme, ...]
    error: ParseError

    @property
    def span(self) -> Span:
        return self.lexemes[0].start, self.lexemes[-1].end


STATEMENT_TYPES = (CommandStatement, ValueStatement, AllocationStatement)


@dataclass
class CompilationUnit:
    elements: List[Any] = field(default_factory=list)

    @property
    def statements(self) -> list:
        return [element for element in self.elements if isinstance(element, STATEMENT_TYPES)]

    @property
    def unrecognised(self) -> List[UnrecognisedSource]:
        return [element for element in self.elements if isinstance(element, UnrecognisedSource)]

    @classmethod
    def parse(cls, parser: Parser, _log_name="Parser") -> "CompilationUnit":
        _log = logging.getLogger(_log_name)

        elements = []

        while not parser.at_end:
            if parser.consume_if(LexemeKind.STATEMENT_TERMINATOR) is not None:
                continue

            comment = parser.consume_if(LexemeKind.COMMENT)

            if comment is not None:
                elements.append(Comment(comment.text, comment.span))
                continue

            terminator = parser.consume_if(LexemeKind.PROGRAM_TERMINATOR)

            if terminator is not None:
                elements.append(ProgramTerminator(terminator.span))
                continue

            errors = []

            for construct in STATEMENT_TYPES + (Label,):
                try:
                    element = parser.parse(construct)
                except ParseError as e:
                    errors.append(e)
                    continue

                _log.debug(f"Parsed {type(element).__name__} at {element.span}")
                elements.append(element)
                break

            else:
                lexemes = parser.consume_until(
                    LexemeKind.COMMENT, LexemeKind.STATEMENT_TERMINATOR, LexemeKind.PROGRAM_TERMINATOR
                )
                source = UnrecognisedSource(tuple(lexemes), max(errors))

                _log.warning(f"Unrecognised source at {source.span}: {source.error.message}")
                elements.append(source)

        _log.debug(f"Parsed {len(elements)} elements")

        return cls(elements)


def parse(lexemes: Iterable[Lexeme]) -> CompilationUnit:
    return CompilationUnit.parse(Parser(lexemes))
