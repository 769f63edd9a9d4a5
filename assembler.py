# DRAMAS (drama-s)
# An assembler and emulator for the DRAMA teaching machine.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
import bisect
import getopt
import logging
import pathlib
import sys
from typing import *

from drama_words import ADDRESS_SPACE, MachineWord
from grammar import (
    AssemblyError,
    AddressSpaceOverflowError,
    CommandStatement,
    CompilationUnit,
    DuplicateSymbolError,
    Label,
    ProgramTerminator,
    STATEMENT_TYPES,
    Span,
    UnrecognisedSourceError,
    parse,
)
from lexer import Lexeme, lex

__doc__ = """
Usage:

assembler.py -i <file>                DRAMA source file
             -o <filename>            word output, one zero padded word per line
             -P <filename>            generate .debug listing
             -v <verbose>
             -V <very verbose>
"""


class Program:
    """
    Assembled machine words together with where every statement ended up.

    Programs are not modified after assembly.
    """

    def __init__(self, words, statements, statement_addresses, addresses_by_symbol):
        self._words: Tuple[MachineWord, ...] = tuple(words)
        self._statements = tuple(statements)
        self._statement_addresses: Tuple[int, ...] = tuple(statement_addresses)
        self._addresses_by_symbol: Dict[str, int] = dict(addresses_by_symbol)

    @property
    def words(self) -> Tuple[MachineWord, ...]:
        return self._words

    @property
    def statements(self) -> tuple:
        return self._statements

    @property
    def addresses_by_symbol(self) -> Dict[str, int]:
        return dict(self._addresses_by_symbol)

    def __len__(self):
        return len(self._words)

    def address_of_statement(self, index: int) -> int:
        return self._statement_addresses[index]

    def statement_at(self, address: int) -> Optional[int]:
        """Index of the statement whose words include the address, if any."""
        if not 0 <= address < len(self._words):
            return None

        index = bisect.bisect_right(self._statement_addresses, address) - 1

        # zero sized allocations share their address with the statement after them
        return index

    def listing(self, text: str) -> str:
        """
        Will output every statement with its address, words and source
        labels get their own line, like in the .debug output
        """
        labels_by_address: Dict[int, List[str]] = {}

        for symbol, address in self._addresses_by_symbol.items():
            labels_by_address.setdefault(address, []).append(symbol)

        output = ""

        for index, statement in enumerate(self._statements):
            address = self._statement_addresses[index]
            source = text[statement.span[0]:statement.span[1]]

            for label in labels_by_address.pop(address, []):
                output += f"     | {'':10} | {label + ':':29} | \n"

            words = self._words[address:address + statement.word_count]

            if not words:
                output += f"{address:04d} | {'':10} |     {source:25} | \n"
                continue

            decoded = ""

            if isinstance(statement, CommandStatement):
                decoded = str(statement.command(self._addresses_by_symbol))

            output += f"{address:04d} | {words[0]} |     {source:25} | {decoded}\n"

            for offset, word in enumerate(words[1:], 1):
                output += f"{address + offset:04d} | {word} | {'':29} | \n"

        # labels after the last statement
        for address in sorted(labels_by_address):
            for label in labels_by_address[address]:
                output += f"     | {'':10} | {label + ':':29} | \n"

        return output


def assemble_unit(unit: CompilationUnit, _log_name="Assembler") -> Program:
    _log = logging.getLogger(_log_name)

    unrecognised = unit.unrecognised

    if unrecognised:
        _log.warning(f"Found {len(unrecognised)} pieces of unrecognised source")
        raise UnrecognisedSourceError(unrecognised[0])

    statements = []
    statement_addresses = []
    addresses_by_symbol: Dict[str, int] = {}
    address = 0

    for element in unit.elements:
        if isinstance(element, ProgramTerminator):
            break

        if isinstance(element, Label):
            if element.name in addresses_by_symbol:
                raise DuplicateSymbolError(element.name, element.span, len(statements))

            _log.debug(f"Label '{element.name}' at {address}")
            addresses_by_symbol[element.name] = address
            continue

        if isinstance(element, STATEMENT_TYPES):
            statements.append(element)
            statement_addresses.append(address)
            address += element.word_count

    if address >= ADDRESS_SPACE:
        raise AddressSpaceOverflowError(address)

    _log.info(f"Assembling {len(statements)} statements into {address} words")

    words: List[MachineWord] = []

    for index, statement in enumerate(statements):
        try:
            words.extend(statement.words(addresses_by_symbol))
        except AssemblyError as e:
            e.statement_index = index
            raise

    return Program(words, statements, statement_addresses, addresses_by_symbol)


def assemble(text: str) -> Program:
    """Source text to program, raises an AssemblyError when the source is not a valid program."""
    return assemble_unit(parse(lex(text)))


class Script:
    """Source text with the program it assembles to, or the error that stopped it."""

    def __init__(self, text: str):
        self.text = text
        self.lexemes: List[Lexeme] = list(lex(text))
        self.unit: CompilationUnit = parse(self.lexemes)
        self.program: Optional[Program] = None
        self.error: Optional[AssemblyError] = None

        try:
            self.program = assemble_unit(self.unit)
        except AssemblyError as e:
            self.error = e

    @property
    def error_span(self) -> Optional[Span]:
        if self.error is None:
            return None

        return self.error.span

    def line_of(self, position: int) -> int:
        return self.text.count("\n", 0, position) + 1

    def describe_error(self) -> Optional[str]:
        if self.error is None:
            return None

        if self.error.span is None:
            return str(self.error)

        start, end = self.error.span
        line = self.line_of(start)
        source = self.text.split("\n")[line - 1]
        column = start - (self.text.rfind("\n", 0, start) + 1)

        return f"""{self.error}, at line {line}

{line!s:>4} | {source}
     | {' ' * column}{'^' * max(end - start, 1)}"""

    def listing(self) -> str:
        if self.program is None:
            raise ValueError("Script did not assemble")

        return self.program.listing(self.text)


def generate_words(program: Program) -> str:
    return "".join(f"{word}\n" for word in program.words)


def load_script(file_path: pathlib.Path) -> Script:
    _log = logging.getLogger("CLI")

    try:
        with open(file_path, encoding="utf-8") as f:
            text = f.read()
    except OSError:
        _log.critical(f"Could not read {file_path}. Exiting.")
        raise SystemExit

    script = Script(text)

    if script.error is not None:
        _log.critical(f"Could not assemble {file_path}:\n{script.describe_error()}")
        raise SystemExit

    _log.info(f"Assembled {file_path} into {len(script.program)} words")

    return script


def write_output(path: pathlib.Path, content: str, description: str):
    _log = logging.getLogger("CLI")

    try:
        with open(path, "w") as f:
            f.write(content)
    except OSError:
        _log.critical(f"Could not write to {path}. Exiting.")
        raise SystemExit

    _log.info(f"Generated {description} at {path}")


def generate_cli(file_path: pathlib.Path, out: Optional[str], deb: Optional[str]) -> Script:
    script = load_script(file_path)

    if out is not None:
        write_output(pathlib.Path(out).resolve(), generate_words(script.program), "word file")

    if deb is not None:
        write_output(pathlib.Path(deb + ".debug").resolve(), script.listing(), ".debug file")

    return script


def main():
    _log = logging.getLogger("Main")

    if not sys.argv[1:]:
        sys.argv.append("-h")

    options = "hi:o:P:vV"
    long_options = [
        "help",
        "input=",
        "output=",
        "debug_output=",
        "verbose",
        "super_verbose",
    ]

    try:
        args, _ = getopt.getopt(sys.argv[1:], options, long_options)
    except getopt.GetoptError as e:
        _log.critical(f"{e}. Exiting.")
        raise SystemExit

    out, deb = None, None
    log_level = logging.WARNING
    file_path = None

    for arg, val in args:
        if arg in ("-h", "--help"):
            print(__doc__)

            raise SystemExit

        if arg in ("-i", "--input"):
            file_path = pathlib.Path(val).resolve()
            if not file_path.exists():
                _log.critical(f"Could not find input file at {file_path}. Exiting.")
                raise SystemExit

        if arg in ("-o", "--output"):
            out = val

        if arg in ("-P", "--debug_output"):
            deb = val

        if arg in ("-v", "--verbose"):
            log_level = logging.INFO

        if arg in ("-V", "--super_verbose"):
            log_level = logging.DEBUG

    logging.basicConfig(level=log_level)

    if not file_path:
        _log.critical("No input file found. Exiting.")
        raise SystemExit

    if not any([out, deb]):
        _log.critical("No output files specified. Exiting.")
        raise SystemExit

    return generate_cli(file_path, out, deb)


if __name__ == "__main__":
    main()
