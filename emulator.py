# DRAMAS (drama-s)
# An emulator for the DRAMA teaching machine.
# This emulator is part of the DRAMAS project.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
import getopt
import logging
import pathlib
import sys
from dataclasses import dataclass
from enum import Enum
from typing import *

try:
    import numpy as np
except ImportError:
    print("Numpy is not installed, please install it to use the emulator")
    sys.exit(1)

from drama_instruction import (
    AddressingMode,
    ConditionState,
    DecodeError,
    ExecutionError,
    REGISTER_COUNT,
    STACK_BASE,
    STACK_REGISTER,
    ValueOperand,
    decode,
)
from drama_words import ADDRESS_SPACE, AddressWord, MachineWord
from standard_instructions import opcodes

__doc__ = """
Usage:

emulator.py -i <file>                 word file, as written by 'assembler.py -o'
            -I <values>               comma separated input values for LEZ
            -s <steps>                step limit (default 10000)
            -v <verbose>
            -V <very verbose>
"""

BIN_SIZE = 128
BIN_COUNT = -(-ADDRESS_SPACE // BIN_SIZE)
DEFAULT_STEP_LIMIT = 10000


class MachineStateError(Exception):
    """The machine was asked to do something its current state does not allow."""


class MachineState(Enum):
    READY = "ready"
    WAITING_FOR_INPUT = "waiting for input"
    CRASHED = "crashed"
    HALTED = "halted"


@dataclass(frozen=True)
class IOEntry:
    kind: str  # "input" or "output"
    word: MachineWord

    def __str__(self):
        return f"{self.kind:6} {self.word.signed}"


class Memory:
    """
    10,000 machine words in bins of 128.

    A bin is only allocated when something is written into it, reading
    from a bin that was never written returns zero.
    """

    def __init__(self):
        self._bins: List[Optional[np.ndarray]] = [None] * BIN_COUNT

    @staticmethod
    def _address(key) -> int:
        if isinstance(key, AddressWord):
            return key.unsigned

        if isinstance(key, MachineWord):
            raise TypeError("Machine words must be truncated to an address before accessing memory")

        key = int(key)

        if not 0 <= key < ADDRESS_SPACE:
            raise IndexError(f"Address {key} out of range")

        return key

    def __len__(self):
        return ADDRESS_SPACE

    def __getitem__(self, key) -> MachineWord:
        address = self._address(key)
        memory_bin = self._bins[address // BIN_SIZE]

        if memory_bin is None:
            return MachineWord.zero()

        return MachineWord(int(memory_bin[address % BIN_SIZE]))

    def __setitem__(self, key, word: MachineWord):
        address = self._address(key)
        memory_bin = self._bins[address // BIN_SIZE]

        if memory_bin is None:
            memory_bin = np.zeros(BIN_SIZE, dtype=np.int64)
            self._bins[address // BIN_SIZE] = memory_bin

        memory_bin[address % BIN_SIZE] = word.unsigned

    def load(self, words: Iterable[MachineWord], start: int = 0):
        for offset, word in enumerate(words):
            self[start + offset] = word

    @property
    def materialised_bins(self) -> List[int]:
        return [index for index, memory_bin in enumerate(self._bins) if memory_bin is not None]

    def clear(self):
        self._bins = [None] * BIN_COUNT


class Machine:
    def __init__(self, words: Iterable[MachineWord] = ()):
        self.memory = Memory()
        self._registers = np.zeros(REGISTER_COUNT, dtype=np.int64)

        self.load(words)

    @classmethod
    def from_program(cls, program) -> "Machine":
        machine = cls(program.words)
        machine.program = program

        return machine

    def load(self, words: Iterable[MachineWord]):
        """Resets the machine and copies the words into memory from address 0."""
        self.program = None
        self.memory.clear()
        self.memory.load(words)

        self._registers[:] = 0
        self._registers[STACK_REGISTER] = STACK_BASE

        self.pc = AddressWord.zero()
        self.previous_pc: Optional[AddressWord] = None
        self.condition = ConditionState.ZERO
        self.state = MachineState.READY
        self.error: Optional[Exception] = None
        self.io_log: List[IOEntry] = []
        self.steps = 0

    # registers

    @property
    def registers(self) -> Tuple[MachineWord, ...]:
        return tuple(MachineWord(int(raw)) for raw in self._registers)

    def read_register(self, register: int, update_condition=True) -> MachineWord:
        word = MachineWord(int(self._registers[register]))

        if update_condition:
            self.condition = ConditionState.for_word(word)

        return word

    def write_register(self, register: int, word: MachineWord, update_condition=True):
        self._registers[register] = word.unsigned

        if update_condition:
            self.condition = ConditionState.for_word(word)

    # operands

    def _evaluate(self, operand: ValueOperand) -> MachineWord:
        index = operand.index

        if index is None:
            return MachineWord.wrap(operand.base)

        modification = index.modification

        if modification is not None and modification.is_pre:
            self._modify(index.register, modification.step)

        value = MachineWord.wrap(operand.base + self.read_register(index.register, update_condition=False).signed)

        if modification is not None and not modification.is_pre:
            self._modify(index.register, modification.step)

        return value

    def _modify(self, register: int, step: int):
        word = self.read_register(register, update_condition=False)
        word = word.incremented() if step > 0 else word.decremented()

        self.write_register(register, word, update_condition=False)

    def operand_value(self, mode: AddressingMode, operand: ValueOperand) -> MachineWord:
        value = self._evaluate(operand)

        if mode is AddressingMode.VALUE:
            return value

        if mode is AddressingMode.ADDRESS:
            return MachineWord.from_address(AddressWord.truncating(value))

        if mode is AddressingMode.DIRECT:
            return self.memory[AddressWord.truncating(value)]

        if mode is AddressingMode.INDIRECT:
            reference = self.memory[AddressWord.truncating(value)]
            return self.memory[AddressWord.truncating(reference)]

        raise ExecutionError(f"Unknown addressing mode {mode}")

    def destination(self, mode: AddressingMode, operand: ValueOperand) -> AddressWord:
        address = AddressWord.truncating(self._evaluate(operand))

        if mode is AddressingMode.INDIRECT:
            return AddressWord.truncating(self.memory[address])

        return address

    # hooks for the instructions

    def await_input(self):
        self.state = MachineState.WAITING_FOR_INPUT

    def halt(self):
        self.state = MachineState.HALTED

    def print_output(self, word: MachineWord):
        _log = logging.getLogger("Machine")
        _log.info(f"Output {word.signed}")

        self.io_log.append(IOEntry("output", word))

    def provide_input(self, word: MachineWord):
        _log = logging.getLogger("Machine")

        if self.state is not MachineState.WAITING_FOR_INPUT:
            raise MachineStateError(f"Machine is {self.state.value}, not waiting for input")

        _log.info(f"Input {word.signed}")

        self.write_register(0, word)
        self.io_log.append(IOEntry("input", word))
        self.state = MachineState.READY

    # fetch, decode, execute

    @property
    def executed_statement(self) -> Optional[int]:
        """Index of the statement last executed, when the machine was loaded from a program."""
        if self.program is None or self.previous_pc is None:
            return None

        return self.program.statement_at(self.previous_pc.unsigned)

    def _fetch(self) -> MachineWord:
        self.previous_pc = self.pc
        word = self.memory[self.pc]
        self.pc = self.pc.incremented()

        return word

    def execute_next(self):
        _log = logging.getLogger("Machine")

        if self.state is not MachineState.READY:
            raise MachineStateError(f"Machine is {self.state.value}, cannot execute")

        word = self._fetch()

        try:
            command = decode(word, opcodes)
            _log.debug(f"{self.previous_pc}: {command}")

            command.execute(self)
        except (DecodeError, ExecutionError) as e:
            _log.warning(f"Machine crashed at {self.previous_pc}: {e}")

            self.state = MachineState.CRASHED
            self.error = e

        self.steps += 1

    def run(
            self,
            inputs: Iterable[int] = (),
            max_steps: int = DEFAULT_STEP_LIMIT,
            read_input: Optional[Callable[[], int]] = None,
    ) -> MachineState:
        """
        Executes until the machine halts, crashes or runs out of steps.

        Queued inputs are handed to LEZ in order, once they run out
        read_input is asked for more, without it the machine stops waiting.
        """
        _log = logging.getLogger("Machine")

        inputs = list(inputs)
        executed = 0

        while executed < max_steps:
            if self.state is MachineState.WAITING_FOR_INPUT:
                if inputs:
                    self.provide_input(MachineWord.wrap(inputs.pop(0)))
                elif read_input is not None:
                    self.provide_input(MachineWord.wrap(read_input()))
                else:
                    break

            if self.state is not MachineState.READY:
                break

            self.execute_next()
            executed += 1

        if executed >= max_steps and self.state is MachineState.READY:
            _log.warning(f"Stopped after {executed} steps")

        return self.state

    def __repr__(self):
        registers = " ".join(f"R{i}={word.signed}" for i, word in enumerate(self.registers))

        return f"<Machine {self.state.value} PC={self.pc} CC={self.condition.name} {registers}>"


def read_words(text: str) -> List[MachineWord]:
    words = []

    for line in text.splitlines():
        line = line.strip()

        if not line:
            continue

        words.append(MachineWord(int(line)))

    if len(words) > ADDRESS_SPACE:
        raise ValueError(f"{len(words)} words do not fit in {ADDRESS_SPACE} addresses")

    return words


def parse_inputs(values: str) -> List[int]:
    return [int(value) for value in values.split(",") if value.strip()]


def run_cli(machine: Machine, inputs: List[int], max_steps: int) -> Machine:
    _log = logging.getLogger("CLI")

    def read_input():
        value = input("LEZ> ")

        try:
            return int(value)
        except ValueError:
            _log.critical(f"Input '{value}' is not an integer. Exiting.")
            raise SystemExit

    # without queued inputs LEZ asks on the terminal
    state = machine.run(inputs, max_steps, None if inputs else read_input)

    for entry in machine.io_log:
        if entry.kind == "output":
            print(entry.word.signed)

    if state is MachineState.CRASHED:
        _log.critical(f"Machine crashed at {machine.previous_pc}: {machine.error}")
        raise SystemExit

    if state is MachineState.WAITING_FOR_INPUT:
        _log.critical("Machine is waiting for input but none is left. Exiting.")
        raise SystemExit

    if state is MachineState.READY:
        _log.warning(f"Machine did not halt within {max_steps} steps")

    _log.info(f"Finished after {machine.steps} steps: {machine!r}")

    return machine


def main():
    _log = logging.getLogger("Main")

    if not sys.argv[1:]:
        sys.argv.append("-h")

    options = "hi:I:s:vV"
    long_options = [
        "help",
        "input=",
        "Inputs=",
        "steps=",
        "verbose",
        "super_verbose",
    ]

    try:
        args, _ = getopt.getopt(sys.argv[1:], options, long_options)
    except getopt.GetoptError as e:
        _log.critical(f"{e}. Exiting.")
        raise SystemExit

    inputs = []
    max_steps = DEFAULT_STEP_LIMIT
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

        if arg in ("-I", "--Inputs"):
            try:
                inputs = parse_inputs(val)
            except ValueError:
                _log.critical(f"Inputs '{val}' are not comma separated integers. Exiting.")
                raise SystemExit

        if arg in ("-s", "--steps"):
            try:
                max_steps = int(val)
            except ValueError:
                _log.critical(f"Step limit '{val}' is not an integer. Exiting.")
                raise SystemExit

        if arg in ("-v", "--verbose"):
            log_level = logging.INFO

        if arg in ("-V", "--super_verbose"):
            log_level = logging.DEBUG

    logging.basicConfig(level=log_level)

    if not file_path:
        _log.critical("No input file found. Exiting.")
        raise SystemExit

    try:
        with open(file_path) as f:
            words = read_words(f.read())
    except ValueError as e:
        _log.critical(f"{file_path} is not a word file: {e}. Exiting.")
        raise SystemExit

    return run_cli(Machine(words), inputs, max_steps)


if __name__ == "__main__":
    main()
