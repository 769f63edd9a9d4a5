# DRAMAS (drama-s)
# An assembler and emulator for the DRAMA teaching machine.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
"""
This file contains the wrapping class for instructions and the
operand model shared by the assembler and the emulator.
see standard_instructions.py for how the DRAMA instructions are
declared with it.

A command is an instruction together with its operands. Which
operands an instruction takes is described by its shape flags, a
command carries exactly one of those shapes.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import *

from drama_words import AddressWord, CommandWord, MachineWord

_log = logging.getLogger("InstructionConfigurator")

# Operand shapes, an instruction accepts one or more of these
NULLARY = 1  # STP
UNARY_REGISTER = 2  # BST R1
BINARY_REGISTER = 4  # OPT R1, R2
ADDRESS = 8  # SPR 100
REGISTER_ADDRESS = 16  # HIA R1, 100
CONDITION_ADDRESS = 32  # VSP POS, 100

ADDRESS_SHAPES = ADDRESS | REGISTER_ADDRESS | CONDITION_ADDRESS

SHAPE_NAMES = {
    NULLARY: "nullary",
    UNARY_REGISTER: "register",
    BINARY_REGISTER: "register, register",
    ADDRESS: "address",
    REGISTER_ADDRESS: "register, address",
    CONDITION_ADDRESS: "condition, address",
}

REGISTER_COUNT = 10
STACK_REGISTER = 9
STACK_BASE = 9000


class DecodeError(Exception):
    """A machine word that does not hold a valid command."""

    def __init__(self, message, word=None):
        self.message = message
        self.word = word
        super().__init__(message)

    def __str__(self):
        if self.word is None:
            return self.message

        return f"{self.message} (word {self.word})"


class ExecutionError(Exception):
    """A command that cannot be carried out by the machine."""


class ArgumentFormatError(Exception):
    """The arguments given to an instruction do not match any of its shapes."""

    def __init__(self, instruction, message=None):
        self.instruction = instruction

        if message is None:
            message = f"{instruction.mnemonic} command with incorrect kind of arguments"

        super().__init__(message)


class AddressingMode(Enum):
    VALUE = "w"
    ADDRESS = "a"
    DIRECT = "d"
    INDIRECT = "i"

    def code(self, direct_access_only=False) -> int:
        if not direct_access_only:
            return {
                AddressingMode.VALUE: 1,
                AddressingMode.ADDRESS: 2,
                AddressingMode.DIRECT: 3,
                AddressingMode.INDIRECT: 4,
            }[self]

        if self is AddressingMode.DIRECT:
            return 2

        if self is AddressingMode.INDIRECT:
            return 3

        # only register commands get here, they always use the value code
        return 1

    @classmethod
    def from_code(cls, code, direct_access_only=False) -> Optional["AddressingMode"]:
        if direct_access_only:
            return {2: cls.DIRECT, 3: cls.INDIRECT}.get(code)

        return {1: cls.VALUE, 2: cls.ADDRESS, 3: cls.DIRECT, 4: cls.INDIRECT}.get(code)

    @classmethod
    def from_suffix(cls, suffix: str) -> Optional["AddressingMode"]:
        try:
            return cls(suffix.lower())
        except ValueError:
            return None


class Condition(Enum):
    ZERO = ("NUL", "GEL", 1)
    POSITIVE = ("POS", "GR", 2)
    NEGATIVE = ("NEG", "KL", 3)
    NONZERO = ("NNUL", "NGEL", 4)
    NONPOSITIVE = ("NPOS", "KLG", 5)
    NONNEGATIVE = ("NNEG", "GRG", 6)

    def __init__(self, mnemonic, comparison, code):
        self.mnemonic = mnemonic
        self.comparison = comparison
        self.code = code

    @classmethod
    def named(cls, name: str) -> Optional["Condition"]:
        name = name.upper()

        for condition in cls:
            if name in (condition.mnemonic, condition.comparison):
                return condition

        return None

    @classmethod
    def from_code(cls, code: int) -> Optional["Condition"]:
        for condition in cls:
            if condition.code == code:
                return condition

        return None


class ConditionState(Enum):
    ZERO = 0
    POSITIVE = 1
    NEGATIVE = 2

    @classmethod
    def for_word(cls, word: MachineWord):
        return cls.comparing(word.signed, 0)

    @classmethod
    def comparing(cls, first: int, second: int):
        if first < second:
            return cls.NEGATIVE

        if first == second:
            return cls.ZERO

        return cls.POSITIVE

    def matches(self, condition: Condition) -> bool:
        return {
            Condition.ZERO: self is ConditionState.ZERO,
            Condition.POSITIVE: self is ConditionState.POSITIVE,
            Condition.NEGATIVE: self is ConditionState.NEGATIVE,
            Condition.NONZERO: self is not ConditionState.ZERO,
            Condition.NONPOSITIVE: self is not ConditionState.POSITIVE,
            Condition.NONNEGATIVE: self is not ConditionState.NEGATIVE,
        }[condition]


class Modification(Enum):
    PRE_INCREMENT = 3
    POST_INCREMENT = 4
    PRE_DECREMENT = 5
    POST_DECREMENT = 6

    @property
    def is_pre(self) -> bool:
        return self in (Modification.PRE_INCREMENT, Modification.PRE_DECREMENT)

    @property
    def step(self) -> int:
        if self in (Modification.PRE_INCREMENT, Modification.POST_INCREMENT):
            return 1

        return -1


# indexing mode codes that are not a modification
NO_INDEX = 1
PLAIN_INDEX = 2


@dataclass(frozen=True)
class Index:
    register: int
    modification: Optional[Modification] = None

    @property
    def code(self) -> int:
        if self.modification is None:
            return PLAIN_INDEX

        return self.modification.value


@dataclass(frozen=True)
class ValueOperand:
    """A base value as written in assembly, optionally indexed by a register."""

    base: int
    index: Optional[Index] = None

    @property
    def indexing_mode(self) -> int:
        if self.index is None:
            return NO_INDEX

        return self.index.code

    @classmethod
    def decoded(cls, base: int, register: int, indexing_mode: int) -> "ValueOperand":
        if indexing_mode == NO_INDEX:
            return cls(base)

        if indexing_mode == PLAIN_INDEX:
            return cls(base, Index(register))

        try:
            modification = Modification(indexing_mode)
        except ValueError:
            raise DecodeError(f"{indexing_mode} is not a valid indexing mode code")

        return cls(base, Index(register, modification))

    def __str__(self):
        if self.index is None:
            return str(self.base)

        pre, post = "", ""
        modification = self.index.modification

        if modification is not None:
            sign = "+" if modification.step > 0 else "-"

            if modification.is_pre:
                pre = sign
            else:
                post = sign

        return f"{self.base}({pre}R{self.index.register}{post})"


@dataclass(frozen=True)
class Command:
    """
    An instruction with operands, only the operands of its shape are set.

    register: the (first) register of register shapes
    secondary: the second register of the binary register shape
    condition: the condition of the condition address shape
    mode, operand: addressing mode and value of address shapes
    """

    instruction: "Instruction"
    shape: int
    register: Optional[int] = None
    secondary: Optional[int] = None
    condition: Optional[Condition] = None
    mode: Optional[AddressingMode] = None
    operand: Optional[ValueOperand] = None

    def native(self) -> "Command":
        """The equivalent command built purely from opcode-bearing instructions."""
        if self.instruction.opcode is not None:
            return self

        return self.instruction.native(self)

    def execute(self, machine):
        if not self.instruction.shapes & self.shape:
            raise ExecutionError(f"{self.instruction.mnemonic} cannot execute {SHAPE_NAMES[self.shape]} arguments")

        if self.instruction.opcode is None:
            return self.native().execute(machine)

        return self.instruction.execute(machine, self)

    def __str__(self):
        name = self.instruction.mnemonic

        if self.mode is not None:
            name += f".{self.mode.value}"

        arguments = []

        if self.shape == NULLARY:
            pass

        elif self.shape == UNARY_REGISTER:
            arguments = [f"R{self.register}"]

        elif self.shape == BINARY_REGISTER:
            arguments = [f"R{self.register}", f"R{self.secondary}"]

        elif self.shape == ADDRESS:
            arguments = [str(self.operand)]

        elif self.shape == REGISTER_ADDRESS:
            arguments = [f"R{self.register}", str(self.operand)]

        elif self.shape == CONDITION_ADDRESS:
            arguments = [self.condition.mnemonic, str(self.operand)]

        else:
            raise ValueError(f"Unknown command shape {self.shape}")

        if not arguments:
            return name

        return f"{name} {', '.join(arguments)}"


class Instruction(type):
    mnemonic: str
    opcode: Optional[int]
    shapes: int
    direct_access_only: bool

    def __repr__(cls):
        return f"<Instruction '{cls.mnemonic}' opcode {cls.opcode}>"

    @staticmethod
    def execute(machine, command: Command):
        raise NotImplementedError

    @staticmethod
    def native(command: Command) -> Command:
        raise NotImplementedError

    def resolve(cls, mode: Optional[AddressingMode], arguments: list) -> Command:
        """
        Picks the shape matching the arguments and builds the command.

        arguments are register numbers (int), Condition's and ValueOperand's
        """
        kinds = []

        for argument in arguments:
            if isinstance(argument, Condition):
                kinds.append("C")
            elif isinstance(argument, ValueOperand):
                kinds.append("A")
            elif isinstance(argument, int) and not isinstance(argument, bool):
                kinds.append("R")
            else:
                raise TypeError(f"Unexpected argument {argument!r}")

        shape = {
            "": NULLARY,
            "R": UNARY_REGISTER,
            "RR": BINARY_REGISTER,
            "A": ADDRESS,
            "RA": REGISTER_ADDRESS,
            "CA": CONDITION_ADDRESS,
        }.get("".join(kinds))

        if shape is None or not cls.shapes & shape:
            raise ArgumentFormatError(cls)

        if not shape & ADDRESS_SHAPES:
            if mode is not None:
                raise ArgumentFormatError(cls, f"{cls.mnemonic} command with {SHAPE_NAMES[shape]} arguments takes no addressing mode")

            if shape == NULLARY:
                return Command(cls, shape)

            if shape == UNARY_REGISTER:
                return Command(cls, shape, register=arguments[0])

            return Command(cls, shape, register=arguments[0], secondary=arguments[1])

        if mode is None:
            mode = AddressingMode.DIRECT

        if cls.direct_access_only and mode in (AddressingMode.VALUE, AddressingMode.ADDRESS):
            raise ArgumentFormatError(cls, f"{cls.mnemonic} command only accesses memory, '.{mode.value}' is not allowed")

        if shape == ADDRESS:
            return Command(cls, shape, mode=mode, operand=arguments[0])

        if shape == REGISTER_ADDRESS:
            return Command(cls, shape, register=arguments[0], mode=mode, operand=arguments[1])

        return Command(cls, shape, condition=arguments[0], mode=mode, operand=arguments[1])

    @staticmethod
    def create(insts_ref: dict):
        if type(insts_ref) != dict:
            _log.critical(f"Error parsing instructions reference, expected dict, got '{type(insts_ref)}'")
            raise SystemExit

        _log.debug(f"Creating new instruction wrapper")

        def class_wrapper(_class):
            _log.debug(f"Wrapping class '{_class.__name__}'")

            # the leading _ keeps names like 'and' usable as class names
            name = _class.__name__[1:].upper()

            if name in insts_ref:
                _log.critical(f"Error parsing instruction '{name}', instruction already exists")
                raise SystemExit

            for attribute in ("opcode", "shapes"):
                if attribute not in _class.__dict__:
                    _log.critical(f"Error parsing instruction '{name}', missing '{attribute}'")
                    raise SystemExit

            opcode = _class.__dict__["opcode"]
            shapes = _class.__dict__["shapes"]

            if opcode is None and "native" not in _class.__dict__:
                _log.critical(f"Error parsing instruction '{name}', without an opcode it needs a native representation")
                raise SystemExit

            if opcode is not None and "execute" not in _class.__dict__:
                _log.critical(f"Error parsing instruction '{name}', missing 'execute'")
                raise SystemExit

            if opcode is not None and not 0 <= opcode <= 99:
                _log.critical(f"Error parsing instruction '{name}', opcode {opcode} is not two digits")
                raise SystemExit

            n_args = {
                "mnemonic": name,
                "opcode": opcode,
                "shapes": shapes,
                "direct_access_only": _class.__dict__.get("direct_access_only", False),
                "__doc__": _class.__doc__,
                "__orig_class__": _class,
            }

            if "execute" in _class.__dict__:
                n_args["execute"] = _class.__dict__["execute"]

            if "native" in _class.__dict__:
                n_args["native"] = _class.__dict__["native"]

            new_class = Instruction("GeneratedInstruction", (object,), n_args)

            _log.debug(f"Instruction '{name}' wrapped to '{new_class.__name__}', adding to reference")

            insts_ref[name] = new_class

            return new_class

        return class_wrapper


def index_by_opcode(instructions: dict) -> dict:
    return {inst.opcode: inst for inst in instructions.values() if inst.opcode is not None}


def encode(command: Command) -> CommandWord:
    """Packs a command, or its native representation, into a command word."""
    command = command.native()
    instruction = command.instruction
    shape = command.shape

    word = CommandWord()
    word.opcode = instruction.opcode

    if shape == NULLARY:
        pass

    elif shape == UNARY_REGISTER:
        word.addressing_mode = AddressingMode.VALUE.code()
        word.register = command.register

    elif shape == BINARY_REGISTER:
        word.addressing_mode = AddressingMode.VALUE.code()
        word.indexing_mode = PLAIN_INDEX
        word.register = command.register
        word.index_register = command.secondary

    elif shape & ADDRESS_SHAPES:
        operand = command.operand

        word.addressing_mode = command.mode.code(instruction.direct_access_only)
        word.indexing_mode = operand.indexing_mode
        word.index_register = operand.index.register if operand.index is not None else 0
        word.address = AddressWord.wrap(operand.base).unsigned

        if shape == REGISTER_ADDRESS:
            word.register = command.register

        elif shape == CONDITION_ADDRESS:
            word.register = command.condition.code

    else:
        raise ValueError(f"Unknown command shape {shape}")

    return word


def decode(word: MachineWord, by_opcode: dict) -> Command:
    """Unpacks a command word, by_opcode maps opcodes to instructions (see index_by_opcode)."""
    packed = CommandWord(word)
    instruction = by_opcode.get(packed.opcode)

    if instruction is None:
        raise DecodeError(f"{packed.opcode} is not a valid opcode", word)

    shapes = instruction.shapes

    if shapes & NULLARY:
        return Command(instruction, NULLARY)

    if shapes & UNARY_REGISTER:
        return Command(instruction, UNARY_REGISTER, register=packed.register)

    if (
            shapes & BINARY_REGISTER
            and packed.addressing_mode == AddressingMode.VALUE.code()
            and packed.indexing_mode == PLAIN_INDEX
            and packed.address == 0
    ):
        return Command(instruction, BINARY_REGISTER, register=packed.register, secondary=packed.index_register)

    mode = AddressingMode.from_code(packed.addressing_mode, instruction.direct_access_only)

    if mode is None:
        raise DecodeError(f"{packed.addressing_mode} is not a valid addressing mode code", word)

    try:
        operand = ValueOperand.decoded(AddressWord(packed.address).signed, packed.index_register, packed.indexing_mode)
    except DecodeError as e:
        raise DecodeError(e.message, word)

    if shapes & REGISTER_ADDRESS:
        return Command(instruction, REGISTER_ADDRESS, register=packed.register, mode=mode, operand=operand)

    if shapes & CONDITION_ADDRESS:
        condition = Condition.from_code(packed.register)

        if condition is None:
            raise DecodeError(f"{packed.register} is not a valid condition code", word)

        return Command(instruction, CONDITION_ADDRESS, condition=condition, mode=mode, operand=operand)

    if shapes & ADDRESS:
        return Command(instruction, ADDRESS, mode=mode, operand=operand)

    raise DecodeError(f"{instruction.mnemonic} commands cannot be decoded", word)
