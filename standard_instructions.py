# DRAMAS (drama-s)
# An assembler and emulator for the DRAMA teaching machine.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
"""
This file contains the DRAMA instruction set, the instructions are
defined as classes with the name of the instruction, the operand
shapes, opcode and behaviour are defined as class variables.

A class decorator '@Instruction.create(instructions)' checks the
definition and registers the instruction under its mnemonic.

Instructions without an opcode (BST, HST) have no machine form of
their own, they are lowered to a 'native' command of another
instruction when assembled and when executed.
"""

from drama_instruction import (
    Instruction,
    Command,
    ValueOperand,
    Index,
    Modification,
    AddressingMode,
    ConditionState,
    NULLARY,
    UNARY_REGISTER,
    BINARY_REGISTER,
    ADDRESS,
    REGISTER_ADDRESS,
    CONDITION_ADDRESS,
    STACK_REGISTER,
    index_by_opcode,
)
from drama_words import AddressWord, MachineWord

instructions: dict[str, Instruction] = {}


def second_operand(machine, command: Command) -> MachineWord:
    if command.shape == BINARY_REGISTER:
        return machine.read_register(command.secondary, update_condition=False)

    return machine.operand_value(command.mode, command.operand)


def arithmetic(machine, command: Command, operation):
    operand = second_operand(machine, command)
    current = machine.read_register(command.register, update_condition=False)

    machine.write_register(command.register, operation(current, operand.signed))


@Instruction.create(instructions)
class _hia:
    __doc__ = """Load (haal in accumulator):
    Example            :    HIA.w R1, 10
    Addressing mode    :    value, address, direct, indirect or register
    Opcode             :    11
    RTL                :    R <- operand
    Condition set      :    from R
    """

    opcode = 11
    shapes = BINARY_REGISTER | REGISTER_ADDRESS

    @staticmethod
    def execute(machine, command):
        machine.write_register(command.register, second_operand(machine, command))


@Instruction.create(instructions)
class _big:
    __doc__ = """Store (bewaar in geheugen):
    Example            :    BIG R1, result
    Addressing mode    :    direct, indirect
    Opcode             :    12
    RTL                :    M[destination] <- R
    Condition set      :    from R
    """

    opcode = 12
    shapes = REGISTER_ADDRESS
    direct_access_only = True

    @staticmethod
    def execute(machine, command):
        destination = machine.destination(command.mode, command.operand)
        machine.memory[destination] = machine.read_register(command.register)


@Instruction.create(instructions)
class _opt:
    __doc__ = """Add (optellen):
    Example            :    OPT.w R1, 1
    Addressing mode    :    value, address, direct, indirect or register
    Opcode             :    21
    RTL                :    R <- R + operand
    Condition set      :    from R
    """

    opcode = 21
    shapes = BINARY_REGISTER | REGISTER_ADDRESS

    @staticmethod
    def execute(machine, command):
        arithmetic(machine, command, MachineWord.add)


@Instruction.create(instructions)
class _aft:
    __doc__ = """Subtract (aftrekken):
    Example            :    AFT R1, R2
    Addressing mode    :    value, address, direct, indirect or register
    Opcode             :    22
    RTL                :    R <- R - operand
    Condition set      :    from R
    """

    opcode = 22
    shapes = BINARY_REGISTER | REGISTER_ADDRESS

    @staticmethod
    def execute(machine, command):
        arithmetic(machine, command, MachineWord.subtract)


@Instruction.create(instructions)
class _ver:
    __doc__ = """Multiply (vermenigvuldigen):
    Example            :    VER.w R1, 3
    Addressing mode    :    value, address, direct, indirect or register
    Opcode             :    23
    RTL                :    R <- R * operand
    Condition set      :    from R
    """

    opcode = 23
    shapes = BINARY_REGISTER | REGISTER_ADDRESS

    @staticmethod
    def execute(machine, command):
        arithmetic(machine, command, MachineWord.multiply)


@Instruction.create(instructions)
class _del:
    __doc__ = """Divide (delen):
    Example            :    DEL.w R1, 2
    Addressing mode    :    value, address, direct, indirect or register
    Opcode             :    24
    RTL                :    R <- R / operand, truncated toward zero, 0 if operand = 0
    Condition set      :    from R
    """

    opcode = 24
    shapes = BINARY_REGISTER | REGISTER_ADDRESS

    @staticmethod
    def execute(machine, command):
        arithmetic(machine, command, MachineWord.divide)


@Instruction.create(instructions)
class _mod:
    __doc__ = """Remainder (modulo):
    Example            :    MOD.w R1, 10
    Addressing mode    :    value, address, direct, indirect or register
    Opcode             :    25
    RTL                :    R <- R % operand, sign of R, 0 if operand = 0
    Condition set      :    from R
    """

    opcode = 25
    shapes = BINARY_REGISTER | REGISTER_ADDRESS

    @staticmethod
    def execute(machine, command):
        arithmetic(machine, command, MachineWord.remainder)


@Instruction.create(instructions)
class _vgl:
    __doc__ = """Compare (vergelijken):
    Example            :    VGL.w R1, 0
    Addressing mode    :    value, address, direct, indirect or register
    Opcode             :    31
    RTL                :    CC <- sign(R - operand)
    Condition set      :    from the comparison
    """

    opcode = 31
    shapes = BINARY_REGISTER | REGISTER_ADDRESS

    @staticmethod
    def execute(machine, command):
        operand = second_operand(machine, command)
        current = machine.read_register(command.register, update_condition=False)

        machine.condition = ConditionState.comparing(current.signed, operand.signed)


@Instruction.create(instructions)
class _spr:
    __doc__ = """Jump (springen):
    Example            :    SPR loop
    Addressing mode    :    direct, indirect
    Opcode             :    32
    RTL                :    PC <- destination
    Condition set      :    None
    """

    opcode = 32
    shapes = ADDRESS
    direct_access_only = True

    @staticmethod
    def execute(machine, command):
        machine.pc = machine.destination(command.mode, command.operand)


@Instruction.create(instructions)
class _vsp:
    __doc__ = """Conditional jump (voorwaardelijk springen):
    Example            :    VSP NUL, end
    Addressing mode    :    direct, indirect
    Opcode             :    33
    RTL                :    if CC matches condition: PC <- destination
    Condition set      :    None
    """

    opcode = 33
    shapes = CONDITION_ADDRESS
    direct_access_only = True

    @staticmethod
    def execute(machine, command):
        if not machine.condition.matches(command.condition):
            return

        machine.pc = machine.destination(command.mode, command.operand)


@Instruction.create(instructions)
class _sbr:
    __doc__ = """Subroutine jump (spring naar subroutine):
    Example            :    SBR print_all
    Addressing mode    :    direct, indirect
    Opcode             :    41
    RTL                :    R9 <- R9 - 1, M[R9] <- PC, PC <- destination
    Condition set      :    None
    """

    opcode = 41
    shapes = ADDRESS
    direct_access_only = True

    @staticmethod
    def execute(machine, command):
        stack = machine.read_register(STACK_REGISTER, update_condition=False).decremented()

        machine.write_register(STACK_REGISTER, stack, update_condition=False)
        machine.memory[AddressWord.truncating(stack)] = MachineWord.from_address(machine.pc)
        machine.pc = machine.destination(command.mode, command.operand)


@Instruction.create(instructions)
class _ktg:
    __doc__ = """Subroutine return (keer terug):
    Example            :    KTG
    Addressing mode    :    None
    Opcode             :    42
    RTL                :    PC <- M[R9], R9 <- R9 + 1
    Condition set      :    None
    """

    opcode = 42
    shapes = NULLARY

    @staticmethod
    def execute(machine, command):
        stack = machine.read_register(STACK_REGISTER, update_condition=False)

        machine.pc = AddressWord.truncating(machine.memory[AddressWord.truncating(stack)])
        machine.write_register(STACK_REGISTER, stack.incremented(), update_condition=False)


@Instruction.create(instructions)
class _lez:
    __doc__ = """Read (lezen):
    Example            :    LEZ
    Addressing mode    :    None
    Opcode             :    71
    RTL                :    R0 <- input
    Condition set      :    from R0, when the input is provided
    """

    opcode = 71
    shapes = NULLARY

    @staticmethod
    def execute(machine, command):
        machine.await_input()


@Instruction.create(instructions)
class _dru:
    __doc__ = """Print integer (drukken):
    Example            :    DRU
    Addressing mode    :    None
    Opcode             :    73
    RTL                :    output <- R0
    Condition set      :    from R0
    """

    opcode = 73
    shapes = NULLARY

    @staticmethod
    def execute(machine, command):
        machine.print_output(machine.read_register(0))


@Instruction.create(instructions)
class _bst:
    __doc__ = """Push (bewaar op stapel):
    Example            :    BST R1
    Addressing mode    :    None
    Opcode             :    None, assembled as BIG R, 0(-R9)
    RTL                :    R9 <- R9 - 1, M[R9] <- R
    Condition set      :    from R
    """

    opcode = None
    shapes = UNARY_REGISTER

    @staticmethod
    def native(command):
        operand = ValueOperand(0, Index(STACK_REGISTER, Modification.PRE_DECREMENT))

        return instructions["BIG"].resolve(AddressingMode.DIRECT, [command.register, operand])


@Instruction.create(instructions)
class _hst:
    __doc__ = """Pop (haal van stapel):
    Example            :    HST R1
    Addressing mode    :    None
    Opcode             :    None, assembled as HIA R, 0(R9+)
    RTL                :    R <- M[R9], R9 <- R9 + 1
    Condition set      :    from R
    """

    opcode = None
    shapes = UNARY_REGISTER

    @staticmethod
    def native(command):
        operand = ValueOperand(0, Index(STACK_REGISTER, Modification.POST_INCREMENT))

        return instructions["HIA"].resolve(AddressingMode.DIRECT, [command.register, operand])


@Instruction.create(instructions)
class _stp:
    __doc__ = """Halt (stop):
    Example            :    STP
    Addressing mode    :    None
    Opcode             :    99
    RTL                :    halt
    Condition set      :    None
    """

    opcode = 99
    shapes = NULLARY

    @staticmethod
    def execute(machine, command):
        machine.halt()


opcodes = index_by_opcode(instructions)
