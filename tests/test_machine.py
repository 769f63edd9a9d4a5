import pytest

from assembler import assemble
from drama_instruction import AddressingMode, ConditionState, DecodeError, Index, Modification, ValueOperand
from drama_words import AddressWord, MachineWord
from emulator import Machine, MachineState, MachineStateError, Memory


def machine_for(source):
    return Machine.from_program(assemble(source))


def signed_registers(machine):
    return [word.signed for word in machine.registers]


def test_initial_state():
    machine = Machine()

    assert signed_registers(machine) == [0] * 9 + [9000]
    assert machine.pc == AddressWord(0)
    assert machine.condition is ConditionState.ZERO
    assert machine.state is MachineState.READY
    assert machine.io_log == []


def test_load_store_round_trip():
    machine = machine_for("HIA R0, 5\nBIG R0, 6\nHIA R1, 6\nSTP\n0\n42")

    assert machine.run() is MachineState.HALTED
    assert machine.registers[1].signed == 42
    assert machine.memory[6].signed == 42


@pytest.mark.parametrize("first, second, jumped", [(7, 3, True), (3, 7, False), (3, 3, False), (-2, -5, True)])
def test_conditional_jump(first, second, jumped):
    machine = machine_for(
        f"HIA.w R0, {first}\nHIA.w R1, {second}\nVGL R0, R1\nVSP.d POS, done\n"
        "HIA.w R2, 1\nSTP\ndone: HIA.w R2, 2\nSTP"
    )

    machine.run()

    assert machine.registers[2].signed == (2 if jumped else 1)


def test_post_increment_evaluates_before_modifying():
    operand = ValueOperand(100, Index(2, Modification.POST_INCREMENT))

    first = Machine()
    assert first.destination(AddressingMode.DIRECT, operand) == AddressWord(100)
    assert first.registers[2].signed == 1

    assert first.destination(AddressingMode.DIRECT, operand) == AddressWord(101)
    assert first.registers[2].signed == 2

    # every evaluation from a register value of 0 addresses 100
    assert Machine().destination(AddressingMode.DIRECT, operand) == AddressWord(100)


def test_pre_decrement_modifies_before_evaluating():
    machine = Machine()
    operand = ValueOperand(100, Index(2, Modification.PRE_DECREMENT))

    assert machine.destination(AddressingMode.DIRECT, operand) == AddressWord(99)
    assert machine.registers[2].signed == -1


def test_addressing_modes():
    machine = machine_for("HIA.i R1, 10\nHIA.a R2, 10\nHIA.d R3, 10\nHIA.w R4, 10\nSTP\nRESGR 5\n12\n0\n99")

    machine.run()

    assert signed_registers(machine)[1:5] == [99, 10, 12, 10]


def test_indirect_store_and_jump():
    machine = machine_for("HIA.w R1, 7\nBIG.i R1, ptr\nSPR.i target\nSTP\nptr: 20\ntarget: 7\nSTP\nHIA.w R5, 1\nSTP")

    machine.run()

    assert machine.memory[20].signed == 7
    assert machine.registers[5].signed == 1


def test_arithmetic_sets_condition():
    machine = machine_for("HIA.w R1, 3\nAFT.w R1, 5\nSTP")
    machine.run()

    assert machine.registers[1].signed == -2
    assert machine.condition is ConditionState.NEGATIVE


@pytest.mark.parametrize(
    "source, expected",
    [
        ("HIA.w R1, 6\nOPT.w R1, 4", 10),
        ("HIA.w R1, 6\nVER.w R1, -4", -24),
        ("HIA.w R1, -7\nDEL.w R1, 2", -3),
        ("HIA.w R1, -7\nMOD.w R1, 2", -1),
        ("HIA.w R1, 6\nHIA.w R2, 4\nAFT R1, R2", 2),
    ],
)
def test_arithmetic(source, expected):
    machine = machine_for(source + "\nSTP")
    machine.run()

    assert machine.registers[1].signed == expected


@pytest.mark.parametrize("instruction", ["DEL", "MOD"])
def test_division_by_zero(instruction):
    machine = machine_for(f"HIA.w R1, 17\n{instruction}.w R1, 0\nSTP")

    assert machine.run() is MachineState.HALTED
    assert machine.registers[1] == MachineWord.zero()
    assert machine.condition is ConditionState.ZERO


def test_subroutine_jump_and_return():
    machine = machine_for("SBR sub\nSTP\nsub: KTG")

    machine.execute_next()

    assert machine.pc == AddressWord(2)
    assert machine.registers[9].signed == 8999
    assert machine.memory[8999].signed == 1

    machine.execute_next()

    assert machine.pc == AddressWord(1)
    assert machine.registers[9].signed == 9000


def test_subroutine_jump_pushes_before_evaluating_destination():
    machine = machine_for("SBR 0(R9)\nSTP")

    machine.execute_next()

    assert machine.registers[9].signed == 8999
    assert machine.pc == AddressWord(8999)


def test_push_and_pop():
    machine = machine_for("HIA.w R1, 5\nBST R1\nHIA.w R1, 0\nHST R2\nSTP")

    machine.run()

    assert machine.registers[2].signed == 5
    assert machine.registers[9].signed == 9000
    assert machine.memory[8999].signed == 5


def test_store_evaluates_destination_before_reading_register():
    machine = machine_for("BST R9\nSTP")

    machine.execute_next()

    assert machine.registers[9].signed == 8999
    assert machine.memory[8999].signed == 8999


def test_store_updates_condition():
    machine = machine_for("HIA.w R1, -3\nVGL.w R1, -3\nBIG R1, 10\nSTP")

    machine.execute_next()
    machine.execute_next()
    assert machine.condition is ConditionState.ZERO

    machine.execute_next()
    assert machine.condition is ConditionState.NEGATIVE


def test_input_and_output():
    machine = machine_for("LEZ\nVER.w R0, 2\nDRU\nSTP")

    machine.execute_next()
    assert machine.state is MachineState.WAITING_FOR_INPUT

    with pytest.raises(MachineStateError):
        machine.execute_next()

    machine.provide_input(MachineWord.wrap(21))

    assert machine.state is MachineState.READY
    assert machine.condition is ConditionState.POSITIVE

    machine.run()

    assert [(entry.kind, entry.word.signed) for entry in machine.io_log] == [("input", 21), ("output", 42)]


def test_input_only_when_waiting():
    with pytest.raises(MachineStateError):
        Machine().provide_input(MachineWord(1))


def test_run_with_queued_inputs():
    machine = machine_for("LEZ\nBIG R0, 20\nLEZ\nOPT R0, 20\nDRU\nSTP")

    assert machine.run([3, 4]) is MachineState.HALTED
    assert machine.io_log[-1].word.signed == 7


def test_run_stops_waiting_without_inputs():
    machine = machine_for("LEZ\nSTP")

    assert machine.run() is MachineState.WAITING_FOR_INPUT


def test_run_respects_step_limit():
    machine = machine_for("loop: SPR loop")

    assert machine.run(max_steps=25) is MachineState.READY
    assert machine.steps == 25


def test_invalid_word_crashes_the_machine():
    machine = Machine([MachineWord(5000000000)])

    machine.execute_next()

    assert machine.state is MachineState.CRASHED
    assert isinstance(machine.error, DecodeError)

    with pytest.raises(MachineStateError):
        machine.execute_next()


def test_halted_machine_cannot_step():
    machine = machine_for("STP")
    machine.execute_next()

    assert machine.state is MachineState.HALTED

    with pytest.raises(MachineStateError):
        machine.execute_next()


def test_executed_statement():
    machine = machine_for("RESGR 0\nHIA.w R1, 1\nSTP")

    assert machine.executed_statement is None

    machine.execute_next()

    assert machine.previous_pc == AddressWord(0)
    assert machine.executed_statement == 1


def test_memory_bins_are_materialised_on_write():
    memory = Memory()

    assert memory[5000] == MachineWord.zero()
    assert memory.materialised_bins == []

    memory[130] = MachineWord(7)

    assert memory.materialised_bins == [1]
    assert memory[130] == MachineWord(7)
    assert memory[129] == MachineWord.zero()


def test_memory_rejects_untruncated_addresses():
    memory = Memory()

    with pytest.raises(IndexError):
        memory[10000]

    with pytest.raises(TypeError):
        memory[MachineWord(5)]


def test_load_forgets_program():
    machine = machine_for("HIA.w R1, 1\nSTP")

    machine.load([MachineWord(9900000000)])
    machine.execute_next()

    assert machine.program is None
    assert machine.executed_statement is None
