import pytest

from assembler import Script, assemble, generate_words
from drama_words import MachineWord
from grammar import (
    AddressSpaceOverflowError,
    CommandFormatError,
    DisallowedAddressOperatorError,
    DuplicateSymbolError,
    UndefinedSymbolError,
    UnrecognisedSourceError,
)
from standard_instructions import instructions


def raw_words(program):
    return [word.unsigned for word in program.words]


def test_labels_bind_to_the_next_statement():
    program = assemble("start: HIA.w R1, 1\nloop: OPT.w R1, 1\nSPR loop\nend:")

    assert program.addresses_by_symbol == {"start": 0, "loop": 1, "end": 3}
    assert raw_words(program)[2] == 3221000001


def test_values_and_allocations():
    program = assemble("RESGR 3\n7\nx: -1\nRESGR 0\ny: STP")

    assert raw_words(program) == [0, 0, 0, 7, 9999999999, 9900000000]
    assert program.addresses_by_symbol == {"x": 4, "y": 5}
    assert [program.address_of_statement(i) for i in range(5)] == [0, 3, 4, 5, 5]


def test_statement_lookup_by_address():
    program = assemble("RESGR 3\n7\nRESGR 0\nSTP")

    assert program.statement_at(0) == 0
    assert program.statement_at(2) == 0
    assert program.statement_at(3) == 1
    assert program.statement_at(4) == 3
    assert program.statement_at(5) is None


def test_address_arithmetic():
    program = assemble("SPR end - 1 + 2\nHIA R1, x-1\nend: STP\nx: 5")

    assert raw_words(program)[:2] == [3221000003, 1131100002]


def test_indexed_operands():
    program = assemble("HIA R1, 100(R2+)\nBIG R1, -1(-R3)")

    assert raw_words(program) == [1134120100, 1225139999]


def test_case_insensitive_mnemonics_and_registers():
    assert raw_words(assemble("hia.W r1, 5")) == [1111100005]


def test_comparison_names_are_conditions():
    assert raw_words(assemble("VSP GR, 0")) == raw_words(assemble("VSP POS, 0"))


def test_comments_and_program_terminator():
    program = assemble("HIA.w R1, 1 | one\n\n| a full line\nSTP\nEINDPR\nthis is not assembled !!!")

    assert len(program) == 2


def test_statements_separated_by_semicolons():
    assert raw_words(assemble("LEZ; DRU; STP")) == [7100000000, 7300000000, 9900000000]


def test_undefined_symbol_names_the_statement():
    with pytest.raises(UndefinedSymbolError) as e:
        assemble("HIA R1, 5\nSPR nowhere")

    assert e.value.statement_index == 1
    assert e.value.symbol == "nowhere"
    assert e.value.span == (14, 21)


def test_undefined_symbol_leaves_no_program():
    script = Script("HIA R1, 5\nSPR nowhere")

    assert script.program is None
    assert isinstance(script.error, UndefinedSymbolError)
    assert script.error_span == (14, 21)
    assert "line 2" in script.describe_error()


def test_duplicate_label():
    with pytest.raises(DuplicateSymbolError) as e:
        assemble("a: STP\na: STP")

    assert e.value.symbol == "a"


@pytest.mark.parametrize("source", ["STP R1", "OPT R1", "BIG.w R1, 5", "SPR.a 5", "VSP R1, 5", "KTG.d"])
def test_incorrect_argument_format(source):
    with pytest.raises(CommandFormatError) as e:
        assemble(source)

    assert e.value.statement_index == 0
    assert e.value.instruction is instructions[source.split()[0].split(".")[0]]


def test_address_space_overflow():
    with pytest.raises(AddressSpaceOverflowError):
        assemble("RESGR 9999\nSTP")

    assert len(assemble("RESGR 9998\nSTP")) == 9999


def test_first_unrecognised_source_is_reported():
    with pytest.raises(UnrecognisedSourceError) as e:
        assemble("STP\nHIA R1, 5 * 2\n@@@")

    assert isinstance(e.value.source.error, DisallowedAddressOperatorError)
    assert e.value.span == (4, 17)


def test_assembly_is_deterministic():
    source = "loop: LEZ\nVGL.w R0, 0\nVSP NUL, end\nDRU\nSPR loop\nend: STP"

    first, second = assemble(source), assemble(source)

    assert first.words == second.words
    assert first.addresses_by_symbol == second.addresses_by_symbol


def test_word_output():
    assert generate_words(assemble("STP\n-1")) == "9900000000\n9999999999\n"


def test_listing():
    script = Script("start: HIA.w R1, 1\nRESGR 2\nend:")
    listing = script.listing()

    assert "start:" in listing
    assert "end:" in listing
    assert "0000 | 1111100001 |     HIA.w R1, 1" in listing
    assert "HIA.w R1, 1" in listing.splitlines()[1]
    assert "0002 | 0000000000" in listing


def test_program_words_are_machine_words():
    assert all(isinstance(word, MachineWord) for word in assemble("1\n2").words)
