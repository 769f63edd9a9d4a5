import pytest

from drama_words import ADDRESS_SPACE, AddressWord, CommandWord, MachineWord


@pytest.mark.parametrize("value", [-123456, -5001, -5000, -1, 0, 1, 4999, 5000, 9999, 10000, 987654])
def test_address_wrap_stays_in_signed_range(value):
    word = AddressWord.wrap(value)

    assert -5000 <= word.signed < 5000
    assert AddressWord.wrap(value + 10000) == word


def test_signed_view():
    assert AddressWord(9999).signed == -1
    assert AddressWord(4999).signed == 4999
    assert AddressWord(5000).signed == -5000
    assert MachineWord(9999999999).signed == -1


def test_out_of_range_raw_values_are_rejected():
    with pytest.raises(ValueError):
        AddressWord(ADDRESS_SPACE)

    with pytest.raises(ValueError):
        MachineWord(-1)

    with pytest.raises(ValueError):
        AddressWord.truncate(-1)


def test_truncate_drops_high_digits():
    assert AddressWord.truncate(123456) == AddressWord(3456)


def test_increment_and_decrement_wrap():
    assert AddressWord(9999).incremented() == AddressWord(0)
    assert AddressWord(0).decremented() == AddressWord(9999)
    assert MachineWord(41).incremented().unsigned == 42


def test_digit_access():
    word = MachineWord(1234567890)

    assert word.digits(8, 9) == 12
    assert word.digits(0, 3) == 7890
    assert word.digits(5) == 5
    assert word.with_digits(4, 4, 0) == MachineWord(1234507890)

    with pytest.raises(ValueError):
        word.with_digits(0, 1, 100)

    with pytest.raises(IndexError):
        word.digits(10)


def test_arithmetic_wraps():
    assert MachineWord.wrap(4999999999).add(1).signed == -5000000000
    assert MachineWord.wrap(-5000000000).subtract(1).signed == 4999999999
    assert MachineWord.wrap(100000).multiply(100000).unsigned == 0


def test_division_truncates_toward_zero():
    assert MachineWord.wrap(-7).divide(2).signed == -3
    assert MachineWord.wrap(7).divide(-2).signed == -3
    assert MachineWord.wrap(-7).remainder(2).signed == -1
    assert MachineWord.wrap(7).remainder(-2).signed == 1


def test_division_by_zero_is_zero():
    assert MachineWord.wrap(-7).divide(0) == MachineWord.zero()
    assert MachineWord.wrap(7).remainder(0) == MachineWord.zero()


def test_conversions_between_sizes():
    assert AddressWord.truncating(MachineWord(1234567890)) == AddressWord(7890)
    assert MachineWord.from_address(AddressWord(9999)).signed == 9999


def test_equality_and_formatting():
    assert AddressWord(5) != MachineWord(5)
    assert AddressWord(5) == AddressWord(5)
    assert len({AddressWord(5), AddressWord(5)}) == 1
    assert str(AddressWord(5)) == "0005"
    assert str(MachineWord(42)) == "0000000042"


def test_command_word_fields():
    word = CommandWord()
    word.opcode = 11
    word.addressing_mode = 3
    word.indexing_mode = 4
    word.register = 1
    word.index_register = 2
    word.address = 100

    assert word.base == MachineWord(1134120100)

    unpacked = CommandWord(MachineWord(3321200007))

    assert unpacked.opcode == 33
    assert unpacked.addressing_mode == 2
    assert unpacked.indexing_mode == 1
    assert unpacked.register == 2
    assert unpacked.index_register == 0
    assert unpacked.address == 7
