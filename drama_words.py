# DRAMAS (drama-s)
# An assembler and emulator for the DRAMA teaching machine.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
"""
Fixed width decimal words.

Every value the machine handles is a decimal word of n digits, the raw
(unsigned) value always stays in [0, 10^n). The lower half of that range
is read as positive, the upper half as negative, so 9999 is -1 as an
address word and 9999999999 is -1 as a machine word.

Words are immutable, everything that changes a word returns a new one.
"""
from typing import *


class Word:
    # overwritten by the concrete sizes
    digit_count: int = 0
    upper_bound: int = 1

    __slots__ = ("_raw",)

    def __init__(self, raw: int = 0):
        if not 0 <= raw < self.upper_bound:
            raise ValueError(f"{raw} is not representable in {self.digit_count} digits")

        self._raw = int(raw)

    @classmethod
    def wrap(cls, signed: int):
        """Creates a word from any integer, wrapping it into range."""
        return cls(int(signed) % cls.upper_bound)

    @classmethod
    def truncate(cls, unsigned: int):
        """Creates a word from a nonnegative integer, dropping the high digits."""
        if unsigned < 0:
            raise ValueError(f"Truncating negative value {unsigned}")

        return cls(int(unsigned) % cls.upper_bound)

    @classmethod
    def zero(cls):
        return cls(0)

    @property
    def unsigned(self) -> int:
        return self._raw

    @property
    def signed(self) -> int:
        if self._raw < self.upper_bound // 2:
            return self._raw

        return self._raw - self.upper_bound

    def incremented(self):
        return type(self)((self._raw + 1) % self.upper_bound)

    def decremented(self):
        return type(self)((self._raw - 1) % self.upper_bound)

    # digit access, digit 0 is the least significant one

    def digits(self, lo: int, hi: Optional[int] = None) -> int:
        if hi is None:
            hi = lo

        if not 0 <= lo <= hi < self.digit_count:
            raise IndexError(f"Digits {lo}..{hi} out of range for a {self.digit_count} digit word")

        return (self._raw // 10 ** lo) % 10 ** (hi - lo + 1)

    def with_digits(self, lo: int, hi: Optional[int], value: int):
        if hi is None:
            hi = lo

        if not 0 <= lo <= hi < self.digit_count:
            raise IndexError(f"Digits {lo}..{hi} out of range for a {self.digit_count} digit word")

        if not 0 <= value < 10 ** (hi - lo + 1):
            raise ValueError(f"{value} does not fit in digits {lo}..{hi}")

        low = self._raw % 10 ** lo
        high = self._raw // 10 ** (hi + 1) * 10 ** (hi + 1)

        return type(self)(low + value * 10 ** lo + high)

    # wrapping arithmetic on the signed values

    def add(self, other: int):
        return self.wrap(self.signed + other)

    def subtract(self, other: int):
        return self.wrap(self.signed - other)

    def multiply(self, other: int):
        return self.wrap(self.signed * other)

    def divide(self, other: int):
        # division by zero is defined as zero, the quotient truncates toward zero
        if other == 0:
            return self.zero()

        quotient = abs(self.signed) // abs(other)

        if (self.signed < 0) != (other < 0):
            quotient = -quotient

        return self.wrap(quotient)

    def remainder(self, other: int):
        # same as divide, the remainder keeps the sign of the numerator
        if other == 0:
            return self.zero()

        remainder = abs(self.signed) % abs(other)

        if self.signed < 0:
            remainder = -remainder

        return self.wrap(remainder)

    def __eq__(self, other):
        if isinstance(other, Word):
            return type(self) == type(other) and self._raw == other._raw

        return NotImplemented

    def __hash__(self):
        return hash((type(self).__name__, self._raw))

    def __int__(self):
        return self._raw

    def __index__(self):
        return self._raw

    def __str__(self):
        return f"{self._raw:0{self.digit_count}d}"

    def __repr__(self):
        return f"{type(self).__name__}({self})"


class AddressWord(Word):
    digit_count = 4
    upper_bound = 10 ** 4

    __slots__ = ()

    @classmethod
    def truncating(cls, word: Word):
        """The only narrowing conversion, used whenever a value becomes an address."""
        return cls(word.unsigned % cls.upper_bound)


class MachineWord(Word):
    digit_count = 10
    upper_bound = 10 ** 10

    __slots__ = ()

    @classmethod
    def from_address(cls, address: AddressWord):
        return cls(address.unsigned)


ADDRESS_SPACE = AddressWord.upper_bound


class CommandWord:
    """
    A machine word read as a command.

    digits  9 8 | 7 | 6 | 5 | 4 | 3 2 1 0
            op  | am| im| rc| ix| address

    op: opcode, am: addressing mode, im: indexing mode,
    rc: register or condition, ix: index (or second) register
    """

    fields = {
        "opcode": (8, 9),
        "addressing_mode": (7, 7),
        "indexing_mode": (6, 6),
        "register": (5, 5),
        "index_register": (4, 4),
        "address": (0, 3),
    }

    def __init__(self, base: Optional[MachineWord] = None):
        if base is None:
            base = MachineWord.zero()

        self.base = base

    def __getattr__(self, name):
        fields = type(self).fields

        if name not in fields:
            raise AttributeError(name)

        lo, hi = fields[name]

        return self.base.digits(lo, hi)

    def __setattr__(self, name, value):
        fields = type(self).fields

        if name not in fields:
            super().__setattr__(name, value)
            return

        lo, hi = fields[name]
        self.base = self.base.with_digits(lo, hi, value)

    def __repr__(self):
        return (
            f"CommandWord({self.opcode:02} {self.addressing_mode} {self.indexing_mode} "
            f"{self.register} {self.index_register} {self.address:04})"
        )
