"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT
"""

# Internal deps
from .errors import InvalidAlignment


def kb( n:int ) -> int:
    return n * 1024


def mb( n:int ) -> int:
    return n * 1024 * 1024


def is_power_of_two( n:int ) -> bool:
    """Return True if n is a power of two."""
    return n > 0 and n & (n - 1) == 0


def _check_alignment( alignment:int ) -> None:
    if not is_power_of_two(alignment):
        raise InvalidAlignment(f"alignment {alignment:#x} is not a power of two")


def is_aligned( n:int, alignment:int ) -> bool:
    _check_alignment(alignment)
    return n & (alignment - 1) == 0


def align_up( n:int, alignment:int ) -> int:
    """Round n up to the next multiple of alignment."""
    _check_alignment(alignment)
    return (n + alignment - 1) & ~(alignment - 1)


def to_hex_underscore( n:int, with_leading_zeros:bool=False ) -> str:
    """
    Format n as hex in groups of four digits, e.g. 0x4001_0000.
    With leading zeros the value is padded to a full 64-bit word.
    """
    return f"0x{n:019_x}" if with_leading_zeros else f"0x{n:_x}"
