"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT
"""

# Standard Python deps
from typing import Dict

# Internal deps
from .errors import BitfieldOutOfRange


class Bitfield:
    """
    Class representing a named bitfield within a register.

    Declared as a class attribute of a Register subclass; assigning to the
    attribute on an instance updates only the bits covered by this field.
    """
    def __init__( self, offset:int, width:int, name:str=None ):
        self.offset = offset
        self.width = width
        self.mask = (1 << width) - 1
        self.name = name


    def __set_name__( self, owner, name:str ) -> None:
        if self.name is None:
            self.name = name


    def __get__( self, reg, owner=None ):
        if reg is None:
            return self
        return (reg._value >> self.offset) & self.mask


    def __set__( self, reg, bits:int ) -> None:
        if bits & ~self.mask:
            raise BitfieldOutOfRange(f"input out of range: {self.name} = {hex(bits)}")

        """
        Clear the field, then set it.
        """
        reg._value &= ~(self.mask << self.offset)
        reg._value |= bits << self.offset


class Register:
    """
    Class representing a 64-bit register or hardware descriptor.
    """
    SIZE_IN_BYTES = 8

    def __init__( self, value:int=0 ):
        self._value = value


    def value( self ) -> int:
        """
        The backing integer, unmodified.
        """
        return self._value


    def __int__( self ) -> int:
        return self._value


    @classmethod
    def bitfields( cls ) -> Dict[str, Bitfield]:
        """
        All bitfields declared on this register class and its bases.
        """
        found = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                if isinstance(attr, Bitfield):
                    found[name] = attr
        return found


    def fields( self ) -> Dict[str, int]:
        """
        Decode every bitfield of this register by name. Fields stored
        pre-shifted are reported as stored.
        """
        return {f.name: getattr(self, attr) for attr, f in self.bitfields().items()}


    def __repr__( self ) -> str:
        return f"{type(self).__name__}({hex(self._value)})"
