"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

ARMv8-A stage 1 translation descriptors for the 64 KiB granule, as consumed by
the kernel's two-level table: level 2 entries point to level 3 tables, level 3
entries map 64 KiB pages.
"""

# Standard Python deps
import math
from enum import IntEnum

# Internal deps
from . import mmap
from .errors import InvalidAttribute, InvalidPermissions, MisalignedRegion
from .register import Bitfield, Register
from .util import kb, mb, is_aligned


"""
Translation granule, i.e. the size of a level 3 page.
"""
granule_64kib = kb(64)
granule_64kib_shift = int(math.log(granule_64kib, 2))


"""
Area covered by a single level 2 entry.
"""
granule_512mib = mb(512)
granule_512mib_shift = int(math.log(granule_512mib, 2))
granule_512mib_mask = granule_512mib - 1


"""
Each level 3 table covers one level 2 entry.
"""
lvl3_entries_per_table = granule_512mib // granule_64kib


"""
AttrIndx [1] = Normal Inner/Outer Write-Back RAWA, as programmed into MAIR_EL1
by the kernel.
"""
MAIR_NORMAL = 1


class VALID(IntEnum):
    FALSE = 0
    TRUE = 1


def _output_address( addr:int ) -> int:
    if not is_aligned(addr, granule_64kib):
        raise MisalignedRegion(f"address {hex(addr)} is not aligned to {hex(granule_64kib)}")
    return addr >> granule_64kib_shift


class Stage1TableDescriptor(Register):
    """
    Level 2 descriptor pointing to a level 3 table.
    """
    class TYPE(IntEnum):
        BLOCK = 0
        TABLE = 1

    _next_level_table_addr = Bitfield(16, 32, name="next_level_table_addr")
    type = Bitfield(1, 1)
    valid = Bitfield(0, 1)

    @property
    def next_level_table_addr( self ) -> int:
        return self._next_level_table_addr << granule_64kib_shift

    @next_level_table_addr.setter
    def next_level_table_addr( self, addr:int ) -> None:
        self._next_level_table_addr = _output_address(addr)


class Stage1PageDescriptor(Register):
    """
    Level 3 descriptor mapping a single page.
    """
    class TYPE(IntEnum):
        RESERVED_INVALID = 0
        PAGE = 1

    class SH(IntEnum):
        INNER_SHAREABLE = 0b11

    class AP(IntEnum):
        RW_EL1 = 0b00
        RO_EL1 = 0b10

    uxn = Bitfield(54, 1)
    pxn = Bitfield(53, 1)
    _output_addr = Bitfield(16, 32, name="output_addr")
    af = Bitfield(10, 1)
    sh = Bitfield(8, 2)
    ap = Bitfield(6, 2)
    attr_indx = Bitfield(2, 3)
    type = Bitfield(1, 1)
    valid = Bitfield(0, 1)

    @property
    def output_addr( self ) -> int:
        return self._output_addr << granule_64kib_shift

    @output_addr.setter
    def output_addr( self, addr:int ) -> None:
        self._output_addr = _output_address(addr)


def set_attributes( desc:Stage1PageDescriptor, attributes:mmap.AttributeFields ) -> None:
    """
    Translate generic memory attributes into page descriptor fields.
    """
    if attributes.memory_type == mmap.MEMORY_TYPE.cacheable_dram:
        desc.sh = Stage1PageDescriptor.SH.INNER_SHAREABLE
        desc.attr_indx = MAIR_NORMAL
    else:
        raise InvalidAttribute(f"invalid memory type: {attributes.memory_type}")

    if attributes.access_permission == mmap.ACCESS_PERMISSION.read_only:
        desc.ap = Stage1PageDescriptor.AP.RO_EL1
    elif attributes.access_permission == mmap.ACCESS_PERMISSION.read_write:
        desc.ap = Stage1PageDescriptor.AP.RW_EL1
    else:
        raise InvalidPermissions(f"invalid access permission: {attributes.access_permission}")

    desc.pxn = int(bool(attributes.execute_never))

    """
    The kernel never runs unprivileged code through these mappings.
    """
    desc.uxn = 1


def set_lvl3_entry( desc:Stage1PageDescriptor, output_addr:int, attributes:mmap.AttributeFields ) -> None:
    desc.output_addr = output_addr
    desc.af = VALID.TRUE  # never take access flag faults
    desc.type = Stage1PageDescriptor.TYPE.PAGE
    desc.valid = VALID.TRUE

    set_attributes(desc, attributes)
