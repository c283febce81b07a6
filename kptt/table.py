"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT
"""

# Standard Python deps
import struct
from typing import Iterator, List, Sequence, Tuple

# Internal deps
from . import log
from . import mmu
from .bsp import PlatformFacts
from .errors import InvalidPlatformConfig, OutOfPhysicalRange, SizeMismatch, VirtualAddressOutOfRange
from .mmap import AttributeFields
from .register import Register
from .util import is_aligned, to_hex_underscore


class Table:
    """
    Class representing an array of descriptors that knows its physical location.
    """
    def __init__( self, addr:int, entries:List[Register] ):
        self.addr = addr
        self.entries = entries


    def __len__( self ) -> int:
        return len(self.entries)


    def __getitem__( self, idx:int ) -> Register:
        return self.entries[idx]


    def __setitem__( self, idx:int, desc:Register ) -> None:
        self.entries[idx] = desc


    def __iter__( self ) -> Iterator[Register]:
        return iter(self.entries)


    def size_in_bytes( self ) -> int:
        return len(self.entries) * Register.SIZE_IN_BYTES


class TranslationTable:
    """
    Class representing the kernel's FixedSizeTranslationTable: all level 3
    tables, followed in memory by the level 2 table pointing at them.
    """

    def __init__( self, platform:PlatformFacts ):
        self.platform = platform
        self._do_sanity_checks()

        num_lvl2_tables = platform.kernel_virt_addr_space_size >> mmu.granule_512mib_shift

        self.lvl3 = self._new_lvl3(num_lvl2_tables, platform.phys_addr_of_kernel_tables)

        lvl2_phys_start_addr = platform.phys_addr_of_kernel_tables + sum(t.size_in_bytes() for t in self.lvl3)
        self.lvl2 = Table(lvl2_phys_start_addr, [mmu.Stage1TableDescriptor() for _ in range(num_lvl2_tables)])

        self._populate_lvl2_entries()
        log.debug(f"allocated {num_lvl2_tables} level 3 tables @ {hex(self.lvl3[0].addr)}, "
                  f"level 2 table @ {hex(self.lvl2.addr)}")


    def _do_sanity_checks( self ) -> None:
        """
        These are compile-time contracts of the kernel, nothing to recover from.
        """
        p = self.platform
        if p.kernel_granule != mmu.granule_64kib:
            raise InvalidPlatformConfig(f"kernel granule {hex(p.kernel_granule)} is not 64 KiB")
        if p.kernel_virt_addr_space_size <= 0 or p.kernel_virt_addr_space_size % mmu.granule_512mib:
            raise InvalidPlatformConfig(
                f"kernel virtual address space size {hex(p.kernel_virt_addr_space_size)} "
                f"is not a multiple of 512 MiB"
            )
        if not is_aligned(p.phys_addr_of_kernel_tables, mmu.granule_64kib):
            raise InvalidPlatformConfig(
                f"kernel tables at {hex(p.phys_addr_of_kernel_tables)} are not 64 KiB aligned"
            )


    @staticmethod
    def _new_lvl3( num_lvl2_tables:int, start_addr:int ) -> List[Table]:
        tables = []
        for _ in range(num_lvl2_tables):
            t = Table(start_addr, [mmu.Stage1PageDescriptor() for _ in range(mmu.lvl3_entries_per_table)])
            start_addr += t.size_in_bytes()
            tables.append(t)
        return tables


    def _populate_lvl2_entries( self ) -> None:
        for i, desc in enumerate(self.lvl2):
            desc.next_level_table_addr = self.lvl3[i].addr
            desc.type = mmu.Stage1TableDescriptor.TYPE.TABLE
            desc.valid = mmu.VALID.TRUE


    def _lvl2_lvl3_index_from( self, addr:int ) -> Tuple[int, int]:
        offset = addr - self.platform.kernel_virt_start_addr

        lvl2_index = offset >> mmu.granule_512mib_shift
        lvl3_index = (offset & mmu.granule_512mib_mask) >> mmu.granule_64kib_shift

        if not 0 <= lvl2_index < len(self.lvl2):
            raise VirtualAddressOutOfRange(
                f"virtual address {to_hex_underscore(addr)} is outside the kernel's address space"
            )
        return lvl2_index, lvl3_index


    def map_at( self, virt_region:Sequence[int], phys_region:Sequence[int], attributes:AttributeFields ) -> None:
        """
        Map each virtual page to the physical page at the same position. All
        checks happen before the first entry is written.
        """
        if not virt_region:
            return

        if len(virt_region) != len(phys_region):
            raise SizeMismatch(f"{len(virt_region)} virtual pages vs {len(phys_region)} physical pages")
        if phys_region[-1] > self.platform.phys_addr_space_end_page:
            raise OutOfPhysicalRange(
                f"physical page {to_hex_underscore(phys_region[-1])} is beyond the end of the "
                f"physical address space {to_hex_underscore(self.platform.phys_addr_space_end_page)}"
            )

        updates = []
        for virt_page, phys_page in zip(virt_region, phys_region):
            lvl2_index, lvl3_index = self._lvl2_lvl3_index_from(virt_page)
            desc = mmu.Stage1PageDescriptor()
            mmu.set_lvl3_entry(desc, phys_page, attributes)
            updates.append((lvl2_index, lvl3_index, desc))

        for lvl2_index, lvl3_index, desc in updates:
            log.debug(f"lvl2[{lvl2_index}] lvl3[{lvl3_index}] = {hex(desc.value())}")
            self.lvl3[lvl2_index][lvl3_index] = desc


    def size_in_bytes( self ) -> int:
        return sum(t.size_in_bytes() for t in self.lvl3) + self.lvl2.size_in_bytes()


    def serialize( self ) -> bytes:
        """
        The table exactly as the MMU reads it: every level 3 descriptor in table
        order, then every level 2 descriptor, each a little-endian uint64.
        """
        data = [d.value() for t in self.lvl3 for d in t] + [d.value() for d in self.lvl2]
        return struct.pack(f"<{len(data)}Q", *data)


    def base_address( self ) -> int:
        """
        Physical address of the first level 2 entry, which the kernel loads
        into TTBR at boot.
        """
        return self.lvl2.addr


    def base_address_bytes( self ) -> bytes:
        return struct.pack("<Q", self.base_address())


    def __str__( self ) -> str:
        string = f"level 2 table @ {hex(self.lvl2.addr)}\n"
        for i, desc in enumerate(self.lvl2):
            lvl3 = self.lvl3[i]
            mapped = sum(1 for d in lvl3 if d.valid)
            va_base = self.platform.kernel_virt_start_addr + (i << mmu.granule_512mib_shift)
            string += "        [#{:>4}] {} -> level 3 table @ {}, {} pages mapped\n".format(
                i,
                to_hex_underscore(va_base, with_leading_zeros=True),
                hex(desc.next_level_table_addr),
                mapped,
            )
        return string
