"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Board support: facts about the target platform, resolved from the kernel ELF.
"""

# Standard Python deps
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

# Internal deps
from . import log
from . import mmu
from .elf import KernelElf
from .errors import UnsupportedPlatform
from .util import to_hex_underscore


"""
Last page of the physical address space per board, i.e. the end of the MMIO
window in the kernel's BSP memory map.
"""
PHYS_ADDR_SPACE_END = {
    "rpi3": 0x4001_0000,
    "rpi4": 0xFF85_0000,
}


"""
Order in which the boards' `pub const END` lines appear in the BSP memory.rs.
"""
_MEMORY_SRC_ORDER = ["rpi3", "rpi4"]


class OneSymbol:
    """
    Lookup of a single symbol.
    """
    def __init__( self, name:str ):
        self.name = name

    def resolve( self, kernel_elf:KernelElf ) -> int:
        return kernel_elf.symbol_value(self.name)

    def to_phys( self, kernel_elf:KernelElf ) -> int:
        return kernel_elf.virt_to_phys(self.resolve(kernel_elf))


class SymbolSet:
    """
    Lookup of several symbols keyed by what they are used for.
    """
    def __init__( self, names:Dict[str, str] ):
        self.names = names

    def resolve( self, kernel_elf:KernelElf ) -> Dict[str, int]:
        return {key: kernel_elf.symbol_value(name) for key, name in self.names.items()}

    def to_phys( self, kernel_elf:KernelElf ) -> Dict[str, int]:
        return {key: kernel_elf.virt_to_phys(addr) for key, addr in self.resolve(kernel_elf).items()}


KERNEL_LAYOUT = SymbolSet({
    "kernel_virt_addr_space_size": "__kernel_virt_addr_space_size",
    "kernel_virt_start_addr": "__kernel_virt_start_addr",
})

KERNEL_TABLES = OneSymbol("KERNEL_TABLES")
PHYS_KERNEL_TABLES_BASE_ADDR = OneSymbol("PHYS_KERNEL_TABLES_BASE_ADDR")

BOOT_CORE_STACK = SymbolSet({
    "start": "__boot_core_stack_start",
    "end_exclusive": "__boot_core_stack_end_exclusive",
})


@dataclass(frozen=True)
class PlatformFacts:
    """
    Everything the table builder and the patcher need to know about the board
    and the kernel's compiled-in memory layout.
    """
    board: str
    kernel_granule: int
    kernel_virt_addr_space_size: int
    kernel_virt_start_addr: int
    virt_addr_of_kernel_tables: int
    phys_addr_of_kernel_tables: int
    kernel_tables_offset_in_file: int
    virt_addr_of_phys_kernel_tables_base_addr: int
    phys_addr_of_phys_kernel_tables_base_addr: int
    phys_kernel_tables_base_addr_offset_in_file: int
    phys_addr_space_end_page: int
    boot_core_stack: Optional[Dict[str, int]] = None     # start, end_exclusive, phys_start


def phys_addr_space_end_page( board:str, memory_src:Optional[str]=None ) -> int:
    """
    End of the board's physical address space, either built in or parsed from
    the `pub const END` constants of the kernel's BSP memory.rs.
    """
    if board not in PHYS_ADDR_SPACE_END:
        raise UnsupportedPlatform(f"unsupported platform: {board}")

    if memory_src is None:
        return PHYS_ADDR_SPACE_END[board]

    with open(memory_src, "r") as src:
        ends: List[int] = []
        for line in src:
            if "pub const END" not in line:
                continue
            x = re.search(r"0x[0-9A-Fa-f_]+", line)
            if x:
                ends.append(int(x.group(0).replace("_", ""), 16))

    idx = _MEMORY_SRC_ORDER.index(board)
    if idx >= len(ends):
        raise UnsupportedPlatform(f"{memory_src}: no END constant for {board}")
    log.debug(f"{board} END parsed from {memory_src}: {hex(ends[idx])}")
    return ends[idx]


def _covered_by_load_segment( kernel_elf:KernelElf, start:int, end:int ) -> bool:
    return any(s.vma_in(start) and end <= s.vaddr + s.memsz for s in kernel_elf.load_segments())


def platform_facts( kernel_elf:KernelElf, board:str, memory_src:Optional[str]=None ) -> PlatformFacts:
    """
    Resolve the facts for a Raspberry Pi 3 or 4 kernel.
    """
    end_page = phys_addr_space_end_page(board, memory_src)

    layout = KERNEL_LAYOUT.resolve(kernel_elf)
    virt_addr_of_kernel_tables = KERNEL_TABLES.resolve(kernel_elf)
    virt_addr_of_base_addr = PHYS_KERNEL_TABLES_BASE_ADDR.resolve(kernel_elf)

    boot_core_stack = None
    if all(kernel_elf.find_symbol_if_exists(n) for n in BOOT_CORE_STACK.names.values()):
        stack = BOOT_CORE_STACK.resolve(kernel_elf)
        if not _covered_by_load_segment(kernel_elf, stack["start"], stack["end_exclusive"]):
            """
            Not part of any segment, so use the kernel's linear offset.
            """
            stack["phys_start"] = stack["start"] - layout["kernel_virt_start_addr"]
            boot_core_stack = stack

    facts = PlatformFacts(
        board=board,
        kernel_granule=mmu.granule_64kib,
        kernel_virt_addr_space_size=layout["kernel_virt_addr_space_size"],
        kernel_virt_start_addr=layout["kernel_virt_start_addr"],
        virt_addr_of_kernel_tables=virt_addr_of_kernel_tables,
        phys_addr_of_kernel_tables=KERNEL_TABLES.to_phys(kernel_elf),
        kernel_tables_offset_in_file=kernel_elf.virt_to_file_offset(virt_addr_of_kernel_tables),
        virt_addr_of_phys_kernel_tables_base_addr=virt_addr_of_base_addr,
        phys_addr_of_phys_kernel_tables_base_addr=PHYS_KERNEL_TABLES_BASE_ADDR.to_phys(kernel_elf),
        phys_kernel_tables_base_addr_offset_in_file=kernel_elf.virt_to_file_offset(virt_addr_of_base_addr),
        phys_addr_space_end_page=end_page,
        boot_core_stack=boot_core_stack,
    )

    log.verbose(f"{board}: kernel virtual start {to_hex_underscore(facts.kernel_virt_start_addr)}, "
                f"address space size {to_hex_underscore(facts.kernel_virt_addr_space_size)}")
    log.verbose(f"{board}: kernel tables at physical {to_hex_underscore(facts.phys_addr_of_kernel_tables)}, "
                f"end of physical address space {to_hex_underscore(end_page)}")
    return facts
