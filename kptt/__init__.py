"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Modules in pipeline order:

    args        parse command-line arguments
    elf         read symbols, segments and sections from the kernel ELF
    bsp         determine board facts incl. table struct location and the end
                of the physical address space
    mmap        describe each mapping as virtual/physical page regions plus
                memory attributes
    mmu         encode ARMv8-A stage 1 table and page descriptors
    table       build the two-level translation table and serialize it
    patch       write the table and its base address into the kernel ELF
"""

__version__ = "1.0.0"
