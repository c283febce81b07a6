"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT
"""

# Standard Python deps
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

# Internal deps
from . import log
from .errors import AddressNotMapped, SymbolNotFound, UnsupportedArchitecture

# External deps
from elftools.elf.constants import P_FLAGS, SH_FLAGS
from elftools.elf.elffile import ELFFile
from intervaltree import IntervalTree


@dataclass
class ElfSegment:
    """
    Class representing a single program header of the kernel ELF.
    """
    index: int              # position in the program header table
    type_: str              # e.g. PT_LOAD
    vaddr: int
    paddr: int
    offset: int             # offset of the segment's data in the file
    filesz: int
    memsz: int
    flags: int
    sections: List[str]     # allocated sections placed in this segment

    def __repr__( self ) -> str:
        return f"<ElfSegment #{self.index} {self.type_} vaddr=0x{self.vaddr:x} paddr=0x{self.paddr:x} memsz=0x{self.memsz:x}>"

    @property
    def name( self ) -> str:
        return " ".join(self.sections)

    @property
    def is_readable( self ) -> bool:
        return (self.flags & P_FLAGS.PF_R) != 0

    @property
    def is_writable( self ) -> bool:
        return (self.flags & P_FLAGS.PF_W) != 0

    @property
    def is_executable( self ) -> bool:
        return (self.flags & P_FLAGS.PF_X) != 0

    def vma_in( self, virt_addr:int ) -> bool:
        return self.vaddr <= virt_addr < self.vaddr + self.memsz


class KernelElf:
    """
    Read-only view of the kernel ELF: symbols, segments, and the sections they
    contain. Everything is parsed once and the file closed again.
    """

    def __init__( self, path:str ):
        self.path = path
        self._symbols: Dict[str, Tuple[int, int]] = {}
        self.segments: List[ElfSegment] = []
        self._segment_tree = IntervalTree()

        with open(path, "rb") as f:
            elf = ELFFile(f)
            self._machine = elf["e_machine"]

            symtab = elf.get_section_by_name(".symtab")
            if symtab is None:
                log.debug(f"{path} has no .symtab")
            else:
                for sym in symtab.iter_symbols():
                    if sym.name:
                        self._symbols.setdefault(sym.name, (sym["st_value"], sym["st_size"]))

            alloc_sections = [
                (s.name, s["sh_addr"]) for s in elf.iter_sections()
                if s["sh_flags"] & SH_FLAGS.SHF_ALLOC
            ]

            for idx, seg in enumerate(elf.iter_segments()):
                vaddr = seg["p_vaddr"]
                memsz = seg["p_memsz"]
                segment = ElfSegment(
                    index=idx,
                    type_=seg["p_type"],
                    vaddr=vaddr,
                    paddr=seg["p_paddr"],
                    offset=seg["p_offset"],
                    filesz=seg["p_filesz"],
                    memsz=memsz,
                    flags=seg["p_flags"],
                    sections=[name for name, addr in alloc_sections if vaddr <= addr < vaddr + memsz],
                )
                self.segments.append(segment)
                if memsz:
                    self._segment_tree.addi(vaddr, vaddr + memsz, idx)
                log.debug(f"parsed {segment}")

        log.verbose(f"{path}: {self._machine}, {len(self.segments)} segments, {len(self._symbols)} symbols")


    def machine( self ) -> str:
        """
        ELF target architecture tag, e.g. EM_AARCH64.
        """
        return self._machine


    def require_machine( self, machine:str ) -> None:
        if self._machine != machine:
            raise UnsupportedArchitecture(f"{self.path}: unsupported architecture {self._machine}")


    def find_symbol_if_exists( self, name:str ) -> Optional[Tuple[int, int]]:
        """
        Return (value, size) of the first symbol with this name, if any.
        """
        return self._symbols.get(name)


    def find_symbol( self, name:str ) -> Tuple[int, int]:
        found = self.find_symbol_if_exists(name)
        if found is None:
            raise SymbolNotFound(f"no symbol named {name} in {self.path}")
        return found


    def symbol_value( self, name:str ) -> int:
        return self.find_symbol(name)[0]


    def symbol_size( self, name:str ) -> int:
        return self.find_symbol(name)[1]


    def segment_containing( self, virt_addr:int ) -> ElfSegment:
        """
        First segment, in program header order, whose memory contains virt_addr.
        """
        hits = self._segment_tree.at(virt_addr)
        if not hits:
            raise AddressNotMapped(f"virtual address {hex(virt_addr)} is not in any segment of {self.path}")
        return self.segments[min(iv.data for iv in hits)]


    def virt_to_phys( self, virt_addr:int ) -> int:
        segment = self.segment_containing(virt_addr)
        translation_offset = segment.vaddr - segment.paddr
        return virt_addr - translation_offset


    def virt_to_file_offset( self, virt_addr:int, size:Optional[int]=None ) -> int:
        """
        File offset of virt_addr. If size is given, the whole window must be
        backed by file data rather than zero-fill.
        """
        segment = self.segment_containing(virt_addr)
        if size is not None and virt_addr + size > segment.vaddr + segment.filesz:
            raise AddressNotMapped(
                f"{hex(virt_addr)}+{hex(size)} is not backed by file data in {self.path}"
            )
        return virt_addr - segment.vaddr + segment.offset


    def load_segments( self ) -> List[ElfSegment]:
        return [s for s in self.segments if s.type_ == "PT_LOAD"]
