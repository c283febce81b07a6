"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT
"""

# Standard Python deps
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List

# Internal deps
from .errors import EmptyRegion, MisalignedRegion, SizeMismatch, UnalignedSize
from .util import is_aligned, to_hex_underscore


class MEMORY_TYPE(Enum):
    cacheable_dram = "CacheableDRAM"


class ACCESS_PERMISSION(Enum):
    read_only = "ReadOnly"
    read_write = "ReadWrite"


@dataclass(frozen=True)
class MemoryRegion:
    """
    Class representing a contiguous, granule aligned range of memory as the
    ordered sequence of its page start addresses.
    """
    start: int              # address of the first page
    size: int               # length in bytes
    granule: int            # page size

    def __post_init__( self ):
        if not is_aligned(self.start, self.granule):
            raise MisalignedRegion(f"start {hex(self.start)} is not aligned to {hex(self.granule)}")
        if self.size <= 0:
            raise EmptyRegion(f"region at {hex(self.start)} has size {self.size}")
        if self.size % self.granule:
            raise UnalignedSize(f"size {hex(self.size)} is not a multiple of {hex(self.granule)}")


    def __len__( self ) -> int:
        return self.size // self.granule


    def __getitem__( self, idx:int ) -> int:
        if idx < 0:
            idx += len(self)
        if not 0 <= idx < len(self):
            raise IndexError("page index out of range")
        return self.start + idx * self.granule


    def __iter__( self ) -> Iterator[int]:
        return iter(range(self.start, self.start + self.size, self.granule))


    @property
    def first( self ) -> int:
        return self[0]


    @property
    def last( self ) -> int:
        return self[-1]


def build_region( start:int, size:int, granule:int ) -> MemoryRegion:
    return MemoryRegion(start, size, granule)


@dataclass(frozen=True)
class AttributeFields:
    """
    Collection of memory attributes applied to a mapping.
    """
    memory_type: MEMORY_TYPE
    access_permission: ACCESS_PERMISSION
    execute_never: bool

    def __str__( self ) -> str:
        x = "C" if self.memory_type == MEMORY_TYPE.cacheable_dram else "?"
        y = {
            ACCESS_PERMISSION.read_write: "RW",
            ACCESS_PERMISSION.read_only: "RO",
        }.get(self.access_permission, "??")
        z = "XN" if self.execute_never else "X "
        return f"{x} {y} {z}"


@dataclass
class MappingDescriptor:
    """
    Class describing a virtual to physical region mapping.
    """
    name: str                       # e.g. the sections the mapping covers
    virt_region: MemoryRegion
    phys_region: MemoryRegion
    attributes: AttributeFields

    def __post_init__( self ):
        if len(self.virt_region) != len(self.phys_region):
            raise SizeMismatch(
                f"{self.name}: {len(self.virt_region)} virtual pages vs "
                f"{len(self.phys_region)} physical pages"
            )


@dataclass(frozen=True)
class FormatContext:
    """
    Column layout for printing a set of mapping descriptors. Computed once from
    the full set so every row lines up.
    """
    name_width: int

    HEADER_NAME = "Sections"
    MARGIN = " " * 13

    @classmethod
    def for_descriptors( cls, descriptors:List[MappingDescriptor] ) -> "FormatContext":
        return cls(max([len(cls.HEADER_NAME)] + [len(d.name) for d in descriptors]))


    def divider( self ) -> str:
        return self.MARGIN + "-" * (self.name_width + 68)


    def header( self ) -> List[str]:
        title = "   ".join([
            self.HEADER_NAME.center(self.name_width),
            "Virt Start Addr".center(21),
            "Phys Start Addr".center(21),
            "Size".center(7),
            "Attr".center(7),
        ])
        return [self.divider(), self.MARGIN + title, self.divider()]


    def row( self, descriptor:MappingDescriptor ) -> str:
        virt = descriptor.virt_region
        name = descriptor.name.ljust(self.name_width)
        virt_start = to_hex_underscore(virt.first, with_leading_zeros=True)
        phys_start = to_hex_underscore(descriptor.phys_region.first, with_leading_zeros=True)
        size = str(virt.size // 1024).rjust(3)
        return f"{name} | {virt_start} | {phys_start} | {size} KiB | {descriptor.attributes}"
