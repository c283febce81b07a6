"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Derive the kernel's mappings from its ELF, map them into the translation table,
and patch the result into the kernel binary.
"""

# Standard Python deps
from typing import List

# Internal deps
from . import log
from .bsp import PlatformFacts
from .elf import ElfSegment, KernelElf
from .errors import InvalidPermissions, SymbolSizeMismatch
from .mmap import ACCESS_PERMISSION, MEMORY_TYPE, AttributeFields, FormatContext, MappingDescriptor, build_region
from .table import TranslationTable
from .util import align_up, to_hex_underscore


def segment_access_permission( segment:ElfSegment ) -> ACCESS_PERMISSION:
    if segment.is_readable and segment.is_writable:
        return ACCESS_PERMISSION.read_write
    if segment.is_readable:
        return ACCESS_PERMISSION.read_only
    raise InvalidPermissions(f"segment {segment.index} ({segment.name}) is not readable")


def _descriptor( name:str, virt_start:int, phys_start:int, size:int, granule:int,
                 access_permission:ACCESS_PERMISSION, execute_never:bool ) -> MappingDescriptor:
    size = align_up(size, granule)
    return MappingDescriptor(
        name,
        build_region(virt_start, size, granule),
        build_region(phys_start, size, granule),
        AttributeFields(MEMORY_TYPE.cacheable_dram, access_permission, execute_never),
    )


def mapping_descriptors( kernel_elf:KernelElf, platform:PlatformFacts ) -> List[MappingDescriptor]:
    """
    One descriptor per loadable segment, in ELF order, followed by any fixed
    regions of the platform.
    """
    granule = platform.kernel_granule
    descriptors = []

    """
    Segments are assumed to start page aligned.
    """
    for segment in kernel_elf.load_segments():
        descriptors.append(_descriptor(
            segment.name,
            segment.vaddr,
            segment.paddr,
            segment.memsz,
            granule,
            segment_access_permission(segment),
            not segment.is_executable,
        ))

    if platform.boot_core_stack is not None:
        start = platform.boot_core_stack["start"]
        descriptors.append(_descriptor(
            "Boot-core stack",
            start,
            platform.boot_core_stack["phys_start"],
            platform.boot_core_stack["end_exclusive"] - start,
            granule,
            ACCESS_PERMISSION.read_write,
            True,
        ))

    return descriptors


def kernel_map_binary( tables:TranslationTable, descriptors:List[MappingDescriptor] ) -> None:
    fmt = FormatContext.for_descriptors(descriptors)

    for line in fmt.header():
        print(line)
    for d in descriptors:
        log.status("Generating", fmt.row(d))
        tables.map_at(d.virt_region, d.phys_region, d.attributes)
    print(fmt.divider())

    for line in str(tables).splitlines():
        log.verbose(line)


def _check_window( kernel_elf:KernelElf, symbol:str, length:int, exact:bool=False ) -> None:
    """
    A sized symbol must have room for the data patched over it. With exact,
    it must be just as large.
    """
    size = kernel_elf.symbol_size(symbol)
    if size and (size < length or (exact and size != length)):
        raise SymbolSizeMismatch(f"{symbol} is {size} bytes, but {length} bytes would be written")


def check_windows( kernel_elf:KernelElf, platform:PlatformFacts, tables:TranslationTable ) -> None:
    """
    Both patch windows must be valid before either is written.
    """
    _check_window(kernel_elf, "KERNEL_TABLES", tables.size_in_bytes())
    kernel_elf.virt_to_file_offset(platform.virt_addr_of_kernel_tables, tables.size_in_bytes())

    _check_window(kernel_elf, "PHYS_KERNEL_TABLES_BASE_ADDR", len(tables.base_address_bytes()), exact=True)
    kernel_elf.virt_to_file_offset(platform.virt_addr_of_phys_kernel_tables_base_addr,
                                   len(tables.base_address_bytes()))


def write_at( path:str, offset:int, data:bytes ) -> None:
    """
    Overwrite len(data) bytes of the file at offset, leaving the rest alone.
    """
    with open(path, "r+b") as f:
        f.seek(offset)
        f.write(data)


def kernel_patch_tables( kernel_elf:KernelElf, platform:PlatformFacts, tables:TranslationTable ) -> None:
    data = tables.serialize()
    _check_window(kernel_elf, "KERNEL_TABLES", len(data))
    offset = kernel_elf.virt_to_file_offset(platform.virt_addr_of_kernel_tables, len(data))

    log.status("Patching", f"Kernel table struct at ELF file offset {to_hex_underscore(offset)}")
    write_at(kernel_elf.path, offset, data)


def kernel_patch_base_addr( kernel_elf:KernelElf, platform:PlatformFacts, tables:TranslationTable ) -> None:
    data = tables.base_address_bytes()
    _check_window(kernel_elf, "PHYS_KERNEL_TABLES_BASE_ADDR", len(data), exact=True)
    offset = kernel_elf.virt_to_file_offset(platform.virt_addr_of_phys_kernel_tables_base_addr, len(data))

    log.status("Patching", f"Kernel tables physical base address start argument to value "
                           f"{to_hex_underscore(tables.base_address())} at ELF file offset {to_hex_underscore(offset)}")
    write_at(kernel_elf.path, offset, data)
