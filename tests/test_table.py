"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT
"""
import dataclasses
import struct
import unittest

from kptt import mmu
from kptt.bsp import PlatformFacts
from kptt.errors import InvalidPlatformConfig, OutOfPhysicalRange, SizeMismatch, VirtualAddressOutOfRange
from kptt.mmap import ACCESS_PERMISSION, MEMORY_TYPE, AttributeFields, build_region
from kptt.mmu import Stage1PageDescriptor
from kptt.table import TranslationTable


GRANULE = 0x1_0000
VIRT_START = 0xFFFF_FFFF_C000_0000
LVL3_TABLE_SIZE = 8192 * 8

PLATFORM = PlatformFacts(
    board="rpi3",
    kernel_granule=GRANULE,
    kernel_virt_addr_space_size=1024 * 1024 * 1024,
    kernel_virt_start_addr=VIRT_START,
    virt_addr_of_kernel_tables=VIRT_START + 0x9_0000,
    phys_addr_of_kernel_tables=0x9_0000,
    kernel_tables_offset_in_file=0x2000,
    virt_addr_of_phys_kernel_tables_base_addr=VIRT_START + 0xB_0010,
    phys_addr_of_phys_kernel_tables_base_addr=0xB_0010,
    phys_kernel_tables_base_addr_offset_in_file=0x2_2010,
    phys_addr_space_end_page=0x4001_0000,
)

RW_XN = AttributeFields(MEMORY_TYPE.cacheable_dram, ACCESS_PERMISSION.read_write, True)


def _region(start, pages):
    return build_region(start, pages * GRANULE, GRANULE)


class ConstructionTests(unittest.TestCase):
    def test_layout(self):
        tables = TranslationTable(PLATFORM)
        self.assertEqual(len(tables.lvl2), 2)
        self.assertEqual(len(tables.lvl3), 2)
        self.assertEqual(len(tables.lvl3[0]), 8192)
        self.assertEqual(tables.lvl3[0].addr, 0x9_0000)
        self.assertEqual(tables.lvl3[1].addr, 0x9_0000 + LVL3_TABLE_SIZE)
        self.assertEqual(tables.lvl2.addr, 0x9_0000 + 2 * LVL3_TABLE_SIZE)
        self.assertEqual(tables.size_in_bytes(), 2 * LVL3_TABLE_SIZE + 16)

    def test_lvl2_points_at_lvl3(self):
        tables = TranslationTable(PLATFORM)
        for i, desc in enumerate(tables.lvl2):
            self.assertEqual(desc.next_level_table_addr, tables.lvl3[i].addr)
            self.assertEqual(desc.type, mmu.Stage1TableDescriptor.TYPE.TABLE)
            self.assertEqual(desc.valid, 1)

    def test_lvl3_starts_empty(self):
        tables = TranslationTable(PLATFORM)
        self.assertTrue(all(d.value() == 0 for t in tables.lvl3 for d in t))

    def test_granule_must_be_64kib(self):
        with self.assertRaises(InvalidPlatformConfig):
            TranslationTable(dataclasses.replace(PLATFORM, kernel_granule=0x1000))

    def test_address_space_must_be_multiple_of_512mib(self):
        with self.assertRaises(InvalidPlatformConfig):
            TranslationTable(dataclasses.replace(PLATFORM, kernel_virt_addr_space_size=0x3000_0000))
        with self.assertRaises(InvalidPlatformConfig):
            TranslationTable(dataclasses.replace(PLATFORM, kernel_virt_addr_space_size=0))

    def test_tables_must_be_page_aligned(self):
        with self.assertRaises(InvalidPlatformConfig):
            TranslationTable(dataclasses.replace(PLATFORM, phys_addr_of_kernel_tables=0x9_1000))


class MapTests(unittest.TestCase):
    def setUp(self):
        self.tables = TranslationTable(PLATFORM)

    def test_single_page(self):
        self.tables.map_at(_region(VIRT_START, 1), _region(0x4000_0000, 1), RW_XN)
        desc = self.tables.lvl3[0][0]
        self.assertEqual(desc.fields(), {
            "uxn": 1,
            "pxn": 1,
            "output_addr": 0x4000_0000 >> 16,
            "af": 1,
            "sh": Stage1PageDescriptor.SH.INNER_SHAREABLE,
            "ap": Stage1PageDescriptor.AP.RW_EL1,
            "attr_indx": 1,
            "type": Stage1PageDescriptor.TYPE.PAGE,
            "valid": 1,
        })
        self.assertEqual(self.tables.lvl3[0][1].value(), 0)

    def test_index_split_across_lvl2_entries(self):
        virt = VIRT_START + 512 * 1024 * 1024 - GRANULE
        self.tables.map_at(_region(virt, 2), _region(0x10_0000, 2), RW_XN)
        self.assertEqual(self.tables.lvl3[0][8191].output_addr, 0x10_0000)
        self.assertEqual(self.tables.lvl3[1][0].output_addr, 0x11_0000)

    def test_empty_region_is_noop(self):
        before = self.tables.serialize()
        self.tables.map_at([], [], RW_XN)
        self.assertEqual(self.tables.serialize(), before)

    def test_size_mismatch_leaves_table_unmodified(self):
        before = self.tables.serialize()
        with self.assertRaises(SizeMismatch):
            self.tables.map_at(_region(VIRT_START, 2), _region(0x8_0000, 1), RW_XN)
        self.assertEqual(self.tables.serialize(), before)

    def test_out_of_physical_range(self):
        with self.assertRaises(OutOfPhysicalRange):
            self.tables.map_at(_region(VIRT_START, 2), _region(0x4001_0000, 2), RW_XN)

    def test_last_physical_page_allowed(self):
        self.tables.map_at(_region(VIRT_START, 1), _region(0x4001_0000, 1), RW_XN)
        self.assertEqual(self.tables.lvl3[0][0].output_addr, 0x4001_0000)

    def test_virtual_address_out_of_range_leaves_table_unmodified(self):
        before = self.tables.serialize()
        virt = VIRT_START + 1024 * 1024 * 1024 - GRANULE
        with self.assertRaises(VirtualAddressOutOfRange):
            self.tables.map_at(_region(virt, 2), _region(0x8_0000, 2), RW_XN)
        self.assertEqual(self.tables.serialize(), before)

    def test_virtual_address_below_kernel_start(self):
        with self.assertRaises(VirtualAddressOutOfRange):
            self.tables.map_at(_region(VIRT_START - GRANULE, 1), _region(0x8_0000, 1), RW_XN)


class SerializeTests(unittest.TestCase):
    def test_layout(self):
        tables = TranslationTable(PLATFORM)
        tables.map_at(_region(VIRT_START + 0x8_0000, 1), _region(0x8_0000, 1), RW_XN)
        data = tables.serialize()
        self.assertEqual(len(data), tables.size_in_bytes())

        words = struct.unpack(f"<{len(data) // 8}Q", data)
        self.assertEqual(words[8], tables.lvl3[0][8].value())
        self.assertEqual(words[2 * 8192], 0x9_0003)
        self.assertEqual(words[2 * 8192 + 1], 0xA_0003)
        self.assertEqual(sum(1 for w in words[:2 * 8192] if w), 1)

    def test_deterministic(self):
        first = TranslationTable(PLATFORM)
        second = TranslationTable(PLATFORM)
        for tables in (first, second):
            tables.map_at(_region(VIRT_START + 0x8_0000, 3), _region(0x8_0000, 3), RW_XN)
        self.assertEqual(first.serialize(), second.serialize())

    def test_base_address(self):
        tables = TranslationTable(PLATFORM)
        self.assertEqual(tables.base_address(), 0xB_0000)
        self.assertEqual(tables.base_address_bytes(), b"\x00\x00\x0b\x00\x00\x00\x00\x00")

    def test_str(self):
        tables = TranslationTable(PLATFORM)
        tables.map_at(_region(VIRT_START, 3), _region(0x8_0000, 3), RW_XN)
        lines = str(tables).splitlines()
        self.assertEqual(lines[0], "level 2 table @ 0xb0000")
        self.assertIn("3 pages mapped", lines[1])
        self.assertIn("0 pages mapped", lines[2])
