"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT
"""
import unittest

from kptt.errors import InvalidAlignment, KpttError
from kptt.util import align_up, is_aligned, is_power_of_two, to_hex_underscore


class PowerOfTwoTests(unittest.TestCase):
    def test_powers_of_two(self):
        for n in [1, 2, 4, 0x1_0000, 1 << 63]:
            self.assertTrue(is_power_of_two(n), hex(n))

    def test_not_powers_of_two(self):
        for n in [0, -4, 3, 6, 0x1_0001]:
            self.assertFalse(is_power_of_two(n), hex(n))


class AlignmentTests(unittest.TestCase):
    def test_is_aligned(self):
        self.assertTrue(is_aligned(0x2_0000, 0x1_0000))
        self.assertTrue(is_aligned(0, 0x1_0000))
        self.assertFalse(is_aligned(0x1_0001, 0x1_0000))

    def test_alignment_must_be_power_of_two(self):
        with self.assertRaises(InvalidAlignment):
            is_aligned(0x1000, 3)
        with self.assertRaises(InvalidAlignment):
            align_up(0x1000, 0)
        self.assertTrue(issubclass(InvalidAlignment, KpttError))

    def test_align_up(self):
        self.assertEqual(align_up(0, 0x1_0000), 0)
        self.assertEqual(align_up(1, 0x1_0000), 0x1_0000)
        self.assertEqual(align_up(0x1_0000, 0x1_0000), 0x1_0000)
        self.assertEqual(align_up(0x2_1020, 0x1_0000), 0x3_0000)

    def test_align_up_idempotent(self):
        for a in [1, 2, 8, 0x1000, 0x1_0000]:
            for n in [0, 1, a - 1, a, a + 1, 0x12345, 0xFFFF_FFFF]:
                once = align_up(n, a)
                self.assertEqual(align_up(once, a), once)
                self.assertGreaterEqual(once, n)
                self.assertTrue(is_aligned(once, a))


class HexFormatTests(unittest.TestCase):
    def test_grouped(self):
        self.assertEqual(to_hex_underscore(0x4001_0000), "0x4001_0000")
        self.assertEqual(to_hex_underscore(0x8_0000), "0x8_0000")

    def test_leading_zeros(self):
        self.assertEqual(to_hex_underscore(0x8_0000, with_leading_zeros=True), "0x0000_0000_0008_0000")
        self.assertEqual(
            to_hex_underscore(0xFFFF_FFFF_C008_0000, with_leading_zeros=True),
            "0xffff_ffff_c008_0000",
        )
