"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Parse command-line arguments to be accessible by any other importing file in the
project. Parsing happens once, from kptt.__main__; until then every option holds
its default so the library modules can be imported and used on their own.
"""

# Standard Python deps
import argparse
from typing import List, Optional


_parser = argparse.ArgumentParser(
    prog="kptt",
    description="Precompute kernel translation tables and patch them into the kernel ELF.",
)

_parser.add_argument(
    "platform",
    metavar="BSP",
    help="target board, e.g. rpi3 or rpi4",
    type=str,
)

_parser.add_argument(
    "kernel_elf",
    metavar="KERNEL_ELF",
    help="kernel ELF file to patch in place",
    type=str,
)

_parser.add_argument(
    "--memory-src",
    metavar="SRC",
    help="BSP memory.rs to read the end of physical memory from (default: built-in)",
    type=str,
    default=None,
)

_parser.add_argument(
    "-v",
    help="-v for verbose, -vv for debug",
    action="count",
    default=0,
)


platform = None
kernel_elf = None
memory_src = None
verbose = False
debug = False


def parse( argv:Optional[List[str]]=None ) -> None:
    """
    Parse argv (default: sys.argv[1:]) into this module's globals.
    """
    global platform, kernel_elf, memory_src, verbose, debug

    _args = _parser.parse_args(argv)

    platform = _args.platform
    kernel_elf = _args.kernel_elf
    memory_src = _args.memory_src
    verbose = _args.v >= 1
    debug = _args.v >= 2
