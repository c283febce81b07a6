"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Run kptt: precompute the kernel's translation tables and patch them into the
kernel ELF.
"""

# Standard Python deps
import errno
import sys
import time
from typing import List, Optional

# Internal deps
from . import args
from . import bsp
from . import log
from . import patch
from .elf import KernelElf
from .errors import KpttError
from .table import TranslationTable

# External deps
from elftools.common.exceptions import ELFError


def run() -> None:
    print()
    print("Precomputing kernel translation tables and patching kernel ELF")

    start = time.time()

    """
    Parse the kernel ELF and determine the facts of the target board.
    """
    kernel_elf = KernelElf(args.kernel_elf)
    platform = bsp.platform_facts(kernel_elf, args.platform, args.memory_src)
    kernel_elf.require_machine("EM_AARCH64")

    """
    Allocate the tables at the kernel's table struct.
    """
    tables = TranslationTable(platform)

    """
    Map every loadable segment.
    """
    descriptors = patch.mapping_descriptors(kernel_elf, platform)
    patch.kernel_map_binary(tables, descriptors)

    """
    Write the tables, then the base address the kernel boots with.
    """
    patch.check_windows(kernel_elf, platform, tables)
    patch.kernel_patch_tables(kernel_elf, platform, tables)
    patch.kernel_patch_base_addr(kernel_elf, platform, tables)

    log.status("Finished", f"in {time.time() - start:.2f}s")


def main( argv:Optional[List[str]]=None ) -> None:
    args.parse(argv)
    try:
        run()
    except KpttError as e:
        log.error(f"{type(e).__name__}: {e}")
        sys.exit(e.errno)
    except ELFError as e:
        log.error(f"failed to parse {args.kernel_elf}: {e}")
        sys.exit(errno.EINVAL)
    except OSError as e:
        log.error(f"failed to access {args.kernel_elf}: {e}")
        sys.exit(e.errno or errno.EIO)


if __name__ == "__main__":
    main()
