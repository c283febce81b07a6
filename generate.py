"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Run kptt from a source checkout.
"""

from sys import version_info
if version_info < (3, 8):
    print("kptt requires Python 3.8+")
    exit()

try:
    import intervaltree
except ModuleNotFoundError as e:
    print("kptt requires intervaltree: `pip install intervaltree`")
    exit()

try:
    import elftools
except ModuleNotFoundError as e:
    print("kptt requires pyelftools: `pip install pyelftools`")
    exit()

from kptt.__main__ import main

main()
