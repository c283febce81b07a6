"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Console output of a kptt run. Progress goes to stdout; -v adds [VERBOSE]
lines, -vv also [DEBUG] lines. Errors go to stderr.
"""

# Standard Python deps
import sys

# Internal deps
from . import args


def _emit( prefix:str, msg:str, stream=None ) -> None:
    print(f"[{prefix}] {msg}", file=stream if stream else sys.stdout)

def verbose( msg:str="" ) -> None:
    if (args.verbose or args.debug):
        _emit("VERBOSE", msg)

def debug( msg:str="" ) -> None:
    if (args.debug):
        _emit("DEBUG", msg)

def error( msg:str="" ) -> None:
    _emit("ERROR", msg, sys.stderr)

def status( tag:str, msg:str="" ) -> None:
    """
    Progress line with a right-aligned tag, e.g. "  Generating .data | ...".
    """
    print(f"{tag:>12} {msg}")
