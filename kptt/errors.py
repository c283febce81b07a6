"""
Copyright (c) 2019 Ash Wilding. All rights reserved.

SPDX-License-Identifier: MIT

Every failure is fatal to the run. Errors carry the exit status kptt.__main__
terminates with.
"""

# Standard Python deps
import errno


class KpttError(Exception):
    """
    Base class of all errors raised while generating or patching tables.
    """
    errno = errno.EINVAL


"""
ELF introspection.
"""
class SymbolNotFound(KpttError):
    pass

class AddressNotMapped(KpttError):
    pass

class UnsupportedArchitecture(KpttError):
    pass

class SymbolSizeMismatch(KpttError):
    pass


"""
Region construction.
"""
class MisalignedRegion(KpttError):
    pass

class EmptyRegion(KpttError):
    pass

class UnalignedSize(KpttError):
    pass

class InvalidAlignment(KpttError):
    pass


"""
Descriptor encoding.
"""
class BitfieldOutOfRange(KpttError):
    pass


"""
Table construction and mapping.
"""
class InvalidPlatformConfig(KpttError):
    pass

class SizeMismatch(KpttError):
    pass

class OutOfPhysicalRange(KpttError):
    pass

class VirtualAddressOutOfRange(KpttError):
    pass

class InvalidAttribute(KpttError):
    pass

class InvalidPermissions(KpttError):
    pass


"""
Platform selection.
"""
class UnsupportedPlatform(KpttError):
    pass
