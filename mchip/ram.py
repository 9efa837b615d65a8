#!/usr/bin/env python3

"""
RAM Emulator

A flat, fixed-size block of bytes.  The size is chosen once at construction
and never changes, so any read or write outside of it is a bug in the running
program (or in the loader) and is reported rather than wrapped.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import MEM_SIZE


class RAMError(Exception):
    pass


class RAM:
    def __init__(self, mem_size=MEM_SIZE):
        self.mem = memoryview(bytearray(mem_size))
        self.mem_top = mem_size - 1
        self.mem_size = mem_size

    def __len__(self):
        return self.mem_size

    def read(self, location):
        self.check_overflow(location)
        return self.mem[location]

    def read_block(self, location, size=1):
        self.check_overflow(location + size - 1)
        return self.mem[location:location + size]

    def write_block(self, location, block):
        # Nothing is written unless the whole block fits
        block_top = location + len(block)
        self.check_overflow(block_top - 1)
        self.mem[location:block_top] = block

    def check_overflow(self, location):
        if location < 0 or location > self.mem_top:
            raise RAMError("Memory access at 0x{:04x} is outside 0x000-0x{:03x}".format(location, self.mem_top))
