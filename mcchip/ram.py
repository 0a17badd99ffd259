#!/usr/bin/env python3

"""
RAM Emulator

Supports reading and writing of blocks of memory or individual bytes.  Every
access is range-checked, as a CHIP-8 program wandering outside of its 4K
address space is a fault in the program, and continuing would only produce
garbage.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class RAMError(Exception):
    pass


class RAM:
    def __init__(self, mem_size=0):
        self.resize(mem_size)

    def resize(self, mem_size):
        self.mem = memoryview(bytearray(mem_size))
        self.mem_top = mem_size - 1
        self.mem_size = mem_size

    def read(self, location):
        self.check_bounds(location)
        return self.mem[location]

    def read_block(self, location, size=1):
        if size > 0:
            self.check_bounds(location)
            self.check_bounds(location + size - 1)

        return self.mem[location:location + size]

    def write(self, location, byte):
        self.check_bounds(location)
        self.mem[location] = byte & 0xFF

    def write_block(self, location, block):
        block_size = len(block)

        if block_size == 0:
            return

        block_top = location + block_size
        self.check_bounds(location)
        self.check_bounds(block_top - 1)
        self.mem[location:block_top] = block

    def check_bounds(self, location):
        if location < 0 or location > self.mem_top:
            raise RAMError("Memory access out of range at 0x{:04x}".format(location))

    def clear(self):
        self.mem[:] = bytes(self.mem_size)
