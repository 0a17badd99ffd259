#!/usr/bin/env python3

"""
Host I/O Functionality

Handles loading ROM binaries from the host, and holds the base system font
that the machine writes into RAM.

The font is part of the machine's contract with its programs.  The Fx29
instruction points the index register at these sprites, so the bit patterns
must match every other CHIP-8 implementation exactly.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import PROGRAM_MAX_SIZE

# Hexadecimal digits 0-F, 4 pixels wide (high nibble) and 5 rows tall
SYSTEM_FONT = bytes((
    0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
    0x20, 0x60, 0x20, 0x20, 0x70,  # 1
    0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
    0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
    0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
    0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
    0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
    0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
    0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
    0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
    0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
    0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
    0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
    0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
    0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
    0xF0, 0x80, 0xF0, 0x80, 0x80   # F
))


class LoadError(Exception):
    pass


def check_program_size(data):
    if len(data) > PROGRAM_MAX_SIZE:
        raise LoadError(
            "Program is {} bytes, but only {} bytes of RAM are available".format(len(data), PROGRAM_MAX_SIZE)
        )


class Loader:
    def load_binary(self, filename):
        with open(filename, "rb") as f:
            data = f.read()

        check_program_size(data)
        return data
