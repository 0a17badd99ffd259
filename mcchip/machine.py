#!/usr/bin/env python3

"""
Machine State

Holds everything the CHIP-8 architecture defines: 4K of RAM, sixteen 8-bit V
registers, the index register, the program counter, the call stack, the delay
and sound timers, the display, and the keypad.  Nothing here decides what to
execute.  The CPU composes these primitives into instructions, and the host
(or a test) drives the timers and keypad.

Register Vf is an ordinary register that some instructions also use as a
carry, borrow or collision flag.  Programs read it back as data, so it lives
in the same register file as V0-Ve.

The keypad has two parts:
    * A held table, queried by the skip-if-key instructions
    * A single pending key slot, filled on every key press and emptied by the
      wait-for-key instruction

Timers count down at 60Hz of wall-clock time, whatever the instruction rate.
Elapsed time is accumulated between calls to tick_timers, and at most one
decrement happens per call.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import FONT_LOC, FONT_SIZE, MEM_SIZE, PROGRAM_LOC, STACK_SIZE, TIMER_INTERVAL
from .framebuffer import Framebuffer
from .hostio import SYSTEM_FONT, check_program_size
from .ram import RAM
from .stack import Stack

NUM_KEYS = 0x10


class MachineError(Exception):
    pass


class Machine:
    def __init__(self, framebuffer=None):
        self.ram = RAM(MEM_SIZE)
        self.stack = Stack(STACK_SIZE)
        self.framebuffer = Framebuffer() if framebuffer is None else framebuffer

        self.v = memoryview(bytearray(16))  # V0-Vf
        self.i = 0                          # Index register
        self.pc = PROGRAM_LOC               # Program counter
        self.dt = 0                         # Delay timer
        self.ds = 0                         # Sound timer
        self.timer_elapsed = 0.0            # Time accumulated towards the next timer decrement

        self.keys = [False] * NUM_KEYS
        self.pending_key = None

        # Written once.  Program writes into this area are ignored from now on
        self.ram.write_block(FONT_LOC, SYSTEM_FONT)

    # Program counter

    def read_next_instruction(self):
        pc = self.pc

        if pc < 0 or pc > MEM_SIZE - 2:
            raise MachineError("Program counter 0x{:04x} is outside of addressable memory".format(pc))

        mem = self.ram.mem
        return mem[pc], mem[pc + 1]

    def advance(self):
        self.pc += 2

    def rewind(self):
        # Only used to re-run the wait-for-key instruction
        self.pc -= 2

    # Call stack

    def push(self, address):
        self.stack.push(address)

    def pop(self):
        return self.stack.pop()

    # Memory

    def load_program(self, data):
        check_program_size(data)
        self.ram.write_block(PROGRAM_LOC, data)

    def read(self, location):
        return self.ram.read(location)

    def read_block(self, location, size):
        return self.ram.read_block(location, size)

    def write(self, location, byte):
        if FONT_LOC <= location < FONT_LOC + FONT_SIZE:
            return

        self.ram.write(location, byte)

    # Timers

    def tick_timers(self, elapsed):
        elapsed_total = self.timer_elapsed + elapsed

        if elapsed_total < TIMER_INTERVAL:
            self.timer_elapsed = elapsed_total
            return False

        if self.dt > 0:
            self.dt -= 1

        if self.ds > 0:
            self.ds -= 1

        # Keep the remainder, but never bank more than one interval
        self.timer_elapsed = min(elapsed_total - TIMER_INTERVAL, TIMER_INTERVAL)
        return True

    def is_sound_on(self):
        return self.ds > 0

    # Display

    def get_pixel(self, x, y):
        return self.framebuffer.get_pixel(x, y)

    def set_pixel(self, x, y, value):
        self.framebuffer.set_pixel(x, y, value)

    def clear_display(self):
        self.framebuffer.clear()

    # Keypad

    def press_key(self, key):
        if 0 <= key < NUM_KEYS:
            self.keys[key] = True
            self.pending_key = key

    def release_key(self, key):
        if 0 <= key < NUM_KEYS:
            self.keys[key] = False

    def is_key_down(self, key):
        return 0 <= key < NUM_KEYS and self.keys[key]

    def take_pending_key(self):
        key = self.pending_key
        self.pending_key = None
        return key
