#!/usr/bin/env python3

"""
CPU Debugger

If enabled, this will output information before each instruction executed:
    * All 16 of the [V] registers, starting with most significant (Vf) and
      reducing to least significant (V0)
    * I  - Index register
    * DT - Delay timer
    * ST - Sound timer
    * PC - Program counter
    * OP - OpCode number
    * IN - Decoded instruction

If a crash occurs, all of the above will be outputted, with the addition of
the stack contents.

Opcodes the CPU doesn't understand are not fatal, as plenty of real programs
carry unused opcode space.  Each one is counted, and a warning is printed the
first time it is seen.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import sys


class Debugger:
    def __init__(self):
        self.live = False
        self.unsupported = {}  # Opcode -> number of times executed

    def debug(self, cpu, instruction, verbose=False):
        machine = cpu.machine
        debug_str = (
            "V: 0x" + ("{:02x}" * 16) + " I: 0x{:04x} DT: 0x{:02x} ST: 0x{:02x} PC: 0x{:03x} OP: 0x{:04x} IN: {}"
        ).format(
            *[machine.v[reg_num] for reg_num in range(15, -1, -1)] +
            [machine.i, machine.dt, machine.ds, cpu.debug_pc, cpu.opcode, instruction]
        )

        if verbose:
            stack_items = machine.stack.get_items()
            stack_str = (" 0x{:03x}" * len(stack_items)).format(*stack_items)
            debug_str += ("\nStack:{}").format(stack_str or " (Empty)")

        return debug_str

    def set_live(self, enabled):
        self.live = enabled

    def is_live(self):
        return self.live

    def output(self, cpu, instruction):
        print(self.debug(cpu, instruction))

    def report_unsupported(self, cpu):
        opcode = cpu.opcode
        seen = self.unsupported.get(opcode, 0)
        self.unsupported[opcode] = seen + 1

        if not seen:
            print(
                "Warning: opcode 0x{:04x} at address 0x{:03x} is not supported, skipping".format(opcode, cpu.debug_pc),
                file=sys.stderr
            )

    def get_unsupported_count(self):
        return sum(self.unsupported.values())
