#!/usr/bin/env python3

"""
CPU Emulator (CHIP-8)

Like a real computer, this is where most of the processing happens.  Each call
to step() runs exactly one instruction against the attached Machine: fetch two
bytes at the program counter, move the program counter on, then decode and
execute.  Because the program counter has already moved by the time an
instruction runs, jumps simply overwrite it, skips add another 2, and the
wait-for-key instruction steps it back so it runs again next time.

How often step() is called is up to the host.  Nothing here sleeps or waits.

A broken program (stack overflow or underflow, or the program counter or
index register leaving memory) halts emulation with a CPUError.  Opcodes that
don't exist are reported to the debugger and skipped.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from random import Random
from .constants import APP_INTRO, FONT_CHAR_SIZE, FONT_LOC
from .debugger import Debugger
from .machine import MachineError
from .ram import RAMError
from .stack import StackError

I_BITMASK = 0xFFFF  # The index register is 16 bits wide


class CPUError(Exception):
    pass


class CPU:
    def __init__(self, machine, debugger=None, rng=None):
        self.machine = machine
        self.debugger = Debugger() if debugger is None else debugger
        self.live_debug = self.debugger.is_live()
        self.rng = Random() if rng is None else rng

        # Define instruction pointers.
        # n = Nibble
        # nn = Byte
        # nnn = address
        # x/y = register (0-15)
        self.instructions = {
            # Initial lookup for instructions' first nibble
            0x0: self._0nnn,  # Alias for bitmask 0xFFFF
            0x1: self._1nnn,
            0x2: self._2nnn,
            0x3: self._3xnn,
            0x4: self._4xnn,
            0x5: self._5nnn_8nnn_9nnn,  # Alias for bitmask 0xF00F
            0x6: self._6xnn,
            0x7: self._7xnn,
            0x8: self._5nnn_8nnn_9nnn,  # Alias for bitmask 0xF00F
            0x9: self._5nnn_8nnn_9nnn,  # Alias for bitmask 0xF00F
            0xA: self._Annn,
            0xB: self._Bnnn,
            0xC: self._Cxnn,
            0xD: self._Dxyn,
            0xE: self._Ennn_Fnnn,  # Alias for bitmask 0xF0FF
            0xF: self._Ennn_Fnnn,  # Alias for bitmask 0xF0FF
            # Instructions beginning with nibble 0x0, bitmask 0xFFFF (i.e., exact match)
            0x00E0: self._00E0,
            0x00EE: self._00EE,
            # Instructions beginning with nibble 0x5/0x8/0x9, bitmask 0xF00F
            0x5000: self._5xy0,
            0x8000: self._8xy0,
            0x8001: self._8xy1,
            0x8002: self._8xy2,
            0x8003: self._8xy3,
            0x8004: self._8xy4,
            0x8005: self._8xy5,
            0x8006: self._8xy6,
            0x8007: self._8xy7,
            0x800E: self._8xyE,
            0x9000: self._9xy0,
            # Instructions beginning with nibble 0xE/0xF, bitmask 0xF0FF
            0xE09E: self._Ex9E,
            0xE0A1: self._ExA1,
            0xF007: self._Fx07,
            0xF00A: self._Fx0A,
            0xF015: self._Fx15,
            0xF018: self._Fx18,
            0xF01E: self._Fx1E,
            0xF029: self._Fx29,
            0xF033: self._Fx33,
            0xF055: self._Fx55,
            0xF065: self._Fx65
        }

        # Current opcode, where it was fetched from, and how many instructions have run
        self.opcode = 0
        self.debug_pc = machine.pc
        self.cycles = 0

    def step(self):
        machine = self.machine
        self.debug_pc = machine.pc  # Do this first in case there is a crash

        try:
            self.opcode = self.fetch()
            machine.advance()  # Program counter updates after fetch, but before execute
            self.decode_exec()
        except (MachineError, RAMError, StackError) as error:
            raise CPUError(self._halt_message(error)) from error

        self.cycles += 1

    def fetch(self):
        high, low = self.machine.read_next_instruction()
        return (high << 8) | low

    def _call_masked_instruction(self, masked_opcode):
        instruction = self.instructions.get(masked_opcode)

        if instruction is None:
            self._opcode_unsupported()
            return

        instruction()

    def decode_exec(self):
        self._call_masked_instruction((0xF000 & self.opcode) >> 12)

    # References to Vx, Vy, byte and addr are always in the same opcode position throughout all instructions, so avoid
    # excessive code duplication.  Don't reference these more than necessary as they are recalculated each time.
    @property
    def vx(self):
        return (self.opcode & 0xF00) >> 8

    @property
    def vy(self):
        return (self.opcode & 0xF0) >> 4

    @property
    def addr(self):
        return self.opcode & 0xFFF

    @property
    def byte(self):
        return self.opcode & 0xFF

    @property
    def nibble(self):
        return self.opcode & 0xF

    def _halt_message(self, error):
        return (
            "Emulation halted.\n\n" +
            "{}Debug info:\n" +
            "{}\n\n{} (opcode 0x{:04x} at address 0x{:03x})."
        ).format(
            APP_INTRO, self.debugger.debug(self, "???", verbose=True), error, self.opcode, self.debug_pc
        )

    def _opcode_unsupported(self):
        if self.live_debug:
            self.debug("???")

        self.debugger.report_unsupported(self)

    def debug(self, instruction):
        self.debugger.output(self, instruction)

    def _0nnn(self):
        opcode = self.opcode

        if opcode < 0x10:
            # Opcodes 0x0 - 0xF are used internally for indexing the first nibble
            self._opcode_unsupported()
            return

        self._call_masked_instruction(opcode)

    def _5nnn_8nnn_9nnn(self):
        self._call_masked_instruction(self.opcode & 0xF00F)

    def _Ennn_Fnnn(self):
        self._call_masked_instruction(self.opcode & 0xF0FF)

    def _00E0(self):  # CLS
        if self.live_debug:
            self.debug("CLS")

        self.machine.clear_display()

    def _00EE(self):  # RET
        if self.live_debug:
            self.debug("RET")

        self.machine.pc = self.machine.pop()

    def _1nnn(self):  # JP addr
        if self.live_debug:
            self.debug("JP 0x{:03x}".format(self.addr))

        self.machine.pc = self.addr

    def _2nnn(self):  # CALL addr
        if self.live_debug:
            self.debug("CALL 0x{:03x}".format(self.addr))

        machine = self.machine
        machine.push(machine.pc)
        machine.pc = self.addr

    def _3xnn(self):  # SE Vx, byte
        if self.live_debug:
            self.debug("SE V{:01x}, 0x{:02x}".format(self.vx, self.byte))

        if self.machine.v[self.vx] == self.byte:
            self.machine.advance()

    def _4xnn(self):  # SNE Vx, byte
        if self.live_debug:
            self.debug("SNE V{:01x}, 0x{:02x}".format(self.vx, self.byte))

        if self.machine.v[self.vx] != self.byte:
            self.machine.advance()

    def _5xy0(self):  # SE Vx, Vy
        if self.live_debug:
            self.debug("SE V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v

        if v[self.vx] == v[self.vy]:
            self.machine.advance()

    def _6xnn(self):  # LD Vx, byte
        if self.live_debug:
            self.debug("LD V{:01x}, 0x{:02x}".format(self.vx, self.byte))

        self.machine.v[self.vx] = self.byte

    def _7xnn(self):  # ADD Vx, byte
        vx = self.vx
        byte = self.byte

        if self.live_debug:
            self.debug("ADD V{:01x}, 0x{:02x}".format(vx, byte))

        # Vf is left alone, even on overflow
        v = self.machine.v
        v[vx] = (v[vx] + byte) & 0xFF

    def _8xy0(self):  # LD Vx, Vy
        if self.live_debug:
            self.debug("LD V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v
        v[self.vx] = v[self.vy]

    def _8xy1(self):  # OR Vx, Vy
        if self.live_debug:
            self.debug("OR V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v
        v[self.vx] |= v[self.vy]

    def _8xy2(self):  # AND Vx, Vy
        if self.live_debug:
            self.debug("AND V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v
        v[self.vx] &= v[self.vy]

    def _8xy3(self):  # XOR Vx, Vy
        if self.live_debug:
            self.debug("XOR V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v
        v[self.vx] ^= v[self.vy]

    def _8xy4(self):  # ADD Vx, Vy
        vx = self.vx
        vy = self.vy

        if self.live_debug:
            self.debug("ADD V{:01x}, V{:01x}".format(vx, vy))

        v = self.machine.v
        val = v[vx] + v[vy]
        v[vx] = val & 0xFF
        v[0xF] = int(val > 0xFF)  # Flag write: carry

    def _post_8xy5_8xy7(self, val):  # Post-SUB/SUBN
        v = self.machine.v
        v[self.vx] = val & 0xFF
        # Flag write: Vf is set when NOT borrowing, and this must happen AFTER Vx is set, as Vf may be the target
        v[0xF] = int(val >= 0)

    def _8xy5(self):  # SUB Vx, Vy
        if self.live_debug:
            self.debug("SUB V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v
        self._post_8xy5_8xy7(v[self.vx] - v[self.vy])

    def _8xy6(self):  # SHL Vx, Vy
        if self.live_debug:
            self.debug("SHL V{:01x}, V{:01x}".format(self.vx, self.vy))

        # Vy is copied into Vx first, and the shifted result goes into Vx
        v = self.machine.v
        val = v[self.vy]
        v[self.vx] = (val << 1) & 0xFF
        v[0xF] = val >> 7  # Flag write: the bit shifted out

    def _8xy7(self):  # SUBN Vx, Vy
        if self.live_debug:
            self.debug("SUBN V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v
        self._post_8xy5_8xy7(v[self.vy] - v[self.vx])

    def _8xyE(self):  # SHR Vx, Vy
        if self.live_debug:
            self.debug("SHR V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v
        val = v[self.vy]
        v[self.vx] = val >> 1
        v[0xF] = val & 1  # Flag write: the bit shifted out

    def _9xy0(self):  # SNE Vx, Vy
        if self.live_debug:
            self.debug("SNE V{:01x}, V{:01x}".format(self.vx, self.vy))

        v = self.machine.v

        if v[self.vx] != v[self.vy]:
            self.machine.advance()

    def _Annn(self):  # LD I, addr
        if self.live_debug:
            self.debug("LD I, 0x{:03x}".format(self.addr))

        self.machine.i = self.addr

    def _Bnnn(self):  # JP V0, addr
        if self.live_debug:
            self.debug("JP V0, 0x{:03x}".format(self.addr))

        # Not masked.  Jumping past the end of memory halts on the next fetch
        self.machine.pc = self.addr + self.machine.v[0]

    def _Cxnn(self):  # RND Vx, byte
        if self.live_debug:
            self.debug("RND V{:01x}, 0x{:02x}".format(self.vx, self.byte))

        # The ANDing here is intentional.  This is not a random number between 0 and 'byte' inclusive.
        self.machine.v[self.vx] = self.rng.randint(0, 0xFF) & self.byte

    def _Dxyn(self):  # DRW Vx, Vy, nibble
        height = self.nibble

        if self.live_debug:
            self.debug("DRW V{:01x}, V{:01x}, 0x{:01x}".format(self.vx, self.vy, height))

        machine = self.machine
        framebuffer = machine.framebuffer
        v = machine.v

        # The sprite's start wraps, but anything past the right or bottom edge is trimmed
        vid_width, vid_height = framebuffer.get_vid_size()
        vx_pos = v[self.vx] % vid_width
        vy_pos = v[self.vy] % vid_height
        sprite = machine.read_block(machine.i, height)
        collided = False

        for y, spr_data in enumerate(sprite):
            scr_y = vy_pos + y

            if scr_y >= vid_height:
                break

            for x in range(8):
                scr_x = vx_pos + x

                if scr_x >= vid_width:
                    break

                if spr_data & (0x80 >> x) and framebuffer.xor_pixel(scr_x, scr_y):
                    # Don't stop drawing.  Set the flag, and never unset it for this sprite.
                    collided = True

        v[0xF] = int(collided)  # Flag write: collision

    def _Ex9E(self):  # SKP Vx
        if self.live_debug:
            self.debug("SKP V{:01x}".format(self.vx))

        if self.machine.is_key_down(self.machine.v[self.vx]):
            self.machine.advance()

    def _ExA1(self):  # SKNP Vx
        if self.live_debug:
            self.debug("SKNP V{:01x}".format(self.vx))

        if not self.machine.is_key_down(self.machine.v[self.vx]):
            self.machine.advance()

    def _Fx07(self):  # LD Vx, DT
        if self.live_debug:
            self.debug("LD V{:01x}, DT".format(self.vx))

        self.machine.v[self.vx] = self.machine.dt

    def _Fx0A(self):  # LD Vx, K
        if self.live_debug:
            self.debug("LD V{:01x}, K".format(self.vx))

        # This opcode waits for a keypress, but since the timers still need to expire and the display still needs
        # updating, we return control to the host and step the program counter back to run this again.
        key = self.machine.take_pending_key()

        if key is None:
            self.machine.rewind()
        else:
            self.machine.v[self.vx] = key

    def _Fx15(self):  # LD DT, Vx
        if self.live_debug:
            self.debug("LD DT, V{:01x}".format(self.vx))

        self.machine.dt = self.machine.v[self.vx]

    def _Fx18(self):  # LD ST, Vx
        if self.live_debug:
            self.debug("LD ST, V{:01x}".format(self.vx))

        self.machine.ds = self.machine.v[self.vx]

    def _Fx1E(self):  # ADD I, Vx
        if self.live_debug:
            self.debug("ADD I, V{:01x}".format(self.vx))

        machine = self.machine
        val = machine.i + machine.v[self.vx]
        machine.i = val & I_BITMASK

        # Flag write on overflow only.  Vf is never cleared here.
        if val > I_BITMASK:
            machine.v[0xF] = 1

    def _Fx29(self):  # LD F, Vx
        if self.live_debug:
            self.debug("LD F, V{:01x}".format(self.vx))

        machine = self.machine
        machine.i = (FONT_LOC + FONT_CHAR_SIZE * machine.v[self.vx]) & I_BITMASK

    def _Fx33(self):  # LD B, Vx
        if self.live_debug:
            self.debug("LD B, V{:01x}".format(self.vx))

        machine = self.machine
        val = machine.v[self.vx]
        i = machine.i
        machine.write(i, val // 100)            # Most-significant digit
        machine.write(i + 1, (val // 10) % 10)  # Middle digit
        machine.write(i + 2, val % 10)          # Least-significant digit

    def _Fx55(self):  # LD [I], Vx
        if self.live_debug:
            self.debug("LD [I], V{:01x}".format(self.vx))

        machine = self.machine
        i = machine.i

        # The index register is left where it is
        for reg in range(self.vx + 1):
            machine.write(i + reg, machine.v[reg])

    def _Fx65(self):  # LD Vx, [I]
        if self.live_debug:
            self.debug("LD V{:01x}, [I]".format(self.vx))

        machine = self.machine
        i = machine.i

        for reg in range(self.vx + 1):
            machine.v[reg] = machine.read(i + reg)
