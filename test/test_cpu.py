#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import io
import unittest
from contextlib import redirect_stderr, redirect_stdout
from random import Random
from mcchip.cpu import CPU, CPUError
from mcchip.debugger import Debugger
from mcchip.machine import Machine, MachineError
from mcchip.ram import RAMError
from mcchip.stack import StackError


class TestCPU(unittest.TestCase):
    def setUp(self):
        self.machine = Machine()
        self.v = self.machine.v
        self.debugger = Debugger()
        self.cpu = CPU(self.machine, self.debugger, rng=Random(1))

    def _load(self, *opcodes):
        self.machine.load_program(b"".join(opcode.to_bytes(2, "big") for opcode in opcodes))

    def _check_opcode(self, opcode):
        # Executes without fetching, so the program counter starts at 0x200 rather than 0x202
        self.cpu.opcode = opcode
        self.cpu.decode_exec()

    def _check_fatal(self, cause):
        with redirect_stderr(io.StringIO()):
            with self.assertRaises(CPUError) as context:
                self.cpu.step()

        self.assertIsInstance(context.exception.__cause__, cause)
        return context.exception

    def test_cpu_fetch(self):
        self.machine.ram.write_block(0x200, bytearray(b"\xFF\xFE"))
        self.assertEqual(0xFFFE, self.cpu.fetch())
        self.assertEqual(0x200, self.machine.pc)

    def test_cpu_step(self):
        self._load(0x6142, 0x7101)
        self.cpu.step()
        self.assertEqual(0x202, self.machine.pc)
        self.assertEqual(0x6142, self.cpu.opcode)
        self.assertEqual(0x200, self.cpu.debug_pc)
        self.cpu.step()
        self.assertEqual(0x204, self.machine.pc)
        self.assertEqual(0x43, self.v[0x1])
        self.assertEqual(2, self.cpu.cycles)

    def test_cpu_step_pc_out_of_bounds(self):
        self.machine.pc = 0xFFF
        error = self._check_fatal(MachineError)
        self.assertIn("Emulation halted", str(error))
        self.assertEqual(0, self.cpu.cycles)

    def test_cpu_step_runs_off_end_of_memory(self):
        self._load(0x1FFE)
        self.cpu.step()  # JP 0xFFE, which holds 0x0000
        self.assertEqual(0xFFE, self.machine.pc)

        with redirect_stderr(io.StringIO()):
            self.cpu.step()  # Unsupported, skipped

        self._check_fatal(MachineError)

    def test_cpu_decode_exec_unsupported(self):
        opcodes = 0x0000, 0x0001, 0x000F, 0x0123, 0x5001, 0x8008, 0x800F, 0x9001, 0xE09F, 0xE0A2, 0xF000, 0xFFFF
        stderr = io.StringIO()

        with redirect_stderr(stderr):
            for opcode in opcodes:
                self._check_opcode(opcode)

            self._check_opcode(0xFFFF)  # Only reported once

        self.assertEqual(0x200, self.machine.pc)
        self.assertEqual(bytes(16), bytes(self.v))
        self.assertEqual(len(opcodes) + 1, self.debugger.get_unsupported_count())
        self.assertEqual(2, self.debugger.unsupported[0xFFFF])
        self.assertEqual(len(opcodes), stderr.getvalue().count("not supported"))

    def test_cpu_step_over_unsupported(self):
        self._load(0xFFFF, 0x6005)

        with redirect_stderr(io.StringIO()):
            self.cpu.step()

        self.cpu.step()
        self.assertEqual(0x204, self.machine.pc)
        self.assertEqual(0x5, self.v[0x0])

    # Flow control

    def test_cpu_00e0(self):  # CLS
        self.machine.set_pixel(5, 5, True)
        self.machine.framebuffer.refresh_display()
        self._check_opcode(0x00E0)
        self.assertFalse(self.machine.get_pixel(5, 5))
        self.assertTrue(self.machine.framebuffer.dirty)
        self.assertEqual(0, sum(self.machine.framebuffer.get_pixels()))

    def test_cpu_00ee(self):  # RET
        self.machine.push(0xFFE)
        self._check_opcode(0x00EE)
        self.assertEqual(0xFFE, self.machine.pc)
        self.assertEqual(0, self.machine.stack.pointer)

    def test_cpu_00ee_underflow(self):
        self._load(0x00EE)
        self._check_fatal(StackError)

    def test_cpu_1nnn(self):  # JP addr
        self._check_opcode(0x1FFD)
        self.assertEqual(0xFFD, self.machine.pc)

    def test_cpu_2nnn(self):  # CALL addr
        self._check_opcode(0x2FFC)
        self.assertEqual(0xFFC, self.machine.pc)
        self.assertEqual(0x200, self.machine.pop())

    def test_cpu_call_return(self):
        self._load(0x2300)
        self.machine.ram.write_block(0x300, b"\x00\xEE")
        self.cpu.step()
        self.assertEqual(0x300, self.machine.pc)
        self.assertEqual([0x202], self.machine.stack.get_items())
        self.cpu.step()
        self.assertEqual(0x202, self.machine.pc)
        self.assertEqual(0, self.machine.stack.pointer)

    def test_cpu_call_overflow(self):
        self._load(0x2200)  # Calls itself forever

        for _ in range(16):
            self.cpu.step()

        error = self._check_fatal(StackError)
        self.assertIn("Stack overflow", str(error))
        self.assertEqual(16, self.machine.stack.pointer)

    def test_cpu_3xnn(self):  # SE Vx, byte
        self.v[0x2] = 0x11
        self._check_opcode(0x3212)
        self.assertEqual(0x200, self.machine.pc)
        self.v[0x2] = 0x12
        self._check_opcode(0x3212)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_4xnn(self):  # SNE Vx, byte
        self.v[0x2] = 0x11
        self._check_opcode(0x4212)
        self.assertEqual(0x202, self.machine.pc)
        self.v[0x2] = 0x12
        self._check_opcode(0x4212)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_5xy0(self):  # SE Vx, Vy
        self.v[0x2] = 0x11
        self.v[0x3] = 0x12
        self._check_opcode(0x5230)
        self.assertEqual(0x200, self.machine.pc)
        self.v[0x3] = 0x11
        self._check_opcode(0x5230)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_9xy0(self):  # SNE Vx, Vy
        self.v[0x2] = 0x15
        self.v[0x3] = 0x16
        self._check_opcode(0x9230)
        self.assertEqual(0x202, self.machine.pc)
        self.v[0x3] = 0x15
        self._check_opcode(0x9230)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_skip_whole_instruction(self):
        self._load(0x3000, 0x6101, 0x6202)
        self.cpu.step()
        self.cpu.step()
        self.assertEqual(0x206, self.machine.pc)
        self.assertEqual(0x0, self.v[0x1])
        self.assertEqual(0x2, self.v[0x2])

    def test_cpu_bnnn(self):  # JP V0, addr
        self._check_opcode(0xB002)
        self.assertEqual(0x2, self.machine.pc)
        self.v[0x0] = 0x1
        self._check_opcode(0xB302)
        self.assertEqual(0x303, self.machine.pc)
        self.v[0x0] = 0xFF
        self.v[0x1] = 0x10  # Only V0 is used
        self._check_opcode(0xB100)
        self.assertEqual(0x1FF, self.machine.pc)

    def test_cpu_bnnn_past_end_of_memory(self):
        self.v[0x0] = 0xFF
        self._check_opcode(0xBFFF)
        self.assertEqual(0x10FE, self.machine.pc)
        self._check_fatal(MachineError)

    # Registers

    def test_cpu_6xnn(self):  # LD Vx, byte
        self._check_opcode(0x62FE)
        self.assertEqual(0xFE, self.v[0x2])

    def test_cpu_7xnn(self):  # ADD Vx, byte
        self._check_opcode(0x72FE)
        self.assertEqual(0xFE, self.v[0x2])
        self._check_opcode(0x7201)
        self.assertEqual(0xFF, self.v[0x2])
        self._check_opcode(0x7201)
        self.assertEqual(0x00, self.v[0x2])

    def test_cpu_7xnn_wraps_without_flag(self):
        self.v[0xF] = 0x7
        self._check_opcode(0x63FA)  # 250
        self._check_opcode(0x730A)  # + 10
        self.assertEqual(4, self.v[0x3])
        self.assertEqual(0x7, self.v[0xF])

    def test_cpu_6xnn_7xnn_all_bytes(self):
        for nn in range(0x100):
            self._check_opcode(0x6400)
            self._check_opcode(0x7400 | nn)
            self.assertEqual(nn, self.v[0x4])
            self._check_opcode(0x7400 | nn)
            self.assertEqual((nn * 2) % 0x100, self.v[0x4])

    def test_cpu_8xy0(self):  # LD Vx, Vy
        self.v[0x1] = 0x1
        self.v[0x2] = 0x2
        self._check_opcode(0x8120)
        self.assertEqual(0x2, self.v[0x1])

    def _prepare_alu(self):
        self.v[0x1] = 0b10111000
        self.v[0x2] = 0b10001110
        self.v[0xF] = 0x2

    def test_cpu_8xy1(self):  # OR Vx, Vy
        self._prepare_alu()
        self._check_opcode(0x8121)
        self.assertEqual(0b10111110, self.v[0x1])
        self.assertEqual(0x2, self.v[0xF])

    def test_cpu_8xy2(self):  # AND Vx, Vy
        self._prepare_alu()
        self._check_opcode(0x8122)
        self.assertEqual(0b10001000, self.v[0x1])
        self.assertEqual(0x2, self.v[0xF])

    def test_cpu_8xy3(self):  # XOR Vx, Vy
        self._prepare_alu()
        self._check_opcode(0x8123)
        self.assertEqual(0b00110110, self.v[0x1])
        self.assertEqual(0x2, self.v[0xF])

    def test_cpu_8xy4_carry(self):  # ADD Vx, Vy (carry)
        self.v[0x1] = 200
        self.v[0x2] = 100
        self._check_opcode(0x8124)
        self.assertEqual(44, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xy4_no_carry(self):  # ADD Vx, Vy (no carry)
        self.v[0x1] = 0x1
        self.v[0xF] = 0x2  # Use Vf as an input to check flag ordering too
        self._check_opcode(0x81F4)
        self.assertEqual(0x3, self.v[0x1])
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_8xy4_flag_wins(self):
        self.v[0xF] = 0xFF
        self.v[0x1] = 0x01
        self._check_opcode(0x8F14)
        self.assertEqual(0x1, self.v[0xF])  # Flag written after the result

    def test_cpu_8xy5_borrow(self):  # SUB Vx, Vy (borrow)
        self.v[0x1] = 100
        self.v[0x2] = 200
        self._check_opcode(0x8125)
        self.assertEqual(156, self.v[0x1])
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_8xy5_no_borrow(self):  # SUB Vx, Vy (no borrow)
        self.v[0x1] = 0x3
        self.v[0x2] = 0x1
        self._check_opcode(0x8125)
        self.assertEqual(0x2, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])
        self.v[0x1] = 0xFF
        self.v[0xF] = 0xFF  # Use Vf as an input to check flag ordering too
        self._check_opcode(0x81F5)
        self.assertEqual(0x0, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xy7(self):  # SUBN Vx, Vy
        self.v[0x1] = 0x4
        self.v[0x2] = 0x2
        self._check_opcode(0x8127)
        self.assertEqual(0xFE, self.v[0x1])
        self.assertEqual(0x2, self.v[0x2])
        self.assertEqual(0x0, self.v[0xF])
        self.v[0x1] = 0x2
        self.v[0x2] = 0x4
        self._check_opcode(0x8127)
        self.assertEqual(0x2, self.v[0x1])
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_8xy6(self):  # SHL Vx, Vy
        self.v[0x1] = 0x0
        self.v[0x2] = 0x81
        self._check_opcode(0x8126)
        self.assertEqual(0x02, self.v[0x1])
        self.assertEqual(0x81, self.v[0x2])
        self.assertEqual(0x1, self.v[0xF])
        self.v[0x2] = 0x41
        self._check_opcode(0x8126)
        self.assertEqual(0x82, self.v[0x1])
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_8xye(self):  # SHR Vx, Vy
        self.v[0x1] = 0xFF
        self.v[0x2] = 0x81
        self._check_opcode(0x812E)
        self.assertEqual(0x40, self.v[0x1])
        self.assertEqual(0x81, self.v[0x2])
        self.assertEqual(0x1, self.v[0xF])
        self.v[0x2] = 0x80
        self._check_opcode(0x812E)
        self.assertEqual(0x40, self.v[0x1])
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_8xy6_8xye_flag_wins(self):
        self.v[0x2] = 0x81
        self._check_opcode(0x8F26)  # Shifted value 0x02 is overwritten by the flag
        self.assertEqual(0x1, self.v[0xF])
        self.v[0x2] = 0x80
        self._check_opcode(0x8F2E)  # Shifted value 0x40 is overwritten by the flag
        self.assertEqual(0x0, self.v[0xF])
        self.v[0xF] = 0x03
        self._check_opcode(0x8FFE)  # Source is Vf itself
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_annn(self):  # LD I, addr
        self.assertEqual(0, self.machine.i)
        self._check_opcode(0xAFF1)
        self.assertEqual(0xFF1, self.machine.i)

    def test_cpu_cxnn(self):  # RND Vx, byte
        expected = Random(1).randint(0, 0xFF) & 0x0F
        self._check_opcode(0xC10F)
        self.assertEqual(expected, self.v[0x1])
        self._check_opcode(0xC200)
        self.assertEqual(0x0, self.v[0x2])

    def test_cpu_cxnn_masked(self):
        for _ in range(50):
            self._check_opcode(0xC3A5)
            self.assertEqual(0, self.v[0x3] & ~0xA5)

    # Display

    def _draw_digit(self, digit, x, y):
        self.v[0x0] = x
        self.v[0x1] = y
        self.v[0x2] = digit
        self._check_opcode(0xF229)
        self._check_opcode(0xD015)

    def test_cpu_dxyn(self):  # DRW Vx, Vy, nibble
        self._draw_digit(0x0, 0, 0)
        self.assertEqual(0x0, self.v[0xF])
        # Digit '0' is 0xF0, 0x90, 0x90, 0x90, 0xF0
        for x in range(8):
            self.assertEqual(x < 4, self.machine.get_pixel(x, 0))
            self.assertEqual(x in (0, 3), self.machine.get_pixel(x, 1))

        self.assertEqual(14, sum(self.machine.framebuffer.get_pixels()))

    def test_cpu_dxyn_twice_restores(self):
        self.machine.write(0x300, 0xFF)
        self.machine.i = 0x300
        self._check_opcode(0xD011)
        self.assertEqual(0x0, self.v[0xF])
        self.assertEqual(8, sum(self.machine.framebuffer.get_pixels()))
        self._check_opcode(0xD011)
        self.assertEqual(0x1, self.v[0xF])

        for x in range(8):
            self.assertFalse(self.machine.get_pixel(x, 0))

    def test_cpu_dxyn_flag_reset(self):
        self.v[0xF] = 0x1
        self.machine.write(0x300, 0x80)
        self.machine.i = 0x300
        self._check_opcode(0xD011)
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_dxyn_partial_collision(self):
        self.machine.write(0x300, 0x80)
        self.machine.write(0x301, 0xC0)
        self.machine.i = 0x300
        self._check_opcode(0xD011)  # One pixel at (0, 0)
        self.machine.i = 0x301
        self._check_opcode(0xD011)  # Two pixels at (0, 0) and (1, 0)
        self.assertEqual(0x1, self.v[0xF])
        self.assertFalse(self.machine.get_pixel(0, 0))
        self.assertTrue(self.machine.get_pixel(1, 0))

    def test_cpu_dxyn_clipping(self):
        self.machine.write(0x300, 0xFF)
        self.machine.write(0x301, 0xFF)
        self.machine.write(0x302, 0xFF)
        self.machine.i = 0x300
        self.v[0x0] = 60
        self.v[0x1] = 30
        self._check_opcode(0xD013)

        for y in 30, 31:
            for x in range(60, 64):
                self.assertTrue(self.machine.get_pixel(x, y))

            for x in range(4):
                self.assertFalse(self.machine.get_pixel(x, y))  # No horizontal wrap

        for x in range(60, 64):
            self.assertFalse(self.machine.get_pixel(x, 0))  # No vertical wrap

        self.assertEqual(8, sum(self.machine.framebuffer.get_pixels()))

    def test_cpu_dxyn_origin_wraps(self):
        self.machine.write(0x300, 0x80)
        self.machine.i = 0x300
        self.v[0x0] = 64 + 2
        self.v[0x1] = 32 + 1
        self._check_opcode(0xD011)
        self.assertTrue(self.machine.get_pixel(2, 1))
        self.assertEqual(1, sum(self.machine.framebuffer.get_pixels()))

    def test_cpu_dxyn_zero_height(self):
        self._check_opcode(0xD010)
        self.assertEqual(0, sum(self.machine.framebuffer.get_pixels()))
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_dxyn_past_end_of_memory(self):
        self._load(0xAFFE, 0xD003)
        self.cpu.step()
        self._check_fatal(RAMError)

    # Keypad

    def test_cpu_ex9e(self):  # SKP Vx
        self.v[0x1] = 0x5
        self._check_opcode(0xE19E)
        self.assertEqual(0x200, self.machine.pc)
        self.machine.press_key(0x5)
        self._check_opcode(0xE19E)
        self.assertEqual(0x202, self.machine.pc)

    def test_cpu_exa1(self):  # SKNP Vx
        self.v[0x1] = 0x5
        self._check_opcode(0xE1A1)
        self.assertEqual(0x202, self.machine.pc)
        self.machine.press_key(0x5)
        self._check_opcode(0xE1A1)
        self.assertEqual(0x202, self.machine.pc)
        self.machine.release_key(0x5)
        self._check_opcode(0xE1A1)
        self.assertEqual(0x204, self.machine.pc)

    def test_cpu_ex9e_out_of_range_key(self):
        self.v[0x1] = 0x15
        self.machine.press_key(0x5)
        self._check_opcode(0xE19E)
        self.assertEqual(0x200, self.machine.pc)

    def test_cpu_fx0a(self):  # LD Vx, K
        self._load(0xF30A, 0x6401)

        for _ in range(3):
            self.cpu.step()
            self.assertEqual(0x200, self.machine.pc)
            self.assertEqual(0x0, self.v[0x3])

        self.machine.press_key(0xB)
        self.cpu.step()
        self.assertEqual(0xB, self.v[0x3])
        self.assertEqual(0x202, self.machine.pc)
        self.assertIsNone(self.machine.pending_key)
        self.cpu.step()
        self.assertEqual(0x1, self.v[0x4])

    def test_cpu_fx0a_consumes_once(self):
        self._load(0xF10A, 0xF20A)
        self.machine.press_key(0x7)
        self.cpu.step()
        self.cpu.step()
        self.assertEqual(0x7, self.v[0x1])
        self.assertEqual(0x0, self.v[0x2])
        self.assertEqual(0x202, self.machine.pc)

    # Timers

    def test_cpu_fx07(self):  # LD Vx, DT
        self.assertEqual(0x0, self.v[0x2])
        self.machine.dt = 0x2
        self._check_opcode(0xF207)
        self.assertEqual(0x2, self.v[0x2])

    def test_cpu_fx15(self):  # LD DT, Vx
        self.assertEqual(0x0, self.machine.dt)
        self.v[0x2] = 0x3
        self._check_opcode(0xF215)
        self.assertEqual(0x3, self.machine.dt)

    def test_cpu_fx18(self):  # LD ST, Vx
        self.assertEqual(0x0, self.machine.ds)
        self.v[0x3] = 0x4
        self._check_opcode(0xF318)
        self.assertEqual(0x4, self.machine.ds)
        self.assertTrue(self.machine.is_sound_on())

    # Index register and memory

    def test_cpu_fx1e_no_overflow(self):  # ADD I, Vx
        self.v[0x1] = 0x2
        self.v[0xF] = 0x5
        self.machine.i = 0x3
        self._check_opcode(0xF11E)
        self.assertEqual(0x5, self.machine.i)
        self.assertEqual(0x5, self.v[0xF])  # Left alone

    def test_cpu_fx1e_past_4k(self):
        self.v[0x1] = 0x2
        self.machine.i = 0xFFF
        self._check_opcode(0xF11E)
        self.assertEqual(0x1001, self.machine.i)
        self.assertEqual(0x0, self.v[0xF])

    def test_cpu_fx1e_overflow(self):
        self.v[0x3] = 0x03
        self.machine.i = 0xFFFE
        self._check_opcode(0xF31E)
        self.assertEqual(0x0001, self.machine.i)
        self.assertEqual(0x1, self.v[0xF])

    def test_cpu_fx29(self):  # LD F, Vx
        self.v[0x1] = 0x9
        self._check_opcode(0xF129)
        self.assertEqual(0x7D, self.machine.i)
        self.v[0x1] = 0xA
        self._check_opcode(0xF129)
        self.assertEqual(0x82, self.machine.i)
        self.assertEqual(b"\xF0\x90\xF0\x90\x90", bytes(self.machine.read_block(self.machine.i, 5)))

    def test_cpu_fx33(self):  # LD B, Vx
        self.machine.i = 0x300
        self.v[0x1] = 0xFE
        self._check_opcode(0xF133)
        # Ensure 254 (base 10 of 0xFE) is calculated
        self.assertEqual(b"\x02\x05\x04", bytes(self.machine.read_block(0x300, 3)))
        self.assertEqual(0x300, self.machine.i)

    def test_cpu_fx55(self):  # LD [I], Vx
        self.v[0x0] = 3
        self.v[0x1] = 2
        self.v[0x2] = 1  # Shouldn't be written into RAM @ 0x0302
        self.machine.i = 0x300
        self._check_opcode(0xF155)
        self.assertEqual(b"\x03\x02\x00", bytes(self.machine.read_block(0x300, 3)))
        self.assertEqual(0x300, self.machine.i)

    def test_cpu_fx65(self):  # LD Vx, [I]
        self.machine.i = 0x300
        self.machine.ram.write_block(0x300, b"\x06\x05\x04")  # 0x04 shouldn't be copied to register V2
        self._check_opcode(0xF165)
        self.assertEqual(0x6, self.v[0])
        self.assertEqual(0x5, self.v[1])
        self.assertEqual(0x0, self.v[2])
        self.assertEqual(0x300, self.machine.i)

    def test_cpu_fx55_fx65_all_registers(self):
        for reg in range(0x10):
            self.v[reg] = reg * 3

        self.machine.i = 0x400
        self._check_opcode(0xFF55)

        for reg in range(0x10):
            self.v[reg] = 0

        self._check_opcode(0xFF65)
        self.assertEqual(bytes(reg * 3 for reg in range(0x10)), bytes(self.v))

    def test_cpu_fx55_past_end_of_memory(self):
        self._load(0xAFFF, 0xF155)
        self.cpu.step()
        self._check_fatal(RAMError)

    # Debugging

    def test_cpu_live_debug(self):
        self.debugger.set_live(True)
        cpu = CPU(self.machine, self.debugger)
        self._load(0x62FE, 0xA123)
        stdout = io.StringIO()

        with redirect_stdout(stdout):
            cpu.step()
            cpu.step()

        lines = stdout.getvalue().splitlines()
        self.assertEqual(2, len(lines))
        self.assertTrue(lines[0].endswith("IN: LD V2, 0xfe"))
        self.assertIn("PC: 0x202 OP: 0xa123", lines[1])
        self.assertTrue(lines[1].endswith("IN: LD I, 0x123"))
