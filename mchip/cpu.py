#!/usr/bin/env python3

"""
CPU Emulator (CHIP-8)

Like a real computer, this is where most of the processing happens.  The CPU
owns the registers and timers, and is plugged into the RAM, stack,
framebuffer and keypad, all of which it mutates as instructions execute.

The host drives it one tick at a time (nominally 60 ticks per second).  Each
tick refreshes the keypad, runs as many instructions as the elapsed time
allows at the configured clock speed, then counts the timers down once.

Shift and jump-with-offset behaviours are fixed: 8xy6 and 8xyE shift Vx in
place (Vy is ignored), and Bnnn always offsets by V0.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import logging
from collections import namedtuple
from random import randint

from .constants import (
    APP_INTRO, FONT_LOC, FONT_GLYPH_SIZE, NUM_REGISTERS, PROGRAM_LOC, SYSTEM_FONT, DEFAULT_CLOCK_SPEED
)
from .pacing import Pacer
from .ram import RAMError
from .stack import StackError

CPU_ENDIAN = "big"  # CHIP-8 is big-endian

logger = logging.getLogger(__name__)

Instruction = namedtuple("Instruction", ["op", "x", "y", "n", "nn", "nnn"])


def decode(opcode):
    """
    Split a 16-bit opcode into its fields:

        op  - bits 15-12, the primary selector
        x   - bits 11-8, register index
        y   - bits 7-4, register index
        n   - bits 3-0, 4-bit immediate
        nn  - bits 7-0, 8-bit immediate
        nnn - bits 11-0, 12-bit address
    """
    return Instruction(
        (opcode & 0xF000) >> 12,
        (opcode & 0xF00) >> 8,
        (opcode & 0xF0) >> 4,
        opcode & 0xF,
        opcode & 0xFF,
        opcode & 0xFFF
    )


class CPUError(Exception):
    pass


class OutOfBoundsError(CPUError):
    pass


class StackOverflowError(CPUError):
    pass


class StackUnderflowError(CPUError):
    pass


class CPU:
    def __init__(self, ram, stack, framebuffer, keypad, debugger, clock_speed=DEFAULT_CLOCK_SPEED):
        self.ram = ram
        self.stack = stack
        self.framebuffer = framebuffer
        self.keypad = keypad
        self.debugger = debugger
        self.live_debug = self.debugger.is_live()
        self.pacer = Pacer(clock_speed)

        # Define instruction pointers.
        # n = Nibble
        # kk = Byte
        # nnn = address
        # x/y = register (0-15)
        self.instructions = {
            # Initial lookup for instructions' first nibble
            0x0: self._0nnn,  # Alias for bitmask 0xFFFF
            0x1: self._1nnn,
            0x2: self._2nnn,
            0x3: self._3xkk,
            0x4: self._4xkk,
            0x5: self._5nnn_8nnn_9nnn,  # Alias for bitmask 0xF00F
            0x6: self._6xkk,
            0x7: self._7xkk,
            0x8: self._5nnn_8nnn_9nnn,  # Alias for bitmask 0xF00F
            0x9: self._5nnn_8nnn_9nnn,  # Alias for bitmask 0xF00F
            0xA: self._Annn,
            0xB: self._Bnnn,
            0xC: self._Cxkk,
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

        # Initialise registers
        self.v = memoryview(bytearray(NUM_REGISTERS))  # Mutable in place, so register updates stay fast
        self.i = 0  # Index register

        # Initialise timers
        self.dt = 0  # Delay timer
        self.ds = 0  # Sound timer

        # Initialise program counter and current opcode
        self.pc = PROGRAM_LOC
        self.debug_pc = PROGRAM_LOC
        self.opcode = 0
        self.args = decode(0)

        # Performance-related vars
        self.perf_counter_ops = 0

    def load_program(self, rom):
        # Fonts go in first, so the program can never be half-loaded over a missing font
        self.ram.write_block(FONT_LOC, SYSTEM_FONT)
        self.ram.write_block(PROGRAM_LOC, rom)
        self.pc = PROGRAM_LOC
        logger.info("Loaded %d byte program at 0x%03x", len(rom), PROGRAM_LOC)

    def tick(self, elapsed, key_states):
        # Keys are sampled once, before any instruction in this tick sees them
        self.keypad.update(key_states)

        for _ in range(self.pacer.instructions_for(elapsed)):
            self.step()

        self.decrement_timers()
        return self.framebuffer.get_pixels(), self.is_sound_active()

    def step(self):
        # Keep track of the program counter before altering it in any way for debugging purposes
        self.debug_pc = self.pc
        self.opcode = self.fetch()

        try:
            self.decode_exec()
        except RAMError as err:
            self._halt(OutOfBoundsError, str(err))

        self.perf_counter_ops += 1

    def fetch(self):
        pc = self.pc

        if pc < 0 or pc + 1 >= len(self.ram):
            self._halt(OutOfBoundsError, "Program counter 0x{:04x} is past the end of memory".format(pc))

        opcode = int.from_bytes(self.ram.read_block(pc, 2), CPU_ENDIAN, signed=False)
        self.pc = pc + 2
        return opcode

    def decode_exec(self):
        self.args = decode(self.opcode)
        self._call_masked_instruction(self.args.op)

    def _call_masked_instruction(self, masked_opcode):
        instruction = self.instructions.get(masked_opcode)

        if instruction is None:
            self._opcode_unsupported()
            return

        instruction()

    def decrement_timers(self):
        if self.dt > 0:
            self.dt -= 1

        if self.ds > 0:
            self.ds -= 1

    def is_sound_active(self):
        return self.ds > 0

    def _opcode_unsupported(self):
        # The program counter has already moved past it, so carry on regardless
        logger.warning("Unknown instruction 0x%04x at address 0x%03x skipped", self.opcode, self.debug_pc)

    def _halt(self, error_class, reason):
        raise error_class(
            (
                "Emulation halted.\n\n" +
                "{}Debug info:\n" +
                "{}\n\n{} (opcode 0x{:04x} at address 0x{:03x})."
            ).format(
                APP_INTRO, self.debugger.debug(self, "???", verbose=True), reason, self.opcode, self.debug_pc
            )
        ) from None

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

        self.framebuffer.clear()

    def _00EE(self):  # RET
        if self.live_debug:
            self.debug("RET")

        try:
            self.pc = self.stack.pop()
        except StackError as err:
            self._halt(StackUnderflowError, str(err))

    def _1nnn(self):  # JP addr
        addr = self.args.nnn

        if self.live_debug:
            self.debug("JP 0x{:03x}".format(addr))

        self.pc = addr

    def _2nnn(self):  # CALL addr
        addr = self.args.nnn

        if self.live_debug:
            self.debug("CALL 0x{:03x}".format(addr))

        try:
            self.stack.push(self.pc)
        except StackError as err:
            self._halt(StackOverflowError, str(err))

        self.pc = addr

    def _skip(self):
        self.pc += 2

    def _3xkk(self):  # SE Vx, byte
        vx, byte = self.args.x, self.args.nn

        if self.live_debug:
            self.debug("SE V{:01x}, 0x{:02x}".format(vx, byte))

        if self.v[vx] == byte:
            self._skip()

    def _4xkk(self):  # SNE Vx, byte
        vx, byte = self.args.x, self.args.nn

        if self.live_debug:
            self.debug("SNE V{:01x}, 0x{:02x}".format(vx, byte))

        if self.v[vx] != byte:
            self._skip()

    def _5xy0(self):  # SE Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("SE V{:01x}, V{:01x}".format(vx, vy))

        if self.v[vx] == self.v[vy]:
            self._skip()

    def _6xkk(self):  # LD Vx, byte
        vx, byte = self.args.x, self.args.nn

        if self.live_debug:
            self.debug("LD V{:01x}, 0x{:02x}".format(vx, byte))

        self.v[vx] = byte

    def _7xkk(self):  # ADD Vx, byte
        vx, byte = self.args.x, self.args.nn

        if self.live_debug:
            self.debug("ADD V{:01x}, 0x{:02x}".format(vx, byte))

        # No carry flag for this one
        self.v[vx] = (self.v[vx] + byte) & 0xFF

    def _8xy0(self):  # LD Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("LD V{:01x}, V{:01x}".format(vx, vy))

        self.v[vx] = self.v[vy]

    def _8xy1(self):  # OR Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("OR V{:01x}, V{:01x}".format(vx, vy))

        self.v[vx] |= self.v[vy]

    def _8xy2(self):  # AND Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("AND V{:01x}, V{:01x}".format(vx, vy))

        self.v[vx] &= self.v[vy]

    def _8xy3(self):  # XOR Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("XOR V{:01x}, V{:01x}".format(vx, vy))

        self.v[vx] ^= self.v[vy]

    # For the arithmetic instructions, Vf is written before Vx.  If Vf is the destination, the result wins over the flag.

    def _8xy4(self):  # ADD Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("ADD V{:01x}, V{:01x}".format(vx, vy))

        val = self.v[vx] + self.v[vy]
        self.v[0xF] = int(val > 0xFF)  # Vf is set when carrying
        self.v[vx] = val & 0xFF

    def _post_8xy5_8xy7(self, val):  # Post-SUB/SUBN
        self.v[0xF] = int(val >= 0)  # Vf is set when NOT borrowing
        self.v[self.args.x] = val & 0xFF

    def _8xy5(self):  # SUB Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("SUB V{:01x}, V{:01x}".format(vx, vy))

        self._post_8xy5_8xy7(self.v[vx] - self.v[vy])

    def _8xy6(self):  # SHR Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("SHR V{:01x}".format(vx))

        self.v[0xF] = self.v[vx] & 1
        self.v[vx] >>= 1

    def _8xy7(self):  # SUBN Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("SUBN V{:01x}, V{:01x}".format(vx, vy))

        # True 8-bit wraparound, i.e. 2 - 4 gives 0xFE
        self._post_8xy5_8xy7(self.v[vy] - self.v[vx])

    def _8xyE(self):  # SHL Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("SHL V{:01x}".format(vx))

        self.v[0xF] = int((self.v[vx] & 0x80) != 0)
        self.v[vx] = (self.v[vx] << 1) & 0xFF

    def _9xy0(self):  # SNE Vx, Vy
        vx, vy = self.args.x, self.args.y

        if self.live_debug:
            self.debug("SNE V{:01x}, V{:01x}".format(vx, vy))

        if self.v[vx] != self.v[vy]:
            self._skip()

    def _Annn(self):  # LD I, addr
        addr = self.args.nnn

        if self.live_debug:
            self.debug("LD I, 0x{:03x}".format(addr))

        self.i = addr

    def _Bnnn(self):  # JP V0, addr
        addr = self.args.nnn

        if self.live_debug:
            self.debug("JP V0, 0x{:03x}".format(addr))

        # Not masked.  A target past the end of RAM is caught on the next fetch.
        self.pc = addr + self.v[0]

    def _Cxkk(self):  # RND Vx, byte
        vx, byte = self.args.x, self.args.nn

        if self.live_debug:
            self.debug("RND V{:01x}, 0x{:02x}".format(vx, byte))

        # The ANDing here is intentional.  This is not a random number between 0 and 'byte' inclusive.
        self.v[vx] = randint(0, 0xFF) & byte

    def _Dxyn(self):  # DRW Vx, Vy, nibble
        vx, vy, height = self.args.x, self.args.y, self.args.n

        if self.live_debug:
            self.debug("DRW V{:01x}, V{:01x}, 0x{:01x}".format(vx, vy, height))

        # The sprite's start always wraps, but anything hanging off the right or bottom edge is trimmed
        vid_width, vid_height = self.framebuffer.get_vid_size()
        vx_pos = self.v[vx] % vid_width
        vy_pos = self.v[vy] % vid_height

        # Every row must be readable before VF or the framebuffer are touched
        sprite = self.ram.read_block(self.i, height)
        self.v[0xF] = 0

        for y, spr_data in enumerate(sprite):
            scr_y = y + vy_pos

            if scr_y >= vid_height:
                break

            for x in range(8):
                scr_x = x + vx_pos

                if scr_x >= vid_width:
                    break

                if spr_data & (0x80 >> x) and self.framebuffer.xor_pixel(scr_x, scr_y):
                    # Don't stop drawing.  Set the flag, and never unset it for this sprite.
                    self.v[0xF] = 1

    def _Ex9E(self):  # SKP Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("SKP V{:01x}".format(vx))

        if self.keypad.is_key_down(self.v[vx]):
            self._skip()

    def _ExA1(self):  # SKNP Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("SKNP V{:01x}".format(vx))

        if not self.keypad.is_key_down(self.v[vx]):
            self._skip()

    def _Fx07(self):  # LD Vx, DT
        vx = self.args.x

        if self.live_debug:
            self.debug("LD V{:01x}, DT".format(vx))

        self.v[vx] = self.dt

    def _Fx0A(self):  # LD Vx, K
        vx = self.args.x

        if self.live_debug:
            self.debug("LD V{:01x}, K".format(vx))

        # This opcode waits for a keypress, but since the timers still need to count down and the display still needs
        # updating, we simply rewind the program counter and come back here on the next instruction.
        key = self.keypad.first_key_down()

        if key is None:
            self.pc -= 2
        else:
            self.v[vx] = key

    def _Fx15(self):  # LD DT, Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("LD DT, V{:01x}".format(vx))

        self.dt = self.v[vx]

    def _Fx18(self):  # LD ST, Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("LD ST, V{:01x}".format(vx))

        self.ds = self.v[vx]

    def _Fx1E(self):  # ADD I, Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("ADD I, V{:01x}".format(vx))

        val = self.i + self.v[vx]
        self.v[0xF] = int(val > 0xFFF)  # Amiga-style overflow flag
        self.i = val & 0xFFFF

    def _Fx29(self):  # LD F, Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("LD F, V{:01x}".format(vx))

        self.i = FONT_LOC + FONT_GLYPH_SIZE * self.v[vx]

    def _Fx33(self):  # LD B, Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("LD B, V{:01x}".format(vx))

        val = self.v[vx]
        self.ram.write_block(self.i, bytes((
            val // 100,       # Most-significant digit
            (val // 10) % 10,  # Middle digit
            val % 10          # Least-significant digit
        )))

    def _Fx55(self):  # LD [I], Vx
        vx = self.args.x

        if self.live_debug:
            self.debug("LD [I], V{:01x}".format(vx))

        # Ensure with +1s that the final register is copied
        self.ram.write_block(self.i, self.v[:vx + 1])

    def _Fx65(self):  # LD Vx, [I]
        vx = self.args.x

        if self.live_debug:
            self.debug("LD V{:01x}, [I]".format(vx))

        self.v[:vx + 1] = self.ram.read_block(self.i, vx + 1)
