#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

# App identification
APP_NAME = "MonoChip Interpreter"
APP_VERSION = "1.0.0"
APP_COPYRIGHT = "Copyright (C) 2022 Gregory Maynard-Hoare, licensed under GNU Affero General Public License v3.0"
APP_INTRO = "{} V{} -- ".format(APP_NAME, APP_VERSION)

# Machine layout
MEM_SIZE = 0x1000        # 4K of addressable RAM
FONT_LOC = 0x000         # Hex font glyphs live at the very bottom of RAM
PROGRAM_LOC = 0x200      # Programs are always loaded and started here
STACK_SIZE = 64          # Return addresses, kept out of RAM
NUM_REGISTERS = 0x10
NUM_KEYS = 0x10
VID_WIDTH = 64
VID_HEIGHT = 32

# Timing
DEFAULT_CLOCK_SPEED = 700  # Instructions per second
TIMER_FREQ = 60.0          # Timers count down once per tick, and ticks run at 60Hz

# Default mappings for keys 0-F.  Note that the keyscans (on a UK QWERTY keyboard) and ASCII characters for these are
# the same code
DEFAULT_KEYMAP = "120,49,50,51,113,119,101,97,115,100,122,99,52,114,102,118"

# 16 glyphs (0-F), 5 rows each, 4 pixels wide in the high nibble
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
FONT_GLYPH_SIZE = 5
