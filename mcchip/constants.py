#!/usr/bin/env python3

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

# App identification
APP_NAME = "MintChip Emulator"
APP_VERSION = "1.0.0"
APP_COPYRIGHT = "Copyright (C) 2022 Gregory Maynard-Hoare, licensed under GNU Affero General Public License v3.0"
APP_INTRO = "{} V{} -- ".format(APP_NAME, APP_VERSION)

# Memory map
MEM_SIZE = 0x1000     # 4K of addressable RAM
FONT_LOC = 0x50       # System font, 16 characters of 5 bytes each
FONT_CHAR_SIZE = 5
FONT_SIZE = 0x10 * FONT_CHAR_SIZE
PROGRAM_LOC = 0x200   # Programs are loaded (and start executing) here
PROGRAM_MAX_SIZE = MEM_SIZE - PROGRAM_LOC
STACK_SIZE = 16       # Nested subroutine levels

# Display
VID_WIDTH = 64
VID_HEIGHT = 32

# Timing
TIMER_FREQ = 60.0    # 60Hz delay and sound timers
TIMER_INTERVAL = 1.0 / TIMER_FREQ
DISPLAY_FREQ = 60.0  # 60Hz display refresh and input polling
DISPLAY_INTERVAL = 1.0 / DISPLAY_FREQ
DEFAULT_CLOCK_SPEED = 700  # Instructions per second

# Default mappings for keys 0-F, later populated into a dictionary.  Note that the keyscans (on a UK QWERTY keyboard)
# and ASCII characters for these are the same code
DEFAULT_KEYMAP = "120,49,50,51,113,119,101,97,115,100,122,99,52,114,102,118"

# Default buzzer pitch in Hz
DEFAULT_BUZZER_FREQ = 440.0
