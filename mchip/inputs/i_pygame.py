#!/usr/bin/env python3

"""
PyGame Input Plugin

Reads the whole keyboard state from SDL once per tick, so every held key is
reported without having to track 'press' and 'release' events ourselves.  The
event queue is still drained each tick, but only to catch the window closing
or Escape being pressed.

If the application is quit, then this will control shutting PyGame down too, so
any linked Renderer must be able to handle that.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import pygame
from .i_null import Inputs as InputsBase
from ..constants import NUM_KEYS


class Inputs(InputsBase):
    def process_messages(self):
        quit_program = False

        for event in pygame.event.get():
            if event.type == pygame.QUIT or (event.type == pygame.KEYUP and event.key == pygame.K_ESCAPE):
                quit_program = True  # Drain the rest of the queue, even if planning to quit

        return quit_program

    def get_key_states(self):
        pressed = pygame.key.get_pressed()
        key_states = [False] * NUM_KEYS

        for key_code, hex_key in self.keymap_dict.items():
            if pressed[key_code]:
                key_states[hex_key] = True

        return key_states
