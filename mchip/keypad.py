#!/usr/bin/env python3

"""
Keypad State

Sixteen key-down flags, written once per tick by whichever input plugin is in
use.  The CPU only ever reads them.  Physical key codes are the input plugin's
business; here keys are only numbered 0x0 to 0xF.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import NUM_KEYS


class KeypadError(Exception):
    pass


class Keypad:
    def __init__(self):
        self.key_down = [False] * NUM_KEYS

    def update(self, key_states):
        if len(key_states) != NUM_KEYS:
            raise KeypadError("Keypad snapshot must contain {} keys, not {}".format(NUM_KEYS, len(key_states)))

        self.key_down[:] = [bool(state) for state in key_states]

    def is_key_down(self, key):
        # Registers can hold any byte, but only 0-F exist on the keypad
        if 0 <= key < NUM_KEYS:
            return self.key_down[key]

        return False

    def first_key_down(self):
        for key, down in enumerate(self.key_down):
            if down:
                return key

        return None
