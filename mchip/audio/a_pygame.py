#!/usr/bin/env python3

"""
PyGame Audio Plugin

Plays a fixed square-wave beep through PyGame / SDL while the buzzer is
enabled.  The tone is built once at startup and looped, so toggling the gate
is just a play or a stop.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import pygame
from .a_null import Audio as AudioBase

PLAYBACK_FREQUENCY = 44100
BEEP_FREQUENCY = 440.0
DEFAULT_VOLUME = 0.1


class Audio(AudioBase):
    def __init__(self):
        pygame.mixer.pre_init(PLAYBACK_FREQUENCY, size=8, channels=1, buffer=512, allowedchanges=0)
        pygame.mixer.init()

        # One full cycle of an unsigned 8-bit square wave, high half then low half
        half_period = int(PLAYBACK_FREQUENCY / BEEP_FREQUENCY / 2)
        self.sound = pygame.mixer.Sound(buffer=bytes([0xFF] * half_period + [0x00] * half_period))
        self.sound.set_volume(DEFAULT_VOLUME)
        super().__init__()

    def enable_buzzer(self, enabled):
        # If the beep is already playing, it won't be restarted
        if enabled and not self.buzzer_enabled:
            self.sound.play(-1)
        elif not enabled and self.buzzer_enabled:
            self.sound.stop()

        super().enable_buzzer(enabled)

    def shutdown(self):
        self.sound.stop()
        pygame.mixer.quit()
        super().shutdown()
