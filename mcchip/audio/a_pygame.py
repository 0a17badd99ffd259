#!/usr/bin/env python3

"""
PyGame Audio Plugin

Plays the emulated buzzer through PyGame / SDL.

The buzzer is a square wave.  One full cycle is built into an unsigned 8-bit
mono sample at the host playback rate, and then looped for as long as the
buzzer is enabled.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import pygame
from .a_null import Audio as AudioBase

PLAYBACK_FREQUENCY = 44100
DEFAULT_VOLUME = 0.1


class Audio(AudioBase):
    def __init__(self):
        self.sound = None
        pygame.mixer.pre_init(PLAYBACK_FREQUENCY, size=8, channels=1, allowedchanges=0)
        pygame.mixer.init()
        super().__init__()

    def set_frequency(self, frequency):
        # Setting PyGame's playback rate is very slow, so we rebuild the sample at the requested pitch instead
        if frequency == self.frequency:
            return

        super().set_frequency(frequency)
        cycle_length = max(2, int(PLAYBACK_FREQUENCY / frequency))
        half_cycle = cycle_length // 2
        wave = bytes([0xFF] * half_cycle + [0x00] * (cycle_length - half_cycle))

        if self.buzzer_enabled:
            self.sound.stop()

        self.sound = pygame.mixer.Sound(buffer=wave)
        self.sound.set_volume(DEFAULT_VOLUME)

        if self.buzzer_enabled:
            # If the pitch has changed while the buzzer is sounding, play the new sample now
            self.sound.play(-1)

    def enable_buzzer(self, enabled):
        # If the buzzer is already sounding, it won't be restarted
        if enabled and not self.buzzer_enabled and self.sound is not None:
            self.sound.play(-1)
        elif not enabled and self.buzzer_enabled:
            self.sound.stop()

        super().enable_buzzer(enabled and self.sound is not None)

    def shutdown(self):
        if self.sound:
            self.sound.stop()

        pygame.mixer.quit()
        super().shutdown()
