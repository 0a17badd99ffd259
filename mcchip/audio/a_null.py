#!/usr/bin/env python3

"""
Null Audio Plugin

Serves as a base class for other Audio plugins.  Can be used on its own if no
sound is required.

The emulated machine only has a buzzer, which sounds whenever the sound timer
is above zero.  The host switches it on and off to match.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class Audio:
    def __init__(self):
        # Buzzer should be disabled (not playing sounds) by default
        self.buzzer_enabled = False
        self.frequency = None

    def set_frequency(self, frequency):
        # Set buzzer pitch in Hz
        self.frequency = frequency

    def enable_buzzer(self, enabled):
        self.buzzer_enabled = enabled

    def shutdown(self):
        pass
