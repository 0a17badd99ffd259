#!/usr/bin/env python3

"""
Null Input Plugin

Base class for the other Input plugins, and usable by itself when running
headless, where the keypad is only ever driven by tests or scripts.

A keymap is a string of 16 comma-separated host key codes.  Position n in the
string is the host key for CHIP-8 key n (0-F).  Host key events are translated
through it and forwarded to the machine's keypad.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from ..machine import NUM_KEYS


class InputsError(Exception):
    pass


def parse_keymap(keymap):
    # Returns a dictionary of host key code -> CHIP-8 key
    host_keys = keymap.split(",")

    if len(host_keys) != NUM_KEYS:
        raise InputsError("Keymap has {} entries, but exactly {} are required".format(len(host_keys), NUM_KEYS))

    keymap_dict = {}

    for hex_key, host_key in enumerate(host_keys):
        try:
            host_key = int(host_key)
        except ValueError:
            raise InputsError("Keymap entry '{}' is not a decimal key code".format(host_key)) from None

        if host_key in keymap_dict:
            raise InputsError("Host key {} is mapped more than once".format(host_key))

        keymap_dict[host_key] = hex_key

    return keymap_dict


class Inputs:
    def __init__(self, keymap, renderer, machine):
        self.keymap_dict = parse_keymap(keymap)
        self.renderer = renderer
        self.machine = machine

    def host_key_down(self, host_key):
        hex_key = self.keymap_dict.get(host_key)

        if hex_key is not None:
            self.machine.press_key(hex_key)

        return hex_key

    def host_key_up(self, host_key):
        hex_key = self.keymap_dict.get(host_key)

        if hex_key is not None:
            self.machine.release_key(hex_key)

        return hex_key

    def process_messages(self):
        # Returns True when the host wants the session to end
        return False

    def shutdown(self):
        pass
