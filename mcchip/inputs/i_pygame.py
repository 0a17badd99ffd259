#!/usr/bin/env python3

"""
PyGame Input Plugin

Drains the PyGame event queue and feeds key presses and releases to the
machine's keypad.  Draining the queue is slow, so the session only calls this
at the display rate.

Closing the window, or releasing Escape, asks the session to end.  Requires
the PyGame renderer, which owns the window the events arrive at.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import pygame
from .i_null import Inputs as InputsBase


class Inputs(InputsBase):
    def __init__(self, keymap, renderer, machine):
        super().__init__(keymap, renderer, machine)
        self.event_handlers = {
            pygame.QUIT: self._on_quit,
            pygame.KEYDOWN: self._on_key_down,
            pygame.KEYUP: self._on_key_up
        }

    def process_messages(self):
        end_session = False

        # Keep going after a quit event, so no key release is lost
        for event in pygame.event.get():
            handler = self.event_handlers.get(event.type)

            if handler is not None and handler(event):
                end_session = True

        return end_session

    def _on_quit(self, _):
        return True

    def _on_key_down(self, event):
        self.host_key_down(event.key)
        return False

    def _on_key_up(self, event):
        if event.key == pygame.K_ESCAPE:
            return True

        self.host_key_up(event.key)
        return False
