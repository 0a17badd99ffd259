#!/usr/bin/env python3

"""
Null Renderer Plugin

This serves as a base class for other rendering plugins.

This module can be used on its own as a Renderer plugin if you only want to see
debug output, or when running headless.  Without a renderer, performance data
will also not be shown.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class RendererError(Exception):
    pass


class Renderer:
    def __init__(self, scale=None, **kwargs):  # pylint: disable=unused-argument
        self.scale = 1 if scale is None else scale
        self.frames_drawn = 0
        self.set_resolution(0, 0)

    def set_resolution(self, width, height):
        self.width = width
        self.height = height

    def draw_frame(self, pixels):  # pylint: disable=unused-argument
        # Pixels arrive as a read-only, row-major sequence of 0 (off) or 1 (on)
        self.frames_drawn += 1

    def refresh_display(self):
        pass

    def set_title(self, title):
        pass

    def shutdown(self):
        pass
