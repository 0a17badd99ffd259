#!/usr/bin/env python3

"""
Framebuffer Emulator

Pixels are written here, and are only handed to the actual display (the host
rendering system) when the emulated display refreshes at 60Hz.  Programs for
this system cannot write directly into video RAM.  Instead, sprites are drawn
to the screen using an XOR method, and collisions (where a set pixel was unset
by an XOR) are reported back to the caller.

Video RAM holds one byte per pixel, 0x00 for off and 0x01 for on.  Any change
marks the framebuffer as dirty.  The dirty flag is cleared here, on handoff to
the renderer, so a renderer never has to track it.

Coordinates outside the display are not wrapped: reading them returns None,
and writing them does nothing.  Sprites hanging off the edge are clipped.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import APP_NAME, VID_WIDTH, VID_HEIGHT
from .ram import RAM


class FramebufferError(Exception):
    pass


class Framebuffer:
    def __init__(self, renderer=None, vid_width=VID_WIDTH, vid_height=VID_HEIGHT):
        if vid_width <= 0 or vid_height <= 0:
            raise FramebufferError("Display dimensions must be positive")

        self.renderer = renderer
        self.vid_width = vid_width
        self.vid_height = vid_height
        self.vid_size = vid_width * vid_height
        self.vram = RAM(self.vid_size)
        self.dirty = True  # Nothing has been shown yet

        if renderer is not None:
            renderer.set_resolution(vid_width, vid_height)

        self.report_perf()

    def _locate(self, x, y):
        if 0 <= x < self.vid_width and 0 <= y < self.vid_height:
            return y * self.vid_width + x

        return None

    def get_pixel(self, x, y):
        vram_loc = self._locate(x, y)

        if vram_loc is None:
            return None

        return self.vram.read(vram_loc) != 0

    def set_pixel(self, x, y, value):
        vram_loc = self._locate(x, y)

        if vram_loc is not None:
            self.vram.write(vram_loc, int(bool(value)))
            self.dirty = True

    def xor_pixel(self, x, y):
        # Returns whether a set pixel was switched off, or None if the pixel is off-screen
        vram_loc = self._locate(x, y)

        if vram_loc is None:
            return None

        pixel = self.vram.read(vram_loc)
        self.vram.write(vram_loc, pixel ^ 1)
        self.dirty = True
        return pixel != 0

    def clear(self):
        self.vram.clear()
        self.dirty = True

    def get_pixels(self):
        # Row-major, read-only view of video RAM
        return self.vram.mem.toreadonly()

    def get_vid_size(self):
        return self.vid_width, self.vid_height

    def refresh_display(self):
        # Hand the frame over to the renderer if anything has changed since the last handoff
        if not self.dirty:
            return False

        if self.renderer is not None:
            self.renderer.draw_frame(self.get_pixels())
            self.renderer.refresh_display()

        self.dirty = False
        return True

    def report_perf(self, fps=0, ops=0):
        if self.renderer is not None:
            self.renderer.set_title("{} - {} FPS, {} OPS".format(APP_NAME, fps, ops))
