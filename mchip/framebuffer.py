#!/usr/bin/env python3

"""
Framebuffer Emulator

Pixels are written here, and are only painted to the actual display (the host
rendering system) once per tick.  Programs cannot write directly into video
RAM.  Instead, sprites are drawn using an XOR method against a single plane of
boolean pixels, stored row-major.

Collisions (where a lit pixel was unset by an XOR) are reported back to the
caller.  Pixels that would land outside the screen are clipped, not wrapped.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import VID_WIDTH, VID_HEIGHT


class FramebufferError(Exception):
    pass


class Framebuffer:
    def __init__(self, vid_width=VID_WIDTH, vid_height=VID_HEIGHT):
        if vid_width <= 0 or vid_height <= 0:
            raise FramebufferError("Video size must be positive")

        self.vid_width = vid_width
        self.vid_height = vid_height
        self.vid_size = vid_width * vid_height
        self.pixels = [False] * self.vid_size
        self.changed = True  # Force the first paint

    def clear(self):
        self.pixels[:] = [False] * self.vid_size
        self.changed = True

    def xor_pixel(self, x, y):
        # Returns whether a lit pixel was switched off, or None if the pixel is offscreen
        if x < 0 or y < 0 or x >= self.vid_width or y >= self.vid_height:
            return None

        vram_loc = y * self.vid_width + x
        collision = self.pixels[vram_loc]
        self.pixels[vram_loc] = not collision
        self.changed = True

        return collision

    def get_pixel(self, x, y):
        return self.pixels[y * self.vid_width + x]

    def get_pixels(self):
        return self.pixels

    def get_vid_size(self):
        return self.vid_width, self.vid_height

    def take_changed(self):
        # Report (and reset) whether anything needs repainting since the last call
        changed = self.changed
        self.changed = False
        return changed
