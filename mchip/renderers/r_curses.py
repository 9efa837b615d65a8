#!/usr/bin/env python3

"""
Curses Renderer Plugin

Draws graphics in a standard Linux-style TTY Terminal, the Windows Command
Prompt, or PowerShell, using inverted spaces to represent each lit pixel.

Only pixels which differ from the last painted frame are redrawn, as Curses
calls are slow when made thousands of times a second.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import curses
import _curses
from .r_null import Renderer as RendererBase


class Renderer(RendererBase):
    def __init__(self, scale=None, **kwargs):
        if scale is None:
            scale = 2  # Default horizontal stretch if not supplied, or set to default

        self.pixel_char = " " * scale
        self.pad = None
        self.last_pixels = []
        self.last_screen_height = -1
        self.last_screen_width = -1
        self.screen = curses.initscr()
        curses.curs_set(0)  # Hide the cursor
        curses.noecho()
        curses.cbreak()

        super().__init__(scale)

    def set_resolution(self, width, height):
        # We have to allow one extra character, presumably for the cursor, otherwise we can't write the furthest
        # bottom-right pixel.  The top line is used for the title.
        self.pad = curses.newpad(height + 2, width * self.scale + 1)
        self.last_pixels = [False] * (width * height)
        super().set_resolution(width, height)

    def draw(self, pixels):
        super().draw(pixels)
        width = self.width
        scale = self.scale

        for vram_loc, lit in enumerate(pixels):
            if lit != self.last_pixels[vram_loc]:
                y, x = divmod(vram_loc, width)
                self.pad.addstr(y + 1, x * scale, self.pixel_char, curses.A_REVERSE if lit else curses.A_NORMAL)

        self.last_pixels = list(pixels)
        self._refresh_pad()

    def _refresh_pad(self):
        screen_height, screen_width = self.screen.getmaxyx()

        if screen_height != self.last_screen_height or screen_width != self.last_screen_width:
            # Screen resolution changed, redraw everything
            self.screen.clear()

            if hasattr(curses, "resizeterm"):
                # This doesn't work on Windows
                curses.resizeterm(screen_height, screen_width)

            self.screen.refresh()
            self.last_screen_height = screen_height
            self.last_screen_width = screen_width

        self.pad.refresh(0, 0, 0, 0, screen_height - 1, screen_width - 1)

    def set_title(self, title):
        if self.pad:
            line_width = self.width * self.scale

            if line_width > len(title):
                self.pad.addstr(0, 0, title.ljust(line_width), curses.A_REVERSE)

        super().set_title(title)

    def shutdown(self):
        self.pad = None
        curses.nocbreak()
        curses.echo()

        try:
            curses.curs_set(1)
        except _curses.error:
            # Not every terminal can show the cursor again
            pass

        curses.endwin()
        super().shutdown()

    # No Superclass for these Curses-specific methods

    def get_curses_screen(self):
        return self.screen
