#!/usr/bin/env python3

"""
PyGame Renderer Plugin

Draws graphics onto an SDL window surface via PyGame.  The surface is allocated
at the size of the emulated display, and then the contents are stretched (in
the correct aspect ratio using 'Nearest Neighbour' translation) to fit the
window itself.  This means we don't have to draw the same pixel multiple times.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import pygame
from .r_null import Renderer as RendererBase
from ..constants import APP_NAME

# Unlit, then lit
PIXEL_RGB = (b"\x22\x22\x22", b"\xDD\xDD\xDD")


class Renderer(RendererBase):
    def __init__(self, scale=None, **kwargs):
        if scale is None:
            scale = 512  # Default window width if not supplied, or set to default

        pygame.display.init()
        self.set_title(APP_NAME)
        self.rgb_buffer = None
        self.scaled_size = (scale, scale // 2)
        self.display_surface = pygame.display.set_mode(self.scaled_size)
        super().__init__(scale)

    def set_resolution(self, width, height):
        self.rgb_buffer = bytearray(PIXEL_RGB[0] * (width * height))  # 24-bit, cleared to background
        super().set_resolution(width, height)

    def draw(self, pixels):
        super().draw(pixels)

        if not pixels:
            return

        # Rebuild the RGB buffer in one go to minimise PyGame calls
        self.rgb_buffer[:] = b"".join(PIXEL_RGB[lit] for lit in pixels)

        # Blit the bytearray straight to the surface
        render_surface = pygame.image.frombuffer(self.rgb_buffer, (self.width, self.height), "RGB")
        scaled_win = pygame.transform.scale(render_surface, self.scaled_size)
        self.display_surface.blit(scaled_win, (0, 0))
        pygame.display.flip()

    def set_title(self, title):
        pygame.display.set_caption(title)

    def shutdown(self):
        # PyGame currently segfaults if display.quit is called via __del__
        pygame.display.quit()
        super().shutdown()
