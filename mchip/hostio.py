#!/usr/bin/env python3

"""
Host I/O Functionality

Handles loading ROM binaries for later writing into RAM.  Only raw program
bytes are supported, there are no headers and no save states.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import logging

from .constants import MEM_SIZE, PROGRAM_LOC

MAX_ROM_SIZE = MEM_SIZE - PROGRAM_LOC

logger = logging.getLogger(__name__)


class LoaderError(Exception):
    pass


class Loader:
    def load_binary(self, filename):
        with open(filename, "rb") as f:
            data = f.read(MAX_ROM_SIZE + 1)  # One extra byte is enough to tell if it's too big

        if len(data) > MAX_ROM_SIZE:
            raise LoaderError("ROM '{}' is larger than the {} bytes available".format(filename, MAX_ROM_SIZE))

        logger.debug("Read %d bytes from '%s'", len(data), filename)
        return data
