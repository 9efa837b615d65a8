#!/usr/bin/env python3

"""
Instruction Pacing

Ticks arrive at roughly 60Hz, but never exactly.  Rather than assuming a fixed
step, each tick is given a budget of instructions proportional to the time
that actually elapsed.  Whatever fraction of an instruction is left over is
carried into the next tick, so the long-run rate matches the clock speed.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from math import floor

from .constants import DEFAULT_CLOCK_SPEED


class PacerError(Exception):
    pass


class Pacer:
    def __init__(self, clock_speed=DEFAULT_CLOCK_SPEED):
        if clock_speed <= 0:
            raise PacerError("Clock speed must be above zero")

        self.clock_speed = clock_speed
        self.carry = 0.0  # Always 0 <= carry < 1

    def instructions_for(self, elapsed):
        budget = self.clock_speed * max(0.0, elapsed) + self.carry
        count = floor(budget)
        self.carry = budget - count
        return count
