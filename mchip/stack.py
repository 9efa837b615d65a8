#!/usr/bin/env python3

"""
Stack Emulator

There is no specified location for the call stack in RAM, and no stack pointer
register is exposed to the running program, so the stack is kept in host
memory as a fixed array of return addresses with an explicit pointer.

The pointer always holds the number of pushed entries, so it can never exceed
the capacity or go negative: both cases are raised as errors instead.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from .constants import STACK_SIZE


class StackError(Exception):
    pass


class Stack:
    def __init__(self, size=STACK_SIZE):
        self.items = [0] * size
        self.size = size
        self.sp = 0

    def push(self, item):
        if self.sp >= self.size:
            raise StackError("Stack overflow")

        self.items[self.sp] = item
        self.sp += 1

    def pop(self):
        if self.sp <= 0:
            raise StackError("Stack underflow")

        self.sp -= 1
        return self.items[self.sp]

    def get_items(self):
        # For debugging
        return self.items[:self.sp]
