#!/usr/bin/env python3

"""
CPU Debugger

Each line describes the machine just before an instruction runs: the 16 [V]
registers from Vf down to V0, then I, DT, ST, PC, the raw opcode (OP) and its
decoded form (IN).  Crash dumps are verbose, and add the stack pointer (SP)
and every return address on the stack.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

STATE_FORMAT = " I: 0x{:04x} DT: 0x{:02x} ST: 0x{:02x} PC: 0x{:03x} OP: 0x{:04x} IN: {}"


def _format_registers(registers):
    return "V: 0x" + bytes(reversed(registers)).hex()


def _format_stack(stack):
    addresses = "".join(" 0x{:03x}".format(address) for address in stack.get_items())
    return "SP: {}\nStack:{}".format(stack.sp, addresses or " (Empty)")


class Debugger:
    def __init__(self):
        self.live = False

    def debug(self, cpu, instruction, verbose=False):
        lines = [
            _format_registers(cpu.v) + STATE_FORMAT.format(cpu.i, cpu.dt, cpu.ds, cpu.debug_pc, cpu.opcode, instruction)
        ]

        if verbose:
            lines.append(_format_stack(cpu.stack))

        return "\n".join(lines)

    def set_live(self, enabled):
        self.live = enabled

    def is_live(self):
        return self.live

    def output(self, cpu, instruction):
        print(self.debug(cpu, instruction))
