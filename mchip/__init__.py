#!/usr/bin/env python3

"""
Main Startup Module

Simply call main(args) to start the interpreter, replacing args with a
dictionary of options.  This can be done via the Terminal or GUI.

All options must be supplied.  Defaults can be specified with a 'None'.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

import logging
from time import perf_counter, sleep

from .constants import APP_INTRO, APP_COPYRIGHT, APP_NAME, DEFAULT_CLOCK_SPEED, TIMER_FREQ
from .cpu import CPU
from .debugger import Debugger
from .framebuffer import Framebuffer
from .hostio import Loader, LoaderError
from .keypad import Keypad
from .ram import RAM, RAMError
from .stack import Stack

TICK_INTERVAL = 1.0 / TIMER_FREQ
RENDERERS = ["pygame", "curses", "null"]

logger = logging.getLogger(__name__)


class StartupError(Exception):
    pass


def main(args):
    print("".join((APP_INTRO, APP_COPYRIGHT)))

    opt_renderer = args["renderer"]
    auto_select_renderer = opt_renderer is None  # If necessary, try PyGame first, then Curses.
    mute_audio = args["mute"]

    # flake8: noqa: F401
    if auto_select_renderer or opt_renderer == "pygame":
        # pylint: disable=unused-import, import-outside-toplevel, raise-missing-from
        try:
            import pygame
        except ImportError:
            if auto_select_renderer:
                opt_renderer = "curses"
            else:
                raise StartupError(
                    "PyGame does not appear to be installed."
                )
        else:
            opt_renderer = "pygame"
            from .inputs.i_pygame import Inputs
            from .renderers.r_pygame import Renderer

            if mute_audio:
                from .audio.a_null import Audio
            else:
                from .audio.a_pygame import Audio

    if opt_renderer == "curses":
        # pylint: disable=unused-import, import-outside-toplevel, raise-missing-from
        try:
            import curses
        except ImportError:
            if auto_select_renderer:
                raise StartupError(
                    "Neither PyGame nor Curses (or Windows-Curses) appear to be installed."
                )

            raise StartupError(
                "Curses (or Windows-Curses) does not appear to be installed."
            )
        else:
            from .inputs.i_curses import Inputs
            from .renderers.r_curses import Renderer

            # Terminals can handle fixed-length beeps, but not sampled sound
            if mute_audio or mute_audio is None:
                from .audio.a_null import Audio
            else:
                from .audio.a_curses import Audio

    if opt_renderer == "null":
        # pylint: disable=import-outside-toplevel
        from .inputs.i_null import Inputs
        from .renderers.r_null import Renderer
        from .audio.a_null import Audio
    elif opt_renderer not in RENDERERS:
        raise StartupError("Unknown renderer '{}'.  Choose from: {}".format(opt_renderer, ", ".join(RENDERERS)))

    logger.info("Using the %s renderer", opt_renderer)
    clock_speed = DEFAULT_CLOCK_SPEED if args["clock_speed"] is None else args["clock_speed"]

    if clock_speed <= 0:
        raise StartupError("Clock speed must be above zero.")

    # Read the ROM before touching any host devices, so a bad file leaves nothing to clean up
    try:
        rom = Loader().load_binary(args["filename"])
    except (OSError, LoaderError) as err:
        raise StartupError("Unable to load ROM: {}".format(err)) from None

    ram = RAM()
    stack = Stack()
    framebuffer = Framebuffer()
    keypad = Keypad()

    # Set up debugger and live output if necessary
    debugger = Debugger()
    debugger.set_live(args["debug"])

    # Create a new CPU, plug it into the rest of the system, and write the fonts and program into RAM
    cpu = CPU(ram, stack, framebuffer, keypad, debugger, clock_speed=clock_speed)

    try:
        cpu.load_program(rom)
    except RAMError as err:
        raise StartupError("Unable to load ROM: {}".format(err)) from None

    # Set up a new rendering system matching the framebuffer
    renderer = Renderer(scale=args["scale"])

    try:
        renderer.set_resolution(*framebuffer.get_vid_size())

        # Set up host inputs, and link to the chosen rendering module in case it provides inputs too
        inputs = Inputs(args["keymap"], renderer)

        try:
            audio = Audio()

            try:
                run(cpu, inputs, renderer, audio)
            finally:
                audio.shutdown()
        finally:
            inputs.shutdown()
    finally:
        # __del__ cannot be relied upon when using PyPy
        renderer.shutdown()


def run(cpu, inputs, renderer, audio, max_ticks=None):
    """
    Drive the CPU at 60 ticks per second until the host asks to quit.

    Each tick passes the real elapsed time to the CPU, so a slow host runs
    more instructions per tick rather than running slow.  Pass max_ticks to
    stop after a fixed number of ticks.
    """
    framebuffer = cpu.framebuffer
    last_time = perf_counter()
    next_perf_report_time = last_time + 1.0
    perf_counter_fps = 0
    ticks = 0

    while max_ticks is None or ticks < max_ticks:
        if inputs.process_messages():
            logger.info("Quit requested")
            return

        this_time = perf_counter()
        pixels, sound_active = cpu.tick(this_time - last_time, inputs.get_key_states())
        last_time = this_time
        ticks += 1

        audio.enable_buzzer(sound_active)

        # Only repaint when a clear or a sprite draw has happened
        if framebuffer.take_changed():
            renderer.draw(pixels)
            perf_counter_fps += 1

        # Performance counters
        if this_time >= next_perf_report_time:
            next_perf_report_time = this_time + 1.0
            renderer.set_title("{} - {} FPS, {} OPS".format(APP_NAME, perf_counter_fps, cpu.perf_counter_ops))
            cpu.perf_counter_ops = 0
            perf_counter_fps = 0

        # Wait for the next tick.  Do this last to take into account time spent on this one.
        delay = this_time + TICK_INTERVAL - perf_counter()

        if delay > 0:
            sleep(delay)
