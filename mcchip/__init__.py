#!/usr/bin/env python3

"""
Main Startup Module

Simply call main(args) to start the emulator, replacing args with a dictionary
of options.  This can be done via the Terminal or GUI.

All options must be supplied.  Defaults can be specified with a 'None'.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from random import Random
from .constants import APP_INTRO, APP_COPYRIGHT, DEFAULT_BUZZER_FREQ, DEFAULT_KEYMAP
from .cpu import CPU
from .debugger import Debugger
from .framebuffer import Framebuffer
from .hostio import Loader
from .machine import Machine
from .session import Session


class StartupError(Exception):
    pass


def main(args):
    print("".join((APP_INTRO, APP_COPYRIGHT)))
    opt_renderer = args["renderer"]
    mute_audio = args["mute"]

    if opt_renderer is None or opt_renderer == "pygame":
        # pylint: disable=unused-import, import-outside-toplevel
        try:
            import pygame
        except ImportError:
            raise StartupError("PyGame does not appear to be installed.") from None

        from .inputs.i_pygame import Inputs
        from .renderers.r_pygame import Renderer

        if mute_audio:
            from .audio.a_null import Audio
        else:
            from .audio.a_pygame import Audio
    elif opt_renderer == "null":
        # pylint: disable=import-outside-toplevel
        from .inputs.i_null import Inputs
        from .renderers.r_null import Renderer
        from .audio.a_null import Audio
    else:
        raise StartupError("Unknown renderer '{}'.".format(opt_renderer))

    # Read the ROM first, so a bad filename or oversized ROM doesn't leave a window open
    rom = Loader().load_binary(args["filename"])

    # Set up a new rendering system, and attach a framebuffer to it
    renderer = Renderer(scale=args["scale"], pygame_palette=args["pygame_palette"])
    framebuffer = Framebuffer(renderer)

    # Create the machine with the system font already in place, then write the ROM into RAM
    machine = Machine(framebuffer)
    machine.load_program(rom)

    # Set up host inputs, and link to the chosen rendering module in case it provides inputs too
    inputs = Inputs(args["keymap"] or DEFAULT_KEYMAP, renderer, machine)

    # Start up the audio system with the default beep
    audio = Audio()
    audio.set_frequency(DEFAULT_BUZZER_FREQ)

    # Set up debugger and live output if necessary
    debugger = Debugger()
    debugger.set_live(args["debug"])

    seed = args["seed"]
    cpu = CPU(machine, debugger, rng=None if seed is None else Random(seed))
    session = Session(cpu, inputs, audio, clock_speed=args["clock_speed"])

    try:
        session.run()
    finally:
        # The session has ended, so shut down the host systems.  __del__ cannot be relied upon when using PyPy
        audio.shutdown()
        inputs.shutdown()
        renderer.shutdown()
        unsupported_count = debugger.get_unsupported_count()

        if unsupported_count:
            print("{} unsupported opcode(s) were skipped during this session.".format(unsupported_count))
