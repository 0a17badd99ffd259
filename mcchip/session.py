#!/usr/bin/env python3

"""
Emulation Session

Paces a CPU in real time.  Each cycle:
    * Reports performance once a second
    * At 60Hz, processes host inputs and hands any changed frame to the renderer
    * Ticks the machine's timers on their own 60Hz schedule
    * Switches the buzzer on or off to follow the sound timer
    * Runs one instruction

The instruction rate is set by the clock speed, and the timers are driven by
real time, so one never speeds up or slows down the other.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"

from time import perf_counter
from .constants import DEFAULT_CLOCK_SPEED, DISPLAY_INTERVAL, TIMER_INTERVAL


class Session:
    def __init__(self, cpu, inputs, audio, clock_speed=None):
        self.cpu = cpu
        self.machine = cpu.machine
        self.framebuffer = self.machine.framebuffer
        self.inputs = inputs
        self.audio = audio

        if clock_speed is None:
            clock_speed = DEFAULT_CLOCK_SPEED

        # User can specify 0 for uncapped
        self.core_interval = None if clock_speed <= 0 else 1.0 / clock_speed

        # Most timer ticks that can fall due between two instructions.  Any more than this and the host has stalled
        self.max_timer_ticks = 1 if self.core_interval is None else int(self.core_interval / TIMER_INTERVAL) + 2
        self.next_timer_update_time = None
        self.buzzer_on = False
        self.next_display_update_time = 0
        self.perf_counter_fps = 0
        self.perf_counter_ops = 0
        self.next_perf_report_time = 0

    def run(self):
        while True:
            this_time = perf_counter()  # Do this first for maximum precision

            if not self.cycle(this_time):
                return

            if self.core_interval is not None:
                # Wait for next CPU instruction.  Do this last for maximum precision (takes into account time spent on
                # this instruction)
                next_time = this_time + self.core_interval

                while perf_counter() < next_time:  # Unfortunately we have to do this to get the timing right
                    pass

    def cycle(self, this_time):
        # Returns False when the host has asked to quit
        machine = self.machine

        # Performance counters
        if this_time >= self.next_perf_report_time:
            self.next_perf_report_time = int(this_time) + 1.0
            self.framebuffer.report_perf(self.perf_counter_fps, self.perf_counter_ops)
            self.perf_counter_ops = 0
            self.perf_counter_fps = 0

        # Prevent unnecessary display rendering in excess of host frame rate
        if this_time >= self.next_display_update_time:
            if self.inputs.process_messages():  # Process inputs at 60Hz too, to avoid slowdown
                return False

            self.next_display_update_time = this_time + DISPLAY_INTERVAL
            self.framebuffer.refresh_display()
            self.perf_counter_fps += 1

        self._update_timers(this_time)
        sound_on = machine.is_sound_on()

        if sound_on != self.buzzer_on:
            self.audio.enable_buzzer(sound_on)
            self.buzzer_on = sound_on

        self.cpu.step()
        self.perf_counter_ops += 1
        return True

    def _update_timers(self, this_time):
        # Timers keep their own 60Hz schedule, so every tick lands even when instructions run slower than that
        if self.next_timer_update_time is None:
            self.next_timer_update_time = this_time + TIMER_INTERVAL
            return

        ticks = 0

        while this_time >= self.next_timer_update_time:
            if ticks == self.max_timer_ticks:
                # Drop the ticks missed during a stall rather than running them all at once
                self.next_timer_update_time = this_time + TIMER_INTERVAL
                return

            self.machine.tick_timers(TIMER_INTERVAL)
            self.next_timer_update_time += TIMER_INTERVAL
            ticks += 1
