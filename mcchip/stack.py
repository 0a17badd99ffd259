#!/usr/bin/env python3

"""
Stack Emulator

The call stack is not part of system RAM, as there is no specified location
for it and no program can address it.  A list plus a fixed capacity fully
emulates it, with the list length acting as the stack pointer.

Exceeding the capacity (a 17th nested call) or returning with nothing on the
stack means the running program is broken, so both raise StackError.
"""

__copyright__ = "Copyright (C) 2022 Gregory Maynard-Hoare"
__license__ = "GNU Affero General Public License v3.0"


class StackError(Exception):
    pass


class Stack:
    def __init__(self, size):
        self.items = []
        self.size = size

    @property
    def pointer(self):
        return len(self.items)

    def push(self, item):
        if len(self.items) >= self.size:
            raise StackError("Stack overflow")

        self.items.append(item)

    def pop(self):
        try:
            return self.items.pop()
        except IndexError:
            raise StackError("Stack underflow") from None

    def get_items(self):
        # For debugging
        return self.items
