"""
Synacor VM — Value / Return Stack

Unbounded, grows on push. Shared by push/pop and call/ret, so a program
can (and the challenge binary does) mix return addresses with data.
"""

from typing import List

from ..errors import StackUnderflow


class Stack:
    """LIFO of 16-bit words."""

    def __init__(self):
        self._items: List[int] = []

    def push(self, value: int):
        self._items.append(value & 0xFFFF)

    def pop(self) -> int:
        if not self._items:
            raise StackUnderflow("pop from empty stack")
        return self._items.pop()

    def __len__(self) -> int:
        return len(self._items)

    def snapshot(self) -> List[int]:
        """Copy of the stack, bottom first."""
        return list(self._items)

    def clear(self):
        self._items.clear()
