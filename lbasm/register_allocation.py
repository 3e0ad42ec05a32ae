"""
Register Allocation

Maps named virtual registers to machine-register slots for one function pass.

Allocation is first-fit ascending from slot 0. A slot, once occupied by a name
or a reservation placeholder, is never handed to a different name during the
pass. Loop-group reservations are recorded here too: a name whose stem has an
established loop group resolves to that group's body-visible slot (base + 3).
"""

from __future__ import annotations

import re
from typing import Callable, Iterable, Optional

from .errors import UnknownOperandKind
from .lir import Register, Constant, Upvalue

# Trailing occurrence suffix: i_0, i.3, i#2 -> i
DEFAULT_OCCURRENCE_SUFFIX = r"[_.#]\d+$"

# Slots per loop group: index, limit, step, body-visible value
LOOP_GROUP_SIZE = 4

_SCRATCH_PREFIX = "%tmp"


def make_stem(pattern: str = DEFAULT_OCCURRENCE_SUFFIX) -> Callable[[str], str]:
    """Build a stem function that strips the given occurrence-suffix pattern."""
    suffix = re.compile(pattern)

    def stem(name: str) -> str:
        stripped = suffix.sub("", name)
        return stripped or name

    return stem


class RegisterAllocator:
    """Name -> slot table for a single function pass."""

    def __init__(self, stem: Optional[Callable[[str], str]] = None):
        self.stem = stem if stem is not None else make_stem()
        self._slots: dict[str, int] = {}        # name -> slot (insertion ordered)
        self._occupied: set[int] = set()        # slots ever handed out or reserved
        self._placeholders: set[int] = set()    # slots held only by a reservation
        self.loop_groups: dict[str, int] = {}   # stem -> loop group base
        self._scratch_counter = 0

    # -- queries --------------------------------------------------------

    def lookup(self, name: str) -> Optional[int]:
        """Return the slot bound to name, or None."""
        return self._slots.get(name)

    def peek(self, name: str) -> Optional[int]:
        """Return the slot name would resolve to, without binding it.

        None means the name is unbound and has no loop group, so resolving it
        would take a fresh slot.
        """
        if name in self._slots:
            return self._slots[name]
        base = self.loop_groups.get(self.stem(name))
        if base is not None:
            return base + LOOP_GROUP_SIZE - 1
        return None

    def names(self) -> list[str]:
        """Known register names in first-binding order."""
        return list(self._slots)

    def next_free(self) -> int:
        """Smallest slot not yet occupied."""
        slot = 0
        while slot in self._occupied:
            slot += 1
        return slot

    @property
    def registers_used(self) -> int:
        """One past the highest occupied slot."""
        return max(self._occupied) + 1 if self._occupied else 0

    @property
    def bindings(self) -> dict[str, int]:
        return dict(self._slots)

    def is_placeholder(self, slot: int) -> bool:
        """True if slot is held by a reservation and no name is bound to it."""
        return slot in self._placeholders

    # -- resolution -----------------------------------------------------

    def resolve(self, op) -> str:
        """Resolve an operand to its assembly token (R<n>, K<n>, or U<n>)."""
        if isinstance(op, Constant):
            return f"K{op.index}"
        if isinstance(op, Upvalue):
            return f"U{op.index}"
        if isinstance(op, Register):
            return f"R{self.resolve_register(op.name)}"
        raise UnknownOperandKind(f"Unknown operand kind: {op!r}")

    def resolve_register(self, name: str) -> int:
        """Return the slot for name, binding it on first sight."""
        slot = self._slots.get(name)
        if slot is not None:
            return slot

        base = self.loop_groups.get(self.stem(name))
        if base is not None:
            slot = base + LOOP_GROUP_SIZE - 1
        else:
            slot = self.next_free()
        self._bind(name, slot)
        return slot

    # -- mutation -------------------------------------------------------

    def reserve_range(self, start: int, length: int) -> None:
        """Hold [start, start + length) so first-fit allocation skips it."""
        for slot in range(start, start + length):
            if slot not in self._occupied:
                self._occupied.add(slot)
                self._placeholders.add(slot)

    def force(self, name: str, slot: int) -> None:
        """Bind name to slot, replacing any earlier binding."""
        if self._slots.get(name) == slot:
            return
        self._bind(name, slot)

    def allocate_scratch(self) -> int:
        """Bind a fresh synthetic name to the first free slot."""
        name = f"{_SCRATCH_PREFIX}{self._scratch_counter}"
        while name in self._slots:
            self._scratch_counter += 1
            name = f"{_SCRATCH_PREFIX}{self._scratch_counter}"
        self._scratch_counter += 1
        return self.resolve_register(name)

    def seed(self, names: Iterable[str]) -> None:
        """Pre-bind declared locals, in order, to first-fit slots."""
        for name in names:
            self.resolve_register(name)

    def _bind(self, name: str, slot: int) -> None:
        # Re-inserting keeps the name's original position in _slots
        self._slots[name] = slot
        self._occupied.add(slot)
        self._placeholders.discard(slot)
