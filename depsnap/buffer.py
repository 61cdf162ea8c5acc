"""Batched byte-range deletion over an immutable source buffer."""

from __future__ import annotations

from typing import List

from .models import DeletionRange


class PrunedBuffer:
    """A file's original bytes plus the deletions queued against them.

    Offsets always refer to the original content; deletions are applied
    together by :meth:`bytes`, so their order of registration is irrelevant.
    """

    def __init__(self, original: bytes) -> None:
        self.original = original
        self._deletions: List[DeletionRange] = []

    def delete(self, start: int, end: int) -> None:
        if end > len(self.original):
            raise ValueError(
                f"deletion [{start}, {end}) past end of buffer ({len(self.original)} bytes)"
            )
        self._deletions.append(DeletionRange(start, end))

    @property
    def deletions(self) -> List[DeletionRange]:
        return sorted(self._deletions)

    def bytes(self) -> bytes:
        out = bytearray()
        pos = 0
        for rng in self.deletions:
            if rng.start < pos:
                raise ValueError(f"overlapping deletions at offset {rng.start}")
            out += self.original[pos:rng.start]
            pos = rng.end
        out += self.original[pos:]
        return bytes(out)

    def __len__(self) -> int:
        return len(self._deletions)
