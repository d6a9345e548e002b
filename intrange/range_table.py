import sys
from typing import Iterator, Optional

import cbor2

from intrange.analysis.interval import IntervalRange
from intrange.ir.basicblock import IRInstruction
from intrange.utils import OrderedSet
from intrange.warnings import WidthMismatch, range_warn


def normalize_width(first: IntervalRange, second: IntervalRange) -> IntervalRange:
    """
    Bring `second` to the width of `first`, zero-extending or truncating it.
    """
    if first.bits == second.bits:
        return second
    range_warn(
        WidthMismatch(
            f"combining i{first.bits} range {first} with i{second.bits} range {second}",
            hint=f"the i{second.bits} range is converted to i{first.bits}",
        )
    )
    return second.zext_or_trunc(first.bits)


class RangeTable:
    """
    Whole-program facts: the range of every symbolic id. Stored ranges only
    grow (by union) until they are widened to the full set.
    """

    _ranges: dict[str, IntervalRange]
    # ids whose range grew since the last call to clear_changes()
    changes: OrderedSet[str]
    watch_id: Optional[str]

    def __init__(self, watch_id: Optional[str] = None):
        self._ranges = {}
        self.changes = OrderedSet()
        self.watch_id = watch_id

    def get(self, sid: str) -> Optional[IntervalRange]:
        return self._ranges.get(sid)

    def __contains__(self, sid: str) -> bool:
        return sid in self._ranges

    def __len__(self) -> int:
        return len(self._ranges)

    def items(self) -> Iterator[tuple[str, IntervalRange]]:
        return iter(self._ranges.items())

    def union_range(
        self, sid: str, rng: IntervalRange, inst: Optional[IRInstruction] = None
    ) -> bool:
        """
        Union `rng` into the stored range of `sid`. Returns True if the
        stored range grew.
        """
        if rng.is_empty:
            return False

        old = self._ranges.get(sid)
        if old is None:
            new = rng
        else:
            new = old.union(normalize_width(old, rng))

        if sid == self.watch_id:
            self._trace(sid, old, rng, new, inst)

        if new == old:
            return False

        self._ranges[sid] = new
        self.changes.add(sid)
        return True

    def _trace(self, sid, old, rng, new, inst) -> None:
        if inst is not None:
            print(f"{inst!r}  ; in {inst.parent.parent.name}", file=sys.stderr)
        print(f"  {sid}: {old} U {rng} -> {new}", file=sys.stderr)

    def set_full(self, sid: str) -> None:
        old = self._ranges[sid]
        self._ranges[sid] = IntervalRange.full(old.bits)

    def widen(self, sids) -> None:
        """Replace the range of every given id by the full range of its width."""
        for sid in sids:
            if sid in self._ranges:
                self.set_full(sid)

    def clear_changes(self) -> None:
        self.changes = OrderedSet()

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            sid: {"bits": rng.bits, "lower": rng.lower, "upper": rng.upper}
            for sid, rng in self._ranges.items()
        }

    def to_cbor(self) -> bytes:
        return cbor2.dumps({sid: list(rng.to_tuple()) for sid, rng in self._ranges.items()})

    @classmethod
    def from_cbor(cls, data: bytes) -> "RangeTable":
        ret = cls()
        for sid, t in cbor2.loads(data).items():
            ret._ranges[sid] = IntervalRange.from_tuple(t)
        return ret

    def __str__(self) -> str:
        return "\n".join(f"{sid} {rng}" for sid, rng in self._ranges.items())
