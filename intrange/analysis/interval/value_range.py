from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from intrange.utils import wrap


@dataclass(frozen=True, slots=True)
class IntervalRange:
    """Immutable wraparound interval of `bits`-bit unsigned machine words.

    The range is half-open, [lower, upper), and wraps past 2**bits - 1 when
    lower > upper. lower == upper encodes one of the two special sets:
        (0, 0) -> empty set
        (2**bits - 1, 2**bits - 1) -> full set
    """

    bits: int
    lower: int
    upper: int

    def __post_init__(self):
        assert self.bits > 0, self.bits
        mask = (1 << self.bits) - 1
        assert 0 <= self.lower <= mask and 0 <= self.upper <= mask, (self.lower, self.upper)
        assert self.lower != self.upper or self.lower in (0, mask), (self.lower, self.upper)

    @classmethod
    def full(cls, bits: int) -> IntervalRange:
        """Create a range containing every `bits`-bit value."""
        mask = (1 << bits) - 1
        return cls(bits, mask, mask)

    @classmethod
    def empty(cls, bits: int) -> IntervalRange:
        """Create an empty range."""
        return cls(bits, 0, 0)

    @classmethod
    def constant(cls, value: int, bits: int) -> IntervalRange:
        """Create a range containing a single value (reduced modulo 2**bits)."""
        value = wrap(value, bits)
        return cls(bits, value, wrap(value + 1, bits))

    @classmethod
    def from_bounds(cls, lower: int, upper: int, bits: int) -> IntervalRange:
        """
        Create the half-open range [lower, upper) modulo 2**bits. Bounds
        that coincide after reduction denote the full set.
        """
        lower = wrap(lower, bits)
        upper = wrap(upper, bits)
        if lower == upper:
            return cls.full(bits)
        return cls(bits, lower, upper)

    @classmethod
    def cover(cls, lo: int, hi: int, bits: int) -> IntervalRange:
        """
        Create the smallest range containing every integer of the closed
        interval [lo, hi] after reduction modulo 2**bits.
        """
        assert lo <= hi, (lo, hi)
        if hi - lo + 1 >= 1 << bits:
            return cls.full(bits)
        return cls.from_bounds(lo, hi + 1, bits)

    @property
    def mask(self) -> int:
        return (1 << self.bits) - 1

    @property
    def is_full(self) -> bool:
        return self.lower == self.upper and self.lower == self.mask

    @property
    def is_empty(self) -> bool:
        return self.lower == self.upper and self.lower == 0

    @property
    def is_wrapped(self) -> bool:
        """True if the range wraps past the maximum value (excludes full)."""
        return self.lower > self.upper

    @property
    def is_constant(self) -> bool:
        return not self.is_full and wrap(self.lower + 1, self.bits) == self.upper

    def as_constant(self) -> Optional[int]:
        """Return the single element of the range, or None."""
        if self.is_constant:
            return self.lower
        return None

    @property
    def size(self) -> int:
        """Number of elements in the range."""
        if self.is_full:
            return 1 << self.bits
        return wrap(self.upper - self.lower, self.bits)

    @property
    def unsigned_min(self) -> int:
        assert not self.is_empty, "empty range has no minimum"
        if self.is_full or (self.is_wrapped and self.upper != 0):
            return 0
        return self.lower

    @property
    def unsigned_max(self) -> int:
        assert not self.is_empty, "empty range has no maximum"
        if self.is_full or self.is_wrapped:
            return self.mask
        return self.upper - 1

    def _signed_shift(self) -> IntervalRange:
        # maps signed order onto unsigned order: -2**(bits-1) -> 0
        if self.is_full or self.is_empty:
            return self
        half = 1 << (self.bits - 1)
        lower = wrap(self.lower + half, self.bits)
        upper = wrap(self.upper + half, self.bits)
        return IntervalRange(self.bits, lower, upper)

    @property
    def signed_min(self) -> int:
        return self._signed_shift().unsigned_min - (1 << (self.bits - 1))

    @property
    def signed_max(self) -> int:
        return self._signed_shift().unsigned_max - (1 << (self.bits - 1))

    def contains(self, value: int) -> bool:
        """Check membership of a value (reduced modulo 2**bits)."""
        value = wrap(value, self.bits)
        if self.is_full:
            return True
        if self.is_wrapped:
            return value >= self.lower or value < self.upper
        return self.lower <= value < self.upper

    def __contains__(self, value: int) -> bool:
        return self.contains(value)

    def contains_range(self, other: IntervalRange) -> bool:
        """Check whether every element of `other` is in this range."""
        assert self.bits == other.bits, (self, other)
        if self.is_full or other.is_empty:
            return True
        if self.is_empty or other.is_full:
            return False
        if not self.is_wrapped:
            if other.is_wrapped:
                return False
            return self.lower <= other.lower and other.upper <= self.upper
        if not other.is_wrapped:
            return other.upper <= self.upper or self.lower <= other.lower
        return other.upper <= self.upper and self.lower <= other.lower

    def is_subset_of(self, other: IntervalRange) -> bool:
        return other.contains_range(self)

    def inverse(self) -> IntervalRange:
        """The complement of the range."""
        if self.is_full:
            return IntervalRange.empty(self.bits)
        if self.is_empty:
            return IntervalRange.full(self.bits)
        return IntervalRange(self.bits, self.upper, self.lower)

    def union(self, other: IntervalRange) -> IntervalRange:
        """
        Smallest range containing both ranges. When the exact union is not
        an interval, the gap that is bridged is the smaller one.
        """
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_full or other.is_empty:
            return self
        if other.is_full or self.is_empty:
            return other

        if not self.is_wrapped and other.is_wrapped:
            return other.union(self)

        if not self.is_wrapped:
            # neither wraps
            if other.upper < self.lower or self.upper < other.lower:
                # disjoint, bridge the smaller gap
                gap_after = wrap(other.lower - self.upper, bits)
                gap_before = wrap(self.lower - other.upper, bits)
                if gap_after < gap_before:
                    return IntervalRange.from_bounds(self.lower, other.upper, bits)
                return IntervalRange.from_bounds(other.lower, self.upper, bits)
            lower = min(self.lower, other.lower)
            upper = max(self.upper, other.upper)
            return IntervalRange.from_bounds(lower, upper, bits)

        if not other.is_wrapped:
            # self is [lower, max] + [0, upper); other is [a, b) with a < b
            a, b = other.lower, other.upper
            if b <= self.upper or a >= self.lower:
                return self
            if a <= self.upper and b >= self.lower:
                return IntervalRange.full(bits)
            if a <= self.upper:
                return IntervalRange.from_bounds(self.lower, b, bits)
            if b >= self.lower:
                return IntervalRange.from_bounds(a, self.upper, bits)
            # other lies strictly inside the gap [upper, lower)
            if a - self.upper < self.lower - b:
                return IntervalRange.from_bounds(self.lower, b, bits)
            return IntervalRange.from_bounds(a, self.upper, bits)

        # both wrap
        lower = min(self.lower, other.lower)
        upper = max(self.upper, other.upper)
        if lower <= upper:
            return IntervalRange.full(bits)
        return IntervalRange.from_bounds(lower, upper, bits)

    def intersect(self, other: IntervalRange) -> IntervalRange:
        """
        Smallest range containing the intersection of both ranges. When the
        exact intersection is two disjoint pieces, the smaller operand is
        returned.
        """
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_full:
            return self
        if other.is_empty or self.is_full:
            return other

        if not self.is_wrapped and other.is_wrapped:
            return other.intersect(self)

        if not self.is_wrapped:
            lower = max(self.lower, other.lower)
            upper = min(self.upper, other.upper)
            if lower < upper:
                return IntervalRange.from_bounds(lower, upper, bits)
            return IntervalRange.empty(bits)

        if not other.is_wrapped:
            # self is [lower, max] + [0, upper); other is [a, b) with a < b
            a, b = other.lower, other.upper
            low_piece = a < self.upper
            high_piece = b > self.lower
            if low_piece and high_piece:
                return self if self.size < other.size else other
            if low_piece:
                return IntervalRange.from_bounds(a, min(b, self.upper), bits)
            if high_piece:
                return IntervalRange.from_bounds(max(a, self.lower), b, bits)
            return IntervalRange.empty(bits)

        # both wrap; the pieces near zero and near max always overlap
        if other.lower < self.upper or self.lower < other.upper:
            return self if self.size < other.size else other
        lower = max(self.lower, other.lower)
        upper = min(self.upper, other.upper)
        return IntervalRange.from_bounds(lower, upper, bits)

    def add(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty:
            return IntervalRange.empty(bits)
        if self.is_full or other.is_full:
            return IntervalRange.full(bits)
        # {lower + i} + {other.lower + j} has size + other.size - 1 elements
        count = self.size + other.size - 1
        start = self.lower + other.lower
        return IntervalRange.cover(start, start + count - 1, bits)

    def sub(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty:
            return IntervalRange.empty(bits)
        if self.is_full or other.is_full:
            return IntervalRange.full(bits)
        count = self.size + other.size - 1
        start = self.lower - (other.lower + other.size - 1)
        return IntervalRange.cover(start, start + count - 1, bits)

    def multiply(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty:
            return IntervalRange.empty(bits)
        lo = self.unsigned_min * other.unsigned_min
        hi = self.unsigned_max * other.unsigned_max
        return IntervalRange.cover(lo, hi, bits)

    def udiv(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty or other.unsigned_max == 0:
            return IntervalRange.empty(bits)

        lo = self.unsigned_min // other.unsigned_max

        # smallest non-zero divisor
        divisor = other.unsigned_min
        if divisor == 0:
            divisor = other.lower if other.upper == 1 else 1
        hi = self.unsigned_max // divisor
        return IntervalRange.cover(lo, hi, bits)

    def shl(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty:
            return IntervalRange.empty(bits)
        shift_max = other.unsigned_max
        # the largest value must not lose any bits
        if bits - self.unsigned_max.bit_length() <= shift_max:
            return IntervalRange.full(bits)
        lo = self.unsigned_min << other.unsigned_min
        hi = self.unsigned_max << shift_max
        return IntervalRange.cover(lo, hi, bits)

    def lshr(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty:
            return IntervalRange.empty(bits)
        lo = self.unsigned_min >> other.unsigned_max
        hi = self.unsigned_max >> other.unsigned_min
        return IntervalRange.cover(lo, hi, bits)

    def binary_and(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty:
            return IntervalRange.empty(bits)
        hi = min(self.unsigned_max, other.unsigned_max)
        return IntervalRange.cover(0, hi, bits)

    def binary_or(self, other: IntervalRange) -> IntervalRange:
        assert self.bits == other.bits, (self, other)
        bits = self.bits
        if self.is_empty or other.is_empty:
            return IntervalRange.empty(bits)
        lo = max(self.unsigned_min, other.unsigned_min)
        return IntervalRange.cover(lo, self.mask, bits)

    def zero_extend(self, bits: int) -> IntervalRange:
        assert bits >= self.bits, (self, bits)
        if bits == self.bits:
            return self
        if self.is_empty:
            return IntervalRange.empty(bits)
        if self.is_full or (self.is_wrapped and self.upper != 0):
            return IntervalRange.cover(0, self.mask, bits)
        if self.is_wrapped:
            # [lower, 0) ends exactly at the old maximum
            return IntervalRange.cover(self.lower, self.mask, bits)
        return IntervalRange(bits, self.lower, self.upper)

    def sign_extend(self, bits: int) -> IntervalRange:
        assert bits >= self.bits, (self, bits)
        if bits == self.bits:
            return self
        if self.is_empty:
            return IntervalRange.empty(bits)
        return IntervalRange.cover(self.signed_min, self.signed_max, bits)

    def truncate(self, bits: int) -> IntervalRange:
        assert bits <= self.bits, (self, bits)
        if bits == self.bits:
            return self
        if self.is_empty:
            return IntervalRange.empty(bits)
        if self.size >= 1 << bits:
            return IntervalRange.full(bits)
        return IntervalRange.cover(self.lower, self.lower + self.size - 1, bits)

    def zext_or_trunc(self, bits: int) -> IntervalRange:
        if bits > self.bits:
            return self.zero_extend(bits)
        return self.truncate(bits)

    def to_tuple(self) -> tuple[int, int, int]:
        return (self.bits, self.lower, self.upper)

    @classmethod
    def from_tuple(cls, t) -> IntervalRange:
        bits, lower, upper = t
        return cls(bits, lower, upper)

    def __repr__(self) -> str:
        if self.is_full:
            return "full-set"
        if self.is_empty:
            return "empty-set"
        return f"[{self.lower},{self.upper})"

    __str__ = __repr__
