import pytest

from intrange.analysis.interval import IntervalRange


def R(lower, upper, bits=8):
    return IntervalRange(bits, lower, upper)


def test_special_ranges():
    full = IntervalRange.full(8)
    empty = IntervalRange.empty(8)

    assert full.is_full and not full.is_empty
    assert empty.is_empty and not empty.is_full
    assert full.to_tuple() == (8, 255, 255)
    assert empty.to_tuple() == (8, 0, 0)
    assert full.size == 256
    assert empty.size == 0
    assert repr(full) == "full-set"
    assert repr(empty) == "empty-set"


def test_constant():
    rng = IntervalRange.constant(-1, 8)
    assert rng == R(255, 0)
    assert rng.is_wrapped
    assert rng.is_constant
    assert rng.as_constant() == 255
    assert 255 in rng
    assert 0 not in rng


def test_from_bounds_coinciding_is_full():
    assert IntervalRange.from_bounds(7, 7, 8).is_full
    assert IntervalRange.from_bounds(0, 256, 8).is_full


def test_cover():
    assert IntervalRange.cover(3, 9, 8) == R(3, 10)
    assert IntervalRange.cover(250, 260, 8) == R(250, 5)
    assert IntervalRange.cover(0, 255, 8).is_full


def test_wrapped_membership():
    rng = R(250, 5)
    for v in (250, 255, 0, 4):
        assert v in rng
    for v in (5, 100, 249):
        assert v not in rng
    assert rng.size == 11


def test_unsigned_and_signed_bounds():
    rng = R(10, 20)
    assert rng.unsigned_min == 10
    assert rng.unsigned_max == 19
    assert rng.signed_min == 10
    assert rng.signed_max == 19

    # -2 .. 2
    rng = R(254, 3)
    assert rng.unsigned_min == 0
    assert rng.unsigned_max == 255
    assert rng.signed_min == -2
    assert rng.signed_max == 2


def test_union_bottom_and_top():
    x = R(3, 9)
    assert IntervalRange.empty(8).union(x) == x
    assert x.union(IntervalRange.empty(8)) == x
    assert x.union(IntervalRange.full(8)).is_full


@pytest.mark.parametrize(
    "a,b,expected",
    [
        # overlapping
        (R(0, 10), R(5, 20), R(0, 20)),
        # adjacent
        (R(0, 5), R(5, 10), R(0, 10)),
        # disjoint, bridge the gap in the middle
        (R(0, 10), R(44, 45), R(0, 45)),
        # disjoint, bridge the gap through zero
        (R(10, 20), R(240, 250), R(240, 20)),
        # wrapped with a piece inside its gap
        (R(250, 5), R(100, 101), R(250, 101)),
        (R(250, 5), R(8, 9), R(250, 9)),
        # both wrapped
        (R(250, 5), R(200, 3), R(200, 5)),
    ],
)
def test_union(a, b, expected):
    assert a.union(b) == expected
    assert b.union(a) == expected


@pytest.mark.parametrize(
    "a,b,expected",
    [
        (R(0, 10), R(5, 20), R(5, 10)),
        (R(0, 10), R(10, 20), IntervalRange.empty(8)),
        (R(250, 5), R(0, 100), R(0, 5)),
        (R(250, 5), R(200, 252), R(250, 252)),
    ],
)
def test_intersect(a, b, expected):
    assert a.intersect(b) == expected
    assert b.intersect(a) == expected


def test_inverse():
    assert R(10, 20).inverse() == R(20, 10)
    assert IntervalRange.full(8).inverse().is_empty
    assert IntervalRange.empty(8).inverse().is_full


def test_contains_range():
    assert R(0, 100).contains_range(R(10, 20))
    assert not R(0, 100).contains_range(R(90, 110))
    assert R(250, 10).contains_range(R(252, 3))
    assert R(250, 10).contains_range(R(0, 10))
    assert not R(0, 100).contains_range(R(250, 3))
    assert R(10, 20).is_subset_of(IntervalRange.full(8))


def test_arithmetic():
    assert R(1, 3).add(R(10, 12)) == R(11, 14)
    # wraps around the top of the range
    assert R(250, 252).add(R(10, 11)) == R(4, 6)
    assert R(10, 20).sub(R(1, 2)) == R(9, 19)
    assert R(2, 4).multiply(R(3, 4)) == R(6, 10)
    assert R(100, 201).udiv(R(10, 11)) == R(10, 21)
    assert R(1, 2).shl(R(3, 4)) == R(8, 9)
    assert R(128, 129).lshr(R(7, 8)) == R(1, 2)
    assert R(0, 200).binary_and(IntervalRange.constant(15, 8)) == R(0, 16)
    assert R(16, 20).binary_or(R(1, 2)) == R(16, 0)


def test_arithmetic_on_empty():
    empty = IntervalRange.empty(8)
    for op in (
        IntervalRange.add,
        IntervalRange.sub,
        IntervalRange.multiply,
        IntervalRange.udiv,
        IntervalRange.shl,
        IntervalRange.lshr,
        IntervalRange.binary_and,
        IntervalRange.binary_or,
    ):
        assert op(empty, R(1, 2)).is_empty
        assert op(R(1, 2), empty).is_empty


def test_zero_extend():
    assert R(10, 20).zero_extend(16) == R(10, 20, bits=16)
    # [250, 0) ends exactly at the maximum
    assert R(250, 0).zero_extend(16) == R(250, 256, bits=16)
    assert R(250, 5).zero_extend(16) == R(0, 256, bits=16)
    assert IntervalRange.full(8).zero_extend(16) == R(0, 256, bits=16)


def test_sign_extend():
    assert R(10, 20).sign_extend(16) == R(10, 20, bits=16)
    # -2 .. 2
    assert R(254, 3).sign_extend(16) == R(0xFFFE, 3, bits=16)


def test_truncate():
    assert R(300, 310, bits=16).truncate(8) == R(44, 54)
    assert R(0, 1000, bits=16).truncate(8).is_full
    assert R(10, 20, bits=16).zext_or_trunc(8) == R(10, 20)
    assert R(10, 20).zext_or_trunc(16) == R(10, 20, bits=16)


def test_tuple_conversion():
    rng = R(250, 5)
    assert IntervalRange.from_tuple(rng.to_tuple()) == rng
