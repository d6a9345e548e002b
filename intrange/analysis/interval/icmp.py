from intrange.analysis.interval.value_range import IntervalRange
from intrange.exceptions import AnalysisPanic
from intrange.ir.basicblock import invert_comparison_opcode
from intrange.utils import unsigned_to_signed, wrap


def allowed_icmp_region(opcode: str, other: IntervalRange) -> IntervalRange:
    """
    The smallest range containing every x for which `x <opcode> y` holds
    for at least one y in `other`.
    """
    bits = other.bits
    if other.is_empty:
        return other

    smin = -(1 << (bits - 1))
    smax = (1 << (bits - 1)) - 1

    match opcode:
        case "eq":
            return other
        case "ne":
            if other.is_constant:
                return other.inverse()
            return IntervalRange.full(bits)
        case "ult":
            umax = other.unsigned_max
            if umax == 0:
                return IntervalRange.empty(bits)
            return IntervalRange.from_bounds(0, umax, bits)
        case "ule":
            return IntervalRange.from_bounds(0, other.unsigned_max + 1, bits)
        case "ugt":
            umin = other.unsigned_min
            if umin == other.mask:
                return IntervalRange.empty(bits)
            return IntervalRange.from_bounds(umin + 1, 0, bits)
        case "uge":
            return IntervalRange.from_bounds(other.unsigned_min, 0, bits)
        case "slt":
            hi = other.signed_max
            if hi == smin:
                return IntervalRange.empty(bits)
            return IntervalRange.from_bounds(smin, hi, bits)
        case "sle":
            return IntervalRange.from_bounds(smin, other.signed_max + 1, bits)
        case "sgt":
            lo = other.signed_min
            if lo == smax:
                return IntervalRange.empty(bits)
            return IntervalRange.from_bounds(lo + 1, smin, bits)
        case "sge":
            return IntervalRange.from_bounds(other.signed_min, smin, bits)

    raise AnalysisPanic(f"unknown comparison {opcode}")  # pragma: nocover


def satisfying_icmp_region(opcode: str, other: IntervalRange) -> IntervalRange:
    """
    The largest range such that `x <opcode> y` holds for every x in it and
    every y in `other`.
    """
    inverted = invert_comparison_opcode(opcode)
    return allowed_icmp_region(inverted, other).inverse()


def icmp_holds(opcode: str, a: int, b: int, bits: int) -> bool:
    """
    Evaluate `a <opcode> b` on two `bits`-bit words.
    """
    a = wrap(a, bits)
    b = wrap(b, bits)
    sa = unsigned_to_signed(a, bits)
    sb = unsigned_to_signed(b, bits)

    match opcode:
        case "eq":
            return a == b
        case "ne":
            return a != b
        case "ult":
            return a < b
        case "ule":
            return a <= b
        case "ugt":
            return a > b
        case "uge":
            return a >= b
        case "slt":
            return sa < sb
        case "sle":
            return sa <= sb
        case "sgt":
            return sa > sb
        case "sge":
            return sa >= sb

    raise AnalysisPanic(f"unknown comparison {opcode}")  # pragma: nocover
