from typing import Generic, TypeVar

_T = TypeVar("_T")


class OrderedSet(Generic[_T], dict[_T, None]):
    """
    a minimal "ordered set" class. this is needed in some places
    because, while dict guarantees you can recover insertion order
    vanilla sets do not.
    no attempt is made to fully implement the set API, will add
    functionality as needed.
    """

    def __init__(self, iterable=None):
        super().__init__()
        if iterable is not None:
            for item in iterable:
                self.add(item)

    def __repr__(self):
        keys = ", ".join(repr(k) for k in self.keys())
        return f"{{{keys}}}"

    def get(self, *args, **kwargs):
        raise RuntimeError("can't call get() on OrderedSet!")

    def first(self):
        return next(iter(self))

    def add(self, item: _T) -> None:
        self[item] = None

    def remove(self, item: _T) -> None:
        del self[item]

    def update(self, other):
        super().update(self.__class__.fromkeys(other))

    def copy(self):
        return self.__class__(super().copy())

    def pop(self) -> _T:  # type: ignore[override]
        # most recently added item
        return self.popitem()[0]

    @classmethod
    def intersection(cls, *sets):
        res = OrderedSet()
        if len(sets) == 0:
            raise ValueError("undefined: intersection of no sets")
        if len(sets) == 1:
            return sets[0].copy()
        for e in sets[0].keys():
            if all(e in s for s in sets[1:]):
                res.add(e)
        return res


def int_bounds(signed, bits):
    """
    calculate the bounds on an integer type
    ex. int_bounds(True, 8) -> (-128, 127)
        int_bounds(False, 8) -> (0, 255)
    """
    if signed:
        return -(2 ** (bits - 1)), (2 ** (bits - 1)) - 1
    return 0, (2**bits) - 1


def unsigned_to_signed(int_, bits, strict=False):
    """
    Reinterpret an unsigned integer with n bits as a signed integer.
    The implementation is unforgiving in that it assumes the input is in
    bounds for uint<bits>, in order to fail more loudly (and not hide
    errors in modular reasoning in consumers of this function).
    """
    if strict:
        lo, hi = int_bounds(signed=False, bits=bits)
        assert lo <= int_ <= hi
    if int_ > (2 ** (bits - 1)) - 1:
        return int_ - (2**bits)
    return int_


def wrap(value: int, bits: int) -> int:
    """
    Reduce an arbitrary python int modulo 2**bits, e.g. wrap(-1, 8) -> 255
    """
    return value & ((1 << bits) - 1)
