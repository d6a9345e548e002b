from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class IRType:
    """
    Base class for the types of IR values. Only integer types carry
    ranges; everything else is tracked opaquely.
    """

    @property
    def is_integer(self) -> bool:
        return False


@dataclass(frozen=True)
class IntType(IRType):
    bits: int

    def __post_init__(self):
        assert isinstance(self.bits, int) and self.bits > 0, self.bits

    @property
    def is_integer(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"i{self.bits}"


@dataclass(frozen=True)
class PointerType(IRType):
    def __repr__(self) -> str:
        return "ptr"


@dataclass(frozen=True)
class VoidType(IRType):
    def __repr__(self) -> str:
        return "void"


@dataclass(frozen=True)
class ArrayType(IRType):
    count: int
    element: IRType

    def __repr__(self) -> str:
        return f"[{self.count} x {self.element!r}]"


class StructType(IRType):
    """
    A struct type. Named structs compare by name (their body may be filled
    in after the first reference, and may refer to itself through pointers);
    literal structs (no name) compare by their field types.
    """

    name: Optional[str]
    fields: Optional[list[IRType]]

    def __init__(self, name: Optional[str] = None, fields: Optional[list[IRType]] = None):
        if name is not None:
            name = name.removeprefix("%")
        self.name = name
        self.fields = list(fields) if fields is not None else None

    @property
    def is_opaque(self) -> bool:
        return self.fields is None

    @property
    def is_anonymous(self) -> bool:
        # clang names unnamed record types struct.anon, struct.anon.0, ...
        if self.name is None:
            return True
        return self.name == "struct.anon" or self.name.startswith("struct.anon.")

    def __eq__(self, other) -> bool:
        if not isinstance(other, StructType):
            return False
        if self.name is not None or other.name is not None:
            return self.name == other.name
        return self.fields == other.fields

    def __hash__(self) -> int:
        if self.name is not None:
            return hash(self.name)
        return hash(tuple(self.fields or ()))

    def body_str(self) -> str:
        assert self.fields is not None, self
        return "{ " + ", ".join(repr(t) for t in self.fields) + " }"

    def __repr__(self) -> str:
        if self.name is not None:
            return f"%{self.name}"
        return self.body_str()


PTR = PointerType()
VOID = VoidType()
I1 = IntType(1)


def is_integer_type(typ: Optional[IRType]) -> bool:
    return typ is not None and typ.is_integer
