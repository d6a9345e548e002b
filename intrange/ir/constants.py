from __future__ import annotations

from dataclasses import dataclass


class IRConstant:
    """
    Initializer of a global variable. One of ConstInt, ConstStruct,
    ConstArray, ConstZero (zeroinitializer) or ConstSymbol (the address
    of a global or a function).
    """


@dataclass(frozen=True)
class ConstInt(IRConstant):
    value: int

    def __str__(self):
        return str(self.value)


@dataclass(frozen=True)
class ConstStruct(IRConstant):
    elements: tuple[IRConstant, ...]

    def __str__(self):
        return "{ " + ", ".join(str(e) for e in self.elements) + " }"


@dataclass(frozen=True)
class ConstArray(IRConstant):
    elements: tuple[IRConstant, ...]

    def __str__(self):
        return "[" + ", ".join(str(e) for e in self.elements) + "]"


@dataclass(frozen=True)
class ConstZero(IRConstant):
    def __str__(self):
        return "zeroinitializer"


@dataclass(frozen=True)
class ConstSymbol(IRConstant):
    name: str

    def __str__(self):
        return f"@{self.name}"
