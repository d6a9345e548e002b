from dataclasses import dataclass
from typing import Iterator, Optional

from intrange.exceptions import UnknownSymbol
from intrange.ir.basicblock import IRBasicBlock, IRLabel, IRVariable
from intrange.ir.constants import IRConstant
from intrange.ir.function import IRFunction
from intrange.ir.types import VOID, IRType, StructType


@dataclass
class IRGlobal:
    name: str
    type: IRType
    initializer: Optional[IRConstant] = None

    def __str__(self):
        s = f"global @{self.name}: {self.type!r}"
        if self.initializer is not None:
            s += f" = {self.initializer}"
        return s


class IRContext:
    """
    A whole program: struct types, global variables and functions
    (defined or only declared).
    """

    functions: dict[IRLabel, IRFunction]
    globals: dict[str, IRGlobal]
    struct_types: dict[str, StructType]

    def __init__(self) -> None:
        self.functions = {}
        self.globals = {}
        self.struct_types = {}

    def get_basic_blocks(self) -> Iterator[IRBasicBlock]:
        for fn in self.functions.values():
            for bb in fn.get_basic_blocks():
                yield bb

    def add_function(self, fn: IRFunction) -> None:
        fn.ctx = self
        self.functions[fn.name] = fn

    def create_function(
        self,
        name: str,
        params: Optional[list[IRVariable]] = None,
        return_type: IRType = VOID,
        is_vararg: bool = False,
    ) -> IRFunction:
        label = IRLabel(name, True)
        assert label not in self.functions, f"duplicate function {label}"
        fn = IRFunction(label, self, params, return_type, is_vararg)
        self.add_function(fn)
        return fn

    def get_function(self, name: IRLabel | str) -> IRFunction:
        if isinstance(name, str):
            name = IRLabel(name, True)
        if name in self.functions:
            return self.functions[name]
        raise UnknownSymbol(f"Function {name} not found in context")

    def has_function(self, name: IRLabel | str) -> bool:
        if isinstance(name, str):
            name = IRLabel(name, True)
        return name in self.functions

    def get_functions(self) -> Iterator[IRFunction]:
        return iter(self.functions.values())

    def add_global(self, glob: IRGlobal) -> None:
        assert glob.name not in self.globals, f"duplicate global {glob.name}"
        self.globals[glob.name] = glob

    def get_global(self, name: str) -> Optional[IRGlobal]:
        return self.globals.get(name.removeprefix("@"))

    def get_globals(self) -> Iterator[IRGlobal]:
        return iter(self.globals.values())

    def add_struct_type(self, struct: StructType) -> None:
        assert struct.name is not None, struct
        self.struct_types[struct.name] = struct

    def __repr__(self) -> str:
        s = []
        for struct in self.struct_types.values():
            if struct.is_opaque:
                continue
            s.append(f"struct %{struct.name} = {struct.body_str()}")
        for glob in self.globals.values():
            s.append(str(glob))
        if s:
            s.append("")
        for fn in self.functions.values():
            s.append(repr(fn))
            s.append("")

        return "\n".join(s)
