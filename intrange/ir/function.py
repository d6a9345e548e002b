from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, Optional

from intrange.ir.basicblock import IRBasicBlock, IRLabel, IRVariable
from intrange.ir.types import VOID, IRType

if TYPE_CHECKING:
    from intrange.ir.context import IRContext


class IRFunction:
    """
    Function that contains basic blocks. A function without basic blocks
    is a declaration (its body lives outside of the analyzed program).
    """

    name: IRLabel  # symbol name
    ctx: IRContext
    params: list[IRVariable]
    return_type: IRType
    is_vararg: bool
    _basic_block_dict: dict[str, IRBasicBlock]

    def __init__(
        self,
        name: IRLabel,
        ctx: IRContext = None,
        params: Optional[list[IRVariable]] = None,
        return_type: IRType = VOID,
        is_vararg: bool = False,
    ):
        self.ctx = ctx  # type: ignore
        self.name = name
        self.params = list(params or [])
        self.return_type = return_type
        self.is_vararg = is_vararg
        self._basic_block_dict = {}

    @property
    def entry(self) -> IRBasicBlock:
        return next(self.get_basic_blocks())

    @property
    def is_declaration(self) -> bool:
        return len(self._basic_block_dict) == 0

    @property
    def is_intrinsic(self) -> bool:
        # llvm.memcpy.p0.p0.i64 and friends
        return "." in self.name.value

    @property
    def param_types(self) -> list[IRType]:
        return [param.type for param in self.params]  # type: ignore[misc]

    def get_param_index(self, var: IRVariable) -> Optional[int]:
        for i, param in enumerate(self.params):
            if param == var:
                return i
        return None

    def append_basic_block(self, bb: IRBasicBlock):
        """
        Append basic block to function.
        """
        assert isinstance(bb, IRBasicBlock), bb
        assert bb.label.name not in self._basic_block_dict, bb.label
        self._basic_block_dict[bb.label.name] = bb

    def has_basic_block(self, label: str) -> bool:
        return label in self._basic_block_dict

    def get_basic_block(self, label: Optional[str] = None) -> IRBasicBlock:
        """
        Get basic block by label.
        If label is None, return the last basic block.
        """
        if label is None:
            return next(reversed(self._basic_block_dict.values()))

        return self._basic_block_dict[label]

    def get_basic_blocks(self) -> Iterator[IRBasicBlock]:
        """
        Get an iterator over this function's basic blocks, in layout order
        """
        return iter(self._basic_block_dict.values())

    def signature_str(self) -> str:
        params = [f"{p.type!r} {p}" for p in self.params]
        if self.is_vararg:
            params.append("...")
        ret = f" -> {self.return_type!r}" if self.return_type != VOID else ""
        return f"@{self.name}({', '.join(params)}){ret}"

    def __repr__(self) -> str:
        if self.is_declaration:
            return f"declare function {self.signature_str()}"
        ret = f"function {self.signature_str()} {{\n"
        for bb in self.get_basic_blocks():
            bb_str = "\n".join("  " + line if line else line for line in repr(bb).split("\n"))
            ret += f"{bb_str}"
        ret = ret.strip() + "\n}"
        return ret
