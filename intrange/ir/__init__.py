from intrange.ir.basicblock import (
    IRBasicBlock,
    IRInstruction,
    IRLabel,
    IRLiteral,
    IROperand,
    IRVariable,
)
from intrange.ir.context import IRContext, IRGlobal
from intrange.ir.function import IRFunction
from intrange.ir.parser import parse_ir

__all__ = [
    "IRBasicBlock",
    "IRContext",
    "IRFunction",
    "IRGlobal",
    "IRInstruction",
    "IRLabel",
    "IRLiteral",
    "IROperand",
    "IRVariable",
    "parse_ir",
]
