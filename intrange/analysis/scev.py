from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from intrange.analysis.analysis import IRAnalysesCache
from intrange.analysis.back_edges import BackEdgeAnalysis
from intrange.analysis.dfg import DFGAnalysis
from intrange.analysis.interval import IntervalRange, icmp_holds, satisfying_icmp_region
from intrange.ir.basicblock import IRInstruction, IRLiteral, IROperand, IRVariable
from intrange.ir.context import IRContext
from intrange.ir.function import IRFunction
from intrange.ir.types import IntType
from intrange.utils import wrap

# expressions deeper than this are treated as opaque values
MAX_EXPR_DEPTH = 16


class SymExpr:
    """
    Base class of symbolic integer expressions. Every expression knows a
    conservative range of the unsigned values it can evaluate to.
    """

    bits: int

    def unsigned_range(self) -> IntervalRange:
        raise NotImplementedError


@dataclass(frozen=True)
class SymConstant(SymExpr):
    value: int
    bits: int

    def unsigned_range(self) -> IntervalRange:
        return IntervalRange.constant(self.value, self.bits)

    def __str__(self):
        return str(self.value)


@dataclass(frozen=True)
class SymUnknown(SymExpr):
    name: str
    bits: int

    def unsigned_range(self) -> IntervalRange:
        return IntervalRange.full(self.bits)

    def __str__(self):
        return f"%{self.name}"


@dataclass(frozen=True)
class SymZeroExtend(SymExpr):
    operand: SymExpr
    bits: int

    def unsigned_range(self) -> IntervalRange:
        return self.operand.unsigned_range().zero_extend(self.bits)

    def __str__(self):
        return f"(zext i{self.operand.bits} {self.operand} to i{self.bits})"


@dataclass(frozen=True)
class SymBinary(SymExpr):
    """`operand <opcode> constant` for add, and, urem, udiv and lshr."""

    opcode: str
    operand: SymExpr
    constant: int
    bits: int

    def unsigned_range(self) -> IntervalRange:
        bits = self.bits
        lhs = self.operand.unsigned_range()
        rhs = IntervalRange.constant(self.constant, bits)
        match self.opcode:
            case "add":
                return lhs.add(rhs)
            case "and":
                return lhs.binary_and(rhs)
            case "urem":
                if self.constant == 0:
                    return IntervalRange.full(bits)
                return IntervalRange.cover(0, min(self.constant - 1, lhs.unsigned_max), bits)
            case "udiv":
                if self.constant == 0:
                    return IntervalRange.full(bits)
                return lhs.udiv(rhs)
            case "lshr":
                if self.constant >= bits:
                    return IntervalRange.full(bits)
                return lhs.lshr(rhs)
        raise NotImplementedError(self.opcode)  # pragma: nocover

    def __str__(self):
        return f"({self.operand} {self.opcode} {self.constant})"


@dataclass(frozen=True)
class SymAddRec(SymExpr):
    """{start,+,step}<header>: an induction variable of a loop."""

    start: SymExpr
    step: int
    header: str
    bits: int

    def unsigned_range(self) -> IntervalRange:
        return IntervalRange.full(self.bits)

    def __str__(self):
        return f"{{{self.start},+,{self.step}}}<%{self.header}>"


_FOLDABLE = ("add", "and", "urem", "udiv", "lshr")
_COMMUTATIVE = ("add", "and")


def _fold(opcode: str, value: int, constant: int, bits: int) -> Optional[int]:
    match opcode:
        case "add":
            return wrap(value + constant, bits)
        case "and":
            return value & constant
        case "urem":
            return value % constant if constant != 0 else None
        case "udiv":
            return value // constant if constant != 0 else None
        case "lshr":
            return value >> constant if constant < bits else None
    return None  # pragma: nocover


class SymbolicBoundOracle:
    """
    Build symbolic expressions for integer operands and prove comparison
    predicates between them.
    """

    ctx: IRContext
    analyses_caches: dict[IRFunction, IRAnalysesCache]

    def __init__(
        self, ctx: IRContext, analyses_caches: Optional[dict[IRFunction, IRAnalysesCache]] = None
    ):
        self.ctx = ctx
        if analyses_caches is None:
            analyses_caches = {fn: IRAnalysesCache(fn) for fn in ctx.get_functions()}
        self.analyses_caches = analyses_caches

    def get_expr(self, fn: IRFunction, operand: IROperand, depth: int = 0) -> Optional[SymExpr]:
        """
        The symbolic expression of an integer operand, or None if the
        operand is not an integer.
        """
        typ = operand.type
        if not isinstance(typ, IntType):
            return None
        bits = typ.bits

        if isinstance(operand, IRLiteral):
            return SymConstant(wrap(operand.value, bits), bits)

        assert isinstance(operand, IRVariable), operand
        unknown = SymUnknown(f"{fn.name}.{operand.plain_name}", bits)
        if depth >= MAX_EXPR_DEPTH:
            return unknown

        dfg = self.analyses_caches[fn].request_analysis(DFGAnalysis)
        inst = dfg.get_producing_instruction(operand)
        if inst is None:
            return unknown

        if inst.opcode == "zext":
            src = self.get_expr(fn, inst.operands[0], depth + 1)
            assert src is not None
            if isinstance(src, SymConstant):
                return SymConstant(src.value, bits)
            return SymZeroExtend(src, bits)

        if inst.opcode in _FOLDABLE:
            return self._binary_expr(fn, inst, bits, depth) or unknown

        if inst.opcode == "phi":
            return self._addrec_expr(fn, inst, bits, depth) or unknown

        return unknown

    def _binary_expr(
        self, fn: IRFunction, inst: IRInstruction, bits: int, depth: int
    ) -> Optional[SymExpr]:
        lhs, rhs = inst.operands
        if not isinstance(rhs, IRLiteral) and inst.opcode in _COMMUTATIVE:
            lhs, rhs = rhs, lhs
        if not isinstance(rhs, IRLiteral):
            return None

        constant = wrap(rhs.value, bits)
        operand = self.get_expr(fn, lhs, depth + 1)
        assert operand is not None
        if isinstance(operand, SymConstant):
            folded = _fold(inst.opcode, operand.value, constant, bits)
            if folded is not None:
                return SymConstant(folded, bits)
        return SymBinary(inst.opcode, operand, constant, bits)

    def _addrec_expr(
        self, fn: IRFunction, inst: IRInstruction, bits: int, depth: int
    ) -> Optional[SymExpr]:
        # %i = phi @entry, start, @latch, %next  with  %next = add %i, step
        # over the back edge latch -> header
        pairs = list(inst.phi_operands)
        if len(pairs) != 2:
            return None

        header = inst.parent
        back_edges = self.analyses_caches[fn].request_analysis(BackEdgeAnalysis)
        dfg = self.analyses_caches[fn].request_analysis(DFGAnalysis)

        start = None
        step = None
        for label, value in pairs:
            pred = fn.get_basic_block(label.name)
            if not back_edges.is_back_edge(pred, header):
                start = value
                continue
            next_inst = dfg.get_producing_instruction(value)
            if next_inst is None or next_inst.opcode != "add":
                return None
            a, b = next_inst.operands
            if a == inst.output and isinstance(b, IRLiteral):
                step = b.value
            elif b == inst.output and isinstance(a, IRLiteral):
                step = a.value

        if start is None or step is None:
            return None
        start_expr = self.get_expr(fn, start, depth + 1)
        assert start_expr is not None
        return SymAddRec(start_expr, wrap(step, bits), header.label.value, bits)

    def is_known_predicate(self, opcode: str, lhs: SymExpr, rhs: SymExpr) -> bool:
        """
        True if `lhs <opcode> rhs` holds for every value the expressions
        can take.
        """
        if lhs.bits != rhs.bits:
            return False

        if lhs == rhs:
            return opcode in ("eq", "ule", "uge", "sle", "sge")

        if isinstance(lhs, SymConstant) and isinstance(rhs, SymConstant):
            return icmp_holds(opcode, lhs.value, rhs.value, lhs.bits)

        lhs_range = lhs.unsigned_range()
        rhs_range = rhs.unsigned_range()
        if lhs_range.is_empty or rhs_range.is_empty:
            return False
        return satisfying_icmp_region(opcode, rhs_range).contains_range(lhs_range)
