"""
Range transfer functions, one per opcode.

Every rule takes the running RangePass and an instruction, writes the
range of the instruction's integer result (if any) into the local map of
its block, and returns True if a fact in the RangeTable changed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from intrange.analysis.interval import IntervalRange
from intrange.ir.basicblock import (
    ALL_INSTRUCTIONS,
    BINARY_INSTRUCTIONS,
    BB_TERMINATORS,
    COMPARATOR_INSTRUCTIONS,
    IRInstruction,
)
from intrange.ir.types import IntType, is_integer_type
from intrange.range_table import normalize_width

if TYPE_CHECKING:
    from intrange.passes.range_pass import RangePass

Transfer = Callable[["RangePass", IRInstruction], bool]


def _result_bits(inst: IRInstruction) -> int:
    typ = inst.result_type
    assert isinstance(typ, IntType), inst
    return typ.bits


def _wrap_binop(operation: Callable[[IntervalRange, IntervalRange], IntervalRange]) -> Transfer:
    def transfer(rp: RangePass, inst: IRInstruction) -> bool:
        bb = inst.parent
        lhs = rp.get_range(bb, inst.operands[0])
        rhs = normalize_width(lhs, rp.get_range(bb, inst.operands[1]))
        rp.union_in_block(bb, inst.output, operation(lhs, rhs))
        return False

    return transfer


# approximations kept for operators without an interval rule
def _left(lhs: IntervalRange, rhs: IntervalRange) -> IntervalRange:
    return lhs


def _right(lhs: IntervalRange, rhs: IntervalRange) -> IntervalRange:
    return rhs


_BINARY_OPS: dict[str, Callable[[IntervalRange, IntervalRange], IntervalRange]] = {
    "add": IntervalRange.add,
    "sub": IntervalRange.sub,
    "mul": IntervalRange.multiply,
    "udiv": IntervalRange.udiv,
    "shl": IntervalRange.shl,
    "lshr": IntervalRange.lshr,
    "and": IntervalRange.binary_and,
    "or": IntervalRange.binary_or,
    "sdiv": _left,
    "ashr": _left,
    "xor": _left,
    "urem": _right,
    "srem": _right,
}


def _icmp(rp: RangePass, inst: IRInstruction) -> bool:
    rp.union_in_block(inst.parent, inst.output, IntervalRange.full(1))
    return False


def _resize(rp: RangePass, inst: IRInstruction) -> bool:
    # trunc and zext
    rng = rp.get_range(inst.parent, inst.operands[0])
    rp.union_in_block(inst.parent, inst.output, rng.zext_or_trunc(_result_bits(inst)))
    return False


def _sext(rp: RangePass, inst: IRInstruction) -> bool:
    rng = rp.get_range(inst.parent, inst.operands[0])
    rp.union_in_block(inst.parent, inst.output, rng.sign_extend(_result_bits(inst)))
    return False


def _ptrtoint(rp: RangePass, inst: IRInstruction) -> bool:
    rp.union_in_block(inst.parent, inst.output, IntervalRange.full(_result_bits(inst)))
    return False


def _bitcast(rp: RangePass, inst: IRInstruction) -> bool:
    if not (is_integer_type(inst.type) and is_integer_type(inst.result_type)):
        return False
    rng = rp.get_range(inst.parent, inst.operands[0])
    rp.union_in_block(inst.parent, inst.output, rng.zext_or_trunc(_result_bits(inst)))
    return False


def _select(rp: RangePass, inst: IRInstruction) -> bool:
    if not is_integer_type(inst.result_type):
        return False
    _, a, b = inst.operands
    bb = inst.parent
    rng = rp.get_range(bb, a)
    rng = rng.union(normalize_width(rng, rp.get_range(bb, b)))
    rp.union_in_block(bb, inst.output, rng)
    return False


def _phi(rp: RangePass, inst: IRInstruction) -> bool:
    if not is_integer_type(inst.result_type):
        return False
    bb = inst.parent
    fn = bb.parent
    rng = IntervalRange.empty(_result_bits(inst))
    for label, value in inst.phi_operands:
        pred = fn.get_basic_block(label.name)
        if rp.back_edges.is_back_edge(pred, bb):
            continue
        rng = rng.union(normalize_width(rng, rp.get_range(pred, value)))
    rp.union_in_block(bb, inst.output, rng)
    return False


def _load(rp: RangePass, inst: IRInstruction) -> bool:
    if not is_integer_type(inst.result_type):
        return False
    # the result reads the facts of the loaded location
    rng = rp.get_range(inst.parent, inst.output)
    rp.union_in_block(inst.parent, inst.output, rng)
    return False


def _store(rp: RangePass, inst: IRInstruction) -> bool:
    value, ptr = inst.operands
    if not is_integer_type(value.type):
        return False
    bb = inst.parent
    rng = rp.get_range(bb, value)
    rp.union_in_block(bb, ptr, rng)

    sid = rp.namer.memory_id(bb.parent, ptr)
    if sid is None:
        return False
    return rp.table.union_range(sid, rng, inst)


def _call(rp: RangePass, inst: IRInstruction) -> bool:
    callees = rp.resolver.callees_of(inst)
    if len(callees) == 0:
        return False

    bb = inst.parent
    changed = False
    for callee in callees:
        if callee.is_vararg or callee.is_intrinsic:
            continue
        for i, arg in enumerate(inst.call_args[: len(callee.params)]):
            if not is_integer_type(arg.type):
                continue
            rng = rp.get_range(bb, arg)
            changed |= rp.table.union_range(rp.namer.arg_id(callee, i), rng, inst)

    if is_integer_type(inst.result_type):
        rng = rp.get_range(bb, inst.output)
        rp.union_in_block(bb, inst.output, rng)
        sid = rp.namer.call_ret_id(inst)
        assert sid is not None
        changed |= rp.table.union_range(sid, rng, inst)

    return changed


def _ret(rp: RangePass, inst: IRInstruction) -> bool:
    if len(inst.operands) == 0 or not is_integer_type(inst.type):
        return False
    bb = inst.parent
    rng = rp.get_range(bb, inst.operands[0])
    return rp.table.union_range(rp.namer.ret_id(bb.parent), rng, inst)


def _no_range(rp: RangePass, inst: IRInstruction) -> bool:
    # pointer results and terminators without a result
    return False


TRANSFER: dict[str, Transfer] = {
    **{opcode: _wrap_binop(op) for opcode, op in _BINARY_OPS.items()},
    **{opcode: _icmp for opcode in COMPARATOR_INSTRUCTIONS},
    "trunc": _resize,
    "zext": _resize,
    "sext": _sext,
    "ptrtoint": _ptrtoint,
    "bitcast": _bitcast,
    "inttoptr": _no_range,
    "select": _select,
    "phi": _phi,
    "load": _load,
    "store": _store,
    "call": _call,
    "ret": _ret,
    "alloca": _no_range,
    "field": _no_range,
    "elem": _no_range,
    **{opcode: _no_range for opcode in BB_TERMINATORS - {"ret"}},
}

assert set(_BINARY_OPS) == BINARY_INSTRUCTIONS
assert set(TRANSFER) == ALL_INSTRUCTIONS, set(TRANSFER) ^ ALL_INSTRUCTIONS
