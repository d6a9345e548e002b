from __future__ import annotations

from typing import TYPE_CHECKING

from intrange.analysis import DFGAnalysis
from intrange.analysis.interval import IntervalRange, allowed_icmp_region
from intrange.ir.basicblock import (
    IRBasicBlock,
    IRInstruction,
    IROperand,
    IRVariable,
    invert_comparison_opcode,
    swap_comparison_opcode,
)
from intrange.ir.types import IntType, is_integer_type
from intrange.range_table import normalize_width
from intrange.utils import wrap

if TYPE_CHECKING:
    from intrange.passes.range_pass import RangePass


def edge_facts(
    rp: RangePass, pred: IRBasicBlock, succ: IRBasicBlock
) -> dict[IROperand, IntervalRange]:
    """
    Facts that hold on the edge pred -> succ because of the condition of
    pred's terminator. They replace the facts of pred for the same
    operands on that edge only.
    """
    term = pred.last_instruction
    if term.opcode == "jnz":
        return _jnz_facts(rp, term, succ)
    if term.opcode == "switch":
        return _switch_facts(rp, term, succ)
    return {}


def _jnz_facts(
    rp: RangePass, term: IRInstruction, succ: IRBasicBlock
) -> dict[IROperand, IntervalRange]:
    cond, true_label, _ = term.operands
    if not isinstance(cond, IRVariable):
        return {}

    pred = term.parent
    dfg = rp.analyses_caches[pred.parent].request_analysis(DFGAnalysis)
    cmp_inst = dfg.get_producing_instruction(cond)
    if cmp_inst is None or not cmp_inst.is_comparator:
        return {}

    a, b = cmp_inst.operands
    if not (is_integer_type(a.type) and is_integer_type(b.type)):
        return {}

    # if both targets are the same block, the true edge wins
    opcode = cmp_inst.opcode
    if succ.label != true_label:
        opcode = invert_comparison_opcode(opcode)

    lhs = rp.get_range(pred, a)
    rhs = normalize_width(lhs, rp.get_range(pred, b))

    facts: dict[IROperand, IntervalRange] = {}
    if isinstance(a, IRVariable):
        facts[a] = lhs.intersect(allowed_icmp_region(opcode, rhs))
    if isinstance(b, IRVariable):
        assert isinstance(b.type, IntType)
        rng = rhs.intersect(allowed_icmp_region(swap_comparison_opcode(opcode), lhs))
        facts[b] = rng.zext_or_trunc(b.type.bits)
    return facts


def _switch_facts(
    rp: RangePass, term: IRInstruction, succ: IRBasicBlock
) -> dict[IROperand, IntervalRange]:
    cond, default_label = term.operands[:2]
    if not isinstance(cond, IRVariable) or not isinstance(cond.type, IntType):
        return {}

    bits = cond.type.bits
    region = IntervalRange.empty(bits)
    excluded = []
    for value, label in term.switch_cases:
        case_value = wrap(value.value, bits)
        if label == succ.label:
            region = region.union(IntervalRange.constant(case_value, bits))
        else:
            excluded.append(case_value)

    if default_label == succ.label:
        region = region.union(default_region(excluded, bits))

    rng = rp.get_range(term.parent, cond)
    return {cond: rng.intersect(region)}


def default_region(excluded: list[int], bits: int) -> IntervalRange:
    """
    The smallest wrapping range containing every `bits`-bit value except
    those in `excluded`: the complement of the longest (circular) run of
    consecutive excluded values.
    """
    values = sorted(set(excluded))
    if len(values) == 0:
        return IntervalRange.full(bits)
    if len(values) == 1 << bits:
        return IntervalRange.empty(bits)

    runs: list[tuple[int, int]] = []
    start = prev = values[0]
    for v in values[1:]:
        if v != prev + 1:
            runs.append((start, prev))
            start = v
        prev = v
    runs.append((start, prev))

    # a run ending at the maximum continues into a run starting at 0
    mask = (1 << bits) - 1
    if len(runs) > 1 and runs[-1][1] == mask and runs[0][0] == 0:
        last_start, _ = runs.pop()
        runs[0] = (last_start, runs[0][1])

    lo, hi = max(runs, key=lambda run: (run[1] - run[0]) % (1 << bits))
    return IntervalRange.from_bounds(hi + 1, lo, bits)
