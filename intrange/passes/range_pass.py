from typing import Optional

from intrange.analysis import (
    BackEdgeAnalysis,
    CalleeResolver,
    CFGAnalysis,
    DFGAnalysis,
    IRAnalysesCache,
    SymbolicNamer,
    TaintOracle,
)
from intrange.analysis.interval import IntervalRange
from intrange.exceptions import UnmodeledInstruction
from intrange.ir.basicblock import IRBasicBlock, IRInstruction, IRLiteral, IROperand
from intrange.ir.constants import ConstArray, ConstInt, ConstStruct, ConstZero, IRConstant
from intrange.ir.context import IRContext
from intrange.ir.function import IRFunction
from intrange.ir.types import ArrayType, IntType, IRType, StructType
from intrange.passes.base_pass import IRGlobalPass
from intrange.passes.refinement import edge_facts
from intrange.passes.transfer import TRANSFER
from intrange.range_table import RangeTable, normalize_width
from intrange.settings import RangeSettings
from intrange.utils import wrap

LocalValueMap = dict[IROperand, IntervalRange]


class RangePass(IRGlobalPass):
    """
    Whole-program integer range propagation.

    Every function is swept in block layout order. Facts about SSA
    variables live in per-block local maps that are rebuilt on each
    sweep; facts about named storage locations (globals, struct fields,
    arguments, return slots and call results) live in the RangeTable and
    accumulate across sweeps. Sweeps are repeated until the table stops
    changing. Once `max_iterations` rounds have run, every id that still
    changed in the previous round is widened to the full range.
    """

    settings: RangeSettings
    namer: SymbolicNamer
    resolver: CalleeResolver
    taint: TaintOracle
    table: RangeTable
    iterations: int
    local_maps: dict[IRFunction, dict[IRBasicBlock, LocalValueMap]]

    def __init__(
        self,
        analyses_caches: dict[IRFunction, IRAnalysesCache],
        ctx: IRContext,
        settings: Optional[RangeSettings] = None,
        namer: Optional[SymbolicNamer] = None,
        resolver: Optional[CalleeResolver] = None,
        taint: Optional[TaintOracle] = None,
    ):
        super().__init__(analyses_caches, ctx)
        if settings is None:
            settings = RangeSettings()
        self.settings = settings
        self.namer = namer or SymbolicNamer(ctx, analyses_caches)
        self.resolver = resolver or CalleeResolver(ctx)
        self.taint = taint or TaintOracle(settings.taint_sources)

        self.table = RangeTable(settings.watch_id)
        self.iterations = 0
        self.local_maps = {}

    def run_pass(self) -> RangeTable:
        self._collect_initializers()
        while self._run_round():
            pass
        return self.table

    def _run_round(self) -> bool:
        self.iterations += 1
        if self.iterations > self.settings.max_iterations:
            self.table.widen(self.table.changes)
        self.table.clear_changes()

        changed = False
        for fn in self.ctx.get_functions():
            if fn.is_declaration:
                continue
            changed |= self._run_function(fn)
        return changed

    def _run_function(self, fn: IRFunction) -> bool:
        ac = self.analyses_caches[fn]
        self.back_edges = ac.force_analysis(BackEdgeAnalysis)
        self.cfg = ac.request_analysis(CFGAnalysis)

        self.local_maps[fn] = {bb: {} for bb in fn.get_basic_blocks()}

        changed = False
        for bb in fn.get_basic_blocks():
            self._merge_predecessors(bb)
            for inst in bb.instructions:
                changed |= self._visit(inst)
        return changed

    def _merge_predecessors(self, bb: IRBasicBlock) -> None:
        local_map = self.local_maps[bb.parent]
        for pred in self.cfg.cfg_in(bb):
            if self.back_edges.is_back_edge(pred, bb):
                continue
            refined = edge_facts(self, pred, bb)
            facts = local_map[pred].copy()
            facts.update(refined)
            for op, rng in facts.items():
                self.union_in_block(bb, op, rng)

    def _visit(self, inst: IRInstruction) -> bool:
        transfer = TRANSFER.get(inst.opcode)
        if transfer is None:
            raise UnmodeledInstruction(f"no range transfer for `{inst}`")
        return transfer(self, inst)

    def union_in_block(self, bb: IRBasicBlock, op: IROperand, rng: IntervalRange) -> bool:
        """
        Union `rng` into the fact about `op` in the local map of `bb`.
        Returns True if the fact grew.
        """
        if rng.is_empty:
            return False

        local_map = self.local_maps[bb.parent][bb]
        old = local_map.get(op)
        if old is None:
            new = rng
        else:
            new = old.union(normalize_width(old, rng))

        if new == old:
            return False
        local_map[op] = new
        return True

    def get_range(self, bb: IRBasicBlock, op: IROperand) -> IntervalRange:
        """
        The range of an integer operand as seen in `bb`.
        """
        typ = op.type
        assert isinstance(typ, IntType), (op, typ)
        bits = typ.bits

        if isinstance(op, IRLiteral):
            return IntervalRange.constant(op.value, bits)

        local_map = self.local_maps[bb.parent][bb]
        if op in local_map:
            return local_map[op]

        ret = self._lookup_range(bb.parent, op, bits)
        if not ret.is_empty:
            local_map[op] = ret
        return ret

    def _lookup_range(self, fn: IRFunction, op: IROperand, bits: int) -> IntervalRange:
        ret = IntervalRange.empty(bits)

        sid = self.namer.value_id(fn, op)
        if sid is not None:
            if self.taint.is_taint_source(sid):
                return IntervalRange.full(bits)
            stored = self.table.get(sid)
            if stored is not None:
                ret = stored.zext_or_trunc(bits)

        inst = self.analyses_caches[fn].request_analysis(DFGAnalysis).get_producing_instruction(op)
        if inst is not None and inst.opcode == "call":
            for callee in self.resolver.callees_of(inst):
                ret_id = self.namer.ret_id(callee)
                if self.taint.is_taint_source(ret_id):
                    return IntervalRange.full(bits)
                stored = self.table.get(ret_id)
                if stored is not None:
                    ret = ret.union(stored.zext_or_trunc(bits))

        return ret

    def get_local_range(self, fn: IRFunction, label: str, op: IROperand) -> Optional[IntervalRange]:
        """
        The fact about `op` at the end of the last sweep of block `label`.
        """
        bb = fn.get_basic_block(label)
        return self.local_maps[fn][bb].get(op)

    def _collect_initializers(self) -> None:
        for glob in self.ctx.get_globals():
            # compiler-generated globals (string literals and the like)
            if glob.name.startswith("."):
                continue
            if glob.initializer is None:
                continue
            self._visit_initializer(self.namer.var_id(glob), glob.type, glob.initializer)

    def _visit_initializer(self, sid: Optional[str], typ: IRType, const: IRConstant) -> None:
        if isinstance(typ, IntType):
            if isinstance(const, ConstInt):
                value = wrap(const.value, typ.bits)
            elif isinstance(const, ConstZero):
                value = 0
            else:
                return
            if sid is not None:
                self.table.union_range(sid, IntervalRange.constant(value, typ.bits))
            return

        if isinstance(typ, StructType):
            if typ.fields is None:
                return
            if isinstance(const, ConstZero):
                elements: tuple[IRConstant, ...] = (const,) * len(typ.fields)
            elif isinstance(const, ConstStruct):
                elements = const.elements
            else:
                return
            for i, (field_type, element) in enumerate(zip(typ.fields, elements)):
                self._visit_initializer(self.namer.struct_id(typ, i), field_type, element)
            return

        if isinstance(typ, ArrayType):
            # all elements share the id of the array
            if isinstance(const, ConstZero):
                self._visit_initializer(sid, typ.element, const)
            elif isinstance(const, ConstArray):
                for element in const.elements:
                    self._visit_initializer(sid, typ.element, element)
