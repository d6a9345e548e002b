from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from intrange.analysis.analysis import IRAnalysesCache, IRAnalysis
from intrange.ir.basicblock import IRInstruction, IRLabel
from intrange.ir.context import IRContext
from intrange.ir.function import IRFunction
from intrange.utils import OrderedSet

if TYPE_CHECKING:
    from intrange.analysis.callees import CalleeResolver


class FCGAnalysis(IRAnalysis):
    """
    Compute the function call graph for the context. Indirect calls are
    resolved through the given CalleeResolver (direct calls only if none).
    """

    ctx: IRContext
    call_sites: dict[IRFunction, OrderedSet[IRInstruction]]
    callees: dict[IRFunction, OrderedSet[IRFunction]]

    def __init__(self, analyses_cache: IRAnalysesCache, function: IRFunction):
        super().__init__(analyses_cache, function)
        self.ctx = function.ctx
        self.call_sites = dict()
        self.callees = dict()

    def analyze(self, resolver: Optional[CalleeResolver] = None) -> None:
        ctx = self.ctx
        for func in ctx.get_functions():
            self.call_sites[func] = OrderedSet()
            self.callees[func] = OrderedSet()

        for fn in ctx.get_functions():
            self._analyze_function(fn, resolver)

    def get_call_sites(self, fn: IRFunction) -> OrderedSet[IRInstruction]:
        return self.call_sites.get(fn, OrderedSet())

    def get_callees(self, fn: IRFunction) -> OrderedSet[IRFunction]:
        return self.callees[fn]

    def _analyze_function(self, fn: IRFunction, resolver: Optional[CalleeResolver]) -> None:
        for bb in fn.get_basic_blocks():
            for inst in bb.instructions:
                if inst.opcode != "call":
                    continue
                if resolver is not None:
                    targets = resolver.callees_of(inst)
                elif isinstance(inst.callee, IRLabel) and self.ctx.has_function(inst.callee):
                    targets = OrderedSet([self.ctx.get_function(inst.callee.value)])
                else:
                    targets = OrderedSet()
                for callee in targets:
                    self.callees[fn].add(callee)
                    self.call_sites[callee].add(inst)
