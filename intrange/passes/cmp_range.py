from dataclasses import dataclass, field
from typing import Optional

from intrange.analysis import (
    CalleeResolver,
    FCGAnalysis,
    IRAnalysesCache,
    SymbolicBoundOracle,
)
from intrange.analysis.scev import SymAddRec, SymConstant
from intrange.ir.basicblock import IRInstruction, invert_comparison_opcode
from intrange.ir.context import IRContext
from intrange.ir.function import IRFunction
from intrange.passes.base_pass import IRGlobalPass
from intrange.utils import OrderedSet

ALWAYS_TRUE = "comparison always true"
ALWAYS_FALSE = "comparison always false"


def format_location(inst: IRInstruction) -> str:
    bb = inst.parent
    ret = f"@{bb.parent.name}:{bb.label}"
    if inst.lineno is not None:
        ret += f":{inst.lineno}"
    return ret


@dataclass
class ComparisonDiagnostic:
    verdict: str
    lhs: str
    rhs: str
    location: str
    # the comparison, then one call site per caller up the call graph
    backtrace: list[str]
    inst: Optional[IRInstruction] = field(default=None, repr=False, compare=False)

    def __str__(self) -> str:
        lines = ["---", f"bug: {self.verdict}", f"lhs: {self.lhs}", f"rhs: {self.rhs}", "stack:"]
        lines.extend(f"  - {loc}" for loc in self.backtrace)
        return "\n".join(lines)


class CmpRangePass(IRGlobalPass):
    """
    Report integer comparisons whose outcome is decided by the bounds of
    their operands alone. Loop induction variables are not checked, since
    their symbolic range says nothing about a single iteration.
    """

    oracle: SymbolicBoundOracle
    resolver: Optional[CalleeResolver]
    diagnostics: list[ComparisonDiagnostic]

    def __init__(
        self,
        analyses_caches: dict[IRFunction, IRAnalysesCache],
        ctx: IRContext,
        oracle: Optional[SymbolicBoundOracle] = None,
        resolver: Optional[CalleeResolver] = None,
    ):
        super().__init__(analyses_caches, ctx)
        self.oracle = oracle or SymbolicBoundOracle(ctx, analyses_caches)
        self.resolver = resolver
        self.diagnostics = []

    def run_pass(self) -> list[ComparisonDiagnostic]:
        self.diagnostics = []
        functions = list(self.ctx.get_functions())
        if len(functions) == 0:
            return self.diagnostics

        self.fcg = self.analyses_caches[functions[0]].request_analysis(FCGAnalysis, self.resolver)

        for fn in functions:
            for bb in fn.get_basic_blocks():
                for inst in bb.instructions:
                    if inst.is_comparator:
                        self._check_comparison(fn, inst)

        return self.diagnostics

    def _check_comparison(self, fn: IRFunction, inst: IRInstruction) -> None:
        a, b = inst.operands
        lhs = self.oracle.get_expr(fn, a)
        rhs = self.oracle.get_expr(fn, b)
        if lhs is None or rhs is None:
            return
        if isinstance(lhs, SymConstant) and isinstance(rhs, SymConstant):
            return
        if isinstance(lhs, SymAddRec) or isinstance(rhs, SymAddRec):
            return

        if self.oracle.is_known_predicate(inst.opcode, lhs, rhs):
            verdict = ALWAYS_TRUE
        elif self.oracle.is_known_predicate(invert_comparison_opcode(inst.opcode), lhs, rhs):
            verdict = ALWAYS_FALSE
        else:
            return

        location = format_location(inst)
        self.diagnostics.append(
            ComparisonDiagnostic(
                verdict, str(lhs), str(rhs), location, self._backtrace(inst), inst
            )
        )

    def _backtrace(self, inst: IRInstruction) -> list[str]:
        ret = [format_location(inst)]
        fn = inst.parent.parent
        seen: OrderedSet[IRFunction] = OrderedSet([fn])
        while True:
            call_sites = self.fcg.get_call_sites(fn)
            if len(call_sites) == 0:
                break
            site = call_sites.first()
            ret.append(format_location(site))
            fn = site.parent.parent
            if fn in seen:
                break
            seen.add(fn)
        return ret
