from typing import Optional

from intrange.analysis.analysis import IRAnalysesCache
from intrange.analysis.dfg import DFGAnalysis
from intrange.ir.basicblock import IRInstruction, IRLabel, IROperand, IRVariable
from intrange.ir.context import IRContext, IRGlobal
from intrange.ir.function import IRFunction
from intrange.ir.types import StructType


class SymbolicNamer:
    """
    Stable string ids for the storage locations of a program:

        var.<global>                  a global variable
        <struct name>.<index>         a field of a named struct type
        arg.<function>.<index>        a formal argument
        ret.<function>                a return slot
        callret.<caller>.<result>     the result of one call site

    The same location gets the same id in every sweep, so facts about it
    can be accumulated across functions.
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

    def _dfg(self, fn: IRFunction) -> DFGAnalysis:
        return self.analyses_caches[fn].request_analysis(DFGAnalysis)

    def var_id(self, glob: IRGlobal | str) -> str:
        name = glob.name if isinstance(glob, IRGlobal) else glob
        return f"var.{name}"

    def struct_id(self, struct: StructType, index: int) -> Optional[str]:
        if struct.is_anonymous:
            return None
        return f"{struct.name}.{index}"

    def arg_id(self, fn: IRFunction, index: int) -> str:
        return f"arg.{fn.name}.{index}"

    def ret_id(self, fn: IRFunction) -> str:
        return f"ret.{fn.name}"

    def call_ret_id(self, inst: IRInstruction) -> Optional[str]:
        assert inst.opcode == "call", inst
        if inst.output is None:
            return None
        caller = inst.parent.parent
        return f"callret.{caller.name}.{inst.output.plain_name}"

    def memory_id(self, fn: IRFunction, ptr: IROperand) -> Optional[str]:
        """
        The id of the location a pointer points to, if it is one of the
        named locations (a global, possibly indexed, or a struct field).
        """
        if isinstance(ptr, IRLabel) and ptr.is_symbol:
            glob = self.ctx.get_global(ptr.value)
            if glob is None:
                return None
            return self.var_id(glob)

        inst = self._dfg(fn).get_producing_instruction(ptr)
        if inst is None:
            return None

        if inst.opcode == "field":
            assert isinstance(inst.type, StructType)
            return self.struct_id(inst.type, inst.operands[1].value)
        if inst.opcode == "elem":
            # every element of an array shares the id of the array
            return self.memory_id(fn, inst.operands[0])
        if inst.opcode == "bitcast":
            return self.memory_id(fn, inst.operands[0])

        return None

    def value_id(self, fn: IRFunction, var: IROperand) -> Optional[str]:
        """
        The id whose facts a variable reads: formal arguments, loaded
        values and call results.
        """
        if not isinstance(var, IRVariable):
            return None

        index = fn.get_param_index(var)
        if index is not None:
            return self.arg_id(fn, index)

        inst = self._dfg(fn).get_producing_instruction(var)
        if inst is None:
            return None
        if inst.opcode == "load":
            return self.memory_id(fn, inst.operands[0])
        if inst.opcode == "call":
            return self.call_ret_id(inst)

        return None
