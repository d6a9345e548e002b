from intrange.ir.basicblock import IRInstruction, IRLabel
from intrange.ir.constants import ConstArray, ConstStruct, ConstSymbol, IRConstant
from intrange.ir.context import IRContext
from intrange.ir.function import IRFunction
from intrange.ir.types import VOID
from intrange.utils import OrderedSet


class CalleeResolver:
    """
    Resolve the possible targets of call instructions. A direct call
    resolves to the named function; an indirect call resolves to every
    address-taken function whose signature matches the call site, plus any
    targets registered for that call site.
    """

    ctx: IRContext
    address_taken: OrderedSet[IRFunction]
    _registered: dict[IRInstruction, OrderedSet[IRFunction]]

    def __init__(self, ctx: IRContext):
        self.ctx = ctx
        self.address_taken = OrderedSet()
        self._registered = {}
        self._cache: dict[IRInstruction, OrderedSet[IRFunction]] = {}
        self._find_address_taken()

    def _find_address_taken(self) -> None:
        for glob in self.ctx.get_globals():
            if glob.initializer is not None:
                self._visit_constant(glob.initializer)

        for bb in self.ctx.get_basic_blocks():
            for inst in bb.instructions:
                operands = inst.operands
                if inst.opcode == "call":
                    # the callee of a direct call does not escape
                    operands = inst.call_args
                for op in operands:
                    if isinstance(op, IRLabel) and op.is_symbol and self.ctx.has_function(op):
                        self.address_taken.add(self.ctx.get_function(op))

    def _visit_constant(self, const: IRConstant) -> None:
        if isinstance(const, ConstSymbol):
            if self.ctx.has_function(const.name):
                self.address_taken.add(self.ctx.get_function(const.name))
        elif isinstance(const, (ConstStruct, ConstArray)):
            for element in const.elements:
                self._visit_constant(element)

    def register_target(self, inst: IRInstruction, fn: IRFunction) -> None:
        assert inst.opcode == "call", inst
        self._registered.setdefault(inst, OrderedSet()).add(fn)
        self._cache.pop(inst, None)

    def callees_of(self, inst: IRInstruction) -> OrderedSet[IRFunction]:
        assert inst.opcode == "call", inst
        if inst not in self._cache:
            self._cache[inst] = self._resolve(inst)
        return self._cache[inst]

    def _resolve(self, inst: IRInstruction) -> OrderedSet[IRFunction]:
        ret: OrderedSet[IRFunction] = OrderedSet()
        callee = inst.callee
        if isinstance(callee, IRLabel):
            if self.ctx.has_function(callee):
                ret.add(self.ctx.get_function(callee))
            return ret

        for fn in self.address_taken:
            if _signature_matches(fn, inst):
                ret.add(fn)
        ret.update(self._registered.get(inst, OrderedSet()))
        return ret


def _signature_matches(fn: IRFunction, inst: IRInstruction) -> bool:
    ret_type = inst.type if inst.type is not None else VOID
    if fn.return_type != ret_type:
        return False

    args = inst.call_args
    if len(args) < len(fn.params):
        return False
    if len(args) > len(fn.params) and not fn.is_vararg:
        return False

    return all(param.type == arg.type for param, arg in zip(fn.params, args))
