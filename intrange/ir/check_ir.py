from intrange.analysis.analysis import IRAnalysesCache
from intrange.analysis.var_definition import VarDefinition
from intrange.ir.basicblock import IRBasicBlock, IRInstruction, IRLabel, IRVariable
from intrange.ir.context import IRContext
from intrange.ir.function import IRFunction
from intrange.ir.types import VOID, IRType, StructType


class IRError(Exception):
    message: str


class BasicBlockNotTerminated(IRError):
    message: str = "basic block does not terminate"

    def __init__(self, basicblock):
        self.basicblock = basicblock

    def __str__(self):
        return f"basic block is not terminated:\n{self.basicblock}"


class MisplacedTerminator(IRError):
    message: str = "terminator in the middle of a basic block"

    def __init__(self, inst):
        self.inst = inst

    def __str__(self):
        return f"terminator is not the last instruction:\n  {self.inst}\n\n{self.inst.parent}"


class UnknownLabel(IRError):
    message: str = "jump to a label that is not defined"

    def __init__(self, label, inst):
        self.label = label
        self.inst = inst

    def __str__(self):
        return f"label @{self.label} not defined:\n  {self.inst}"


class UndefinedSymbol(IRError):
    message: str = "reference to an undefined global or function"

    def __init__(self, symbol, inst):
        self.symbol = symbol
        self.inst = inst

    def __str__(self):
        return f"@{self.symbol} is neither a global nor a function:\n  {self.inst}"


class VarNotDefined(IRError):
    message: str = "variable is used before definition"

    def __init__(self, var, inst):
        self.var = var
        self.inst = inst

    def __str__(self):
        bb = self.inst.parent
        return f"var {self.var} not defined:\n  {self.inst}\n\n{bb}"


class VarRedefined(IRError):
    message: str = "variable is assigned more than once"

    def __init__(self, var, inst):
        self.var = var
        self.inst = inst

    def __str__(self):
        return f"var {self.var} redefined:\n  {self.inst}"


class VarTypeMismatch(IRError):
    message: str = "variable is used at a different type than it was defined"

    def __init__(self, var, inst, expected: IRType):
        self.var = var
        self.inst = inst
        self.expected = expected

    def __str__(self):
        used = self.var.type
        return f"var {self.var} has type {self.expected!r}, used as {used!r}:\n  {self.inst}"


class InvalidInstruction(IRError):
    message: str = "malformed instruction"

    def __init__(self, inst, reason: str):
        self.inst = inst
        self.reason = reason

    def __str__(self):
        return f"{self.reason}:\n  {self.inst}"


def _handle_structure(fn: IRFunction, bb: IRBasicBlock) -> list[IRError]:
    errors: list[IRError] = []
    for inst in bb.instructions[:-1]:
        if inst.is_bb_terminator:
            errors.append(MisplacedTerminator(inst))
    for inst in bb.instructions:
        labels = inst.get_label_operands()
        for label in labels:
            if not fn.has_basic_block(label.name):
                errors.append(UnknownLabel(label, inst))
        for op in inst.operands:
            if isinstance(op, IRLabel) and op.is_symbol:
                ctx = fn.ctx
                if ctx.get_global(op.value) is None and not ctx.has_function(op):
                    errors.append(UndefinedSymbol(op, inst))
    return errors


def _handle_var_definition(
    fn: IRFunction, bb: IRBasicBlock, var_def: VarDefinition
) -> list[IRError]:
    errors: list[IRError] = []
    for inst in bb.instructions:
        if inst.opcode == "phi":
            for label, op in inst.phi_operands:
                if not isinstance(op, IRVariable):
                    continue
                defined = var_def.defined_vars_bb[fn.get_basic_block(label.name)]
                if op not in defined:
                    errors.append(VarNotDefined(var=op, inst=inst))
            continue
        defined = var_def.defined_vars[inst]
        for op in inst.operands:
            if isinstance(op, IRVariable):
                if op not in defined:
                    errors.append(VarNotDefined(var=op, inst=inst))
    return errors


def _handle_types(fn: IRFunction) -> list[IRError]:
    errors: list[IRError] = []
    var_types: dict[IRVariable, IRType] = {}
    for param in fn.params:
        var_types[param] = param.type  # type: ignore[assignment]

    for bb in fn.get_basic_blocks():
        for inst in bb.instructions:
            if inst.output is None:
                continue
            if inst.output in var_types:
                errors.append(VarRedefined(inst.output, inst))
                continue
            var_types[inst.output] = inst.output.type  # type: ignore[assignment]

    for bb in fn.get_basic_blocks():
        for inst in bb.instructions:
            for op in inst.get_input_variables():
                expected = var_types.get(op)
                if expected is not None and op.type != expected:
                    errors.append(VarTypeMismatch(op, inst, expected))
            errors.extend(_handle_instruction_types(fn, inst))

    return errors


def _handle_instruction_types(fn: IRFunction, inst: IRInstruction) -> list[IRError]:
    if inst.opcode == "ret":
        ret_type = inst.type if len(inst.operands) > 0 else VOID
        if ret_type != fn.return_type:
            reason = f"returns {ret_type!r} from a function returning {fn.return_type!r}"
            return [InvalidInstruction(inst, reason)]

    if inst.opcode == "field":
        struct = inst.type
        assert isinstance(struct, StructType)
        index = inst.operands[1].value
        if struct.fields is None or not 0 <= index < len(struct.fields):
            return [InvalidInstruction(inst, f"no field {index} in {struct!r}")]

    if inst.opcode == "call" and isinstance(inst.callee, IRLabel):
        ctx = fn.ctx
        if ctx.has_function(inst.callee):
            callee = ctx.get_function(inst.callee)
            n_params = len(callee.params)
            n_args = len(inst.call_args)
            if n_args < n_params or (n_args > n_params and not callee.is_vararg):
                reason = f"@{callee.name} takes {n_params} arguments, got {n_args}"
                return [InvalidInstruction(inst, reason)]

    return []


def find_semantic_errors_fn(fn: IRFunction) -> list[IRError]:
    errors: list[IRError] = []

    # check that all the bbs are terminated
    for bb in fn.get_basic_blocks():
        if not bb.is_terminated:
            errors.append(BasicBlockNotTerminated(basicblock=bb))
        errors.extend(_handle_structure(fn, bb))

    if len(errors) > 0:
        return errors

    ac = IRAnalysesCache(fn)
    var_def: VarDefinition = ac.request_analysis(VarDefinition)
    for bb in fn.get_basic_blocks():
        e = _handle_var_definition(fn, bb, var_def)
        errors.extend(e)

    errors.extend(_handle_types(fn))
    return errors


def find_semantic_errors(context: IRContext) -> list[IRError]:
    errors: list[IRError] = []

    for fn in context.functions.values():
        errors.extend(find_semantic_errors_fn(fn))

    return errors


def check_ir_ctx(context: IRContext):
    errors = find_semantic_errors(context)

    if errors:
        raise ExceptionGroup("IR semantic errors", errors)
