from typing import Any, NamedTuple, Optional

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from intrange.exceptions import IntRangeException, IRParseError
from intrange.ir.basicblock import (
    IRBasicBlock,
    IRInstruction,
    IRLabel,
    IRLiteral,
    IROperand,
    IRVariable,
)
from intrange.ir.constants import ConstArray, ConstInt, ConstStruct, ConstSymbol, ConstZero
from intrange.ir.context import IRContext, IRGlobal
from intrange.ir.function import IRFunction
from intrange.ir.types import (
    I1,
    PTR,
    VOID,
    ArrayType,
    IntType,
    IRType,
    StructType,
)
from intrange.utils import wrap

IR_GRAMMAR = """
    %import common.WS

    COMMENT: ";" /[^\\n]*/

    start: _item*
    _item: struct_def | global_def | declare_def | function_def

    struct_def: "struct" STRUCT_NAME "=" "{" _type_list? "}"
    global_def: "global" GLOBAL_NAME ":" type ("=" constant)?
    declare_def: "declare" "function" GLOBAL_NAME "(" _param_list? ")" ret_decl?
    function_def: "function" GLOBAL_NAME "(" _param_list? ")" ret_decl? "{" _body_item* "}"

    _param_list: param ("," param)*
    param: type VAR_IDENT?
         | ELLIPSIS -> vararg
    ret_decl: "->" (type | VOID)

    type: INT_TYPE -> int_type
        | "ptr" -> ptr_type
        | STRUCT_NAME -> named_struct_type
        | "{" _type_list? "}" -> literal_struct_type
        | "[" CONST "x" type "]" -> array_type
    _type_list: type ("," type)*

    constant: CONST -> const_int
            | GLOBAL_NAME -> const_symbol
            | "zeroinitializer" -> const_zero
            | "{" _const_list? "}" -> const_struct
            | "[" _const_list? "]" -> const_array
    _const_list: constant ("," constant)*

    _body_item: label_decl | statement
    label_decl: IDENT ":"

    statement: assignment | store | call_stmt | jmp | jnz | switch | ret | unreachable
    assignment: VAR_IDENT "=" _value
    _value: binop | icmp | cast | select | phi | load | alloca | field | elem | call

    binop: BINOP type operand "," operand
    icmp: ICMP type operand "," operand
    cast: CAST type operand "to" type
    select: "select" type operand "," operand "," operand
    phi: "phi" type phi_pair ("," phi_pair)*
    phi_pair: label_ref "," operand
    load: "load" type operand
    alloca: "alloca" type
    field: "field" type "," operand "," CONST
    elem: "elem" type "," operand "," type operand
    store: "store" type operand "," operand
    call_stmt: call
    call: "call" (type | VOID) callee "(" _call_args? ")"
    _call_args: call_arg ("," call_arg)*
    call_arg: type operand
    callee: GLOBAL_NAME | VAR_IDENT

    jmp: "jmp" label_ref
    jnz: "jnz" operand "," label_ref "," label_ref
    switch: "switch" type operand "," label_ref switch_case*
    switch_case: "," CONST "," label_ref
    ret: "ret" type operand
       | "ret" VOID -> ret_void
    unreachable: "unreachable"

    label_ref: GLOBAL_NAME
    operand: VAR_IDENT -> var_operand
           | CONST -> const_operand
           | GLOBAL_NAME -> symbol_operand

    BINOP: "add" | "sub" | "mul" | "udiv" | "sdiv" | "urem" | "srem"
         | "shl" | "lshr" | "ashr" | "and" | "or" | "xor"
    ICMP: "eq" | "ne" | "ult" | "ule" | "ugt" | "uge" | "slt" | "sle" | "sgt" | "sge"
    CAST: "trunc" | "zext" | "sext" | "bitcast" | "ptrtoint" | "inttoptr"

    INT_TYPE.2: /i[0-9]+/
    VOID: "void"
    ELLIPSIS: "..."
    STRUCT_NAME: /%[A-Za-z_][A-Za-z0-9_.$]*/
    VAR_IDENT: /%[A-Za-z0-9_.$:]+/
    GLOBAL_NAME: /@[A-Za-z0-9_.$]+/
    IDENT: /[A-Za-z_][A-Za-z0-9_.$]*/
    CONST: /-?0x[0-9a-fA-F]+|-?[0-9]+/

    %ignore WS
    %ignore COMMENT
    """

IR_PARSER = Lark(IR_GRAMMAR, parser="lalr", propagate_positions=True)


class _Operand(NamedTuple):
    # operands are typed by the instruction that uses them, so the
    # operand rules only record what was written
    kind: str  # "var", "const" or "symbol"
    value: Any


class _Value(NamedTuple):
    inst: IRInstruction
    result_type: Optional[IRType]


class _LabelDecl:
    """Represents a block declaration in the parse tree."""

    def __init__(self, label: str) -> None:
        self.label = label


class _Param(NamedTuple):
    type: IRType
    name: Optional[str]


class _VarArg:
    pass


class _FunctionDef(NamedTuple):
    name: str
    params: list
    return_type: IRType
    items: list
    is_declaration: bool


class _StructDef(NamedTuple):
    struct: StructType


def _make_operand(op: _Operand, typ: IRType) -> IROperand:
    if op.kind == "var":
        return IRVariable(op.value, typ)
    if op.kind == "symbol":
        return IRLabel(op.value, True)

    assert op.kind == "const", op
    if not isinstance(typ, IntType):
        raise IRParseError(f"integer literal {op.value} used as a value of type {typ!r}")
    return IRLiteral(wrap(op.value, typ.bits), typ)


class IRTransformer(Transformer):
    def __init__(self) -> None:
        super().__init__()
        # named structs can be referenced before their body is seen
        self._struct_types: dict[str, StructType] = {}

    def _get_struct(self, name: str) -> StructType:
        name = name.removeprefix("%")
        if name not in self._struct_types:
            self._struct_types[name] = StructType(name)
        return self._struct_types[name]

    def start(self, children) -> IRContext:
        ctx = IRContext()
        funcs: list[_FunctionDef] = []

        for struct in self._struct_types.values():
            ctx.add_struct_type(struct)

        for child in children:
            if isinstance(child, IRGlobal):
                if child.name in ctx.globals:
                    raise IRParseError(f"duplicate global @{child.name}")
                ctx.add_global(child)
            elif isinstance(child, _FunctionDef):
                funcs.append(child)
            else:
                assert isinstance(child, _StructDef), child

        for fn_def in funcs:
            if ctx.has_function(fn_def.name):
                raise IRParseError(f"duplicate function @{fn_def.name}")
            params, is_vararg = self._build_params(fn_def.params)
            fn = ctx.create_function(fn_def.name, params, fn_def.return_type, is_vararg)
            if not fn_def.is_declaration:
                self._build_blocks(fn, fn_def.items)

        return ctx

    def _build_params(self, items) -> tuple[list[IRVariable], bool]:
        params = []
        is_vararg = False
        for i, item in enumerate(items):
            if isinstance(item, _VarArg):
                if i != len(items) - 1:
                    raise IRParseError("`...` must be the last parameter")
                is_vararg = True
                continue
            name = item.name if item.name is not None else f"%{i}"
            params.append(IRVariable(name, item.type))
        return params, is_vararg

    def _build_blocks(self, fn: IRFunction, items: list) -> None:
        # the grammar parses labels and statements as a flat sequence;
        # each label starts a new block that contains all instructions
        # until the next label or end of function.
        bb: Optional[IRBasicBlock] = None
        for item in items:
            if isinstance(item, _LabelDecl):
                if fn.has_basic_block(item.label):
                    raise IRParseError(f"duplicate label {item.label} in @{fn.name}")
                bb = IRBasicBlock(IRLabel(item.label), fn)
                fn.append_basic_block(bb)
                continue

            assert isinstance(item, IRInstruction), item
            if bb is None:
                raise IRParseError(f"instruction found before any label declaration in @{fn.name}")
            # unterminated and misplaced terminators are reported by check_ir
            item.parent = bb
            bb.instructions.append(item)

    def struct_def(self, children) -> _StructDef:
        name, *fields = children
        struct = self._get_struct(name)
        if struct.fields is not None:
            raise IRParseError(f"duplicate struct type {name}")
        struct.fields = fields
        return _StructDef(struct)

    def global_def(self, children) -> IRGlobal:
        name, typ, *init = children
        return IRGlobal(name, typ, init[0] if init else None)

    def declare_def(self, children) -> _FunctionDef:
        name, *rest = children
        params = [c for c in rest if isinstance(c, (_Param, _VarArg))]
        ret = [c for c in rest if isinstance(c, IRType)]
        return _FunctionDef(name, params, ret[0] if ret else VOID, [], True)

    def function_def(self, children) -> _FunctionDef:
        name, *rest = children
        params = [c for c in rest if isinstance(c, (_Param, _VarArg))]
        ret = [c for c in rest if isinstance(c, IRType)]
        items = [c for c in rest if isinstance(c, (_LabelDecl, IRInstruction))]
        return _FunctionDef(name, params, ret[0] if ret else VOID, items, False)

    def param(self, children) -> _Param:
        typ, *name = children
        return _Param(typ, str(name[0]) if name else None)

    def vararg(self, children) -> _VarArg:
        return _VarArg()

    def ret_decl(self, children) -> IRType:
        return children[0]

    def int_type(self, children) -> IntType:
        return IntType(int(children[0][1:]))

    def ptr_type(self, children) -> IRType:
        return PTR

    def named_struct_type(self, children) -> StructType:
        return self._get_struct(str(children[0]))

    def literal_struct_type(self, children) -> StructType:
        return StructType(None, children)

    def array_type(self, children) -> ArrayType:
        count, element = children
        return ArrayType(count, element)

    def const_int(self, children) -> ConstInt:
        return ConstInt(children[0])

    def const_symbol(self, children) -> ConstSymbol:
        return ConstSymbol(children[0])

    def const_zero(self, children) -> ConstZero:
        return ConstZero()

    def const_struct(self, children) -> ConstStruct:
        return ConstStruct(tuple(children))

    def const_array(self, children) -> ConstArray:
        return ConstArray(tuple(children))

    def label_decl(self, children) -> _LabelDecl:
        return _LabelDecl(str(children[0]))

    @v_args(meta=True)
    def statement(self, meta, children) -> IRInstruction:
        inst = children[0]
        inst.lineno = meta.line
        return inst

    def assignment(self, children) -> IRInstruction:
        name, value = children
        if value.result_type is None or value.result_type == VOID:
            raise IRParseError(f"`{value.inst.opcode}` does not produce a value for {name}")
        value.inst.output = IRVariable(str(name), value.result_type)
        return value.inst

    def binop(self, children) -> _Value:
        opcode, typ, a, b = children
        inst = IRInstruction(str(opcode), [_make_operand(a, typ), _make_operand(b, typ)], type=typ)
        return _Value(inst, typ)

    def icmp(self, children) -> _Value:
        opcode, typ, a, b = children
        inst = IRInstruction(str(opcode), [_make_operand(a, typ), _make_operand(b, typ)], type=typ)
        return _Value(inst, I1)

    def cast(self, children) -> _Value:
        opcode, src_type, value, dst_type = children
        inst = IRInstruction(str(opcode), [_make_operand(value, src_type)], type=src_type)
        return _Value(inst, dst_type)

    def select(self, children) -> _Value:
        typ, cond, a, b = children
        ops = [_make_operand(cond, I1), _make_operand(a, typ), _make_operand(b, typ)]
        return _Value(IRInstruction("select", ops, type=typ), typ)

    def phi(self, children) -> _Value:
        typ, *pairs = children
        ops: list[IROperand] = []
        for label, value in pairs:
            ops.append(label)
            ops.append(_make_operand(value, typ))
        return _Value(IRInstruction("phi", ops, type=typ), typ)

    def phi_pair(self, children) -> tuple:
        label, value = children
        return label, value

    def load(self, children) -> _Value:
        typ, ptr = children
        return _Value(IRInstruction("load", [_make_operand(ptr, PTR)], type=typ), typ)

    def alloca(self, children) -> _Value:
        return _Value(IRInstruction("alloca", [], type=children[0]), PTR)

    def field(self, children) -> _Value:
        typ, ptr, index = children
        if not isinstance(typ, StructType):
            raise IRParseError(f"`field` expects a struct type, got {typ!r}")
        ops = [_make_operand(ptr, PTR), IRLiteral(index, IntType(32))]
        return _Value(IRInstruction("field", ops, type=typ), PTR)

    def elem(self, children) -> _Value:
        typ, ptr, index_type, index = children
        ops = [_make_operand(ptr, PTR), _make_operand(index, index_type)]
        return _Value(IRInstruction("elem", ops, type=typ), PTR)

    def store(self, children) -> IRInstruction:
        typ, value, ptr = children
        ops = [_make_operand(value, typ), _make_operand(ptr, PTR)]
        return IRInstruction("store", ops, type=typ)

    def call_stmt(self, children) -> IRInstruction:
        return children[0].inst

    def call(self, children) -> _Value:
        ret_type, callee, *args = children
        ops = [callee] + [_make_operand(value, typ) for typ, value in args]
        return _Value(IRInstruction("call", ops, type=ret_type), ret_type)

    def call_arg(self, children) -> tuple:
        typ, value = children
        return typ, value

    def callee(self, children) -> IROperand:
        name = str(children[0])
        if name.startswith("%"):
            # indirect call through a function pointer
            return IRVariable(name, PTR)
        return IRLabel(name, True)

    def jmp(self, children) -> IRInstruction:
        return IRInstruction("jmp", children)

    def jnz(self, children) -> IRInstruction:
        cond, true_label, false_label = children
        return IRInstruction("jnz", [_make_operand(cond, I1), true_label, false_label])

    def switch(self, children) -> IRInstruction:
        typ, cond, default, *cases = children
        ops: list[IROperand] = [_make_operand(cond, typ), default]
        for value, label in cases:
            ops.append(_make_operand(_Operand("const", value), typ))
            ops.append(label)
        return IRInstruction("switch", ops, type=typ)

    def switch_case(self, children) -> tuple:
        value, label = children
        return value, label

    def ret(self, children) -> IRInstruction:
        typ, value = children
        return IRInstruction("ret", [_make_operand(value, typ)], type=typ)

    def ret_void(self, children) -> IRInstruction:
        return IRInstruction("ret", [], type=VOID)

    def unreachable(self, children) -> IRInstruction:
        return IRInstruction("unreachable", [])

    def label_ref(self, children) -> IRLabel:
        return IRLabel(children[0])

    def var_operand(self, children) -> _Operand:
        return _Operand("var", str(children[0]))

    def const_operand(self, children) -> _Operand:
        return _Operand("const", children[0])

    def symbol_operand(self, children) -> _Operand:
        return _Operand("symbol", children[0])

    def CONST(self, val) -> int:
        s = str(val)
        sign = -1 if s.startswith("-") else 1
        s = s.removeprefix("-")
        if s.startswith("0x"):
            return sign * int(s, 16)
        return sign * int(s)

    def GLOBAL_NAME(self, val) -> str:
        return val.value[1:]

    def VOID(self, val) -> IRType:
        return VOID


def parse_ir(source: str) -> IRContext:
    try:
        tree = IR_PARSER.parse(source)
    except UnexpectedInput as e:
        raise IRParseError(f"unexpected input: {e}", (e.line, e.column)) from e

    try:
        ctx = IRTransformer().transform(tree)
    except VisitError as e:
        if isinstance(e.orig_exc, IntRangeException):
            raise e.orig_exc from None
        raise

    assert isinstance(ctx, IRContext)  # help mypy
    return ctx
