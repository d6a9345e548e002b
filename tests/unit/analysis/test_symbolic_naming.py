import pytest

from intrange.analysis import SymbolicNamer
from intrange.ir import IRLiteral, IRVariable, parse_ir
from intrange.ir.types import IntType, StructType

I8 = IntType(8)

SOURCE = """
struct %struct.pair = { i32, i8 }
global @g: i32 = 0
global @arr: [4 x i16] = zeroinitializer
global @p: %struct.pair = zeroinitializer
declare function @ext() -> i32

function @f(i32 %a, i8 %b) -> i32 {
entry:
    %v = load i32 @g
    %q = field %struct.pair, @p, 1
    %w = load i8 %q
    %e = elem i16, @arr, i64 2
    %x = load i16 %e
    %r = call i32 @ext()
    %s = add i32 %r, 1
    %m = alloca i32
    %n = load i32 %m
    ret i32 %s
}
"""


@pytest.fixture
def namer():
    return SymbolicNamer(parse_ir(SOURCE))


@pytest.mark.parametrize(
    "var,expected",
    [
        ("%a", "arg.f.0"),
        ("%b", "arg.f.1"),
        ("%v", "var.g"),
        ("%w", "struct.pair.1"),
        ("%x", "var.arr"),
        ("%r", "callret.f.r"),
        ("%s", None),
        ("%n", None),
    ],
)
def test_value_id(namer, var, expected):
    fn = namer.ctx.get_function("f")
    assert namer.value_id(fn, IRVariable(var)) == expected


def test_literals_have_no_id(namer):
    fn = namer.ctx.get_function("f")
    assert namer.value_id(fn, IRLiteral(3, I8)) is None


def test_location_ids(namer):
    ctx = namer.ctx
    f = ctx.get_function("f")
    ext = ctx.get_function("ext")

    assert namer.var_id(ctx.get_global("g")) == "var.g"
    assert namer.var_id("arr") == "var.arr"
    assert namer.arg_id(f, 1) == "arg.f.1"
    assert namer.ret_id(ext) == "ret.ext"

    call = next(inst for inst in f.entry.instructions if inst.opcode == "call")
    assert namer.call_ret_id(call) == "callret.f.r"


def test_struct_ids(namer):
    pair = namer.ctx.struct_types["struct.pair"]
    assert namer.struct_id(pair, 0) == "struct.pair.0"
    # unnamed structs have no stable name to key their fields on
    assert namer.struct_id(StructType(None, [I8]), 0) is None
    assert namer.struct_id(StructType("struct.anon.3", [I8]), 0) is None


def test_call_without_result():
    source = """
    declare function @sink(i32) -> void
    function @f() -> void {
    entry:
        call void @sink(i32 1)
        ret void
    }
    """
    namer = SymbolicNamer(parse_ir(source))
    call = namer.ctx.get_function("f").entry.instructions[0]
    assert namer.call_ret_id(call) is None
