import pytest

from intrange.exceptions import IRParseError
from intrange.ir import IRLabel, IRLiteral, IRVariable, parse_ir
from intrange.ir.constants import ConstArray, ConstInt, ConstStruct, ConstSymbol, ConstZero
from intrange.ir.types import PTR, VOID, ArrayType, IntType, StructType

I8 = IntType(8)
I32 = IntType(32)


def test_parse_top_level():
    source = """
    ; a small program
    struct %struct.point = { i32, i8 }
    global @count: i32 = 5
    global @origin: %struct.point = { 1, 2 }
    global @table: [2 x ptr] = [@main, @main]
    global @zeros: [4 x i16] = zeroinitializer
    global @pair: { i8, i8 } = { 1, -1 }
    declare function @read(ptr, ...) -> i32

    function @main(i32 %x, ptr %p) -> i32 {
    entry:
        ret i32 %x
    }
    """
    ctx = parse_ir(source)

    point = ctx.struct_types["struct.point"]
    assert point.name == "struct.point"
    assert point.fields == [I32, I8]
    assert not point.is_anonymous

    count = ctx.get_global("count")
    assert count.type == I32
    assert count.initializer == ConstInt(5)

    origin = ctx.get_global("@origin")
    assert origin.type is point
    assert origin.initializer == ConstStruct((ConstInt(1), ConstInt(2)))

    table = ctx.get_global("table")
    assert table.type == ArrayType(2, PTR)
    assert table.initializer == ConstArray((ConstSymbol("main"), ConstSymbol("main")))

    assert ctx.get_global("zeros").initializer == ConstZero()

    pair = ctx.get_global("pair")
    assert isinstance(pair.type, StructType)
    assert pair.type.is_anonymous
    assert pair.initializer == ConstStruct((ConstInt(1), ConstInt(-1)))

    read = ctx.get_function("read")
    assert read.is_declaration
    assert read.is_vararg
    assert read.param_types == [PTR]
    assert read.return_type == I32

    main = ctx.get_function("main")
    assert not main.is_declaration
    assert main.params == [IRVariable("%x"), IRVariable("%p")]
    assert main.param_types == [I32, PTR]
    assert main.entry.label == IRLabel("entry")


def test_parse_instructions():
    source = """
    function @f(i8 %x, ptr %fp) -> void {
    entry:
        %a = add i8 %x, 200
        %c = ult i8 %a, 10
        %w = zext i8 %a to i32
        %s = select i8 %c, %a, -1
        %r = call i32 %fp(i32 %w)
        jnz %c, @left, @right
    left:
        switch i8 %x, @right, 1, @right, 2, @left
    right:
        ret void
    }
    """
    ctx = parse_ir(source)
    fn = ctx.get_function("f")
    entry = fn.get_basic_block("entry")
    add, cmp, zext, select, call, jnz = entry.instructions

    assert add.opcode == "add"
    assert add.type == I8
    assert add.output == IRVariable("%a")
    assert add.output.type == I8
    assert add.operands == [IRVariable("%x"), IRLiteral(200, I8)]

    assert cmp.is_comparator
    assert cmp.output.type == IntType(1)

    assert zext.type == I8
    assert zext.output.type == I32

    # literals are reduced to the width of their type
    assert select.operands[2] == IRLiteral(255, I8)

    assert isinstance(call.callee, IRVariable)
    assert call.callee.type == PTR
    assert call.call_args == [IRVariable("%w")]
    assert call.output.type == I32

    assert jnz.is_bb_terminator
    assert [bb.label.value for bb in entry.out_bbs] == ["left", "right"]

    switch = fn.get_basic_block("left").instructions[0]
    cases = [(lit.value, label.value) for lit, label in switch.switch_cases]
    assert cases == [(1, "right"), (2, "left")]

    ret = fn.get_basic_block("right").instructions[0]
    assert ret.operands == []
    assert ret.type == VOID


def test_memory_instructions():
    source = """
    struct %struct.s = { i32, [4 x i8] }
    global @g: i32 = 0

    function @f() -> void {
    entry:
        %p = alloca %struct.s
        %q = field %struct.s, %p, 1
        %e = elem i8, %q, i64 3
        %v = load i8 %e
        store i32 7, @g
        ret void
    }
    """
    fn = parse_ir(source).get_function("f")
    alloca, field, elem, load, store, _ = fn.entry.instructions

    assert alloca.output.type == PTR
    assert field.type.name == "struct.s"
    assert field.operands[1] == IRLiteral(1, I32)
    assert elem.operands[1] == IRLiteral(3, IntType(64))
    assert load.output.type == I8
    assert store.operands == [IRLiteral(7, I32), IRLabel("g", True)]
    assert store.output is None


def test_phi():
    source = """
    function @f(i32 %n) -> i32 {
    entry:
        jmp @head
    head:
        %i = phi i32 @entry, 0, @head, %next
        %next = add i32 %i, 1
        %c = ult i32 %next, %n
        jnz %c, @head, @done
    done:
        ret i32 %i
    }
    """
    fn = parse_ir(source).get_function("f")
    phi = fn.get_basic_block("head").instructions[0]
    pairs = [(label.value, op) for label, op in phi.phi_operands]
    assert pairs == [("entry", IRLiteral(0, I32)), ("head", IRVariable("%next"))]


def test_line_numbers():
    source = """function @f() -> i32 {
entry:
    %a = add i32 1, 2

    ret i32 %a
}
"""
    fn = parse_ir(source).get_function("f")
    add, ret = fn.entry.instructions
    assert add.lineno == 3
    assert ret.lineno == 5


def test_literal_first_operands():
    source = """
    global @g: i32 = 0
    declare function @t(i32) -> i32

    function @f(i8 %x) -> void {
    entry:
        store i32 5, @g
        %r = call i32 @t(i32 42)
        %k = eq i8 1, 1
        %c = ult i8 10, %x
        %p = alloca i32
        ret void
    }
    """
    fn = parse_ir(source).get_function("f")
    store, call, eq, ult, _, _ = fn.entry.instructions

    assert store.operands == [IRLiteral(5, I32), IRLabel("g", True)]
    assert call.callee == IRLabel("t", True)
    assert call.call_args == [IRLiteral(42, I32)]
    assert eq.operands == [IRLiteral(1, I8), IRLiteral(1, I8)]
    assert ult.operands == [IRLiteral(10, I8), IRVariable("%x")]


def test_hex_and_negative_constants():
    source = """
    global @a: i16 = 0xff
    global @b: i16 = -3
    """
    ctx = parse_ir(source)
    assert ctx.get_global("a").initializer == ConstInt(255)
    assert ctx.get_global("b").initializer == ConstInt(-3)


@pytest.mark.parametrize(
    "source",
    [
        "function @f( {",
        "global @g i32",
        """
        function @f() -> void {
        entry:
            %a = frob i32 1, 2
            ret void
        }
        """,
    ],
)
def test_syntax_errors(source):
    with pytest.raises(IRParseError):
        parse_ir(source)


def test_syntax_error_location():
    source = """function @f() -> void {
entry:
    ret i32 %a,
}
"""
    with pytest.raises(IRParseError) as e:
        parse_ir(source)
    assert e.value.lineno == 3


@pytest.mark.parametrize(
    "source,message",
    [
        ("global @g: i8 = 1\nglobal @g: i8 = 2", "duplicate global @g"),
        (
            "function @f() -> void {\nentry:\n ret void\n}\n"
            "function @f() -> void {\nentry:\n ret void\n}",
            "duplicate function @f",
        ),
        ("function @f() -> void {\nentry:\n jmp @entry\nentry:\n ret void\n}", "duplicate label"),
        ("function @f() -> void {\n ret void\n}", "before any label"),
        ("struct %s = { i8 }\nstruct %s = { i8 }", "duplicate struct"),
        ("function @f() -> void {\nentry:\n %a = load ptr 1\n ret void\n}", "integer literal"),
        ("function @f() -> void {\nentry:\n %a = call void @f()\n ret void\n}", "value"),
        ("function @f(..., i8 %a) -> void {\nentry:\n ret void\n}", "last parameter"),
    ],
)
def test_semantic_parse_errors(source, message):
    with pytest.raises(IRParseError) as e:
        parse_ir(source)
    assert message in str(e.value)


def test_round_trip_repr():
    source = """
    struct %struct.s = { i32, i8 }
    global @g: i32 = 5
    declare function @ext(i32) -> i32

    function @f(i32 %x) -> i32 {
    entry:
        %a = add i32 %x, 1
        %b = call i32 @ext(i32 %a)
        %c = ult i32 %b, 10
        jnz %c, @yes, @no
    yes:
        ret i32 %b
    no:
        ret i32 0
    }
    """
    ctx = parse_ir(source)
    again = parse_ir(repr(ctx))
    assert repr(again) == repr(ctx)
