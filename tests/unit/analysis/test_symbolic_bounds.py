import pytest

from intrange.analysis import SymbolicBoundOracle
from intrange.analysis.interval import IntervalRange
from intrange.analysis.scev import (
    MAX_EXPR_DEPTH,
    SymAddRec,
    SymBinary,
    SymConstant,
    SymUnknown,
    SymZeroExtend,
)
from intrange.ir import IRVariable, parse_ir
from intrange.ir.types import PTR

SOURCE = """
function @f(i8 %x, i32 %n) -> i32 {
entry:
    %a = and i8 %x, 15
    %b = add i8 %a, 3
    %z = zext i8 %b to i32
    %k = add i8 4, 5
    %u = urem i32 %n, 10
    %t = add i32 7, %u
    jmp @head
head:
    %i = phi i32 @entry, 0, @head, %next
    %next = add i32 %i, 2
    %c = ult i32 %next, %n
    jnz %c, @head, @done
done:
    ret i32 %z
}
"""


@pytest.fixture
def oracle():
    return SymbolicBoundOracle(parse_ir(SOURCE))


def _expr(oracle, name):
    fn = oracle.ctx.get_function("f")
    dfg_var = None
    for bb in fn.get_basic_blocks():
        for inst in bb.instructions:
            if inst.output is not None and inst.output.name == name:
                dfg_var = inst.output
    if dfg_var is None:
        dfg_var = next(p for p in fn.params if p.name == name)
    return oracle.get_expr(fn, dfg_var)


def test_unknown_values(oracle):
    assert _expr(oracle, "%n") == SymUnknown("f.n", 32)
    assert str(_expr(oracle, "%x")) == "%f.x"


def test_binary_expressions(oracle):
    x = SymUnknown("f.x", 8)
    a = _expr(oracle, "%a")
    assert a == SymBinary("and", x, 15, 8)
    assert str(a) == "(%f.x and 15)"
    assert a.unsigned_range() == IntervalRange(8, 0, 16)

    b = _expr(oracle, "%b")
    assert b == SymBinary("add", a, 3, 8)
    assert b.unsigned_range() == IntervalRange(8, 3, 19)

    u = _expr(oracle, "%u")
    assert u.unsigned_range() == IntervalRange(32, 0, 10)

    # the constant is moved to the right of commutative operators
    t = _expr(oracle, "%t")
    assert t == SymBinary("add", u, 7, 32)


def test_constant_folding(oracle):
    assert _expr(oracle, "%k") == SymConstant(9, 8)


def test_zero_extension(oracle):
    z = _expr(oracle, "%z")
    assert isinstance(z, SymZeroExtend)
    assert z.bits == 32
    assert z.unsigned_range() == IntervalRange(32, 3, 19)


def test_induction_variable(oracle):
    i = _expr(oracle, "%i")
    assert i == SymAddRec(SymConstant(0, 32), 2, "head", 32)
    assert str(i) == "{0,+,2}<%head>"
    assert i.unsigned_range().is_full


def test_non_integer_operand(oracle):
    fn = oracle.ctx.get_function("f")
    assert oracle.get_expr(fn, IRVariable("%p", PTR)) is None


def test_depth_limit():
    lines = ["function @f(i32 %x0) -> i32 {", "entry:"]
    n = MAX_EXPR_DEPTH + 4
    for i in range(1, n + 1):
        lines.append(f"    %x{i} = add i32 %x{i - 1}, 1")
    lines.append(f"    ret i32 %x{n}")
    lines.append("}")
    ctx = parse_ir("\n".join(lines))
    oracle = SymbolicBoundOracle(ctx)
    fn = ctx.get_function("f")

    expr = oracle.get_expr(fn, IRVariable(f"%x{n}", fn.params[0].type))
    depth = 0
    while isinstance(expr, SymBinary):
        expr = expr.operand
        depth += 1
    assert depth == MAX_EXPR_DEPTH
    assert isinstance(expr, SymUnknown)
    assert expr.name == f"f.x{n - MAX_EXPR_DEPTH}"


@pytest.mark.parametrize(
    "opcode,lhs,rhs,expected",
    [
        ("ult", SymBinary("and", SymUnknown("x", 8), 15, 8), SymConstant(16, 8), True),
        ("ule", SymBinary("and", SymUnknown("x", 8), 15, 8), SymConstant(15, 8), True),
        ("ugt", SymBinary("and", SymUnknown("x", 8), 15, 8), SymConstant(20, 8), False),
        ("ult", SymUnknown("x", 8), SymConstant(10, 8), False),
        ("ult", SymConstant(3, 8), SymConstant(4, 8), True),
        ("slt", SymConstant(255, 8), SymConstant(0, 8), True),
        ("eq", SymUnknown("x", 8), SymUnknown("x", 8), True),
        ("uge", SymUnknown("x", 8), SymUnknown("x", 8), True),
        ("ne", SymUnknown("x", 8), SymUnknown("x", 8), False),
        ("ult", SymConstant(3, 8), SymConstant(4, 16), False),
    ],
)
def test_known_predicate(oracle, opcode, lhs, rhs, expected):
    assert oracle.is_known_predicate(opcode, lhs, rhs) is expected


def test_known_predicate_negated(oracle):
    # `x & 15 ugt 20` never holds, so its inverse always does
    masked = SymBinary("and", SymUnknown("x", 8), 15, 8)
    assert oracle.is_known_predicate("ule", masked, SymConstant(20, 8))
