import pytest

from intrange import analyze_source
from intrange.analysis.interval import IntervalRange
from intrange.ir import IRVariable
from intrange.settings import RangeSettings

SOURCE = """
global @g: i32 = 0

function @f(i8 %x) -> void {
entry:
    %a = and i8 %x, 15
    %c = ult i8 %x, 3
    %z = zext i8 %a to i32
    %s = sext i8 %a to i32
    %n = sub i8 %a, 20
    %sn = sext i8 %n to i16
    %t = trunc i32 %z to i4
    %u = trunc i32 %z to i8
    %sel = select i8 %c, %a, 100
    %q = sdiv i8 %a, 3
    %xr = xor i8 %a, 3
    %ar = ashr i8 %a, 1
    %r = urem i8 %a, 7
    %sr = srem i8 %x, %a
    %p = ptrtoint ptr @g to i64
    %b = bitcast i8 %a to i8
    %sh = shl i8 %a, 2
    %lr = lshr i8 %a, 2
    %o = or i8 %a, 64
    %m = mul i8 %a, 3
    %d = udiv i8 %a, 4
    %cmp = ult i8 %a, %sh
    ret void
}
"""


@pytest.fixture(scope="module")
def ranges():
    rp = analyze_source(SOURCE, RangeSettings(taint_sources=("arg.f.0",)))
    fn = rp.ctx.get_function("f")

    def fn_range(name):
        return rp.get_local_range(fn, "entry", IRVariable(name))

    return fn_range


@pytest.mark.parametrize(
    "var,expected",
    [
        ("%x", IntervalRange.full(8)),
        ("%a", IntervalRange(8, 0, 16)),
        ("%c", IntervalRange.full(1)),
        ("%z", IntervalRange(32, 0, 16)),
        ("%s", IntervalRange(32, 0, 16)),
        # -20 .. -5
        ("%n", IntervalRange(8, 236, 252)),
        ("%sn", IntervalRange(16, 65516, 65532)),
        ("%t", IntervalRange.full(4)),
        ("%u", IntervalRange(8, 0, 16)),
        ("%sel", IntervalRange(8, 0, 101)),
        ("%p", IntervalRange.full(64)),
        ("%b", IntervalRange(8, 0, 16)),
        ("%sh", IntervalRange(8, 0, 61)),
        ("%lr", IntervalRange(8, 0, 4)),
        ("%o", IntervalRange(8, 64, 0)),
        ("%m", IntervalRange(8, 0, 46)),
        ("%d", IntervalRange(8, 0, 4)),
        ("%cmp", IntervalRange.full(1)),
    ],
)
def test_transfer(ranges, var, expected):
    assert ranges(var) == expected


@pytest.mark.parametrize(
    "var,expected",
    [
        # these operators take the range of the left operand
        ("%q", IntervalRange(8, 0, 16)),
        ("%xr", IntervalRange(8, 0, 16)),
        ("%ar", IntervalRange(8, 0, 16)),
        # and these the range of the right operand
        ("%r", IntervalRange(8, 7, 8)),
        ("%sr", IntervalRange(8, 0, 16)),
    ],
)
def test_operand_approximations(ranges, var, expected):
    assert ranges(var) == expected


def test_pointer_results_have_no_range(analyze):
    source = """
    global @g: i32 = 0

    function @f() -> void {
    entry:
        %p = alloca i32
        %q = inttoptr i64 8 to ptr
        %l = load ptr @g
        ret void
    }
    """
    rp = analyze(source)
    fn = rp.ctx.get_function("f")
    for name in ("%p", "%q", "%l"):
        assert rp.get_local_range(fn, "entry", IRVariable(name)) is None


def test_store_records_pointer_fact(analyze):
    source = """
    function @f() -> void {
    entry:
        %p = alloca i32
        store i32 5, %p
        ret void
    }
    """
    rp = analyze(source)
    fn = rp.ctx.get_function("f")
    assert rp.get_local_range(fn, "entry", IRVariable("%p")) == IntervalRange(32, 5, 6)
    # stack slots are not named locations
    assert len(rp.table) == 0
