from intrange.analysis import CalleeResolver, FCGAnalysis, IRAnalysesCache
from intrange.ir import parse_ir

SOURCE = """
declare function @register(ptr) -> void
global @table: [2 x ptr] = [@inc, @dec]

function @inc(i32 %x) -> i32 {
entry:
    %y = add i32 %x, 1
    ret i32 %y
}

function @dec(i32 %x) -> i32 {
entry:
    %y = sub i32 %x, 1
    ret i32 %y
}

function @narrow(i8 %x) -> i8 {
entry:
    ret i8 %x
}

function @cb(i32 %x) -> i32 {
entry:
    ret i32 %x
}

function @main(ptr %fp) -> i32 {
entry:
    %a = call i32 %fp(i32 1)
    %b = call i32 @inc(i32 %a)
    %c = call i8 %fp(i8 3)
    call void @register(ptr @cb)
    ret i32 %b
}
"""


def _names(fns):
    return [fn.name.value for fn in fns]


def _calls(ctx):
    main = ctx.get_function("main")
    return [inst for inst in main.entry.instructions if inst.opcode == "call"]


def test_address_taken():
    ctx = parse_ir(SOURCE)
    resolver = CalleeResolver(ctx)
    # direct callees do not escape, initializers and arguments do
    assert _names(resolver.address_taken) == ["inc", "dec", "cb"]


def test_resolve_calls():
    ctx = parse_ir(SOURCE)
    resolver = CalleeResolver(ctx)
    indirect_i32, direct, indirect_i8, register = _calls(ctx)

    assert _names(resolver.callees_of(indirect_i32)) == ["inc", "dec", "cb"]
    assert _names(resolver.callees_of(direct)) == ["inc"]
    assert _names(resolver.callees_of(register)) == ["register"]
    # no address-taken function takes and returns an i8
    assert _names(resolver.callees_of(indirect_i8)) == []


def test_register_target():
    ctx = parse_ir(SOURCE)
    resolver = CalleeResolver(ctx)
    _, _, indirect_i8, _ = _calls(ctx)

    assert len(resolver.callees_of(indirect_i8)) == 0
    resolver.register_target(indirect_i8, ctx.get_function("narrow"))
    assert _names(resolver.callees_of(indirect_i8)) == ["narrow"]


def test_call_graph():
    ctx = parse_ir(SOURCE)
    main = ctx.get_function("main")
    resolver = CalleeResolver(ctx)
    fcg = IRAnalysesCache(main).request_analysis(FCGAnalysis, resolver)

    assert _names(fcg.get_callees(main)) == ["inc", "dec", "cb", "register"]
    assert len(fcg.get_call_sites(ctx.get_function("inc"))) == 2
    assert len(fcg.get_call_sites(ctx.get_function("cb"))) == 1
    assert len(fcg.get_call_sites(main)) == 0
    assert len(fcg.get_callees(ctx.get_function("inc"))) == 0


def test_call_graph_direct_calls_only():
    ctx = parse_ir(SOURCE)
    main = ctx.get_function("main")
    fcg = IRAnalysesCache(main).request_analysis(FCGAnalysis)

    assert _names(fcg.get_callees(main)) == ["inc", "register"]
    assert len(fcg.get_call_sites(ctx.get_function("dec"))) == 0
