from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _version
from typing import Optional

from intrange.analysis import CalleeResolver, IRAnalysesCache
from intrange.ir.check_ir import check_ir_ctx
from intrange.ir.context import IRContext
from intrange.ir.parser import parse_ir
from intrange.passes import CmpRangePass, ComparisonDiagnostic, RangePass
from intrange.settings import RangeSettings

__version__: str
try:
    __version__ = _version(__name__)
except PackageNotFoundError:
    from intrange.version import version

    __version__ = version


def _make_caches(ctx: IRContext) -> dict:
    return {fn: IRAnalysesCache(fn) for fn in ctx.get_functions()}


def analyze_context(ctx: IRContext, settings: Optional[RangeSettings] = None) -> RangePass:
    """
    Run range propagation over a checked IRContext.

    Returns the finished RangePass; its `table` holds the whole-program
    facts and `get_local_range` answers queries about SSA variables.
    """
    rp = RangePass(_make_caches(ctx), ctx, settings)
    rp.run_pass()
    return rp


def analyze_source(source: str, settings: Optional[RangeSettings] = None) -> RangePass:
    ctx = parse_ir(source)
    check_ir_ctx(ctx)
    return analyze_context(ctx, settings)


def check_comparisons(ctx: IRContext) -> list[ComparisonDiagnostic]:
    resolver = CalleeResolver(ctx)
    return CmpRangePass(_make_caches(ctx), ctx, resolver=resolver).run_pass()
