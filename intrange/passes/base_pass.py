from intrange.analysis import IRAnalysesCache
from intrange.ir.context import IRContext
from intrange.ir.function import IRFunction


class IRGlobalPass:
    """
    Base class for whole-program passes.
    """

    ctx: IRContext
    analyses_caches: dict[IRFunction, IRAnalysesCache]

    def __init__(self, analyses_caches: dict[IRFunction, IRAnalysesCache], ctx: IRContext):
        self.analyses_caches = analyses_caches
        self.ctx = ctx

    def run_pass(self, *args, **kwargs):
        raise NotImplementedError(f"Not implemented! {self.__class__}.run_pass()")
