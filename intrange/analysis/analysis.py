from __future__ import annotations

from typing import TYPE_CHECKING, Type, TypeVar

if TYPE_CHECKING:
    from intrange.ir.function import IRFunction


class IRAnalysis:
    """
    Base class for per-function analyses. Subclasses compute their result in
    `analyze` and may request the analyses they depend on through
    `analyses_cache`.
    """

    function: IRFunction
    analyses_cache: IRAnalysesCache

    def __init__(self, analyses_cache: IRAnalysesCache, function: IRFunction):
        self.analyses_cache = analyses_cache
        self.function = function

    def analyze(self, *args, **kwargs):
        raise NotImplementedError


T = TypeVar("T", bound=IRAnalysis)


class IRAnalysesCache:
    """
    Results of the analyses run on one function, one instance per analysis
    class. The IR is never rewritten, so a cached result stays valid; only
    analyses that depend on per-sweep state are recomputed with
    `force_analysis`.
    """

    function: IRFunction
    _results: dict[Type[IRAnalysis], IRAnalysis]

    def __init__(self, function: IRFunction):
        self.function = function
        self._results = {}

    def _run(self, analysis_cls: Type[T], *args, **kwargs) -> T:
        assert issubclass(analysis_cls, IRAnalysis), f"{analysis_cls} is not an IRAnalysis"
        analysis = analysis_cls(self, self.function)
        self._results[analysis_cls] = analysis
        analysis.analyze(*args, **kwargs)
        return analysis

    def request_analysis(self, analysis_cls: Type[T], *args, **kwargs) -> T:
        """
        Return the cached result of `analysis_cls`, running it first if needed.
        """
        ret = self._results.get(analysis_cls)
        if ret is None:
            return self._run(analysis_cls, *args, **kwargs)
        assert isinstance(ret, analysis_cls)  # help mypy
        return ret

    def force_analysis(self, analysis_cls: Type[T], *args, **kwargs) -> T:
        """
        Rerun `analysis_cls` and replace its cached result.
        """
        return self._run(analysis_cls, *args, **kwargs)
