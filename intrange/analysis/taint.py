from typing import Iterable, Optional


class TaintOracle:
    """
    The ids whose values come from outside the program (user input,
    syscall arguments, ...). Their range is never narrowed below full.
    """

    def __init__(self, sources: Iterable[str] = ()):
        self._sources = frozenset(sources)

    def is_taint_source(self, sid: Optional[str]) -> bool:
        return sid is not None and sid in self._sources
