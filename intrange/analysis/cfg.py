from typing import MutableMapping
from weakref import WeakKeyDictionary

from intrange.analysis.analysis import IRAnalysis
from intrange.ir.basicblock import IRBasicBlock
from intrange.utils import OrderedSet


class CFGAnalysis(IRAnalysis):
    """
    Compute control flow graph information for each basic block in the function.
    """

    _cfg_in: MutableMapping[IRBasicBlock, OrderedSet[IRBasicBlock]]
    _cfg_out: MutableMapping[IRBasicBlock, OrderedSet[IRBasicBlock]]

    def analyze(self) -> None:
        fn = self.function

        self._cfg_in = WeakKeyDictionary()
        self._cfg_out = WeakKeyDictionary()

        for bb in fn.get_basic_blocks():
            self._cfg_in[bb] = OrderedSet()
            self._cfg_out[bb] = OrderedSet()

        for bb in fn.get_basic_blocks():
            for next_bb in bb.out_bbs:
                self._cfg_out[bb].add(next_bb)
                self._cfg_in[next_bb].add(bb)

    def cfg_in(self, bb: IRBasicBlock) -> OrderedSet[IRBasicBlock]:
        return self._cfg_in[bb]

    def cfg_out(self, bb: IRBasicBlock) -> OrderedSet[IRBasicBlock]:
        return self._cfg_out[bb]
