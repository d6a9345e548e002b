from intrange.analysis.analysis import IRAnalysis
from intrange.analysis.cfg import CFGAnalysis
from intrange.ir.basicblock import IRBasicBlock
from intrange.utils import OrderedSet


class BackEdgeAnalysis(IRAnalysis):
    """
    Find the loop-closing edges of the function: an edge from a block to
    a block that is still on the depth-first search stack.
    """

    back_edges: OrderedSet[tuple[IRBasicBlock, IRBasicBlock]]

    def analyze(self):
        cfg = self.analyses_cache.request_analysis(CFGAnalysis)
        self.back_edges = self._find_back_edges(cfg, self.function.entry)

    def is_back_edge(self, src: IRBasicBlock, dst: IRBasicBlock) -> bool:
        return (src, dst) in self.back_edges

    def _find_back_edges(
        self, cfg: CFGAnalysis, entry: IRBasicBlock
    ) -> OrderedSet[tuple[IRBasicBlock, IRBasicBlock]]:
        back_edges: OrderedSet[tuple[IRBasicBlock, IRBasicBlock]] = OrderedSet()
        visited: OrderedSet[IRBasicBlock] = OrderedSet([entry])
        on_stack: OrderedSet[IRBasicBlock] = OrderedSet([entry])

        # iterative dfs, each frame is (block, iterator over its successors)
        stack = [(entry, iter(cfg.cfg_out(entry)))]
        while len(stack) > 0:
            bb, succs = stack[-1]
            for succ in succs:
                if succ not in visited:
                    visited.add(succ)
                    on_stack.add(succ)
                    stack.append((succ, iter(cfg.cfg_out(succ))))
                    break
                if succ in on_stack:
                    back_edges.add((bb, succ))
            else:
                stack.pop()
                on_stack.remove(bb)

        return back_edges
