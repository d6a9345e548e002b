from .analysis import IRAnalysesCache, IRAnalysis
from .back_edges import BackEdgeAnalysis
from .callees import CalleeResolver
from .cfg import CFGAnalysis
from .dfg import DFGAnalysis
from .fcg import FCGAnalysis
from .naming import SymbolicNamer
from .scev import SymbolicBoundOracle
from .taint import TaintOracle
from .var_definition import VarDefinition
