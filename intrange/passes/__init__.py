from .base_pass import IRGlobalPass
from .cmp_range import ALWAYS_FALSE, ALWAYS_TRUE, CmpRangePass, ComparisonDiagnostic
from .range_pass import RangePass
from .transfer import TRANSFER
