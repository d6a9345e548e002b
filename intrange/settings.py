import os
from dataclasses import dataclass, field
from typing import Optional

# sweeps over the whole program before slowly converging ids are widened
DEFAULT_MAX_ITERATIONS = 5

INTRANGE_MAX_ITERATIONS = DEFAULT_MAX_ITERATIONS
if (_max_itr := os.environ.get("INTRANGE_MAX_ITERATIONS")) is not None:
    INTRANGE_MAX_ITERATIONS = int(_max_itr)

INTRANGE_WATCH_ID: Optional[str] = os.environ.get("INTRANGE_WATCH_ID") or None


@dataclass
class RangeSettings:
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    # symbolic id whose updates are traced to stderr
    watch_id: Optional[str] = None
    taint_sources: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be positive, got {self.max_iterations}")
        self.taint_sources = tuple(self.taint_sources)

    @classmethod
    def from_env(cls, **overrides) -> "RangeSettings":
        kwargs = {"max_iterations": INTRANGE_MAX_ITERATIONS, "watch_id": INTRANGE_WATCH_ID}
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
