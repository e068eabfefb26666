from dataclasses import dataclass, field
from typing import Any, Dict
import pandas as pd


@dataclass(frozen=True)
class InterpretationResult:
    """Output of one interpretation method.

    ``table`` holds the per-feature statistic (or curve) the method produces;
    ``details`` carries whatever else the method returns, e.g. the fitted
    surrogate tree or the explained instance.
    """

    method: str
    table: pd.DataFrame
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.table is None or self.table.empty
