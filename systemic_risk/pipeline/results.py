"""Result containers: per-firm measure records, the T x N matrices and the final result."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd

from systemic_risk.config import ModelParameters
from systemic_risk.risk.aggregation import AVERAGE_COLUMNS

MEASURES = AVERAGE_COLUMNS
AVERAGES = "Averages"
SHORT_LABELS = MEASURES + (AVERAGES,)


def measure_labels(params: ModelParameters) -> List[str]:
    """Display labels of the six measures followed by the averages label."""
    k = f"{params.confidence_level * 100:.0f}%"
    d = f"{params.crisis_threshold * 100:.0f}%"
    l = f"{params.capital_ratio * 100:.0f}%"

    return [
        "Beta",
        f"VaR (k={k})",
        f"CoVaR (k={k})",
        f"DCoVaR (k={k})",
        f"MES (k={k})",
        f"SRISK (d={d} l={l})",
        AVERAGES,
    ]


@dataclass
class FirmMeasures:
    """All measure series of one firm; tail measures are stored as loss magnitudes."""

    firm: str
    position: int
    beta: np.ndarray
    var: np.ndarray
    covar: np.ndarray
    dcovar: np.ndarray
    mes: np.ndarray
    srisk: np.ndarray

    def as_dict(self) -> Dict[str, np.ndarray]:
        return {
            "Beta": self.beta,
            "VaR": self.var,
            "CoVaR": self.covar,
            "DCoVaR": self.dcovar,
            "MES": self.mes,
            "SRISK": self.srisk,
        }


class RiskMatrices:
    """The six T x N measure matrices, NaN until a firm's column is merged."""

    def __init__(self, dates: pd.DatetimeIndex, firm_names: List[str]):
        self.dates = dates
        self.firm_names = list(firm_names)
        shape = (len(dates), len(self.firm_names))
        self.values: Dict[str, np.ndarray] = {name: np.full(shape, np.nan) for name in MEASURES}

    @property
    def shape(self) -> tuple:
        return (len(self.dates), len(self.firm_names))

    def merge(self, measures: FirmMeasures) -> None:
        if not 0 <= measures.position < len(self.firm_names):
            raise IndexError(f"Firm position {measures.position} out of range")

        if self.firm_names[measures.position] != measures.firm:
            raise ValueError(
                f"Firm {measures.firm!r} doesn't match column {measures.position} "
                f"({self.firm_names[measures.position]!r})"
            )

        for name, series in measures.as_dict().items():
            self.values[name][:, measures.position] = series

    def populated_cells(self) -> int:
        return int(sum(np.count_nonzero(~np.isnan(m)) for m in self.values.values()))

    def is_complete(self) -> bool:
        return all(not np.isnan(m).any() for m in self.values.values())

    def frames(self) -> Dict[str, pd.DataFrame]:
        return {
            name: pd.DataFrame(matrix, index=self.dates, columns=self.firm_names)
            for name, matrix in self.values.items()
        }


@dataclass
class SystemicRiskResult:
    """Completed run: measure matrices, averages and their labels."""

    dates: pd.DatetimeIndex
    firm_names: List[str]
    matrices: Dict[str, pd.DataFrame]
    averages: pd.DataFrame
    labels: List[str]
    parameters: ModelParameters
    short_labels: List[str] = field(default_factory=lambda: list(SHORT_LABELS))
    analysis: Optional[Dict[str, Any]] = None

    @property
    def date_labels(self) -> List[str]:
        return [d.strftime("%Y-%m-%d") for d in self.dates]

    def label_for(self, name: str) -> str:
        return self.labels[self.short_labels.index(name)]
