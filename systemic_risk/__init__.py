"""
Systemic risk estimation.

Time-varying Beta, VaR, CoVaR, Delta CoVaR, MES and SRISK for a panel of
firms against a market index, from DCC-GJR-GARCH dynamics, with
capitalization-weighted cross-firm averages.
"""

from systemic_risk.config import ModelParameters, Settings, get_settings
from systemic_risk.data import Dataset, build_dataset, load_dataset
from systemic_risk.errors import ExportError, ModelFitError, PreconditionError, SystemicRiskError
from systemic_risk.pipeline import SystemicRiskResult, run_systemic_risk

__version__ = "0.1.0"

__all__ = [
    "ModelParameters",
    "Settings",
    "get_settings",
    "Dataset",
    "build_dataset",
    "load_dataset",
    "SystemicRiskError",
    "PreconditionError",
    "ModelFitError",
    "ExportError",
    "SystemicRiskResult",
    "run_systemic_risk",
]
