"""Run orchestration: per-firm computation, progress, result sinks and the runner."""

from systemic_risk.pipeline.firm import compute_firm_measures
from systemic_risk.pipeline.progress import LoggingProgress, NullProgress, ProgressSink
from systemic_risk.pipeline.results import (
    MEASURES,
    FirmMeasures,
    RiskMatrices,
    SystemicRiskResult,
    measure_labels,
)
from systemic_risk.pipeline.runner import run_systemic_risk
from systemic_risk.pipeline.sinks import CsvResultSink, MemoryResultSink, ResultSink

__all__ = [
    "MEASURES",
    "FirmMeasures",
    "RiskMatrices",
    "SystemicRiskResult",
    "measure_labels",
    "compute_firm_measures",
    "ProgressSink",
    "LoggingProgress",
    "NullProgress",
    "ResultSink",
    "CsvResultSink",
    "MemoryResultSink",
    "run_systemic_risk",
]
