"""Result sinks: durable export of a completed run."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Protocol, Union

import pandas as pd
import structlog

from systemic_risk.pipeline.results import AVERAGES, MEASURES, SystemicRiskResult

logger = structlog.get_logger(__name__)

LABELS_FILE = "labels.csv"
INDEX_SUMMARY_FILE = "analysis_index_summary.csv"
CORRELATION_FILE = "analysis_correlation.csv"
P_VALUES_FILE = "analysis_p_values.csv"


class ResultSink(Protocol):
    """Accepts a completed result and reports whether it was persisted."""

    def write(self, result: SystemicRiskResult) -> bool:
        ...


class CsvResultSink:
    """Writes one CSV per measure plus Averages.csv and labels.csv.

    Every measure file has a Date column followed by one column per firm;
    Averages.csv has a Date column followed by one column per measure.
    When the result carries an analysis, the index summary, correlation
    matrix and p-values are written to analysis_*.csv as well.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _write_frame(self, frame: pd.DataFrame, name: str, dates: List[str]) -> Path:
        out = frame.reset_index(drop=True)
        out.insert(0, "Date", dates)
        path = self.directory / f"{name}.csv"
        out.to_csv(path, index=False)
        return path

    def write(self, result: SystemicRiskResult) -> bool:
        self.directory.mkdir(parents=True, exist_ok=True)
        dates = result.date_labels

        for name in MEASURES:
            self._write_frame(result.matrices[name], name, dates)

        self._write_frame(result.averages, AVERAGES, dates)

        labels = [result.label_for(name) for name in result.short_labels]
        pd.DataFrame({"measure": result.short_labels, "label": labels}).to_csv(
            self.directory / LABELS_FILE, index=False
        )
        num_files = len(MEASURES) + 2

        if result.analysis is not None:
            num_files += self._write_analysis(result.analysis)

        logger.info(
            "csv_results_written",
            directory=str(self.directory),
            num_files=num_files,
        )
        return True

    def _write_analysis(self, analysis: Dict[str, Any]) -> int:
        summary = pd.DataFrame(
            {"statistic": list(analysis["index_summary"]), "value": list(analysis["index_summary"].values())}
        )
        summary.to_csv(self.directory / INDEX_SUMMARY_FILE, index=False)

        analysis["correlation"].to_csv(self.directory / CORRELATION_FILE, index_label="measure")
        analysis["p_values"].to_csv(self.directory / P_VALUES_FILE, index_label="measure")
        return 3


class MemoryResultSink:
    """Keeps written results in memory; ``succeed=False`` simulates a failed export."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.results: List[SystemicRiskResult] = []

    @property
    def calls(self) -> int:
        return len(self.results)

    def write(self, result: SystemicRiskResult) -> bool:
        self.results.append(result)
        return self.succeed
