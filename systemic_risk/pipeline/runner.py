"""
Pipeline runner.

Fits every firm (sequentially or on a thread pool), merges the per-firm
records into the measure matrices, aggregates once every firm is merged,
exports through the result sink and optionally runs the results analysis.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

import pandas as pd
import structlog

from systemic_risk.config import ModelParameters
from systemic_risk.data.dataset import Dataset
from systemic_risk.errors import ExportError, PreconditionError
from systemic_risk.pipeline.firm import compute_firm_measures
from systemic_risk.pipeline.progress import NullProgress, ProgressSink
from systemic_risk.pipeline.results import (
    MEASURES,
    SHORT_LABELS,
    FirmMeasures,
    RiskMatrices,
    SystemicRiskResult,
    measure_labels,
)
from systemic_risk.pipeline.sinks import ResultSink
from systemic_risk.risk.aggregation import aggregate_measures, capitalization_weights
from systemic_risk.risk.correlation import analyse_results
from systemic_risk.risk.optimizer import Optimizer
from systemic_risk.risk.returns import lag_state_variables

logger = structlog.get_logger(__name__)

VisualizationSink = Callable[[SystemicRiskResult], None]


def _check_preconditions(dataset: Dataset) -> None:
    if not dataset.has_balance_sheet:
        raise PreconditionError(
            "Probabilistic measures require liabilities and market capitalization data"
        )

    dataset.validate()
    capitalization_weights(dataset.market_caps_lagged)


def _firm_task(
    dataset: Dataset,
    position: int,
    params: ModelParameters,
    state_variables,
    optimizer: Optional[Optimizer],
) -> FirmMeasures:
    return compute_firm_measures(
        position,
        dataset.firm_names[position],
        dataset.index_returns,
        dataset.firm_returns[:, position],
        dataset.liabilities[:, position],
        dataset.market_caps[:, position],
        params,
        state_variables=state_variables,
        optimizer=optimizer,
    )


def _run_sequential(dataset, params, state_variables, optimizer, matrices, progress) -> bool:
    n_firms = dataset.firms

    for position, name in enumerate(dataset.firm_names):
        if progress.is_cancelled():
            return False

        progress.update(position / n_firms, f"Calculating probabilistic measures for {name}...")
        matrices.merge(_firm_task(dataset, position, params, state_variables, optimizer))

    progress.update(1.0)
    return not progress.is_cancelled()


def _run_parallel(dataset, params, state_variables, optimizer, matrices, progress, n_jobs) -> bool:
    n_firms = dataset.firms
    cancelled = False

    def task(position: int) -> Optional[FirmMeasures]:
        if progress.is_cancelled():
            return None
        return _firm_task(dataset, position, params, state_variables, optimizer)

    with ThreadPoolExecutor(max_workers=n_jobs) as executor:
        futures = [executor.submit(task, position) for position in range(n_firms)]
        try:
            for done, future in enumerate(as_completed(futures), start=1):
                measures = future.result()
                if measures is None:
                    cancelled = True
                    continue
                matrices.merge(measures)
                progress.update(done / n_firms, f"Calculated probabilistic measures for {measures.firm}")
        except BaseException:
            for future in futures:
                future.cancel()
            raise

    return not (cancelled or progress.is_cancelled())


def _build_result(dataset: Dataset, params: ModelParameters, matrices: RiskMatrices) -> SystemicRiskResult:
    averages = aggregate_measures(matrices.values, dataset.market_caps, dataset.market_caps_lagged)

    return SystemicRiskResult(
        dates=dataset.dates,
        firm_names=list(dataset.firm_names),
        matrices=matrices.frames(),
        averages=pd.DataFrame(averages, index=dataset.dates, columns=list(MEASURES)),
        labels=measure_labels(params),
        parameters=params,
        short_labels=list(SHORT_LABELS),
    )


def _export(sink: ResultSink, result: SystemicRiskResult) -> None:
    try:
        written = sink.write(result)
    except Exception as e:
        logger.error("systemic_risk_export_failed", error=str(e))
        raise ExportError(f"Result export failed: {e}", result=result) from e

    if not written:
        logger.error("systemic_risk_export_failed", error="sink reported failure")
        raise ExportError("Result sink reported a failed export", result=result)


def run_systemic_risk(
    dataset: Dataset,
    params: Optional[ModelParameters] = None,
    progress: Optional[ProgressSink] = None,
    sink: Optional[ResultSink] = None,
    visualization: Optional[VisualizationSink] = None,
    optimizer: Optional[Optimizer] = None,
    n_jobs: int = 1,
) -> Optional[SystemicRiskResult]:
    """Compute the probabilistic systemic-risk measures for every firm.

    Args:
        dataset: Return panel with balance-sheet series
        params: Run parameters (defaults when omitted)
        progress: Progress/cancellation sink, closed on every exit path
        sink: Result sink for durable export, or None to skip export
        visualization: Callback receiving the analysed result when
            ``params.run_analysis`` is set
        optimizer: Minimiser for the volatility and correlation fits
        n_jobs: Number of worker threads (1 runs firms sequentially)

    Returns:
        SystemicRiskResult, or None when the run was cancelled

    Raises:
        PreconditionError: If the dataset cannot support the computation
        ModelFitError: If any firm's model cannot be fitted
        ExportError: If the sink fails (the result is attached to the error)
    """
    params = params or ModelParameters()
    progress = progress or NullProgress()

    if n_jobs < 1:
        raise ValueError(f"n_jobs must be >= 1, got {n_jobs}")

    log = logger.bind(num_firms=dataset.firms, num_observations=dataset.observations)

    try:
        _check_preconditions(dataset)

        state_variables = lag_state_variables(dataset.state_variables, params.state_variables_lag)
        matrices = RiskMatrices(dataset.dates, dataset.firm_names)

        log.info(
            "systemic_risk_run_started",
            confidence_level=params.confidence_level,
            crisis_threshold=params.crisis_threshold,
            capital_ratio=params.capital_ratio,
            n_jobs=n_jobs,
        )
        progress.update(0.0, "Calculating probabilistic measures...")

        if n_jobs == 1:
            completed = _run_sequential(dataset, params, state_variables, optimizer, matrices, progress)
        else:
            completed = _run_parallel(dataset, params, state_variables, optimizer, matrices, progress, n_jobs)

        if not completed:
            log.warning("systemic_risk_run_cancelled", populated_cells=matrices.populated_cells())
            return None

        result = _build_result(dataset, params, matrices)

        if params.run_analysis:
            result.analysis = analyse_results(dataset.index_returns, result.averages)

        if sink is not None:
            progress.update(1.0, "Writing probabilistic measures...")
            _export(sink, result)
    finally:
        progress.close()

    if result.analysis is not None and visualization is not None:
        visualization(result)

    log.info("systemic_risk_run_completed", exported=sink is not None)

    return result
