"""Entry point for the systemic-risk batch job.

Loads the CSV dataset from DATA_DIR, estimates the probabilistic measures
for every firm and writes the result CSVs to RESULTS_DIR.  SIGINT and
SIGTERM request a cooperative cancellation: the firm currently being
fitted finishes, nothing is exported.
"""

from __future__ import annotations

import logging
import signal
import sys

import structlog

from systemic_risk.config import get_settings
from systemic_risk.data.loader import load_dataset
from systemic_risk.errors import ExportError, SystemicRiskError
from systemic_risk.pipeline.progress import LoggingProgress
from systemic_risk.pipeline.runner import run_systemic_risk
from systemic_risk.pipeline.sinks import CsvResultSink


def _configure_structlog(level: str) -> None:
    """Set up structlog with human-readable console output."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def main() -> int:
    """Run the batch job; returns the process exit code."""
    settings = get_settings()
    _configure_structlog(settings.LOG_LEVEL)

    logger = structlog.get_logger()
    logger.info("systemic_risk_starting", data_dir=settings.DATA_DIR, results_dir=settings.RESULTS_DIR)

    progress = LoggingProgress()

    def _request_cancel(signum, frame) -> None:
        logger.info("shutdown_requested", signal=signum)
        progress.cancel()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _request_cancel)

    try:
        params = settings.model_parameters()
        dataset = load_dataset(settings.DATA_DIR)
        result = run_systemic_risk(
            dataset,
            params,
            progress=progress,
            sink=CsvResultSink(settings.RESULTS_DIR),
            n_jobs=settings.N_JOBS,
        )
    except ExportError:
        logger.exception("systemic_risk_export_failed")
        return 2
    except (SystemicRiskError, ValueError):
        logger.exception("systemic_risk_failed")
        return 1

    if result is None:
        logger.info("systemic_risk_cancelled")
        return 130

    logger.info(
        "systemic_risk_finished",
        num_firms=len(result.firm_names),
        num_observations=len(result.dates),
        analysis_written=result.analysis is not None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
