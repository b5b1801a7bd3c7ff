"""
Panel Aggregation Module

Capitalization-weighted cross-firm averages of the risk measures.

    w_i,t = C_i,t-1 / sum_j C_j,t-1

Beta, VaR, CoVaR, DCoVaR and MES are per-unit-of-capital quantities: their
weighted sums are scaled by the total (unlagged) capitalization at t.
SRISK is already in currency units and is a plain weighted sum.
"""

from typing import Dict

import numpy as np
import structlog

from systemic_risk.errors import PreconditionError

logger = structlog.get_logger(__name__)

SCALED_MEASURES = ("Beta", "VaR", "CoVaR", "DCoVaR", "MES")
AVERAGE_COLUMNS = SCALED_MEASURES + ("SRISK",)


def capitalization_weights(lagged_caps) -> np.ndarray:
    """Per-date weights from lagged market capitalization.

    Args:
        lagged_caps: T x N matrix of one-period-lagged market caps

    Returns:
        T x N weight matrix whose rows sum to one

    Raises:
        PreconditionError: If any date has a non-positive total capitalization
    """
    caps = np.asarray(lagged_caps, dtype=float)

    if caps.ndim != 2 or caps.size == 0:
        raise PreconditionError(f"Lagged market caps must be a non-empty T x N matrix, got shape {caps.shape}")

    if not np.all(np.isfinite(caps)):
        raise PreconditionError("NaN or infinite values detected in lagged market caps")

    totals = caps.sum(axis=1)
    bad_rows = np.flatnonzero(totals <= 0)

    if bad_rows.size:
        logger.error(
            "capitalization_weights: zero total capitalization",
            num_dates=int(bad_rows.size),
            first_row=int(bad_rows[0]),
        )
        raise PreconditionError(
            f"Total lagged market capitalization is zero on {bad_rows.size} date(s), "
            "capitalization weights are undefined"
        )

    return caps / totals[:, None]


def aggregate_measures(
    measures: Dict[str, np.ndarray],
    market_caps,
    lagged_caps,
) -> np.ndarray:
    """Combine per-firm measures into index-level series.

    Args:
        measures: {"Beta", "VaR", "CoVaR", "DCoVaR", "MES", "SRISK"} -> T x N
        market_caps: T x N market capitalization
        lagged_caps: T x N lagged market capitalization

    Returns:
        T x 6 matrix, columns ordered as AVERAGE_COLUMNS

    Raises:
        PreconditionError: If a measure is missing, mis-shaped or not fully populated
    """
    weights = capitalization_weights(lagged_caps)
    caps = np.asarray(market_caps, dtype=float)

    if caps.shape != weights.shape:
        raise PreconditionError(
            f"Market caps shape {caps.shape} doesn't match lagged caps shape {weights.shape}"
        )

    caps_total = caps.sum(axis=1)
    columns = []

    for name in AVERAGE_COLUMNS:
        if name not in measures:
            raise PreconditionError(f"Missing measure matrix: {name}")

        values = np.asarray(measures[name], dtype=float)

        if values.shape != weights.shape:
            raise PreconditionError(
                f"{name} shape {values.shape} doesn't match capitalization shape {weights.shape}"
            )

        if np.isnan(values).any():
            raise PreconditionError(f"{name} matrix is not fully populated")

        weighted = (values * weights).sum(axis=1)

        if name in SCALED_MEASURES:
            weighted = weighted * caps_total

        columns.append(weighted)

    averages = np.column_stack(columns)

    logger.info(
        "aggregate_measures: averages computed",
        num_dates=averages.shape[0],
        num_firms=weights.shape[1],
    )

    return averages
