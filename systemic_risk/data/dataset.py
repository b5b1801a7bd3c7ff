"""
Dataset Module

The in-memory panel consumed by the pipeline: index and firm returns on one
strictly increasing date index, optional balance-sheet series (liabilities,
market capitalization and its one-period lag) and optional state variables
for the CoVaR regression.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import pandas as pd
import structlog

from systemic_risk.errors import PreconditionError
from systemic_risk.risk.returns import compute_log_returns

logger = structlog.get_logger(__name__)


@dataclass
class Dataset:
    """Aligned return panel plus firm balance-sheet series.

    Matrices are T x N with one column per firm in ``firm_names`` order.
    The three balance-sheet matrices are either all present or all absent.
    """

    dates: pd.DatetimeIndex
    index_name: str
    index_returns: np.ndarray
    firm_names: List[str]
    firm_returns: np.ndarray
    liabilities: Optional[np.ndarray] = None
    market_caps: Optional[np.ndarray] = None
    market_caps_lagged: Optional[np.ndarray] = None
    state_variables: Optional[np.ndarray] = None
    state_variable_names: List[str] = field(default_factory=list)

    @property
    def observations(self) -> int:
        return len(self.dates)

    @property
    def firms(self) -> int:
        return len(self.firm_names)

    @property
    def has_balance_sheet(self) -> bool:
        return (
            self.liabilities is not None
            and self.market_caps is not None
            and self.market_caps_lagged is not None
        )

    @property
    def date_labels(self) -> List[str]:
        return [d.strftime("%Y-%m-%d") for d in self.dates]

    def validate(self) -> None:
        """Check the panel invariants.

        Raises:
            PreconditionError: On any shape, ordering or value violation
        """
        n_obs, n_firms = self.observations, self.firms

        if n_obs == 0 or n_firms == 0:
            raise PreconditionError(
                f"Dataset must contain observations and firms, got {n_obs} x {n_firms}"
            )

        if not self.dates.is_monotonic_increasing or not self.dates.is_unique:
            raise PreconditionError("Dataset dates must be strictly increasing")

        if len(set(self.firm_names)) != n_firms:
            raise PreconditionError("Firm names must be unique")

        _check_matrix("index returns", self.index_returns, (n_obs,))
        _check_matrix("firm returns", self.firm_returns, (n_obs, n_firms))

        balance_sheet = [self.liabilities, self.market_caps, self.market_caps_lagged]
        present = sum(m is not None for m in balance_sheet)

        if present not in (0, 3):
            raise PreconditionError(
                "Liabilities, market caps and lagged market caps must be provided together"
            )

        if present:
            for label, matrix in zip(("liabilities", "market caps", "lagged market caps"), balance_sheet):
                _check_matrix(label, matrix, (n_obs, n_firms))
                if np.any(matrix < 0):
                    raise PreconditionError(f"Negative values detected in {label}")

        if self.state_variables is not None:
            sv = np.asarray(self.state_variables)
            if sv.ndim != 2 or sv.shape[0] != n_obs:
                raise PreconditionError(
                    f"State variables must be a {n_obs} x S matrix, got shape {sv.shape}"
                )
            _check_matrix("state variables", sv, sv.shape)
            if self.state_variable_names and len(self.state_variable_names) != sv.shape[1]:
                raise PreconditionError(
                    f"Got {len(self.state_variable_names)} state variable names for {sv.shape[1]} columns"
                )


def _check_matrix(label: str, matrix, shape: tuple) -> None:
    values = np.asarray(matrix, dtype=float)

    if values.shape != shape:
        raise PreconditionError(f"{label} shape {values.shape} doesn't match expected {shape}")

    if not np.all(np.isfinite(values)):
        raise PreconditionError(f"NaN or infinite values detected in {label}")


def _align_frame(
    label: str,
    frame: pd.DataFrame,
    dates: pd.DatetimeIndex,
    columns: List[str],
) -> pd.DataFrame:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise PreconditionError(f"{label} missing columns for firms: {missing}")

    aligned = frame.reindex(dates)[columns]

    if aligned.isna().any().any():
        missing_dates = aligned.index[aligned.isna().any(axis=1)]
        logger.error(
            "build_dataset: missing observations",
            series=label,
            num_missing=len(missing_dates),
        )
        raise PreconditionError(
            f"{label} has missing observations on {len(missing_dates)} date(s), "
            f"first {missing_dates[0].date()}"
        )

    return aligned


def build_dataset(
    index_prices: pd.Series,
    firm_prices: pd.DataFrame,
    liabilities: Optional[pd.DataFrame] = None,
    market_caps: Optional[pd.DataFrame] = None,
    state_variables: Optional[pd.DataFrame] = None,
    index_name: Optional[str] = None,
) -> Dataset:
    """Build a validated Dataset from price and balance-sheet frames.

    Prices are aligned on the intersection of their dates (no forward
    filling) and converted to log returns, which drops the first date.
    Balance-sheet frames must cover every price date: market caps on the
    previous price date become the lagged market caps.

    Args:
        index_prices: Index price series with DatetimeIndex
        firm_prices: Firm prices, DatetimeIndex x firm columns
        liabilities: Firm total liabilities (same layout), optional
        market_caps: Firm market capitalization (same layout), optional
        state_variables: State variables, DatetimeIndex x variable columns, optional
        index_name: Label of the index (defaults to the series name)

    Returns:
        Validated Dataset
    """
    if firm_prices.empty:
        raise PreconditionError("Firm price frame is empty")

    if (liabilities is None) != (market_caps is None):
        raise PreconditionError("Liabilities and market caps must be provided together")

    index_name = index_name or (str(index_prices.name) if index_prices.name is not None else "Index")
    firm_names = [str(c) for c in firm_prices.columns]

    price_matrix = pd.concat(
        [index_prices.rename("__index__"), firm_prices.set_axis(firm_names, axis=1)],
        axis=1,
        join="inner",
    ).sort_index()

    original_rows = len(price_matrix)
    price_matrix = price_matrix.dropna()

    if len(price_matrix) < original_rows:
        logger.info(
            "build_dataset: dropped rows with missing prices",
            original_rows=original_rows,
            final_rows=len(price_matrix),
        )

    if len(price_matrix) < 3:
        raise PreconditionError(f"Need at least 3 aligned price dates, got {len(price_matrix)}")

    try:
        returns = compute_log_returns(price_matrix)
    except ValueError as e:
        raise PreconditionError(str(e)) from e

    dates = pd.DatetimeIndex(returns.index)

    liab = caps = caps_lag = None
    if market_caps is not None:
        caps_frame = _align_frame("market caps", market_caps, pd.DatetimeIndex(price_matrix.index), firm_names)
        caps = caps_frame.iloc[1:].to_numpy(dtype=float, copy=True)
        caps_lag = caps_frame.iloc[:-1].to_numpy(dtype=float, copy=True)
        liab = _align_frame("liabilities", liabilities, dates, firm_names).to_numpy(dtype=float, copy=True)

    sv = None
    sv_names: List[str] = []
    if state_variables is not None and not state_variables.empty:
        sv_names = [str(c) for c in state_variables.columns]
        sv = _align_frame("state variables", state_variables, dates, list(state_variables.columns)).to_numpy(dtype=float, copy=True)

    dataset = Dataset(
        dates=dates,
        index_name=index_name,
        index_returns=returns["__index__"].to_numpy(dtype=float, copy=True),
        firm_names=firm_names,
        firm_returns=returns[firm_names].to_numpy(dtype=float, copy=True),
        liabilities=liab,
        market_caps=caps,
        market_caps_lagged=caps_lag,
        state_variables=sv,
        state_variable_names=sv_names,
    )
    dataset.validate()

    logger.info(
        "build_dataset: dataset built",
        index=index_name,
        num_firms=dataset.firms,
        num_observations=dataset.observations,
        has_balance_sheet=dataset.has_balance_sheet,
        num_state_variables=len(sv_names),
        date_range=f"{dates.min().date()} to {dates.max().date()}",
    )

    return dataset
