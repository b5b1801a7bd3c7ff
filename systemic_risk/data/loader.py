"""
CSV dataset loader.

Expected directory layout (first column of every file is the date):

    index.csv            one column of index prices, header = index name
    firms.csv            one column of prices per firm
    liabilities.csv      optional, one column per firm
    market_caps.csv      optional, one column per firm
    state_variables.csv  optional, one column per state variable
"""

from pathlib import Path
from typing import Optional, Union

import pandas as pd
import structlog

from systemic_risk.data.dataset import Dataset, build_dataset
from systemic_risk.errors import PreconditionError

logger = structlog.get_logger(__name__)

INDEX_FILE = "index.csv"
FIRMS_FILE = "firms.csv"
LIABILITIES_FILE = "liabilities.csv"
MARKET_CAPS_FILE = "market_caps.csv"
STATE_VARIABLES_FILE = "state_variables.csv"


def _read_frame(path: Path) -> pd.DataFrame:
    frame = pd.read_csv(path, index_col=0, parse_dates=True)
    frame.index = pd.DatetimeIndex(frame.index)
    frame.index.name = "date"
    return frame


def _read_optional(path: Path) -> Optional[pd.DataFrame]:
    if not path.exists():
        return None
    return _read_frame(path)


def load_dataset(directory: Union[str, Path]) -> Dataset:
    """Load a Dataset from a directory of CSV files.

    Raises:
        PreconditionError: If a required file is missing or malformed
    """
    directory = Path(directory)

    for required in (INDEX_FILE, FIRMS_FILE):
        if not (directory / required).exists():
            raise PreconditionError(f"Missing required input file: {directory / required}")

    index_frame = _read_frame(directory / INDEX_FILE)
    if index_frame.shape[1] != 1:
        raise PreconditionError(
            f"{INDEX_FILE} must hold exactly one price column, got {index_frame.shape[1]}"
        )

    index_prices = index_frame.iloc[:, 0]
    firm_prices = _read_frame(directory / FIRMS_FILE)

    liabilities = _read_optional(directory / LIABILITIES_FILE)
    market_caps = _read_optional(directory / MARKET_CAPS_FILE)
    state_variables = _read_optional(directory / STATE_VARIABLES_FILE)

    logger.info(
        "load_dataset: files read",
        directory=str(directory),
        num_firms=firm_prices.shape[1],
        has_liabilities=liabilities is not None,
        has_market_caps=market_caps is not None,
        has_state_variables=state_variables is not None,
    )

    return build_dataset(
        index_prices,
        firm_prices,
        liabilities=liabilities,
        market_caps=market_caps,
        state_variables=state_variables,
        index_name=str(index_frame.columns[0]),
    )
