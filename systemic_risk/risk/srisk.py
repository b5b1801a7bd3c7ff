"""
SRISK Module

Brownlees-Engle capital shortfall of a firm conditional on a systemic crisis:

    SRISK_t = l * L_t - (1 - l) * (1 - LRMES_t) * C_t

Negative values (capital surplus) are kept as they are.
"""

import numpy as np
import structlog

logger = structlog.get_logger(__name__)


def clip_lrmes(lrmes) -> np.ndarray:
    """Clip LRMES to [0, 1]; values outside come from degenerate beta fits."""
    lrmes = np.asarray(lrmes, dtype=float)
    clipped = np.clip(lrmes, 0.0, 1.0)

    n_clipped = int(np.sum(clipped != lrmes))
    if n_clipped:
        logger.debug("clip_lrmes: values clipped to [0, 1]", num_clipped=n_clipped)

    return clipped


def calculate_srisk(
    lrmes,
    liabilities,
    market_caps,
    l: float,
) -> np.ndarray:
    """Expected capital shortfall under systemic stress.

    Args:
        lrmes: Long-run MES (length T); clipped to [0, 1] here
        liabilities: Firm total liabilities (length T)
        market_caps: Firm market capitalization (length T)
        l: Capital adequacy ratio in (0, 1)

    Returns:
        SRISK series in the currency units of the balance-sheet inputs
    """
    if not 0 < l < 1:
        raise ValueError(f"Capital ratio must be between 0 and 1, got {l}")

    lrmes = clip_lrmes(lrmes)
    liabilities = np.asarray(liabilities, dtype=float)
    market_caps = np.asarray(market_caps, dtype=float)

    if not (lrmes.shape == liabilities.shape == market_caps.shape):
        raise ValueError(
            f"Series lengths differ: LRMES {lrmes.shape}, liabilities {liabilities.shape}, "
            f"market caps {market_caps.shape}"
        )

    return l * liabilities - (1.0 - l) * (1.0 - lrmes) * market_caps
