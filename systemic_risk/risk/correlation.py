"""
Results Analysis Module

Descriptive statistics of the market index and correlation structure of the
aggregated risk measures.  Only computed when analysis is requested; the
outputs feed the optional visualization sink.
"""

import numpy as np
import pandas as pd
import structlog
from scipy import stats
from typing import Dict, List

logger = structlog.get_logger(__name__)


def index_summary(index_returns) -> Dict[str, float]:
    """Descriptive statistics of the market index returns.

    Kurtosis is reported as raw (non-excess) kurtosis.

    Args:
        index_returns: 1-D array-like of index returns

    Returns:
        Dict with observations, kurtosis, mean, median, skewness, std
    """
    r = np.asarray(index_returns, dtype=float)

    if r.size < 2:
        raise ValueError(f"Need at least 2 observations, got {r.size}")

    return {
        'observations': int(r.size),
        'kurtosis': float(stats.kurtosis(r, fisher=False)),
        'mean': float(np.mean(r)),
        'median': float(np.median(r)),
        'skewness': float(stats.skew(r)),
        'std': float(np.std(r, ddof=1)),
    }


def correlation_with_pvalues(averages: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    """Pearson correlation matrix of the averages and its p-values.

    Args:
        averages: DataFrame (T x M), one column per aggregated measure

    Returns:
        Dict with:
            - correlation: M x M DataFrame
            - p_values: M x M DataFrame (zero on the diagonal)
    """
    if averages.empty:
        raise ValueError("Cannot compute correlation from empty averages DataFrame")

    if len(averages) < 3:
        raise ValueError(f"Need at least 3 observations, got {len(averages)}")

    columns = list(averages.columns)
    n = len(columns)
    corr = np.eye(n)
    pval = np.zeros((n, n))

    for i in range(n):
        for j in range(i + 1, n):
            x = averages.iloc[:, i].values
            y = averages.iloc[:, j].values
            if np.std(x) == 0 or np.std(y) == 0:
                r, p = np.nan, np.nan
            else:
                r, p = stats.pearsonr(x, y)
            corr[i, j] = corr[j, i] = float(r)
            pval[i, j] = pval[j, i] = float(p)

    corr_df = pd.DataFrame(corr, index=columns, columns=columns)
    pval_df = pd.DataFrame(pval, index=columns, columns=columns)

    logger.info(
        "correlation_with_pvalues: correlation computed",
        num_measures=n,
        num_observations=len(averages),
    )

    return {
        'correlation': corr_df,
        'p_values': pval_df,
    }


def top_correlated_pairs(
    corr: pd.DataFrame,
    p_values: pd.DataFrame,
    n: int = 5,
    significance: float = 0.05,
) -> List[Dict]:
    """Most correlated measure pairs (excluding self-correlation).

    Args:
        corr: Correlation matrix (M x M DataFrame)
        p_values: Matching p-value matrix
        n: Number of pairs to return
        significance: Level below which a pair is flagged significant

    Returns:
        List of dicts sorted by |correlation| descending:
        [{'measure_a', 'measure_b', 'correlation', 'p_value', 'significant'}, ...]
    """
    if corr.empty:
        raise ValueError("Cannot find pairs from empty correlation matrix")

    rows, cols = np.triu_indices_from(corr.values, k=1)

    pairs = []
    for i, j in zip(rows, cols):
        r = float(corr.iloc[i, j])
        if np.isnan(r):
            continue
        p = float(p_values.iloc[i, j])
        pairs.append({
            'measure_a': corr.index[i],
            'measure_b': corr.columns[j],
            'correlation': r,
            'p_value': p,
            'significant': p < significance,
        })

    pairs.sort(key=lambda x: abs(x['correlation']), reverse=True)

    return pairs[:n]


def analyse_results(index_returns, averages: pd.DataFrame) -> Dict:
    """Bundle the index summary and the averages correlation analysis."""
    correlation = correlation_with_pvalues(averages)

    analysis = {
        'index_summary': index_summary(index_returns),
        'correlation': correlation['correlation'],
        'p_values': correlation['p_values'],
        'top_pairs': top_correlated_pairs(correlation['correlation'], correlation['p_values']),
    }

    logger.info(
        "analyse_results: analysis complete",
        top_pair=analysis['top_pairs'][0] if analysis['top_pairs'] else None,
    )

    return analysis
