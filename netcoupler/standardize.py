"""Standardization of the network variables.

Metabolomic (and similar) measurements are strictly positive and right
skewed.  Before estimating a network from them they are made numerically
well behaved in one of two ways:

1. ``log`` then z-score (mean 0, sample SD 1), or
2. when ``regressed_on`` variables are given, ``log``, regress on those
   variables with OLS, keep the residuals, then z-score.  Use this to
   remove the influence of known confounders (age, sex, ...) from the
   network.

Only the selected columns change; every other column and the row order
are passed through untouched.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm

from netcoupler.models import design_matrix
from netcoupler.utils import require_columns, require_numeric, resolve_columns, safe_zscore


def _safe_log(x: pd.Series) -> pd.Series:
    """Natural log with non-positive values mapped to missing (never -inf)."""
    values = x.to_numpy(dtype=np.float64)
    out = np.full(values.shape, np.nan)
    positive = values > 0
    out[positive] = np.log(values[positive])
    return pd.Series(out, index=x.index, name=x.name)


def log_standardize(x: pd.Series) -> pd.Series:
    """Log-transform a column and z-score it."""
    return pd.Series(safe_zscore(_safe_log(x)), index=x.index, name=x.name)


def log_regress_standardize(data: pd.DataFrame, col: str, regressed_on: Sequence[str]) -> pd.Series:
    """Log-transform *col*, replace it with OLS residuals on *regressed_on*, z-score.

    Only rows complete in *col* and every regressor are used; the other
    rows are missing in the returned series (indexed like *data*).
    """
    frame = data.loc[:, [col, *regressed_on]].copy()
    frame[col] = _safe_log(frame[col])
    y, X, _, _ = design_matrix(col, regressed_on, frame)
    resid = sm.OLS(y, X).fit().resid
    out = pd.Series(np.nan, index=data.index, name=col)
    out.loc[resid.index] = safe_zscore(resid.to_numpy())
    return out


def standardize(data: pd.DataFrame, cols=None, regressed_on: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Standardize the network variables.

    Parameters
    ----------
    data : DataFrame
        Input table.
    cols : column selector
        Network variables to standardize (see ``resolve_columns``):
        names, a predicate such as ``starts_with("metabolite_")``, a
        compiled regex, or ``None`` for every column.
    regressed_on : sequence of str, optional
        Variables to regress each network variable on.  Numeric and
        categorical variables are both accepted.

    Returns
    -------
    DataFrame
        Copy of *data* with the selected columns standardized.

    Raises
    ------
    InvalidColumnError
        If a selected column is absent or non-numeric, or a
        ``regressed_on`` variable is absent.
    """
    names = resolve_columns(data, cols)
    require_numeric(data, names)
    out = data.copy()

    if regressed_on is None:
        for col in names:
            out[col] = log_standardize(data[col])
        return out

    if isinstance(regressed_on, str):
        regressed_on = [regressed_on]
    regressed_on = list(regressed_on)
    require_columns(data, regressed_on, what="Regression variables")
    for col in names:
        out[col] = log_regress_standardize(data, col, [r for r in regressed_on if r != col])
    return out
