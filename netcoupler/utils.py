"""Central utility functions shared across the pipeline.

Provides the building blocks used by standardization, network
estimation and link estimation:

* **Column selection** -- resolves a selector (names, a predicate, a
  regular expression) into a concrete, ordered list of column names,
  once, at call entry.
* **Z-scoring** -- missing-value aware standardisation with
  constant-column safety.
"""

import re
from typing import Callable, List, Sequence

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from netcoupler.config import EPS
from netcoupler.errors import InvalidColumnError


# ---------------------------------------------------------------------------
# Column selection
# ---------------------------------------------------------------------------

def starts_with(prefix: str) -> Callable[[str], bool]:
    """Select columns whose name starts with *prefix*."""
    return lambda name: str(name).startswith(prefix)


def ends_with(suffix: str) -> Callable[[str], bool]:
    """Select columns whose name ends with *suffix*."""
    return lambda name: str(name).endswith(suffix)


def contains(text: str) -> Callable[[str], bool]:
    """Select columns whose name contains *text*."""
    return lambda name: text in str(name)


def matches(pattern: str) -> Callable[[str], bool]:
    """Select columns whose name matches the regular expression *pattern*."""
    regex = re.compile(pattern)
    return lambda name: regex.search(str(name)) is not None


def resolve_columns(data: pd.DataFrame, cols=None) -> List[str]:
    """Resolve a column selector into a concrete list of column names.

    Parameters
    ----------
    data : DataFrame
        Table whose columns are selected from.
    cols : None, str, sequence of str, callable or compiled regex
        * ``None`` -- every column, in table order.
        * a single name -- that column.
        * a sequence of names -- those columns, in the order given.
        * a callable -- columns for which ``cols(name)`` is true, in
          table order (see ``starts_with`` and friends).
        * a compiled regular expression -- columns it matches, in table
          order.

    Returns
    -------
    list of str

    Raises
    ------
    InvalidColumnError
        If a named column is absent or the selection is empty.
    """
    columns = list(data.columns)
    if cols is None:
        selected = columns
    elif isinstance(cols, str):
        selected = [cols]
    elif isinstance(cols, re.Pattern):
        selected = [c for c in columns if cols.search(str(c))]
    elif callable(cols):
        selected = [c for c in columns if cols(c)]
    else:
        selected = list(dict.fromkeys(cols))

    missing = [c for c in selected if c not in data.columns]
    if missing:
        raise InvalidColumnError(f"Columns not found in data: {missing}")
    if not selected:
        raise InvalidColumnError("Column selection matched no columns.")
    return selected


def require_columns(data: pd.DataFrame, cols: Sequence[str], *, what: str = "Columns") -> None:
    """Raise InvalidColumnError if any of *cols* is missing from *data*."""
    missing = [c for c in cols if c not in data.columns]
    if missing:
        raise InvalidColumnError(f"{what} not found in data: {missing}")


def require_numeric(data: pd.DataFrame, cols: Sequence[str]) -> None:
    """Raise InvalidColumnError if any of *cols* is not numeric."""
    bad = [c for c in cols if not is_numeric_dtype(data[c]) or is_bool_dtype(data[c])]
    if bad:
        raise InvalidColumnError(f"Columns must be numeric: {bad}")


# ---------------------------------------------------------------------------
# Numerics
# ---------------------------------------------------------------------------

def safe_zscore(x, *, eps: float = EPS) -> np.ndarray:
    """Mean-centre and scale a vector by its sample standard deviation.

    Missing values are ignored when computing the mean and the standard
    deviation (ddof=1) and stay missing in the output.  A constant or
    near-constant vector would produce sd ~ 0 and blow up the division,
    so any sd < eps is replaced with 1.0: the vector is then only
    centred.
    """
    x = np.asarray(x, dtype=np.float64)
    finite = np.isfinite(x)
    if finite.sum() < 2:
        return np.where(finite, 0.0, np.nan)
    mu = x[finite].mean()
    xc = np.where(finite, x - mu, np.nan)
    sd = xc[finite].std(ddof=1)
    if sd < eps:
        sd = 1.0
    return xc / sd
