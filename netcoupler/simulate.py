"""Simulated metabolomic data with a known network structure.

The generating model, on the log scale of the metabolites (L1..L12):

    exposure -> L1 -> L2 -> L3 -> outcome
    age      -> L4 -> L5 -> L6 -> outcome,   exposure -> L6
                L7 -> L8 -> outcome_binary
                L9 -> L10
               L11 -> L12

so the exposure has direct links to metabolites 1 and 6 only, and the
continuous outcome direct links from metabolites 3 and 6.  Metabolite
values are exp(L + 2), i.e. strictly positive and right skewed, as
``standardize`` expects.
"""

import numpy as np
import pandas as pd

from netcoupler.config import SEED

N_METABOLITES = 12

# (child, parent, weight) on the log scale, metabolites 1-indexed.
_METABOLITE_EDGES = [
    (2, 1, 0.6), (3, 2, 0.6),
    (5, 4, 0.6), (6, 5, 0.5),
    (8, 7, 0.6), (10, 9, 0.6), (12, 11, 0.6),
]
_EXPOSURE_WEIGHTS = {1: 0.7, 6: 0.5}


def simulate_data(n: int = 1000, seed: int = SEED) -> pd.DataFrame:
    """Simulate a cohort table with 12 metabolites, an exposure and outcomes.

    Parameters
    ----------
    n : int
        Number of observations (rows).
    seed : int
        Random seed.

    Returns
    -------
    DataFrame
        Columns ``metabolite_1`` .. ``metabolite_12``, ``exposure``,
        ``outcome_continuous``, ``outcome_binary`` (0/1), ``age``,
        ``sex`` ("F"/"M").
    """
    rng = np.random.default_rng(seed)
    age = rng.uniform(40, 70, size=n)
    sex = rng.choice(np.array(["F", "M"]), size=n)
    exposure = rng.normal(size=n)

    L = rng.normal(size=(n, N_METABOLITES + 1))  # column 0 unused
    L[:, 4] += 0.03 * (age - 55)
    for k, w in _EXPOSURE_WEIGHTS.items():
        L[:, k] += w * exposure
    # Parents always have a lower index, so one ordered pass is enough.
    for child, parent, w in sorted(_METABOLITE_EDGES):
        L[:, child] += w * L[:, parent]

    outcome_continuous = 0.5 * L[:, 3] + 0.5 * L[:, 6] + 0.02 * (age - 55) + rng.normal(size=n)
    logit = -0.3 + 0.9 * L[:, 8]
    outcome_binary = (rng.uniform(size=n) < 1.0 / (1.0 + np.exp(-logit))).astype(int)

    data = {f"metabolite_{k}": np.exp(L[:, k] + 2.0) for k in range(1, N_METABOLITES + 1)}
    data.update(
        exposure=exposure,
        outcome_continuous=outcome_continuous,
        outcome_binary=outcome_binary,
        age=age,
        sex=sex,
    )
    return pd.DataFrame(data)
