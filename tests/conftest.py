"""Shared pytest fixtures for all tests."""

import numpy as np
import pandas as pd
import pytest

from netcoupler import simulate_data, standardize, starts_with
from netcoupler.errors import ModelFitFailure
from netcoupler.models import CoefficientEstimate, FitResult


class ScriptedFitter:
    """Fitter returning pre-programmed (estimate, p-value) pairs.

    ``outcomes`` maps ``(response, tuple(predictors))`` to either an
    ``(estimate, p_value)`` tuple, an exception instance to raise, or the
    string ``"nonconverged"``.  The first predictor is the reported term
    (the exposure on the exposure side).
    """

    def __init__(self, outcomes, term_index=0):
        self.outcomes = outcomes
        self.term_index = term_index

    def __call__(self, response, predictors, data):
        key = (response, tuple(predictors))
        outcome = self.outcomes[key]
        if isinstance(outcome, Exception):
            raise outcome
        converged = outcome != "nonconverged"
        estimate, p_value = (0.0, 0.5) if not converged else outcome
        term = predictors[self.term_index]
        return FitResult(
            response=response,
            predictors=tuple(predictors),
            coefficients={term: CoefficientEstimate(term, estimate, 0.1, p_value)},
            n_obs=len(data),
            converged=converged,
            message="" if converged else "did not converge",
        )


@pytest.fixture
def abc_data():
    """Three network variables A, B, C and an exposure E."""
    rng = np.random.default_rng(0)
    return pd.DataFrame(rng.normal(size=(50, 4)), columns=["A", "B", "C", "E"])


@pytest.fixture
def abc_edges():
    """A -- B, plus C as an isolated node."""
    return pd.DataFrame({"from": ["A", "C"], "to": ["B", None]})


@pytest.fixture
def abc_fitter():
    """A direct, B ambiguous, C none (exposure side, no confounders)."""
    return ScriptedFitter({
        ("A", ("E",)): (0.5, 0.01),
        ("A", ("E", "B")): (0.4, 0.01),
        ("B", ("E",)): (0.3, 0.02),
        ("B", ("E", "A")): (0.1, 0.3),
        ("C", ("E",)): (0.1, 0.2),
    })


@pytest.fixture
def failing_fitter():
    """Like abc_fitter, but every model of B fails."""
    return ScriptedFitter({
        ("A", ("E",)): (0.5, 0.01),
        ("A", ("E", "B")): (0.4, 0.01),
        ("B", ("E",)): ModelFitFailure("too few complete observations"),
        ("B", ("E", "A")): ModelFitFailure("too few complete observations"),
        ("C", ("E",)): (0.1, 0.2),
    })


@pytest.fixture(scope="session")
def simulated():
    return simulate_data(n=1000, seed=7)


@pytest.fixture(scope="session")
def std_simulated(simulated):
    return standardize(simulated, starts_with("metabolite_"))
