"""Model-fitting capability used by the link estimators.

A *fitter* is any callable

    fitter(response: str, predictors: Sequence[str], data: DataFrame) -> FitResult

The link estimators only ever look at the returned ``FitResult``: the
per-term estimate, standard error and p-value, the number of complete
rows used and a convergence flag.  Two fitters are provided:

* ``fit_ols``   -- ordinary least squares (``statsmodels.api.OLS``).
* ``GLMFitter`` -- generalized linear model with a chosen family
  (``statsmodels.api.GLM``), e.g. ``GLMFitter("binomial")`` for a binary
  outcome.

Both drop incomplete rows per model, using only the variables that
appear in that model, and expand categorical predictors into
treatment-coded dummy columns named ``<column>_<level>``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence

import numpy as np
import pandas as pd
import statsmodels.api as sm
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from netcoupler.config import MIN_RESIDUAL_DF
from netcoupler.errors import ModelFitFailure


@dataclass(frozen=True)
class CoefficientEstimate:
    """One fitted term: point estimate, standard error, p-value, 95% CI."""

    term: str
    estimate: float
    std_error: float
    p_value: float
    conf_low: float = float("nan")
    conf_high: float = float("nan")


@dataclass(frozen=True)
class FitResult:
    """Output of a fitter for one (response, predictors, data) call.

    ``terms`` maps each predictor to the design-matrix columns it
    produced: itself for a numeric predictor, one ``<name>_<level>``
    dummy per non-reference level for a categorical one.
    """

    response: str
    predictors: tuple
    coefficients: Dict[str, CoefficientEstimate]
    n_obs: int
    converged: bool = True
    family: str = "gaussian"
    message: str = ""
    terms: Dict[str, tuple] = field(default_factory=dict)

    def coefficient(self, name: str) -> CoefficientEstimate:
        """Return the coefficient for predictor (or fitted term) *name*.

        A categorical predictor resolves to its dummy term only when it
        has exactly one non-reference level; a single coefficient cannot
        summarize more levels than that, so those raise.

        Raises
        ------
        ModelFitFailure
            If *name* is not in the model, or maps to zero or several
            fitted terms.
        """
        if name in self.terms:
            mapped = self.terms[name]
            if len(mapped) != 1:
                raise ModelFitFailure(
                    f"Predictor '{name}' has {len(mapped)} fitted terms {list(mapped)}; "
                    f"a link needs exactly one (use a binary or numeric variable)"
                )
            return self.coefficients[mapped[0]]
        if name in self.coefficients:
            return self.coefficients[name]
        raise ModelFitFailure(
            f"Term '{name}' not in fitted model for '{self.response}' "
            f"(terms: {list(self.coefficients)})"
        )


def design_matrix(response: str, predictors: Sequence[str], data: pd.DataFrame):
    """Complete-case response vector and design matrix (with intercept).

    Returns
    -------
    y : Series
    X : DataFrame
        ``const`` followed by each predictor's columns, in predictor order.
    predictors : tuple of str
    terms : dict
        predictor -> tuple of its design-matrix columns.
    """
    predictors = [p for p in dict.fromkeys(predictors) if p != response]
    frame = data.loc[:, [response, *predictors]].dropna()
    y = frame[response].astype(float)

    blocks = [pd.DataFrame({"const": 1.0}, index=frame.index)]
    terms = {}
    for p in predictors:
        col = frame[p]
        if is_bool_dtype(col) or not is_numeric_dtype(col):
            block = pd.get_dummies(col, prefix=p, drop_first=True)
        else:
            block = col.to_frame()
        blocks.append(block)
        terms[p] = tuple(str(c) for c in block.columns)
    X = pd.concat(blocks, axis=1).astype(float)

    resid_df = X.shape[0] - X.shape[1]
    if resid_df < MIN_RESIDUAL_DF:
        raise ModelFitFailure(
            f"Too few complete observations for '{response}' ~ {predictors}: "
            f"n={X.shape[0]}, parameters={X.shape[1]}"
        )
    return y, X, tuple(predictors), terms


def _coefficients(res) -> Dict[str, CoefficientEstimate]:
    ci = res.conf_int()
    out = {}
    for term in res.params.index:
        if term == "const":
            continue
        out[str(term)] = CoefficientEstimate(
            term=str(term),
            estimate=float(res.params[term]),
            std_error=float(res.bse[term]),
            p_value=float(res.pvalues[term]),
            conf_low=float(ci.loc[term, 0]),
            conf_high=float(ci.loc[term, 1]),
        )
    return out


def fit_ols(response: str, predictors: Sequence[str], data: pd.DataFrame) -> FitResult:
    """Ordinary least squares fit of *response* on *predictors*."""
    y, X, predictors, terms = design_matrix(response, predictors, data)
    res = sm.OLS(y, X).fit()
    return FitResult(
        response=response,
        predictors=predictors,
        coefficients=_coefficients(res),
        n_obs=int(res.nobs),
        terms=terms,
    )


_FAMILIES = {
    "gaussian": sm.families.Gaussian,
    "binomial": sm.families.Binomial,
    "poisson": sm.families.Poisson,
    "gamma": sm.families.Gamma,
}


@dataclass(frozen=True)
class GLMFitter:
    """Generalized linear model fitter.

    Parameters
    ----------
    family : str or statsmodels family instance, optional
        ``"gaussian"`` (default), ``"binomial"``, ``"poisson"``,
        ``"gamma"``, or any ``statsmodels.genmod.families.Family``.
    maxiter : int
        Maximum IRLS iterations; a fit that has not converged by then is
        reported with ``converged=False``.
    """

    family: Optional[object] = None
    maxiter: int = 100
    _family_name: str = field(init=False, repr=False, default="gaussian")

    def __post_init__(self):
        fam = self.family
        if fam is None:
            name = "gaussian"
        elif isinstance(fam, str):
            name = fam.lower()
            if name not in _FAMILIES:
                raise ValueError(
                    f"Unknown GLM family '{fam}'; expected one of {sorted(_FAMILIES)}"
                )
        else:
            name = type(fam).__name__.lower()
        object.__setattr__(self, "_family_name", name)

    def _make_family(self):
        if self.family is None or isinstance(self.family, str):
            return _FAMILIES[self._family_name]()
        return self.family

    def __call__(self, response: str, predictors: Sequence[str], data: pd.DataFrame) -> FitResult:
        y, X, predictors, terms = design_matrix(response, predictors, data)
        res = sm.GLM(y, X, family=self._make_family()).fit(maxiter=self.maxiter)
        converged = bool(getattr(res, "converged", True))
        coefs = _coefficients(res)
        finite = all(np.isfinite(c.estimate) and np.isfinite(c.std_error) for c in coefs.values())
        message = ""
        if not converged:
            message = f"GLM ({self._family_name}) did not converge in {self.maxiter} iterations"
        elif not finite:
            converged = False
            message = f"GLM ({self._family_name}) produced non-finite estimates"
        return FitResult(
            response=response,
            predictors=predictors,
            coefficients=coefs,
            n_obs=int(res.nobs),
            converged=converged,
            family=self._family_name,
            message=message,
            terms=terms,
        )
