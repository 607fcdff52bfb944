"""Link classification.

Given the ordered model results for one node -- one per adjustment set,
minimal first, fully adjusted last -- decide how the node relates to
the external variable:

    undetermined  any fit failed (or gave a non-finite estimate/p-value)
    none          not significant at the minimal step
    direct        significant at every step, with the same sign throughout
    ambiguous     everything else: significant unadjusted, but lost (or
                  flipped sign) once network neighbours are adjusted for

The rules are applied in that order and depend only on the results and
the threshold, so the same inputs always give the same label.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

from netcoupler.config import DEFAULT_ALPHA
from netcoupler.models import FitResult

NAN = float("nan")


class Classification(str, Enum):
    """Link label of one node; the value is what the output table shows."""

    DIRECT = "direct"
    AMBIGUOUS = "ambiguous"
    NONE = "none"
    UNDETERMINED = "undetermined"


@dataclass(frozen=True)
class ModelResult:
    """The term of interest from one fitted model of one node."""

    node: str
    step: int
    adjustment_set: tuple
    response: str
    term: str
    estimate: float = NAN
    std_error: float = NAN
    p_value: float = NAN
    conf_low: float = NAN
    conf_high: float = NAN
    n_obs: int = 0
    failed: bool = False
    message: str = ""

    @classmethod
    def from_fit(cls, fit: FitResult, *, node, step: int, adjustment_set, term: str) -> "ModelResult":
        coef = fit.coefficient(term)
        return cls(
            node=node,
            step=step,
            adjustment_set=tuple(adjustment_set),
            response=fit.response,
            term=term,
            estimate=coef.estimate,
            std_error=coef.std_error,
            p_value=coef.p_value,
            conf_low=coef.conf_low,
            conf_high=coef.conf_high,
            n_obs=fit.n_obs,
            failed=not fit.converged,
            message=fit.message,
        )

    @classmethod
    def failure(cls, message: str, *, node, step: int, adjustment_set, response: str, term: str) -> "ModelResult":
        return cls(
            node=node,
            step=step,
            adjustment_set=tuple(adjustment_set),
            response=response,
            term=term,
            failed=True,
            message=message,
        )


def _sign(x: float) -> int:
    return (x > 0) - (x < 0)


def classify_links(
    results: Sequence[ModelResult],
    alpha: float = DEFAULT_ALPHA,
    *,
    require_sign_consistency: bool = True,
) -> Tuple[Classification, str]:
    """Classify a node from its ordered model results.

    Parameters
    ----------
    results : sequence of ModelResult
        One per adjustment step, minimal set first.
    alpha : float
        Significance threshold; p < alpha is significant.
    require_sign_consistency : bool
        When true, a direct link also needs the same (non-zero) sign of
        the estimate at every step.

    Returns
    -------
    (Classification, str)
        The label and a short diagnostic explaining it.
    """
    if not results:
        return Classification.UNDETERMINED, "no model results"

    for r in results:
        if r.failed:
            return Classification.UNDETERMINED, f"step {r.step}: {r.message or 'model fit failed'}"
        if not (math.isfinite(r.p_value) and math.isfinite(r.estimate)):
            return Classification.UNDETERMINED, f"step {r.step}: non-finite estimate or p-value"

    first = results[0]
    if first.p_value >= alpha:
        return Classification.NONE, f"step 0: p={first.p_value:.3g} >= {alpha}"

    sign0 = _sign(first.estimate)
    for r in results[1:]:
        if r.p_value >= alpha:
            return Classification.AMBIGUOUS, f"step {r.step}: p={r.p_value:.3g} >= {alpha}"
        if require_sign_consistency and _sign(r.estimate) != sign0:
            return Classification.AMBIGUOUS, f"step {r.step}: estimate changes sign"
    if require_sign_consistency and sign0 == 0:
        return Classification.AMBIGUOUS, "step 0: zero estimate"

    return Classification.DIRECT, f"p < {alpha} at all {len(results)} steps"
