"""Exposure-side and outcome-side link estimation.

For every network node the estimators

  1. enumerate the adjustment sets (``adjustment.enumerate_adjustment_sets``),
  2. fit one model per set with the supplied fitter
     (exposure side:  node ~ exposure + set;
      outcome side:   outcome ~ node + set),
  3. classify the node from the ordered results
     (``classify.classify_links``),

and collect one row per node into a DataFrame.

Nodes are independent of each other, so the per-node work can be handed
to any ``concurrent.futures.Executor``.  The output is assembled in node
order whatever the order tasks finish in, so sequential and parallel
runs give identical tables.  A fit that raises, or does not converge,
never aborts the run: the node is reported as ``undetermined`` with the
cause in the ``diagnostic`` column.

Usage::

    from netcoupler import (standardize, estimate_network, as_edge_table,
                            estimate_exposure_links, starts_with)

    std = standardize(df, starts_with("metabolite_"))
    edges = as_edge_table(estimate_network(std, starts_with("metabolite_")))
    links = estimate_exposure_links(std, edges, exposure="exposure",
                                    adjustment_vars=["age", "sex"])
"""

from __future__ import annotations

from collections import Counter
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from typing import Callable, List, Optional, Sequence

import numpy as np
import pandas as pd

from netcoupler.adjustment import STEP_POLICIES, Direction, enumerate_adjustment_sets
from netcoupler.classify import Classification, ModelResult, classify_links
from netcoupler.config import ADJUSTMENT_STEPS, DEFAULT_ALPHA
from netcoupler.models import fit_ols
from netcoupler.network import neighbor_map, node_order
from netcoupler.utils import require_columns, require_numeric

LINK_COLUMNS = [
    "index_node", "external_var", "direction", "n_neighbors", "neighbors",
    "classification", "alpha", "n_steps",
    "estimate_unadjusted", "std_error_unadjusted", "p_value_unadjusted", "n_obs_unadjusted",
    "estimate_adjusted", "std_error_adjusted", "p_value_adjusted", "n_obs_adjusted",
    "conf_low_adjusted", "conf_high_adjusted",
    "diagnostic", "model_results",
]


@dataclass(frozen=True)
class LinkEstimate:
    """Final record for one node: model trail plus classification."""

    node: str
    external_var: str
    direction: Direction
    neighbors: tuple
    adjustment_sets: tuple
    results: tuple
    classification: Classification
    alpha: float
    diagnostic: str = ""

    def to_record(self, *, exponentiate: bool = False) -> dict:
        """Flatten to one output row (minimal and fully adjusted steps)."""
        scale = (lambda v: float(np.exp(v))) if exponentiate else (lambda v: v)
        nan = float("nan")

        def _step(r: Optional[ModelResult], suffix: str) -> dict:
            if r is None or r.failed:
                return {f"estimate_{suffix}": nan, f"std_error_{suffix}": nan,
                        f"p_value_{suffix}": nan, f"n_obs_{suffix}": 0 if r is None else r.n_obs}
            return {
                f"estimate_{suffix}": scale(r.estimate),
                f"std_error_{suffix}": r.std_error,
                f"p_value_{suffix}": r.p_value,
                f"n_obs_{suffix}": r.n_obs,
            }

        first = self.results[0] if self.results else None
        last = self.results[-1] if self.results else None
        rec = {
            "index_node": self.node,
            "external_var": self.external_var,
            "direction": self.direction.value,
            "n_neighbors": len(self.neighbors),
            "neighbors": self.neighbors,
            "classification": self.classification.value,
            "alpha": self.alpha,
            "n_steps": len(self.results),
        }
        rec.update(_step(first, "unadjusted"))
        rec.update(_step(last, "adjusted"))
        usable = last is not None and not last.failed
        rec["conf_low_adjusted"] = scale(last.conf_low) if usable else nan
        rec["conf_high_adjusted"] = scale(last.conf_high) if usable else nan
        rec["diagnostic"] = self.diagnostic
        rec["model_results"] = self.results
        return rec

    def summary(self) -> str:
        """Return a readable table of the model trail."""
        lines = [
            f"{self.direction.value} link  {self.external_var} -- {self.node}: "
            f"{self.classification.value}  (alpha={self.alpha})",
            f"neighbors: {', '.join(map(str, self.neighbors)) or '(none)'}",
            f"  {self.diagnostic}",
            "",
            f"{'step':>4s}  {'n_adj':>5s}  {'estimate':>10s}  {'std_err':>9s}  "
            f"{'p_value':>10s}  {'n':>6s}",
            "-" * 54,
        ]
        for r in self.results:
            if r.failed:
                lines.append(f"{r.step:4d}  {len(r.adjustment_set):5d}  failed: {r.message}")
                continue
            lines.append(
                f"{r.step:4d}  {len(r.adjustment_set):5d}  {r.estimate:+10.4f}  "
                f"{r.std_error:9.4f}  {r.p_value:10.6f}  {r.n_obs:6d}"
            )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Per-node pipeline
# ---------------------------------------------------------------------------

def _fit_steps(node, adjustment_sets, *, data, external, direction, model_fn) -> List[ModelResult]:
    results = []
    for step, adj in enumerate(adjustment_sets):
        response, predictors, term = direction.model_terms(node, external, adj)
        try:
            fit = model_fn(response, predictors, data)
            result = ModelResult.from_fit(fit, node=node, step=step, adjustment_set=adj, term=term)
        except Exception as exc:
            result = ModelResult.failure(
                f"{type(exc).__name__}: {exc}",
                node=node, step=step, adjustment_set=adj, response=response, term=term,
            )
        results.append(result)
    return results


def _estimate_node(
    node,
    *,
    data: pd.DataFrame,
    neighbors_of: dict,
    external: str,
    direction: Direction,
    adjustment_vars: tuple,
    model_fn: Callable,
    alpha: float,
    steps: str,
    require_sign_consistency: bool,
) -> LinkEstimate:
    """Enumerate -> fit -> classify for one node.  Never raises."""
    nbrs = tuple(neighbors_of.get(node, ()))
    try:
        adjustment_sets = enumerate_adjustment_sets(
            node, neighbors_of, adjustment_vars, direction, steps=steps,
        )
        results = _fit_steps(
            node, adjustment_sets,
            data=data, external=external, direction=direction, model_fn=model_fn,
        )
        label, diagnostic = classify_links(
            results, alpha, require_sign_consistency=require_sign_consistency,
        )
    except Exception as exc:
        return LinkEstimate(
            node=node, external_var=external, direction=direction, neighbors=nbrs,
            adjustment_sets=(), results=(), classification=Classification.UNDETERMINED,
            alpha=alpha, diagnostic=f"{type(exc).__name__}: {exc}",
        )
    return LinkEstimate(
        node=node, external_var=external, direction=direction, neighbors=nbrs,
        adjustment_sets=tuple(adjustment_sets), results=tuple(results),
        classification=label, alpha=alpha, diagnostic=diagnostic,
    )


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def links_to_frame(estimates: Sequence[LinkEstimate], *, exponentiate: bool = False) -> pd.DataFrame:
    """One row per LinkEstimate, in the given order."""
    records = [e.to_record(exponentiate=exponentiate) for e in estimates]
    return pd.DataFrame(records, columns=LINK_COLUMNS)


def estimate_links(
    data: pd.DataFrame,
    edge_table: pd.DataFrame,
    external: str,
    direction: Direction,
    model_fn: Callable = fit_ols,
    adjustment_vars: Sequence[str] = (),
    *,
    alpha: float = DEFAULT_ALPHA,
    steps: str = ADJUSTMENT_STEPS,
    require_sign_consistency: bool = True,
    nodes: Optional[Sequence[str]] = None,
    executor: Optional[Executor] = None,
    exponentiate: bool = False,
    verbose: bool = False,
) -> pd.DataFrame:
    """Classify the link between every network node and *external*.

    Parameters
    ----------
    data : DataFrame
        Standardized table holding the network variables, *external* and
        the adjustment variables.
    edge_table : DataFrame
        ``from`` / ``to`` edges (``as_edge_table``).
    external : str
        Exposure or outcome column.
    direction : Direction
        ``Direction.EXPOSURE`` or ``Direction.OUTCOME``.
    model_fn : callable
        Fitter ``(response, predictors, data) -> FitResult``, e.g.
        ``fit_ols`` or ``GLMFitter("binomial")``.
    adjustment_vars : sequence of str
        Confounders included in every model.
    alpha : float
        Classification significance threshold.
    steps : {"minimal", "cumulative"}
        Adjustment-set policy (see ``enumerate_adjustment_sets``).
    require_sign_consistency : bool
        A direct link also needs the same sign of the estimate at every
        step (see ``classify_links``).
    nodes : sequence of str, optional
        Network variables to process.  Defaults to every node in
        *edge_table*; names not in the edge table are isolated nodes.
        Their neighbours from *edge_table* must be columns of *data* too.
    executor : concurrent.futures.Executor, optional
        Runs one task per node.  ``None`` runs sequentially.  With a
        process pool, *model_fn* must be picklable (``fit_ols`` and
        ``GLMFitter`` are).
    exponentiate : bool
        Report exp(estimate) and exp(confidence limits), e.g. odds ratios
        for a logistic outcome model.
    verbose : bool
        Print progress.

    Returns
    -------
    DataFrame
        One row per node, columns ``LINK_COLUMNS``.

    Raises
    ------
    InvalidColumnError
        If *external*, an adjustment variable, a node or a neighbour is
        not a column of *data*, a network column is not numeric, or
        *edge_table* lacks ``from`` / ``to``.
    """
    direction = Direction(direction)
    if not 0.0 < alpha < 1.0:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")
    if steps not in STEP_POLICIES:
        raise ValueError(f"Unknown adjustment step policy '{steps}'; expected one of {STEP_POLICIES}")
    if isinstance(adjustment_vars, str):
        adjustment_vars = [adjustment_vars]
    adjustment_vars = tuple(v for v in dict.fromkeys(adjustment_vars) if v != external)

    node_list = list(dict.fromkeys(nodes)) if nodes is not None else node_order(edge_table)
    neighbors_of = neighbor_map(edge_table, node_list)
    require_columns(data, [external], what=f"{direction.value.capitalize()} variable")
    require_columns(data, adjustment_vars, what="Adjustment variables")
    # Neighbours enter the adjustment sets, so they are checked with the nodes.
    network_vars = list(neighbors_of)
    require_columns(data, network_vars, what="Network variables")
    require_numeric(data, network_vars)

    if verbose:
        print(f"[{direction.value}-links] {len(node_list)} nodes, {direction.value}='{external}', "
              f"adjusting for {list(adjustment_vars) or 'nothing'}, steps={steps}")

    task = partial(
        _estimate_node,
        data=data,
        neighbors_of=neighbors_of,
        external=external,
        direction=direction,
        adjustment_vars=adjustment_vars,
        model_fn=model_fn,
        alpha=alpha,
        steps=steps,
        require_sign_consistency=require_sign_consistency,
    )
    if executor is None:
        estimates = [task(node) for node in node_list]
    else:
        futures = {node: executor.submit(task, node) for node in node_list}
        estimates = [futures[node].result() for node in node_list]

    if verbose:
        counts = Counter(e.classification.value for e in estimates)
        print("  " + ", ".join(f"{c.value}={counts.get(c.value, 0)}" for c in Classification))

    return links_to_frame(estimates, exponentiate=exponentiate)


def estimate_exposure_links(
    data: pd.DataFrame,
    edge_table: pd.DataFrame,
    exposure: str,
    model_fn: Callable = fit_ols,
    adjustment_vars: Sequence[str] = (),
    **kwargs,
) -> pd.DataFrame:
    """Classify exposure -> node links (models: node ~ exposure + adjustment set).

    Keyword arguments are those of ``estimate_links``.
    """
    return estimate_links(
        data, edge_table, exposure, Direction.EXPOSURE, model_fn, adjustment_vars, **kwargs,
    )


def estimate_outcome_links(
    data: pd.DataFrame,
    edge_table: pd.DataFrame,
    outcome: str,
    model_fn: Callable = fit_ols,
    adjustment_vars: Sequence[str] = (),
    **kwargs,
) -> pd.DataFrame:
    """Classify node -> outcome links (models: outcome ~ node + adjustment set).

    Keyword arguments are those of ``estimate_links``.
    """
    return estimate_links(
        data, edge_table, outcome, Direction.OUTCOME, model_fn, adjustment_vars, **kwargs,
    )
