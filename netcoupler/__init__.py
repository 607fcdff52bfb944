"""
netcoupler -- network-based links between high-dimensional variables and an
exposure or outcome.

Given a set of correlated "network" variables (e.g. metabolites) and one
external variable, netcoupler estimates the conditional-dependency
network among the network variables and, for every node, tests whether
its association with the external variable survives adjustment for its
network neighbours.  Each node is classified as a ``direct``,
``ambiguous`` or ``none`` link (``undetermined`` when a model fit fails).

Key exports
-----------
standardize : function
    Log-transform and z-score (optionally residualize on confounders)
    the network variables.
estimate_network : function
    PC-algorithm skeleton of the network variables as a networkx graph.
as_edge_table : function
    Flatten the graph into the ``from`` / ``to`` edge table consumed by
    the link estimators.
estimate_exposure_links, estimate_outcome_links : functions
    Per-node model sequences and link classification, one row per node.
fit_ols, GLMFitter : fitters
    Model-fitting capability (statsmodels OLS / GLM).
starts_with, ends_with, contains, matches : functions
    Column-selection predicates.
simulate_data : function
    Simulated cohort with a known metabolite network.
"""

from netcoupler.adjustment import Direction, enumerate_adjustment_sets
from netcoupler.classify import Classification, ModelResult, classify_links
from netcoupler.errors import (
    InvalidColumnError, InvalidNodeError, ModelFitFailure, NetCouplerError, NodeNotFoundError,
)
from netcoupler.links import (
    LinkEstimate, estimate_exposure_links, estimate_links, estimate_outcome_links,
)
from netcoupler.models import CoefficientEstimate, FitResult, GLMFitter, fit_ols
from netcoupler.network import (
    as_edge_table, estimate_network, graph_from_edge_table, neighbor_map, neighbors,
    skeleton_from_adjacency,
)
from netcoupler.simulate import simulate_data
from netcoupler.standardize import standardize
from netcoupler.utils import contains, ends_with, matches, resolve_columns, starts_with

__all__ = [
    "standardize",
    "estimate_network",
    "skeleton_from_adjacency",
    "as_edge_table",
    "graph_from_edge_table",
    "neighbors",
    "neighbor_map",
    "Direction",
    "enumerate_adjustment_sets",
    "Classification",
    "ModelResult",
    "classify_links",
    "LinkEstimate",
    "estimate_links",
    "estimate_exposure_links",
    "estimate_outcome_links",
    "CoefficientEstimate",
    "FitResult",
    "fit_ols",
    "GLMFitter",
    "resolve_columns",
    "starts_with",
    "ends_with",
    "contains",
    "matches",
    "simulate_data",
    "NetCouplerError",
    "InvalidColumnError",
    "NodeNotFoundError",
    "InvalidNodeError",
    "ModelFitFailure",
]
