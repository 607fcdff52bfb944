"""Network estimation and graph access.

The network is the skeleton of the PC algorithm: an undirected graph
over the network variables in which an edge means "not conditionally
independent given any subset of the neighbours tested".  It is learned
with causal-learn's order-independent ("stable") PC search using
Gaussian (Fisher-z) conditional-independence tests, and held as a
``networkx.Graph``.  Edge orientations found by PC are discarded.

The link estimators never see the graph itself; they consume the
*edge table*, a two-column ``from`` / ``to`` DataFrame with one row per
undirected edge.  Any structure learner producing that shape can be
substituted for ``estimate_network``.
"""

from typing import Dict, Hashable, List, Optional, Sequence, Set

import networkx as nx
import numpy as np
import pandas as pd
from causallearn.search.ConstraintBased.PC import pc
from causallearn.utils.cit import fisherz

from netcoupler.config import NETWORK_ALPHA
from netcoupler.errors import InvalidColumnError, NodeNotFoundError
from netcoupler.utils import require_numeric, resolve_columns

EDGE_COLUMNS = ["from", "to"]


# ---------------------------------------------------------------------------
# PC skeleton
# ---------------------------------------------------------------------------

def skeleton_from_adjacency(adjacency: np.ndarray, labels: Sequence[Hashable]) -> nx.Graph:
    """Undirected graph over *labels* from a causal-learn endpoint matrix.

    causal-learn encodes ``i -- j`` as ``G[i, j] = G[j, i] = -1`` and
    ``i -> j`` as ``G[i, j] = -1, G[j, i] = 1``; any non-zero entry in
    either direction is an edge of the skeleton.  Every label becomes a
    node, isolated or not, in the given order.
    """
    adjacency = np.asarray(adjacency)
    labels = list(labels)
    p = len(labels)
    if adjacency.shape != (p, p):
        raise ValueError(f"Adjacency matrix shape {adjacency.shape} does not match {p} labels.")
    if len(set(labels)) != p:
        raise ValueError("Node labels must be unique.")

    linked = (adjacency != 0) | (adjacency.T != 0)
    graph = nx.Graph()
    graph.add_nodes_from(labels)
    graph.add_edges_from(
        (labels[i], labels[j]) for i in range(p) for j in range(i + 1, p) if linked[i, j]
    )
    return graph


def estimate_network(
    data: pd.DataFrame,
    cols=None,
    *,
    alpha: float = NETWORK_ALPHA,
    verbose: bool = False,
) -> nx.Graph:
    """Estimate the conditional-dependency network of the selected columns.

    The columns should already be standardized (``standardize``).  Rows
    with a missing value in any selected column are dropped before the
    PC search.

    Parameters
    ----------
    data : DataFrame
        Table holding the network variables.
    cols : column selector
        Network variables (see ``resolve_columns``).
    alpha : float
        Significance level of the Fisher-z tests; an edge is removed as
        soon as one conditioning set gives p >= alpha.
    verbose : bool
        Print a one-line summary.

    Returns
    -------
    networkx.Graph
        Nodes are the selected columns (in selection order, isolated
        ones included); ``graph.graph`` carries ``alpha`` and ``n_obs``.

    Raises
    ------
    InvalidColumnError
        If a selected column is absent or non-numeric, or fewer than two
        columns are selected.
    """
    names = resolve_columns(data, cols)
    require_numeric(data, names)
    if len(names) < 2:
        raise InvalidColumnError(f"Need at least 2 network variables, got {names}")

    X = data.loc[:, names].to_numpy(dtype=np.float64)
    X = X[np.isfinite(X).all(axis=1)]
    n = X.shape[0]
    cg = pc(
        X,
        alpha=alpha,
        indep_test=fisherz,
        stable=True,
        uc_rule=0,
        verbose=False,
        show_progress=False,
    )
    graph = skeleton_from_adjacency(cg.G.graph, names)
    graph.graph.update(alpha=alpha, n_obs=int(n))

    if verbose:
        print(f"[network] {len(names)} variables, n={n} complete rows, "
              f"alpha={alpha}: {graph.number_of_edges()} edges")
    return graph


# ---------------------------------------------------------------------------
# Graph access
# ---------------------------------------------------------------------------

def neighbors(graph: nx.Graph, node) -> Set:
    """Return the set of nodes adjacent to *node*."""
    if node not in graph:
        raise NodeNotFoundError(f"Node '{node}' not in graph.")
    return set(graph.adj[node])


def as_edge_table(graph: nx.Graph, *, include_isolated: bool = True) -> pd.DataFrame:
    """Flatten *graph* into a ``from`` / ``to`` edge table.

    Each undirected edge appears once, with ``from`` the endpoint that
    comes first in the graph's node order; rows are sorted by the
    positions of (from, to).  With *include_isolated*, nodes without
    edges follow as ``(node, <missing>)`` rows so they still count as
    network variables downstream.
    """
    position = {node: i for i, node in enumerate(graph.nodes)}
    pairs = []
    for u, v in graph.edges:
        if position[u] > position[v]:
            u, v = v, u
        pairs.append((u, v))
    pairs.sort(key=lambda e: (position[e[0]], position[e[1]]))
    rows = [{"from": u, "to": v} for u, v in pairs]
    if include_isolated:
        rows += [{"from": node, "to": None} for node in graph.nodes if graph.degree(node) == 0]
    return pd.DataFrame(rows, columns=EDGE_COLUMNS)


def _check_edge_table(edge_table: pd.DataFrame) -> None:
    missing = [c for c in EDGE_COLUMNS if c not in edge_table.columns]
    if missing:
        raise InvalidColumnError(f"Edge table is missing columns {missing}")


def node_order(edge_table: pd.DataFrame) -> List:
    """Distinct node names in first-appearance order (row by row, from then to)."""
    _check_edge_table(edge_table)
    seen = {}
    for u, v in edge_table[EDGE_COLUMNS].itertuples(index=False, name=None):
        for node in (u, v):
            if not pd.isna(node):
                seen.setdefault(node, None)
    return list(seen)


def graph_from_edge_table(edge_table: pd.DataFrame) -> nx.Graph:
    """Rebuild an undirected graph from an edge table (inverse of ``as_edge_table``)."""
    graph = nx.Graph()
    graph.add_nodes_from(node_order(edge_table))
    for u, v in edge_table[EDGE_COLUMNS].itertuples(index=False, name=None):
        if pd.isna(u) or pd.isna(v) or u == v:
            continue
        graph.add_edge(u, v)
    return graph


def neighbor_map(edge_table: pd.DataFrame, nodes: Optional[Sequence] = None) -> Dict:
    """Map every node to its neighbours, ordered by node order.

    *nodes* adds network variables that may not appear in the edge table;
    they map to an empty tuple.
    """
    graph = graph_from_edge_table(edge_table)
    order = list(graph.nodes)
    if nodes is not None:
        graph.add_nodes_from(n for n in nodes if n not in graph)
        order = list(dict.fromkeys([*nodes, *order]))
    position = {node: i for i, node in enumerate(order)}
    return {
        node: tuple(sorted(graph.adj[node], key=position.__getitem__))
        for node in order
    }
