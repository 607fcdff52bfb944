"""Adjustment-set enumeration.

For one network node the link estimators fit a sequence of models, each
conditioning on a larger set of variables.  The sequence always starts
at the user confounders alone (no network structure) and ends at the
confounders plus every network neighbour of the node; each set contains
the one before it.
"""

from enum import Enum
from typing import Dict, List, Sequence, Tuple

from netcoupler.config import ADJUSTMENT_STEPS
from netcoupler.errors import InvalidNodeError

STEP_POLICIES = ("minimal", "cumulative")


class Direction(str, Enum):
    """Which side of the network the external variable sits on.

    EXPOSURE: ``node ~ exposure + adjustment set``, the exposure
    coefficient is the effect of interest.
    OUTCOME: ``outcome ~ node + adjustment set``, the node coefficient
    is the effect of interest.
    """

    EXPOSURE = "exposure"
    OUTCOME = "outcome"

    def model_terms(self, node: str, external: str, adjustment_set: Sequence[str]) -> Tuple[str, List[str], str]:
        """Return (response, predictors, term of interest) for one model."""
        if self is Direction.EXPOSURE:
            return node, [external, *adjustment_set], external
        return external, [node, *adjustment_set], node


def _ordered_union(*parts) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(v for part in parts for v in part))


def enumerate_adjustment_sets(
    node,
    neighbor_map: Dict,
    confounders: Sequence[str] = (),
    direction: Direction = Direction.EXPOSURE,
    *,
    steps: str = ADJUSTMENT_STEPS,
) -> List[Tuple[str, ...]]:
    """Ordered adjustment sets for *node*, from minimal to fully adjusted.

    Parameters
    ----------
    node : hashable
        Network node the models are fitted for.
    neighbor_map : dict
        node -> ordered neighbours (``network.neighbor_map``).
    confounders : sequence of str
        User adjustment variables, included at every step.
    direction : Direction or str
        Side of the link, validated here (``ValueError`` for anything but
        ``"exposure"`` / ``"outcome"``).  Neighbour sets are symmetric, so
        the sets themselves do not depend on it.
    steps : {"minimal", "cumulative"}
        ``"minimal"``: [confounders, confounders + neighbours].
        ``"cumulative"``: confounders, then one neighbour added at a
        time (in neighbour order) up to the full set.

    Returns
    -------
    list of tuple
        At least two sets.  With no neighbours the two sets coincide.

    Raises
    ------
    InvalidNodeError
        If *node* is not a key of *neighbor_map*.
    ValueError
        For an unknown *direction* or *steps* policy.
    """
    if node not in neighbor_map:
        raise InvalidNodeError(f"Node '{node}' not in neighbour map.")
    if steps not in STEP_POLICIES:
        raise ValueError(f"Unknown adjustment step policy '{steps}'; expected one of {STEP_POLICIES}")
    direction = Direction(direction)

    # The node itself is never an adjustment variable for its own model.
    base = _ordered_union([c for c in confounders if c != node])
    nbrs = [n for n in neighbor_map[node] if n != node]

    if steps == "minimal":
        return [base, _ordered_union(base, nbrs)]

    sets = [base]
    for k in range(1, len(nbrs) + 1):
        sets.append(_ordered_union(base, nbrs[:k]))
    if len(sets) == 1:
        sets.append(base)
    return sets
