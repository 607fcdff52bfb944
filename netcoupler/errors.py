"""Exception types raised by netcoupler.

Column and graph errors describe a malformed request and are raised
immediately.  ``ModelFitFailure`` is data dependent: the link estimators
catch it per node and report the node as undetermined instead of
aborting the run.
"""


class NetCouplerError(Exception):
    """Base class for all netcoupler errors."""


class InvalidColumnError(NetCouplerError, ValueError):
    """A requested column is absent from the data or is not numeric."""


class NodeNotFoundError(NetCouplerError, LookupError):
    """A graph query referenced a node that is not in the graph."""


class InvalidNodeError(NodeNotFoundError):
    """An adjustment-set query referenced a node outside the neighbour map."""


class ModelFitFailure(NetCouplerError, RuntimeError):
    """A model could not be fitted (too few complete rows, missing term, ...)."""
