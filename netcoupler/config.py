"""Package-wide constants.

This module centralizes every tuneable default of the pipeline --
significance thresholds, the PC test level, the adjustment-set
policy, numerical floors -- so that scripts and tests import a single
source of truth.

Nothing here is read as ambient state at call time: each public
function takes the matching value as an explicit keyword argument whose
default is the constant below.
"""

# ---------------------------------------------------------------------------
# Numerics
# ---------------------------------------------------------------------------

# Numerical floor added to standard deviations to prevent division by
# zero when z-scoring near-constant columns.
EPS = 1e-12

# Default random seed for the simulated example data.
SEED = 42

# ---------------------------------------------------------------------------
# Network estimation
# ---------------------------------------------------------------------------

# Significance level of the Fisher-z conditional-independence tests used
# by the PC search (causal-learn `fisherz`).  An edge is removed as soon
# as one conditioning set gives p >= NETWORK_ALPHA.  The stricter than
# usual level keeps the network sparse for high-dimensional data.
NETWORK_ALPHA = 0.01

# ---------------------------------------------------------------------------
# Link estimation
# ---------------------------------------------------------------------------

# Significance threshold used to classify exposure/outcome links.
DEFAULT_ALPHA = 0.05

# Adjustment-set policy.  "minimal" fits two models per node (no
# neighbours, all neighbours); "cumulative" adds the neighbours one at a
# time between those two extremes.
ADJUSTMENT_STEPS = "minimal"

# A model whose residual degrees of freedom (complete rows minus fitted
# parameters) fall below this is treated as a failed fit.
MIN_RESIDUAL_DF = 1
