"""Named numeric constants for cvgraph.

Categories
----------
DEFAULT_CUTOFF
    Neighbor-list cutoff used when none is given.  Large enough that every
    candidate pair is retained, so an unconfigured list behaves like a full
    pair list.

NUMERICAL_ZERO
    Tiny positive guard added before division / sqrt so that coincident
    particles never produce a division-by-zero in distance derivatives.

WEIGHT_TOLERANCE
    Default weight below which a stored matrix slot is treated as inactive
    (no edge).

FLOAT_EQ_ATOL
    Absolute tolerance for floating-point equality comparisons.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Neighbor list
# ---------------------------------------------------------------------------
DEFAULT_CUTOFF: float = 1.0e30

# ---------------------------------------------------------------------------
# Distance / derivative guard
# ---------------------------------------------------------------------------
NUMERICAL_ZERO: float = 1e-30

# ---------------------------------------------------------------------------
# Adjacency matrix slot activity
# ---------------------------------------------------------------------------
WEIGHT_TOLERANCE: float = 1e-3

# ---------------------------------------------------------------------------
# Floating-point near-equality
# ---------------------------------------------------------------------------
FLOAT_EQ_ATOL: float = 1e-15
