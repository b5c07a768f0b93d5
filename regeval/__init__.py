"""
Registration score-grid evaluation harness.

Compares pairwise pose estimators (registration, soft-constrained
registration, point-set alignment, odometry and covariance-weighted
fusions) on scan pairs and accumulates one global trajectory per estimator.
"""

__version__ = "0.1.0"
