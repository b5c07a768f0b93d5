"""
Covariance-weighted fusion of two relative pose estimates.
"""

import logging

import numpy as np

from regeval.common.data_structures import Covariance
from regeval.utils.math_utils import (
    condition_number, matrix_to_pose_vector, pose_vector_to_matrix, wrap_angle
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONDITION = 1e12


def is_usable(cov: Covariance, max_condition: float = DEFAULT_MAX_CONDITION) -> bool:
    """
    Whether a covariance can be inverted for weighting.

    The condition number is checked before any inversion; ill-conditioned
    matrices count as unavailable just like missing ones.
    """
    if cov is None or not cov.available:
        return False

    matrix = cov.matrix
    if matrix.shape != (6, 6) or not np.all(np.isfinite(matrix)):
        return False

    cond = condition_number(matrix)
    if cond > max_condition:
        logger.debug(f"Covariance rejected, condition number {cond:.3g}")
        return False
    return True


def weighted_pose_vector(x_a: np.ndarray, cov_a: np.ndarray,
                         x_b: np.ndarray, cov_b: np.ndarray) -> np.ndarray:
    """
    Inverse-covariance weighted mean of two 6-parameter poses.

    x = (I_a + I_b)^-1 (I_a x_a + I_b x_b), I = cov^-1.
    Angles of x_a are moved to the branch nearest x_b first.
    """
    x_a = np.asarray(x_a, dtype=float).copy()
    x_b = np.asarray(x_b, dtype=float)
    x_a[3:] = x_b[3:] + wrap_angle(x_a[3:] - x_b[3:])

    info_a = np.linalg.inv(cov_a)
    info_b = np.linalg.inv(cov_b)
    return np.linalg.solve(info_a + info_b, info_a @ x_a + info_b @ x_b)


def fuse(pose_a: np.ndarray, cov_a: Covariance,
         pose_b: np.ndarray, cov_b: Covariance,
         max_condition: float = DEFAULT_MAX_CONDITION) -> np.ndarray:
    """
    Blend two pose estimates according to their uncertainty.

    Args:
        pose_a: 4x4 prior estimate (e.g. odometry)
        cov_a: Uncertainty of pose_a
        pose_b: 4x4 new estimate (e.g. registration)
        cov_b: Uncertainty of pose_b
        max_condition: Largest accepted covariance condition number

    Returns:
        Fused 4x4 pose; pose_b unchanged when either covariance is
        unavailable or degenerate
    """
    pose_b = np.asarray(pose_b, dtype=float)
    if not is_usable(cov_b, max_condition):
        logger.debug("Estimate covariance unavailable, keeping estimate")
        return pose_b.copy()
    if not is_usable(cov_a, max_condition):
        logger.debug("Prior covariance unavailable, keeping estimate")
        return pose_b.copy()

    x = weighted_pose_vector(
        matrix_to_pose_vector(pose_a), cov_a.matrix,
        matrix_to_pose_vector(pose_b), cov_b.matrix
    )
    return pose_vector_to_matrix(x)
