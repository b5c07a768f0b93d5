"""
Odometry motion model: relative pose -> 6x6 covariance.
"""

import numpy as np

from regeval.common.config import MotionModelParams
from regeval.utils.math_utils import rotation_angle


class MotionModel3d:
    """
    Diagonal odometry uncertainty growing with distance and rotation.

    Standard deviations per axis group:
        forward (x):             Dd*dist + Dt*rot + Dd_offset
        side (y, z):             Cd*dist + Ct*rot + Cd_offset
        rotation (roll..yaw):    Td*dist + Tt*rot + Td_offset
    """

    def __init__(self, params: MotionModelParams = None):
        self.params = params if params is not None else MotionModelParams()

    def set_params(self, params: MotionModelParams):
        self.params = params

    def std_devs(self, relative_pose: np.ndarray) -> np.ndarray:
        """Per-axis standard deviations for a relative motion."""
        relative_pose = np.asarray(relative_pose, dtype=float)
        p = self.params

        dist = float(np.linalg.norm(relative_pose[:3, 3]))
        rot = rotation_angle(relative_pose[:3, :3])

        forward = p.Dd * dist + p.Dt * rot + p.Dd_offset
        side = p.Cd * dist + p.Ct * rot + p.Cd_offset
        rotational = p.Td * dist + p.Tt * rot + p.Td_offset

        return np.array([forward, side, side, rotational, rotational, rotational])

    def covariance_for(self, relative_pose: np.ndarray) -> np.ndarray:
        """
        Covariance of a relative odometry pose.

        Args:
            relative_pose: 4x4 relative motion

        Returns:
            6x6 diagonal covariance over [x, y, z, roll, pitch, yaw]
        """
        return np.diag(self.std_devs(relative_pose) ** 2)
