"""
Core data structures for the score evaluation harness.
Following the naming convention: T_rel_X is the pose of scan idx2 in the frame of scan idx1.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any, Tuple

import numpy as np

from regeval.utils.math_utils import (
    pose_vector_to_matrix, matrix_to_pose_vector, relative_pose
)


class EstimatorName(str, Enum):
    """The fixed set of compared estimators, one global trajectory each."""
    ODOMETRY = "odometry"
    GROUND_TRUTH = "ground_truth"
    REGISTRATION = "registration"
    CONSTRAINED_REGISTRATION = "constrained_registration"
    POINT_SET_ALIGNMENT = "point_set_alignment"
    FUSED_REGISTRATION = "fused_registration"
    FUSED_POINT_SET_ALIGNMENT = "fused_point_set_alignment"


# ============================================================================
# Uncertainty
# ============================================================================

@dataclass(frozen=True, eq=False)
class Covariance:
    """
    6x6 pose covariance, or an explicit "unavailable" marker.

    Estimators that cannot provide an uncertainty return
    Covariance.unavailable() rather than raising.
    """
    matrix: Optional[np.ndarray] = None

    @classmethod
    def of(cls, matrix: np.ndarray) -> 'Covariance':
        """Wrap a covariance matrix."""
        matrix = np.array(matrix, dtype=float)
        if matrix.shape != (6, 6):
            raise ValueError(f"Covariance must be 6x6, got {matrix.shape}")
        matrix.setflags(write=False)
        return cls(matrix=matrix)

    @classmethod
    def unavailable(cls) -> 'Covariance':
        """Marker for an estimate without uncertainty."""
        return cls(matrix=None)

    @property
    def available(self) -> bool:
        return self.matrix is not None


# ============================================================================
# Score Grid
# ============================================================================

@dataclass(frozen=True, eq=False)
class PoseOffset:
    """
    Candidate perturbation of the odometry pose.

    Attributes:
        vector: [x, y, z, roll, pitch, yaw] offset
        row: Index of the outer sweep value (0 for single-axis sweeps)
        index: Position in generation order
    """
    vector: np.ndarray
    row: int = 0
    index: int = 0

    def __post_init__(self):
        vector = np.array(self.vector, dtype=float).flatten()
        if vector.shape != (6,):
            raise ValueError(f"Offset must have 6 parameters, got {vector.shape[0]}")
        vector.setflags(write=False)
        object.__setattr__(self, 'vector', vector)

    @property
    def matrix(self) -> np.ndarray:
        """Offset as a 4x4 transformation matrix."""
        return pose_vector_to_matrix(self.vector)


@dataclass(frozen=True, eq=False)
class ScoreSample:
    """Objective values at one grid offset, with and without the soft constraint."""
    offset: PoseOffset
    score_plain: float
    score_constrained: float

    def score(self, constrained: bool = False) -> float:
        return self.score_constrained if constrained else self.score_plain


# ============================================================================
# Pair Estimates
# ============================================================================

@dataclass
class PairEstimate:
    """Relative pose estimated for one scan pair by one estimator."""
    pose: np.ndarray  # 4x4, pose of scan idx2 in the frame of scan idx1
    covariance: Covariance = field(default_factory=Covariance.unavailable)

    def __post_init__(self):
        self.pose = np.asarray(self.pose, dtype=float)
        if self.pose.shape != (4, 4):
            raise ValueError(f"Pose must be 4x4, got {self.pose.shape}")

    def to_vector(self) -> np.ndarray:
        return matrix_to_pose_vector(self.pose)


@dataclass
class PairResult:
    """
    Everything computed for one evaluated scan pair.

    Attributes:
        idx1: Index of the fixed scan
        idx2: Index of the moving scan
        axis_a: Outer sweep axis
        axis_b: Inner sweep axis
        samples: Score grid in generation order
        estimates: Relative pose of every estimator
        aligned_points: Final moved scan of the point-set alignment (optional)
    """
    idx1: int
    idx2: int
    axis_a: int
    axis_b: int
    samples: List[ScoreSample]
    estimates: Dict[EstimatorName, PairEstimate]
    aligned_points: Optional[np.ndarray] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        missing = [name.value for name in EstimatorName if name not in self.estimates]
        if missing:
            raise ValueError(f"Missing estimates: {', '.join(missing)}")

    @property
    def odometry_pose(self) -> np.ndarray:
        return self.estimates[EstimatorName.ODOMETRY].pose

    def pose_in_odom_frame(self, name: EstimatorName) -> np.ndarray:
        """Estimate expressed relative to the odometry prediction, the grid's origin."""
        return relative_pose(self.odometry_pose, self.estimates[name].pose)

    def marker(self, name: EstimatorName, axis_a: Optional[int] = None,
               axis_b: Optional[int] = None) -> Tuple[float, float]:
        """Estimate projected on the two swept axes, in the odometry frame."""
        axis_a = self.axis_a if axis_a is None else axis_a
        axis_b = self.axis_b if axis_b is None else axis_b
        v = matrix_to_pose_vector(self.pose_in_odom_frame(name))
        return float(v[axis_a]), float(v[axis_b])

    def to_dict(self) -> Dict[str, Any]:
        """Summary for logging and tables (no score grid)."""
        return {
            "idx1": self.idx1,
            "idx2": self.idx2,
            "num_samples": len(self.samples),
            "estimates": {
                name.value: {
                    "pose": matrix_to_pose_vector(est.pose).tolist(),
                    "has_covariance": est.covariance.available,
                }
                for name, est in self.estimates.items()
            },
            "metadata": self.metadata,
        }
