"""
Global trajectory accumulation, one running pose per estimator.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional

import numpy as np

from regeval.common.data_structures import EstimatorName, PairEstimate
from regeval.utils.math_utils import matrix_to_pose_vector


@dataclass
class GlobalTrajectory:
    """
    Running global pose and its history.

    Attributes:
        running: Current 4x4 global pose, identity at start
        history: Global pose after each processed pair, in call order
    """
    running: np.ndarray = field(default_factory=lambda: np.eye(4))
    history: List[np.ndarray] = field(default_factory=list)

    def advance(self, relative_pose: np.ndarray) -> np.ndarray:
        """Right-multiply the running pose by a relative pose and record it."""
        relative_pose = np.asarray(relative_pose, dtype=float)
        if relative_pose.shape != (4, 4):
            raise ValueError(f"Relative pose must be 4x4, got {relative_pose.shape}")

        self.running = self.running @ relative_pose
        self.history.append(self.running.copy())
        return self.running

    def __len__(self) -> int:
        return len(self.history)


class TrajectoryAccumulator:
    """
    Per-estimator global trajectories owned by an evaluation session.

    advance_all must be called once per processed pair so every
    trajectory keeps the same length and stays comparable index for index.
    """

    def __init__(self, names: Optional[Iterable[EstimatorName]] = None):
        names = list(EstimatorName) if names is None else list(names)
        self.trajectories: Dict[EstimatorName, GlobalTrajectory] = {
            EstimatorName(name): GlobalTrajectory() for name in names
        }

    @property
    def names(self) -> List[EstimatorName]:
        return list(self.trajectories)

    def advance(self, name: EstimatorName, relative_pose: np.ndarray) -> np.ndarray:
        """
        Compose one estimator's running pose with a new relative pose.

        Args:
            name: Estimator name
            relative_pose: 4x4 relative pose of the processed pair

        Returns:
            New running global pose
        """
        return self.trajectories[EstimatorName(name)].advance(relative_pose)

    def advance_all(self, estimates: Mapping[EstimatorName, PairEstimate]) -> None:
        """
        Advance every trajectory with the estimates of one pair.

        Raises:
            KeyError: If an estimator has no estimate; nothing is advanced then
        """
        missing = [name.value for name in self.trajectories if name not in estimates]
        if missing:
            raise KeyError(f"No estimate for: {', '.join(missing)}")

        for name, trajectory in self.trajectories.items():
            trajectory.advance(estimates[name].pose)

    def running(self, name: EstimatorName) -> np.ndarray:
        return self.trajectories[EstimatorName(name)].running.copy()

    def history(self, name: EstimatorName) -> List[np.ndarray]:
        return list(self.trajectories[EstimatorName(name)].history)

    def as_vectors(self, name: EstimatorName) -> np.ndarray:
        """History of one estimator as a (k, 6) array of pose vectors."""
        history = self.trajectories[EstimatorName(name)].history
        if not history:
            return np.zeros((0, 6))
        return np.array([matrix_to_pose_vector(T) for T in history])

    def __len__(self) -> int:
        lengths = {len(t) for t in self.trajectories.values()}
        if len(lengths) > 1:
            raise RuntimeError(f"Trajectories out of step, lengths {sorted(lengths)}")
        return lengths.pop() if lengths else 0
