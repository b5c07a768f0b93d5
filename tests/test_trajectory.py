"""
Unit tests for global trajectory accumulation.
"""

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal

from regeval.common.data_structures import EstimatorName, PairEstimate
from regeval.evaluation.trajectory import GlobalTrajectory, TrajectoryAccumulator
from regeval.utils.math_utils import pose_vector_to_matrix


@pytest.fixture
def relative_poses():
    np.random.seed(7)
    return [
        pose_vector_to_matrix(np.concatenate([np.random.randn(3), 0.1 * np.random.randn(3)]))
        for _ in range(5)
    ]


class TestGlobalTrajectory:

    def test_starts_at_identity(self):
        trajectory = GlobalTrajectory()
        assert_array_almost_equal(trajectory.running, np.eye(4))
        assert len(trajectory) == 0

    def test_prefix_products(self, relative_poses):
        trajectory = GlobalTrajectory()
        expected = np.eye(4)
        for i, rel in enumerate(relative_poses):
            trajectory.advance(rel)
            expected = expected @ rel
            assert_array_almost_equal(trajectory.history[i], expected)
        assert len(trajectory) == len(relative_poses)

    def test_history_is_snapshot(self, relative_poses):
        trajectory = GlobalTrajectory()
        trajectory.advance(relative_poses[0])
        first = trajectory.history[0].copy()
        trajectory.advance(relative_poses[1])
        np.testing.assert_array_equal(trajectory.history[0], first)

    def test_rejects_bad_shape(self):
        with pytest.raises(ValueError):
            GlobalTrajectory().advance(np.eye(3))


class TestTrajectoryAccumulator:

    def test_all_estimators_by_default(self):
        accumulator = TrajectoryAccumulator()
        assert accumulator.names == list(EstimatorName)
        assert len(accumulator) == 0

    def test_advance_all_keeps_lengths_equal(self, relative_poses):
        accumulator = TrajectoryAccumulator()
        for rel in relative_poses:
            accumulator.advance_all({name: PairEstimate(rel) for name in EstimatorName})
        assert len(accumulator) == len(relative_poses)
        for name in EstimatorName:
            assert len(accumulator.history(name)) == len(relative_poses)

    def test_missing_estimate_advances_nothing(self, relative_poses):
        accumulator = TrajectoryAccumulator()
        estimates = {name: PairEstimate(relative_poses[0]) for name in EstimatorName}
        del estimates[EstimatorName.GROUND_TRUTH]
        with pytest.raises(KeyError):
            accumulator.advance_all(estimates)
        assert len(accumulator) == 0

    def test_out_of_step_detected(self, relative_poses):
        accumulator = TrajectoryAccumulator()
        accumulator.advance(EstimatorName.ODOMETRY, relative_poses[0])
        with pytest.raises(RuntimeError):
            len(accumulator)

    def test_running_is_copy(self, relative_poses):
        accumulator = TrajectoryAccumulator([EstimatorName.ODOMETRY])
        accumulator.advance("odometry", relative_poses[0])
        running = accumulator.running(EstimatorName.ODOMETRY)
        running[0, 3] += 100.0
        assert accumulator.running(EstimatorName.ODOMETRY)[0, 3] != running[0, 3]

    def test_as_vectors(self, relative_poses):
        accumulator = TrajectoryAccumulator([EstimatorName.ODOMETRY])
        assert accumulator.as_vectors(EstimatorName.ODOMETRY).shape == (0, 6)

        accumulator.advance(EstimatorName.ODOMETRY, pose_vector_to_matrix([1, 0, 0, 0, 0, 0.5]))
        accumulator.advance(EstimatorName.ODOMETRY, pose_vector_to_matrix([1, 0, 0, 0, 0, 0.5]))
        vectors = accumulator.as_vectors(EstimatorName.ODOMETRY)
        assert vectors.shape == (2, 6)
        assert vectors[1, 5] == pytest.approx(1.0)
        assert vectors[1, 0] == pytest.approx(1.0 + np.cos(0.5))
        assert vectors[1, 1] == pytest.approx(np.sin(0.5))
