"""
Unit tests for the pair evaluator.
Uses the mock backend with index-correspondence scoring.
"""

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal

from regeval.common.config import GridConfig
from regeval.common.data_structures import EstimatorName
from regeval.common.errors import ConfigurationError
from regeval.estimation.motion_model import MotionModel3d
from regeval.evaluation.pair_evaluator import PairEvaluator
from regeval.utils.math_utils import pose_vector_to_matrix, relative_pose

from mock_backend import MockBackend, SingularCovarianceBackend, make_scan


@pytest.fixture
def scan():
    return make_scan(0)


@pytest.fixture
def poses():
    """Two identical poses: the scans were taken at the same place."""
    return [np.eye(4), np.eye(4)]


def make_evaluator(backend, **kwargs):
    kwargs.setdefault("grid", GridConfig(offset_size=1, incr_dist=0.01, incr_ang=0.002))
    return PairEvaluator(backend=backend, motion_model=MotionModel3d(), **kwargs)


class TestScoreGrid:
    """Test the score grid on identical scans."""

    def test_nine_samples_peak_at_center(self, scan, poses):
        backend = MockBackend(scans={0: scan, 1: scan.copy()})
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        assert len(result.samples) == 9
        plain = [s.score_plain for s in result.samples]
        assert int(np.argmax(plain)) == 4
        assert plain[4] == pytest.approx(0.0)
        assert all(p < 0 for i, p in enumerate(plain) if i != 4)

    def test_constrained_score_penalizes_offsets(self, scan, poses):
        backend = MockBackend(scans={0: scan, 1: scan.copy()})
        result = make_evaluator(backend, alpha=2.0).evaluate_pair(poses, poses, 0, 1, 0, 1)

        center = result.samples[4]
        assert center.score_constrained == pytest.approx(center.score_plain)
        for sample in result.samples[:4] + result.samples[5:]:
            assert sample.score_constrained < sample.score_plain

    def test_samples_in_generation_order(self, scan, poses):
        backend = MockBackend(scans={0: scan, 1: scan.copy()})
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 3, 5)
        assert [s.offset.index for s in result.samples] == list(range(9))
        assert [s.offset.row for s in result.samples] == [0, 0, 0, 1, 1, 1, 2, 2, 2]
        assert result.axis_a == 3
        assert result.axis_b == 5

    def test_parallel_matches_sequential(self, scan):
        moved = pose_vector_to_matrix([0.5, -0.2, 0.0, 0.0, 0.0, 0.1])
        poses = [np.eye(4), moved]
        grid = GridConfig(offset_size=2, incr_dist=0.05, incr_ang=0.01)

        sequential = make_evaluator(
            MockBackend(scans={0: scan, 1: scan.copy()}), grid=grid
        ).evaluate_pair(poses, poses, 0, 1, 0, 5)
        parallel = make_evaluator(
            MockBackend(scans={0: scan, 1: scan.copy()}), grid=grid, workers=4
        ).evaluate_pair(poses, poses, 0, 1, 0, 5)

        assert len(parallel.samples) == 25
        for s, p in zip(sequential.samples, parallel.samples):
            assert s.offset.index == p.offset.index
            assert s.score_plain == p.score_plain
            assert s.score_constrained == p.score_constrained

    def test_sensor_pose_keeps_peak(self, scan, poses):
        backend = MockBackend(scans={0: scan, 1: scan.copy()})
        sensor = pose_vector_to_matrix([1.0, 0.0, 1.5, 0.0, 0.1, 0.2])
        result = make_evaluator(backend, sensor_pose=sensor).evaluate_pair(poses, poses, 0, 1, 0, 1)
        assert int(np.argmax([s.score_plain for s in result.samples])) == 4


class TestEstimates:
    """Test the estimators run on a pair."""

    def test_all_estimates_present(self, scan, poses):
        backend = MockBackend(scans={0: scan, 1: scan.copy()})
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        assert set(result.estimates) == set(EstimatorName)
        for name in EstimatorName:
            assert_array_almost_equal(result.marker(name), (0.0, 0.0))

    def test_ground_truth_and_odometry(self, scan):
        gt = [np.eye(4), pose_vector_to_matrix([1.0, 0.1, 0.0, 0.0, 0.0, 0.05])]
        odom = [pose_vector_to_matrix([5.0, 5.0, 0.0, 0.0, 0.0, 1.0]),
                pose_vector_to_matrix([6.0, 5.2, 0.0, 0.0, 0.0, 1.1])]
        backend = MockBackend(scans={0: scan, 1: scan.copy()})
        result = make_evaluator(backend).evaluate_pair(gt, odom, 0, 1, 0, 1)

        assert_array_almost_equal(result.estimates[EstimatorName.GROUND_TRUTH].pose,
                                  relative_pose(gt[0], gt[1]))
        assert_array_almost_equal(result.odometry_pose, relative_pose(odom[0], odom[1]))
        assert result.estimates[EstimatorName.ODOMETRY].covariance.available

    def test_registration_starts_from_odometry(self, scan):
        odom = [np.eye(4), pose_vector_to_matrix([0.3, 0.0, 0.0, 0.0, 0.0, 0.0])]
        backend = MockBackend(scans={0: scan, 1: scan.copy()})
        result = make_evaluator(backend).evaluate_pair(odom, odom, 0, 1, 0, 1)

        assert_array_almost_equal(result.estimates[EstimatorName.REGISTRATION].pose, odom[1])
        assert_array_almost_equal(
            result.estimates[EstimatorName.CONSTRAINED_REGISTRATION].pose, odom[1]
        )

    def test_no_covariance_keeps_registration(self, scan, poses):
        reg = pose_vector_to_matrix([0.02, 0.0, 0.0, 0.0, 0.0, 0.0])
        backend = MockBackend(scans={0: scan, 1: scan.copy()}, registration_pose=reg)
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        assert not result.metadata["registration_covariance"]
        np.testing.assert_array_equal(result.estimates[EstimatorName.FUSED_REGISTRATION].pose, reg)

    def test_covariance_error_means_unavailable(self, scan, poses):
        reg = pose_vector_to_matrix([0.02, 0.0, 0.0, 0.0, 0.0, 0.0])
        backend = MockBackend(scans={0: scan, 1: scan.copy()}, registration_pose=reg,
                              registration_cov=np.eye(6), covariance_error=True)
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        assert not result.estimates[EstimatorName.REGISTRATION].covariance.available
        np.testing.assert_array_equal(result.estimates[EstimatorName.FUSED_REGISTRATION].pose, reg)

    def test_fusion_with_covariance(self, scan, poses):
        """Odometry is far more certain than registration here, so fusion stays near it."""
        reg = pose_vector_to_matrix([0.02, 0.0, 0.0, 0.0, 0.0, 0.0])
        backend = MockBackend(scans={0: scan, 1: scan.copy()}, registration_pose=reg,
                              registration_cov=np.eye(6))
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        assert result.metadata["registration_covariance"]
        fused = result.estimates[EstimatorName.FUSED_REGISTRATION].pose
        assert 0.0 < fused[0, 3] < 1e-6

    def test_point_set_covariance_array_is_wrapped(self, scan, poses):
        icp = pose_vector_to_matrix([0.0, 0.01, 0.0, 0.0, 0.0, 0.0])
        backend = MockBackend(scans={0: scan, 1: scan.copy()}, point_set_pose=icp,
                              point_set_cov=1e-4 * np.eye(6))
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        estimate = result.estimates[EstimatorName.POINT_SET_ALIGNMENT]
        assert estimate.covariance.available
        assert_array_almost_equal(estimate.pose, icp)
        assert result.aligned_points.shape == scan.shape

        fused_y = result.estimates[EstimatorName.FUSED_POINT_SET_ALIGNMENT].pose[1, 3]
        assert 0.0 < fused_y < 0.01

    def test_singular_hessian_means_unavailable(self, scan, poses):
        reg = pose_vector_to_matrix([0.02, 0.0, 0.0, 0.0, 0.0, 0.0])
        backend = SingularCovarianceBackend(scans={0: scan, 1: scan.copy()}, registration_pose=reg)
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        assert not result.metadata["registration_covariance"]
        np.testing.assert_array_equal(result.estimates[EstimatorName.FUSED_REGISTRATION].pose, reg)

    @pytest.mark.parametrize("bad_cov", [np.empty((0, 0)), np.eye(3), np.ones(6)])
    def test_malformed_covariance_means_unavailable(self, scan, poses, bad_cov):
        icp = pose_vector_to_matrix([0.0, 0.01, 0.0, 0.0, 0.0, 0.0])
        backend = MockBackend(scans={0: scan, 1: scan.copy()}, point_set_pose=icp,
                              point_set_cov=bad_cov)
        result = make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1)

        assert not result.estimates[EstimatorName.POINT_SET_ALIGNMENT].covariance.available
        np.testing.assert_array_equal(
            result.estimates[EstimatorName.FUSED_POINT_SET_ALIGNMENT].pose, icp
        )


class TestSkipsAndErrors:

    def test_empty_scan_skips_pair(self, scan, poses):
        backend = MockBackend(scans={0: scan})
        assert make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 0, 1) is None
        assert backend.scored_offsets == []

    def test_index_out_of_range(self, scan, poses):
        backend = MockBackend(scans={0: scan, 1: scan})
        with pytest.raises(ConfigurationError):
            make_evaluator(backend).evaluate_pair(poses, poses, 0, 2, 0, 1)

    def test_equal_axes(self, scan, poses):
        backend = MockBackend(scans={0: scan, 1: scan})
        with pytest.raises(ConfigurationError):
            make_evaluator(backend).evaluate_pair(poses, poses, 0, 1, 4, 4)
