"""
Unit tests for the odometry motion model.
"""

import numpy as np
import pytest

from regeval.common.config import MotionModelParams
from regeval.estimation.motion_model import MotionModel3d
from regeval.utils.math_utils import condition_number, pose_vector_to_matrix


class TestMotionModel3d:

    def test_stationary_uses_offsets(self):
        model = MotionModel3d()
        cov = model.covariance_for(np.eye(4))
        np.testing.assert_array_almost_equal(np.diag(cov), np.full(6, 0.001 ** 2))
        assert condition_number(cov) == pytest.approx(1.0)

    def test_diagonal_and_positive(self):
        model = MotionModel3d()
        cov = model.covariance_for(pose_vector_to_matrix([1.0, 0.5, 0.0, 0.0, 0.0, 0.2]))
        assert cov.shape == (6, 6)
        np.testing.assert_array_equal(cov, np.diag(np.diag(cov)))
        assert np.all(np.diag(cov) > 0)

    def test_grows_with_distance(self):
        model = MotionModel3d()
        short = model.covariance_for(pose_vector_to_matrix([0.1, 0, 0, 0, 0, 0]))
        long = model.covariance_for(pose_vector_to_matrix([2.0, 0, 0, 0, 0, 0]))
        assert np.all(np.diag(long) > np.diag(short))

    def test_axis_groups(self):
        params = MotionModelParams(Dd=1.0, Dt=0.0, Cd=0.5, Ct=0.0, Td=0.1, Tt=2.0,
                                   Dd_offset=0.0, Cd_offset=0.0, Td_offset=0.0)
        model = MotionModel3d(params)
        T = pose_vector_to_matrix([2.0, 0.0, 0.0, 0.0, 0.0, 0.5])
        std = model.std_devs(T)
        assert std[0] == pytest.approx(2.0)
        assert std[1] == pytest.approx(1.0)
        assert std[2] == pytest.approx(1.0)
        np.testing.assert_array_almost_equal(std[3:], np.full(3, 0.1 * 2.0 + 2.0 * 0.5))

    def test_set_params(self):
        model = MotionModel3d()
        model.set_params(MotionModelParams(Dd_offset=0.5))
        assert model.std_devs(np.eye(4))[0] == pytest.approx(0.5)
