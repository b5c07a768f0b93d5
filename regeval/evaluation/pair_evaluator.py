"""
Pairwise estimation: score grid plus every estimator on one scan pair.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, List, Optional, Sequence

import numpy as np
from tqdm import tqdm

from regeval.common.config import GridConfig
from regeval.common.data_structures import (
    Covariance, EstimatorName, PairEstimate, PairResult, PoseOffset, ScoreSample
)
from regeval.common.errors import BackendError, ConfigurationError
from regeval.estimation.backend import RegistrationBackend
from regeval.estimation.fusion import DEFAULT_MAX_CONDITION, fuse
from regeval.estimation.motion_model import MotionModel3d
from regeval.evaluation.grid import OffsetGridGenerator
from regeval.utils.math_utils import condition_number, matrix_to_pose_vector, relative_pose

logger = logging.getLogger(__name__)


def _format_pose(T: np.ndarray) -> str:
    return " ".join(f"{v:.6f}" for v in matrix_to_pose_vector(T))


class PairEvaluator:
    """
    Runs the comparison protocol on a single pair of scans.

    The evaluator holds no per-pair state: evaluate_pair returns a
    PairResult and leaves trajectory bookkeeping to the caller.
    """

    def __init__(
        self,
        backend: RegistrationBackend,
        motion_model: MotionModel3d,
        sensor_pose: Optional[np.ndarray] = None,
        grid: Optional[GridConfig] = None,
        resolution: float = 1.0,
        alpha: float = 1.0,
        workers: int = 1,
        max_condition: float = DEFAULT_MAX_CONDITION,
        show_progress: bool = False
    ):
        """
        Initialize pair evaluator.

        Args:
            backend: Registration backend
            motion_model: Odometry uncertainty model
            sensor_pose: 4x4 sensor-to-vehicle mounting transform
            grid: Offset lattice configuration
            resolution: Map resolution passed to the backend
            alpha: Soft constraint weight
            workers: Threads used for grid scoring (1 = sequential)
            max_condition: Largest accepted covariance condition number
            show_progress: Show a progress bar while scoring
        """
        self.backend = backend
        self.motion_model = motion_model
        self.sensor_pose = np.eye(4) if sensor_pose is None else np.asarray(sensor_pose, dtype=float)
        self.grid = OffsetGridGenerator(grid if grid is not None else GridConfig())
        self.resolution = resolution
        self.alpha = alpha
        self.workers = max(1, int(workers))
        self.max_condition = max_condition
        self.show_progress = show_progress

    def evaluate_pair(
        self,
        ground_truth: Sequence[np.ndarray],
        odometry: Sequence[np.ndarray],
        idx1: int,
        idx2: int,
        axis_a: int,
        axis_b: int
    ) -> Optional[PairResult]:
        """
        Evaluate all estimators and the score grid on one scan pair.

        Args:
            ground_truth: Ground truth poses in world frame
            odometry: Odometry poses in world frame
            idx1: Index of the fixed scan
            idx2: Index of the moving scan
            axis_a: Outer sweep axis
            axis_b: Inner sweep axis

        Returns:
            PairResult, or None if either scan is empty

        Raises:
            ConfigurationError: If an index or axis is invalid
            BackendError: If the backend fails on this pair
        """
        self._check_index(idx1, ground_truth, odometry)
        self._check_index(idx2, ground_truth, odometry)
        offsets = self.grid.generate_2d_sweep(axis_a, axis_b)

        # Scans are given in the sensor frame
        pc1 = np.asarray(self.backend.load_scan(idx1), dtype=float).reshape(-1, 3)
        pc2 = np.asarray(self.backend.load_scan(idx2), dtype=float).reshape(-1, 3)
        if len(pc1) == 0 or len(pc2) == 0:
            logger.warning(f"No points found for pair ({idx1}, {idx2}), skipping")
            return None

        logger.info(f"Loaded pc1 # points: {len(pc1)}, pc2 # points: {len(pc2)}")
        logger.debug(f"Sensor pose used: {_format_pose(self.sensor_pose)}")

        # Work in the vehicle frame
        pc1 = self.backend.transform_points(self.sensor_pose, pc1)
        pc2 = self.backend.transform_points(self.sensor_pose, pc2)

        map1 = self.backend.build_map(pc1, self.resolution)
        map2 = self.backend.build_map(pc2, self.resolution)

        T_rel_odom = relative_pose(odometry[idx1], odometry[idx2])
        cov_odom = np.asarray(self.motion_model.covariance_for(T_rel_odom), dtype=float)
        logger.info(f"T_rel_odom: {_format_pose(T_rel_odom)}")

        samples = self.score_offsets(map1, map2, T_rel_odom, cov_odom, offsets)

        T_reg = np.asarray(self.backend.align(map1, map2, T_rel_odom.copy()), dtype=float)
        T_reg_sc = np.asarray(
            self.backend.align_constrained(map1, map2, T_rel_odom.copy(), cov_odom),
            dtype=float
        )
        cov_reg = self._request_covariance(
            "registration", self.backend.registration_covariance, map1, map2, T_reg
        )

        T_icp, pc_icp_final = self.backend.align_points(pc1, pc2)
        T_icp = np.asarray(T_icp, dtype=float)
        cov_icp = self._request_covariance(
            "point set alignment", self.backend.point_set_covariance, pc1, pc2, T_icp
        )

        odom_cov = Covariance.of(cov_odom)
        T_filter = fuse(T_rel_odom, odom_cov, T_reg, cov_reg, self.max_condition)
        T_icp_filter = fuse(T_rel_odom, odom_cov, T_icp, cov_icp, self.max_condition)

        # Only used for offline comparison, never fed to an estimator
        T_rel_gt = relative_pose(ground_truth[idx1], ground_truth[idx2])

        estimates = {
            EstimatorName.ODOMETRY: PairEstimate(T_rel_odom, odom_cov),
            EstimatorName.GROUND_TRUTH: PairEstimate(T_rel_gt),
            EstimatorName.REGISTRATION: PairEstimate(T_reg, cov_reg),
            EstimatorName.CONSTRAINED_REGISTRATION: PairEstimate(T_reg_sc),
            EstimatorName.POINT_SET_ALIGNMENT: PairEstimate(T_icp, cov_icp),
            EstimatorName.FUSED_REGISTRATION: PairEstimate(T_filter),
            EstimatorName.FUSED_POINT_SET_ALIGNMENT: PairEstimate(T_icp_filter),
        }

        return PairResult(
            idx1=idx1,
            idx2=idx2,
            axis_a=axis_a,
            axis_b=axis_b,
            samples=samples,
            estimates=estimates,
            aligned_points=None if pc_icp_final is None else np.asarray(pc_icp_final),
            metadata={
                "num_points": (len(pc1), len(pc2)),
                "registration_covariance": cov_reg.available,
                "point_set_covariance": cov_icp.available,
            }
        )

    def score_offsets(
        self,
        map1: Any,
        map2: Any,
        prior_pose: np.ndarray,
        prior_covariance: np.ndarray,
        offsets: List[PoseOffset]
    ) -> List[ScoreSample]:
        """
        Evaluate the objective at every offset, in generation order.

        With more than one worker each result is written to the slot of
        its offset's generation index.
        """
        samples: List[Optional[ScoreSample]] = [None] * len(offsets)

        def evaluate(slot: int, offset: PoseOffset) -> None:
            score_plain, score_sc = self.backend.score(
                map1, map2, prior_pose, prior_covariance, offset.matrix, self.alpha
            )
            samples[slot] = ScoreSample(
                offset=offset,
                score_plain=float(score_plain),
                score_constrained=float(score_sc)
            )

        progress = tqdm(
            total=len(offsets), desc="Scoring offsets", unit="offset",
            disable=not self.show_progress, leave=False
        )
        try:
            if self.workers == 1:
                for slot, offset in enumerate(offsets):
                    evaluate(slot, offset)
                    progress.update(1)
            else:
                with ThreadPoolExecutor(max_workers=self.workers) as executor:
                    futures = [
                        executor.submit(evaluate, slot, offset)
                        for slot, offset in enumerate(offsets)
                    ]
                    for future in futures:
                        future.result()
                        progress.update(1)
        finally:
            progress.close()

        return samples

    def _request_covariance(self, label: str, method, *args) -> Covariance:
        """
        Ask the backend for a covariance; failures mean 'unavailable'.

        A degenerate Hessian (LinAlgError) or a result that is not a 6x6
        matrix is logged and reported as unavailable.
        """
        try:
            cov = method(*args)
        except (BackendError, np.linalg.LinAlgError) as e:
            logger.info(f"No {label} covariance: {e}")
            return Covariance.unavailable()

        if cov is None:
            return Covariance.unavailable()
        if not isinstance(cov, Covariance):
            try:
                matrix = np.asarray(cov, dtype=float)
            except (TypeError, ValueError) as e:
                logger.warning(f"Ignoring {label} covariance that is not numeric: {e}")
                return Covariance.unavailable()
            if matrix.shape != (6, 6):
                logger.warning(f"Ignoring {label} covariance of shape {matrix.shape}, expected (6, 6)")
                return Covariance.unavailable()
            cov = Covariance.of(matrix)
        if cov.available:
            logger.debug(f"{label} covariance condition: {condition_number(cov.matrix):.3g}")
        return cov

    @staticmethod
    def _check_index(idx: int, ground_truth: Sequence, odometry: Sequence) -> None:
        limit = min(len(ground_truth), len(odometry))
        if not 0 <= idx < limit:
            raise ConfigurationError(
                f"Pose index {idx} out of range, {limit} poses available"
            )
