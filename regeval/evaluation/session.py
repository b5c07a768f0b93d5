"""
Evaluation session: runs the pair protocol over a pose sequence.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from regeval.common.config import LogLevel, ScoreEvalConfig
from regeval.common.data_structures import PairResult
from regeval.common.errors import BackendError, ConfigurationError
from regeval.estimation.backend import RegistrationBackend, load_backend
from regeval.estimation.motion_model import MotionModel3d
from regeval.evaluation.pair_evaluator import PairEvaluator
from regeval.evaluation.trajectory import TrajectoryAccumulator
from regeval.io.pose_io import load_eval_file, write_pair_poses, write_trajectories
from regeval.io.score_io import score_segments, write_scores, write_scores_2d

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level: LogLevel = LogLevel.INFO, log_file: Optional[str] = None,
                  console: bool = True) -> None:
    """Setup logging configuration."""
    handlers: List[logging.Handler] = []
    if console:
        handlers.append(logging.StreamHandler())

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, LogLevel(level).value),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True
    )


class EvaluationSession:
    """
    Owns the pose sequences, the pair evaluator and the trajectories.

    Pairs are processed strictly in order: each pair advances all global
    trajectories, so later pairs depend on earlier ones.
    """

    def __init__(
        self,
        config: ScoreEvalConfig,
        backend: Optional[RegistrationBackend] = None,
        ground_truth: Optional[Sequence[np.ndarray]] = None,
        odometry: Optional[Sequence[np.ndarray]] = None
    ):
        """
        Initialize the session.

        Args:
            config: Validated score evaluation configuration
            backend: Registration backend; loaded from config.backend if omitted
            ground_truth: Ground truth poses; loaded from config.gt_file if omitted
            odometry: Odometry poses; loaded from config.odom_file if omitted

        Raises:
            ConfigurationError: If the backend or a pose file cannot be loaded
        """
        self.config = config
        self.backend = backend if backend is not None else load_backend(
            config.backend, **config.backend_options
        )

        self.ground_truth = list(ground_truth) if ground_truth is not None else \
            self._load_poses(config.gt_file)
        self.odometry = list(odometry) if odometry is not None else \
            self._load_poses(config.odom_file)
        logger.info(f"Got # ground truth poses: {len(self.ground_truth)}, "
                    f"# odometry poses: {len(self.odometry)}")

        self.motion_model = MotionModel3d(config.motion_model)
        self.evaluator = PairEvaluator(
            backend=self.backend,
            motion_model=self.motion_model,
            sensor_pose=config.sensor_pose.to_matrix(),
            grid=config.grid,
            resolution=config.resolution,
            alpha=config.alpha,
            workers=config.workers,
            max_condition=config.max_condition,
            show_progress=config.show_progress
        )
        self.trajectories = TrajectoryAccumulator()
        self.results: List[PairResult] = []
        self.last_result: Optional[PairResult] = None

    @staticmethod
    def _load_poses(path: str) -> List[np.ndarray]:
        logger.info(f"Loading: {path}")
        try:
            return load_eval_file(path)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"Cannot load poses from {path}: {e}") from e

    @property
    def nb_poses(self) -> int:
        return min(len(self.ground_truth), len(self.odometry))

    def plan_pairs(self) -> List[Tuple[int, int]]:
        """
        Index pairs to process, (idx1 + i, idx2 + i) for i in steps of iter_step.

        Raises:
            ConfigurationError: If more iterations are requested than poses exist
        """
        iters = self.nb_poses if self.config.iter_all_poses else self.config.iters
        if iters > self.nb_poses:
            raise ConfigurationError(
                f"Iters too large: {iters} requested, # poses: {self.nb_poses}"
            )

        pairs = []
        for i in range(0, iters, self.config.iter_step):
            idx1 = self.config.idx1 + i
            idx2 = self.config.idx2 + i
            if max(idx1, idx2) >= self.nb_poses:
                logger.warning(f"Pair ({idx1}, {idx2}) beyond the last pose, dropped")
                continue
            pairs.append((idx1, idx2))
        return pairs

    def process_pair(self, idx1: int, idx2: int) -> Optional[PairResult]:
        """
        Evaluate one pair and advance every trajectory with its estimates.

        Returns:
            PairResult, or None if the pair was skipped
        """
        logger.info(f"Computing scores for pair ({idx1}, {idx2})")
        try:
            result = self.evaluator.evaluate_pair(
                self.ground_truth, self.odometry, idx1, idx2,
                self.config.dimidx1, self.config.dimidx2
            )
        except BackendError as e:
            logger.error(f"Backend failed on pair ({idx1}, {idx2}): {e}")
            return None

        if result is None:
            return None

        self.trajectories.advance_all(result.estimates)
        self.results.append(result)
        self.last_result = result

        best = max(result.samples, key=lambda s: s.score(self.config.use_score_sc))
        logger.info(f"Best offset: {best.offset.vector[result.axis_a]:.4f} "
                    f"{best.offset.vector[result.axis_b]:.4f}, "
                    f"score: {best.score(self.config.use_score_sc):.6g}")
        return result

    def surface(self, result: PairResult) -> List[List[Tuple[float, float, float]]]:
        """Score surface of a pair, one list per outer-axis value."""
        return score_segments(result.samples, result.axis_a, result.axis_b,
                              self.config.use_score_sc)

    def export_pair(self, result: PairResult) -> None:
        """Write the score grid and the odometry-frame estimates of a pair."""
        out = self.config.output.out_file
        write_scores_2d(f"{out}.dat", result.samples, result.axis_a, result.axis_b)
        if self.config.output.save_full_scores:
            write_scores(f"{out}.scores", result.samples)
        write_pair_poses(f"{out}.T", result)

    def export_trajectories(self) -> List[Path]:
        out = self.config.output.out_file
        return write_trajectories(
            f"{out}.Ts", self.trajectories, self.config.output.trajectory_format
        )

    def run(self, export: bool = True) -> List[PairResult]:
        """
        Process all planned pairs in order.

        Args:
            export: Write per-pair and trajectory files

        Returns:
            Results of the processed (not skipped) pairs

        Raises:
            ConfigurationError: Before any pair is processed, on invalid iteration settings
        """
        pairs = self.plan_pairs()
        logger.info(f"Processing {len(pairs)} pairs")

        results = []
        for idx1, idx2 in pairs:
            result = self.process_pair(idx1, idx2)
            if result is None:
                continue
            results.append(result)
            if export:
                self.export_pair(result)

        if export and self.config.output.save_global_ts:
            self.export_trajectories()

        logger.info(f"Done, {len(results)}/{len(pairs)} pairs evaluated")
        return results
