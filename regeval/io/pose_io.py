"""
Pose file I/O: evaluation pose files in, per-estimator pose files out.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

import numpy as np

from regeval.common.config import TrajectoryFormat
from regeval.common.data_structures import EstimatorName, PairResult
from regeval.utils.math_utils import (
    matrix_to_pose_vector, pose_to_quaternion, pose_vector_to_matrix,
    quaternion_pose_to_matrix
)

if TYPE_CHECKING:
    from regeval.evaluation.trajectory import TrajectoryAccumulator

logger = logging.getLogger(__name__)


def load_eval_file(path: Union[str, Path]) -> List[np.ndarray]:
    """
    Load poses from an evaluation file.

    Lines are 'timestamp x y z qx qy qz qw' (TUM) or 'x y z roll pitch
    yaw'. Comments (#) and blank lines are skipped.

    Args:
        path: Pose file

    Returns:
        List of 4x4 poses in file order

    Raises:
        ValueError: On a line with an unsupported number of values
    """
    poses = []
    with open(path, 'r') as f:
        for line_no, raw in enumerate(f, start=1):
            line = raw.split('#', 1)[0].strip()
            if not line:
                continue
            values = [float(v) for v in line.replace(',', ' ').split()]
            if len(values) == 8:
                poses.append(quaternion_pose_to_matrix(values[1:4], values[4:8]))
            elif len(values) == 6:
                poses.append(pose_vector_to_matrix(values))
            else:
                raise ValueError(
                    f"{path}:{line_no}: expected 6 or 8 values, got {len(values)}"
                )
    return poses


def format_pose_vector(T: np.ndarray) -> str:
    return " ".join(repr(float(v)) for v in matrix_to_pose_vector(T))


def format_tum_line(stamp: float, T: np.ndarray) -> str:
    values = [stamp, *np.asarray(T)[:3, 3], *pose_to_quaternion(T)]
    return " ".join(repr(float(v)) for v in values)


def write_poses(path: Union[str, Path], poses: Sequence[np.ndarray],
                fmt: TrajectoryFormat = TrajectoryFormat.RPY) -> Optional[Path]:
    """
    Write poses one per line.

    Args:
        path: Output file
        poses: 4x4 poses in order
        fmt: 'rpy' (x y z roll pitch yaw) or 'tum' (index x y z qx qy qz qw)

    Returns:
        Path written, or None if the file could not be written
    """
    path = Path(path)
    fmt = TrajectoryFormat(fmt)
    try:
        with open(path, 'w') as f:
            for i, T in enumerate(poses):
                if fmt == TrajectoryFormat.TUM:
                    f.write(format_tum_line(float(i), T) + "\n")
                else:
                    f.write(format_pose_vector(T) + "\n")
    except OSError as e:
        logger.error(f"Cannot write {path}: {e}")
        return None
    return path


def read_pose_vectors(path: Union[str, Path]) -> np.ndarray:
    """Parse a 6-parameter pose file into a (k, 6) array."""
    rows = []
    with open(path, 'r') as f:
        for raw in f:
            line = raw.strip()
            if line:
                rows.append([float(v) for v in line.split()])
    if not rows:
        return np.zeros((0, 6))
    data = np.array(rows, dtype=float)
    if data.shape[1] != 6:
        raise ValueError(f"{path}: expected 6 values per line, got {data.shape[1]}")
    return data


def write_pair_poses(prefix: Union[str, Path], result: PairResult) -> List[Path]:
    """
    Write every estimate of a pair in the pair's odometry frame.

    One file per estimator, '<prefix>.<estimator>', holding a single
    6-parameter line. Failed files are logged and skipped.
    """
    written = []
    for name in EstimatorName:
        path = Path(f"{prefix}.{name.value}")
        if write_poses(path, [result.pose_in_odom_frame(name)]) is not None:
            written.append(path)
    return written


def write_trajectories(prefix: Union[str, Path], accumulator: "TrajectoryAccumulator",
                       fmt: TrajectoryFormat = TrajectoryFormat.RPY) -> List[Path]:
    """
    Write the global trajectory of every estimator.

    One file per estimator, '<prefix>.<estimator>', one pose per line in
    accumulation order. Failed files are logged and skipped.
    """
    written = []
    for name in accumulator.names:
        path = Path(f"{prefix}.{name.value}")
        logger.info(f"Saving trajectory: {path}")
        if write_poses(path, accumulator.history(name), fmt) is not None:
            written.append(path)
    return written
