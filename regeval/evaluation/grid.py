"""
Candidate offset lattices for score-grid evaluation.

Sweeps are symmetric around a zero offset: 2N+1 values i*step for
i = -N..N per axis. The 2-D sweep is row-major over the outer axis and
tags every offset with its row so segmentation never compares floats.
"""

from typing import List

import numpy as np

from regeval.common.config import GridConfig, NUM_POSE_AXES
from regeval.common.data_structures import PoseOffset
from regeval.common.errors import ConfigurationError


def validate_axis(axis: int) -> int:
    """
    Check a pose axis index (0..5 -> x, y, z, roll, pitch, yaw).

    Raises:
        ConfigurationError: If the axis is out of range
    """
    if isinstance(axis, bool) or not isinstance(axis, (int, np.integer)):
        raise ConfigurationError(f"Axis index must be an integer, got {axis!r}")
    if not 0 <= axis < NUM_POSE_AXES:
        raise ConfigurationError(
            f"Axis index must be in [0, {NUM_POSE_AXES}), got {axis}"
        )
    return int(axis)


class OffsetGridGenerator:
    """
    Generates ordered pose offsets around the odometry-predicted pose.

    Example:
        generator = OffsetGridGenerator(GridConfig(offset_size=1))
        offsets = generator.generate_2d_sweep(0, 1)  # 9 offsets, x outer
    """

    def __init__(self, config: GridConfig):
        """
        Initialize the generator.

        Args:
            config: Half-width and step sizes of the lattice
        """
        self.config = config

    @property
    def points_per_axis(self) -> int:
        return 2 * self.config.offset_size + 1

    def axis_values(self, axis: int) -> np.ndarray:
        """
        Values swept along one axis, increasing from -N*step to +N*step.

        Args:
            axis: Pose axis index

        Returns:
            Array of 2N+1 values with an exact zero in the middle
        """
        axis = validate_axis(axis)
        n = self.config.offset_size
        step = self.config.step(axis)
        return np.array([i * step for i in range(-n, n + 1)], dtype=float)

    def generate_axis_sweep(self, axis: int) -> List[PoseOffset]:
        """
        Offsets varying only one pose parameter.

        Args:
            axis: Pose axis index

        Returns:
            2N+1 offsets, all other parameters exactly zero
        """
        offsets = []
        for index, value in enumerate(self.axis_values(axis)):
            vector = np.zeros(NUM_POSE_AXES)
            vector[axis] = value
            offsets.append(PoseOffset(vector=vector, row=0, index=index))
        return offsets

    def generate_offset_set(self) -> List[PoseOffset]:
        """
        The six single-axis sweeps concatenated, axis 0 first.

        Each axis sweep forms its own row.
        """
        offsets = []
        for axis in range(NUM_POSE_AXES):
            for offset in self.generate_axis_sweep(axis):
                offsets.append(PoseOffset(
                    vector=offset.vector, row=axis, index=len(offsets)
                ))
        return offsets

    def generate_2d_sweep(self, axis_a: int, axis_b: int) -> List[PoseOffset]:
        """
        Row-major lattice over two axes.

        For every value of axis_a (outer) emit the full sweep of axis_b
        (inner). Row r holds the offsets sharing the r-th axis_a value.

        Args:
            axis_a: Outer sweep axis
            axis_b: Inner sweep axis

        Returns:
            (2N+1)^2 offsets in generation order

        Raises:
            ConfigurationError: If an axis is invalid or both axes are equal
        """
        axis_a = validate_axis(axis_a)
        axis_b = validate_axis(axis_b)
        if axis_a == axis_b:
            raise ConfigurationError(f"Sweep axes must differ, got {axis_a} twice")

        values_a = self.axis_values(axis_a)
        values_b = self.axis_values(axis_b)

        offsets = []
        for row, value_a in enumerate(values_a):
            for value_b in values_b:
                vector = np.zeros(NUM_POSE_AXES)
                vector[axis_a] = value_a
                vector[axis_b] = value_b
                offsets.append(PoseOffset(vector=vector, row=row, index=len(offsets)))
        return offsets
