"""
Configuration models using Pydantic for type safety and validation.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Union, Any

import numpy as np
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from regeval.utils.math_utils import pose_vector_to_matrix


NUM_POSE_AXES = 6


class TrajectoryFormat(str, Enum):
    """Line formats for exported trajectories."""
    RPY = "rpy"  # x y z roll pitch yaw
    TUM = "tum"  # index x y z qx qy qz qw


class LogLevel(str, Enum):
    """Logging levels accepted in configuration files."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class GridConfig(BaseModel):
    """Lattice of candidate offsets evaluated around the odometry pose."""
    offset_size: int = Field(
        100,
        ge=0,
        description="Half-width N of the sweep, 2N+1 points per axis"
    )
    incr_dist: float = Field(0.01, gt=0, description="Step for x, y, z (m)")
    incr_ang: float = Field(0.002, gt=0, description="Step for roll, pitch, yaw (rad)")

    def step(self, axis: int) -> float:
        """Step size of a pose axis (0-2 translation, 3-5 rotation)."""
        return self.incr_dist if axis < 3 else self.incr_ang


class MotionModelParams(BaseModel):
    """
    Odometry uncertainty coefficients.

    D* scale the forward (x) deviation, C* the side (y, z) deviation and
    T* the rotational deviation; *d by distance travelled, *t by rotation.
    """
    Dd: float = Field(1.0, ge=0, description="Forward uncertainty on distance traveled")
    Dt: float = Field(1.0, ge=0, description="Forward uncertainty on rotation")
    Cd: float = Field(1.0, ge=0, description="Side uncertainty on distance traveled")
    Ct: float = Field(1.0, ge=0, description="Side uncertainty on rotation")
    Td: float = Field(1.0, ge=0, description="Rotation uncertainty on distance traveled")
    Tt: float = Field(1.0, ge=0, description="Rotation uncertainty on rotation")

    Dd_offset: float = Field(0.001, ge=0, description="Minimum forward deviation (m)")
    Cd_offset: float = Field(0.001, ge=0, description="Minimum side deviation (m)")
    Td_offset: float = Field(0.001, ge=0, description="Minimum rotational deviation (rad)")


class SensorPose(BaseModel):
    """Sensor-to-vehicle mounting transform."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    ex: float = Field(0.0, description="Euler angle about x (rad)")
    ey: float = Field(0.0, description="Euler angle about y (rad)")
    ez: float = Field(0.0, description="Euler angle about z (rad)")

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 transformation matrix."""
        return pose_vector_to_matrix([self.x, self.y, self.z, self.ex, self.ey, self.ez])


class OutputConfig(BaseModel):
    """Export settings."""
    out_file: str = Field("scores", description="Prefix for the output files")
    save_global_ts: bool = Field(
        False,
        description="Write the accumulated global trajectories of every estimator"
    )
    trajectory_format: TrajectoryFormat = Field(
        default=TrajectoryFormat.RPY,
        description="Line format of trajectory files"
    )
    save_full_scores: bool = Field(
        False,
        description=(
            "Also write <out_file>.scores, the full score grid with one "
            "'<x y z roll pitch yaw> <plain> <constrained>' line per offset"
        )
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO)
    console: bool = Field(True, description="Log to stderr")
    file: Optional[str] = Field(None, description="Optional log file")


class ScoreEvalConfig(BaseModel):
    """Complete score evaluation configuration."""
    gt_file: str = Field(..., description="Vehicle ground truth poses in world frame")
    odom_file: str = Field(..., description="Odometry poses in world frame")
    backend: str = Field(
        ...,
        description="Registration backend factory as 'module:attribute'"
    )
    backend_options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Keyword arguments passed to the backend factory"
    )

    idx1: int = Field(0, ge=0, description="'Fixed' pose/scan index")
    idx2: int = Field(1, ge=0, description="'Moving' pose/scan index")
    dimidx1: int = Field(0, description="Outer sweep axis (0..5 -> x,y,z,roll,pitch,yaw)")
    dimidx2: int = Field(1, description="Inner sweep axis (0..5 -> x,y,z,roll,pitch,yaw)")

    resolution: float = Field(1.0, gt=0, description="Resolution of the map")
    alpha: float = Field(1.0, ge=0, description="Soft constraint weight")
    max_condition: float = Field(
        1e12,
        gt=1,
        description="Covariances with a larger condition number count as unavailable"
    )

    iters: int = Field(1, ge=1, description="Number of evaluated pair offsets")
    iter_step: int = Field(1, ge=1, description="Step between evaluated pair offsets")
    iter_all_poses: bool = Field(False, description="Iterate over all available poses")

    use_score_sc: bool = Field(
        False,
        description="Use the constrained score for the surface segments"
    )
    workers: int = Field(1, ge=1, description="Threads used for grid scoring")
    show_progress: bool = Field(True, description="Show a progress bar while scoring")

    grid: GridConfig = Field(default_factory=GridConfig)
    motion_model: MotionModelParams = Field(default_factory=MotionModelParams)
    sensor_pose: SensorPose = Field(default_factory=SensorPose)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator('gt_file', 'odom_file', 'backend')
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError('must not be empty')
        return v

    @field_validator('dimidx1', 'dimidx2')
    @classmethod
    def validate_axis(cls, v: int) -> int:
        if not 0 <= v < NUM_POSE_AXES:
            raise ValueError(f'axis index must be in [0, {NUM_POSE_AXES}), got {v}')
        return v

    @model_validator(mode='after')
    def validate_sweep_axes(self):
        """The two swept axes must differ."""
        if self.dimidx1 == self.dimidx2:
            raise ValueError('dimidx1 and dimidx2 must be different axes')
        return self


def load_score_eval_config(path: Union[str, Path]) -> ScoreEvalConfig:
    """Load score evaluation configuration from YAML file."""
    path = Path(path)
    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    return ScoreEvalConfig(**data)


def save_config(config: BaseModel, path: Union[str, Path]) -> None:
    """Save configuration to YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Convert to dict and handle enums
    data = config.model_dump(mode='json')

    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
