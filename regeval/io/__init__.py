"""
Line-oriented text I/O for poses, trajectories and score grids.
"""

from .pose_io import (
    load_eval_file,
    read_pose_vectors,
    write_pair_poses,
    write_poses,
    write_trajectories
)
from .score_io import (
    read_scores,
    score_segments,
    segment_by_row,
    write_scores,
    write_scores_2d
)

__all__ = [
    'load_eval_file',
    'read_pose_vectors',
    'write_pair_poses',
    'write_poses',
    'write_trajectories',
    'read_scores',
    'score_segments',
    'segment_by_row',
    'write_scores',
    'write_scores_2d'
]
