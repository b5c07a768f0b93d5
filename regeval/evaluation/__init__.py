"""
Score-grid evaluation, pairwise estimation and trajectory accumulation.
"""

from .grid import OffsetGridGenerator, validate_axis
from .pair_evaluator import PairEvaluator
from .trajectory import GlobalTrajectory, TrajectoryAccumulator
from .session import EvaluationSession, setup_logging

__all__ = [
    'OffsetGridGenerator',
    'validate_axis',
    'PairEvaluator',
    'GlobalTrajectory',
    'TrajectoryAccumulator',
    'EvaluationSession',
    'setup_logging'
]
