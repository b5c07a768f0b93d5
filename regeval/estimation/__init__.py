"""
Estimator collaborators: registration backend contract, motion model, fusion.
"""

from .backend import RegistrationBackend, load_backend
from .motion_model import MotionModel3d
from .fusion import fuse, is_usable

__all__ = [
    'RegistrationBackend',
    'load_backend',
    'MotionModel3d',
    'fuse',
    'is_usable'
]
