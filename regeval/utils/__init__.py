"""
Pose algebra helpers shared by the harness.
"""

from .math_utils import *
