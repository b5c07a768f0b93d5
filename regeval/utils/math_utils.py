"""
Pose algebra for the score evaluation harness.
Rotations go through scipy.spatial.transform.Rotation.

Poses are 4x4 homogeneous transforms. Their 6-parameter form is
[x, y, z, roll, pitch, yaw] with R = Rx(roll) @ Ry(pitch) @ Rz(yaw).
"""

import numpy as np
from typing import Tuple
from scipy.spatial.transform import Rotation


# Intrinsic X-Y-Z sequence, matches the roll/pitch/yaw pose vectors
EULER_ORDER = "XYZ"

AXIS_NAMES = ("x", "y", "z", "roll", "pitch", "yaw")


# ============================================================================
# Rotations
# ============================================================================

def is_rotation_matrix(R: np.ndarray, tol: float = 1e-6) -> bool:
    """
    Whether R is a proper rotation: 3x3, R R^T = I and det(R) = +1.

    Args:
        R: Candidate matrix
        tol: Absolute tolerance on both checks

    Returns:
        True for a proper rotation
    """
    R = np.asarray(R, dtype=float)
    if R.shape != (3, 3):
        return False
    orthogonal = np.allclose(R @ R.T, np.eye(3), atol=tol)
    return bool(orthogonal and abs(np.linalg.det(R) - 1.0) <= tol)


def euler_to_rotation_matrix(roll: float, pitch: float, yaw: float,
                             order: str = EULER_ORDER) -> np.ndarray:
    """
    Rotation matrix of a roll/pitch/yaw triple.

    Args:
        roll: Angle about x (rad)
        pitch: Angle about y (rad)
        yaw: Angle about z (rad)
        order: scipy axis sequence, intrinsic when uppercase

    Returns:
        3x3 rotation matrix
    """
    return Rotation.from_euler(order, [roll, pitch, yaw]).as_matrix()


def rotation_matrix_to_euler(R: np.ndarray, order: str = EULER_ORDER) -> Tuple[float, float, float]:
    """Roll, pitch and yaw (rad) of a rotation matrix."""
    roll, pitch, yaw = Rotation.from_matrix(R).as_euler(order)
    return float(roll), float(pitch), float(yaw)


def rotation_angle(R: np.ndarray) -> float:
    """Magnitude of the rotation (radians) encoded by R."""
    return float(np.linalg.norm(Rotation.from_matrix(R).as_rotvec()))


def wrap_angle(angle):
    """Wrap angle(s) to (-pi, pi]."""
    wrapped = np.pi - np.mod(np.pi - np.asarray(angle, dtype=float), 2.0 * np.pi)
    if np.ndim(wrapped) == 0:
        return float(wrapped)
    return wrapped


# ============================================================================
# Rigid Transforms
# ============================================================================

def se3_inverse(T: np.ndarray) -> np.ndarray:
    """
    Closed-form inverse of a rigid transform, [R^T | -R^T t].

    Args:
        T: 4x4 rigid transform

    Returns:
        4x4 inverse
    """
    T = np.asarray(T, dtype=float)
    rot_t = T[:3, :3].T

    inverse = np.eye(4)
    inverse[:3, :3] = rot_t
    inverse[:3, 3] = -(rot_t @ T[:3, 3])
    return inverse


def se3_compose(*transforms: np.ndarray) -> np.ndarray:
    """Compose transforms left to right: se3_compose(A, B) == A @ B."""
    T = np.eye(4)
    for other in transforms:
        T = T @ np.asarray(other, dtype=float)
    return T


def relative_pose(T_a: np.ndarray, T_b: np.ndarray) -> np.ndarray:
    """Pose of b expressed in the frame of a, inv(T_a) @ T_b."""
    return se3_inverse(T_a) @ np.asarray(T_b, dtype=float)


def pose_vector_to_matrix(v: np.ndarray) -> np.ndarray:
    """
    Convert [x, y, z, roll, pitch, yaw] to a 4x4 transformation matrix.

    Args:
        v: 6-parameter pose vector

    Returns:
        4x4 transformation matrix
    """
    v = np.asarray(v, dtype=float).flatten()
    if v.shape != (6,):
        raise ValueError(f"Pose vector must have 6 parameters, got {v.shape[0]}")

    pose = np.eye(4)
    pose[:3, :3] = euler_to_rotation_matrix(v[3], v[4], v[5])
    pose[:3, 3] = v[:3]
    return pose


def matrix_to_pose_vector(T: np.ndarray) -> np.ndarray:
    """
    Convert a 4x4 transformation matrix to [x, y, z, roll, pitch, yaw].

    Args:
        T: 4x4 transformation matrix

    Returns:
        6-parameter pose vector
    """
    T = np.asarray(T, dtype=float)
    return np.concatenate([T[:3, 3], rotation_matrix_to_euler(T[:3, :3])])


def pose_to_quaternion(T: np.ndarray) -> np.ndarray:
    """Rotation of T as a quaternion in scipy order [x, y, z, w]."""
    return Rotation.from_matrix(np.asarray(T)[:3, :3]).as_quat()


def quaternion_pose_to_matrix(position: np.ndarray, quat_xyzw: np.ndarray) -> np.ndarray:
    """Build a 4x4 transform from a position and a [x, y, z, w] quaternion."""
    quat_xyzw = np.asarray(quat_xyzw, dtype=float)
    norm = np.linalg.norm(quat_xyzw)
    if norm < 1e-10:
        raise ValueError("Quaternion norm is too small")

    pose = np.eye(4)
    pose[:3, :3] = Rotation.from_quat(quat_xyzw / norm).as_matrix()
    pose[:3, 3] = np.asarray(position, dtype=float)
    return pose


def transform_point(T: np.ndarray, p: np.ndarray) -> np.ndarray:
    """
    Apply a rigid transform to one point or a scan.

    Args:
        T: 4x4 rigid transform
        p: (3,) point or (N, 3) points

    Returns:
        Moved point(s), same shape as p
    """
    p = np.asarray(p, dtype=float)
    moved = np.atleast_2d(p) @ T[:3, :3].T + T[:3, 3]
    return moved[0] if p.ndim == 1 else moved


# ============================================================================
# Matrix Conditioning
# ============================================================================

def condition_number(M: np.ndarray) -> float:
    """
    Ratio of the largest to the smallest singular value.

    Singular and non-finite matrices report infinity, so callers can test
    invertibility before attempting an inverse.
    """
    M = np.asarray(M, dtype=float)
    if M.size == 0 or not np.all(np.isfinite(M)):
        return float("inf")

    s = np.linalg.svd(M, compute_uv=False)
    if s[-1] <= 0.0:
        return float("inf")
    return float(s[0] / s[-1])
