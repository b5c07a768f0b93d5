"""
Abstract base class for registration backends.

The harness never registers scans itself. Scan loading, map building,
objective evaluation and the aligners are provided by a backend object,
usually a binding to an external registration library.
"""

import importlib
from abc import ABC, abstractmethod
from typing import Any, Tuple

import numpy as np

from regeval.common.data_structures import Covariance
from regeval.common.errors import ConfigurationError
from regeval.utils.math_utils import transform_point


class RegistrationBackend(ABC):
    """
    Abstract base class for registration backends.

    This class defines the interface the pair evaluator consumes. Map
    handles are opaque: whatever build_map returns is passed back to the
    scoring and alignment methods unchanged.
    """

    @abstractmethod
    def load_scan(self, index: int) -> np.ndarray:
        """
        Load the scan with the given index, in the sensor frame.

        Args:
            index: Scan index, shared with the pose files

        Returns:
            Nx3 points; an empty array if the scan is missing
        """
        pass

    def transform_points(self, transform: np.ndarray, points: np.ndarray) -> np.ndarray:
        """
        Apply a rigid transform to a scan.

        Args:
            transform: 4x4 transformation matrix
            points: Nx3 points

        Returns:
            Transformed Nx3 points
        """
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        return transform_point(transform, points)

    @abstractmethod
    def build_map(self, points: np.ndarray, resolution: float) -> Any:
        """
        Build the spatial map representation of a scan.

        Args:
            points: Nx3 points in the vehicle frame
            resolution: Cell size of the map

        Returns:
            Opaque map handle
        """
        pass

    @abstractmethod
    def score(self, map_a: Any, map_b: Any, prior_pose: np.ndarray,
              prior_covariance: np.ndarray, offset: np.ndarray,
              alpha: float) -> Tuple[float, float]:
        """
        Evaluate the registration objective at prior_pose perturbed by offset.

        Args:
            map_a: Fixed map
            map_b: Moving map
            prior_pose: 4x4 odometry-predicted relative pose
            prior_covariance: 6x6 covariance of prior_pose
            offset: 4x4 candidate perturbation
            alpha: Weight of the soft constraint

        Returns:
            (plain score, soft-constrained score)
        """
        pass

    @abstractmethod
    def align(self, map_a: Any, map_b: Any, initial_pose: np.ndarray) -> np.ndarray:
        """
        Plain registration of map_b onto map_a.

        Returns:
            Refined 4x4 relative pose
        """
        pass

    @abstractmethod
    def align_constrained(self, map_a: Any, map_b: Any, initial_pose: np.ndarray,
                          prior_covariance: np.ndarray) -> np.ndarray:
        """
        Registration with the motion prior as a soft constraint.

        Returns:
            Refined 4x4 relative pose
        """
        pass

    def registration_covariance(self, map_a: Any, map_b: Any,
                                pose: np.ndarray) -> Covariance:
        """
        Uncertainty of a registration result.

        Returns:
            Covariance, unavailable unless the backend overrides this
        """
        return Covariance.unavailable()

    @abstractmethod
    def align_points(self, points_a: np.ndarray,
                     points_b: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Point-set alignment (e.g. point-to-point ICP) of points_b onto points_a.

        Returns:
            (4x4 relative pose, final aligned points_b)
        """
        pass

    def point_set_covariance(self, points_a: np.ndarray, points_b: np.ndarray,
                             pose: np.ndarray) -> Covariance:
        """
        Uncertainty of a point-set alignment result.

        Returns:
            Covariance, unavailable unless the backend overrides this
        """
        return Covariance.unavailable()


def load_backend(target: str, **kwargs) -> RegistrationBackend:
    """
    Instantiate a backend from a 'module:attribute' factory path.

    Args:
        target: Import path of a RegistrationBackend subclass or factory
        **kwargs: Arguments passed to the factory

    Returns:
        Backend instance

    Raises:
        ConfigurationError: If the factory cannot be imported or does not
            produce a RegistrationBackend
    """
    module_name, sep, attr = target.partition(':')
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Backend must be given as 'module:attribute', got {target!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import backend module {module_name!r}: {e}") from e

    factory = module
    for part in attr.split('.'):
        try:
            factory = getattr(factory, part)
        except AttributeError as e:
            raise ConfigurationError(f"Backend {target!r} not found") from e

    try:
        backend = factory(**kwargs)
    except TypeError as e:
        raise ConfigurationError(f"Cannot create backend {target!r}: {e}") from e

    if not isinstance(backend, RegistrationBackend):
        raise ConfigurationError(
            f"Backend {target!r} produced {type(backend).__name__}, not a RegistrationBackend"
        )
    return backend
