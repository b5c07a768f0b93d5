"""
Error types for the score evaluation harness.
"""


class ScoreEvalError(Exception):
    """Base exception for score evaluation errors."""
    pass


class ConfigurationError(ScoreEvalError):
    """Raised for invalid configuration. Fatal, never retried."""
    pass


class BackendError(ScoreEvalError):
    """Raised when the registration backend fails on a single pair."""
    pass
