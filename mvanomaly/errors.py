# mvanomaly/errors.py


class AnomalyDetectionError(ValueError):
    """Base class for the errors raised by the scorers."""


class InsufficientData(AnomalyDetectionError):
    """Not enough rows (or variables) to compute a reference vector."""


class DegenerateCovariance(AnomalyDetectionError):
    """Covariance matrix is singular or too ill-conditioned to invert."""


class InvalidConfiguration(AnomalyDetectionError):
    """A configuration value lies outside its valid domain."""
