#errors.py
"""
Exceptions shared by the numerical engine and the training front end.
They subclass the built-in exceptions, so callers can keep catching ValueError / FileNotFoundError.
"""

class DimensionMismatch(ValueError):
    """Raised by any matrix operation given incompatible shapes."""

class ConfigurationError(ValueError):
    """Raised when the layer sizes of a network do not fit together, or the data does not fit the network."""

class MissingResource(FileNotFoundError):
    """Raised when a weights file, a cached matrix or a dataset file is absent."""
