from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when a component is built with parameters it cannot work with."""


class InvalidBasisError(ValueError):
    """Raised when a coordinate system's basis cannot be inverted."""
