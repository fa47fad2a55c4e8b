from __future__ import annotations


class ConfigurationError(ValueError):
    """Band, musician, preset or project data cannot be resolved."""


class DocumentValidationError(ValueError):
    """The assembled document breaks a structural invariant."""
