from __future__ import annotations


class HandCascadeError(Exception):
    """Base class for every error raised by handcascade."""


class DimensionMismatchError(HandCascadeError, ValueError):
    """Two operands (vectors, frames) do not have matching dimensions."""


class InvalidInputError(HandCascadeError, ValueError):
    """A model returned output that violates the model contract."""


class DegenerateGeometryError(HandCascadeError, ValueError):
    """A geometric operation has no defined result (zero-length vector, zero-area box)."""


class ConfigurationError(HandCascadeError, RuntimeError):
    """The engine cannot be set up with the given configuration."""


class ModelDownloadError(HandCascadeError, RuntimeError):
    """A model file could not be fetched."""
