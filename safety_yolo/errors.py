"""Exceptions raised by the detection pipeline."""


class PipelineError(Exception):
    """Base error for a failed detection cycle."""


class InvalidDimensions(PipelineError, ValueError):
    """Source or target size is zero, negative or not an integer."""


class EmptySource(PipelineError, ValueError):
    """The image source has nothing to draw (zero width or height)."""


class ModelNotReady(PipelineError, RuntimeError):
    """The model executor has not been loaded."""


class ExecutionError(PipelineError, RuntimeError):
    """The model executor failed to run a forward pass."""


class ShapeMismatch(PipelineError, ValueError):
    """Raw model output does not match the configured class table."""
