"""
Pipeline Error Types

Every failure the pipeline reports derives from StereoPipelineError so that
callers can catch a single type at the boundary.
"""

from contextlib import contextmanager
from typing import Iterator


class StereoPipelineError(Exception):
    """Base class for all pipeline failures."""


class InputUnreadableError(StereoPipelineError):
    """Source image is missing, undecodable or not a 2-D intensity grid."""


class DimensionMismatchError(StereoPipelineError, ValueError):
    """Left and right inputs do not share the same dimensions."""


class InvalidConfigurationError(StereoPipelineError, ValueError):
    """A configuration value is out of its allowed domain."""


class ComputeFailureError(StereoPipelineError, RuntimeError):
    """A pipeline stage could not produce its output."""

    def __init__(self, stage: str, cause: str):
        self.stage = stage
        self.cause = cause
        super().__init__(f"Stage '{stage}' failed: {cause}")


class OutputWriteFailureError(StereoPipelineError, OSError):
    """Result artifact could not be written."""


@contextmanager
def pipeline_stage(name: str) -> Iterator[None]:
    """
    Run a block as a named pipeline stage.

    Pipeline errors pass through untouched; anything else is re-raised as
    ComputeFailureError carrying the stage name.
    """
    try:
        yield
    except StereoPipelineError:
        raise
    except Exception as e:
        raise ComputeFailureError(name, f"{type(e).__name__}: {e}") from e
