# models/errors.py
"""
Errors raised for structural violations.

Numeric edge cases (negative stroke size, degenerate sigma, ...) are clamped
by the operators instead; only malformed inputs end up here.
"""


class UnsharpStudioError(Exception):
    """Base class for every error the editing pipeline reports."""


class InvalidDimensions(UnsharpStudioError, ValueError):
    """Buffer length or array shape does not match width * height * 4."""


class InvalidColor(UnsharpStudioError, ValueError):
    """Colour string is not a well-formed 6-hex-digit RGB value."""


class InvalidParameter(UnsharpStudioError, ValueError):
    """Parameter would make an operator undefined (e.g. contrast 259)."""


class PipelineNotLoaded(UnsharpStudioError, RuntimeError):
    """A FilterPipeline operation was called before any image was loaded."""
