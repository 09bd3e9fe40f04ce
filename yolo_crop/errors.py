"""
Exceptions raised by the detection pipeline.

Every failure is local to one detect/crop call; nothing here is retried.
"""

from __future__ import annotations


class YoloCropError(Exception):
    """Base class for pipeline errors."""


class ModelLoadError(YoloCropError):
    """An inference session could not be created."""


class InferenceError(YoloCropError):
    """A session `run` call failed."""


class NoDetectionError(YoloCropError):
    """A crop was requested but there is no usable detection."""


class DetectionBusyError(YoloCropError):
    """A detection run was started while another one is still in flight."""
