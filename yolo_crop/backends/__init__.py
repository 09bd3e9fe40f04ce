"""
Inference backends for yolo_crop.

A backend only needs `run(named_inputs) -> named_outputs`; tests pass plain
objects with that method in place of a real session.
"""

from __future__ import annotations

from .onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

__all__ = ["OnnxRuntimeBackend", "OnnxRuntimeBackendConfig"]
