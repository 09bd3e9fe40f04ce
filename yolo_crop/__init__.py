"""
YOLOv8 detection with a companion NMS model, plus crop/resize of a detected
object.

Pre-processing and drawing use OpenCV, inference uses ONNX Runtime; all
intermediate data are NumPy arrays.
"""

from .types import Detection, ScaleContext
from .errors import DetectionBusyError, InferenceError, ModelLoadError, NoDetectionError, YoloCropError
from .letterbox import make_blob, pad_to_square, to_bgr
from .nms import NMSConfig, nms, select_rows
from .postprocess import DetectionPostprocessor, PostConfig
from .runtime import DetectorSession, load_session, load_session_async, find_project_root, resolve_path
from .crop import crop_and_resize, select_detection
from .metadata import COCO_CLASS_NAMES, load_class_names
from .visualize import draw_detections, encode_png, render_canvas
from .config import AppConfig, load_app_config
from .workbench import DetectionWorkbench, DetectResult

__all__ = [
    "Detection",
    "ScaleContext",
    "DetectionBusyError",
    "InferenceError",
    "ModelLoadError",
    "NoDetectionError",
    "YoloCropError",
    "make_blob",
    "pad_to_square",
    "to_bgr",
    "NMSConfig",
    "nms",
    "select_rows",
    "DetectionPostprocessor",
    "PostConfig",
    "DetectorSession",
    "load_session",
    "load_session_async",
    "find_project_root",
    "resolve_path",
    "crop_and_resize",
    "select_detection",
    "COCO_CLASS_NAMES",
    "load_class_names",
    "draw_detections",
    "encode_png",
    "render_canvas",
    "AppConfig",
    "load_app_config",
    "DetectionWorkbench",
    "DetectResult",
]
