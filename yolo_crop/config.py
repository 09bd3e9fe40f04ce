from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .crop import SELECTION_POLICIES
from .nms import NMSConfig
from .postprocess import PostConfig


@dataclass(frozen=True)
class AppConfig:
    model_path: str = "models/yolov8n.onnx"
    # None runs NMS in-process instead of through the NMS model.
    nms_model_path: Optional[str] = "models/nms-yolov8.onnx"
    metadata_path: Optional[str] = None
    input_shape: Tuple[int, int, int, int] = (1, 3, 640, 640)
    # (width, height) of the cropped result.
    result_size: Tuple[int, int] = (500, 400)
    topk: int = 100
    iou_threshold: float = 0.45
    score_threshold: float = 0.2
    class_ids: Optional[Tuple[int, ...]] = (17,)
    min_score: float = 0.0
    onnx_providers: Optional[Tuple[str, ...]] = None
    crop_policy: str = "best"

    def __post_init__(self) -> None:
        if not self.model_path:
            raise ValueError("model_path must not be empty")
        if len(self.input_shape) != 4 or any(d <= 0 for d in self.input_shape):
            raise ValueError(f"input_shape must be 4 positive ints, got {self.input_shape}")
        if self.input_shape[0] != 1 or self.input_shape[1] != 3:
            raise ValueError("input_shape must be (1, 3, H, W)")
        if len(self.result_size) != 2 or any(d <= 0 for d in self.result_size):
            raise ValueError(f"result_size must be 2 positive ints, got {self.result_size}")
        if self.crop_policy not in SELECTION_POLICIES:
            raise ValueError(f"crop_policy must be one of {SELECTION_POLICIES}")
        # Threshold checks live in the derived configs.
        self.nms_config()
        self.post_config()

    @property
    def canvas_size(self) -> Tuple[int, int]:
        """(width, height) of the display canvas detections are expressed in."""
        return self.input_shape[3], self.input_shape[2]

    def nms_config(self) -> NMSConfig:
        return NMSConfig(topk=self.topk, iou_threshold=self.iou_threshold, score_threshold=self.score_threshold)

    def post_config(self) -> PostConfig:
        return PostConfig(class_ids=self.class_ids, min_score=self.min_score)


def _require_number(payload: Dict[str, Any], key: str) -> float:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number")
    return float(value)


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = payload[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer")
    return int(value)


def _optional_str(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload[key]
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key} must be a non-empty string or null")
    return value


def _int_tuple(payload: Dict[str, Any], key: str, length: Optional[int] = None) -> Tuple[int, ...]:
    value = payload[key]
    if not isinstance(value, list) or any(isinstance(v, bool) or not isinstance(v, int) for v in value):
        raise ValueError(f"{key} must be a list of integers")
    if length is not None and len(value) != length:
        raise ValueError(f"{key} must have {length} entries")
    return tuple(value)


def load_app_config(path: Path) -> AppConfig:
    """
    Read an AppConfig from JSON. Keys missing from the file keep their
    defaults; unknown keys are rejected.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid config JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ValueError("Config must be a JSON object")

    allowed = {f.name for f in fields(AppConfig)}
    unknown = sorted(set(payload.keys()) - allowed)
    if unknown:
        raise ValueError(f"Unknown config keys: {unknown}")

    kwargs: Dict[str, Any] = {}
    for key in payload:
        if key == "model_path":
            value = _optional_str(payload, key)
            if value is None:
                raise ValueError("model_path must be a non-empty string")
            kwargs[key] = value
        elif key in ("nms_model_path", "metadata_path"):
            kwargs[key] = _optional_str(payload, key)
        elif key == "input_shape":
            kwargs[key] = _int_tuple(payload, key, 4)
        elif key == "result_size":
            kwargs[key] = _int_tuple(payload, key, 2)
        elif key == "topk":
            kwargs[key] = _require_int(payload, key)
        elif key in ("iou_threshold", "score_threshold", "min_score"):
            kwargs[key] = _require_number(payload, key)
        elif key == "class_ids":
            kwargs[key] = None if payload[key] is None else _int_tuple(payload, key)
        elif key == "onnx_providers":
            value = payload[key]
            if value is not None and (
                not isinstance(value, list) or not all(isinstance(v, str) and v.strip() for v in value)
            ):
                raise ValueError("onnx_providers must be a list of non-empty strings or null")
            kwargs[key] = None if value is None else tuple(v.strip() for v in value)
        elif key == "crop_policy":
            if not isinstance(payload[key], str):
                raise ValueError("crop_policy must be a string")
            kwargs[key] = payload[key]

    return AppConfig(**kwargs)
