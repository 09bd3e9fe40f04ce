from __future__ import annotations

from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from .letterbox import to_bgr
from .types import Detection

ClassNames = Union[Dict[int, str], Sequence[str]]

_GOLDEN_RATIO = 0.618033988749895


def class_color(label: int) -> Tuple[int, int, int]:
    """
    Deterministic BGR color per class: hues spaced by the golden ratio so
    neighbouring ids stay distinguishable.
    """

    hue = int(((label * _GOLDEN_RATIO) % 1.0) * 180)
    hsv = np.array([[[hue, 200, 255]]], dtype=np.uint8)
    b, g, r = cv2.cvtColor(hsv, cv2.COLOR_HSV2BGR)[0, 0]
    return int(b), int(g), int(r)


def class_name(label: int, class_names: Optional[ClassNames] = None) -> str:
    if class_names is None:
        return str(label)
    if isinstance(class_names, dict):
        return class_names.get(label, str(label))
    if 0 <= label < len(class_names):
        return class_names[label]
    return str(label)


def render_canvas(image: np.ndarray, canvas_size: Tuple[int, int] = (640, 640)) -> np.ndarray:
    """
    Stretch the source image to the canvas (width, height) that detections
    are expressed in.
    """

    return cv2.resize(to_bgr(image), tuple(canvas_size), interpolation=cv2.INTER_LINEAR)


def _label_origin(
    box: Tuple[int, int, int, int],
    text_size: Tuple[int, int],
    canvas_size: Tuple[int, int],
) -> Tuple[int, int]:
    """
    Top-left of the label background: above the box when it fits, otherwise
    just inside the top edge; shifted left so it never leaves the canvas.
    """

    x1, y1, _, _ = box
    tw, th = text_size
    cw, ch = canvas_size
    top = y1 - th if y1 - th >= 0 else y1
    left = min(x1, max(0, cw - tw))
    return left, min(top, max(0, ch - th))


def draw_detections(
    canvas_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    class_names: Optional[ClassNames] = None,
    show_score: bool = True,
    box_thickness: int = 2,
    font_scale: float = 0.5,
    font_thickness: int = 1,
) -> np.ndarray:
    """
    Draw detections on a copy of a canvas from `render_canvas`.

    Detections are in canvas coordinates, so boxes are drawn as-is (rounded
    and clipped to the canvas) with a "name 0.93" tag per box.
    """

    if canvas_bgr is None or not hasattr(canvas_bgr, "shape"):
        raise TypeError("canvas_bgr must be a NumPy array (BGR).")
    if canvas_bgr.ndim != 3 or canvas_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(canvas_bgr, 'shape', None)}")

    out = canvas_bgr.copy()
    h, w = out.shape[:2]
    pad = 2

    for det in detections:
        x1, y1, x2, y2 = (int(round(v)) for v in det.as_xyxy())
        box = (max(0, x1), max(0, y1), min(w - 1, x2), min(h - 1, y2))
        if box[0] > box[2] or box[1] > box[3]:
            continue

        color = class_color(det.label)
        cv2.rectangle(out, box[:2], box[2:], color, thickness=box_thickness)

        text = class_name(det.label, class_names)
        if show_score:
            text = f"{text} {det.probability:.2f}"
        (tw, th), baseline = cv2.getTextSize(text, cv2.FONT_HERSHEY_SIMPLEX, font_scale, font_thickness)
        tag_w, tag_h = tw + 2 * pad, th + baseline + 2 * pad

        left, top = _label_origin(box, (tag_w, tag_h), (w, h))
        cv2.rectangle(out, (left, top), (left + tag_w, top + tag_h), color, thickness=-1)
        cv2.putText(
            out,
            text,
            (left + pad, top + pad + th),
            cv2.FONT_HERSHEY_SIMPLEX,
            font_scale,
            (255, 255, 255),
            thickness=font_thickness,
            lineType=cv2.LINE_AA,
        )

    return out


def encode_png(image: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", image)
    if not ok:
        raise RuntimeError("Failed to encode image as PNG")
    return buf.tobytes()
