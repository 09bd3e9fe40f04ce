from __future__ import annotations

import logging
from typing import Sequence, Tuple

import cv2
import numpy as np

from .errors import NoDetectionError
from .types import Detection

logger = logging.getLogger(__name__)

SELECTION_POLICIES = ("best", "first")


def select_detection(detections: Sequence[Detection], policy: str = "best") -> Detection:
    """
    Pick the detection to crop.

    - "best": highest probability (earliest wins on ties)
    - "first": first detection in output order
    """

    if policy not in SELECTION_POLICIES:
        raise ValueError(f"Unknown selection policy {policy!r}; expected one of {SELECTION_POLICIES}")
    if not detections:
        raise NoDetectionError("No detections to crop. Run detection first.")

    if policy == "first":
        return detections[0]
    return max(detections, key=lambda d: d.probability)


def source_rect(
    detection: Detection,
    image_size: Tuple[int, int],
    display_size: Tuple[int, int] = (640, 640),
) -> Tuple[int, int, int, int]:
    """
    Map a display-space bounding box to an integer (x, y, w, h) rectangle in
    source pixels, clipped to the image.

    Both sizes are (width, height).
    """

    width, height = image_size
    disp_w, disp_h = display_size
    x, y, w, h = detection.bounding

    x0 = int(x / disp_w * width)
    y0 = int(y / disp_h * height)
    x1 = x0 + int(w / disp_w * width)
    y1 = y0 + int(h / disp_h * height)

    x0, x1 = max(0, x0), min(width, x1)
    y0, y1 = max(0, y0), min(height, y1)
    return x0, y0, max(0, x1 - x0), max(0, y1 - y0)


def crop_and_resize(
    image: np.ndarray,
    detection: Detection,
    *,
    display_size: Tuple[int, int] = (640, 640),
    out_size: Tuple[int, int] = (500, 400),
) -> np.ndarray:
    """
    Crop `detection` out of the source image and resize the crop to
    `out_size` (width, height) with area interpolation.

    Raises:
        NoDetectionError: the box does not overlap the image.
    """

    if image is None or not hasattr(image, "shape") or image.ndim < 2:
        raise TypeError("image must be a NumPy array (H, W[, C]).")

    h, w = image.shape[:2]
    x, y, rw, rh = source_rect(detection, (w, h), display_size)
    if rw == 0 or rh == 0:
        raise NoDetectionError(f"Detection {detection.bounding} does not overlap the {w}x{h} image.")

    roi = image[y : y + rh, x : x + rw]
    logger.debug("Cropping rect %s from %dx%d image", (x, y, rw, rh), w, h)
    return cv2.resize(roi, tuple(out_size), interpolation=cv2.INTER_AREA)
