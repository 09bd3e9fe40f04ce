from __future__ import annotations

from typing import Tuple

import cv2
import numpy as np

from .types import ScaleContext


def to_bgr(image: np.ndarray) -> np.ndarray:
    """
    Convert gray / BGRA / BGR images to 3-channel BGR.
    """

    if image is None or not hasattr(image, "shape"):
        raise TypeError("image must be a NumPy array.")
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if image.ndim == 3 and image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2BGR)
    if image.ndim == 3 and image.shape[2] == 3:
        return image
    raise ValueError(f"Expected image shape (H, W), (H, W, 3) or (H, W, 4), got {image.shape}")


def pad_to_square(
    image: np.ndarray,
    color: Tuple[int, int, int] = (0, 0, 0),
) -> Tuple[np.ndarray, ScaleContext]:
    """
    Pad on the right/bottom so the image becomes max_side x max_side.

    Returns:
        padded: square image (the input is not modified)
        scale: ScaleContext with (max_side / w, max_side / h)
    """

    h, w = image.shape[:2]
    if h == 0 or w == 0:
        raise ValueError(f"Cannot pad an empty image (got shape {image.shape})")

    max_size = max(h, w)
    x_pad = max_size - w
    y_pad = max_size - h
    padded = cv2.copyMakeBorder(image, 0, y_pad, 0, x_pad, cv2.BORDER_CONSTANT, value=color)
    return padded, ScaleContext.from_image_size(w, h)


def make_blob(image_bgr: np.ndarray, input_size: Tuple[int, int] = (640, 640)) -> np.ndarray:
    """
    Resize to the model resolution, BGR -> RGB, normalize to [0, 1] and
    return an NCHW float32 blob with a batch axis.

    `input_size` is (width, height).
    """

    width, height = input_size
    if image_bgr.shape[:2] != (height, width):
        image_bgr = cv2.resize(image_bgr, (width, height), interpolation=cv2.INTER_LINEAR)

    blob = image_bgr[:, :, ::-1].astype(np.float32) / 255.0
    blob = np.transpose(blob, (2, 0, 1))[None, ...]
    return np.ascontiguousarray(blob)
