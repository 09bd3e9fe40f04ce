from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class ScaleContext:
    """
    Factors mapping padded-square model space back to the source image's
    width/height (`padded_size / original_dimension`).
    """

    x_ratio: float
    y_ratio: float

    @classmethod
    def from_image_size(cls, width: int, height: int) -> "ScaleContext":
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {(width, height)}")
        max_size = max(width, height)
        return cls(x_ratio=max_size / width, y_ratio=max_size / height)


@dataclass(frozen=True)
class Detection:
    """
    One decoded detection.

    `bounding` is (left, top, width, height) in display space: the source
    image stretched to the model input resolution.
    """

    label: int
    probability: float
    bounding: Tuple[float, float, float, float]

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        x, y, w, h = self.bounding
        return x, y, x + w, y + h

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "probability": self.probability, "bounding": list(self.bounding)}
