from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from .types import Detection, ScaleContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PostConfig:
    """
    Settings for decoding NMS-selected rows.
    """

    # Class ids to keep; None keeps all. 17 is the COCO "horse" class.
    class_ids: Optional[Sequence[int]] = (17,)
    # Extra score floor on top of the NMS network's own threshold (0 = off).
    min_score: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.min_score <= 1.0:
            raise ValueError("min_score must be in [0, 1]")
        if self.class_ids is not None:
            if any(isinstance(c, bool) or int(c) != c or c < 0 for c in self.class_ids):
                raise ValueError(f"class_ids must be non-negative integers, got {self.class_ids!r}")


class DetectionPostprocessor:
    """
    Decode NMS-selected rows into display-ready detections.

    Row layout (model space, padded square):
        [cx, cy, w, h, score_0 .. score_{C-1}]

    Boxes are converted to (left, top, width, height) and multiplied by the
    image's ScaleContext. Output keeps input row order.
    """

    def __init__(self, cfg: PostConfig = PostConfig()):
        self.cfg = cfg

    def process(self, selected: np.ndarray, scale: ScaleContext) -> List[Detection]:
        rows = self._rows(selected)
        detections: List[Detection] = []
        for row in rows:
            det = self.decode_row(row, scale)
            if self._keep(det):
                detections.append(det)

        logger.debug("Decoded %d rows, kept %d detections", rows.shape[0], len(detections))
        return detections

    def decode_row(self, row: np.ndarray, scale: ScaleContext) -> Detection:
        box = row[0:4]
        scores = row[4:]
        # np.argmax returns the first index on ties.
        label = int(np.argmax(scores))
        score = float(scores[label])

        cx, cy, w, h = (float(v) for v in box)
        bounding = (
            (cx - 0.5 * w) * scale.x_ratio,
            (cy - 0.5 * h) * scale.y_ratio,
            w * scale.x_ratio,
            h * scale.y_ratio,
        )
        return Detection(label=label, probability=score, bounding=bounding)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _rows(self, selected: np.ndarray) -> np.ndarray:
        p = np.asarray(selected)
        if p.ndim == 3:
            if p.shape[0] != 1:
                raise ValueError(f"Batch > 1 is not supported (got shape {p.shape}). Pass one image at a time.")
            p = p[0]
        if p.ndim != 2:
            raise ValueError(f"Expected NMS output shaped (1, N, 4 + C), got {np.shape(selected)}")
        if p.shape[0] > 0 and p.shape[1] < 5:
            raise ValueError(f"Rows need 4 box values plus at least one class score, got {p.shape[1]} columns")
        return p

    def _keep(self, det: Detection) -> bool:
        if self.cfg.class_ids is not None and det.label not in self.cfg.class_ids:
            return False
        return det.probability >= self.cfg.min_score
